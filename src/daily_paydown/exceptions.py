"""Domain errors raised by services and translated to HTTP by routers."""


class NoAccountSelectedError(ValueError):
    """The user has not selected a spend account yet."""

    def __init__(self, user_id: int) -> None:
        super().__init__(f"User {user_id} has no spend account selected")
        self.user_id = user_id


class UserNotFoundError(LookupError):
    def __init__(self, user_id: int) -> None:
        super().__init__(f"User {user_id} not found")
        self.user_id = user_id


class ItemNotFoundError(LookupError):
    """No linked item with this id belongs to the user."""

    def __init__(self, item_id: str) -> None:
        super().__init__(f"Item {item_id} not found")
        self.item_id = item_id
