"""In-process skip-if-running guard."""
from collections.abc import Hashable, Iterator
from contextlib import contextmanager


class RunGuard:
    """Track keys with a run in progress so overlapping runs can skip.

    Only covers tasks on one event loop in one process.
    """

    def __init__(self) -> None:
        self._active: set[Hashable] = set()

    def is_held(self, key: Hashable) -> bool:
        return key in self._active

    @contextmanager
    def hold(self, key: Hashable) -> Iterator[bool]:
        """Yield True if the key was acquired, False if another run holds it."""
        if key in self._active:
            yield False
            return
        self._active.add(key)
        try:
            yield True
        finally:
            self._active.discard(key)
