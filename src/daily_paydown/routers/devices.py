"""Push device registration."""
from fastapi import APIRouter

from daily_paydown.deps import CurrentUser, StoreDep
from daily_paydown.schemas import DeviceOut, DeviceRegistration

router = APIRouter(prefix="/devices", tags=["devices"])


@router.post("/register", response_model=DeviceOut)
def register_device(payload: DeviceRegistration, user: CurrentUser, store: StoreDep) -> DeviceOut:
    """Register (or re-assign) a push token to the calling user."""
    device = store.upsert_device(user.id, payload.push_token.strip())
    return DeviceOut(id=device.id, push_token=device.push_token)
