from fastapi import APIRouter, Depends

from hcpos.deps import get_notifications
from hcpos.services.notifications import NotificationSink

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("/")
def recent(limit: int = 10, notes: NotificationSink = Depends(get_notifications)):
    return {"success": True, "notifications": notes.recent(limit)}

@router.delete("/")
def clear(notes: NotificationSink = Depends(get_notifications)):
    notes.clear()
    return {"success": True, "message": "Notifications cleared"}
