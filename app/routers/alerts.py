from fastapi import APIRouter, Depends, HTTPException, status

from app.deps import CurrentUser, can_read_alerts, can_write_alerts
from app.notifications import list_alerts, mark_alert_read
from app.schemas import Alert

router = APIRouter(prefix="/alerts", tags=["alerts"])


@router.get("", response_model=list[Alert])
async def list_my_alerts(
    current_user: CurrentUser = Depends(can_read_alerts),
) -> list[Alert]:
    """The caller's alerts, newest first."""
    return await list_alerts(current_user.id)


@router.post("/{alert_id}/read", response_model=Alert)
async def mark_my_alert_read(
    alert_id: str,
    current_user: CurrentUser = Depends(can_write_alerts),
) -> Alert:
    # Alerts live under the caller's own namespace, so no ownership check is needed
    alert = await mark_alert_read(current_user.id, alert_id)
    if alert is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Alert not found"
        )
    return alert
