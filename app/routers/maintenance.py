from fastapi import APIRouter, Depends

from app.deps import can_run_maintenance
from app.maintenance import backfill_lowercase_names, prune_expired_spotlights
from app.schemas import MaintenanceReport

router = APIRouter(
    prefix="/admin/maintenance",
    tags=["maintenance"],
    dependencies=[Depends(can_run_maintenance)],
)


@router.post("/backfill-lowercase", response_model=MaintenanceReport)
async def run_backfill_lowercase() -> MaintenanceReport:
    return await backfill_lowercase_names()


@router.post("/prune-spotlights", response_model=MaintenanceReport)
async def run_prune_spotlights() -> MaintenanceReport:
    return await prune_expired_spotlights()
