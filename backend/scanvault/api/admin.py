"""Admin: trigger a reconciliation sweep on demand. Shared-secret authenticated (same as scanner webhooks)."""
from fastapi import APIRouter, Depends

from scanvault.api.schemas import SweepReportResponse
from scanvault.core.deps import get_sweep_scheduler, require_scan_secret
from scanvault.services.sweeper import SweepScheduler

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_scan_secret)])


@router.post("/sweep", response_model=SweepReportResponse)
async def trigger_sweep(scheduler: SweepScheduler = Depends(get_sweep_scheduler)):
    """Run one sweep now; ran=false when a scheduled run is already in progress."""
    report = await scheduler.trigger()
    if report is None:
        return SweepReportResponse(ran=False)
    return SweepReportResponse(ran=True, report=report.as_dict())
