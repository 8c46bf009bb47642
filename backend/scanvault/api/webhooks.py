"""Scanner webhooks: plain verdict callback and GuardDuty malware-scan events. Shared-secret authenticated."""
import logging

from fastapi import APIRouter, Body, Depends, Response, status

from scanvault.api.schemas import ScanVerdictRequest
from scanvault.core.deps import get_records, require_scan_secret
from scanvault.services.records import RecordStore
from scanvault.services.verdicts import apply_verdict, guardduty_verdict

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks", tags=["webhooks"], dependencies=[Depends(require_scan_secret)])


@router.post("/scan-result", status_code=204)
async def scan_result(
    body: ScanVerdictRequest,
    records: RecordStore = Depends(get_records),
):
    await apply_verdict(records, body.storage_key, body.verdict)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/guardduty", status_code=204)
async def guardduty_scan_result(
    event: dict = Body(...),
    records: RecordStore = Depends(get_records),
):
    """EventBridge "GuardDuty Malware Protection Object Scan Result". Indecisive results are left to the sweep."""
    storage_key, verdict = guardduty_verdict(event)
    if verdict is None:
        logger.info("GuardDuty event without a verdict for key=%s; leaving to sweep", storage_key)
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    await apply_verdict(records, storage_key, verdict)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
