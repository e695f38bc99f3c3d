from fastapi import APIRouter, Depends

from syncapi.api.deps import get_orchestrator, require_cron_secret
from syncapi.schemas.sync import CronSyncOut
from syncapi.services.sync import sync_all
from syncworker.orchestrator import SyncOrchestrator

router = APIRouter(prefix="/v1/cron", tags=["cron"], dependencies=[Depends(require_cron_secret)])


@router.post("/sync-all", response_model=CronSyncOut)
def cron_sync_all(orchestrator: SyncOrchestrator = Depends(get_orchestrator)) -> CronSyncOut:
    return sync_all(orchestrator)
