from fastapi import APIRouter, Body, Depends

from syncapi.api.deps import get_orchestrator, require_vendor
from syncapi.schemas.sync import AutoSyncRequest, PushRequest, PushResponse, SyncRunOut, SyncStatusOut
from syncapi.services.sync import get_status, push_products, run_pull_sync
from syncworker.models import Vendor
from syncworker.orchestrator import SyncOrchestrator

router = APIRouter(prefix="/v1/vendors", tags=["sync"])


@router.post("/{vendor_id}/sync", response_model=PushResponse)
def push_sync(
    payload: PushRequest,
    vendor: Vendor = Depends(require_vendor),
    orchestrator: SyncOrchestrator = Depends(get_orchestrator),
) -> PushResponse:
    return push_products(orchestrator, vendor.id, payload.products)


@router.post("/{vendor_id}/auto-sync", response_model=SyncRunOut)
def auto_sync(
    payload: AutoSyncRequest | None = Body(default=None),
    vendor: Vendor = Depends(require_vendor),
    orchestrator: SyncOrchestrator = Depends(get_orchestrator),
) -> SyncRunOut:
    options = payload or AutoSyncRequest()
    return run_pull_sync(orchestrator, vendor.id, options.scroll_to_load, options.max_products)


@router.get("/{vendor_id}/sync/status", response_model=SyncStatusOut)
def sync_status(
    vendor: Vendor = Depends(require_vendor),
    orchestrator: SyncOrchestrator = Depends(get_orchestrator),
) -> SyncStatusOut:
    return get_status(orchestrator, vendor.id)
