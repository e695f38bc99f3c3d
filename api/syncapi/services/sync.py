from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from syncapi.core.errors import ApiError, AppHTTPException
from syncapi.schemas.sync import (
    CronSyncOut,
    PushResponse,
    RecordErrorOut,
    RecordResultOut,
    SyncRunOut,
    SyncStatusOut,
)
from syncworker.orchestrator import SyncOrchestrator, SyncResult


def to_run_out(result: SyncResult) -> SyncRunOut:
    return SyncRunOut(
        vendor_id=result.vendor_id,
        run_id=result.run_id,
        source=result.source,
        status=result.status,
        products_found=result.products_found,
        products_created=result.products_created,
        products_updated=result.products_updated,
        products_failed=result.products_failed,
        errors=[RecordErrorOut(external_id=item["externalId"], message=item["message"]) for item in result.errors],
        error=result.error,
        started_at=result.started_at,
        finished_at=result.finished_at,
    )


def push_products(orchestrator: SyncOrchestrator, vendor_id: str, products: Iterable[Any]) -> PushResponse:
    result = orchestrator.push_products(vendor_id, products)
    run = to_run_out(result)
    return PushResponse(
        **run.model_dump(),
        results=[
            RecordResultOut(
                external_id=item.external_id,
                status=item.status,
                product_id=item.product_id,
                message=item.message,
            )
            for item in result.results
        ],
    )


def run_pull_sync(
    orchestrator: SyncOrchestrator,
    vendor_id: str,
    scroll_to_load: bool,
    max_products: int | None,
) -> SyncRunOut:
    result = orchestrator.run_sync(vendor_id, scroll_to_load=scroll_to_load, max_products=max_products)
    run = to_run_out(result)
    if result.status == "failed":
        raise AppHTTPException(
            status_code=502,
            error=ApiError(
                code="extraction_failed",
                message=result.error or "Sync run failed",
                details=run.model_dump(mode="json", by_alias=True),
            ),
        )
    return run


def get_status(orchestrator: SyncOrchestrator, vendor_id: str) -> SyncStatusOut:
    status = orchestrator.get_status(vendor_id)
    return SyncStatusOut(
        vendor_id=status.vendor_id,
        status=status.status,
        last_synced_at=status.last_synced_at,
        product_count=status.product_count,
        latest_run=to_run_out(status.latest_run) if status.latest_run else None,
    )


def sync_all(orchestrator: SyncOrchestrator) -> CronSyncOut:
    results = [to_run_out(result) for result in orchestrator.run_sync_all()]
    succeeded = sum(1 for result in results if result.status == "completed")
    return CronSyncOut(total=len(results), succeeded=succeeded, failed=len(results) - succeeded, results=results)
