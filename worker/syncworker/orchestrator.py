from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from syncworker.errors import ExtractionError, SyncPreconditionError, VendorNotFoundError
from syncworker.extraction import ExtractionEngine
from syncworker.locks import VendorLock
from syncworker.models import Product, SyncRun, Vendor, utc_now
from syncworker.reconciliation import ReconciliationEngine, ReconcileResult, ReconcileSummary

logger = logging.getLogger(__name__)

ACTIVE_STATUSES = {"pending", "extracting", "reconciling"}


@dataclass
class SyncResult:
    vendor_id: str
    run_id: str | None
    status: str
    source: str = "pull"
    products_found: int = 0
    products_created: int = 0
    products_updated: int = 0
    products_failed: int = 0
    errors: list[dict[str, str]] = field(default_factory=list)
    error: str | None = None
    started_at: datetime | None = None
    finished_at: datetime | None = None
    results: list[ReconcileResult] = field(default_factory=list)

    @classmethod
    def from_run(cls, run: SyncRun, results: list[ReconcileResult] | None = None) -> SyncResult:
        return cls(
            vendor_id=run.vendor_id,
            run_id=run.id,
            status=run.status,
            source=run.source,
            products_found=run.products_found,
            products_created=run.products_created,
            products_updated=run.products_updated,
            products_failed=run.products_failed,
            errors=list(run.errors or []),
            error=run.error_summary,
            started_at=run.started_at,
            finished_at=run.finished_at,
            results=results or [],
        )


@dataclass
class SyncStatus:
    vendor_id: str
    status: str
    last_synced_at: datetime | None
    product_count: int
    latest_run: SyncResult | None = None


class SyncOrchestrator:
    """Runs pull and push syncs for vendors and records each one as a SyncRun."""

    def __init__(
        self,
        db: Session,
        extraction: ExtractionEngine | None = None,
        lock: VendorLock | None = None,
    ) -> None:
        self.db = db
        self.extraction = extraction or ExtractionEngine()
        self.lock = lock or VendorLock.from_settings()

    def run_sync(self, vendor_id: str, scroll_to_load: bool = True, max_products: int | None = None) -> SyncResult:
        vendor = self._require_vendor(vendor_id)
        if not vendor.website_url:
            raise SyncPreconditionError(vendor_id, "vendor has no website URL")
        if not vendor.sync_enabled:
            raise SyncPreconditionError(vendor_id, "sync is disabled for this vendor")

        with self.lock.hold(vendor_id):
            return self._run_pull(vendor, scroll_to_load, max_products)

    def run_sync_all(self) -> list[SyncResult]:
        vendor_ids = list(
            self.db.execute(
                select(Vendor.id)
                .where(Vendor.sync_enabled.is_(True), Vendor.website_url.is_not(None), Vendor.website_url != "")
                .order_by(Vendor.created_at)
            ).scalars()
        )
        logger.info("Starting scheduled sync for %s vendors", len(vendor_ids))

        results: list[SyncResult] = []
        for vendor_id in vendor_ids:
            try:
                results.append(self.run_sync(vendor_id))
            except Exception as exc:
                logger.exception("Sync failed for vendor %s", vendor_id)
                self.db.rollback()
                results.append(SyncResult(vendor_id=vendor_id, run_id=None, status="failed", error=str(exc)))

        succeeded = sum(1 for result in results if result.status == "completed")
        logger.info("Scheduled sync finished: %s succeeded, %s failed", succeeded, len(results) - succeeded)
        return results

    def push_products(self, vendor_id: str, records: Iterable[Any]) -> SyncResult:
        vendor = self._require_vendor(vendor_id)
        records = list(records)
        run = SyncRun(vendor_id=vendor.id, source="push", status="reconciling", products_found=len(records), errors=[])
        self.db.add(run)
        self.db.flush()

        summary = ReconcileSummary()
        try:
            summary = ReconciliationEngine(self.db).reconcile_many(vendor.id, records)
            self._apply_summary(run, summary)
            vendor.last_synced_at = utc_now()
            run.status = "completed"
        except Exception as exc:
            logger.exception("Push sync failed for vendor %s", vendor_id)
            self.db.rollback()
            run = self._restore_run(run, vendor.id, "push", len(records))
            run.status = "failed"
            run.error_summary = str(exc)
        finally:
            run.finished_at = utc_now()
            self.db.commit()

        return SyncResult.from_run(run, results=summary.results)

    def get_status(self, vendor_id: str) -> SyncStatus:
        vendor = self._require_vendor(vendor_id)
        latest = self.db.execute(
            select(SyncRun).where(SyncRun.vendor_id == vendor_id).order_by(SyncRun.started_at.desc()).limit(1)
        ).scalar_one_or_none()
        product_count = self.db.execute(
            select(func.count(Product.id)).where(Product.vendor_id == vendor_id)
        ).scalar_one()

        if latest is None:
            status = "completed" if vendor.last_synced_at else "never_synced"
        elif latest.status in ACTIVE_STATUSES:
            status = "in_progress"
        else:
            status = latest.status

        return SyncStatus(
            vendor_id=vendor_id,
            status=status,
            last_synced_at=vendor.last_synced_at,
            product_count=product_count,
            latest_run=SyncResult.from_run(latest) if latest else None,
        )

    def _run_pull(self, vendor: Vendor, scroll_to_load: bool, max_products: int | None) -> SyncResult:
        run = SyncRun(vendor_id=vendor.id, source="pull", status="pending", errors=[])
        self.db.add(run)
        self.db.commit()

        summary = ReconcileSummary()
        try:
            run.status = "extracting"
            self.db.commit()
            products = self.extraction.extract_products(
                vendor.website_url,
                scroll_to_load=scroll_to_load,
                max_products=max_products,
            )
            run.products_found = len(products)
            run.status = "reconciling"
            self.db.commit()

            summary = ReconciliationEngine(self.db).reconcile_many(vendor.id, [product.to_record() for product in products])
            self._apply_summary(run, summary)
            vendor.last_synced_at = utc_now()
            run.status = "completed"
        except ExtractionError as exc:
            logger.warning("Extraction failed for vendor %s: %s", vendor.id, exc)
            self.db.rollback()
            run.status = "failed"
            run.error_summary = str(exc)
        except Exception as exc:
            logger.exception("Pull sync failed for vendor %s", vendor.id)
            self.db.rollback()
            run.status = "failed"
            run.error_summary = str(exc)
        finally:
            run.finished_at = utc_now()
            self.db.commit()

        logger.info(
            "Sync %s for vendor %s: %s found, %s created, %s updated, %s failed",
            run.status,
            vendor.id,
            run.products_found,
            run.products_created,
            run.products_updated,
            run.products_failed,
        )
        return SyncResult.from_run(run, results=summary.results)

    def _apply_summary(self, run: SyncRun, summary: ReconcileSummary) -> None:
        run.products_created = summary.created
        run.products_updated = summary.updated
        run.products_failed = summary.failed
        run.errors = summary.errors

    def _restore_run(self, run: SyncRun, vendor_id: str, source: str, found: int) -> SyncRun:
        # a rollback discards a run that was only flushed
        if run in self.db:
            return run
        restored = SyncRun(vendor_id=vendor_id, source=source, status="failed", products_found=found, errors=[])
        self.db.add(restored)
        return restored

    def _require_vendor(self, vendor_id: str) -> Vendor:
        vendor = self.db.get(Vendor, vendor_id)
        if vendor is None:
            raise VendorNotFoundError(vendor_id)
        return vendor
