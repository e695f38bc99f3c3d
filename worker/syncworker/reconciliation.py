from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import and_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from syncworker.models import Product, utc_now
from syncworker.normalization import (
    NormalizedProduct,
    normalize_record,
    serialize_attributes,
    serialize_variants,
)

logger = logging.getLogger(__name__)

PLAIN_FIELDS = ("description", "stock", "image_url", "product_url", "sku", "brand", "category", "weight", "dimensions")


@dataclass
class ReconcileResult:
    external_id: str | None
    status: str
    product_id: str | None = None
    message: str | None = None

    def as_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"externalId": self.external_id, "status": self.status}
        if self.product_id:
            payload["productId"] = self.product_id
        if self.message:
            payload["message"] = self.message
        return payload


@dataclass
class ReconcileSummary:
    results: list[ReconcileResult] = field(default_factory=list)

    @property
    def created(self) -> int:
        return sum(1 for result in self.results if result.status == "created")

    @property
    def updated(self) -> int:
        return sum(1 for result in self.results if result.status == "updated")

    @property
    def failed(self) -> int:
        return sum(1 for result in self.results if result.status == "error")

    @property
    def errors(self) -> list[dict[str, str]]:
        return [
            {"externalId": result.external_id or "", "message": result.message or "unknown error"}
            for result in self.results
            if result.status == "error"
        ]


class ReconciliationEngine:
    """Upserts product records for one vendor, keyed on (vendor_id, external_id).

    Every record is applied inside its own SAVEPOINT so one bad record never
    rolls back its siblings. Committing is left to the caller.
    """

    def __init__(self, db: Session) -> None:
        self.db = db

    def reconcile(self, vendor_id: str, record: Any) -> ReconcileResult:
        if not isinstance(record, (Mapping, NormalizedProduct)):
            logger.warning("Rejected non-object product record for vendor %s: %r", vendor_id, record)
            return ReconcileResult(external_id=None, status="error", message="product record must be an object")
        normalized = record if isinstance(record, NormalizedProduct) else normalize_record(record)
        problem = self.validate(normalized)
        if problem:
            logger.warning("Rejected product %r for vendor %s: %s", normalized.external_id, vendor_id, problem)
            return ReconcileResult(external_id=normalized.external_id, status="error", message=problem)

        missing = normalized.missing_fields()
        if missing:
            logger.warning("Product %s is missing %s", normalized.external_id, ", ".join(missing))

        try:
            with self.db.begin_nested():
                product, created = self._apply(vendor_id, normalized)
        except IntegrityError:
            # another writer created the same key first; re-read and update
            logger.info("Create race on %s/%s; retrying as update", vendor_id, normalized.external_id)
            try:
                with self.db.begin_nested():
                    product = self._find(vendor_id, normalized.external_id)
                    if product is None:
                        raise LookupError(f"Product {normalized.external_id} vanished after conflict")
                    self._update(product, normalized)
                    created = False
            except (SQLAlchemyError, LookupError) as exc:
                logger.error("Failed to reconcile %s for vendor %s: %s", normalized.external_id, vendor_id, exc)
                return ReconcileResult(external_id=normalized.external_id, status="error", message=str(exc))
        except SQLAlchemyError as exc:
            logger.error("Failed to reconcile %s for vendor %s: %s", normalized.external_id, vendor_id, exc)
            return ReconcileResult(external_id=normalized.external_id, status="error", message=str(exc))

        return ReconcileResult(
            external_id=normalized.external_id,
            status="created" if created else "updated",
            product_id=product.id,
        )

    def reconcile_many(self, vendor_id: str, records: Iterable[Any]) -> ReconcileSummary:
        summary = ReconcileSummary()
        for record in records:
            summary.results.append(self.reconcile(vendor_id, record))
        logger.info(
            "Reconciled %s records for vendor %s: %s created, %s updated, %s failed",
            len(summary.results),
            vendor_id,
            summary.created,
            summary.updated,
            summary.failed,
        )
        return summary

    def validate(self, record: NormalizedProduct) -> str | None:
        if not record.external_id:
            return "externalId is required"
        if not record.name:
            return "name is required"
        if record.price is None or not math.isfinite(record.price):
            return "price must be a number"
        if record.price < 0:
            return "price must not be negative"
        return None

    def _find(self, vendor_id: str, external_id: str | None) -> Product | None:
        return self.db.execute(
            select(Product).where(and_(Product.vendor_id == vendor_id, Product.external_id == external_id))
        ).scalar_one_or_none()

    def _apply(self, vendor_id: str, record: NormalizedProduct) -> tuple[Product, bool]:
        product = self._find(vendor_id, record.external_id)
        if product is not None:
            self._update(product, record)
            return product, False

        product = Product(
            vendor_id=vendor_id,
            external_id=record.external_id,
            name=record.name,
            price=record.price,
            description=record.description or "",
            stock=record.stock or 0,
            image_url=record.image_url or "",
            product_url=record.product_url or "",
            sku=record.sku or "",
            brand=record.brand or "",
            category=record.category or "",
            variants=serialize_variants(record.variants),
            weight=record.weight,
            dimensions=record.dimensions or "",
            attributes=serialize_attributes(record.attributes),
        )
        self.db.add(product)
        self.db.flush()
        return product, True

    def _update(self, product: Product, record: NormalizedProduct) -> None:
        product.name = record.name or product.name
        product.price = record.price if record.price is not None else product.price
        for name in PLAIN_FIELDS:
            value = getattr(record, name)
            if value is not None:
                setattr(product, name, value)
        if record.variants is not None:
            product.variants = serialize_variants(record.variants)
        if record.attributes is not None:
            product.attributes = serialize_attributes(record.attributes)
        product.updated_at = utc_now()
        self.db.flush()
