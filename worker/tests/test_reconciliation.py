import json

import pytest
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from syncworker.models import Product
from syncworker.normalization import normalize_record
from syncworker.reconciliation import ReconciliationEngine


def _products(session, vendor_id="vendor-shop"):
    return session.execute(
        select(Product).where(Product.vendor_id == vendor_id).order_by(Product.external_id)
    ).scalars().all()


def test_first_sync_creates_then_second_updates(session):
    engine = ReconciliationEngine(session)
    record = {
        "externalId": "SC-1",
        "name": "Wool Scarf",
        "price": "29,90 €",
        "stock": 4,
        "variants": ["One size"],
        "category": ["Grey", "Navy"],
        "attributes": {"material": "wool"},
    }

    first = engine.reconcile("vendor-shop", record)
    session.commit()
    second = engine.reconcile("vendor-shop", {**record, "price": 25})
    session.commit()

    assert first.status == "created"
    assert second.status == "updated"
    assert first.product_id == second.product_id

    (product,) = _products(session)
    assert product.price == 25.0
    assert product.stock == 4
    assert product.category == "Grey, Navy"
    assert json.loads(product.variants) == ["One size"]
    assert json.loads(product.attributes) == {"material": "wool"}


def test_update_keeps_fields_the_record_does_not_carry(session):
    engine = ReconciliationEngine(session)
    engine.reconcile(
        "vendor-shop",
        {
            "externalId": "TEE-2",
            "name": "Cotton Tee",
            "price": 15,
            "description": "Organic cotton.",
            "stock": 12,
            "imageUrl": "https://shop.example.com/img/tee.jpg",
        },
    )
    session.commit()
    created = _products(session)[0]
    created_updated_at = created.updated_at

    result = engine.reconcile("vendor-shop", {"externalId": "TEE-2", "name": "Cotton Tee", "price": 13.5})
    session.commit()

    assert result.status == "updated"
    product = _products(session)[0]
    assert product.price == 13.5
    assert product.description == "Organic cotton."
    assert product.stock == 12
    assert product.image_url == "https://shop.example.com/img/tee.jpg"
    assert product.updated_at >= created_updated_at


def test_same_external_id_twice_in_one_batch_yields_one_row(session):
    summary = ReconciliationEngine(session).reconcile_many(
        "vendor-shop",
        [
            {"externalId": "CLOG", "name": "Clog", "price": 60},
            {"externalId": "CLOG", "name": "Clog", "price": 55},
        ],
    )
    session.commit()

    assert [result.status for result in summary.results] == ["created", "updated"]
    assert (summary.created, summary.updated, summary.failed) == (1, 1, 0)
    (product,) = _products(session)
    assert product.price == 55.0


def test_external_ids_are_scoped_per_vendor(session):
    engine = ReconciliationEngine(session)
    engine.reconcile("vendor-shop", {"externalId": "SKU-1", "name": "Mug", "price": 12})
    result = engine.reconcile("vendor-woo", {"externalId": "SKU-1", "name": "Mug", "price": 14})
    session.commit()

    assert result.status == "created"
    assert len(_products(session, "vendor-shop")) == 1
    assert len(_products(session, "vendor-woo")) == 1


@pytest.mark.parametrize(
    "record, message",
    [
        ({"name": "No id", "price": 10}, "externalId is required"),
        ({"externalId": "  ", "name": "Blank id", "price": 10}, "externalId is required"),
        ({"externalId": "X-1", "price": 10}, "name is required"),
        ({"externalId": "X-2", "name": "No price"}, "price must be a number"),
        ({"externalId": "X-3", "name": "Bad price", "price": "call us"}, "price must be a number"),
        ({"externalId": "X-4", "name": "Negative", "price": -5}, "price must not be negative"),
        ("X-5", "product record must be an object"),
        ([{"externalId": "X-6"}], "product record must be an object"),
    ],
)
def test_invalid_records_are_rejected_without_writing(session, record, message):
    result = ReconciliationEngine(session).reconcile("vendor-shop", record)
    session.commit()

    assert result.status == "error"
    assert result.message == message
    assert _products(session) == []


def test_zero_price_is_accepted(session):
    result = ReconciliationEngine(session).reconcile("vendor-shop", {"externalId": "FREE", "name": "Sticker", "price": 0})

    assert result.status == "created"


def test_failures_are_isolated_per_record(session, monkeypatch):
    engine = ReconciliationEngine(session)
    real_apply = engine._apply

    def flaky_apply(vendor_id, record):
        outcome = real_apply(vendor_id, record)
        if record.external_id == "B":
            raise SQLAlchemyError("disk I/O error")
        return outcome

    monkeypatch.setattr(engine, "_apply", flaky_apply)
    summary = engine.reconcile_many(
        "vendor-shop",
        [
            {"externalId": "A", "name": "Alpha", "price": 1},
            {"externalId": "B", "name": "Beta", "price": 2},
            {"externalId": "C", "name": "Gamma", "price": 3},
            {"externalId": "", "name": "Nameless", "price": 4},
        ],
    )
    session.commit()

    assert [result.status for result in summary.results] == ["created", "error", "created", "error"]
    assert summary.failed == 2
    assert summary.errors[0] == {"externalId": "B", "message": "disk I/O error"}
    assert [product.external_id for product in _products(session)] == ["A", "C"]


def test_concurrent_create_falls_back_to_update(session, monkeypatch):
    engine = ReconciliationEngine(session)
    engine.reconcile("vendor-shop", {"externalId": "RACE", "name": "Racer", "price": 10})
    session.commit()

    real_find = engine._find
    calls = {"count": 0}

    def stale_find(vendor_id, external_id):
        calls["count"] += 1
        # the first lookup misses, as if another writer inserted concurrently
        if calls["count"] == 1:
            return None
        return real_find(vendor_id, external_id)

    monkeypatch.setattr(engine, "_find", stale_find)
    result = engine.reconcile("vendor-shop", {"externalId": "RACE", "name": "Racer", "price": 11})
    session.commit()

    assert result.status == "updated"
    (product,) = _products(session)
    assert product.price == 11.0


def test_normalized_records_are_accepted_directly(session):
    record = normalize_record({"externalId": "N-1", "name": "Normalized", "price": "1 299,00 €"})

    result = ReconciliationEngine(session).reconcile("vendor-shop", record)

    assert result.status == "created"
    assert result.as_dict() == {"externalId": "N-1", "status": "created", "productId": result.product_id}
    assert _products(session)[0].price == 1299.0
