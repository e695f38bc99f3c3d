import pytest
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from syncworker.db import build_engine
from syncworker.extractors.records import ExtractedProduct
from syncworker.locks import VendorLock
from syncworker.models import Base, Vendor


@pytest.fixture()
def session() -> Session:
    engine = build_engine("sqlite:///:memory:", poolclass=StaticPool)
    SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    db.add_all(
        [
            Vendor(id="vendor-shop", store_name="Le Petit Shop", website_url="https://shop.example.com/collections/all", api_key="key-shop"),
            Vendor(id="vendor-woo", store_name="Woo Boutique", website_url="https://woo.example.com/shop", api_key="key-woo"),
            Vendor(id="vendor-nourl", store_name="No Website", website_url=None),
            Vendor(id="vendor-disabled", store_name="Paused", website_url="https://paused.example.com", sync_enabled=False),
        ]
    )
    db.commit()
    try:
        yield db
    finally:
        db.close()
        engine.dispose()


@pytest.fixture()
def lock() -> VendorLock:
    VendorLock._local_leases.clear()
    yield VendorLock(client=None, ttl_seconds=60)
    VendorLock._local_leases.clear()


class FakeExtraction:
    """Stands in for ExtractionEngine; returns canned products or raises per URL."""

    def __init__(self, products_by_url=None, errors_by_url=None) -> None:
        self.products_by_url = products_by_url or {}
        self.errors_by_url = errors_by_url or {}
        self.calls: list[tuple[str, bool, int | None]] = []

    def extract_products(self, url, scroll_to_load=False, max_products=None):
        self.calls.append((url, scroll_to_load, max_products))
        if url in self.errors_by_url:
            raise self.errors_by_url[url]
        return [ExtractedProduct(**vars(product)) for product in self.products_by_url.get(url, [])]


@pytest.fixture()
def fake_extraction_cls():
    return FakeExtraction
