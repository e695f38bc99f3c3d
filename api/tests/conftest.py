import os

os.environ.setdefault("VENDORSYNC_ENV", "test")
os.environ.setdefault("VENDORSYNC_DATABASE_URL", "sqlite://")
os.environ.setdefault("VENDORSYNC_ADMIN_TOKEN", "test-admin-token")
os.environ.setdefault("VENDORSYNC_CRON_SECRET", "test-cron-secret")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from syncapi.api.deps import get_orchestrator
from syncapi.db.session import get_db
from syncapi.main import app
from syncworker.db import build_engine
from syncworker.extractors.records import ExtractedProduct
from syncworker.locks import VendorLock
from syncworker.models import Base, Vendor
from syncworker.orchestrator import SyncOrchestrator

SHOP_URL = "https://shop.example.com/collections/all"


class FakeExtraction:
    def __init__(self) -> None:
        self.products_by_url: dict[str, list[ExtractedProduct]] = {}
        self.errors_by_url: dict[str, Exception] = {}
        self.calls: list[tuple[str, bool, int | None]] = []

    def extract_products(self, url, scroll_to_load=False, max_products=None):
        self.calls.append((url, scroll_to_load, max_products))
        if url in self.errors_by_url:
            raise self.errors_by_url[url]
        return list(self.products_by_url.get(url, []))


@pytest.fixture()
def session() -> Session:
    engine = build_engine("sqlite:///:memory:", poolclass=StaticPool)
    TestingSessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    db.add_all(
        [
            Vendor(id="vendor-shop", store_name="Le Petit Shop", website_url=SHOP_URL, api_key="key-shop"),
            Vendor(id="vendor-woo", store_name="Woo Boutique", website_url="https://woo.example.com/shop", api_key="key-woo"),
            Vendor(id="vendor-nourl", store_name="No Website", website_url=None, api_key="key-nourl"),
            Vendor(id="vendor-disabled", store_name="Paused", website_url="https://paused.example.com", api_key="key-paused", sync_enabled=False),
            Vendor(id="vendor-new", store_name="Fresh Signup", website_url="https://new.example.com"),
        ]
    )
    db.commit()

    try:
        yield db
    finally:
        db.close()
        engine.dispose()


@pytest.fixture()
def extraction() -> FakeExtraction:
    return FakeExtraction()


@pytest.fixture()
def lock() -> VendorLock:
    VendorLock._local_leases.clear()
    yield VendorLock(client=None, ttl_seconds=60)
    VendorLock._local_leases.clear()


@pytest.fixture()
def client(session: Session, extraction: FakeExtraction, lock: VendorLock) -> TestClient:
    def _get_db() -> Session:
        return session

    def _get_orchestrator() -> SyncOrchestrator:
        return SyncOrchestrator(session, extraction=extraction, lock=lock)

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_orchestrator] = _get_orchestrator
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
