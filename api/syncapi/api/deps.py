from functools import lru_cache

from fastapi import Depends, Header, Path
from sqlalchemy import select
from sqlalchemy.orm import Session

from syncapi.core.config import get_settings
from syncapi.core.errors import ApiError, AppHTTPException
from syncapi.db.session import get_db
from syncworker.locks import VendorLock
from syncworker.models import Vendor
from syncworker.orchestrator import SyncOrchestrator


def _bearer_token(authorization: str | None) -> str | None:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def require_admin_token(x_admin_token: str | None = Header(default=None)) -> None:
    settings = get_settings()
    if x_admin_token != settings.admin_token:
        raise AppHTTPException(status_code=401, error=ApiError(code="unauthorized", message="Invalid admin token"))


def require_cron_secret(authorization: str | None = Header(default=None)) -> None:
    settings = get_settings()
    token = _bearer_token(authorization)
    if not settings.cron_secret or token != settings.cron_secret:
        raise AppHTTPException(status_code=401, error=ApiError(code="unauthorized", message="Invalid cron secret"))


def require_vendor(
    vendor_id: str = Path(...),
    authorization: str | None = Header(default=None),
    db: Session = Depends(get_db),
) -> Vendor:
    token = _bearer_token(authorization)
    if not token:
        raise AppHTTPException(status_code=401, error=ApiError(code="unauthorized", message="Missing API key"))

    vendor = db.execute(select(Vendor).where(Vendor.api_key == token)).scalar_one_or_none()
    if vendor is None:
        raise AppHTTPException(status_code=401, error=ApiError(code="unauthorized", message="Invalid API key"))
    if vendor.id != vendor_id:
        raise AppHTTPException(
            status_code=403,
            error=ApiError(code="forbidden", message="API key does not belong to this vendor"),
        )
    if not vendor.sync_enabled:
        raise AppHTTPException(
            status_code=403,
            error=ApiError(code="sync_disabled", message="Sync is disabled for this vendor"),
        )
    return vendor


@lru_cache
def get_vendor_lock() -> VendorLock:
    """One lease client per process; requests share its Redis connection pool."""
    return VendorLock.from_settings()


def get_orchestrator(
    db: Session = Depends(get_db),
    lock: VendorLock = Depends(get_vendor_lock),
) -> SyncOrchestrator:
    return SyncOrchestrator(db, lock=lock)
