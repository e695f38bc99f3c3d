from fastapi import Request
from sqlalchemy.orm import Session

from syncapi.core.config import get_settings
from syncapi.core.errors import ApiError, AppHTTPException
from syncapi.schemas.integration import IntegrationOut
from syncworker.integration import ensure_api_key, generate_embed_snippet, generate_script
from syncworker.models import Vendor

INSTRUCTIONS = (
    "Paste the embed snippet into every storefront page that lists products. "
    "The script syncs the visible catalog on load and then every hour."
)


def public_base_url(request: Request) -> str:
    configured = get_settings().public_base_url
    if configured:
        return configured.rstrip("/")
    return str(request.base_url).rstrip("/")


def get_vendor_or_404(db: Session, vendor_id: str) -> Vendor:
    vendor = db.get(Vendor, vendor_id)
    if not vendor:
        raise AppHTTPException(
            status_code=404,
            error=ApiError(code="not_found", message="Vendor not found", details={"vendor_id": vendor_id}),
        )
    return vendor


def build_integration(db: Session, vendor_id: str, request: Request) -> IntegrationOut:
    vendor = get_vendor_or_404(db, vendor_id)
    api_key = ensure_api_key(db, vendor)
    base_url = public_base_url(request)
    return IntegrationOut(
        vendor_id=vendor.id,
        api_key=api_key,
        script=generate_script(vendor.id, base_url, api_key),
        embed_snippet=generate_embed_snippet(vendor.id, base_url, api_key),
        instructions=INSTRUCTIONS,
    )


def build_public_script(db: Session, vendor_id: str, request: Request) -> str:
    vendor = get_vendor_or_404(db, vendor_id)
    return generate_script(vendor.id, public_base_url(request), api_key=None)
