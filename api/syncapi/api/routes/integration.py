from fastapi import APIRouter, Depends, Request
from fastapi.responses import Response
from sqlalchemy.orm import Session

from syncapi.api.deps import require_admin_token
from syncapi.db.session import get_db
from syncapi.schemas.integration import IntegrationOut
from syncapi.services.integration import build_integration, build_public_script

router = APIRouter(prefix="/v1/vendors", tags=["integration"])


@router.get("/{vendor_id}/integration", response_model=IntegrationOut, dependencies=[Depends(require_admin_token)])
def integration(vendor_id: str, request: Request, db: Session = Depends(get_db)) -> IntegrationOut:
    return build_integration(db, vendor_id, request)


@router.get("/{vendor_id}/sync-script.js")
def sync_script(vendor_id: str, request: Request, db: Session = Depends(get_db)) -> Response:
    script = build_public_script(db, vendor_id, request)
    return Response(content=script, media_type="application/javascript", headers={"Cache-Control": "public, max-age=300"})
