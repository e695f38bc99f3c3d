import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from syncapi.api.routes import cron, integration, sync
from syncapi.core.config import get_settings
from syncapi.core.errors import sync_error_to_http
from syncapi.db.session import engine
from syncworker.errors import SyncError
from syncworker.models import Base

logger = logging.getLogger(__name__)

settings = get_settings()
app = FastAPI(title=settings.app_name)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
def startup() -> None:
    if settings.env == "dev":
        Base.metadata.create_all(bind=engine)


@app.exception_handler(RequestValidationError)
def request_validation_exception_handler(_: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(status_code=422, content={"code": "validation_error", "message": "Invalid request", "details": exc.errors()})


@app.exception_handler(SyncError)
def sync_exception_handler(request: Request, exc: SyncError) -> JSONResponse:
    http_exc = sync_error_to_http(exc)
    logger.warning("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=http_exc.status_code, content={"detail": http_exc.detail})


app.include_router(sync.router)
app.include_router(cron.router)
app.include_router(integration.router)


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}
