from dataclasses import dataclass
from typing import Any

from fastapi import HTTPException

from syncworker.errors import (
    ExtractionError,
    PushError,
    SyncError,
    SyncInProgressError,
    SyncPreconditionError,
    VendorNotFoundError,
)


@dataclass
class ApiError:
    code: str
    message: str
    details: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "code": self.code,
            "message": self.message,
        }
        if self.details:
            payload["details"] = self.details
        return payload


class AppHTTPException(HTTPException):
    def __init__(self, status_code: int, error: ApiError):
        super().__init__(status_code=status_code, detail=error.to_dict())


def sync_error_to_http(exc: SyncError) -> AppHTTPException:
    if isinstance(exc, VendorNotFoundError):
        return AppHTTPException(404, ApiError(code="not_found", message=str(exc), details={"vendor_id": exc.vendor_id}))
    if isinstance(exc, SyncPreconditionError):
        return AppHTTPException(
            400,
            ApiError(code="sync_precondition_failed", message=exc.reason, details={"vendor_id": exc.vendor_id}),
        )
    if isinstance(exc, SyncInProgressError):
        return AppHTTPException(409, ApiError(code="sync_in_progress", message=str(exc), details={"vendor_id": exc.vendor_id}))
    if isinstance(exc, ExtractionError):
        return AppHTTPException(502, ApiError(code="extraction_failed", message=exc.message, details={"url": exc.url}))
    if isinstance(exc, PushError):
        return AppHTTPException(502, ApiError(code="push_failed", message=str(exc)))
    return AppHTTPException(500, ApiError(code="sync_error", message=str(exc)))
