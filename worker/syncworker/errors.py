from __future__ import annotations


class SyncError(Exception):
    """Base class for failures raised by the sync pipeline."""


class ExtractionError(SyncError):
    def __init__(self, url: str, message: str) -> None:
        super().__init__(f"Extraction failed for {url}: {message}")
        self.url = url
        self.message = message


class VendorNotFoundError(SyncError):
    def __init__(self, vendor_id: str) -> None:
        super().__init__(f"Vendor {vendor_id} not found")
        self.vendor_id = vendor_id


class SyncPreconditionError(SyncError):
    def __init__(self, vendor_id: str, reason: str) -> None:
        super().__init__(f"Vendor {vendor_id} cannot be synced: {reason}")
        self.vendor_id = vendor_id
        self.reason = reason


class SyncInProgressError(SyncError):
    def __init__(self, vendor_id: str) -> None:
        super().__init__(f"A sync run is already in progress for vendor {vendor_id}")
        self.vendor_id = vendor_id


class PushError(SyncError):
    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
