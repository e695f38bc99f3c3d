from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PushRequest(BaseModel):
    products: list[Any]


class RecordResultOut(CamelModel):
    external_id: str | None = None
    status: str
    product_id: str | None = None
    message: str | None = None


class RecordErrorOut(CamelModel):
    external_id: str
    message: str


class SyncRunOut(CamelModel):
    vendor_id: str
    run_id: str | None = None
    source: str
    status: str
    products_found: int = 0
    products_created: int = 0
    products_updated: int = 0
    products_failed: int = 0
    errors: list[RecordErrorOut] = Field(default_factory=list)
    error: str | None = None
    started_at: datetime | None = None
    finished_at: datetime | None = None


class PushResponse(SyncRunOut):
    results: list[RecordResultOut] = Field(default_factory=list)


class AutoSyncRequest(CamelModel):
    scroll_to_load: bool = True
    max_products: int | None = Field(default=None, ge=1, le=1000)


class SyncStatusOut(CamelModel):
    vendor_id: str
    status: str
    last_synced_at: datetime | None = None
    product_count: int
    latest_run: SyncRunOut | None = None


class CronSyncOut(CamelModel):
    total: int
    succeeded: int
    failed: int
    results: list[SyncRunOut]
