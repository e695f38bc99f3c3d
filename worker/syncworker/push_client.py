from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable, Mapping
from typing import Any

import httpx

from syncworker.errors import PushError

RETRYABLE_HTTP_STATUSES = {408, 425, 429, 500, 502, 503, 504}

logger = logging.getLogger(__name__)


class PushClient:
    """Server-to-server counterpart of the storefront sync script."""

    def __init__(
        self,
        api_base_url: str,
        vendor_id: str,
        api_key: str,
        timeout_seconds: float = 30.0,
        max_retries: int = 2,
        retry_backoff_seconds: float = 0.5,
        transport: httpx.BaseTransport | None = None,
        on_progress: Callable[[int, int], None] | None = None,
    ) -> None:
        self.vendor_id = vendor_id
        self.max_retries = max(0, max_retries)
        self.retry_backoff_seconds = max(0.0, retry_backoff_seconds)
        self.on_progress = on_progress
        self.client = httpx.Client(
            base_url=api_base_url.rstrip("/"),
            timeout=timeout_seconds,
            headers={"Authorization": f"Bearer {api_key}"},
            transport=transport,
        )

    def __enter__(self) -> PushClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        self.client.close()

    def push(self, products: Iterable[Mapping[str, Any]]) -> dict[str, Any]:
        valid = [dict(product) for product in products if is_pushable(product)]
        if not valid:
            raise PushError("No valid products to sync")

        if self.on_progress:
            self.on_progress(0, len(valid))
        response = self._request("POST", f"/v1/vendors/{self.vendor_id}/sync", json={"products": valid})
        if self.on_progress:
            self.on_progress(len(valid), len(valid))
        return response.json()

    def status(self) -> dict[str, Any]:
        return self._request("GET", f"/v1/vendors/{self.vendor_id}/sync/status").json()

    def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        attempts = self.max_retries + 1
        for attempt in range(attempts):
            try:
                response = self.client.request(method, path, **kwargs)
            except (httpx.TimeoutException, httpx.NetworkError) as exc:
                if attempt >= attempts - 1:
                    raise PushError(f"Request to {path} failed: {exc}") from exc
                self._backoff(attempt, path, exc)
                continue

            if response.status_code in RETRYABLE_HTTP_STATUSES and attempt < attempts - 1:
                self._backoff(attempt, path, f"status {response.status_code}")
                continue
            if response.is_error:
                raise PushError(_error_message(response), status_code=response.status_code)
            return response
        raise PushError(f"Unreachable retry state for {path}")

    def _backoff(self, attempt: int, path: str, reason: object) -> None:
        backoff = self.retry_backoff_seconds * (2**attempt)
        logger.debug("Retrying %s after %s, attempt %s/%s", path, reason, attempt + 1, self.max_retries + 1)
        if backoff > 0:
            time.sleep(backoff)


def is_pushable(product: Mapping[str, Any]) -> bool:
    return bool(product.get("externalId")) and bool(product.get("name")) and product.get("price") is not None


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return f"Sync request failed with HTTP {response.status_code}"
    if isinstance(body, dict) and isinstance(body.get("detail"), dict):
        body = body["detail"]
    if isinstance(body, dict):
        return str(body.get("message") or body.get("detail") or body.get("error") or body)
    return str(body)
