from __future__ import annotations

import logging
import threading
import time
from collections.abc import Iterator
from contextlib import contextmanager
from uuid import uuid4

from redis import Redis
from redis.exceptions import RedisError

from syncworker.config import get_settings
from syncworker.errors import SyncInProgressError

logger = logging.getLogger(__name__)

LOCK_KEY = "vendorsync:lock:{vendor_id}"

# Delete only when the caller still owns the lease.
RELEASE_SCRIPT = """
if redis.call('GET', KEYS[1]) == ARGV[1] then
    return redis.call('DEL', KEYS[1])
end
return 0
"""


class VendorLock:
    """Token-owned per-vendor lease.

    Backed by Redis ``SET NX EX`` when a client is available; otherwise leases
    live in a process-wide table, which only excludes runs in this process.
    """

    _local_leases: dict[str, tuple[str, float]] = {}
    _local_guard = threading.Lock()

    def __init__(self, client: Redis | None = None, ttl_seconds: int | None = None) -> None:
        self._redis = client
        self.ttl_seconds = ttl_seconds or get_settings().lock_ttl_seconds

    @classmethod
    def from_settings(cls) -> VendorLock:
        settings = get_settings()
        client: Redis | None = None
        try:
            client = Redis.from_url(settings.redis_url, decode_responses=True, socket_connect_timeout=2)
            client.ping()
        except RedisError as exc:
            logger.warning("Redis unavailable at %s, using in-process vendor locks: %s", settings.redis_url, exc)
            client = None
        return cls(client=client, ttl_seconds=settings.lock_ttl_seconds)

    def acquire(self, vendor_id: str) -> str | None:
        token = uuid4().hex
        key = LOCK_KEY.format(vendor_id=vendor_id)
        if self._redis is not None:
            try:
                if self._redis.set(key, token, nx=True, ex=self.ttl_seconds):
                    logger.debug("Acquired lease for vendor %s", vendor_id)
                    return token
                return None
            except RedisError as exc:
                logger.warning("Redis lease acquire failed for %s, falling back to local: %s", vendor_id, exc)

        now = time.monotonic()
        with self._local_guard:
            held = self._local_leases.get(key)
            if held is not None and held[1] > now:
                return None
            self._local_leases[key] = (token, now + self.ttl_seconds)
        return token

    def release(self, vendor_id: str, token: str) -> bool:
        key = LOCK_KEY.format(vendor_id=vendor_id)
        if self._redis is not None:
            try:
                released = bool(self._redis.eval(RELEASE_SCRIPT, 1, key, token))
                if released:
                    return True
            except RedisError as exc:
                logger.warning("Redis lease release failed for %s: %s", vendor_id, exc)

        with self._local_guard:
            held = self._local_leases.get(key)
            if held is not None and held[0] == token:
                del self._local_leases[key]
                return True
        return False

    def is_held(self, vendor_id: str) -> bool:
        key = LOCK_KEY.format(vendor_id=vendor_id)
        if self._redis is not None:
            try:
                if self._redis.exists(key):
                    return True
            except RedisError as exc:
                logger.warning("Redis lease lookup failed for %s: %s", vendor_id, exc)
        with self._local_guard:
            held = self._local_leases.get(key)
            return held is not None and held[1] > time.monotonic()

    @contextmanager
    def hold(self, vendor_id: str) -> Iterator[str]:
        token = self.acquire(vendor_id)
        if token is None:
            raise SyncInProgressError(vendor_id)
        try:
            yield token
        finally:
            if not self.release(vendor_id, token):
                logger.warning("Lease for vendor %s expired before release", vendor_id)
