import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from syncworker.errors import SyncInProgressError
from syncworker.locks import LOCK_KEY, VendorLock


class FakeRedis:
    """Just enough of redis-py for SET NX EX leases and the release script."""

    def __init__(self, fail: bool = False) -> None:
        self.store: dict[str, str] = {}
        self.ttls: dict[str, int] = {}
        self.fail = fail

    def _check(self) -> None:
        if self.fail:
            raise RedisConnectionError("Connection refused")

    def set(self, key, value, nx=False, ex=None):
        self._check()
        if nx and key in self.store:
            return None
        self.store[key] = value
        self.ttls[key] = ex
        return True

    def eval(self, script, numkeys, key, token):
        self._check()
        if self.store.get(key) == token:
            del self.store[key]
            return 1
        return 0

    def exists(self, key):
        self._check()
        return int(key in self.store)


def test_local_lease_excludes_second_holder(lock):
    token = lock.acquire("vendor-shop")

    assert token is not None
    assert lock.acquire("vendor-shop") is None
    assert lock.is_held("vendor-shop") is True
    assert VendorLock(client=None, ttl_seconds=60).acquire("vendor-shop") is None

    assert lock.release("vendor-shop", "not-my-token") is False
    assert lock.release("vendor-shop", token) is True
    assert lock.is_held("vendor-shop") is False


def test_leases_are_per_vendor(lock):
    assert lock.acquire("vendor-shop") is not None
    assert lock.acquire("vendor-woo") is not None


def test_hold_releases_on_error(lock):
    with pytest.raises(RuntimeError):
        with lock.hold("vendor-shop"):
            assert lock.is_held("vendor-shop") is True
            raise RuntimeError("boom")

    assert lock.is_held("vendor-shop") is False


def test_hold_refuses_when_leased(lock):
    token = lock.acquire("vendor-shop")

    with pytest.raises(SyncInProgressError):
        with lock.hold("vendor-shop"):
            pass

    assert lock.release("vendor-shop", token) is True


def test_redis_lease_uses_ttl_and_owner_token():
    client = FakeRedis()
    lock = VendorLock(client=client, ttl_seconds=120)
    key = LOCK_KEY.format(vendor_id="vendor-shop")

    token = lock.acquire("vendor-shop")

    assert client.store[key] == token
    assert client.ttls[key] == 120
    assert lock.acquire("vendor-shop") is None
    assert lock.is_held("vendor-shop") is True
    assert lock.release("vendor-shop", "stale-token") is False
    assert lock.release("vendor-shop", token) is True
    assert key not in client.store


def test_redis_errors_fall_back_to_local_leases():
    VendorLock._local_leases.clear()
    lock = VendorLock(client=FakeRedis(fail=True), ttl_seconds=60)
    try:
        with lock.hold("vendor-shop") as token:
            assert token
            assert lock.is_held("vendor-shop") is True
        assert lock.is_held("vendor-shop") is False
    finally:
        VendorLock._local_leases.clear()
