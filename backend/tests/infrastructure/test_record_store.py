"""Redis Record Store — tests against a mocked redis.asyncio client.

Tests cover:
    - primitives map to GET/SET/EXISTS/DEL/INCR and coerce results
    - scan uses SCAN MATCH with an escaped prefix and the configured COUNT
    - redis errors (including timeouts) become StoreFailureError with the operation name
    - health_check never raises
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError

from userstore.core.errors import StoreFailureError
from userstore.infrastructure.record_store import RedisRecordStore, escape_glob


@pytest.fixture
def client():
    return AsyncMock()


@pytest.fixture
def store(client):
    return RedisRecordStore(client, scan_batch_size=50)


def test_escape_glob_escapes_metacharacters():
    assert escape_glob("user:") == "user:"
    assert escape_glob("a*b?c[d]e\\f") == "a\\*b\\?c\\[d\\]e\\\\f"


async def test_get_returns_bytes_or_none(store, client):
    client.get.return_value = b'{"id": 1}'
    assert await store.get("user:1") == b'{"id": 1}'
    client.get.return_value = None
    assert await store.get("user:2") is None


async def test_set_coerces_reply_to_bool(store, client):
    client.set.return_value = True
    assert await store.set("user:1", b"{}") is True
    client.set.return_value = None
    assert await store.set("user:1", b"{}") is False
    client.set.assert_awaited_with("user:1", b"{}")


async def test_exists_and_delete_use_counts(store, client):
    client.exists.return_value = 1
    client.delete.return_value = 0
    assert await store.exists("user:1") is True
    assert await store.delete("user:1") is False


async def test_increment_returns_post_increment_value(store, client):
    client.incr.return_value = 8
    assert await store.increment("user:nextId") == 8
    client.incr.assert_awaited_once_with("user:nextId")


async def test_scan_passes_escaped_match_and_count(client):
    seen = {}

    async def scan_iter(match=None, count=None):
        seen.update(match=match, count=count)
        for key in (b"user:1", b"user:nextId", "user:2"):
            yield key

    client.scan_iter = MagicMock(side_effect=scan_iter)
    store = RedisRecordStore(client, scan_batch_size=25)
    keys = [k async for k in store.scan("user:")]
    assert keys == ["user:1", "user:nextId", "user:2"]
    assert seen == {"match": "user:*", "count": 25}


async def test_scan_error_mid_iteration_becomes_store_failure(client):
    async def scan_iter(match=None, count=None):
        yield b"user:1"
        raise RedisConnectionError("reset by peer")

    client.scan_iter = MagicMock(side_effect=scan_iter)
    store = RedisRecordStore(client)
    with pytest.raises(StoreFailureError) as exc_info:
        [k async for k in store.scan("user:")]
    assert exc_info.value.operation == "scan"


@pytest.mark.parametrize("method,args", [
    ("get", ("user:1",)),
    ("set", ("user:1", b"{}")),
    ("exists", ("user:1",)),
    ("delete", ("user:1",)),
    ("increment", ("user:nextId",)),
])
async def test_timeouts_become_store_failure(store, client, method, args):
    redis_method = "incr" if method == "increment" else method
    getattr(client, redis_method).side_effect = RedisTimeoutError("timed out")
    with pytest.raises(StoreFailureError) as exc_info:
        await getattr(store, method)(*args)
    assert exc_info.value.operation == method
    assert exc_info.value.http_status == 500


async def test_health_check_true_on_ping(store, client):
    client.ping.return_value = True
    assert await store.health_check() is True


async def test_health_check_false_on_connection_error(store, client):
    client.ping.side_effect = RedisConnectionError("refused")
    assert await store.health_check() is False


async def test_close_releases_client(store, client):
    await store.close()
    client.aclose.assert_awaited_once()


def test_from_url_configures_timeouts_and_bytes():
    store = RedisRecordStore.from_url(
        "redis://localhost:6379/3", socket_timeout=1.5, connect_timeout=2.5,
    )
    kwargs = store._redis.connection_pool.connection_kwargs
    assert kwargs["socket_timeout"] == 1.5
    assert kwargs["socket_connect_timeout"] == 2.5
    assert kwargs["decode_responses"] is False
    assert kwargs["db"] == 3
