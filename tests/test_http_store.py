import asyncio
from datetime import datetime, timedelta, timezone

import httpx
import pytest

from conftest import make_conversation
from chatdesk.client import ConversationCache, HttpConversationStore
from chatdesk.conversation import Message
from chatdesk.errors import NotFoundError, StorageIOError
from chatdesk.main import app

T1 = datetime(2024, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


def _store() -> HttpConversationStore:
    transport = httpx.ASGITransport(app=app)
    client = httpx.AsyncClient(transport=transport, base_url="http://sidecar")
    return HttpConversationStore("http://sidecar/api", client=client)


def test_http_store_round_trip(data_dir):
    async def scenario():
        store = _store()
        conv = make_conversation(T1, title="Over the wire")
        await store.save("a.json", conv)
        await store.save("a.json", conv)
        names = await store.list_filenames()
        loaded = await store.get("a.json")
        await store.delete("a.json")
        await store.delete("a.json")
        return conv, names, loaded, await store.list_filenames()

    conv, names, loaded, after = asyncio.run(scenario())
    assert names == ["a.json"]
    assert loaded == conv
    assert after == []


def test_http_store_maps_errors(data_dir):
    async def scenario():
        store = _store()
        with pytest.raises(NotFoundError):
            await store.get("missing.json")
        with pytest.raises(StorageIOError):
            await store.save("notes.txt", make_conversation(T1))

    asyncio.run(scenario())


def test_unreachable_sidecar_is_io_error():
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    async def scenario():
        client = httpx.AsyncClient(transport=httpx.MockTransport(refuse))
        store = HttpConversationStore("http://127.0.0.1:1/api", client=client)
        with pytest.raises(StorageIOError):
            await store.list_filenames()

    asyncio.run(scenario())


def test_cache_over_http(data_dir):
    now = {"t": T1}

    async def scenario():
        store = _store()
        cache = ConversationCache(store, clock=lambda: now["t"])
        conv = cache.create(Message(role="system", content="You are X"), "m1")
        now["t"] = T1 + timedelta(seconds=30)
        cache.append(conv.id, Message(role="user", content="Hello"))
        cache.append(conv.id, Message(role="assistant", content="Hi there"))
        await cache.wait_idle()

        fresh = ConversationCache(store)
        await fresh.load()
        cleared = await fresh.clear_all()
        return conv, fresh, cleared, await store.list_filenames()

    conv, fresh, cleared, remaining = asyncio.run(scenario())
    assert cleared
    assert fresh.conversations == []
    assert remaining == []
    assert conv.title == "Hello"
