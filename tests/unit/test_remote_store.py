"""
Unit tests for the remote document store client.
"""

import httpx
import pytest
import pytest_asyncio
from httpx import Request, Response

from frflow.core.exceptions import BackendUnavailableError, StorageError
from frflow.core.modes import CloudIdentity
from frflow.storage.base import FieldFilter, WriteOp
from frflow.storage.remote_store import RemoteDocumentStore

BASE_URL = "http://sync.test"


@pytest_asyncio.fixture
async def store():
    """Remote store scoped to user u1."""
    store = RemoteDocumentStore(BASE_URL, CloudIdentity(user_id="u1", id_token="token-1"))
    yield store
    await store.close()


class RecordingTransport:
    """Replacement for client.request that records calls and replays responses."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    async def __call__(self, method, url, **kwargs):
        self.calls.append((method, url, kwargs))
        status, body = self.responses.pop(0)
        request = Request(method, BASE_URL + url)
        if isinstance(body, str):
            return Response(status, text=body, request=request)
        return Response(status, json=body, request=request)


class TestRemoteDocumentStore:
    """Tests for RemoteDocumentStore routes and error mapping."""

    def test_bearer_header(self, store):
        assert store.client.headers["Authorization"] == "Bearer token-1"

    @pytest.mark.asyncio
    async def test_get(self, store, monkeypatch):
        transport = RecordingTransport((200, {"id": "l1"}))
        monkeypatch.setattr(store.client, "request", transport)

        assert await store.get("lessons/l1") == {"id": "l1"}
        method, url, _ = transport.calls[0]
        assert method == "GET"
        assert url == "/v1/users/u1/documents/lessons/l1"

    @pytest.mark.asyncio
    async def test_get_missing(self, store, monkeypatch):
        monkeypatch.setattr(store.client, "request", RecordingTransport((404, {"detail": "not found"})))
        assert await store.get("lessons/nope") is None

    @pytest.mark.asyncio
    async def test_set_sends_merge_flag(self, store, monkeypatch):
        transport = RecordingTransport((200, {}))
        monkeypatch.setattr(store.client, "request", transport)

        await store.set("review_items/a", {"srs_level": 2}, merge=True)

        method, url, kwargs = transport.calls[0]
        assert method == "PUT"
        assert kwargs["params"] == {"merge": "true"}
        assert kwargs["json"] == {"srs_level": 2}

    @pytest.mark.asyncio
    async def test_query(self, store, monkeypatch):
        transport = RecordingTransport((200, {"documents": [{"id": "a"}, {"id": "b"}]}))
        monkeypatch.setattr(store.client, "request", transport)

        documents = await store.query("review_items", [FieldFilter("groupId", "==", "g__A1")])

        assert [doc["id"] for doc in documents] == ["a", "b"]
        method, url, kwargs = transport.calls[0]
        assert (method, url) == ("POST", "/v1/users/u1/query/review_items")
        assert kwargs["json"] == {"filters": [{"field": "groupId", "op": "==", "value": "g__A1"}]}

    @pytest.mark.asyncio
    async def test_delete_missing_is_ok(self, store, monkeypatch):
        monkeypatch.setattr(store.client, "request", RecordingTransport((404, {})))
        await store.delete("review_items/gone")

    @pytest.mark.asyncio
    async def test_batch_write(self, store, monkeypatch):
        transport = RecordingTransport((200, {}))
        monkeypatch.setattr(store.client, "request", transport)

        await store.batch_write([WriteOp("review_items/a", {"id": "a"}, merge=True)])

        _, url, kwargs = transport.calls[0]
        assert url == "/v1/users/u1/batch"
        assert kwargs["json"] == {"writes": [{"path": "review_items/a", "document": {"id": "a"}, "merge": True}]}

    @pytest.mark.asyncio
    async def test_empty_batch_skips_request(self, store, monkeypatch):
        transport = RecordingTransport()
        monkeypatch.setattr(store.client, "request", transport)
        await store.batch_write([])
        assert transport.calls == []

    @pytest.mark.asyncio
    async def test_server_error_is_unavailable(self, store, monkeypatch):
        monkeypatch.setattr(store.client, "request", RecordingTransport((503, {"detail": "down"})))
        with pytest.raises(BackendUnavailableError) as exc_info:
            await store.get("lessons/l1")
        assert exc_info.value.status_code == 503

    @pytest.mark.asyncio
    async def test_connection_error_is_unavailable(self, store, monkeypatch):
        async def mock_request(method, url, **kwargs):
            raise httpx.ConnectError("refused")

        monkeypatch.setattr(store.client, "request", mock_request)
        with pytest.raises(BackendUnavailableError):
            await store.query("review_items")

    @pytest.mark.asyncio
    async def test_client_error_is_storage_error(self, store, monkeypatch):
        monkeypatch.setattr(store.client, "request", RecordingTransport((403, {"detail": "forbidden"})))
        with pytest.raises(StorageError) as exc_info:
            await store.set("lessons/l1", {"id": "l1"})

        assert not isinstance(exc_info.value, BackendUnavailableError)
        assert exc_info.value.status_code == 403
        assert "forbidden" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_html_body_on_get_is_storage_error(self, store, monkeypatch):
        monkeypatch.setattr(store.client, "request", RecordingTransport((200, "<html>portal</html>")))
        with pytest.raises(StorageError) as exc_info:
            await store.get("settings/user")

        assert not isinstance(exc_info.value, BackendUnavailableError)
        assert exc_info.value.path == "settings/user"

    @pytest.mark.asyncio
    async def test_html_body_on_query_is_storage_error(self, store, monkeypatch):
        monkeypatch.setattr(store.client, "request", RecordingTransport((200, "<html>portal</html>")))
        with pytest.raises(StorageError, match="unreadable"):
            await store.query("review_items")

    @pytest.mark.asyncio
    async def test_list_body_on_get_is_storage_error(self, store, monkeypatch):
        monkeypatch.setattr(store.client, "request", RecordingTransport((200, [{"id": "l1"}])))
        with pytest.raises(StorageError, match="unexpected"):
            await store.get("lessons/l1")

    @pytest.mark.asyncio
    async def test_query_documents_not_a_list(self, store, monkeypatch):
        monkeypatch.setattr(store.client, "request", RecordingTransport((200, {"documents": {"id": "x"}})))
        with pytest.raises(StorageError):
            await store.query("review_items")

    @pytest.mark.asyncio
    async def test_html_error_page_keeps_status(self, store, monkeypatch):
        monkeypatch.setattr(store.client, "request", RecordingTransport((403, "<html>denied</html>")))
        with pytest.raises(StorageError) as exc_info:
            await store.delete("lessons/l1")

        assert exc_info.value.status_code == 403
        assert "denied" in str(exc_info.value)
