"""
Remote Document Store Client

HTTP client for the multi-device document store a signed-in learner's
corpus lives in. Every path is scoped under the learner's user id.

Routes (relative to the base URL):
    GET    /v1/users/{uid}/documents/{path}          -> 200 document | 404
    PUT    /v1/users/{uid}/documents/{path}?merge=   body: document
    POST   /v1/users/{uid}/query/{collection}        body: {"filters": [...]}
    DELETE /v1/users/{uid}/documents/{path}          (404 is success)
    POST   /v1/users/{uid}/batch                     body: {"writes": [...]}, atomic

Usage:
    async with RemoteDocumentStore(base_url, identity) as store:
        doc = await store.get("settings/general")

No optimistic concurrency: the last writer wins.
"""

from __future__ import annotations

from typing import Any

import httpx
from loguru import logger

from frflow.core.exceptions import BackendUnavailableError, StorageError
from frflow.core.modes import CloudIdentity

from .base import FieldFilter, WriteOp


class RemoteDocumentStore:
    """HTTP client for the remote document store."""

    def __init__(
        self,
        base_url: str,
        identity: CloudIdentity,
        timeout_seconds: float = 30.0,
    ):
        self.base_url = base_url.rstrip("/")
        self.identity = identity
        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={
                "Content-Type": "application/json",
                "Authorization": f"Bearer {identity.id_token}",
            },
            timeout=httpx.Timeout(timeout_seconds),
            follow_redirects=True,
        )

    async def __aenter__(self) -> RemoteDocumentStore:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.client.aclose()

    @property
    def _prefix(self) -> str:
        return f"/v1/users/{self.identity.user_id}"

    def _document_url(self, path: str) -> str:
        return f"{self._prefix}/documents/{path.strip('/')}"

    async def _request(self, method: str, url: str, path: str, **kwargs: Any) -> httpx.Response:
        """
        Send a request, translating transport failures.

        Raises:
            BackendUnavailableError: connection problems, timeouts and 5xx
        """
        try:
            response = await self.client.request(method, url, **kwargs)
        except httpx.RequestError as e:
            logger.error(f"Remote store unreachable ({method} {path}): {e}")
            raise BackendUnavailableError(f"Remote store unreachable: {e}", path=path) from e

        if response.status_code >= 500:
            logger.error(f"Remote store error {response.status_code} on {method} {path}")
            raise BackendUnavailableError(
                f"Remote store error {response.status_code}",
                path=path,
                status_code=response.status_code,
            )
        return response

    @staticmethod
    def _raise_for_status(response: httpx.Response, path: str) -> None:
        if response.is_success:
            return
        try:
            body = response.json()
        except ValueError:
            body = None
        detail = body.get("detail", response.text) if isinstance(body, dict) else response.text
        raise StorageError(
            f"Remote store rejected request ({response.status_code}): {detail}",
            path=path,
            status_code=response.status_code,
        )

    @staticmethod
    def _json(response: httpx.Response, path: str) -> dict[str, Any]:
        """
        Decode a success body.

        Raises:
            StorageError: if the body is not a JSON object (e.g. a proxy page)
        """
        try:
            body = response.json()
        except ValueError as e:
            logger.error(f"Remote store returned a non-JSON body for {path}")
            raise StorageError(
                "Remote store returned an unreadable response",
                path=path,
                status_code=response.status_code,
            ) from e
        if not isinstance(body, dict):
            logger.error(f"Remote store returned {type(body).__name__} instead of an object for {path}")
            raise StorageError(
                "Remote store returned an unexpected response",
                path=path,
                status_code=response.status_code,
            )
        return body

    # =========================================================================
    # DocumentStore
    # =========================================================================

    async def get(self, path: str) -> dict[str, Any] | None:
        response = await self._request("GET", self._document_url(path), path)
        if response.status_code == 404:
            return None
        self._raise_for_status(response, path)
        return self._json(response, path)

    async def set(self, path: str, document: dict[str, Any], merge: bool = False) -> None:
        response = await self._request(
            "PUT",
            self._document_url(path),
            path,
            params={"merge": "true" if merge else "false"},
            json=document,
        )
        self._raise_for_status(response, path)

    async def query(
        self, collection: str, filters: list[FieldFilter] | None = None
    ) -> list[dict[str, Any]]:
        """
        Query a collection on the server.

        Args:
            collection: Collection path (e.g. "review_items")
            filters: Field filters, AND-combined, evaluated server-side

        Returns:
            List of matching documents
        """
        collection = collection.strip("/")
        response = await self._request(
            "POST",
            f"{self._prefix}/query/{collection}",
            collection,
            json={"filters": [f.to_dict() for f in filters or []]},
        )
        self._raise_for_status(response, collection)
        documents = self._json(response, collection).get("documents") or []
        if not isinstance(documents, list):
            raise StorageError("Remote store returned an unexpected response", path=collection)
        documents = [doc for doc in documents if isinstance(doc, dict)]
        logger.debug(f"Fetched {len(documents)} documents from remote {collection}")
        return documents

    async def delete(self, path: str) -> None:
        response = await self._request("DELETE", self._document_url(path), path)
        if response.status_code == 404:
            return
        self._raise_for_status(response, path)

    async def batch_write(self, writes: list[WriteOp]) -> None:
        """Commit all writes as one atomic request."""
        if not writes:
            return
        response = await self._request(
            "POST",
            f"{self._prefix}/batch",
            "batch",
            json={"writes": [w.to_dict() for w in writes]},
        )
        self._raise_for_status(response, "batch")
        logger.debug(f"Committed remote batch of {len(writes)} writes")
