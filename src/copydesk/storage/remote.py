"""Remote durable store client - JSON over HTTP with httpx.

The server exposes one REST-like resource per entity type under
``/api/db/<resource>``:

    list    GET    ?project_id=...
    get     GET    ?id=...            (404 → None)
    create  POST   body = entity
    update  PUT    body = {id, ...partial}
    delete  DELETE ?id=...

Every failure (connect error, timeout, non-2xx, unparseable body) surfaces
as RemoteUnavailable; the sync layer decides what to fall back to.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from ..errors import RemoteUnavailable

logger = logging.getLogger(__name__)

_API_PREFIX = "/api/db"


class RemoteStore:
    """Thin async CRUD client over the remote API."""

    def __init__(
        self,
        base_url: str,
        *,
        api_key: str = "",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            headers = {"Accept": "application/json"}
            if self._api_key:
                headers["Authorization"] = f"Bearer {self._api_key}"
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                headers=headers,
                timeout=httpx.Timeout(self._timeout),
                transport=self._transport,
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    # --- CRUD ---

    async def list(self, resource: str, **params: str) -> list[dict[str, Any]]:
        data = await self._request("GET", resource, params=params)
        if not isinstance(data, list) or not all(isinstance(d, dict) for d in data):
            raise RemoteUnavailable(f"{resource}: expected a list of objects")
        return data

    async def get(self, resource: str, **params: str) -> dict[str, Any] | None:
        try:
            data = await self._request("GET", resource, params=params)
        except RemoteUnavailable as e:
            if e.status_code == 404:
                return None
            raise
        if data is None:
            return None
        if not isinstance(data, dict):
            raise RemoteUnavailable(f"{resource}: expected an object")
        return data

    async def create(self, resource: str, body: dict[str, Any]) -> dict[str, Any]:
        data = await self._request("POST", resource, json=body)
        if not isinstance(data, dict):
            raise RemoteUnavailable(f"{resource}: expected an object")
        return data

    async def update(
        self, resource: str, entity_id: str, partial: dict[str, Any]
    ) -> dict[str, Any] | None:
        """Send a partial update.  The echo is returned but must not be
        trusted for the local mirror (read-after-write is not guaranteed).
        """
        data = await self._request("PUT", resource, json={"id": entity_id, **partial})
        return data if isinstance(data, dict) else None

    async def delete(self, resource: str, **params: str) -> None:
        await self._request("DELETE", resource, params=params)

    # --- Transport ---

    async def _request(
        self,
        method: str,
        resource: str,
        *,
        params: dict[str, str] | None = None,
        json: dict[str, Any] | None = None,
    ) -> Any:
        url = f"{_API_PREFIX}/{resource}"
        try:
            resp = await self._get_client().request(method, url, params=params, json=json)
        except httpx.TimeoutException as e:
            raise RemoteUnavailable(f"{method} {url} timed out after {self._timeout}s") from e
        except httpx.HTTPError as e:
            raise RemoteUnavailable(f"{method} {url} failed: {e}") from e

        if resp.status_code >= 400:
            raise RemoteUnavailable(
                f"{method} {url} returned {resp.status_code}: {_error_detail(resp)}",
                status_code=resp.status_code,
            )
        if resp.status_code == 204 or not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as e:
            raise RemoteUnavailable(f"{method} {url} returned malformed JSON") from e


def _error_detail(resp: httpx.Response) -> str:
    """Pull ``details``/``error`` out of an error body, else the status text."""
    try:
        body = resp.json()
    except ValueError:
        return resp.reason_phrase or "request failed"
    if isinstance(body, dict):
        return str(body.get("details") or body.get("error") or "request failed")
    return "request failed"
