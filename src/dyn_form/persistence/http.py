"""
HTTP persistence collaborator.

Talks to a generic REST/JSON item service:

    POST   /lists/{entity}/items                    -> {"id": ...}
    GET    /lists/{entity}/items/{id}               -> item
    PATCH  /lists/{entity}/items/{id}
    DELETE /lists/{entity}/items/{id}
    GET    /lists/{entity}/items?{column}={value}   -> [item, ...]
    POST   /lists/{entity}/items/{id}/attachments   (multipart "file")
"""

import logging
from typing import Any

import httpx

from dyn_form.config import get_config
from dyn_form.exceptions import PersistenceError
from dyn_form.models.form_state import FileHandle

logger = logging.getLogger("dyn-form.persistence")


class HttpCollaborator:
    """
    PersistenceCollaborator backed by ``httpx.AsyncClient``.

    Usage:
        collaborator = HttpCollaborator("http://localhost:9120")
        item_id = await collaborator.create("Requests", {"title": "x"})
    """

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        config = get_config()
        self.base_url = (base_url or config.persistence_url).rstrip("/")
        self.timeout = timeout if timeout is not None else config.persistence_timeout
        self._transport = transport

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url, timeout=self.timeout, transport=self._transport
            ) as client:
                response = await client.request(method, path, **kwargs)
                response.raise_for_status()
                return response
        except httpx.HTTPStatusError as e:
            logger.error(f"{method} {path} failed with status {e.response.status_code}")
            raise PersistenceError(
                f"{method} {path} returned {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            logger.error(f"{method} {path} failed: {type(e).__name__}: {e}")
            raise PersistenceError(f"{method} {path} failed: {e}") from e

    @staticmethod
    def _json(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise PersistenceError(f"Invalid JSON from {response.request.url}") from e

    async def create(self, entity: str, fields: dict[str, Any]) -> int:
        response = await self._request("POST", f"/lists/{entity}/items", json=fields)
        body = self._json(response)
        item_id = body.get("id", body.get("ID")) if isinstance(body, dict) else None
        if item_id is None:
            raise PersistenceError(f"Create in '{entity}' returned no id")
        return item_id

    async def update(self, entity: str, item_id: Any, fields: dict[str, Any]) -> None:
        await self._request("PATCH", f"/lists/{entity}/items/{item_id}", json=fields)

    async def fetch(self, entity: str, item_id: Any) -> dict[str, Any]:
        response = await self._request("GET", f"/lists/{entity}/items/{item_id}")
        return self._json(response)

    async def delete(self, entity: str, item_id: Any) -> None:
        await self._request("DELETE", f"/lists/{entity}/items/{item_id}")

    async def list_children(
        self, entity: str, parent_entity: str, parent_id: Any
    ) -> list[dict[str, Any]]:
        response = await self._request(
            "GET", f"/lists/{entity}/items", params={parent_entity: str(parent_id)}
        )
        return self._json(response)

    async def list_items(self, entity: str) -> list[dict[str, Any]]:
        response = await self._request("GET", f"/lists/{entity}/items")
        return self._json(response)

    async def attach(self, entity: str, item_id: Any, file: FileHandle) -> None:
        await self._request(
            "POST",
            f"/lists/{entity}/items/{item_id}/attachments",
            files={"file": (file.name, file.content, file.content_type)},
        )
