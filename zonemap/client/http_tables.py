"""
http_tables.py — TableService over the Zone Map REST API (httpx).

    async with httpx.AsyncClient(base_url=settings.api_base_url) as http:
        tables = HttpTableService(http)
        events = await tables.select("events", order_by="created_at", descending=True)

Ordering is requested for interface parity but applied by the API itself
(factions and areas by name, events newest first); the routes ignore it.
Write routes are addressed by the match key value: `id` for events and
factions, `slug` for areas.
"""

import logging
from typing import Optional

import httpx

from zonemap.client.interfaces import Record, TableServiceError

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"


class HttpTableService:
    def __init__(self, http: httpx.AsyncClient):
        self._http = http

    @staticmethod
    def _row_path(table: str, match: Record) -> str:
        if len(match) != 1:
            raise ValueError(f"match must name exactly one key, got {sorted(match)}")
        (value,) = match.values()
        return f"{API_PREFIX}/{table}/{value}"

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            response = await self._http.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            raise TableServiceError(f"{method} {path} failed: {exc}") from exc

        if response.status_code >= 400:
            try:
                detail = response.json().get("detail", response.text)
            except ValueError:
                detail = response.text
            raise TableServiceError(f"{method} {path} -> {response.status_code}: {detail}", response.status_code)
        return response

    async def select(
        self,
        table: str,
        *,
        order_by: Optional[str] = None,
        descending: bool = False,
        expand: Optional[str] = None,
    ) -> list[Record]:
        params = {"expand": expand} if expand else None
        response = await self._request("GET", f"{API_PREFIX}/{table}", params=params)
        return response.json()

    async def insert(self, table: str, record: Record) -> Record:
        response = await self._request("POST", f"{API_PREFIX}/{table}", json=record)
        return response.json()

    async def update(self, table: str, patch: Record, match: Record) -> Record:
        response = await self._request("PATCH", self._row_path(table, match), json=patch)
        return response.json()

    async def delete(self, table: str, match: Record) -> None:
        await self._request("DELETE", self._row_path(table, match))
