"""
Minimal Supabase PostgREST client used by the tenant directory and the
conversation store.

Only the three calls the relay needs are implemented: select rows matching
equality filters, insert a row, and update rows by id.
"""

import logging
from typing import Any, Dict, List, Optional

import aiohttp
from aiohttp import ClientTimeout

from voice_relay.config.constants import LOGGER_NAME
from voice_relay.exceptions import ProviderError

logger = logging.getLogger(LOGGER_NAME)

REQUEST_TIMEOUT = 10  # seconds


class SupabaseRestClient:
    """Async client for the Supabase REST (PostgREST) endpoint."""

    def __init__(self, url: str, service_role_key: str, timeout: float = REQUEST_TIMEOUT):
        self.base_url = url.rstrip("/") + "/rest/v1"
        self.timeout = timeout
        self._headers = {
            "apikey": service_role_key,
            "Authorization": f"Bearer {service_role_key}",
            "Content-Type": "application/json",
        }

    async def _request(
        self,
        method: str,
        table: str,
        params: Optional[Dict[str, str]] = None,
        json_body: Optional[Dict[str, Any]] = None,
        prefer: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        headers = dict(self._headers)
        if prefer:
            headers["Prefer"] = prefer
        url = f"{self.base_url}/{table}"

        async with aiohttp.ClientSession(timeout=ClientTimeout(total=self.timeout)) as http:
            async with http.request(method, url, params=params, json=json_body, headers=headers) as response:
                if response.status >= 400:
                    body = await response.text()
                    raise ProviderError("supabase", f"{method} {table} failed: {body}", response.status)
                if response.status == 204:
                    return []
                return await response.json()

    async def select(self, table: str, filters: Dict[str, Any], columns: str = "*") -> List[Dict[str, Any]]:
        params = {"select": columns}
        for column, value in filters.items():
            params[column] = f"eq.{str(value).lower() if isinstance(value, bool) else value}"
        return await self._request("GET", table, params=params)

    async def insert(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        rows = await self._request("POST", table, json_body=row, prefer="return=representation")
        if not rows:
            raise ProviderError("supabase", f"insert into {table} returned no row")
        return rows[0]

    async def update(self, table: str, row_id: str, row: Dict[str, Any]) -> None:
        await self._request("PATCH", table, params={"id": f"eq.{row_id}"}, json_body=row, prefer="return=minimal")
