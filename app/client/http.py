"""
HTTP client for the guest list API used by the door console.

Error envelopes are mapped back onto the ledger exception classes by
error_code, so callers handle the same errors as the server-side services.
"""

import logging
from datetime import date
from typing import Any, Dict, Optional

import httpx

from app.core.errors import StoreError, error_from_code

logger = logging.getLogger(__name__)


class DoorClient:
    """Async client for the staff endpoints"""

    def __init__(
        self,
        base_url: str,
        session_token: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url
        self.session_token = session_token
        self.timeout = timeout
        self.transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self.transport,
                headers={"Authorization": f"Bearer {self.session_token}"},
            )
        return self._client

    async def close(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        """Send a request and return the envelope's data, raising ledger errors"""
        try:
            client = await self._get_client()
            response = await client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"Error calling guest list API {method} {path}: {e}")
            raise StoreError("Could not reach the guest list server") from e

        try:
            payload = response.json()
        except ValueError:
            payload = None

        if response.is_error or not isinstance(payload, dict) or not payload.get("success"):
            if not isinstance(payload, dict):
                raise StoreError(f"Unexpected response from guest list API ({response.status_code})")
            raise error_from_code(
                payload.get("error_code"),
                payload.get("message") or f"Request failed ({response.status_code})",
                payload.get("details"),
            )

        return payload.get("data")

    async def list_guests(
        self,
        venue_id: int,
        on_date: Optional[date] = None,
        selector: str = "all",
        sort: str = "created",
    ) -> Dict[str, Any]:
        params = {"selector": selector, "sort": sort}
        if on_date is not None:
            params["date"] = on_date.isoformat()
        return await self._request("GET", f"/staff/venues/{venue_id}/guests", params=params)

    async def check_in(self, guest_id: int) -> Dict[str, Any]:
        return await self._request("POST", f"/staff/guests/{guest_id}/check-in")

    async def undo_check_in(self, guest_id: int) -> Dict[str, Any]:
        return await self._request("POST", f"/staff/guests/{guest_id}/undo-check-in")

    async def delete_guest(self, guest_id: int) -> Dict[str, Any]:
        return await self._request("DELETE", f"/staff/guests/{guest_id}")
