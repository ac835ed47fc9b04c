"""Async client for the PostgREST-style backend.

Wraps ``httpx.AsyncClient`` with the apikey/bearer headers every endpoint
requires and maps transport failures onto ``TransportError`` and
unparseable bodies onto ``DecodeError``.
"""

from __future__ import annotations

import json
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

import httpx
from loguru import logger

from poll_results.lib.rest.errors import DecodeError, TransportError

if TYPE_CHECKING:
    from poll_results.core.config import Settings

_REST_PREFIX = "/rest/v1"
_FUNCTIONS_PREFIX = "/functions/v1"


def eq(value: object) -> str:
    """Build an equality filter value (``eq.<value>``)."""
    return f"eq.{value}"


def in_list(values: Iterable[object]) -> str:
    """Build a membership filter value (``in.(a,b,c)``)."""
    return "in.({})".format(",".join(str(v) for v in values))


class RestClient:
    """Authenticated client for tables, RPCs and edge functions.

    Args:
        base_url: Project URL, without the ``/rest/v1`` suffix.
        api_key: Public API key sent as the ``apikey`` header.
        access_token: Bearer credential; the API key is used when omitted.
        timeout: Request timeout in seconds.
        transport: Optional httpx transport (used by tests).
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        access_token: str | None = None,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers={
                "apikey": api_key,
                "Authorization": f"Bearer {access_token or api_key}",
                "Accept": "application/json",
            },
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> RestClient:
        """Create a client from application settings."""
        return cls(
            base_url=settings.supabase_url,
            api_key=settings.supabase_anon_key,
            access_token=settings.supabase_access_token,
            timeout=settings.http_timeout,
        )

    async def __aenter__(self) -> RestClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    # ------------------------------------------------------------------
    # Tables
    # ------------------------------------------------------------------

    async def select(self, table: str, params: dict[str, Any]) -> list[Any]:
        """GET rows from a table or view.

        Returns:
            The decoded JSON array.

        Raises:
            TransportError: On network failure or non-2xx status.
            DecodeError: If the body is not a JSON array.
        """
        path = f"{_REST_PREFIX}/{table}"
        response = await self._send("GET", path, params=params)
        data = self._decode(response, path)
        if not isinstance(data, list):
            msg = f"Expected a JSON array from {path}, got {type(data).__name__}"
            logger.error(msg)
            raise DecodeError(msg)
        return data

    async def insert(
        self,
        table: str,
        rows: dict[str, Any] | list[dict[str, Any]],
        *,
        on_conflict: str | None = None,
        prefer: str = "return=minimal",
    ) -> Any:
        """POST one or more rows.

        Args:
            table: Target table.
            rows: A row or list of rows.
            on_conflict: Comma-separated unique columns for upserts.
            prefer: Value of the ``Prefer`` header.

        Returns:
            The decoded body when the server returned a representation,
            otherwise None.
        """
        path = f"{_REST_PREFIX}/{table}"
        params = {"on_conflict": on_conflict} if on_conflict else None
        response = await self._send(
            "POST",
            path,
            params=params,
            json_body=rows,
            headers={"Prefer": prefer},
        )
        if "return=representation" not in prefer:
            return None
        return self._decode(response, path)

    async def delete(self, table: str, params: dict[str, Any]) -> None:
        """DELETE rows matching the filter params."""
        await self._send("DELETE", f"{_REST_PREFIX}/{table}", params=params)

    # ------------------------------------------------------------------
    # RPC and functions
    # ------------------------------------------------------------------

    async def rpc(self, function: str, body: dict[str, Any]) -> Any:
        """Call a stored procedure and return its decoded JSON result."""
        path = f"{_REST_PREFIX}/rpc/{function}"
        response = await self._send("POST", path, json_body=body)
        return self._decode(response, path)

    async def invoke(
        self,
        function: str,
        body: dict[str, Any],
        headers: dict[str, str] | None = None,
    ) -> Any:
        """Invoke an edge function and return its decoded JSON result."""
        path = f"{_FUNCTIONS_PREFIX}/{function}"
        response = await self._send("POST", path, json_body=body, headers=headers)
        return self._decode(response, path)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _send(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json_body: Any = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        """Send a request and raise TransportError unless it returned 2xx."""
        try:
            logger.debug("{} {} params={}", method, path, params)
            response = await self._client.request(
                method,
                path,
                params=params,
                json=json_body,
                headers=headers,
            )
            response.raise_for_status()
            return response
        except httpx.TimeoutException as exc:
            msg = f"Timeout calling {method} {path}"
            logger.error(msg)
            raise TransportError(msg) from exc
        except httpx.HTTPStatusError as exc:
            msg = f"HTTP {exc.response.status_code} from {method} {path}"
            logger.error("{}: {}", msg, exc.response.text[:500])
            raise TransportError(msg, status_code=exc.response.status_code) from exc
        except httpx.HTTPError as exc:
            msg = f"HTTP error calling {method} {path}: {exc}"
            logger.error(msg)
            raise TransportError(msg) from exc

    @staticmethod
    def _decode(response: httpx.Response, path: str) -> Any:
        """Parse a JSON body, raising DecodeError when it is not JSON."""
        try:
            return response.json()
        except (json.JSONDecodeError, ValueError) as exc:
            msg = f"Invalid JSON response from {path}"
            logger.error(msg)
            raise DecodeError(msg) from exc
