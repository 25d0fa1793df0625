"""Async HTTP client for a hosted Supabase project (PostgREST + GoTrue)."""

import logging
from typing import Any

import httpx

from portfolio_dashboard.config import REQUEST_TIMEOUT, require_supabase_settings
from portfolio_dashboard.errors import SupabaseError

logger = logging.getLogger(__name__)


def _error_from_response(resp: httpx.Response) -> SupabaseError:
    """Build a SupabaseError from a PostgREST or GoTrue error body."""
    try:
        body = resp.json()
    except ValueError:
        body = {}
    if not isinstance(body, dict):
        body = {}
    message = (
        body.get("message")
        or body.get("error_description")
        or body.get("msg")
        or body.get("error")
        or resp.reason_phrase
        or f"HTTP {resp.status_code}"
    )
    code = body.get("code") or body.get("error_code")
    return SupabaseError(str(message), status_code=resp.status_code, code=code and str(code))


class SupabaseClient:
    """Thin wrapper over the Supabase REST and auth endpoints.

    Every request carries the project's public key; data requests also carry
    the caller's access token so row-level security applies on the server.
    """

    def __init__(
        self,
        url: str,
        anon_key: str,
        timeout: float = REQUEST_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._anon_key = anon_key
        self._http = httpx.AsyncClient(
            base_url=url.rstrip("/"),
            timeout=timeout,
            transport=transport,
            headers={"apikey": anon_key},
        )

    def _auth_headers(self, access_token: str | None) -> dict[str, str]:
        return {"Authorization": f"Bearer {access_token or self._anon_key}"}

    async def _request(
        self,
        method: str,
        path: str,
        access_token: str | None = None,
        **kwargs: Any,
    ) -> Any:
        headers = {**self._auth_headers(access_token), **kwargs.pop("headers", {})}
        try:
            resp = await self._http.request(method, path, headers=headers, **kwargs)
        except httpx.HTTPError as e:
            raise SupabaseError(f"Request to {path} failed: {e}") from e
        if resp.status_code >= 400:
            raise _error_from_response(resp)
        if not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as e:
            raise SupabaseError(
                f"Invalid JSON from {path}", status_code=resp.status_code
            ) from e

    # --- PostgREST ---

    async def select(
        self,
        table: str,
        access_token: str,
        columns: str = "*",
        filters: dict[str, Any] | None = None,
        order: str | None = None,
    ) -> list[dict[str, Any]]:
        """Run a filtered select. Filters are equality matches ANDed together.

        `order` uses PostgREST syntax, e.g. "created_at.desc".
        """
        params: dict[str, str] = {"select": columns}
        for column, value in (filters or {}).items():
            params[column] = f"eq.{value}"
        if order:
            params["order"] = order
        data = await self._request(
            "GET", f"/rest/v1/{table}", access_token, params=params
        )
        if data is None:
            return []
        if not isinstance(data, list):
            raise SupabaseError(f"Unexpected payload from {table}: expected a list")
        return data

    async def rpc(
        self, function: str, access_token: str, params: dict[str, Any] | None = None
    ) -> Any:
        return await self._request(
            "POST", f"/rest/v1/rpc/{function}", access_token, json=params or {}
        )

    # --- GoTrue ---

    async def sign_in_with_password(self, email: str, password: str) -> dict[str, Any]:
        return await self._request(
            "POST",
            "/auth/v1/token",
            params={"grant_type": "password"},
            json={"email": email, "password": password},
        )

    async def sign_up(self, email: str, password: str) -> dict[str, Any]:
        return await self._request(
            "POST", "/auth/v1/signup", json={"email": email, "password": password}
        )

    async def refresh_session(self, refresh_token: str) -> dict[str, Any]:
        return await self._request(
            "POST",
            "/auth/v1/token",
            params={"grant_type": "refresh_token"},
            json={"refresh_token": refresh_token},
        )

    async def get_user(self, access_token: str) -> dict[str, Any]:
        return await self._request("GET", "/auth/v1/user", access_token)

    async def sign_out(self, access_token: str) -> None:
        await self._request("POST", "/auth/v1/logout", access_token)

    async def aclose(self) -> None:
        await self._http.aclose()


_client: SupabaseClient | None = None


def get_supabase_client() -> SupabaseClient:
    """Return the process-wide client, creating it on first use."""
    global _client
    if _client is None:
        url, anon_key = require_supabase_settings()
        _client = SupabaseClient(url, anon_key)
        logger.info(f"Supabase client configured for {url}")
    return _client


async def close_supabase_client() -> None:
    global _client
    if _client is not None:
        await _client.aclose()
        _client = None
