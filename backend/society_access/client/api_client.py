"""Async HTTP client for the society access API.

Owns the login / refresh / logout lifecycle of one consumer. Sessions are
always rebuilt from a full server payload, never patched. The grant fetch is
a single request: there is no retry, and a failure leaves the store empty
(default-deny) and propagates to the caller.
"""

import dataclasses
import logging
import os
from typing import Any, Iterable, Mapping, Optional

import httpx

from .guard import DEFAULT_LOGIN_PATH, GuardDecision, guard_route
from .session import AuthSession, SessionStore

logger = logging.getLogger(__name__)


class SocietyAccessClient:
    """Client wrapping the auth and role-permission endpoints.

    Configuration via environment variables:
        SOCIETY_ACCESS_API_URL     -- Backend base URL (default: http://localhost:8000)
        SOCIETY_ACCESS_API_TIMEOUT -- Request timeout in seconds (default: 30)
        SOCIETY_ACCESS_LOGIN_PATH  -- Where guards send anonymous visitors (default: /login)
        SOCIETY_ACCESS_UNAUTHORIZED_PATH -- Where guards send logged-in users
                                            lacking a permission (default: the login path)
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        store: Optional[SessionStore] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        login_path: Optional[str] = None,
        unauthorized_path: Optional[str] = None,
    ) -> None:
        self.base_url = base_url or os.environ.get("SOCIETY_ACCESS_API_URL", "http://localhost:8000")
        self.timeout = timeout if timeout is not None else float(
            os.environ.get("SOCIETY_ACCESS_API_TIMEOUT", "30")
        )
        self.login_path = login_path or os.environ.get("SOCIETY_ACCESS_LOGIN_PATH", DEFAULT_LOGIN_PATH)
        self.unauthorized_path = unauthorized_path or os.environ.get("SOCIETY_ACCESS_UNAUTHORIZED_PATH") or None
        self.store = store or SessionStore()
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    def _auth_headers(self) -> dict[str, str]:
        session = self.store.session
        if session is None or not session.token:
            return {}
        return {"Authorization": f"Bearer {session.token}"}

    async def _fetch_session(
        self,
        ticket: int,
        method: str,
        path: str,
        token: Optional[str] = None,
        **kwargs: Any,
    ) -> Optional[AuthSession]:
        client = await self._get_client()
        try:
            resp = await client.request(method, path, **kwargs)
            resp.raise_for_status()
            session = AuthSession.from_login_payload(resp.json())
        except Exception:
            self.store.fail(ticket)
            raise

        if token and not session.token:
            session = dataclasses.replace(session, token=token)

        if not self.store.commit(ticket, session):
            return None
        return session

    async def login(self, username: str, password: str) -> Optional[AuthSession]:
        """Log in and install the resulting session.

        Returns:
            The new session, or None when a logout or a newer login happened
            while the request was in flight (the result is discarded).

        Raises:
            httpx.HTTPError: On transport failure or a non-2xx answer. The
                store is left without a session.
        """
        ticket = self.store.begin()
        logger.info("Logging in", extra={"username": username})
        return await self._fetch_session(
            ticket, "POST", "/api/auth/login",
            json={"username": username, "password": password},
        )

    async def refresh(self) -> Optional[AuthSession]:
        """Rebuild the session from ``/api/auth/me`` with the current token."""
        session = self.store.session
        if session is None or not session.token:
            return None
        ticket = self.store.begin()
        # /me does not reissue the token; keep the one we logged in with.
        return await self._fetch_session(
            ticket, "GET", "/api/auth/me",
            token=session.token,
            headers=self._auth_headers(),
        )

    def logout(self) -> None:
        """Drop the session. Any login still in flight will be discarded."""
        self.store.clear()

    def guard(self, path: str, required_permission: str = "CanView") -> GuardDecision:
        """Route guard against the current session, using this client's redirect targets."""
        return guard_route(
            self.store.session,
            path,
            required_permission=required_permission,
            login_path=self.login_path,
            unauthorized_path=self.unauthorized_path,
        )

    async def check(self, path: str, action_name: str) -> bool:
        """Ask the server's resolver (``/api/auth/check``)."""
        client = await self._get_client()
        resp = await client.get(
            "/api/auth/check",
            params={"path": path, "action": action_name},
            headers=self._auth_headers(),
        )
        resp.raise_for_status()
        return bool(resp.json().get("allowed", False))

    async def get_role_permissions(self, role_id: int) -> list[dict[str, Any]]:
        """Admin grid rows for one role. Maps to GET /api/role-permissions/{role_id}."""
        client = await self._get_client()
        resp = await client.get(f"/api/role-permissions/{role_id}", headers=self._auth_headers())
        resp.raise_for_status()
        return resp.json()["data"]

    async def save_role_permissions(self, grants: Iterable[Mapping[str, Any]]) -> dict[str, Any]:
        """Bulk-replace grants, then rebuild this session from the server.

        Maps to POST /api/role-permissions with ``{"RoleMenuActions": [...]}``.
        """
        client = await self._get_client()
        resp = await client.post(
            "/api/role-permissions",
            json={"RoleMenuActions": [dict(g) for g in grants]},
            headers=self._auth_headers(),
        )
        resp.raise_for_status()
        await self.refresh()
        return resp.json()

    async def aclose(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
