# src/taskflow/remote/auth.py

from __future__ import annotations

import logging
import time
from typing import Any, Callable
from urllib.parse import parse_qs, urlencode, urlparse

import httpx

from ..core.errors import AuthError
from ..core.models import Identity
from ..core.ports import AuthEvent, AuthListener, AuthSession, OAuthProvider

logger = logging.getLogger(__name__)


def _auth_message(payload: Any, status: int) -> str:
    if isinstance(payload, dict):
        for key in ("error_description", "msg", "message", "error"):
            val = payload.get(key)
            if val:
                return str(val)
    return f"Authentication failed (HTTP {status})"


def _session_from_payload(payload: dict[str, Any]) -> AuthSession | None:
    token = payload.get("access_token")
    user = payload.get("user") or {}
    if not token or not user.get("id"):
        return None
    expires_at = payload.get("expires_at")
    if expires_at is None and payload.get("expires_in"):
        expires_at = time.time() + float(payload["expires_in"])
    return AuthSession(
        access_token=str(token),
        refresh_token=payload.get("refresh_token"),
        expires_at=float(expires_at) if expires_at is not None else None,
        user=Identity(id=str(user["id"]), email=user.get("email")),
    )


class GoTrueAuth:
    """
    AuthProvider over a GoTrue endpoint (``<base>/auth/v1``).

    Keeps the current session in memory and notifies subscribers of every
    session change.
    """

    def __init__(self, base_url: str, api_key: str, *, client: httpx.AsyncClient) -> None:
        self._base = base_url.rstrip("/") + "/auth/v1"
        self._api_key = api_key
        self._client = client
        self._session: AuthSession | None = None
        self._listeners: list[AuthListener] = []

    @property
    def access_token(self) -> str | None:
        return self._session.access_token if self._session else None

    def on_auth_state_change(self, listener: AuthListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def _emit(self, event: AuthEvent) -> None:
        for listener in list(self._listeners):
            await listener(event, self._session)

    async def _post(self, path: str, payload: dict[str, Any], *, token: str | None = None) -> Any:
        headers = {"apikey": self._api_key, "Content-Type": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        try:
            r = await self._client.post(f"{self._base}{path}", json=payload, headers=headers)
        except httpx.HTTPError as e:
            raise AuthError(f"Auth service unreachable: {e}") from e
        return self._parse(r)

    @staticmethod
    def _parse(r: httpx.Response) -> Any:
        try:
            payload = r.json() if r.content else {}
        except ValueError:
            payload = {}
        if r.status_code >= 400:
            raise AuthError(_auth_message(payload, r.status_code))
        return payload

    async def get_session(self) -> AuthSession | None:
        if self._session and self._session.expires_at and self._session.expires_at <= time.time():
            return await self.refresh_session()
        return self._session

    async def sign_up(self, email: str, password: str) -> AuthSession | None:
        payload = await self._post("/signup", {"email": email, "password": password})
        # With email confirmation enabled the response is the bare user, no session.
        session = _session_from_payload(payload) if isinstance(payload, dict) else None
        if session is not None:
            self._session = session
            await self._emit(AuthEvent.SIGNED_IN)
        logger.info("Signed up %s (session=%s)", email, session is not None)
        return session

    async def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        payload = await self._post("/token?grant_type=password", {"email": email, "password": password})
        session = _session_from_payload(payload)
        if session is None:
            raise AuthError("Sign-in response did not contain a session")
        self._session = session
        logger.info("Signed in user=%s", session.user.id)
        await self._emit(AuthEvent.SIGNED_IN)
        return session

    def sign_in_with_oauth(self, provider: OAuthProvider, redirect_to: str) -> str:
        query = urlencode({"provider": provider.value, "redirect_to": redirect_to})
        return f"{self._base}/authorize?{query}"

    async def exchange_oauth_redirect(self, callback_url: str) -> AuthSession:
        """
        Finish the implicit OAuth flow.

        The provider redirects to ``redirect_to#access_token=...&refresh_token=...``;
        the user record is fetched with the new token.
        """
        parsed = urlparse(callback_url)
        params = {k: v[0] for k, v in parse_qs(parsed.fragment or parsed.query).items() if v}
        if "error" in params:
            raise AuthError(params.get("error_description") or params["error"])
        token = params.get("access_token")
        if not token:
            raise AuthError("Callback URL does not contain an access token")

        try:
            r = await self._client.get(
                f"{self._base}/user",
                headers={"apikey": self._api_key, "Authorization": f"Bearer {token}"},
            )
        except httpx.HTTPError as e:
            raise AuthError(f"Auth service unreachable: {e}") from e
        user = self._parse(r)

        session = _session_from_payload(
            {
                "access_token": token,
                "refresh_token": params.get("refresh_token"),
                "expires_in": params.get("expires_in"),
                "user": user,
            }
        )
        if session is None:
            raise AuthError("Could not read the signed-in user")
        self._session = session
        await self._emit(AuthEvent.SIGNED_IN)
        return session

    async def refresh_session(self) -> AuthSession | None:
        if not self._session or not self._session.refresh_token:
            return self._session
        payload = await self._post(
            "/token?grant_type=refresh_token", {"refresh_token": self._session.refresh_token}
        )
        session = _session_from_payload(payload)
        if session is None:
            raise AuthError("Refresh response did not contain a session")
        self._session = session
        await self._emit(AuthEvent.TOKEN_REFRESHED)
        return session

    async def sign_out(self) -> None:
        token = self.access_token
        self._session = None
        try:
            if token:
                await self._post("/logout", {}, token=token)
        finally:
            await self._emit(AuthEvent.SIGNED_OUT)
