# src/taskflow/sync/session.py

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable

from ..core.errors import AuthError, RemoteError, friendly_error_message
from ..core.models import Identity
from ..core.ports import AuthEvent, AuthProvider, AuthSession, OAuthProvider

logger = logging.getLogger(__name__)

IdentityListener = Callable[[Identity | None], Awaitable[None]]


class SessionManager:
    """
    Tracks the signed-in identity.

    Listeners are awaited whenever the identity changes (login, logout, switch
    to another user). A token refresh for the same user only swaps the stored
    session. Auth failures never escape: they land in ``error`` and the call
    returns a falsy value.
    """

    def __init__(self, auth: AuthProvider) -> None:
        self._auth = auth
        self._session: AuthSession | None = None
        self._listeners: list[IdentityListener] = []
        self._unsubscribe: Callable[[], None] | None = None
        self.error: str | None = None

    @property
    def identity(self) -> Identity | None:
        return self._session.user if self._session else None

    @property
    def user_id(self) -> str | None:
        ident = self.identity
        return ident.id if ident else None

    @property
    def authenticated(self) -> bool:
        return self._session is not None

    def add_listener(self, listener: IdentityListener) -> None:
        self._listeners.append(listener)

    async def start(self) -> None:
        """Pick up an existing session and subscribe to auth events."""
        if self._unsubscribe is None:
            self._unsubscribe = self._auth.on_auth_state_change(self._on_auth_event)
        try:
            session = await self._auth.get_session()
        except (AuthError, RemoteError) as e:
            self.error = friendly_error_message(e)
            logger.info("get_session failed: %s", e)
            session = None
        await self._apply(session)

    def stop(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    async def _on_auth_event(self, event: AuthEvent, session: AuthSession | None) -> None:
        logger.debug("Auth event %s user=%s", event, session.user.id if session else None)
        if event is AuthEvent.SIGNED_OUT:
            session = None
        await self._apply(session)

    async def _apply(self, session: AuthSession | None) -> None:
        before = self.user_id
        self._session = session
        after = self.user_id
        if before == after:
            return
        logger.info("Identity changed: %s -> %s", before, after)
        for listener in list(self._listeners):
            await listener(self.identity)

    # ---- sign-in flows ----

    async def sign_in(self, email: str, password: str) -> bool:
        self.error = None
        if not email.strip() or not password:
            self.error = "Email and password are required."
            return False
        try:
            session = await self._auth.sign_in_with_password(email.strip(), password)
        except (AuthError, RemoteError) as e:
            self.error = friendly_error_message(e)
            logger.info("Password sign-in failed for %s: %s", email, e)
            return False
        await self._apply(session)
        return True

    async def sign_up(self, email: str, password: str) -> bool:
        """
        Register a new account.

        Returns True when the account exists afterwards. Backends that require
        email confirmation return no session; the identity stays empty then.
        """
        self.error = None
        if not email.strip() or not password:
            self.error = "Email and password are required."
            return False
        try:
            session = await self._auth.sign_up(email.strip(), password)
        except (AuthError, RemoteError) as e:
            self.error = friendly_error_message(e)
            logger.info("Sign-up failed for %s: %s", email, e)
            return False
        if session is not None:
            await self._apply(session)
        return True

    def sign_in_with_provider(self, provider: OAuthProvider | str, redirect_to: str) -> str | None:
        """Start the OAuth redirect flow; returns the URL to open in a browser."""
        self.error = None
        try:
            return self._auth.sign_in_with_oauth(OAuthProvider(provider), redirect_to)
        except ValueError:
            self.error = f"Unknown sign-in provider: {provider}"
        except AuthError as e:
            self.error = friendly_error_message(e)
        return None

    async def complete_oauth(self, callback_url: str) -> bool:
        self.error = None
        try:
            session = await self._auth.exchange_oauth_redirect(callback_url)
        except (AuthError, RemoteError) as e:
            self.error = friendly_error_message(e)
            logger.info("OAuth callback failed: %s", e)
            return False
        await self._apply(session)
        return True

    async def sign_out(self) -> None:
        self.error = None
        try:
            await self._auth.sign_out()
        except (AuthError, RemoteError) as e:
            # The local session is dropped regardless.
            self.error = friendly_error_message(e)
            logger.info("Sign-out failed remotely: %s", e)
        await self._apply(None)
