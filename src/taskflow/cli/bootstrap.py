# src/taskflow/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- picks the hosted backend (HTTP) or the local backend,
- wires everything into a TaskflowApp.
"""

from __future__ import annotations

import logging

import httpx

from ..config import Settings, get_settings
from ..core.ports import AuthProvider, RemoteStore
from ..remote.auth import GoTrueAuth
from ..remote.local import LocalAuth, LocalBackend, LocalRemoteStore
from ..remote.offline import OfflineFallbackTransport
from ..remote.rest import RestRemoteStore
from ..sync.controller import TaskflowApp

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.local_store_path.parent.mkdir(parents=True, exist_ok=True)


def build_http_client(settings: Settings) -> httpx.AsyncClient:
    timeout = httpx.Timeout(
        connect=min(5.0, settings.http_timeout_seconds),
        read=settings.http_timeout_seconds,
        write=10.0,
        pool=5.0,
    )
    transport: httpx.AsyncBaseTransport | None = None
    if settings.offline_cache_enabled:
        transport = OfflineFallbackTransport(bypass_hosts=settings.offline_bypass_hosts)
    return httpx.AsyncClient(timeout=timeout, transport=transport)


def build_backend(
    settings: Settings, http_client: httpx.AsyncClient | None
) -> tuple[RemoteStore, AuthProvider]:
    remote_url = settings.remote_url
    if remote_url and settings.remote_enabled:
        if http_client is None:
            raise ValueError("An HTTP client is required for the hosted backend")
        if not settings.remote_key:
            raise RuntimeError("TASKFLOW_REMOTE_KEY is not set (the project's public API key).")
        auth = GoTrueAuth(remote_url, settings.remote_key, client=http_client)
        remote = RestRemoteStore(
            remote_url,
            settings.remote_key,
            client=http_client,
            token_provider=lambda: auth.access_token,
        )
        logger.info("Using hosted backend at %s", remote_url)
        return remote, auth

    backend = LocalBackend(settings.local_store_path)
    logger.info("No remote configured; using local store %s", settings.local_store_path)
    return LocalRemoteStore(backend), LocalAuth(backend)


def create_app(*, settings: Settings | None = None, http_client: httpx.AsyncClient | None = None) -> TaskflowApp:
    """
    Create the app from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)
    remote, auth = build_backend(settings, http_client)
    return TaskflowApp(
        remote,
        auth,
        activity_limit=settings.activity_limit,
        notification_limit=settings.notification_limit,
    )
