# src/taskflow/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app (normal "settings layer").
- No secrets required at import time.
- No remote URL configured means the app runs against the local backend.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional
from urllib.parse import urlparse

ENV_PREFIX = "TASKFLOW"


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _load_dotenv_if_available() -> None:
    """Load .env locally if python-dotenv is installed. Safe no-op otherwise."""
    try:
        from dotenv import load_dotenv  # type: ignore
    except Exception:
        return
    load_dotenv(override=False)


_load_dotenv_if_available()


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _first_env(*names: str, default: str | None = None) -> str | None:
    for n in names:
        v = os.getenv(n)
        if v is not None and v.strip() != "":
            return v
    return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_list(name: str, default: List[str]) -> List[str]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return list(default)
    parts = [p.strip() for p in raw.replace(",", " ").split() if p.strip()]
    return parts


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str
    log_overrides: str
    data_dir: Path

    # ---- Remote data store + auth service ----
    remote_url: Optional[str]
    remote_key: Optional[str]
    http_timeout_seconds: float
    oauth_redirect_url: str

    # ---- Offline GET fallback ----
    offline_cache_enabled: bool
    offline_bypass_hosts: List[str]

    # ---- Local backend (no remote configured) ----
    local_store_path: Path

    # ---- Read windows ----
    activity_limit: int
    notification_limit: int

    # ---- Optional CLI auto sign-in ----
    email: Optional[str]
    password: Optional[str]

    @property
    def remote_enabled(self) -> bool:
        return bool(self.remote_url and self.remote_url.strip())

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "taskflow") or "taskflow"
        log_level = _env(_k("LOG_LEVEL"), "INFO")
        log_overrides = _env(_k("LOG_LEVELS"), "")
        data_dir = _env_path(_k("DATA_DIR"), Path(".local/taskflow"))

        # Accept the hosted backend's conventional names as a fallback.
        remote_url = _first_env(_k("REMOTE_URL"), "SUPABASE_URL", default=None)
        remote_key = _first_env(_k("REMOTE_KEY"), "SUPABASE_ANON_KEY", default=None)
        if remote_url:
            remote_url = remote_url.strip().rstrip("/")

        http_timeout_seconds = _env_float(_k("HTTP_TIMEOUT_SECONDS"), 15.0)
        oauth_redirect_url = _env(_k("OAUTH_REDIRECT_URL"), "http://localhost:3000")

        offline_cache_enabled = _env_bool(_k("OFFLINE_CACHE"), True)
        default_bypass = [urlparse(remote_url).hostname or ""] if remote_url else []
        offline_bypass_hosts = [
            h for h in _env_list(_k("OFFLINE_BYPASS_HOSTS"), default_bypass) if h
        ]

        local_store_path = _env_path(_k("LOCAL_STORE_PATH"), data_dir / "local_store.json")

        activity_limit = _env_int(_k("ACTIVITY_LIMIT"), 50)
        notification_limit = _env_int(_k("NOTIFICATION_LIMIT"), 20)

        email = (_first_env(_k("EMAIL"), default="") or "").strip() or None
        password = _first_env(_k("PASSWORD"), default=None)

        return Settings(
            app_name=app_name,
            log_level=log_level,
            log_overrides=log_overrides,
            data_dir=data_dir,
            remote_url=remote_url,
            remote_key=remote_key,
            http_timeout_seconds=http_timeout_seconds,
            oauth_redirect_url=oauth_redirect_url,
            offline_cache_enabled=offline_cache_enabled,
            offline_bypass_hosts=offline_bypass_hosts,
            local_store_path=local_store_path,
            activity_limit=activity_limit,
            notification_limit=notification_limit,
            email=email,
            password=password,
        )


SETTINGS = Settings.from_env()

# ---- Optional local overrides (never committed) ----
# Prefer .env for secrets; use config_local.py only for safe overrides.
try:
    import config_local as _config_local  # type: ignore

    if hasattr(_config_local, "OFFLINE_CACHE"):
        object.__setattr__(SETTINGS, "offline_cache_enabled", bool(_config_local.OFFLINE_CACHE))  # type: ignore[misc]
    if hasattr(_config_local, "LOCAL_STORE_PATH"):
        object.__setattr__(SETTINGS, "local_store_path", Path(_config_local.LOCAL_STORE_PATH))  # type: ignore[misc]
except Exception:
    pass


def get_settings() -> Settings:
    return SETTINGS
