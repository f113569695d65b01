# src/taskflow/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds the app (hosted or local backend), restores or
starts a session and runs the console REPL until /exit or EOF.
"""

from __future__ import annotations

import asyncio
import logging

from ..cli.bootstrap import build_http_client, create_app
from ..config import Settings, get_settings
from ..logging_setup import parse_level_overrides, setup_logging
from .console import run_console_loop

logger = logging.getLogger(__name__)


async def _run(settings: Settings) -> None:
    async with build_http_client(settings) as http_client:
        app = create_app(settings=settings, http_client=http_client)
        await app.start()

        if not app.session.authenticated and settings.email and settings.password:
            if await app.sign_in(settings.email, settings.password):
                logger.info("Signed in from environment as %s", settings.email)
            else:
                logger.warning("Auto sign-in failed: %s", app.session.error)

        try:
            await run_console_loop(app)
        finally:
            app.stop()


def main() -> None:
    settings = get_settings()

    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)

    setup_logging(
        log_dir=settings.data_dir,
        console_level=console_level,
        overrides=parse_level_overrides(settings.log_overrides),
    )

    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    logger.info("Starting %s...", settings.app_name)

    try:
        asyncio.run(_run(settings))
    except KeyboardInterrupt:
        logger.info("Interrupted.")
    except RuntimeError as e:
        # Misconfiguration (e.g. remote URL without key).
        logger.error("%s", e)
        print(f"Error: {e}")
    logger.info("Bye.")


if __name__ == "__main__":
    main()
