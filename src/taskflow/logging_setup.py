# src/taskflow/logging_setup.py

from __future__ import annotations

import logging
import sys
from collections.abc import Mapping
from pathlib import Path

LOG_FILE_NAME = "taskflow.log"

# The remote adapters log one line per HTTP call; keep them off the console.
REMOTE_CONSOLE_FLOOR = logging.WARNING


class _ConsoleFloorFilter(logging.Filter):
    """
    Console filter keyed by logger prefix (longest match wins).

    Anything outside ``taskflow`` (httpx, asyncio, py.warnings) only reaches
    the console at ERROR.
    """

    def __init__(self, floors: Mapping[str, int]) -> None:
        super().__init__()
        self._floors = sorted(floors.items(), key=lambda kv: len(kv[0]), reverse=True)

    def filter(self, record: logging.LogRecord) -> bool:
        for prefix, floor in self._floors:
            if record.name == prefix or record.name.startswith(prefix + "."):
                return record.levelno >= floor
        return record.levelno >= logging.ERROR


def parse_level_overrides(raw: str) -> dict[str, int]:
    """
    ``"taskflow.sync=DEBUG, taskflow.remote=INFO"`` -> {logger: level}.

    Unknown level names are skipped.
    """
    out: dict[str, int] = {}
    for part in raw.replace(";", ",").split(","):
        name, _, level = part.partition("=")
        value = logging.getLevelName(level.strip().upper())
        if name.strip() and isinstance(value, int):
            out[name.strip()] = value
    return out


def setup_logging(
    *,
    log_dir: str | Path = ".local/taskflow",
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
    overrides: Mapping[str, int] | None = None,
) -> Path:
    """
    Console (filtered) + file (full) handlers on the root logger.

    ``overrides`` lowers or raises the console floor for a logger prefix,
    e.g. {"taskflow.sync": logging.DEBUG} while debugging a sync issue.
    Call once at startup; returns the log file path.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / LOG_FILE_NAME

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for h in list(root.handlers):
        root.removeHandler(h)

    fmt = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    floors = {
        "taskflow": console_level,
        "taskflow.remote": max(REMOTE_CONSOLE_FLOOR, console_level),
        **(overrides or {}),
    }
    ch = logging.StreamHandler(sys.stderr)
    ch.setFormatter(fmt)
    ch.addFilter(_ConsoleFloorFilter(floors))
    root.addHandler(ch)

    fh = logging.FileHandler(str(log_file), encoding="utf-8")
    fh.setLevel(file_level)
    fh.setFormatter(fmt)
    root.addHandler(fh)

    logging.captureWarnings(True)
    return log_file
