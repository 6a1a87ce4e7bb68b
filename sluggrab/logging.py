"""Loguru sinks for sluggrab.

Modules never configure loguru; they bind context and log::

    log = logger.bind(component="reconciler", region="tor1")
    log.info("Creating {n} droplets", n=2)

``setup_logging`` runs once from the CLI. Bound ``component``, ``provider``,
``region`` and ``droplet`` values are prefixed to each line as ``[key=value]``.
"""

from __future__ import annotations

import sys
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any, Literal

from loguru import logger

if TYPE_CHECKING:
    from loguru import Record

type LogLevel = Literal["TRACE", "DEBUG", "INFO", "WARNING", "ERROR"]

LOG_LEVELS: tuple[LogLevel, ...] = ("TRACE", "DEBUG", "INFO", "WARNING", "ERROR")

CONTEXT_KEYS = ("component", "provider", "region", "droplet")


def _attach_context(record: Record) -> None:
    extra = record["extra"]
    tags = " ".join(f"{key}={extra[key]}" for key in CONTEXT_KEYS if key in extra)
    extra["context"] = f"[{tags}] " if tags else ""


@dataclass(frozen=True, slots=True)
class LogConfig:
    """Where sluggrab logs, and how much.

    ``file`` receives everything from DEBUG up regardless of ``level``;
    ``rotation`` and ``retention`` go to loguru unchanged.
    """

    level: LogLevel = "INFO"
    file: str | None = None
    console: bool = True
    rotation: str = "50 MB"
    retention: int = 10


def setup_logging(config: LogConfig) -> list[int]:
    """Replace every loguru handler with the ones ``config`` asks for."""
    handlers: list[dict[str, Any]] = []

    if config.console:
        handlers.append({
            "sink": sys.stderr,
            "level": config.level,
            "colorize": True,
            "format": (
                "<green>{time:HH:mm:ss}</green> <level>{level: <7}</level> "
                "<dim>{extra[context]}</dim><level>{message}</level>"
            ),
        })

    if config.file:
        Path(config.file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append({
            "sink": config.file,
            "level": "DEBUG",
            "format": "{time:YYYY-MM-DD HH:mm:ss.SSS} {level: <7} {name}:{line} {extra[context]}{message}",
            "rotation": config.rotation,
            "retention": config.retention,
            "compression": "zip",
            "diagnose": False,
        })

    handler_ids = logger.configure(handlers=handlers, patcher=_attach_context)
    logger.enable("sluggrab")
    return handler_ids


__all__ = ["CONTEXT_KEYS", "LOG_LEVELS", "LogConfig", "LogLevel", "setup_logging"]
