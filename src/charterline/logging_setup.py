# Logging setup - Rich console handler for the whole process.
# Created: 2026-10-02

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

SECURITY_LOGGER = "charterline.security"


def setup_logging(level: str = "INFO") -> None:
    """Install a Rich handler on the root logger.

    Idempotent: existing handlers are replaced so repeated calls (tests,
    uvicorn reloads) don't duplicate output.
    """
    level_value = getattr(logging, level.upper(), logging.INFO)

    handler = RichHandler(
        console=Console(stderr=True),
        rich_tracebacks=True,
        show_path=False,
        markup=False,
    )
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s", datefmt="[%X]"))

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level_value)

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("stripe").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(level_value)


def get_security_logger() -> logging.Logger:
    """Logger for security-relevant rejections (signature mismatches, bad state)."""
    return logging.getLogger(SECURITY_LOGGER)


def redact(secret: str | None, keep: int = 10) -> str:
    """Return a loggable prefix of *secret*."""
    if not secret:
        return "<unset>"
    return f"{secret[:keep]}..."
