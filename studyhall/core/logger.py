"""Advanced logging with Loguru."""

import contextvars
import logging
import sys
from pathlib import Path
from types import FrameType
from typing import Any, Dict, Optional

from loguru import logger

from .environment import Environment

# Context variable for the renewal session being worked on
renewal_session_ctx: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "renewal_session", default=None
)

__all__ = ["renewal_session_ctx", "setup_structured_logging"]


def _session_patcher(record: Dict[str, Any]) -> None:
    """
    Patch log records with the renewal session id from context.

    Called by Loguru for each log record so that every line written while a
    renewal dialog is open can be traced back to it.
    """
    session_id = renewal_session_ctx.get()
    if session_id:
        record["extra"]["renewal_session"] = session_id


def setup_structured_logging(
    level: str = "INFO", json_format: bool = True, logs_dir: Path = Path("logs")
) -> None:
    """
    Setup Loguru logging with structured output.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        json_format: Use JSON format (True for production)
        logs_dir: Directory receiving the log files
    """
    # Remove default handler
    logger.remove()

    logger.configure(patcher=_session_patcher)

    logs_dir.mkdir(parents=True, exist_ok=True)

    # Console handler - human readable
    console_format = (
        "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
        "<level>{level: <8}</level> | "
        "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
        "<level>{message}</level>"
    )
    logger.add(
        sys.stderr,
        format=console_format,
        level=level,
        colorize=True,
    )

    if json_format:
        logger.add(
            logs_dir / "studyhall.jsonl",
            format="{message}",
            level=level,
            rotation="10 MB",
            retention="30 days",
            compression="zip",
            serialize=True,
        )
    else:
        text_format = (
            "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | " "{name}:{function}:{line} - {message}"
        )
        logger.add(
            logs_dir / "studyhall.log",
            format=text_format,
            level=level,
            rotation="10 MB",
            retention="30 days",
            compression="zip",
        )

    # Error file - separate error logs
    logger.add(
        logs_dir / "errors_{time:YYYY-MM-DD}.log",
        format="{time:YYYY-MM-DD HH:mm:ss} | {level} | {name}:{function}:{line} - {message}",
        level="ERROR",
        rotation="10 MB",
        retention="90 days",
        backtrace=True,
        diagnose=Environment.is_development(),
    )

    logger.info(f"Logging initialized (level={level}, json={json_format})")

    # Intercept standard logging (aiohttp, tenacity) and redirect to loguru
    class InterceptHandler(logging.Handler):
        def emit(self, record):
            try:
                level = logger.level(record.levelname).name
            except ValueError:
                level = record.levelno

            frame: Optional[FrameType] = logging.currentframe()
            depth = 2
            while frame and frame.f_code.co_filename == logging.__file__:
                frame = frame.f_back
                depth += 1

            logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    logging.root.setLevel(getattr(logging, level))
