"""Logging for the API, the pipeline and the CLI, built on loguru.

Call :func:`configure_logging` once per process (app lifespan, CLI entry).
Until then loguru's default stderr sink is used, which keeps tests quiet
on disk.
"""

import logging
import sys
from pathlib import Path
from typing import Any, Optional

from loguru import logger

from socialpulse.config import settings

LOG_DIR = Path("logs")

CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<magenta>{extra[run_id]}</magenta> | <cyan>{name}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {extra[run_id]} | {name}:{function}:{line} - {message}"

# Framework and SDK loggers that chatter at INFO on every request.
NOISY_LOGGERS = (
    "uvicorn.access",
    "sse_starlette.sse",
    "httpx",
    "httpcore",
    "anthropic._base_client",
    "openai._base_client",
    "asyncio",
)

_configured = False


def configure_logging(*, console_level: Optional[str] = None, to_file: bool = True) -> None:
    """Install the console sink and, optionally, a daily rotating file sink."""
    global _configured
    if _configured:
        return

    logger.remove()
    logger.configure(extra={"run_id": "-"})
    logger.add(
        sys.stderr,
        format=CONSOLE_FORMAT,
        level=(console_level or settings.app_log_level).upper(),
        colorize=True,
    )
    if to_file:
        LOG_DIR.mkdir(exist_ok=True)
        logger.add(
            LOG_DIR / "socialpulse_{time:YYYY-MM-DD}.log",
            format=FILE_FORMAT,
            level="DEBUG",
            rotation="00:00",
            retention="7 days",
            compression="zip",
            enqueue=True,
        )

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(settings.noisy_log_level.upper())
    _configured = True


def run_logger(run_id: str):
    """Logger with the run id attached to every record."""
    return logger.bind(run_id=run_id)


def log_llm_call(
    model: str,
    mode: str,
    input_tokens: int = 0,
    output_tokens: int = 0,
    duration_ms: int = 0,
    status: str = "success",
    error: Optional[str] = None,
) -> None:
    """Log one completion request with token usage and latency."""
    if error:
        logger.error(
            "LLM call failed | mode={} model={} after {}ms: {}", mode, model, duration_ms, error
        )
        return
    logger.info(
        "LLM call {} | mode={} model={} tokens={}+{} in {}ms",
        status,
        mode,
        model,
        input_tokens,
        output_tokens,
        duration_ms,
    )


def log_stage(
    run_id: str,
    stage: str,
    status: str,
    data: Optional[dict[str, Any]] = None,
) -> None:
    bound = run_logger(run_id)
    level = "ERROR" if status == "failed" else "INFO"
    bound.log(level, "stage {} {} {}", stage, status, data or {})


def log_event(
    event_type: str,
    message: str,
    **kwargs: Any,
) -> None:
    run_id = kwargs.pop("run_id", None) or "-"
    details = " ".join(f"{k}={v}" for k, v in kwargs.items())
    run_logger(run_id).info("[{}] {} {}", event_type, message, details)
