"""Logging configuration helpers for PromptCraft."""

import asyncio
import logging
from contextvars import ContextVar

request_id_ctx: ContextVar[str] = ContextVar("request_id", default="-")

logger = logging.getLogger("promptcraft")


class SuppressShutdownErrors(logging.Filter):  # pylint: disable=too-few-public-methods
    """Filter out cancellation noise Uvicorn emits while shutting down open streams."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        if "timeout graceful shutdown exceeded" in message:
            return False
        if "CancelledError" in message:
            return False
        exc = record.exc_info[1] if record.exc_info else None
        if isinstance(exc, asyncio.CancelledError):
            return False
        return True


def mask_secret(value: str) -> str:
    """Return a log-safe rendering of a credential."""
    if not value:
        return "<unset>"
    if len(value) <= 8:
        return "***"
    return f"{value[:3]}***{value[-2:]}"


def setup_logging(debug: bool) -> None:
    """Configure root logging with request-id support."""
    record_factory = logging.getLogRecordFactory()

    def _with_request_id(*args, **kwargs) -> logging.LogRecord:
        record = record_factory(*args, **kwargs)
        record.request_id = request_id_ctx.get("-")
        return record

    logging.setLogRecordFactory(_with_request_id)
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s [%(request_id)s]: %(message)s",
    )
    if debug:
        logging.getLogger().setLevel(logging.DEBUG)
    logger.setLevel(logging.DEBUG if debug else logging.INFO)
    logging.getLogger("httpx").setLevel(logging.DEBUG if debug else logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.error").addFilter(SuppressShutdownErrors())
