"""Structured logging service for HomeLink API.

Routes logs to console (development) or HTTP endpoint (staging/production)
based on environment configuration.
"""

import asyncio
import json
import logging
import sys
from datetime import datetime
from logging import LogRecord
from typing import Optional

import httpx

# Global queue for async HTTP logging
_log_queue: asyncio.Queue = asyncio.Queue()
_http_logger_task: Optional[asyncio.Task] = None

# Context attributes copied from log records into console/JSON output.
CONTEXT_FIELDS = (
    "method",
    "path",
    "status_code",
    "duration_ms",
    "user_id",
    "home_id",
    "relation",
    "topic",
    "broker_state",
    "connection_id",
)


class ConsoleFormatter(logging.Formatter):
    """Custom formatter for console output with colors and structure."""

    COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[41m",  # Red background
        "RESET": "\033[0m",
    }

    def format(self, record: LogRecord) -> str:
        level_color = self.COLORS.get(record.levelname, "")
        reset = self.COLORS["RESET"]

        timestamp = datetime.fromtimestamp(record.created).isoformat()
        message = record.getMessage()

        extras = "".join(
            f" {name}={getattr(record, name)}"
            for name in CONTEXT_FIELDS
            if hasattr(record, name)
        )

        line = f"{level_color}[{record.levelname:8}]{reset} {timestamp} {record.name:30} {message}{extras}"
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


class StructuredFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: LogRecord) -> str:
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        for name in CONTEXT_FIELDS:
            if hasattr(record, name):
                log_data[name] = getattr(record, name)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        try:
            return json.dumps(log_data)
        except (TypeError, ValueError):
            return json.dumps({**log_data, "message": str(log_data.get("message", ""))}, default=str)


async def _http_log_sender(endpoint: str) -> None:
    """Background task that sends queued logs to HTTP endpoint.

    Batches logs and sends them periodically to avoid overwhelming
    the target endpoint.
    """
    batch: list[str] = []
    batch_size = 10
    timeout = 5.0

    async with httpx.AsyncClient(timeout=timeout) as client:
        while True:
            try:
                try:
                    log_entry = await asyncio.wait_for(
                        _log_queue.get(), timeout=timeout
                    )
                    batch.append(log_entry)
                except asyncio.TimeoutError:
                    pass  # Send what we have if queue is empty for a while

                if batch and (len(batch) >= batch_size or _log_queue.empty()):
                    try:
                        await client.post(
                            endpoint,
                            json={"logs": batch},
                            timeout=timeout,
                        )
                    except (httpx.RequestError, httpx.HTTPError):
                        print(f"Warning: Failed to send logs to {endpoint}", file=sys.stderr)
                    finally:
                        batch.clear()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                print(f"Error in HTTP log sender: {e}", file=sys.stderr)
                await asyncio.sleep(1)


def setup_logging(
    environment: str = "development",
    log_level: str = "INFO",
    logger_endpoint: Optional[str] = None,
    enable_logging: bool = True,
) -> None:
    """Initialize logging configuration.

    Args:
        environment: "development", "staging", or "production"
        log_level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        logger_endpoint: HTTP endpoint for third-party logging (staging/production)
        enable_logging: Toggle logging on/off globally
    """
    global _http_logger_task

    if not enable_logging:
        logging.disable(logging.CRITICAL)
        return

    level = getattr(logging, log_level.upper(), logging.INFO)
    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    if environment == "development":
        console_handler.setFormatter(ConsoleFormatter())
        root_logger.addHandler(console_handler)
        return

    console_handler.setFormatter(StructuredFormatter())
    root_logger.addHandler(console_handler)

    if logger_endpoint and _http_logger_task is None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No running loop yet (e.g. called during import); console only.
            return
        _http_logger_task = loop.create_task(_http_log_sender(logger_endpoint))
        root_logger.addHandler(_QueueHandler(level))


async def stop_http_logging() -> None:
    """Cancel the HTTP log shipper started by setup_logging, if any."""
    global _http_logger_task

    task = _http_logger_task
    _http_logger_task = None
    if task is None:
        return
    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass


class _QueueHandler(logging.Handler):
    """Feeds formatted records to the HTTP sender queue."""

    def __init__(self, level: int):
        super().__init__(level)
        self.setFormatter(StructuredFormatter())

    def emit(self, record: LogRecord) -> None:
        try:
            _log_queue.put_nowait(self.format(record))
        except asyncio.QueueFull:
            pass  # Drop log if queue is full to avoid blocking


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance for the given name."""
    return logging.getLogger(name)


def log_with_context(
    logger: logging.Logger,
    level: str,
    message: str,
    exc_info: bool = False,
    **context,
) -> None:
    """Log a message with additional context fields.

    Args:
        logger: Logger instance
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        message: Log message
        exc_info: Attach the exception currently being handled
        **context: Additional context fields to include in structured logs
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    if not logger.isEnabledFor(numeric_level):
        return

    logger.log(numeric_level, message, exc_info=exc_info, extra=context)
