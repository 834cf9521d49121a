"""
Queue-based logging for the proxy.

Handlers run on a QueueListener thread, so request handlers only pay
for an enqueue. Every record passes through SecretRedactingFilter
before it is queued: signatures, secret keys and API keys that end up
in a URL or form body are masked.
"""

import logging
import re
import sys
from datetime import datetime
from logging.handlers import QueueHandler, QueueListener
from pathlib import Path
from queue import Queue

from binance_proxy.config.constants import LOG_DATE_FORMAT, LOG_FORMAT, MAX_LOG_QUEUE_SIZE


ROOT_LOGGER_NAME = "binance_proxy"

_SECRET_PARAM = re.compile(r"(?i)\b(signature|secret_key|api_key|X-MBX-APIKEY)([=:]\s*)([^&\s,'\"]+)")
_MASK = "***"

_NOISY_LOGGERS = ("aiohttp", "asyncio", "uvicorn.access")


def redact(text: str) -> str:
    """Mask secret-bearing parameter values in a log message."""
    return _SECRET_PARAM.sub(lambda m: f"{m.group(1)}{m.group(2)}{_MASK}", text)


class SecretRedactingFilter(logging.Filter):
    """Rewrites record messages with secret values masked."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        cleaned = redact(message)
        if cleaned != message:
            record.msg = cleaned
            record.args = None
        return True


class MicrosecondFormatter(logging.Formatter):
    """Formatter whose %(asctime)s carries microseconds."""

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        created = datetime.fromtimestamp(record.created)
        return f"{created.strftime(datefmt or LOG_DATE_FORMAT)}.{created.microsecond:06d}"


class AsyncLogger:
    """
    Owns the queue, handler and listener for one logger tree.

    Start it once at process start and stop it on shutdown to flush
    queued records.
    """

    def __init__(
        self,
        name: str = ROOT_LOGGER_NAME,
        level: int = logging.INFO,
        log_file: Path | None = None,
    ) -> None:
        self._level = level
        self._log_file = log_file
        self._queue: Queue[logging.LogRecord] = Queue(maxsize=MAX_LOG_QUEUE_SIZE)
        self._queue_handler: QueueHandler | None = None
        self._listener: QueueListener | None = None
        self._logger = logging.getLogger(name)

    def _build_handlers(self) -> list[logging.Handler]:
        formatter = MicrosecondFormatter(LOG_FORMAT, LOG_DATE_FORMAT)

        console = logging.StreamHandler(sys.stdout)
        console.setLevel(self._level)
        handlers: list[logging.Handler] = [console]

        if self._log_file:
            self._log_file.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(self._log_file, encoding="utf-8")
            file_handler.setLevel(logging.DEBUG)
            handlers.append(file_handler)

        for handler in handlers:
            handler.setFormatter(formatter)
        return handlers

    def start(self) -> None:
        """Attach the queue handler and start the listener thread."""
        if self._listener is not None:
            return

        self._queue_handler = QueueHandler(self._queue)
        self._queue_handler.addFilter(SecretRedactingFilter())
        self._logger.addHandler(self._queue_handler)
        self._logger.setLevel(self._level)

        self._listener = QueueListener(
            self._queue,
            *self._build_handlers(),
            respect_handler_level=True,
        )
        self._listener.start()

    def stop(self) -> None:
        """Flush queued records and detach."""
        if self._listener:
            self._listener.stop()
            self._listener = None
        if self._queue_handler:
            self._logger.removeHandler(self._queue_handler)
            self._queue_handler = None

    @property
    def logger(self) -> logging.Logger:
        return self._logger

    @property
    def is_running(self) -> bool:
        return self._listener is not None

    def __enter__(self) -> "AsyncLogger":
        self.start()
        return self

    def __exit__(self, *args: object) -> None:
        self.stop()


def setup_logging(
    level: str = "INFO",
    log_file: Path | None = None,
) -> AsyncLogger:
    """
    Configure process-wide logging.

    Clears root handlers, starts an AsyncLogger on the ``binance_proxy``
    tree and quiets chatty third-party loggers.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR).
        log_file: Optional log file path.

    Returns:
        The started AsyncLogger; call stop() on shutdown.
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    async_logger = AsyncLogger(level=numeric_level, log_file=log_file)
    async_logger.start()

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return async_logger
