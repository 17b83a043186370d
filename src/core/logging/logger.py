"""
Structured logging for the users service.

Records are put on a bounded queue by the calling task and written by a
``QueueListener`` thread, so a slow sink never stalls the event loop. When
the queue is full the record is dropped and counted.

Request fields (``request_id``, ``operation``, ``endpoint``, ``user_id``,
``component``) live in a ContextVar. ``LogContext`` opens a scope for one
request; ``set_log_context`` adds fields to the current scope (the pipeline
uses it once the caller's claims are known). Fields passed through
``extra=`` win over context values of the same name.

Output is one JSON object per line when ``LOG_JSON`` is set (default: on in
production), otherwise a readable text line. ``LOG_TO_FILE`` adds a daily
rotating JSON file under ``Config.LOGS_DIR``.
"""

from __future__ import annotations

import json
import logging
import queue
import sys
import uuid
from contextvars import ContextVar, Token
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from logging import Logger
from logging.handlers import QueueHandler, QueueListener, TimedRotatingFileHandler
from pathlib import Path
from typing import Any, Dict, List, Optional

from src.core.config.config import Config

CONTEXT_FIELDS = ("request_id", "operation", "endpoint", "user_id", "component")
UNSET = "-"

TEXT_FORMAT = (
    "%(asctime)s %(levelname)-8s %(name)s "
    "[%(request_id)s %(operation)s user=%(user_id)s] %(message)s"
)
TEXT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
JSON_FILE_NAME = "users_service.json.log"
QUEUE_SIZE = 10_000

_INSTALLED_FLAG = "_users_service_logging"

# Attributes every LogRecord carries; anything else came in through extra=
_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None))
) | {"message", "asctime"}

_context: ContextVar[Dict[str, Any]] = ContextVar("users_service_log_context", default={})


@dataclass(frozen=True)
class LogSettings:
    level: int
    as_json: bool
    to_file: bool
    directory: Path

    @classmethod
    def from_config(cls) -> "LogSettings":
        as_json = Config.LOG_JSON if Config.LOG_JSON is not None else Config.is_production()
        return cls(
            level=getattr(logging, str(Config.LOG_LEVEL).upper(), logging.INFO),
            as_json=bool(as_json),
            to_file=bool(Config.LOG_TO_FILE),
            directory=Path(Config.LOGS_DIR),
        )


@dataclass
class _QueueCounters:
    enqueued: int = 0
    dropped: int = 0


_counters = _QueueCounters()
_queue: Optional["queue.Queue[logging.LogRecord]"] = None
_listener: Optional[QueueListener] = None


# ============================================================================
# Filter / Formatter / Handler
# ============================================================================


class RequestContextFilter(logging.Filter):
    """Copies the current request context onto the record before it is queued."""

    def filter(self, record: logging.LogRecord) -> bool:
        context = _context.get()
        for field_name in CONTEXT_FIELDS:
            if not hasattr(record, field_name):
                setattr(record, field_name, context.get(field_name, UNSET))
        return True


class JsonLineFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "src": f"{record.module}:{record.funcName}:{record.lineno}",
        }

        for field_name in CONTEXT_FIELDS:
            value = getattr(record, field_name, UNSET)
            if value != UNSET:
                payload[field_name] = value

        fields = {
            key: value
            for key, value in vars(record).items()
            if key not in _RECORD_ATTRS
            and key not in CONTEXT_FIELDS
            and not key.startswith("_")
        }
        if fields:
            payload["fields"] = fields

        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=False, default=str)


class DroppingQueueHandler(QueueHandler):
    def enqueue(self, record: logging.LogRecord) -> None:
        try:
            self.queue.put_nowait(record)
        except queue.Full:
            _counters.dropped += 1
            sys.stderr.write("users-service: log queue full, record dropped\n")
        else:
            _counters.enqueued += 1


# ============================================================================
# Setup / Teardown
# ============================================================================


def _sinks(settings: LogSettings) -> List[logging.Handler]:
    console = logging.StreamHandler(sys.stdout)
    console.setLevel(settings.level)
    if settings.as_json:
        console.setFormatter(JsonLineFormatter())
    else:
        console.setFormatter(logging.Formatter(TEXT_FORMAT, TEXT_DATE_FORMAT))

    sinks: List[logging.Handler] = [console]

    if settings.to_file:
        settings.directory.mkdir(parents=True, exist_ok=True)
        rotating = TimedRotatingFileHandler(
            filename=str(settings.directory / JSON_FILE_NAME),
            when="midnight",
            backupCount=1,
            encoding="utf-8",
            utc=True,
        )
        rotating.setLevel(settings.level)
        rotating.setFormatter(JsonLineFormatter())
        sinks.append(rotating)

    return sinks


def setup_logging(settings: Optional[LogSettings] = None) -> None:
    """Route the root logger through the queue. Calling it twice is a no-op."""
    global _queue, _listener

    root = logging.getLogger()
    if getattr(root, _INSTALLED_FLAG, False):
        return

    settings = settings or LogSettings.from_config()

    _queue = queue.Queue(QUEUE_SIZE)
    _listener = QueueListener(_queue, *_sinks(settings), respect_handler_level=True)
    _listener.start()

    handler = DroppingQueueHandler(_queue)
    handler.setLevel(settings.level)
    handler.addFilter(RequestContextFilter())

    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(settings.level)

    for noisy in ("asyncio", "sqlalchemy.engine", "uvicorn.access"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    setattr(root, _INSTALLED_FLAG, True)
    logging.getLogger(__name__).debug(
        "Logging ready",
        extra={"level": logging.getLevelName(settings.level), "json": settings.as_json},
    )


def shutdown_logging() -> None:
    """Drain the queue and close every sink."""
    global _queue, _listener

    root = logging.getLogger()
    if not getattr(root, _INSTALLED_FLAG, False):
        return

    if _listener is not None:
        _listener.stop()
        for sink in _listener.handlers:
            sink.close()
        _listener = None

    for handler in list(root.handlers):
        if isinstance(handler, DroppingQueueHandler):
            root.removeHandler(handler)

    _queue = None
    setattr(root, _INSTALLED_FLAG, False)


def get_logging_health() -> Dict[str, Any]:
    return {
        "installed": bool(getattr(logging.getLogger(), _INSTALLED_FLAG, False)),
        "queue_size": _queue.qsize() if _queue is not None else 0,
        **asdict(_counters),
    }


# ============================================================================
# Public API
# ============================================================================


def get_logger(name: str) -> Logger:
    return logging.getLogger(name)


def new_request_id() -> str:
    return uuid.uuid4().hex[:12]


class LogContext:
    """
    Scope request fields to a block. Works with ``with`` and ``async with``.

    >>> async with LogContext(operation="StoreItems/BuyByUser", component="api"):
    ...     logger.info("purchase started")
    """

    def __init__(self, **fields: Any) -> None:
        fields.setdefault("request_id", new_request_id())
        self.fields = {key: value for key, value in fields.items() if value is not None}
        self._token: Optional[Token[Dict[str, Any]]] = None

    def __enter__(self) -> "LogContext":
        self._token = _context.set({**_context.get(), **self.fields})
        return self

    def __exit__(self, *exc_info: Any) -> None:
        if self._token is not None:
            _context.reset(self._token)
            self._token = None

    async def __aenter__(self) -> "LogContext":
        return self.__enter__()

    async def __aexit__(self, *exc_info: Any) -> None:
        self.__exit__(*exc_info)


def set_log_context(**fields: Any) -> None:
    """Add fields to the current scope; ``None`` values are ignored."""
    updates = {key: str(value) for key, value in fields.items() if value is not None}
    _context.set({**_context.get(), **updates})


def get_log_context() -> Dict[str, Any]:
    return dict(_context.get())


setup_logging()
