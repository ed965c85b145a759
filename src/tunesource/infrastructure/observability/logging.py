"""Logging setup: console or JSON lines, tagged with the current operation and source.

Every record passes through LogContextFilter, which copies two context values onto it:

- correlation_id: one id per operation (a download, a fan-out search)
- source: the backend currently doing the work ("YouTube", "Spotify")

Both live in contextvars, so concurrent asyncio tasks never see each other's values.
"""

import contextvars
import logging
import sys
import traceback
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from pythonjsonlogger import jsonlogger

_correlation_id: contextvars.ContextVar[str] = contextvars.ContextVar(
    "tunesource_correlation_id", default=""
)
_source_name: contextvars.ContextVar[str] = contextvars.ContextVar(
    "tunesource_source_name", default=""
)

# Third-party loggers that flood INFO/DEBUG: httpx logs every request, yt-dlp every fragment
NOISY_LOGGERS = ("httpx", "httpcore", "hpack", "asyncio", "yt_dlp")


def new_correlation_id() -> str:
    """A fresh 12-char hex id."""
    return uuid.uuid4().hex[:12]


def get_correlation_id() -> str:
    """Correlation id of the running operation, "" outside of one."""
    return _correlation_id.get()


def set_correlation_id(correlation_id: str | None = None) -> str:
    """Bind a correlation id to the current context.

    Args:
        correlation_id: Id to bind, a fresh 12-char hex id when None

    Returns:
        The bound id
    """
    if correlation_id is None:
        correlation_id = new_correlation_id()
    _correlation_id.set(correlation_id)
    return correlation_id


def get_source_name() -> str:
    return _source_name.get()


# Yo, prefer this over bare set_correlation_id(): the previous values come back on exit,
# so a nested operation (one provider inside a multi-source download) can't leak its tags.
@contextmanager
def log_context(correlation_id: str | None = None, source: str | None = None) -> Iterator[str]:
    """Tag every record logged inside the block.

    Args:
        correlation_id: Id for the block; keeps the current one (or makes a new one) when None
        source: Backend name for the block; keeps the current one when None

    Yields:
        The correlation id in effect inside the block
    """
    if correlation_id is None:
        correlation_id = get_correlation_id() or new_correlation_id()
    id_token = _correlation_id.set(correlation_id)
    source_token = _source_name.set(source) if source is not None else None
    try:
        yield correlation_id
    finally:
        if source_token is not None:
            _source_name.reset(source_token)
        _correlation_id.reset(id_token)


class LogContextFilter(logging.Filter):
    """Copy correlation id and source name onto each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = _correlation_id.get()
        record.source = _source_name.get()
        return True


def _exception_chain(exc: BaseException) -> list[BaseException]:
    """Cause chain of exc, root cause first. Cycles are cut."""
    chain: list[BaseException] = []
    current: BaseException | None = exc
    while current is not None and current not in chain:
        chain.append(current)
        current = current.__cause__ or current.__context__
    chain.reverse()
    return chain


class ConsoleFormatter(logging.Formatter):
    """Human-readable lines with the source tag and compact exception chains.

    Exceptions print one ╰─► header per chained exception, root cause first,
    followed only by frames from this package:

    12:01:07 │ ERROR   │ [Spotify] tunesource...spotify.download:120 │ yt-dlp failed
    ╰─► FileNotFoundError: [Errno 2] No such file or directory: 'yt-dlp'
        File "ytdlp_process.py", line 88, in run
          process = await asyncio.create_subprocess_exec(
    ╰─► ToolMissingError: yt-dlp executable not found at 'yt-dlp'.
    """

    package_marker = "tunesource"

    def format(self, record: logging.LogRecord) -> str:
        source = getattr(record, "source", "")
        record.source_tag = f"[{source}] " if source else ""
        return super().format(record)

    def formatException(self, ei: Any) -> str:
        exc_value = ei[1]
        if exc_value is None:
            return ""

        lines: list[str] = []
        for exc in _exception_chain(exc_value):
            lines.append(f"╰─► {type(exc).__name__}: {exc}")
            for frame in traceback.extract_tb(exc.__traceback__):
                if self.package_marker not in frame.filename or "site-packages" in frame.filename:
                    continue
                lines.append(
                    f'    File "{Path(frame.filename).name}", line {frame.lineno}, in {frame.name}'
                )
                if frame.line:
                    lines.append(f"      {frame.line.strip()}")
        return "\n".join(lines)


class SourceJsonFormatter(jsonlogger.JsonFormatter):  # type: ignore[name-defined,misc]
    """One JSON object per record, for log shippers."""

    # record attribute -> JSON key
    record_fields = {
        "levelname": "level",
        "name": "logger",
        "module": "module",
        "funcName": "function",
        "lineno": "line",
    }
    # Context tags are only written when set
    context_fields = ("correlation_id", "source")

    def add_fields(
        self,
        log_record: dict[str, Any],
        record: logging.LogRecord,
        message_dict: dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = self.formatTime(record, self.datefmt)
        for attribute, key in self.record_fields.items():
            log_record[key] = getattr(record, attribute)

        for key in self.context_fields:
            value = getattr(record, key, "")
            if value:
                log_record[key] = value
            else:
                log_record.pop(key, None)

        if record.exc_info:
            log_record["exc_info"] = self.formatException(record.exc_info)
        if record.stack_info:
            log_record["stack_info"] = self.formatStack(record.stack_info)


def _build_formatter(json_format: bool) -> logging.Formatter:
    if json_format:
        return SourceJsonFormatter(
            "%(timestamp)s %(level)s %(name)s %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    return ConsoleFormatter(
        fmt="%(asctime)s │ %(levelname)-7s │ %(source_tag)s%(name)s:%(lineno)d │ %(message)s",
        datefmt="%H:%M:%S",
    )


# Listen future me, source_lifespan calls this once at startup. Existing root handlers are
# replaced, never stacked, so calling it again (tests, host apps) doesn't duplicate output.
def configure_logging(
    log_level: str = "INFO",
    json_format: bool = False,
    app_name: str = "tunesource",
) -> None:
    """Install the TuneSource handler on the root logger.

    Args:
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL (unknown names fall back to INFO)
        json_format: JSON lines instead of console output
        app_name: Logged once with the configuration message
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.addFilter(LogContextFilter())
    handler.setFormatter(_build_formatter(json_format))

    root_logger = logging.getLogger()
    for existing in list(root_logger.handlers):
        root_logger.removeHandler(existing)
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).info(
        f"Logging configured for {app_name}: level={logging.getLevelName(level)}, "
        f"format={'json' if json_format else 'console'}"
    )
