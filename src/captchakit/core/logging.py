# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
captchakit.core.logging
=======================

Structured logging for the widget runtime:
- Context propagation via contextvars (widget_id, captcha_id, ...).
- JSON formatter for services; human formatter for local debugging.
- LoggerAdapter that accepts arbitrary keyword fields.
- Helpers to attach/detach stdout handlers and change levels.

The library logger is silent until an application or test enables output.
"""

import contextvars
import json
import logging
import os
import sys
from collections.abc import Mapping
from contextlib import contextmanager
from datetime import UTC, datetime
from typing import Any, ClassVar, Final

__all__ = [
    "bind_context",
    "configure_from_env",
    "disable_stdout_logging",
    "enable_stdout_logging",
    "get_logger",
    "log_context",
    "set_level",
    "swallow",
    "warn_once",
]

# ---------- Context ----------

_log_context: contextvars.ContextVar[dict[str, Any] | None] = contextvars.ContextVar(
    "captchakit_log_ctx", default=None
)


def _ctx_copy() -> dict[str, Any]:
    ctx = _log_context.get()
    return dict(ctx) if ctx else {}


def bind_context(**fields: Any) -> None:
    """Merge fields into the current structured log context (None values are dropped)."""
    ctx = _ctx_copy()
    ctx.update({k: v for k, v in fields.items() if v is not None})
    _log_context.set(ctx)


@contextmanager
def log_context(**fields: Any):
    """Temporarily add fields to the log context; the previous context is restored on exit."""
    token = _log_context.set({**_ctx_copy(), **{k: v for k, v in fields.items() if v is not None}})
    try:
        yield
    finally:
        _log_context.reset(token)


# ---------- Formatters ----------

_STD_ATTRS: Final[frozenset[str]] = frozenset(
    {
        "name",
        "msg",
        "args",
        "levelname",
        "levelno",
        "pathname",
        "filename",
        "module",
        "exc_info",
        "exc_text",
        "stack_info",
        "lineno",
        "funcName",
        "created",
        "msecs",
        "relativeCreated",
        "thread",
        "threadName",
        "processName",
        "process",
        "taskName",
        "asctime",
    }
)

# context keys shown inline by HumanFormatter
_HUMAN_KEYS: Final[tuple[str, ...]] = ("widget_id", "captcha_id", "state")


def _iso_utc_ms(ts: float) -> str:
    dt = datetime.fromtimestamp(ts, tz=UTC)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _exc_tuple(record: logging.LogRecord):
    info = record.exc_info
    if isinstance(info, BaseException):
        return (type(info), info, info.__traceback__)
    if info is True:
        return sys.exc_info()
    if isinstance(info, tuple):
        return info
    return None


class JsonFormatter(logging.Formatter):
    """
    One JSON object per record: ts, level, logger, message, the current
    log context, keyword extras and (optionally) the exception stack.
    """

    def __init__(self, *, include_stack: bool = False) -> None:
        super().__init__()
        self.include_stack = include_stack

    def format(self, record: logging.LogRecord) -> str:
        out: dict[str, Any] = {
            "ts": _iso_utc_ms(record.created),
            "level": record.levelname,
            "logger": record.name,
        }
        msg = record.getMessage()
        if msg:
            out["message"] = msg

        ctx = _log_context.get()
        if ctx:
            out.update(ctx)

        for k, v in record.__dict__.items():
            if k in _STD_ATTRS or k in out:
                continue
            out[k] = v

        exc = _exc_tuple(record)
        if exc:
            out["error"] = {
                "type": exc[0].__name__ if exc[0] else "Exception",
                "message": str(exc[1]) if exc[1] else None,
            }
            if self.include_stack:
                out["error"]["stack"] = self.formatException(exc)
        elif record.exc_text:
            out["error"] = {"stack": record.exc_text}

        return json.dumps(out, ensure_ascii=False, separators=(",", ":"), default=repr)


class HumanFormatter(logging.Formatter):
    """Compact single-line formatter for local debugging."""

    default_time_format = "%Y-%m-%d %H:%M:%S"
    default_msec_format = "%s.%03d"

    def format(self, record: logging.LogRecord) -> str:
        s = f"{self.formatTime(record)} {record.levelname:<5} {record.name}: {record.getMessage()}"
        ctx = _log_context.get() or {}
        compact = [f"{k}={ctx[k]}" for k in _HUMAN_KEYS if ctx.get(k) is not None]
        if compact:
            s += "  [" + ", ".join(compact) + "]"
        exc = _exc_tuple(record)
        if exc:
            s += "\n" + self.formatException(exc)
        return s


# ---------- Filters / adapter ----------


class ContextFilter(logging.Filter):
    """Copy the current log context onto the record so handlers can route on it."""

    def filter(self, record: logging.LogRecord) -> bool:
        ctx = _log_context.get()
        if ctx:
            for k, v in ctx.items():
                record.__dict__.setdefault(k, v)
        return True


class _LevelBand(logging.Filter):
    def __init__(self, *, lo: int = logging.NOTSET, hi: int = logging.CRITICAL) -> None:
        super().__init__()
        self.lo = lo
        self.hi = hi

    def filter(self, record: logging.LogRecord) -> bool:
        return self.lo <= record.levelno <= self.hi


class _KwExtraAdapter(logging.LoggerAdapter):
    """
    Adapter that moves unknown keyword arguments into `extra`, so callers can write

        log.info("widget rendered", event="captcha.widget.rendered", captcha_id=cid)
    """

    _passthrough: ClassVar[frozenset[str]] = frozenset({"exc_info", "stack_info", "stacklevel", "extra"})

    def process(self, msg, kwargs):
        extra = kwargs.get("extra")
        if not isinstance(extra, dict):
            extra = {}
        for k in [k for k in kwargs if k not in self._passthrough]:
            v = kwargs.pop(k)
            key = f"field_{k}" if k in _STD_ATTRS else k
            extra.setdefault(key, v)
        kwargs["extra"] = extra
        return msg, kwargs


def _adapt(logger: logging.Logger | logging.LoggerAdapter) -> logging.LoggerAdapter:
    return logger if isinstance(logger, logging.LoggerAdapter) else _KwExtraAdapter(logger, {})


# Codes already reported by warn_once(); the runtime is single-threaded.
_WARN_ONCE_SEEN: set[str] = set()


def warn_once(
    logger: logging.Logger | logging.LoggerAdapter,
    code: str,
    msg: str,
    *,
    level: int = logging.WARNING,
    **extra: Any,
) -> None:
    """Log `msg` only the first time `code` is seen in this process."""
    if code in _WARN_ONCE_SEEN:
        return
    _WARN_ONCE_SEEN.add(code)
    _adapt(logger).log(level, msg, code=code, **extra)


# ---------- Public configuration API ----------

_ROOT_LOGGER_NAME = "captchakit"
_configured = False
_HANDLER_NAMES: Final[tuple[str, str]] = ("_captchakit_stdout_handler", "_captchakit_stderr_handler")


def _bootstrap_minimal() -> None:
    """Install a NullHandler and the context filter once."""
    global _configured
    if _configured:
        return
    lg = logging.getLogger(_ROOT_LOGGER_NAME)
    lg.setLevel(logging.DEBUG)
    if not any(isinstance(h, logging.NullHandler) for h in lg.handlers):
        lg.addHandler(logging.NullHandler())
    if not any(isinstance(f, ContextFilter) for f in lg.filters):
        lg.addFilter(ContextFilter())
    _configured = True


def get_logger(name: str | None = None) -> logging.LoggerAdapter:
    """Return a `captchakit.<name>` logger adapter accepting keyword fields."""
    _bootstrap_minimal()
    base = logging.getLogger(_ROOT_LOGGER_NAME)
    return _KwExtraAdapter(base.getChild(name) if name else base, {})


def _resolve_level(level: int | str) -> int:
    if isinstance(level, int):
        return level
    val = getattr(logging, str(level).upper(), None)
    if isinstance(val, int):
        return val
    raise ValueError(f"Invalid level name: {level!r}")


def set_level(level: int | str) -> None:
    logging.getLogger(_ROOT_LOGGER_NAME).setLevel(_resolve_level(level))


def enable_stdout_logging(
    *,
    level: int | str = logging.DEBUG,
    json_output: bool = True,
    include_stack: bool = False,
    pretty: bool = False,
    route_errors_to_stderr: bool = False,
) -> None:
    """
    Attach stream handlers to the `captchakit` logger.

    - pretty=True -> HumanFormatter; otherwise JsonFormatter (or plain text when json_output=False)
    - route_errors_to_stderr=True -> ERROR+ to stderr, the rest to stdout
    """
    lvl = _resolve_level(level)
    _bootstrap_minimal()
    lg = logging.getLogger(_ROOT_LOGGER_NAME)
    disable_stdout_logging()

    fmt: logging.Formatter
    if pretty:
        fmt = HumanFormatter()
    elif json_output:
        fmt = JsonFormatter(include_stack=include_stack)
    else:
        fmt = logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")

    out_name, err_name = _HANDLER_NAMES
    h_out = logging.StreamHandler(sys.stdout)
    h_out.set_name(out_name)
    h_out.setLevel(lvl)
    h_out.setFormatter(fmt)
    if route_errors_to_stderr:
        h_out.addFilter(_LevelBand(hi=logging.WARNING))
        h_err = logging.StreamHandler(sys.stderr)
        h_err.set_name(err_name)
        h_err.setLevel(max(lvl, logging.ERROR))
        h_err.addFilter(_LevelBand(lo=logging.ERROR))
        h_err.setFormatter(fmt)
        lg.addHandler(h_err)
    lg.addHandler(h_out)


def disable_stdout_logging() -> None:
    lg = logging.getLogger(_ROOT_LOGGER_NAME)
    for h in list(lg.handlers):
        if h.get_name() in _HANDLER_NAMES:
            lg.removeHandler(h)


def _env_flag(name: str) -> bool:
    return os.getenv(name, "").lower() in ("1", "true", "yes", "on")


def configure_from_env() -> None:
    """
    One-call setup for applications and tests.

    Env:
      - CAPTCHAKIT_LOG_STDOUT=1|true
      - CAPTCHAKIT_LOG_LEVEL=DEBUG|INFO|...
      - CAPTCHAKIT_LOG_PRETTY=1
      - CAPTCHAKIT_LOG_STACK=1
    """
    level = os.getenv("CAPTCHAKIT_LOG_LEVEL", "DEBUG")
    pretty = _env_flag("CAPTCHAKIT_LOG_PRETTY")

    _bootstrap_minimal()
    set_level(level)
    if _env_flag("CAPTCHAKIT_LOG_STDOUT"):
        enable_stdout_logging(
            level=level,
            json_output=not pretty,
            include_stack=_env_flag("CAPTCHAKIT_LOG_STACK"),
            pretty=pretty,
        )
    else:
        disable_stdout_logging()


@contextmanager
def swallow(
    *,
    logger: logging.Logger | logging.LoggerAdapter | None = None,
    level: int = logging.DEBUG,
    code: str,
    msg: str | None = None,
    reraise: bool = False,
    extra: Mapping[str, Any] | None = None,
    expected: bool = True,
):
    """
    Replace `try/except: pass` with a structured log record.

        with swallow(logger=log, code="widget.unmount.reset", level=logging.WARNING):
            api.reset(captcha_id)
    """
    adapter = _adapt(logger or get_logger("swallow"))
    try:
        yield
    except Exception:
        payload: dict[str, Any] = {"code": code, "expected": expected}
        if extra:
            payload.update(extra)
        adapter.log(level, msg or "Suppressed exception", exc_info=True, **payload)
        if reraise:
            raise


_bootstrap_minimal()
