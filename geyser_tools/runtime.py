"""Process set-up: logging and shutdown signals."""

from __future__ import annotations

import asyncio
import logging
import os
import signal
import sys

LOG_LEVEL_ENV = "LOG_LEVEL"
_HANDLER_MARK = "_geyser_tools_handler"

_LEVELS = {
    "TRACE": logging.DEBUG,
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARN": logging.WARNING,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "OFF": logging.CRITICAL + 10,
}

_COLORS = {
    logging.DEBUG: "\x1b[34m",
    logging.INFO: "\x1b[32m",
    logging.WARNING: "\x1b[33m",
    logging.ERROR: "\x1b[31m",
    logging.CRITICAL: "\x1b[31m",
}


class _Formatter(logging.Formatter):
    def __init__(self, use_color: bool) -> None:
        super().__init__("%(asctime)s %(levelname)s %(name)s: %(message)s")
        self._use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        text = super().format(record)
        if not self._use_color:
            return text
        color = _COLORS.get(record.levelno)
        if color is None:
            return text
        return text.replace(record.levelname, f"{color}{record.levelname}\x1b[0m", 1)


def _is_tty(stream) -> bool:
    try:
        return bool(stream.isatty())
    except (AttributeError, ValueError):
        return False


def _level_from_env() -> int:
    name = os.environ.get(LOG_LEVEL_ENV, "").strip().upper()
    return _LEVELS.get(name, logging.INFO)


def setup_tracing() -> None:
    """Install a stdout log handler on the root logger; level comes from LOG_LEVEL."""
    root = logging.getLogger()
    if any(getattr(handler, _HANDLER_MARK, False) for handler in root.handlers):
        raise RuntimeError("logging is already initialised")
    use_color = _is_tty(sys.stdout) and _is_tty(sys.stderr)
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(_Formatter(use_color))
    setattr(handler, _HANDLER_MARK, True)
    root.addHandler(handler)
    root.setLevel(_level_from_env())


def create_shutdown() -> asyncio.Future[None]:
    """Return a future that completes on the first SIGINT or SIGTERM.

    Must be called from inside a running event loop.
    """
    loop = asyncio.get_running_loop()
    future: asyncio.Future[None] = loop.create_future()
    signals = (signal.SIGINT, signal.SIGTERM)

    def _fire() -> None:
        for signum in signals:
            loop.remove_signal_handler(signum)
        if not future.done():
            future.set_result(None)

    for signum in signals:
        loop.add_signal_handler(signum, _fire)
    return future