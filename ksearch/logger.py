"""Decorated console logging, terminal colours and small OS helpers."""

from __future__ import annotations

import enum
import functools
import inspect
import os
import sys
import threading
from datetime import datetime
from typing import IO, Any


class LogLevel(enum.IntEnum):
    FATAL = 0
    WARN = 1
    DEBUG = 2
    INFO = 3


class ColorCode(enum.IntEnum):
    FG_RED = 31
    FG_GREEN = 32
    FG_YELLOW = 33
    FG_BLUE = 34
    FG_DEFAULT = 39
    BG_RED = 41
    BG_GREEN = 42
    BG_YELLOW = 43
    BG_BLUE = 44
    BG_DEFAULT = 49


def modifier(code: ColorCode | int) -> str:
    """Return the ANSI escape sequence selecting the given colour."""
    return f"\033[{int(code)}m"


def error_string(errornum: int) -> str:
    """Return the system's message for an errno value."""
    return os.strerror(errornum)


def is_directory(path: str | os.PathLike[str]) -> bool:
    """Return True when ``path`` names an existing directory."""
    return os.path.isdir(path)


_THIS_FILE = os.path.normcase(os.path.abspath(__file__))


def _caller() -> tuple[str, int]:
    frame = inspect.currentframe()
    try:
        while frame is not None:
            filename = os.path.normcase(os.path.abspath(frame.f_code.co_filename))
            if filename != _THIS_FILE:
                return os.path.basename(frame.f_code.co_filename), frame.f_lineno
            frame = frame.f_back
        return "<unknown>", 0
    finally:
        del frame


class Logger:
    """Writes one line per call; every level but INFO gets a decorated prefix."""

    def __init__(self, stream: IO[str] | None = None) -> None:
        self._stream = stream
        self._lock = threading.Lock()

    @property
    def stream(self) -> IO[str]:
        return self._stream if self._stream is not None else sys.stdout

    def format(self, level: LogLevel | int, *args: Any) -> str:
        """Build the complete log line, newline included."""
        level = LogLevel(level)
        parts: list[str] = []
        if level is not LogLevel.INFO:
            now = datetime.now()
            filename, lineno = _caller()
            parts.append(
                f"[{now.strftime('%a %b %d %Y %H:%M:%S.')}{now.microsecond:06d}]"
                f"{{{filename}:{lineno}}}"
                f"<{os.getpid()}:{threading.get_native_id()}>"
                f"({level.name}) "
            )
        parts.extend(str(arg) for arg in args)
        return "".join(parts) + "\n"

    def log(self, level: LogLevel | int, *args: Any) -> str:
        """Write a formatted line to the stream with a single write and return it."""
        text = self.format(level, *args)
        with self._lock:
            stream = self.stream
            stream.write(text)
            stream.flush()
        return text


@functools.lru_cache(maxsize=None)
def get_logger() -> Logger:
    """Return the shared logger writing to standard output."""
    return Logger()


def log_debug(*args: Any) -> str:
    return get_logger().log(LogLevel.DEBUG, *args)


def log_info(*args: Any) -> str:
    return get_logger().log(LogLevel.INFO, *args)


def log_warn(*args: Any) -> str:
    return get_logger().log(LogLevel.WARN, *args)


def log_fatal(*args: Any) -> str:
    return get_logger().log(LogLevel.FATAL, *args)