"""A small option parser: options are followed by their values."""

from __future__ import annotations

import abc
import re
import sys
from collections.abc import Iterable
from typing import IO, Any

from ksearch.errors import BadArgumentError, UsageError
from ksearch.logger import log_warn

_INT_PREFIX = re.compile(r"\s*[+-]?\d+")
_INT_MIN = -(2**31)
_INT_MAX = 2**31 - 1


class Argument(abc.ABC):
    """An option taking between ``min_values`` and ``max_values`` values."""

    min_values = 1
    max_values = 1

    def __init__(self, option: str, description: str = "", required: bool = False) -> None:
        self.option = option
        self.description = description
        self.required = required
        self.in_use = False
        self.values: list[Any] = []

    @abc.abstractmethod
    def convert(self, text: str) -> Any:
        """Turn text into a value, raising ValueError when it cannot."""

    def mark_in_use(self) -> None:
        self.in_use = self.min_values <= len(self.values) <= self.max_values

    def add_value(self, text: str) -> None:
        """Convert and store a value; raise BadArgumentError if it is invalid."""
        try:
            value = self.convert(text)
        except ValueError as exc:
            self.in_use = False
            raise BadArgumentError(
                f"could not convert {self.option} with argument {text}: {exc}"
            ) from exc
        self.values.append(value)
        self.mark_in_use()

    def value(self, index: int = 0) -> Any:
        return self.values[index]

    def __str__(self) -> str:
        required = " (Required)" if self.required else ""
        return f"[{self.option}{required}]: {self.description}"


class IntArgument(Argument):
    """A 32-bit integer; like stoi, leading digits are read and the rest ignored."""

    def convert(self, text: str) -> int:
        match = _INT_PREFIX.match(text)
        if match is None:
            log_warn("Could not convert ", self.option, " with argument ", text,
                     " due to error: invalid integer")
            raise ValueError(f"invalid integer: {text!r}")
        value = int(match.group())
        if not _INT_MIN <= value <= _INT_MAX:
            log_warn("Could not convert ", self.option, " with argument ", text,
                     " due to error: out of range")
            raise ValueError(f"integer out of range: {text!r}")
        return value


class FlagArgument(Argument):
    """An option that takes no value."""

    min_values = 0
    max_values = 0

    def convert(self, text: str) -> bool:
        raise ValueError(f"{self.option} takes no value")


class StringArgument(Argument):
    """A single text value."""

    def convert(self, text: str) -> str:
        return text


class Parser:
    """Collects arguments and parses a command line against them."""

    def __init__(self, name: str, description: str = "") -> None:
        self.name = name
        self.description = description
        self._arguments: dict[str, Argument] = {}
        self._current: Argument | None = None

    def add_arg(self, arg: Argument) -> Parser:
        self._arguments.setdefault(arg.option, arg)
        return self

    def parse_arg(self, text: str) -> None:
        """Handle one word: an option selects itself, anything else is its value."""
        arg = self._arguments.get(text)
        if arg is not None:
            self._current = arg
            arg.mark_in_use()
        elif self._current is not None:
            self._current.add_value(text)

    def validate(self) -> bool:
        """Return True when every required argument is in use."""
        return all(arg.in_use or not arg.required for arg in self._arguments.values())

    def parse(self, argv: Iterable[str]) -> None:
        """Parse all words; words before the first option are ignored."""
        for text in argv:
            try:
                self.parse_arg(text)
            except BadArgumentError as exc:
                raise UsageError(str(exc)) from exc
        if not self.validate():
            missing = [
                option
                for option, arg in sorted(self._arguments.items())
                if arg.required and not arg.in_use
            ]
            raise UsageError(f"missing or invalid arguments: {', '.join(missing)}")

    def usage(self, stream: IO[str] | None = None) -> None:
        (stream if stream is not None else sys.stdout).write(str(self))

    def __str__(self) -> str:
        lines = [f"{self.name}: {self.description}"]
        lines.extend(str(arg) for _, arg in sorted(self._arguments.items()))
        return "\n".join(lines) + "\n"