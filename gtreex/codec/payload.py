"""Payload hooks used by the text codec and the diagnostics dumps.

A payload codec is any object with three methods:

``write(value, level, sink)``
    Emit the lines for ``value`` to ``sink``, indented with ``level`` tabs.
``read(source)``
    Consume lines from a `LineSource` up to and including the closing ``]``
    and return the decoded value.
``format(value)``
    Return a single-line rendering used by the GraphViz dump.
"""

from __future__ import annotations

import io
import json
from dataclasses import dataclass
from typing import Any, Callable, Iterator, List, Protocol, TextIO, runtime_checkable

from gtreex.errors import PayloadError, TreeIOError

TOKEN_OPEN = "{"
TOKEN_CLOSE = "}"
TOKEN_PAYLOAD_OPEN = "["
TOKEN_PAYLOAD_CLOSE = "]"


def is_token(line: str | None, token: str) -> bool:
    """True when `line` consists of `token` and surrounding whitespace only."""

    return line is not None and line.strip() == token


def emit(sink: TextIO, text: str) -> None:
    try:
        sink.write(text)
    except OSError as exc:
        raise TreeIOError(f"Failed to write to {sink!r}: {exc}") from exc


class LineSource:
    """Line reader shared by the parser and the payload hooks."""

    def __init__(self, stream: TextIO) -> None:
        self._stream = stream
        self.line_number = 0

    @classmethod
    def from_text(cls, text: str) -> "LineSource":
        return cls(io.StringIO(text))

    def readline(self) -> str | None:
        """Return the next line without its line terminator, or None at end of input."""

        try:
            line = self._stream.readline()
        except (OSError, UnicodeDecodeError) as exc:
            raise TreeIOError(f"Failed to read line {self.line_number + 1}: {exc}") from exc
        if line == "":
            return None
        self.line_number += 1
        return line.rstrip("\r\n")

    def read_block(self) -> List[str]:
        """Read stripped payload lines up to the closing ``]`` token, which is consumed."""

        lines: List[str] = []
        while True:
            line = self.readline()
            if line is None:
                raise PayloadError(
                    f"Input ended inside a payload block after line {self.line_number}."
                )
            if is_token(line, TOKEN_PAYLOAD_CLOSE):
                return lines
            lines.append(line.strip())

    def __iter__(self) -> Iterator[str]:
        while True:
            line = self.readline()
            if line is None:
                return
            yield line


@runtime_checkable
class PayloadCodec(Protocol):
    def write(self, value: Any, level: int, sink: TextIO) -> None:
        ...

    def read(self, source: LineSource) -> Any:
        ...

    def format(self, value: Any) -> str:
        ...


class IntPayloadCodec:
    """One decimal integer per payload block."""

    def write(self, value: Any, level: int, sink: TextIO) -> None:
        emit(sink, "\t" * level + f"{int(value)}\n")

    def read(self, source: LineSource) -> int:
        lines = [line for line in source.read_block() if line]
        if len(lines) != 1:
            raise PayloadError(
                f"Expected one integer before line {source.line_number}, got {len(lines)} lines."
            )
        try:
            return int(lines[0])
        except ValueError as exc:
            raise PayloadError(f"Invalid integer payload {lines[0]!r}.") from exc

    def format(self, value: Any) -> str:
        return str(value)


class JsonPayloadCodec:
    """JSON documents, written on a single line."""

    def __init__(self, *, sort_keys: bool = False) -> None:
        self.sort_keys = sort_keys

    def write(self, value: Any, level: int, sink: TextIO) -> None:
        emit(sink, "\t" * level + json.dumps(value, sort_keys=self.sort_keys) + "\n")

    def read(self, source: LineSource) -> Any:
        text = "\n".join(source.read_block())
        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise PayloadError(f"Invalid JSON payload before line {source.line_number}: {exc}") from exc

    def format(self, value: Any) -> str:
        return json.dumps(value, sort_keys=self.sort_keys)


@dataclass(frozen=True)
class CallbackPayloadCodec:
    """Adapter turning three plain callables into a payload codec."""

    write_payload: Callable[[Any, int, TextIO], None]
    read_payload: Callable[[LineSource], Any]
    format_payload: Callable[[Any], str] = repr

    def write(self, value: Any, level: int, sink: TextIO) -> None:
        self.write_payload(value, level, sink)

    def read(self, source: LineSource) -> Any:
        return self.read_payload(source)

    def format(self, value: Any) -> str:
        return self.format_payload(value)


PAYLOAD_CODECS = {
    "int": IntPayloadCodec,
    "json": JsonPayloadCodec,
}


def get_payload_codec(name: str) -> PayloadCodec:
    try:
        factory = PAYLOAD_CODECS[name.strip().lower()]
    except KeyError as exc:
        raise ValueError(
            f"Unknown payload codec '{name}'. Expected one of {sorted(PAYLOAD_CODECS)}."
        ) from exc
    return factory()


__all__ = [
    "CallbackPayloadCodec",
    "IntPayloadCodec",
    "JsonPayloadCodec",
    "LineSource",
    "PAYLOAD_CODECS",
    "PayloadCodec",
    "TOKEN_CLOSE",
    "TOKEN_OPEN",
    "TOKEN_PAYLOAD_CLOSE",
    "TOKEN_PAYLOAD_OPEN",
    "emit",
    "get_payload_codec",
    "is_token",
]
