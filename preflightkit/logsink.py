"""A log sink that writes plain lines into a shared text buffer."""

from __future__ import annotations

import io
from typing import Any, Optional

DBG = 1
TRC = 2


def _render(value: Any) -> str:
    if value is None:
        return "<nil>"
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _render_values(values: tuple[Any, ...]) -> str:
    return "[" + " ".join(_render(v) for v in values) + "]"


class BufferSink:
    """Collects log lines in a text buffer shared among named sinks.

    With no ``max_level`` every verbosity level is enabled.
    """

    def __init__(
        self,
        buffer: Optional[io.StringIO] = None,
        name: str = "",
        max_level: Optional[int] = None,
    ) -> None:
        self.buffer = buffer if buffer is not None else io.StringIO()
        self.name = name
        self.max_level = max_level

    def enabled(self, level: int) -> bool:
        """Report whether messages at ``level`` are recorded."""
        return self.max_level is None or level <= self.max_level

    def info(self, msg: str, *args: Any) -> None:
        self.buffer.write(f"{self.name} {msg} {_render_values(args)}\n")

    def error(self, err: BaseException, msg: str, *args: Any) -> None:
        self.buffer.write(f"{self.name} {err} {msg} {_render_values(args)}\n")

    def with_name(self, name: str) -> "BufferSink":
        """Return a sink with the given name writing to the same buffer."""
        return BufferSink(self.buffer, name, self.max_level)

    def getvalue(self) -> str:
        return self.buffer.getvalue()