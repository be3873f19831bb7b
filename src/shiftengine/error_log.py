"""Bounded in-memory log of recent errors and shortages."""

from collections import deque
from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class ErrorLogEntry:
    time: datetime
    message: str
    detail: str = ""


class ErrorLogBuffer:
    """Keeps the most recent entries, newest first.

    Example:
        >>> buffer = ErrorLogBuffer(max_entries=2)
        >>> buffer.add_error("first")
        >>> buffer.add_error("second")
        >>> buffer.add_error("third")
        >>> [e.message for e in buffer.recent()]
        ['third', 'second']
    """

    def __init__(self, max_entries: int = 200):
        self._entries: deque[ErrorLogEntry] = deque(maxlen=max_entries)

    def add_error(self, message: Optional[str], error: Optional[BaseException] = None) -> None:
        """Record a message, optionally with the exception that caused it."""
        detail = f"{type(error).__name__}: {error}" if error is not None else ""
        self._entries.appendleft(ErrorLogEntry(datetime.now(), message or "", detail))

    def recent(self) -> list[ErrorLogEntry]:
        return list(self._entries)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
