"""Analysis audit log.

The analysis engine itself is silent: it is a pure function of its
input.  The layers around it (the workbench session and the web
service) record what they asked the engine and what came back, so a
student can scroll back through a session and see every check, step,
termination and simulated request in order.

Each record carries a severity, a message, and the name of the
operation that wrote it (``detect``, ``step``, ``resolve``…).  Levels
are an ``IntEnum`` so thresholds are plain ``<`` / ``>=`` comparisons.
A logger drops anything below its ``min_level`` as it is written, so a
quiet configuration never accumulates step-by-step chatter.
"""

from dataclasses import dataclass
from enum import IntEnum


class LogLevel(IntEnum):
    """How serious an audit record is, lowest first."""

    DEBUG = 0
    INFO = 1
    WARNING = 2
    ERROR = 3


@dataclass(frozen=True)
class LogEntry:
    """One audit record.

    Attributes:
        level: How serious the event is.
        message: What happened, in words.
        source: Which operation wrote it (e.g. "detect").

    """

    level: LogLevel
    message: str
    source: str

    def __str__(self) -> str:
        """Render as ``[LEVEL] source: message``."""
        return f"[{self.level.name}] {self.source}: {self.message}"


class Logger:
    """In-memory audit trail with a write-time threshold."""

    def __init__(self, *, min_level: LogLevel = LogLevel.DEBUG) -> None:
        """Create a logger with nothing recorded.

        Args:
            min_level: Records below this level are discarded.

        """
        self._min_level = min_level
        self._records: list[LogEntry] = []

    @property
    def min_level(self) -> LogLevel:
        """Return the write-time threshold."""
        return self._min_level

    @property
    def entries(self) -> list[LogEntry]:
        """Return a copy of every kept record, oldest first."""
        return self._records.copy()

    def log(self, level: LogLevel, message: str, *, source: str) -> None:
        """Record an event unless it falls below the threshold.

        Args:
            level: How serious the event is.
            message: What happened.
            source: The operation reporting it.

        """
        if level >= self._min_level:
            self._records.append(LogEntry(level, message, source))

    def filter(
        self,
        *,
        min_level: LogLevel | None = None,
        source: str | None = None,
    ) -> list[LogEntry]:
        """Select records by level and/or source.

        Args:
            min_level: Keep records at this level or above.
            source: Keep records written by this operation only.

        Returns:
            The matching records, oldest first.

        """
        return [
            entry
            for entry in self._records
            if (min_level is None or entry.level >= min_level)
            and (source is None or entry.source == source)
        ]

    def clear(self) -> None:
        """Forget every record."""
        self._records.clear()
