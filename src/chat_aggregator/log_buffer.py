"""
Bounded Log Buffer

A logging handler that keeps the most recent records in memory so a run's
diagnostics can be queried or exported after the fact. Instances are created
by the caller and handed to the orchestrator, which attaches the buffer only
for the duration of a run.
"""

import json
import logging
from collections import deque
from contextlib import contextmanager
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Iterator, Optional


@dataclass(frozen=True)
class LogEntry:
    """One captured log record."""

    level: str
    message: str
    timestamp: datetime
    logger: str
    agent_id: Optional[str] = None
    error: Optional[str] = None


class LogBuffer(logging.Handler):
    """
    Bounded in-memory log buffer.

    Oldest entries are dropped once capacity is reached.

    Usage:
        >>> buffer = LogBuffer(capacity=500)
        >>> with buffer.attached("chat_aggregator"):
        ...     await orchestrator.run(request)
        >>> buffer.query(level="ERROR", agent_id="claude")
    """

    def __init__(self, capacity: int = 1000, level: int = logging.DEBUG):
        super().__init__(level=level)
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.capacity = capacity
        self._entries: deque[LogEntry] = deque(maxlen=capacity)

    def __len__(self) -> int:
        return len(self._entries)

    def emit(self, record: logging.LogRecord) -> None:
        error = None
        if record.exc_info and record.exc_info[1] is not None:
            error = repr(record.exc_info[1])

        self.append(
            LogEntry(
                level=record.levelname,
                message=record.getMessage(),
                timestamp=datetime.fromtimestamp(record.created, tz=timezone.utc),
                logger=record.name,
                agent_id=getattr(record, "agent_id", None),
                error=error,
            )
        )

    def append(self, entry: LogEntry) -> None:
        self._entries.append(entry)

    def query(
        self,
        level: Optional[str] = None,
        agent_id: Optional[str] = None,
    ) -> list[LogEntry]:
        """
        Return captured entries, oldest first.

        Args:
            level: Only entries with this level name (e.g. "ERROR")
            agent_id: Only entries logged for this agent
        """
        level = level.upper() if level else None
        return [
            entry
            for entry in self._entries
            if (level is None or entry.level == level)
            and (agent_id is None or entry.agent_id == agent_id)
        ]

    def clear(self) -> None:
        self._entries.clear()

    def export(self) -> str:
        """Serialize all entries to a JSON array."""
        return json.dumps(
            [
                {**asdict(entry), "timestamp": entry.timestamp.isoformat()}
                for entry in self._entries
            ],
            indent=2,
        )

    @contextmanager
    def attached(self, logger_name: str) -> Iterator["LogBuffer"]:
        """
        Attach to a logger for the duration of the block.

        The logger is lowered to the buffer's level while attached, so
        records are captured even when the host never configured logging.
        """
        target = logging.getLogger(logger_name)
        saved_level = target.level
        if target.getEffectiveLevel() > self.level:
            target.setLevel(self.level)
        target.addHandler(self)
        try:
            yield self
        finally:
            target.removeHandler(self)
            target.setLevel(saved_level)
