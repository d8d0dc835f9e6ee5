"""
Strata Query Log — per-engine record of executed statements.

Each engine owns one ``QueryLog``. Entries are appended synchronously right
after a statement returns (or fails), so the log order is completion order.
The debug panel reads these entries to build its timing/error summaries.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional

__all__ = ["QueryLogEntry", "QueryLog"]


@dataclass(frozen=True)
class QueryLogEntry:
    """Telemetry for one execution attempt."""

    query_string: str
    query_data: int = 0
    query_timings: float = 0.0
    query_error: Optional[Dict[str, Any]] = None

    @property
    def failed(self) -> bool:
        return bool(self.query_error)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "query_string": self.query_string,
            "query_data": self.query_data,
            "query_timings": self.query_timings,
            "query_error": dict(self.query_error) if self.query_error else {},
        }


@dataclass
class QueryLog:
    """Ordered, append-only buffer of ``QueryLogEntry`` values."""

    entries: List[QueryLogEntry] = field(default_factory=list)

    def append(
        self,
        query_string: str,
        query_data: int = 0,
        query_timings: float = 0.0,
        query_error: Optional[Dict[str, Any]] = None,
    ) -> QueryLogEntry:
        entry = QueryLogEntry(
            query_string=query_string,
            query_data=max(int(query_data or 0), 0),
            query_timings=float(query_timings),
            query_error=dict(query_error) if query_error else None,
        )
        self.entries.append(entry)
        return entry

    @property
    def total_timings(self) -> float:
        return sum(entry.query_timings for entry in self.entries)

    @property
    def errors(self) -> List[QueryLogEntry]:
        return [entry for entry in self.entries if entry.failed]

    def __iter__(self) -> Iterator[QueryLogEntry]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    def __getitem__(self, index: int) -> QueryLogEntry:
        return self.entries[index]
