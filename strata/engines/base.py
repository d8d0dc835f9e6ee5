"""
Strata Engine — Base Engine Interface.

All backend engines must implement this interface. The ``Database``
registry creates one engine per connection name, calls ``setup()`` with the
connection parameters and ``teardown()`` exactly once at shutdown.

The interface covers:
- Identity (``name``, ``connection_description``)
- Lifecycle (``setup`` / ``teardown`` / ``is_setup``)
- Transaction control
- Query instrumentation (``log_query`` / ``queries``)
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from .querylog import QueryLog, QueryLogEntry

logger = logging.getLogger("strata.engines")

__all__ = ["DatabaseEngine"]


class DatabaseEngine(ABC):
    """
    Abstract engine interface.

    Subclasses set the class attribute ``name`` (stable, lowercase). The
    registry keys its engine types by that name and its table model types
    by the same name, so an engine and the table model that drives it share
    one identifier.

    ``setup()`` must only be called on an engine that is not set up yet;
    callers check ``is_setup`` first.
    """

    name: str = "base"

    def __init__(self) -> None:
        self._setup = False
        self._query_log = QueryLog()

    # ── Lifecycle ────────────────────────────────────────────────────

    @property
    def is_setup(self) -> bool:
        """Whether ``setup()`` completed successfully."""
        return self._setup

    @property
    @abstractmethod
    def connection_description(self) -> str:
        """Human readable connection identity (DSN / URI), or ``"none"``."""
        ...

    @abstractmethod
    def setup(self, parameters: Dict[str, Any]) -> bool:
        """Open the backend connection."""
        ...

    @abstractmethod
    def teardown(self) -> bool:
        """Release the backend connection."""
        ...

    # ── Transaction management ───────────────────────────────────────

    @abstractmethod
    def transaction_start(self) -> bool:
        ...

    @abstractmethod
    def transaction_end(self) -> bool:
        ...

    @abstractmethod
    def transaction_commit(self) -> bool:
        ...

    @abstractmethod
    def transaction_rollback(self) -> bool:
        ...

    # ── Instrumentation ──────────────────────────────────────────────

    def log_query(
        self,
        query_string: str,
        query_data: int = 0,
        query_timings: float = 0.0,
        query_error: Optional[Dict[str, Any]] = None,
    ) -> QueryLogEntry:
        """Append one entry to this engine's query log."""
        entry = self._query_log.append(query_string, query_data, query_timings, query_error)
        if entry.failed:
            logger.debug(f"[{self.name}] {query_string} failed: {entry.query_error}")
        else:
            logger.debug(
                f"[{self.name}] {query_string} ({entry.query_data} rows, {entry.query_timings:.6f}s)"
            )
        return entry

    @property
    def query_log(self) -> QueryLog:
        return self._query_log

    @property
    def queries(self) -> List[QueryLogEntry]:
        """Snapshot of every logged statement, in completion order."""
        return list(self._query_log.entries)

    def __repr__(self) -> str:
        return (
            f"<{self.__class__.__name__} name={self.name!r} "
            f"connection={self.connection_description!r} setup={self.is_setup}>"
        )
