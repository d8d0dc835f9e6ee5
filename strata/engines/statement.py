"""
Strata Prepared Statement — timing, logging and failure propagation
around a single parameterised DB-API statement.

The wrapper owns one driver cursor. Only ``execute()`` adds behaviour; every
other member is a plain pass-through to that cursor.
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Any, Dict, Iterator, List, Mapping, Optional, Sequence, Union

from ..faults import QueryFault

if TYPE_CHECKING:
    from .relational import RelationalEngine

__all__ = ["PreparedStatement", "BINDING_ERRORS"]

Parameters = Union[Mapping[str, Any], Sequence[Any]]

# Raised by pyformat drivers while binding, outside the DB-API Error tree
BINDING_ERRORS = (KeyError, TypeError, ValueError)


class PreparedStatement:
    """
    A statement bound to a ``RelationalEngine``.

    ``sql`` uses ``:field`` named placeholders; the engine translates them to
    its driver's paramstyle once, at construction.
    """

    def __init__(
        self,
        engine: "RelationalEngine",
        sql: str,
        options: Optional[Dict[str, Any]] = None,
    ):
        self._engine = engine
        self._query_string = sql
        self._native_sql = engine.adapt_sql(sql)
        self.options: Dict[str, Any] = dict(options or {})
        self._cursor = engine.cursor()
        self._executed = False

    @property
    def query_string(self) -> str:
        """The statement text as written by the caller."""
        return self._query_string

    @property
    def engine(self) -> "RelationalEngine":
        return self._engine

    @property
    def executed(self) -> bool:
        return self._executed

    def execute(self, parameters: Optional[Parameters] = None) -> bool:
        """
        Execute with bound ``parameters``.

        Exactly one log entry is appended to the owning engine per call. A
        driver failure marks the engine's transaction as failed and raises
        ``QueryFault`` with the native error code.
        """
        # Deferred: relational.py imports this module
        from .relational import native_error

        started = time.perf_counter()
        try:
            self._cursor.execute(self._native_sql, parameters if parameters is not None else {})
        except self._engine.driver_errors + BINDING_ERRORS as exc:
            elapsed = time.perf_counter() - started
            error = native_error(exc)
            self._engine.log_query(self._query_string, 0, elapsed, error)
            self._engine.transaction_fail()
            raise QueryFault(
                f"Database returned an error: {error['message']}",
                native_code=error["code"],
                sql=self._query_string,
            ) from exc
        elapsed = time.perf_counter() - started

        self._engine.log_query(self._query_string, self._cursor.rowcount, elapsed)
        self._executed = True
        return True

    # ── Cursor pass-through ──────────────────────────────────────────

    def fetchone(self) -> Optional[Dict[str, Any]]:
        return self._cursor.fetchone()

    def fetchall(self) -> List[Dict[str, Any]]:
        return list(self._cursor.fetchall())

    def fetchmany(self, size: Optional[int] = None) -> List[Dict[str, Any]]:
        if size is None:
            return list(self._cursor.fetchmany())
        return list(self._cursor.fetchmany(size))

    @property
    def rowcount(self) -> int:
        return self._cursor.rowcount

    @property
    def lastrowid(self) -> Optional[int]:
        return getattr(self._cursor, "lastrowid", None)

    @property
    def description(self) -> Any:
        return self._cursor.description

    def close(self) -> None:
        self._cursor.close()

    def __iter__(self) -> Iterator[Dict[str, Any]]:
        return iter(self._cursor)

    def __repr__(self) -> str:
        return f"<PreparedStatement {self._query_string!r} executed={self._executed}>"
