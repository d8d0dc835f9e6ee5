"""
Strata Table Model — engine-bound CRUD facade over one table / collection.

A table model is created empty by the registry, bound once with
``setup(engine, table_name)`` and cached by ``(connection, table)``. The
engine is shared with every other model on the same connection; the model
never tears it down.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Type

from ..engines.base import DatabaseEngine
from ..faults import NotSetupFault

__all__ = ["TableModel", "DEFAULT_TABLE"]

DEFAULT_TABLE = "default"


class TableModel(ABC):
    """
    Abstract table model.

    Subclasses set ``name`` (the key the registry stores the model type
    under), ``engine_name`` (the engine type the model drives) and
    ``engine_class`` (checked in ``setup()``).

    Every CRUD method accepts ``table``; ``"default"`` selects the table the
    model was bound to.
    """

    name: str = "base"
    engine_name: str = "base"
    engine_class: Type[DatabaseEngine] = DatabaseEngine

    def __init__(self) -> None:
        self._engine: Optional[DatabaseEngine] = None
        self._table_name: Optional[str] = None
        self._setup = False

    def setup(self, engine: DatabaseEngine, table_name: str) -> bool:
        if not isinstance(engine, self.engine_class):
            raise TypeError(
                f"{self.__class__.__name__} requires a {self.engine_class.__name__}, "
                f"got {engine.__class__.__name__}"
            )
        self._engine = engine
        self._table_name = table_name
        self._setup = True
        return True

    @property
    def is_setup(self) -> bool:
        return self._setup

    @property
    def engine(self) -> DatabaseEngine:
        self._ensure_setup("access engine")
        return self._engine  # type: ignore[return-value]

    @property
    def table_name(self) -> Optional[str]:
        return self._table_name

    def _ensure_setup(self, operation: str) -> None:
        if not self._setup or self._engine is None:
            raise NotSetupFault(self.__class__.__name__, operation)

    def _resolve_table(self, table: str) -> str:
        return self._table_name if table == DEFAULT_TABLE else table  # type: ignore[return-value]

    # ── CRUD ─────────────────────────────────────────────────────────

    @abstractmethod
    def create(self, data: Any, options: Optional[Dict[str, Any]] = None, table: str = DEFAULT_TABLE) -> int:
        """Insert one record (mapping) or many (sequence of mappings); returns the affected count."""
        ...

    @abstractmethod
    def read(self, filter: Optional[Dict[str, Any]] = None, options: Optional[Dict[str, Any]] = None, table: str = DEFAULT_TABLE) -> Any:
        ...

    @abstractmethod
    def update(self, data: Dict[str, Any], filter: Dict[str, Any], options: Optional[Dict[str, Any]] = None, table: str = DEFAULT_TABLE) -> int:
        ...

    @abstractmethod
    def delete(self, filter: Dict[str, Any], options: Optional[Dict[str, Any]] = None, table: str = DEFAULT_TABLE) -> int:
        ...

    # ── Transaction passthrough ──────────────────────────────────────

    def transaction_start(self) -> bool:
        self._ensure_setup("start transaction")
        return self._engine.transaction_start()  # type: ignore[union-attr]

    def transaction_end(self) -> bool:
        self._ensure_setup("end transaction")
        return self._engine.transaction_end()  # type: ignore[union-attr]

    def transaction_commit(self) -> bool:
        self._ensure_setup("commit transaction")
        return self._engine.transaction_commit()  # type: ignore[union-attr]

    def transaction_rollback(self) -> bool:
        self._ensure_setup("rollback transaction")
        return self._engine.transaction_rollback()  # type: ignore[union-attr]

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} table={self._table_name!r} setup={self._setup}>"
