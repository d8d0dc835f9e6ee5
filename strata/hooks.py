"""
Strata Hooks - Interception points fired by the Database registry.

Three extension points exist:
- before_register: fired once, before the default engine and table model
  types are registered, so third parties can install their own first
- before_engine: fired on every Database.get() call
- before_table_model: fired on every Database.get_table_model() call

A hook receives a mutable resolution decision. It can rewrite the
connection name, engine name or parameters, hand over a ready engine /
table model, or cancel the resolution altogether.

Usage:
    class ReadReplicaHooks(DatabaseHooks):
        def before_engine(self, resolution):
            if resolution.connection_name == "reports":
                resolution.connection_name = "replica"

    db = Database(config, hooks=[ReadReplicaHooks()])
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, Optional

if TYPE_CHECKING:
    from .database import Database
    from .engines.base import DatabaseEngine
    from .models.base import TableModel

__all__ = ["DatabaseHooks", "EngineResolution", "TableModelResolution"]


@dataclass
class EngineResolution:
    """Decision passed to ``before_engine`` hooks."""

    connection_name: str
    engine_name: str = ""
    parameters: Dict[str, Any] = field(default_factory=dict)
    engine: Optional["DatabaseEngine"] = None
    cancelled: bool = False
    reason: Optional[str] = None

    def cancel(self, reason: Optional[str] = None) -> None:
        self.cancelled = True
        self.reason = reason


@dataclass
class TableModelResolution:
    """Decision passed to ``before_table_model`` hooks."""

    table_name: str
    connection_name: str
    engine_name: str = ""
    parameters: Dict[str, Any] = field(default_factory=dict)
    table_model: Optional["TableModel"] = None
    cancelled: bool = False
    reason: Optional[str] = None

    def cancel(self, reason: Optional[str] = None) -> None:
        self.cancelled = True
        self.reason = reason


class DatabaseHooks:
    """
    Base class for registry hooks. Every method is a no-op; override the
    ones you need.
    """

    def before_register(self, database: "Database") -> None:
        pass

    def before_engine(self, resolution: EngineResolution) -> None:
        pass

    def before_table_model(self, resolution: TableModelResolution) -> None:
        pass
