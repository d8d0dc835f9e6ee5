"""
Strata Models - table models and results.

Exports:
- TableModel: Abstract engine-bound CRUD facade
- RelationalTableModel: Parameterised SQL over a RelationalEngine
- DocumentTableModel: Collection CRUD over a DocumentEngine
- Result: Lazily materialised, single-pass result wrapper
"""

from .base import DEFAULT_TABLE, TableModel
from .document import DocumentTableModel
from .relational import IDENTIFIER_PATTERN, RelationalTableModel
from .result import Result

__all__ = [
    "DEFAULT_TABLE",
    "TableModel",
    "RelationalTableModel",
    "DocumentTableModel",
    "IDENTIFIER_PATTERN",
    "Result",
]
