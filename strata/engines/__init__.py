"""
Strata Engines - live handles to one backend connection each.

Exports:
- DatabaseEngine: Abstract engine interface
- RelationalEngine: DB-API 2.0 (sqlite3, psycopg2, pymysql)
- DocumentEngine: MongoDB (pymongo)
- PreparedStatement: Timed, logged statement wrapper
- QueryLog / QueryLogEntry: Per-engine instrumentation
"""

from .base import DatabaseEngine
from .document import DocumentEngine
from .monitoring import CommandLogger
from .querylog import QueryLog, QueryLogEntry
from .relational import RelationalEngine
from .statement import PreparedStatement

__all__ = [
    "DatabaseEngine",
    "RelationalEngine",
    "DocumentEngine",
    "PreparedStatement",
    "CommandLogger",
    "QueryLog",
    "QueryLogEntry",
]
