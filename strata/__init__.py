"""
Strata - Database access layer

Application code talks to one contract; concrete stores plug in behind it:
- Database: Connection registry resolving names to live engines / table models
- Engines: Relational (DB-API 2.0) and document (MongoDB) connections
- Table models: CRUD facades bound to one table or collection
- Query log: Per-engine timing, row count and error instrumentation
- Faults: Structured error handling with fault domains
- Debug panel and query cache
"""

__version__ = "0.1.0"

# ============================================================================
# Registry & Configuration
# ============================================================================

from .config import ConnectionConfig, DatabaseConfig
from .database import DEFAULT_CONNECTION, Database
from .hooks import DatabaseHooks, EngineResolution, TableModelResolution

# ============================================================================
# Engines & Table Models
# ============================================================================

from .engines import (
    CommandLogger,
    DatabaseEngine,
    DocumentEngine,
    PreparedStatement,
    QueryLog,
    QueryLogEntry,
    RelationalEngine,
)
from .models import (
    DocumentTableModel,
    RelationalTableModel,
    Result,
    TableModel,
)

# ============================================================================
# Faults
# ============================================================================

from .faults import (
    AlreadyRegisteredFault,
    ConfigurationFault,
    DatabaseConnectionFault,
    DatabaseFault,
    EngineAlreadySetupFault,
    EngineNotFoundFault,
    Fault,
    FaultDomain,
    NotSetupFault,
    QueryFault,
    ResolutionCancelledFault,
    Severity,
    TableModelNotFoundFault,
    TransactionFault,
    TransactionUnsupportedFault,
)

# ============================================================================
# Extras
# ============================================================================

from .cache import QueryCache
from .debug import DatabasePanel

__all__ = [
    "__version__",
    # Registry & configuration
    "Database",
    "DEFAULT_CONNECTION",
    "DatabaseConfig",
    "ConnectionConfig",
    "DatabaseHooks",
    "EngineResolution",
    "TableModelResolution",
    # Engines
    "DatabaseEngine",
    "RelationalEngine",
    "DocumentEngine",
    "PreparedStatement",
    "CommandLogger",
    "QueryLog",
    "QueryLogEntry",
    # Table models
    "TableModel",
    "RelationalTableModel",
    "DocumentTableModel",
    "Result",
    # Faults
    "Fault",
    "FaultDomain",
    "Severity",
    "DatabaseFault",
    "ConfigurationFault",
    "DatabaseConnectionFault",
    "QueryFault",
    "TransactionFault",
    "TransactionUnsupportedFault",
    "ResolutionCancelledFault",
    "AlreadyRegisteredFault",
    "EngineNotFoundFault",
    "TableModelNotFoundFault",
    "NotSetupFault",
    "EngineAlreadySetupFault",
    # Extras
    "QueryCache",
    "DatabasePanel",
]
