"""
Strata Faults - typed failures for the data layer.

Faults are structured exceptions: every one carries a stable code, a
domain, a severity and metadata alongside its human-readable message.

Core exports:
- Fault: Base fault class
- FaultDomain: Domain enumeration
- Severity: Severity levels
- DatabaseFault and its subclasses
"""

from .core import (
    DOMAIN_DEFAULTS,
    Fault,
    FaultDomain,
    Severity,
)

from .domains import (
    AlreadyRegisteredFault,
    ConfigurationFault,
    DatabaseConnectionFault,
    DatabaseFault,
    EngineAlreadySetupFault,
    EngineNotFoundFault,
    NotSetupFault,
    QueryFault,
    ResolutionCancelledFault,
    TableModelNotFoundFault,
    TransactionFault,
    TransactionUnsupportedFault,
)

__all__ = [
    # Core types
    "DOMAIN_DEFAULTS",
    "Fault",
    "FaultDomain",
    "Severity",
    # Database faults
    "DatabaseFault",
    "ConfigurationFault",
    "AlreadyRegisteredFault",
    "EngineNotFoundFault",
    "TableModelNotFoundFault",
    "ResolutionCancelledFault",
    "DatabaseConnectionFault",
    "QueryFault",
    "TransactionFault",
    "TransactionUnsupportedFault",
    "NotSetupFault",
    "EngineAlreadySetupFault",
]
