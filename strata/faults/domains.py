"""
Strata Faults - Database fault types.

Every fault raised by the registry, the engines and the table models is a
``DatabaseFault``. Callers that only care about "something went wrong with
the data layer" can catch the base class; the subclasses carry the details.
"""

from typing import Any, Optional

from .core import Fault, FaultDomain, Severity


class DatabaseFault(Fault):
    """Base class for all data layer faults."""

    def __init__(
        self,
        code: str,
        message: str,
        *,
        domain: FaultDomain = FaultDomain.DATABASE,
        severity: Optional[Severity] = None,
        retryable: bool = False,
        metadata: Optional[dict[str, Any]] = None,
    ):
        super().__init__(
            code=code,
            message=message,
            domain=domain,
            severity=severity,
            retryable=retryable,
            metadata=metadata,
        )


# ============================================================================
# CONFIG Faults
# ============================================================================

class ConfigurationFault(DatabaseFault):
    """Missing or invalid DSN / URI, unknown connection name, bad config file."""

    def __init__(self, reason: str, **kwargs):
        super().__init__(
            code="DB_CONFIGURATION",
            message=reason,
            domain=FaultDomain.CONFIG,
            metadata=kwargs.get("metadata", {}),
        )


# ============================================================================
# REGISTRY Faults
# ============================================================================

class AlreadyRegisteredFault(DatabaseFault):
    """An engine or table model type with the same name is already registered."""

    def __init__(self, kind: str, name: str, **kwargs):
        self.kind = kind
        self.name = name
        super().__init__(
            code="ALREADY_REGISTERED",
            message=f"Could not register {kind}. {kind.capitalize()} '{name}' already registered.",
            domain=FaultDomain.REGISTRY,
            metadata={"kind": kind, "name": name, **kwargs.get("metadata", {})},
        )


class EngineNotFoundFault(DatabaseFault):
    """No engine type is registered under the requested name."""

    def __init__(self, name: str, available: Optional[list[str]] = None):
        super().__init__(
            code="ENGINE_NOT_FOUND",
            message=f"Could not get engine. Engine '{name}' does not exist.",
            domain=FaultDomain.REGISTRY,
            metadata={"name": name, "available": available or []},
        )


class TableModelNotFoundFault(DatabaseFault):
    """No table model type is registered under the requested name."""

    def __init__(self, name: str, available: Optional[list[str]] = None):
        super().__init__(
            code="TABLE_MODEL_NOT_FOUND",
            message=f"Could not get table model. Table model '{name}' does not exist.",
            domain=FaultDomain.REGISTRY,
            metadata={"name": name, "available": available or []},
        )


class ResolutionCancelledFault(DatabaseFault):
    """An interception hook vetoed (or failed during) a resolution step."""

    def __init__(self, target: str, reason: str, **kwargs):
        super().__init__(
            code="RESOLUTION_CANCELLED",
            message=f"Could not get {target}. {reason}",
            domain=FaultDomain.REGISTRY,
            metadata={"target": target, **kwargs.get("metadata", {})},
        )


# ============================================================================
# DATABASE Faults
# ============================================================================

class DatabaseConnectionFault(DatabaseFault):
    """The native driver could not open a connection."""

    def __init__(self, engine: str, reason: str, **kwargs):
        super().__init__(
            code="DB_CONNECTION_FAILED",
            message=f"Could not set up {engine} engine: {reason}",
            severity=Severity.FATAL,
            retryable=True,
            metadata={"engine": engine, "reason": reason, **kwargs.get("metadata", {})},
        )


class QueryFault(DatabaseFault):
    """
    Statement execution failed, or a statement could not be built.

    ``native_code`` holds the backend's own error code (SQLSTATE, SQLite
    error name, MySQL errno, ...) when the failure came from the driver.
    """

    def __init__(
        self,
        reason: str,
        *,
        native_code: Optional[str] = None,
        sql: Optional[str] = None,
        **kwargs,
    ):
        self.native_code = native_code
        message = f"Could not run query. {reason}"
        if native_code is not None:
            message += f" Error code: {native_code}"
        metadata = {"reason": reason, "native_code": native_code, **kwargs.get("metadata", {})}
        if sql is not None:
            metadata["sql"] = sql[:200]
        super().__init__(
            code="QUERY_FAILED",
            message=message,
            metadata=metadata,
        )


class TransactionFault(DatabaseFault):
    """Begin, commit or rollback failed."""

    def __init__(self, operation: str, reason: str, **kwargs):
        super().__init__(
            code="TRANSACTION_FAILED",
            message=f"Could not {operation} transaction: {reason}",
            metadata={"operation": operation, "reason": reason, **kwargs.get("metadata", {})},
        )


class TransactionUnsupportedFault(DatabaseFault):
    """The engine exposes no transaction semantics."""

    def __init__(self, engine: str, operation: str):
        super().__init__(
            code="TRANSACTION_UNSUPPORTED",
            message=f"The {engine} engine does not support transactions ({operation}).",
            metadata={"engine": engine, "operation": operation},
        )


class NotSetupFault(DatabaseFault):
    """An operation was attempted on an engine or table model before setup()."""

    def __init__(self, subject: str, operation: str):
        super().__init__(
            code="NOT_SETUP",
            message=f"Could not {operation}. {subject} has not been set up.",
            metadata={"subject": subject, "operation": operation},
        )


class EngineAlreadySetupFault(DatabaseFault):
    """setup() was called on an engine that already holds a connection."""

    def __init__(self, engine: str):
        super().__init__(
            code="ENGINE_ALREADY_SETUP",
            message=f"Could not set up {engine} engine. Engine is already set up.",
            metadata={"engine": engine},
        )
