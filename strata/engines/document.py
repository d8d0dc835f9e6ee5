"""
Strata Document Engine — MongoDB through pymongo.

Every command issued through the engine's client is observed by a
``CommandLogger`` and lands in the engine's query log. The engine exposes
no transaction semantics: the four transaction methods raise
``TransactionUnsupportedFault``.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Optional

from pymongo import MongoClient
from pymongo.collection import Collection
from pymongo.database import Database as MongoDatabase
from pymongo.errors import ConfigurationError, PyMongoError

from ..faults import (
    ConfigurationFault,
    DatabaseConnectionFault,
    EngineAlreadySetupFault,
    NotSetupFault,
    TransactionUnsupportedFault,
)
from .base import DatabaseEngine
from .monitoring import CommandLogger

logger = logging.getLogger("strata.engines.document")

__all__ = ["DocumentEngine", "APP_NAME"]

APP_NAME = "Strata"

ClientFactory = Callable[..., Any]


class DocumentEngine(DatabaseEngine):
    """
    Document engine over a ``pymongo.MongoClient``.

    Parameters accepted by ``setup()``:
        uri (str, required): MongoDB connection URI
        username / password (str): Applied only when both are given
        uri_options (dict): Extra keyword arguments for the client
        client_factory (callable): Client constructor, ``MongoClient`` by default
    """

    name = "document"

    def __init__(self, client_factory: Optional[ClientFactory] = None) -> None:
        super().__init__()
        self._client_factory = client_factory
        self._client: Any = None
        self._uri: Optional[str] = None
        self._listener = CommandLogger(self)

    @property
    def connection_description(self) -> str:
        return "none" if self._uri is None else self._uri

    @property
    def listener(self) -> CommandLogger:
        return self._listener

    def setup(self, parameters: Dict[str, Any]) -> bool:
        if self._setup:
            raise EngineAlreadySetupFault(self.name)

        uri = parameters.get("uri")
        if not uri:
            raise ConfigurationFault("Could not set up document engine. No URI provided.")

        options: Dict[str, Any] = dict(parameters.get("uri_options") or {})
        if parameters.get("username") and parameters.get("password"):
            options["username"] = parameters["username"]
            options["password"] = parameters["password"]
        options["appname"] = APP_NAME
        options["event_listeners"] = list(options.get("event_listeners") or []) + [self._listener]

        factory = parameters.get("client_factory") or self._client_factory or MongoClient
        try:
            self._client = factory(uri, **options)
        except (PyMongoError, ConfigurationError, ValueError, TypeError) as exc:
            raise DatabaseConnectionFault(self.name, f"pymongo raised: '{exc}'") from exc

        self._uri = uri
        self._setup = True
        logger.info(f"Document engine connected: {uri}")
        return True

    def teardown(self) -> bool:
        if self._client is not None:
            self._client.close()
            logger.info(f"Document engine disconnected: {self._uri}")
        self._client = None
        self._setup = False
        return True

    # ── Accessors ────────────────────────────────────────────────────

    @property
    def client(self) -> Any:
        """The underlying client (advanced use)."""
        self._ensure_setup("access client")
        return self._client

    def database(self, name: str) -> MongoDatabase:
        self._ensure_setup("access database")
        return self._client[name]

    def collection(self, collection_string: str) -> Collection:
        """Resolve ``"database.collection"`` to a collection handle."""
        database_name, _, collection_name = collection_string.partition(".")
        if not database_name or not collection_name:
            raise ConfigurationFault(
                f"Could not load collection. '{collection_string}' is not a valid collection string."
            )
        return self.database(database_name)[collection_name]

    def _ensure_setup(self, operation: str) -> None:
        if not self._setup or self._client is None:
            raise NotSetupFault("Document engine", operation)

    # ── Transaction management ───────────────────────────────────────

    def transaction_start(self) -> bool:
        raise TransactionUnsupportedFault(self.name, "start")

    def transaction_end(self) -> bool:
        raise TransactionUnsupportedFault(self.name, "end")

    def transaction_commit(self) -> bool:
        raise TransactionUnsupportedFault(self.name, "commit")

    def transaction_rollback(self) -> bool:
        raise TransactionUnsupportedFault(self.name, "rollback")
