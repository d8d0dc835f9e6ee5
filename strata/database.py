"""
Strata Database - Connection registry.

Resolves connection names to live engines and ``(connection, table)`` pairs
to live table models, creating and setting them up on first use. One
registry is built per process (or per request) and passed to whatever
needs data access; there is no module-level instance.

Usage:
    config = DatabaseConfig.load(["config/databases.yaml"])

    with Database(config) as db:
        engine = db.get()                      # "default" connection
        users = db.get_table_model("users")    # table model on "default"
        users.create({"name": "ada"})
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence, Type, Union

from .config import DatabaseConfig
from .engines.base import DatabaseEngine
from .engines.document import DocumentEngine
from .engines.relational import RelationalEngine
from .faults import (
    AlreadyRegisteredFault,
    ConfigurationFault,
    EngineNotFoundFault,
    ResolutionCancelledFault,
    TableModelNotFoundFault,
)
from .hooks import DatabaseHooks, EngineResolution, TableModelResolution
from .models.base import TableModel
from .models.document import DocumentTableModel
from .models.relational import RelationalTableModel

logger = logging.getLogger("strata.db")

__all__ = ["Database", "DEFAULT_CONNECTION"]

DEFAULT_CONNECTION = "default"


class Database:
    """
    Connection registry.

    Engines and table models are resolved in this order:
    1. A hook handed over a ready instance: install it (set it up if needed)
    2. A live instance already exists: return it, parameters are ignored
    3. ``engine_name`` and ``parameters`` were given: build and set up a new one
    4. Otherwise use the static configuration for the connection name

    Registered types are looked up by lowercased ``name``. The default types
    are registered lazily on the first type lookup, after the
    ``before_register`` hooks had their chance to install their own.
    """

    def __init__(
        self,
        config: Union[DatabaseConfig, Mapping[str, Any], None] = None,
        hooks: Optional[Sequence[DatabaseHooks]] = None,
        panel: Any = None,
    ):
        if config is None:
            config = DatabaseConfig()
        elif not isinstance(config, DatabaseConfig):
            config = DatabaseConfig.from_dict(config)

        self.config: DatabaseConfig = config
        self.hooks: List[DatabaseHooks] = list(hooks or [])
        self.panel = panel

        self._engines: Dict[str, Type[DatabaseEngine]] = {}
        self._table_models: Dict[str, Type[TableModel]] = {}
        self._connections: Dict[str, DatabaseEngine] = {}
        self._tables: Dict[str, TableModel] = {}
        self._components_loaded = False

    # ── Resolution ───────────────────────────────────────────────────

    def get(
        self,
        connection_name: str = DEFAULT_CONNECTION,
        engine_name: str = "",
        parameters: Optional[Dict[str, Any]] = None,
    ) -> DatabaseEngine:
        """
        Return the live engine for ``connection_name``.

        Raises:
            ResolutionCancelledFault: A hook cancelled (or failed during) resolution
            ConfigurationFault: Connection unknown to the static configuration
            EngineNotFoundFault: Requested engine type is not registered
            DatabaseConnectionFault: The engine could not connect
        """
        resolution = EngineResolution(
            connection_name=connection_name,
            engine_name=engine_name.lower(),
            parameters=dict(parameters or {}),
        )
        self._fire("database", "before_engine", resolution)
        if resolution.cancelled:
            raise ResolutionCancelledFault(
                "database", resolution.reason or "Cancelled by before_engine hook."
            )

        name = resolution.connection_name

        if resolution.engine is not None:
            engine = resolution.engine
            if not engine.is_setup:
                engine.setup(resolution.parameters)
            return self._install(name, engine)

        if name in self._connections:
            return self._connections[name]

        if resolution.engine_name and resolution.parameters:
            engine = self.fetch_engine(resolution.engine_name)()
            engine.setup(resolution.parameters)
            return self._install(name, engine)

        configured = self.config.get(name)
        if configured is None:
            raise ConfigurationFault(
                f"Could not get database. Connection '{name}' not found in config."
            )
        engine = self.fetch_engine(configured.engine)()
        engine.setup(dict(configured.parameters))
        return self._install(name, engine)

    def get_table_model(
        self,
        table_name: str,
        connection_name: str = DEFAULT_CONNECTION,
        engine_name: str = "",
        parameters: Optional[Dict[str, Any]] = None,
    ) -> TableModel:
        """Return the live table model for ``(connection_name, table_name)``."""
        resolution = TableModelResolution(
            table_name=table_name,
            connection_name=connection_name,
            engine_name=engine_name.lower(),
            parameters=dict(parameters or {}),
        )
        self._fire("table model", "before_table_model", resolution)
        if resolution.cancelled:
            raise ResolutionCancelledFault(
                "table model", resolution.reason or "Cancelled by before_table_model hook."
            )

        key = self._table_key(resolution.connection_name, resolution.table_name)

        if resolution.table_model is not None:
            model = resolution.table_model
            if not model.is_setup:
                engine = self.get(resolution.connection_name, model.engine_name, resolution.parameters)
                model.setup(engine, resolution.table_name)
            self._tables[key] = model
            return model

        if key in self._tables:
            return self._tables[key]

        engine = self.get(resolution.connection_name, resolution.engine_name, resolution.parameters)
        model = self.fetch_table_model(engine.name)()
        model.setup(engine, resolution.table_name)
        self._tables[key] = model
        logger.debug(f"Table model '{key}' created ({model.name})")
        return model

    def _install(self, name: str, engine: DatabaseEngine) -> DatabaseEngine:
        previous = self._connections.get(name)
        self._connections[name] = engine
        if previous is not engine:
            logger.debug(f"Connection '{name}' installed: {engine.connection_description}")
            if self.panel is not None:
                self.panel.register(engine)
        return engine

    def _fire(self, target: str, hook_name: str, resolution: Any) -> None:
        for hook in self.hooks:
            try:
                getattr(hook, hook_name)(resolution)
            except ResolutionCancelledFault:
                raise
            except Exception as exc:
                raise ResolutionCancelledFault(
                    target, f"{hook_name} hook raised {exc.__class__.__name__}: '{exc}'"
                ) from exc
            if resolution.cancelled:
                return

    @staticmethod
    def _table_key(connection_name: str, table_name: str) -> str:
        return f"{connection_name}|{table_name}"

    # ── Type registry ────────────────────────────────────────────────

    def fetch_engine(self, engine_name: str) -> Type[DatabaseEngine]:
        engine_name = engine_name.lower()
        self._load_components()
        if engine_name in self._engines:
            return self._engines[engine_name]
        raise EngineNotFoundFault(engine_name, sorted(self._engines))

    def fetch_table_model(self, table_model_name: str) -> Type[TableModel]:
        table_model_name = table_model_name.lower()
        self._load_components()
        if table_model_name in self._table_models:
            return self._table_models[table_model_name]
        raise TableModelNotFoundFault(table_model_name, sorted(self._table_models))

    def register_engine(self, engine_class: Type[DatabaseEngine]) -> bool:
        if not (isinstance(engine_class, type) and issubclass(engine_class, DatabaseEngine)):
            raise TypeError(f"Expected a DatabaseEngine subclass, got {engine_class!r}")
        name = engine_class.name.lower()
        if name in self._engines:
            raise AlreadyRegisteredFault("engine", name)
        self._engines[name] = engine_class
        logger.info(f"Registered database engine: '{name}'")
        return True

    def register_table_model(self, table_model_class: Type[TableModel]) -> bool:
        if not (isinstance(table_model_class, type) and issubclass(table_model_class, TableModel)):
            raise TypeError(f"Expected a TableModel subclass, got {table_model_class!r}")
        name = table_model_class.name.lower()
        if name in self._table_models:
            raise AlreadyRegisteredFault("table model", name)
        self._table_models[name] = table_model_class
        logger.info(f"Registered table model type: '{name}'")
        return True

    def _load_components(self) -> bool:
        if self._components_loaded:
            return False
        # Flag first: hooks may call fetch_* themselves
        self._components_loaded = True

        for hook in self.hooks:
            try:
                hook.before_register(self)
            except Exception as exc:
                raise ResolutionCancelledFault(
                    "database engines", f"before_register hook raised {exc.__class__.__name__}: '{exc}'"
                ) from exc

        for engine_class in (RelationalEngine, DocumentEngine):
            if engine_class.name in self._engines:
                logger.debug(f"Default engine '{engine_class.name}' overridden by a hook")
                continue
            self.register_engine(engine_class)

        for model_class in (RelationalTableModel, DocumentTableModel):
            if model_class.name in self._table_models:
                logger.debug(f"Default table model '{model_class.name}' overridden by a hook")
                continue
            self.register_table_model(model_class)
        return True

    # ── Accessors ────────────────────────────────────────────────────

    @property
    def engines(self) -> Dict[str, Type[DatabaseEngine]]:
        return dict(self._engines)

    @property
    def table_models(self) -> Dict[str, Type[TableModel]]:
        return dict(self._table_models)

    @property
    def connections(self) -> Dict[str, DatabaseEngine]:
        return dict(self._connections)

    @property
    def tables(self) -> Dict[str, TableModel]:
        return dict(self._tables)

    # ── Shutdown ─────────────────────────────────────────────────────

    def shutdown(self) -> None:
        """
        Tear down every live connection.

        A failing teardown is logged and the loop moves on to the next
        connection. The connection and table maps are empty afterwards.
        """
        torn_down = set()
        for name, engine in list(self._connections.items()):
            # One engine may serve several connection names
            if id(engine) in torn_down:
                continue
            torn_down.add(id(engine))
            try:
                engine.teardown()
            except Exception as exc:
                logger.error(f"Teardown of connection '{name}' failed: {exc}")
        if self._connections:
            logger.info(f"Database registry shut down ({len(self._connections)} connections)")
        self._connections.clear()
        self._tables.clear()

    def __enter__(self) -> "Database":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.shutdown()

    def __repr__(self) -> str:
        return (
            f"<Database connections={sorted(self._connections)!r} "
            f"tables={sorted(self._tables)!r}>"
        )
