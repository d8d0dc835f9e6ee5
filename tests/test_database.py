"""
Database Registry Tests — connection / table model resolution, type
registration, hooks and shutdown.
"""

import pytest

from strata.database import Database
from strata.debug import DatabasePanel
from strata.engines.document import DocumentEngine
from strata.engines.relational import RelationalEngine
from strata.faults import (
    AlreadyRegisteredFault,
    ConfigurationFault,
    DatabaseConnectionFault,
    EngineNotFoundFault,
    QueryFault,
    ResolutionCancelledFault,
    TableModelNotFoundFault,
)
from strata.hooks import DatabaseHooks
from strata.models.base import TableModel
from strata.models.document import DocumentTableModel
from strata.models.relational import RelationalTableModel

from conftest import MEMORY_DSN, BrokenTeardownEngine, StubEngine, make_database, mongomock_factory


class StubTableModel(TableModel):
    name = "stub"
    engine_name = "stub"
    engine_class = StubEngine

    def create(self, data, options=None, table="default"):
        return 0

    def read(self, filter=None, options=None, table="default"):
        return []

    def update(self, data, filter, options=None, table="default"):
        return 0

    def delete(self, filter, options=None, table="default"):
        return 0


class RegisterStubs(DatabaseHooks):
    def before_register(self, database):
        database.register_engine(StubEngine)
        database.register_table_model(StubTableModel)


# ============================================================================
# Engine resolution
# ============================================================================

class TestGetEngine:

    def test_configured_connection(self, database):
        engine = database.get()
        assert isinstance(engine, RelationalEngine)
        assert engine.is_setup is True
        assert database.connections == {"default": engine}

    def test_identity_caching(self, database):
        """A second get() returns the same engine, whatever the parameters."""
        first = database.get("default")
        second = database.get("default", "document", {"uri": "mongodb://elsewhere"})
        assert second is first

    def test_explicit_engine_and_parameters(self):
        db = make_database()
        engine = db.get("scratch", "relational", {"dsn": MEMORY_DSN})
        assert isinstance(engine, RelationalEngine)
        assert db.get("scratch") is engine
        db.shutdown()

    def test_engine_name_case_insensitive(self):
        db = make_database()
        assert isinstance(db.get("scratch", "Relational", {"dsn": MEMORY_DSN}), RelationalEngine)
        db.shutdown()

    def test_engine_name_without_parameters_uses_config(self, database):
        engine = database.get("default", "relational")
        assert engine.connection_description == MEMORY_DSN

    def test_unknown_connection(self, database):
        """A connection that is neither live nor configured is a configuration fault."""
        with pytest.raises(ConfigurationFault, match="reporting"):
            database.get("reporting")
        assert "reporting" not in database.connections

    def test_unknown_engine_type(self):
        db = make_database()
        with pytest.raises(EngineNotFoundFault) as exc_info:
            db.get("scratch", "oracle", {"dsn": "oracle://x"})
        assert exc_info.value.metadata["available"] == ["document", "relational"]

    def test_configured_unknown_engine_type(self):
        db = make_database({"default": {"engine": "oracle", "parameters": {}}})
        with pytest.raises(EngineNotFoundFault):
            db.get()

    def test_setup_failure_not_installed(self):
        db = make_database({"default": {"engine": "relational", "parameters": {"dsn": "oracle://x"}}})
        with pytest.raises(ConfigurationFault):
            db.get()
        assert db.connections == {}

    def test_document_connection(self):
        db = make_database({"events": {
            "engine": "document",
            "parameters": {"uri": "mongodb://localhost", "client_factory": mongomock_factory},
        }})
        assert isinstance(db.get("events"), DocumentEngine)
        db.shutdown()


# ============================================================================
# Table model resolution
# ============================================================================

class TestGetTableModel:

    def test_resolves_by_engine_name(self, database):
        users = database.get_table_model("users")
        assert isinstance(users, RelationalTableModel)
        assert users.is_setup is True
        assert users.engine is database.get()
        assert users.table_name == "users"
        assert database.tables == {"default|users": users}

    def test_identity_caching(self, database):
        first = database.get_table_model("users")
        assert database.get_table_model("users") is first
        assert database.get_table_model("orders") is not first

    def test_same_table_different_connections(self, database):
        database.get("other", "relational", {"dsn": MEMORY_DSN})
        default_users = database.get_table_model("users")
        other_users = database.get_table_model("users", "other")
        assert default_users is not other_users
        assert other_users.engine is database.get("other")

    def test_document_table_model(self):
        db = make_database()
        model = db.get_table_model(
            "shop.events", "events", "document",
            {"uri": "mongodb://localhost", "client_factory": mongomock_factory},
        )
        assert isinstance(model, DocumentTableModel)
        db.shutdown()

    def test_unknown_connection(self, database):
        with pytest.raises(ConfigurationFault):
            database.get_table_model("users", "reporting")

    def test_relational_round_trip(self, database):
        database.get().query("CREATE TABLE users (id INTEGER PRIMARY KEY, name TEXT)")
        users = database.get_table_model("users")
        users.create({"name": "a"})
        rows = users.read({"name": "a"}).to_list()
        assert len(rows) == 1
        assert rows[0]["name"] == "a"

    def test_create_empty_touches_nothing(self, database):
        users = database.get_table_model("users")
        engine = database.get()
        before = len(engine.queries)
        with pytest.raises(QueryFault) as exc_info:
            users.create([])
        assert exc_info.value.code == "QUERY_FAILED"
        assert len(engine.queries) == before


# ============================================================================
# Type registration
# ============================================================================

class TestRegistration:

    def test_defaults_registered_lazily(self):
        db = make_database()
        assert db.engines == {}
        db.fetch_engine("relational")
        assert db.engines == {"relational": RelationalEngine, "document": DocumentEngine}
        assert db.table_models == {"relational": RelationalTableModel, "document": DocumentTableModel}

    def test_fetch(self):
        db = make_database()
        assert db.fetch_engine("DOCUMENT") is DocumentEngine
        assert db.fetch_table_model("relational") is RelationalTableModel

    def test_fetch_unknown(self):
        db = make_database()
        with pytest.raises(EngineNotFoundFault):
            db.fetch_engine("oracle")
        with pytest.raises(TableModelNotFoundFault):
            db.fetch_table_model("oracle")

    def test_duplicate_engine(self):
        """The second registration fails and the first one stays."""
        db = make_database()
        db.fetch_engine("relational")

        class OtherRelational(StubEngine):
            name = "Relational"

        with pytest.raises(AlreadyRegisteredFault) as exc_info:
            db.register_engine(OtherRelational)
        assert exc_info.value.name == "relational"
        assert db.fetch_engine("relational") is RelationalEngine

    def test_duplicate_table_model(self):
        db = make_database()
        db.register_table_model(StubTableModel)
        with pytest.raises(AlreadyRegisteredFault):
            db.register_table_model(StubTableModel)

    def test_register_rejects_non_engine(self):
        db = make_database()
        with pytest.raises(TypeError):
            db.register_engine(RelationalEngine())
        with pytest.raises(TypeError):
            db.register_table_model(dict)

    def test_before_register_hook(self):
        db = make_database(hooks=[RegisterStubs()])
        assert db.fetch_engine("stub") is StubEngine
        assert db.fetch_table_model("stub") is StubTableModel
        assert "relational" in db.engines

    def test_before_register_fires_once(self):
        calls = []

        class Counting(DatabaseHooks):
            def before_register(self, database):
                calls.append(database)

        db = make_database(hooks=[Counting()])
        db.fetch_engine("relational")
        db.fetch_table_model("document")
        assert calls == [db]

    def test_hook_overrides_default_type(self):
        class CustomRelational(RelationalEngine):
            pass

        class Override(DatabaseHooks):
            def before_register(self, database):
                database.register_engine(CustomRelational)

        db = make_database(hooks=[Override()])
        assert db.fetch_engine("relational") is CustomRelational

    def test_custom_engine_with_table_model(self):
        db = make_database(hooks=[RegisterStubs()])
        model = db.get_table_model("things", "stubbed", "stub", {"token": "x"})
        assert isinstance(model, StubTableModel)
        assert model.engine.setup_calls == [{"token": "x"}]


# ============================================================================
# Hooks
# ============================================================================

class TestHooks:

    def test_cancel_engine(self, database):
        class Veto(DatabaseHooks):
            def before_engine(self, resolution):
                resolution.cancel()

        database.hooks.append(Veto())
        with pytest.raises(ResolutionCancelledFault, match="Could not get database"):
            database.get()
        assert database.connections == {}

    def test_cancel_with_reason(self):
        class Veto(DatabaseHooks):
            def before_engine(self, resolution):
                resolution.cancel("Maintenance window.")

        db = make_database(hooks=[Veto()])
        with pytest.raises(ResolutionCancelledFault, match="Maintenance window"):
            db.get("default", "relational", {"dsn": MEMORY_DSN})

    def test_hook_exception_is_wrapped(self, database):
        class Broken(DatabaseHooks):
            def before_engine(self, resolution):
                raise KeyError("boom")

        database.hooks.append(Broken())
        with pytest.raises(ResolutionCancelledFault) as exc_info:
            database.get()
        assert isinstance(exc_info.value.__cause__, KeyError)

    def test_rename_connection(self, database):
        class Redirect(DatabaseHooks):
            def before_engine(self, resolution):
                if resolution.connection_name == "reports":
                    resolution.connection_name = "default"

        database.hooks.append(Redirect())
        assert database.get("reports") is database.get("default")
        assert "reports" not in database.connections

    def test_rewrite_parameters(self):
        class Parameters(DatabaseHooks):
            def before_engine(self, resolution):
                resolution.engine_name = "relational"
                resolution.parameters = {"dsn": MEMORY_DSN}

        db = make_database(hooks=[Parameters()])
        assert isinstance(db.get("anything"), RelationalEngine)
        db.shutdown()

    def test_supply_engine(self):
        supplied = StubEngine()

        class Supply(DatabaseHooks):
            def before_engine(self, resolution):
                resolution.engine = supplied
                resolution.parameters = {"token": "abc"}

        db = make_database(hooks=[Supply()])
        assert db.get("default") is supplied
        assert supplied.setup_calls == [{"token": "abc"}]
        assert db.connections["default"] is supplied

    def test_supplied_engine_already_setup(self):
        supplied = StubEngine()
        supplied.setup({"token": "first"})

        class Supply(DatabaseHooks):
            def before_engine(self, resolution):
                resolution.engine = supplied

        db = make_database(hooks=[Supply()])
        db.get("default")
        db.get("default")
        assert supplied.setup_calls == [{"token": "first"}]

    def test_cancel_table_model(self, database):
        class Veto(DatabaseHooks):
            def before_table_model(self, resolution):
                if resolution.table_name == "secrets":
                    resolution.cancel()

        database.hooks.append(Veto())
        assert database.get_table_model("users") is not None
        with pytest.raises(ResolutionCancelledFault, match="Could not get table model"):
            database.get_table_model("secrets")

    def test_supply_table_model(self, database):
        supplied = RelationalTableModel()

        class Supply(DatabaseHooks):
            def before_table_model(self, resolution):
                resolution.table_model = supplied

        database.hooks.append(Supply())
        model = database.get_table_model("users")
        assert model is supplied
        assert model.is_setup is True
        assert model.engine is database.get()
        assert database.tables["default|users"] is supplied

    def test_supplied_table_model_not_cached_when_setup_fails(self):
        supplied = RelationalTableModel()

        class Supply(DatabaseHooks):
            def before_table_model(self, resolution):
                resolution.table_model = supplied

        db = make_database(hooks=[Supply()])
        with pytest.raises(ConfigurationFault):
            db.get_table_model("users", "reporting")
        assert db.tables == {}
        assert supplied.is_setup is False

    def test_first_cancel_stops_later_hooks(self):
        seen = []

        class Veto(DatabaseHooks):
            def before_engine(self, resolution):
                resolution.cancel()

        class Observer(DatabaseHooks):
            def before_engine(self, resolution):
                seen.append(resolution.connection_name)

        db = make_database(hooks=[Veto(), Observer()])
        with pytest.raises(ResolutionCancelledFault):
            db.get()
        assert seen == []


# ============================================================================
# Debug panel & shutdown
# ============================================================================

class TestPanelRegistration:

    def test_new_engines_registered_once(self):
        panel = DatabasePanel()
        db = make_database(
            {"default": {"engine": "relational", "parameters": {"dsn": MEMORY_DSN}}},
            panel=panel,
        )
        engine = db.get()
        db.get()
        db.get_table_model("users")
        assert panel.engines == [engine]
        db.shutdown()


class TestShutdown:

    def test_teardown_every_connection_once(self):
        db = make_database(hooks=[RegisterStubs()])
        first = db.get("a", "stub", {"x": 1})
        second = db.get("b", "stub", {"x": 2})
        db.shutdown()
        assert first.teardown_calls == 1
        assert second.teardown_calls == 1
        assert db.connections == {}
        assert db.tables == {}

    def test_failing_teardown_does_not_stop_loop(self, caplog):
        class Hooks(DatabaseHooks):
            def before_register(self, database):
                database.register_engine(StubEngine)
                database.register_engine(BrokenTeardownEngine)

        db = make_database(hooks=[Hooks()])
        broken = db.get("a", "broken", {"x": 1})
        healthy = db.get("b", "stub", {"x": 1})

        with caplog.at_level("ERROR", logger="strata.db"):
            db.shutdown()

        assert broken.teardown_calls == 1
        assert healthy.teardown_calls == 1
        assert "socket already closed" in caplog.text

    def test_shared_engine_torn_down_once(self):
        supplied = StubEngine()

        class Supply(DatabaseHooks):
            def before_engine(self, resolution):
                resolution.engine = supplied

        db = make_database(hooks=[Supply()])
        db.get("a")
        db.get("b")
        db.shutdown()
        assert supplied.teardown_calls == 1

    def test_context_manager(self):
        with make_database(hooks=[RegisterStubs()]) as db:
            engine = db.get("a", "stub", {"x": 1})
        assert engine.teardown_calls == 1
        assert db.connections == {}

    def test_relational_autocommit_resolved_on_shutdown(self, tmp_path):
        dsn = f"sqlite:///{tmp_path / 'app.sqlite3'}"
        with make_database({"default": {
            "engine": "relational",
            "parameters": {"dsn": dsn, "transaction_autocommit": True},
        }}) as db:
            engine = db.get()
            engine.query("CREATE TABLE t (id INTEGER)")
            engine.transaction_start()
            engine.query("INSERT INTO t (id) VALUES (1)")

        check = RelationalEngine()
        check.setup({"dsn": dsn})
        assert check.query("SELECT id FROM t").fetchall() == [{"id": 1}]
        check.teardown()

    def test_connection_fault_propagates(self):
        def failing_factory(uri, **options):
            raise TypeError("unexpected keyword")

        db = make_database({"events": {
            "engine": "document",
            "parameters": {"uri": "mongodb://localhost", "client_factory": failing_factory},
        }})
        with pytest.raises(DatabaseConnectionFault):
            db.get("events")
