"""
Strata Relational Table Model — parameterised CRUD SQL from plain mappings.

Statements are built from the keys of the mappings the caller passes in
and executed through ``RelationalEngine.prepare()``; values are always bound
as parameters. Identifiers (table, column and join names) are checked
against ``IDENTIFIER_PATTERN`` before they are put into SQL text.

Usage:
    users = db.get_table_model("users")
    users.create({"name": "ada", "email": "ada@example.com"})
    rows = users.read({"name": "ada"}).to_list()
    users.update({"email": "ada@strata.dev"}, {"name": "ada"})
    users.delete({"name": "ada"})
"""

from __future__ import annotations

import re
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from ..engines.relational import RelationalEngine
from ..engines.statement import PreparedStatement
from ..faults import QueryFault
from .base import DEFAULT_TABLE, TableModel
from .result import Result

__all__ = ["RelationalTableModel", "IDENTIFIER_PATTERN"]

IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_.]*$")

JOIN_TYPES = frozenset({"LEFT", "RIGHT", "INNER", "OUTER", "CROSS", "FULL", "LEFT OUTER", "RIGHT OUTER", "FULL OUTER"})


def _identifier(value: Any, table: str) -> str:
    if not isinstance(value, str) or not IDENTIFIER_PATTERN.match(value):
        raise QueryFault(f"Invalid identifier {value!r} for table '{table}'.")
    return value


def _placeholder(field: str) -> str:
    return field.replace(".", "_")


class RelationalTableModel(TableModel):
    """Table model driving a ``RelationalEngine``."""

    name = "relational"
    engine_name = "relational"
    engine_class = RelationalEngine

    def __init__(self) -> None:
        super().__init__()
        self._last_statement: Optional[PreparedStatement] = None

    @property
    def last_statement(self) -> Optional[PreparedStatement]:
        """The statement prepared by the most recent CRUD call."""
        return self._last_statement

    def _prepare(self, sql: str) -> PreparedStatement:
        self._last_statement = self.engine.prepare(sql)  # type: ignore[attr-defined]
        return self._last_statement

    # ── SQL building ─────────────────────────────────────────────────

    def _where(self, filter: Mapping[str, Any], table: str, prefix: str = "") -> Tuple[str, Dict[str, Any]]:
        if not filter:
            return "", {}
        clauses: List[str] = []
        parameters: Dict[str, Any] = {}
        for field, value in filter.items():
            name = prefix + _placeholder(_identifier(field, table))
            clauses.append(f"{field}=:{name}")
            parameters[name] = value
        return "WHERE " + " AND ".join(clauses), parameters

    def _join(self, join: Mapping[str, Any], table: str) -> str:
        join_type = str(join.get("join_type") or "LEFT").upper()
        target_table = join.get("target_table")
        target_field = join.get("target_field")
        source_field = join.get("source_field")
        if target_table is None or target_field is None or source_field is None:
            raise QueryFault(f"Could not read from '{table}'. Missing fields in join options.")
        if join_type not in JOIN_TYPES:
            raise QueryFault(f"Could not read from '{table}'. Unknown join type '{join_type}'.")
        _identifier(target_table, table)
        _identifier(target_field, table)
        _identifier(source_field, table)
        return f"{join_type} JOIN {target_table} ON {table}.{source_field} = {target_table}.{target_field}"

    @staticmethod
    def _records(data: Union[Mapping[str, Any], Sequence[Mapping[str, Any]]]) -> List[Mapping[str, Any]]:
        if isinstance(data, Mapping):
            return [data]
        if isinstance(data, (str, bytes)):
            raise TypeError("Records must be a mapping or a sequence of mappings")
        return list(data)

    # ── CRUD ─────────────────────────────────────────────────────────

    def create(self, data, options=None, table=DEFAULT_TABLE) -> int:
        """
        Insert ``data`` (one mapping, or a sequence of mappings sharing the
        keys of the first one). Returns the number of inserted rows.
        """
        self._ensure_setup("create data")
        if not data:
            raise QueryFault("Could not create data. No data provided.")

        table = _identifier(self._resolve_table(table), table)
        records = self._records(data)
        if not records:
            raise QueryFault("Could not create data. No data provided.")
        for record in records:
            if not isinstance(record, Mapping) or not record:
                raise QueryFault(f"Could not create data in '{table}'. Every record must be a non-empty mapping.")

        fields = [_identifier(field, table) for field in records[0].keys()]
        for record in records[1:]:
            if set(record.keys()) != set(fields):
                raise QueryFault(
                    f"Could not create data in '{table}'. Every record must have the fields "
                    f"{', '.join(fields)}; got {', '.join(map(str, record.keys()))}."
                )
        columns = ", ".join(fields)
        values = ", ".join(f":{_placeholder(field)}" for field in fields)

        statement = self._prepare(f"INSERT INTO {table} ({columns}) VALUES ({values})")
        affected = 0
        for record in records:
            statement.execute({_placeholder(field): record[field] for field in fields})
            affected += max(statement.rowcount, 0)
        return affected

    def read(self, filter=None, options=None, table=DEFAULT_TABLE) -> Union[Result, PreparedStatement]:
        """
        Select rows matching every key of ``filter``.

        Options:
            fields (list): Columns to select (default ``*``)
            join (dict): ``join_type`` (default LEFT), ``target_table``,
                ``target_field``, ``source_field``
            return_prepared_statement (bool): Return the statement unexecuted
        """
        self._ensure_setup("read data")
        filter = dict(filter or {})
        options = dict(options or {})
        table = _identifier(self._resolve_table(table), table)

        fields = options.get("fields")
        if fields:
            columns = ", ".join(_identifier(field, table) for field in fields)
        else:
            columns = "*"

        where, parameters = self._where(filter, table)
        join = self._join(options["join"], table) if options.get("join") else ""

        sql = " ".join(part for part in (f"SELECT {columns} FROM {table}", join, where) if part)
        statement = self._prepare(sql)

        if options.get("return_prepared_statement"):
            return statement

        statement.execute(parameters)
        return Result(statement)

    def update(self, data, filter, options=None, table=DEFAULT_TABLE) -> int:
        """Set every key of ``data`` on the rows matching ``filter``."""
        self._ensure_setup("update data")
        if not data:
            raise QueryFault("Could not update data. No data provided.")

        table = _identifier(self._resolve_table(table), table)
        assignments: List[str] = []
        parameters: Dict[str, Any] = {}
        for field, value in data.items():
            name = _placeholder(_identifier(field, table))
            assignments.append(f"{field}=:{name}")
            parameters[name] = value

        # Filter placeholders are prefixed so a column can appear in both
        where, filter_parameters = self._where(filter or {}, table, prefix="filter_")
        parameters.update(filter_parameters)

        sql = " ".join(part for part in (f"UPDATE {table} SET {', '.join(assignments)}", where) if part)
        statement = self._prepare(sql)
        statement.execute(parameters)
        return max(statement.rowcount, 0)

    def delete(self, filter, options=None, table=DEFAULT_TABLE) -> int:
        """Delete the rows matching ``filter``; an empty filter deletes every row."""
        self._ensure_setup("delete data")
        table = _identifier(self._resolve_table(table), table)
        where, parameters = self._where(filter or {}, table)

        sql = " ".join(part for part in (f"DELETE FROM {table}", where) if part)
        statement = self._prepare(sql)
        statement.execute(parameters)
        return max(statement.rowcount, 0)
