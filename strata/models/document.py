"""
Strata Document Table Model — CRUD over one MongoDB collection.

The bound table name is a collection string, ``"database.collection"``.
Errors raised by pymongo surface as ``QueryFault`` carrying the server's
error code.
"""

from __future__ import annotations

from typing import Mapping

from pymongo.collection import Collection
from pymongo.errors import PyMongoError

from ..engines.document import DocumentEngine
from ..faults import QueryFault
from .base import DEFAULT_TABLE, TableModel
from .result import Result

__all__ = ["DocumentTableModel"]


def _query_fault(operation: str, table: str, exc: PyMongoError) -> QueryFault:
    code = getattr(exc, "code", None)
    return QueryFault(
        f"Could not {operation} '{table}'. Database returned an error: {exc}",
        native_code=str(code) if code is not None else type(exc).__name__,
    )


class DocumentTableModel(TableModel):
    """
    Table model driving a ``DocumentEngine``.

    ``create`` inserts one document for a mapping and many for a sequence.
    ``update`` always applies a ``$set`` of ``data``; documents are never
    replaced wholesale.
    """

    name = "document"
    engine_name = "document"
    engine_class = DocumentEngine

    def setup(self, engine, table_name: str) -> bool:
        super().setup(engine, table_name)
        # Validates the collection string up front
        self._collection(DEFAULT_TABLE)
        return True

    def _collection(self, table: str) -> Collection:
        return self.engine.collection(self._resolve_table(table))  # type: ignore[attr-defined]

    def create(self, data, options=None, table=DEFAULT_TABLE) -> int:
        self._ensure_setup("create data")
        if not data:
            raise QueryFault("Could not create data. No data provided.")

        collection = self._collection(table)
        options = dict(options or {})
        try:
            if isinstance(data, Mapping):
                collection.insert_one(dict(data), **options)
                return 1
            result = collection.insert_many([dict(document) for document in data], **options)
        except PyMongoError as exc:
            raise _query_fault("create data in", self._resolve_table(table), exc) from exc
        return len(result.inserted_ids)

    def read(self, filter=None, options=None, table=DEFAULT_TABLE) -> Result:
        """Find documents matching ``filter``; ``options`` go to ``find()`` (projection, sort, limit...)."""
        self._ensure_setup("read data")
        collection = self._collection(table)
        try:
            cursor = collection.find(dict(filter or {}), **dict(options or {}))
        except PyMongoError as exc:
            raise _query_fault("read from", self._resolve_table(table), exc) from exc
        return Result(cursor)

    def update(self, data, filter, options=None, table=DEFAULT_TABLE) -> int:
        self._ensure_setup("update data")
        if not data:
            raise QueryFault("Could not update data. No data provided.")

        collection = self._collection(table)
        try:
            result = collection.update_many(
                dict(filter or {}), {"$set": dict(data)}, **dict(options or {})
            )
        except PyMongoError as exc:
            raise _query_fault("update data in", self._resolve_table(table), exc) from exc
        return result.modified_count

    def delete(self, filter, options=None, table=DEFAULT_TABLE) -> int:
        self._ensure_setup("delete data")
        collection = self._collection(table)
        try:
            result = collection.delete_many(dict(filter or {}), **dict(options or {}))
        except PyMongoError as exc:
            raise _query_fault("delete data from", self._resolve_table(table), exc) from exc
        return result.deleted_count
