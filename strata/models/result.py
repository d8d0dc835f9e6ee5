"""
Strata Result — single-pass cursor wrapper with lazy materialisation.

``Result`` wraps whatever a backend hands back (a DB-API statement, a
pymongo cursor, a plain generator). The wrapped iterable is drained at most
once: the first call that needs every record (``to_list()``, ``group()``,
``len()``) copies the records into memory and all later reads use that copy.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, Iterator, List, Mapping, Union

__all__ = ["Result"]


def _strip_positional(record: Any) -> Any:
    """Drop integer keys from a mapping record."""
    if isinstance(record, Mapping):
        return {
            key: value
            for key, value in record.items()
            if not (isinstance(key, int) and not isinstance(key, bool))
        }
    return record


class Result:
    """
    Lazily materialised query result.

    After ``group(field)`` the materialised state is a mapping of field
    value to the records carrying that value; iteration then yields
    ``(value, records)`` pairs.
    """

    def __init__(self, raw: Iterable[Any]):
        self._raw = raw
        self._entries: Union[List[Any], Dict[Any, List[Any]], None] = None
        self._fully_fetched = False

    @property
    def fully_fetched(self) -> bool:
        return self._fully_fetched

    @property
    def grouped(self) -> bool:
        return isinstance(self._entries, dict)

    def _materialize(self) -> None:
        if self._fully_fetched:
            return
        self._entries = [_strip_positional(record) for record in self._raw]
        self._fully_fetched = True

    def to_list(self) -> List[Any]:
        """
        Every record, as a new list.

        The first call drains the wrapped iterable; later calls return copies
        of the cached records. A grouped result returns ``(value, records)``
        pairs.
        """
        self._materialize()
        if isinstance(self._entries, dict):
            return [(value, list(records)) for value, records in self._entries.items()]
        return list(self._entries)  # type: ignore[arg-type]

    def to_dict(self) -> Dict[Any, Any]:
        """Grouped buckets, or ``{position: record}`` when not grouped."""
        self._materialize()
        if isinstance(self._entries, dict):
            return {value: list(records) for value, records in self._entries.items()}
        return dict(enumerate(self._entries))  # type: ignore[arg-type]

    def group(self, field: str) -> "Result":
        """
        Re-bucket the records by the value of ``field``.

        Records without ``field`` are dropped. The field itself is removed
        from every bucketed record. Mutates this result and returns it.
        """
        self._materialize()
        if isinstance(self._entries, dict):
            records = [record for bucket in self._entries.values() for record in bucket]
        else:
            records = self._entries

        grouped: Dict[Any, List[Any]] = {}
        for record in records:  # type: ignore[union-attr]
            if not isinstance(record, Mapping) or field not in record:
                continue
            remainder = {key: value for key, value in record.items() if key != field}
            grouped.setdefault(record[field], []).append(remainder)

        self._entries = grouped
        return self

    def __iter__(self) -> Iterator[Any]:
        if not self._fully_fetched:
            return iter(self._raw)
        if isinstance(self._entries, dict):
            return iter(list(self._entries.items()))
        return iter(list(self._entries))  # type: ignore[arg-type]

    def __len__(self) -> int:
        self._materialize()
        return len(self._entries)  # type: ignore[arg-type]

    def __repr__(self) -> str:
        state = f"{len(self._entries)} entries" if self._fully_fetched else "pending"  # type: ignore[arg-type]
        return f"<Result {state}>"
