"""
Strata Command Logger — pymongo command monitoring into the query log.

One ``CommandLogger`` is attached per ``DocumentEngine`` through the
client's ``event_listeners``. It renders every command into a compact,
value-free descriptor such as::

    FIND 'shop.orders' PROJECT[total] FILTER[status] SORT[created DESC] LIMIT(10)

Field names are logged, field values never are.
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Any, Dict, List, Mapping

from pymongo import monitoring

if TYPE_CHECKING:
    from .base import DatabaseEngine

__all__ = ["CommandLogger", "describe_command", "count_documents"]


def _keys(value: Any) -> List[str]:
    if isinstance(value, Mapping):
        return [str(key) for key in value.keys()]
    return []


def describe_command(command_name: str, database_name: str, command: Mapping[str, Any]) -> str:
    """Build the query log descriptor for one command document."""
    parts = [f"{command_name.upper()} '{database_name}.{command.get(command_name, '')}'"]

    if "projection" in command:
        parts.append(f"PROJECT[{','.join(_keys(command['projection']))}]")

    if command.get("filter"):
        parts.append(f"FILTER[{','.join(_keys(command['filter']))}]")

    if "sort" in command:
        sort_fields = [
            f"{field} {'ASC' if direction == 1 else 'DESC'}"
            for field, direction in dict(command["sort"]).items()
        ]
        parts.append(f"SORT[{','.join(sort_fields)}]")

    if "documents" in command:
        document_keys: List[str] = []
        for document in command["documents"]:
            document_keys.extend(_keys(document))
        parts.append(f"VALUES[{','.join(document_keys)}]")

    if "deletes" in command:
        delete_keys: List[str] = []
        for delete in command["deletes"]:
            if isinstance(delete, Mapping) and "q" in delete:
                delete_keys.extend(_keys(delete["q"]))
        parts.append(f"FILTER[{','.join(delete_keys)}]")

    if "limit" in command:
        parts.append(f"LIMIT({command['limit']})")

    return " ".join(parts)


def count_documents(command_name: str, reply: Mapping[str, Any]) -> int:
    """Row count for a successful command reply."""
    if command_name == "find":
        cursor = reply.get("cursor") or {}
        return len(cursor.get("firstBatch") or [])
    if command_name in ("insert", "update", "delete"):
        return int(reply.get("n") or 0)
    return 0


class CommandLogger(monitoring.CommandListener):
    """
    Feeds command started/succeeded/failed events into an engine's query log.

    Pending commands are tracked by request id, so interleaved commands on
    different sockets still time correctly.
    """

    def __init__(self, engine: "DatabaseEngine"):
        self._engine = engine
        self._pending: Dict[int, Dict[str, Any]] = {}

    @property
    def pending(self) -> int:
        return len(self._pending)

    def started(self, event) -> None:
        self._pending[event.request_id] = {
            "query_string": describe_command(
                event.command_name, event.database_name, event.command
            ),
            "started": time.perf_counter(),
        }

    def succeeded(self, event) -> None:
        query_string, elapsed = self._finish(event)
        self._engine.log_query(
            query_string,
            count_documents(event.command_name, event.reply or {}),
            elapsed,
        )

    def failed(self, event) -> None:
        query_string, elapsed = self._finish(event)
        failure = event.failure or {}
        self._engine.log_query(
            query_string,
            0,
            elapsed,
            {
                "code": str(failure.get("code", failure.get("codeName", "unknown"))),
                "message": str(failure.get("errmsg", "")),
            },
        )

    def _finish(self, event):
        pending = self._pending.pop(event.request_id, None)
        if pending is None:
            # Started before the listener was attached
            return event.command_name.upper(), event.duration_micros / 1_000_000
        return pending["query_string"], time.perf_counter() - pending["started"]
