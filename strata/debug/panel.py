"""
Strata Debug Panel — query summaries for every live engine.

The ``Database`` registry registers each newly installed engine with an
attached panel. The panel pulls the engines' query logs on demand and
renders them through Jinja2 templates (``templates/tab.html`` for the
compact toolbar badge, ``templates/panel.html`` for the detail view).
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from jinja2 import Environment, PackageLoader, select_autoescape

from ..engines.base import DatabaseEngine

logger = logging.getLogger("strata.debug")

__all__ = ["DatabasePanel", "MAX_QUERIES_PER_CONNECTION"]

MAX_QUERIES_PER_CONNECTION = 10

# Toolbar badge colours
COLOR_OK = "#6ba9e6"
COLOR_ERROR = "#990000"
COLOR_IDLE = "#aaa"


class DatabasePanel:
    """
    Aggregates query logs across engines.

    ``results()`` returns::

        {
            "db_count": 2,                 # registered engines
            "query_count": 7,              # distinct statements, per connection
            "query_timings": 0.0042,       # seconds, every execution
            "errors_found": False,
            "queries": {                   # connection description -> newest first
                "sqlite:///app.sqlite3": [
                    {"query": ..., "timings": ..., "errors": {...}, "data": ...},
                ],
            },
            "query_count_provided": 7,     # entries kept in "queries"
        }

    Repeated executions of the same statement collapse into one entry whose
    ``data`` is the sum of the row counts and whose timings and errors are
    the latest execution's.
    """

    def __init__(self, environment: Optional[Environment] = None):
        self._engines: List[DatabaseEngine] = []
        self.env = environment or Environment(
            loader=PackageLoader("strata.debug", "templates"),
            autoescape=select_autoescape(
                enabled_extensions=["html", "htm", "xml"],
                default_for_string=True,
            ),
        )

    def register(self, engine: DatabaseEngine) -> None:
        if any(registered is engine for registered in self._engines):
            return
        self._engines.append(engine)
        logger.debug(f"Debug panel tracking {engine.name} engine: {engine.connection_description}")

    @property
    def engines(self) -> List[DatabaseEngine]:
        return list(self._engines)

    def results(self) -> Dict[str, Any]:
        results: Dict[str, Any] = {
            "db_count": 0,
            "query_count": 0,
            "query_timings": 0.0,
            "errors_found": False,
            "queries": {},
            "query_count_provided": 0,
        }

        collected: Dict[str, Dict[str, Dict[str, Any]]] = {}
        for engine in self._engines:
            results["db_count"] += 1
            queries = collected.setdefault(engine.connection_description, {})

            for entry in engine.queries:
                results["query_timings"] += entry.query_timings
                summary = queries.get(entry.query_string)
                if summary is None:
                    results["query_count"] += 1
                    summary = queries[entry.query_string] = {
                        "query": entry.query_string,
                        "data": 0,
                    }
                summary["timings"] = entry.query_timings
                summary["errors"] = dict(entry.query_error or {})
                summary["data"] += entry.query_data
                if entry.failed:
                    results["errors_found"] = True

        for connection, queries in collected.items():
            if not queries:
                continue
            recent = list(queries.values())[-MAX_QUERIES_PER_CONNECTION:]
            recent.reverse()
            results["queries"][connection] = recent
            results["query_count_provided"] += len(recent)

        return results

    # ── Rendering ────────────────────────────────────────────────────

    def render_tab(self) -> str:
        results = self.results()
        if results["query_count"] and not results["errors_found"]:
            color = COLOR_OK
        elif results["query_count"]:
            color = COLOR_ERROR
        else:
            color = COLOR_IDLE
        return self.env.get_template("tab.html").render(results=results, color=color)

    def render_panel(self) -> str:
        return self.env.get_template("panel.html").render(results=self.results())
