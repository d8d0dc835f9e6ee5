"""
Strata Debug - query summaries rendered as HTML.

Exports:
- DatabasePanel: Collects engine query logs and renders tab/panel HTML
"""

from .panel import MAX_QUERIES_PER_CONNECTION, DatabasePanel

__all__ = ["DatabasePanel", "MAX_QUERIES_PER_CONNECTION"]
