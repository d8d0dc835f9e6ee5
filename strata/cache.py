"""
Strata Query Cache — pickled query results on disk.

Layout::

    <cache_dir>/<segment_one>+<segment_two>/<md5(sql)>

The two segments name the route (or any other scope) the cached results
belong to, so a whole route can be invalidated at once with ``delete()``.
When the cache directory cannot be created or is not writable, caching is
switched off (``enabled`` is False) and every call becomes a no-op.
"""

from __future__ import annotations

import hashlib
import logging
import os
import pickle
import shutil
from pathlib import Path
from typing import Any, Optional, Union

logger = logging.getLogger("strata.cache")

__all__ = ["QueryCache"]

DEFAULT_SEGMENT_ONE = "default"
DEFAULT_SEGMENT_TWO = "index"


class QueryCache:
    """
    File cache for query results.

    Args:
        cache_dir: Root directory (created if missing)
        segment_one: Default first scope segment
        segment_two: Default second scope segment
    """

    def __init__(
        self,
        cache_dir: Union[str, Path],
        segment_one: str = DEFAULT_SEGMENT_ONE,
        segment_two: str = DEFAULT_SEGMENT_TWO,
    ):
        self.cache_dir = Path(cache_dir)
        self.segment_one = segment_one or DEFAULT_SEGMENT_ONE
        self.segment_two = segment_two or DEFAULT_SEGMENT_TWO
        self.enabled = self.check_path()

    def check_path(self) -> bool:
        """Create the cache directory; disable caching when that is impossible."""
        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            logger.debug(f"DB cache path error: {self.cache_dir} ({exc})")
            self.enabled = False
            return False

        if not os.access(self.cache_dir, os.W_OK):
            logger.debug(f"DB cache dir not writable: {self.cache_dir}")
            self.enabled = False
            return False

        self.enabled = True
        return True

    def _scope_dir(self, segment_one: Optional[str], segment_two: Optional[str]) -> Path:
        return self.cache_dir / f"{segment_one or self.segment_one}+{segment_two or self.segment_two}"

    @staticmethod
    def _key(sql: str) -> str:
        return hashlib.md5(sql.encode("utf-8")).hexdigest()

    def read(
        self,
        sql: str,
        default: Any = None,
        segment_one: Optional[str] = None,
        segment_two: Optional[str] = None,
    ) -> Any:
        """Cached result for ``sql``, or ``default`` on a miss."""
        if not self.enabled:
            return default

        path = self._scope_dir(segment_one, segment_two) / self._key(sql)
        try:
            with open(path, "rb") as f:
                return pickle.load(f)
        except FileNotFoundError:
            return default
        except (OSError, pickle.UnpicklingError, EOFError) as exc:
            logger.debug(f"DB cache read failed for {path}: {exc}")
            return default

    def write(
        self,
        sql: str,
        value: Any,
        segment_one: Optional[str] = None,
        segment_two: Optional[str] = None,
    ) -> bool:
        """Store ``value`` for ``sql``. Returns False when nothing was written."""
        if not self.enabled:
            return False

        dir_path = self._scope_dir(segment_one, segment_two)
        try:
            dir_path.mkdir(mode=0o750, exist_ok=True)
        except OSError as exc:
            logger.debug(f"DB cache path error: {dir_path} ({exc})")
            return False

        path = dir_path / self._key(sql)
        temp_file = path.with_suffix(".tmp")
        try:
            with open(temp_file, "wb") as f:
                pickle.dump(value, f, protocol=pickle.HIGHEST_PROTOCOL)
            temp_file.replace(path)
            path.chmod(0o640)
        except OSError as exc:
            logger.debug(f"DB cache write failed for {path}: {exc}")
            if temp_file.exists():
                temp_file.unlink()
            return False
        return True

    def delete(self, segment_one: str = "", segment_two: str = "") -> None:
        """Drop every cached result of one scope."""
        shutil.rmtree(self._scope_dir(segment_one, segment_two), ignore_errors=True)

    def delete_all(self) -> None:
        """Drop every cached result, keeping the root directory."""
        if not self.cache_dir.is_dir():
            return
        for child in self.cache_dir.iterdir():
            if child.is_dir():
                shutil.rmtree(child, ignore_errors=True)
            else:
                child.unlink()

    def __repr__(self) -> str:
        return f"<QueryCache dir={str(self.cache_dir)!r} enabled={self.enabled}>"
