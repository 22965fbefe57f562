"""
Metrics Cache Module

File-backed store for the most recent MetricsResult:
- Pretty-printed JSON, overwritten wholesale on each save
- Writes go through a temporary file and rename
- Read failures mapped onto CacheMissError / CacheReadError

A single writer is assumed; concurrent saves are last-writer-wins.
"""

import json
import os
from pathlib import Path
from typing import Any, Dict, Optional, Union

import structlog

from src.config import StorageSettings, get_settings
from src.errors import CacheMissError, CacheReadError, PersistenceError
from src.transformation.results import MetricsResult

logger = structlog.get_logger(__name__)


class MetricsFileCache:
    """
    Cache of the last computed metrics, stored as one JSON file.

    Example:
        cache = MetricsFileCache(Path("public/exports/swapt_data.json"))
        cache.save(result)
        data = cache.load()
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    @classmethod
    def from_settings(cls, storage: Optional[StorageSettings] = None) -> "MetricsFileCache":
        storage = storage or get_settings().storage
        return cls(storage.stats_path)

    def exists(self) -> bool:
        return self.path.is_file()

    def load(self) -> Dict[str, Any]:
        """
        Read the cached result.

        Raises:
            CacheMissError: if no cache file exists
            CacheReadError: if the file cannot be read or decoded
        """
        if not self.exists():
            raise CacheMissError(f"No cached metrics at {self.path}")

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error("Failed to read cached metrics", path=str(self.path), error=str(e))
            raise CacheReadError(f"Failed to read cached metrics: {e}") from e

    def save(self, result: Union[MetricsResult, Dict[str, Any]]) -> Path:
        """
        Overwrite the cache with a new result.

        Raises:
            PersistenceError: if serialization or the write fails
        """
        payload = result.to_json_dict() if isinstance(result, MetricsResult) else result
        tmp_path = self.path.with_name(f".{self.path.name}.tmp")

        try:
            serialized = json.dumps(payload, indent=2)
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                f.write(serialized)
            os.replace(tmp_path, self.path)
        except (TypeError, ValueError, OSError) as e:
            logger.error("Failed to save metrics", path=str(self.path), error=str(e))
            raise PersistenceError(f"Failed to save metrics to {self.path}: {e}") from e

        logger.info("Metrics saved", path=str(self.path))
        return self.path
