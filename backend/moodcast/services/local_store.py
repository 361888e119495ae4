# local key-value store: json files on disk, one file per key
# the local side is authoritative, so every write is atomic (write .tmp, then rename)

import json
import logging
import os
import re
from pathlib import Path
from typing import Any, Optional

logger = logging.getLogger(__name__)

_UNSAFE_KEY_CHARS = re.compile(r"[^A-Za-z0-9_.-]")


class LocalStoreError(Exception):
    """raised when a local read or write cannot be completed"""


class LocalKeyValueStore:
    """small durable key -> json value store rooted at a directory"""

    def __init__(self, base_dir: Path):
        self.base_dir = Path(base_dir)

    def _path(self, key: str) -> Path:
        safe = _UNSAFE_KEY_CHARS.sub("_", key)
        return self.base_dir / f"{safe}.json"

    def get(self, key: str, default: Optional[Any] = None) -> Any:
        """read a value. missing keys return default, corrupt files raise."""
        path = self._path(key)
        if not path.exists():
            return default
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise LocalStoreError(f"could not read {key}: {e}") from e

    def set(self, key: str, value: Any):
        path = self._path(key)
        tmp = path.with_suffix(path.suffix + ".tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(json.dumps(value, indent=2, default=str), encoding="utf-8")
            os.replace(tmp, path)
        except (OSError, TypeError, ValueError) as e:
            raise LocalStoreError(f"could not write {key}: {e}") from e

    def delete(self, key: str):
        path = self._path(key)
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            raise LocalStoreError(f"could not delete {key}: {e}") from e

    def keys(self) -> list[str]:
        if not self.base_dir.exists():
            return []
        return sorted(p.stem for p in self.base_dir.glob("*.json"))
