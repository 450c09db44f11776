from __future__ import annotations

import hashlib
import json
import os
import time
from pathlib import Path
from typing import Any, Optional


class FileCache:
    """
    On-disk cache for provider responses:
      request key -> sha256 -> json file

    Only the data clients use this. The prediction core never caches
    analytics, so a stale entry can at worst delay fresh game logs by one TTL.
    """

    def __init__(self, cache_dir: str, ttl_seconds: int) -> None:
        self.root = Path(cache_dir)
        self.root.mkdir(parents=True, exist_ok=True)
        self.ttl = ttl_seconds

    def _path_for_key(self, key: str) -> Path:
        digest = hashlib.sha256(key.encode("utf-8")).hexdigest()
        return self.root / f"{digest}.json"

    def get(self, key: str) -> Optional[Any]:
        path = self._path_for_key(key)
        if self.ttl <= 0 or not path.exists():
            return None
        try:
            entry = json.loads(path.read_text(encoding="utf-8"))
            if (time.time() - float(entry["created_ts"])) > self.ttl:
                return None
            return entry["payload"]
        except (ValueError, KeyError, TypeError):
            # corrupt cache file: treat as a miss
            return None

    def set(self, key: str, payload: Any) -> None:
        if self.ttl <= 0:
            return
        path = self._path_for_key(key)
        tmp = path.with_suffix(".tmp")
        tmp.write_text(
            json.dumps({"created_ts": time.time(), "payload": payload}, ensure_ascii=False),
            encoding="utf-8",
        )
        os.replace(tmp, path)

    def invalidate(self, key: str) -> None:
        self._path_for_key(key).unlink(missing_ok=True)
