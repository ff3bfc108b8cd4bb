"""
Cache File Store
================
JSON persistence for pool snapshots and the ranked top-N.

    cache/raydium_pools.json       {"timestamp": <epoch ms>, "pools": [...]}
    cache/meteora_pools.json       {"timestamp": <epoch ms>, "pools": [...]}
    cache/top_opportunities.json   {"timestamp": <epoch ms>, "opportunities": [...]}

Files are written to a temp file and renamed into place.
"""

import json
import os
import tempfile
import time
from typing import List, Optional, Sequence, Tuple

from solarb.shared.models import CachedOpportunity, PoolSnapshot, Venue
from solarb.shared.system.logging import Logger

TOP_N_FILE = "top_opportunities.json"

# Corrupt or foreign-schema files count as a cache miss
_UNREADABLE = (OSError, ValueError, KeyError, TypeError, AttributeError)


class CacheFileStore:
    def __init__(self, directory: str):
        self.directory = directory

    def pools_path(self, venue: Venue) -> str:
        return os.path.join(self.directory, f"{venue.value}_pools.json")

    @property
    def top_n_path(self) -> str:
        return os.path.join(self.directory, TOP_N_FILE)

    # =========================================================================
    # WRITE
    # =========================================================================

    def save_pools(self, venue: Venue, pools: Sequence[PoolSnapshot], timestamp_ms: Optional[int] = None) -> str:
        payload = {
            "timestamp": timestamp_ms if timestamp_ms is not None else _now_ms(),
            "pools": [pool.to_dict() for pool in pools],
        }
        path = self.pools_path(venue)
        self._write_json(path, payload)
        Logger.debug(f"[CACHE] Saved {len(pools)} {venue.value} pools to {path}")
        return path

    def save_top_n(self, entries: Sequence[CachedOpportunity], timestamp_ms: Optional[int] = None) -> str:
        payload = {
            "timestamp": timestamp_ms if timestamp_ms is not None else _now_ms(),
            "opportunities": [entry.to_dict() for entry in entries],
        }
        self._write_json(self.top_n_path, payload)
        Logger.debug(f"[CACHE] Saved top {len(entries)} opportunities to {self.top_n_path}")
        return self.top_n_path

    def _write_json(self, path: str, payload: dict) -> None:
        os.makedirs(self.directory, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self.directory, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2)
            os.replace(tmp_path, path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

    # =========================================================================
    # READ
    # =========================================================================

    def load_pools(self, venue: Venue) -> Optional[Tuple[int, List[PoolSnapshot]]]:
        """Cached snapshots, or None when the file is missing or unreadable."""
        path = self.pools_path(venue)
        try:
            payload = self._read_json(path)
            if payload is None:
                return None
            return int(payload["timestamp"]), [PoolSnapshot.from_dict(p) for p in payload.get("pools", [])]
        except _UNREADABLE as e:
            Logger.warning(f"[CACHE] Ignoring unreadable {path}: {type(e).__name__}: {e}")
            return None

    def load_top_n(self) -> Optional[Tuple[int, List[CachedOpportunity]]]:
        path = self.top_n_path
        try:
            payload = self._read_json(path)
            if payload is None:
                return None
            return int(payload["timestamp"]), [CachedOpportunity.from_dict(o) for o in payload.get("opportunities", [])]
        except _UNREADABLE as e:
            Logger.warning(f"[CACHE] Ignoring unreadable {path}: {type(e).__name__}: {e}")
            return None

    @staticmethod
    def _read_json(path: str) -> Optional[dict]:
        if not os.path.exists(path):
            return None
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)


def _now_ms() -> int:
    return int(time.time() * 1000)
