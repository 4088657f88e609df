from __future__ import annotations

import json
import logging
import time
from pathlib import Path
from typing import Callable

from pydantic import ValidationError

from selfheal.core.metadata import CacheEntry

log = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 3600.0


class SelectorCache:
    """Persistent map from an original selector to its last validated repair.

    Entries are loaded once at construction and the whole map is rewritten
    after every mutation. Entries older than the TTL are reported as absent by
    :meth:`get` but are only removed when overwritten or invalidated. With
    ``path=None`` the cache lives in memory only.
    """

    def __init__(
        self,
        path: str | Path | None = None,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.path = Path(path) if path is not None else None
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self._entries: dict[str, CacheEntry] = self._load()

    def get(self, identifier: str) -> CacheEntry | None:
        entry = self._entries.get(identifier)
        if entry is None:
            return None
        if self.clock() - entry.timestamp >= self.ttl_seconds:
            log.debug("Cached repair for %r expired", identifier)
            return None
        return entry

    def put(self, identifier: str, healed_identifier: str, confidence: float) -> CacheEntry:
        entry = CacheEntry(
            healed_identifier=healed_identifier,
            timestamp=self.clock(),
            confidence=confidence,
        )
        self._entries[identifier] = entry
        self._flush()
        return entry

    def invalidate(self, identifier: str) -> bool:
        if self._entries.pop(identifier, None) is None:
            return False
        self._flush()
        return True

    def clear(self) -> None:
        self._entries = {}
        if self.path is not None and self.path.exists():
            self.path.unlink()

    def __contains__(self, identifier: object) -> bool:
        return isinstance(identifier, str) and self.get(identifier) is not None

    def __len__(self) -> int:
        return len(self._entries)

    def _load(self) -> dict[str, CacheEntry]:
        if self.path is None or not self.path.exists():
            return {}
        try:
            payload = json.loads(self.path.read_text(encoding="utf-8"))
            if not isinstance(payload, dict):
                raise ValueError("cache file must contain a JSON object")
            return {key: CacheEntry.model_validate(value) for key, value in payload.items()}
        except (OSError, ValueError, ValidationError) as exc:
            log.warning("Could not load selector cache %s: %s", self.path, exc)
            return {}

    def _flush(self) -> None:
        if self.path is None:
            return
        payload = {key: entry.model_dump() for key, entry in self._entries.items()}
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8")
        except OSError as exc:
            log.warning("Could not save selector cache %s: %s", self.path, exc)
