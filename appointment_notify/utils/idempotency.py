from __future__ import annotations

import json
import threading
import time
from pathlib import Path
from typing import Callable

DEFAULT_TTL_S = 24 * 60 * 60


def build_dedup_key(trigger_id: str, recipient_key: str, channel: str) -> str:
    return f"notify:{trigger_id}:{recipient_key}:{channel}"


class MemoryIdempotencyStore:
    """In-process dedup store; keys expire after ``ttl_s`` seconds."""

    def __init__(self, ttl_s: float = DEFAULT_TTL_S, clock: Callable[[], float] = time.time) -> None:
        self.ttl_s = ttl_s
        self._clock = clock
        self._keys: dict[str, float] = {}
        self._lock = threading.Lock()

    def _live(self, keys: dict[str, float]) -> dict[str, float]:
        cutoff = self._clock() - self.ttl_s
        return {key: stamp for key, stamp in keys.items() if stamp > cutoff}

    def has_been_sent(self, key: str) -> bool:
        with self._lock:
            self._keys = self._live(self._keys)
            return key in self._keys

    def mark_sent(self, key: str) -> None:
        with self._lock:
            self._keys = self._live(self._keys)
            self._keys[key] = self._clock()


class IdempotencyStore(MemoryIdempotencyStore):
    """JSON file backed dedup store shared across workflow runs."""

    def __init__(
        self,
        path: Path | str,
        ttl_s: float = DEFAULT_TTL_S,
        clock: Callable[[], float] = time.time,
    ) -> None:
        super().__init__(ttl_s=ttl_s, clock=clock)
        self.path = Path(path)

    def _load(self) -> dict[str, float]:
        if not self.path.exists():
            return {}
        try:
            payload = json.loads(self.path.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            return {}
        if not isinstance(payload, dict):
            return {}
        return {
            key: float(stamp)
            for key, stamp in payload.items()
            if isinstance(key, str) and isinstance(stamp, (int, float))
        }

    def _save(self, keys: dict[str, float]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(
            json.dumps(dict(sorted(keys.items())), indent=2),
            encoding="utf-8",
        )

    def has_been_sent(self, key: str) -> bool:
        with self._lock:
            return key in self._live(self._load())

    def mark_sent(self, key: str) -> None:
        with self._lock:
            keys = self._live(self._load())
            keys[key] = self._clock()
            self._save(keys)
