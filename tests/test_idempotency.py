from __future__ import annotations

import json
from pathlib import Path

from appointment_notify.utils.idempotency import IdempotencyStore, MemoryIdempotencyStore, build_dedup_key


class FakeClock:
    def __init__(self, now: float = 1_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def test_dedup_key_format() -> None:
    assert build_dedup_key("appointment-reminder-24h:2026-01-14", "a1", "email") == (
        "notify:appointment-reminder-24h:2026-01-14:a1:email"
    )


def test_memory_store_expires_keys() -> None:
    clock = FakeClock()
    store = MemoryIdempotencyStore(ttl_s=60, clock=clock)

    store.mark_sent("k")
    assert store.has_been_sent("k") is True

    clock.now += 61
    assert store.has_been_sent("k") is False


def test_file_store_persists_across_instances(tmp_path: Path) -> None:
    path = tmp_path / "state" / "dedup.json"
    clock = FakeClock()

    IdempotencyStore(path, ttl_s=60, clock=clock).mark_sent("k")

    assert IdempotencyStore(path, ttl_s=60, clock=clock).has_been_sent("k") is True
    assert json.loads(path.read_text(encoding="utf-8")) == {"k": 1000.0}


def test_file_store_ignores_corrupt_file(tmp_path: Path) -> None:
    path = tmp_path / "dedup.json"
    path.write_text("{not json", encoding="utf-8")
    store = IdempotencyStore(path)

    assert store.has_been_sent("k") is False
    store.mark_sent("k")
    assert store.has_been_sent("k") is True
