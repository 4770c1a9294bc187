from __future__ import annotations

from pathlib import Path

from roster_sync.models.record import SAMPLE_RECORDS, Snapshot
from roster_sync.store.cache import SnapshotCache


def test_cache_round_trip(tmp_path: Path):
    cache = SnapshotCache(tmp_path / "nested" / "snapshot.json")
    assert cache.load() is None
    snap = Snapshot(records=SAMPLE_RECORDS, last_updated="T")
    cache.save(snap)
    assert cache.load() == snap
    assert not (tmp_path / "nested" / "snapshot.json.tmp").exists()


def test_cache_corrupt_file_is_empty(tmp_path: Path):
    p = tmp_path / "snapshot.json"
    p.write_text("{not json", encoding="utf-8")
    assert SnapshotCache(p).load() is None


def test_cache_non_object_is_empty(tmp_path: Path):
    p = tmp_path / "snapshot.json"
    p.write_text("[1, 2, 3]", encoding="utf-8")
    assert SnapshotCache(p).load() is None
