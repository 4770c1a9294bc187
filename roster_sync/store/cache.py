from __future__ import annotations

import json
import logging
from pathlib import Path

from roster_sync.models.record import Snapshot

"""Local snapshot cache (offline-first copy of the last known document)."""

__all__ = [
    "SnapshotCache",
]

logger = logging.getLogger(__name__)


class SnapshotCache:
    """Keeps the last snapshot read from or written to the store as a JSON file.

    Cache I/O problems never propagate; they are logged and the cache behaves
    as empty.
    """
    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)

    def save(self, snapshot: Snapshot) -> None:
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(json.dumps(snapshot.to_document(), ensure_ascii=False), encoding="utf-8")
            tmp.replace(self.path)
        except OSError as e:
            logger.warning(f"snapshot cache write failed path={self.path}: {e}")

    def load(self) -> Snapshot | None:
        if not self.path.exists():
            return None
        try:
            doc = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"snapshot cache unreadable path={self.path}: {e}")
            return None
        if not isinstance(doc, dict):
            return None
        return Snapshot.from_document(doc)
