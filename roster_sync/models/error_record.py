from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime

"""ErrorRecord model for the JSON Lines error log.

One record per failed sync operation (startup load, import parse, snapshot
write). The key set is fixed; ``to_json_line`` never emits extra keys.
"""

__all__ = [
    "ErrorRecord",
]


@dataclass(frozen=True)
class ErrorRecord:
    """Structured error record for JSON Lines logging.

    Attributes:
        timestamp: ISO8601 UTC timestamp with 'Z' suffix
        operation: Sync operation that failed (``startup``, ``import``)
        source: Uploaded file name, or the store location for reads
        error_type: Error classification in UPPER_SNAKE_CASE format
        message: Human readable failure message
    """
    timestamp: str  # ISO8601 UTC
    operation: str
    source: str
    error_type: str  # UPPER_SNAKE
    message: str

    @staticmethod
    def create(operation: str, source: str, error_type: str, message: str) -> ErrorRecord:
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        return ErrorRecord(
            timestamp=ts,
            operation=operation,
            source=source,
            error_type=error_type,
            message=message,
        )

    def to_json_line(self) -> str:
        return json.dumps(asdict(self), ensure_ascii=False)
