"""Identity map between staged files and remote file IDs.

The map is persisted as a single JSON document in the local cache store:

    {"staged/home/me/project/a.py.txt": {"fileID": "file-abc", "createdAt": "..."}}
"""

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterator

from projectsync.cache import LocalCacheStore

logger = logging.getLogger(__name__)

# Epoch values above this are treated as milliseconds
_MILLISECONDS_THRESHOLD = 1e11


@dataclass
class FileRecord:
    """A previously uploaded file."""

    file_id: str
    created_at: datetime  # source mtime at upload time

    def to_dict(self) -> dict:
        return {"fileID": self.file_id, "createdAt": self.created_at.isoformat()}

    @classmethod
    def from_dict(cls, data: dict) -> "FileRecord":
        return cls(file_id=data["fileID"], created_at=parse_timestamp(data["createdAt"]))


def parse_timestamp(value) -> datetime:
    """Parse an ISO-8601 string or epoch seconds/milliseconds into a UTC datetime.

    Raises:
        ValueError: If the value cannot be interpreted as a timestamp
    """
    if isinstance(value, bool):
        raise ValueError(f"Invalid timestamp: {value!r}")

    if isinstance(value, (int, float)):
        seconds = value / 1000 if value > _MILLISECONDS_THRESHOLD else value
        return datetime.fromtimestamp(seconds, tz=timezone.utc)

    if isinstance(value, str):
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed

    raise ValueError(f"Invalid timestamp: {value!r}")


class IdentityMap:
    """Ordered mapping of relative staged path to FileRecord."""

    def __init__(self, records: dict[str, FileRecord] | None = None):
        self._records: dict[str, FileRecord] = dict(records or {})

    def get(self, path: str) -> FileRecord | None:
        return self._records.get(path)

    def set(self, path: str, record: FileRecord) -> None:
        self._records[path] = record
        logger.debug(f"Identity map: {path} -> {record.file_id}")

    def remove(self, path: str) -> FileRecord | None:
        """Remove and return the record for ``path``, if any."""
        return self._records.pop(path, None)

    def keys(self) -> list[str]:
        """Snapshot of the keys, safe to iterate while removing entries."""
        return list(self._records.keys())

    def items(self) -> list[tuple[str, FileRecord]]:
        return list(self._records.items())

    def file_ids(self) -> list[str]:
        return [record.file_id for record in self._records.values()]

    def __contains__(self, path: object) -> bool:
        return path in self._records

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[str]:
        return iter(self.keys())

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, IdentityMap):
            return NotImplemented
        return self._records == other._records

    def to_json(self) -> str:
        return json.dumps(
            {path: record.to_dict() for path, record in self._records.items()}
        )

    @classmethod
    def from_json(cls, text: str) -> "IdentityMap":
        """Parse a serialized map.

        Raises:
            ValueError: If the document is not a valid identity map
        """
        data = json.loads(text)
        if not isinstance(data, dict):
            raise ValueError("Identity map must be a JSON object")

        records = {}
        for path, entry in data.items():
            if not isinstance(entry, dict):
                raise ValueError(f"Invalid identity map entry for {path}")
            records[path] = FileRecord.from_dict(entry)
        return cls(records)

    @classmethod
    def load(cls, cache: LocalCacheStore, key: str) -> "IdentityMap":
        """Load the map stored under ``key``.

        A missing or corrupt document yields an empty map.
        """
        text = cache.get(key)
        if text is None:
            logger.debug(f"No identity map found under {key}")
            return cls()

        try:
            identity_map = cls.from_json(text)
        except (ValueError, KeyError, TypeError) as e:
            logger.error(f"Failed to load identity map {key}: {e}")
            return cls()

        logger.debug(f"Loaded identity map {key} with {len(identity_map)} entries")
        return identity_map

    def save(self, cache: LocalCacheStore, key: str) -> None:
        cache.set(key, self.to_json())
        logger.debug(f"Saved identity map {key} with {len(self)} entries")
