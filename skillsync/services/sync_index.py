"""
Persistence of the local sync index.

The file keeps the layout used by other clients of the service::

    {
      "skills": {
        "command:deploy": {
          "hash": "1a2b3c4d",
          "blobId": null,
          "localHash": "<full content hash>",
          "remoteUpdatedAt": "2024-01-01T00:00:00+00:00"
        }
      },
      "lastSyncAt": "2024-01-01T00:00:00+00:00"
    }

One process owns the file at a time; there is no file lock.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Any

import structlog

from skillsync.api.timestamps import parse_timestamp
from skillsync.models.sync import SyncIndex, SyncIndexEntry

logger = structlog.get_logger(__name__)


def _entry_from_json(skill_key: str, data: dict[str, Any]) -> SyncIndexEntry:
    return SyncIndexEntry(
        skill_key=skill_key,
        last_synced_hash=data["hash"],
        local_fingerprint=data.get("localHash", ""),
        remote_updated_at=parse_timestamp(data.get("remoteUpdatedAt")),
    )


def _entry_to_json(entry: SyncIndexEntry) -> dict[str, Any]:
    return {
        "hash": entry.last_synced_hash,
        "blobId": None,
        "localHash": entry.local_fingerprint,
        "remoteUpdatedAt": entry.remote_updated_at.isoformat() if entry.remote_updated_at else None,
    }


class SyncIndexStore:
    """Loads and saves the :class:`SyncIndex` as a JSON file."""

    def __init__(self, path: Path) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> SyncIndex:
        """
        Read the index. A missing file yields an empty index; an unreadable
        or corrupt one does too, with a warning.
        """
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return SyncIndex()
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable sync index", path=str(self._path), error=str(e))
            return SyncIndex()

        if not isinstance(raw, dict):
            logger.warning("Ignoring malformed sync index", path=str(self._path))
            return SyncIndex()

        index = SyncIndex(last_sync_at=parse_timestamp(raw.get("lastSyncAt")))
        for skill_key, data in (raw.get("skills") or {}).items():
            try:
                index.entries[skill_key] = _entry_from_json(skill_key, data)
            except (KeyError, TypeError) as e:
                logger.warning("Dropping malformed sync index entry", skill_key=skill_key, error=str(e))
        return index

    def save(self, index: SyncIndex) -> None:
        """Write the whole index, replacing the previous file atomically."""
        data = {
            "skills": {key: _entry_to_json(entry) for key, entry in sorted(index.entries.items())},
            "lastSyncAt": index.last_sync_at.isoformat() if index.last_sync_at else "",
        }
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = tempfile.NamedTemporaryFile(
            mode="w",
            encoding="utf-8",
            dir=self._path.parent,
            prefix=f".{self._path.name}.",
            suffix=".tmp",
            delete=False,
        )
        try:
            with tmp:
                json.dump(data, tmp, indent=2)
                tmp.flush()
                os.fsync(tmp.fileno())
            os.replace(tmp.name, self._path)
        except BaseException:
            Path(tmp.name).unlink(missing_ok=True)
            raise
        logger.debug("Saved sync index", path=str(self._path), entries=len(index.entries))
