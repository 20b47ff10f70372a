"""
Local JSON cache for the last fetched fountain set.

The file holds a single envelope:
    {"fountains": [...], "timestamp": "<ISO-8601>"}

An envelope older than the validity window is treated as absent. Read and
write failures are logged and degrade to "no cache"; they never reach the
caller.
"""

import json
import logging
import os
import tempfile
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from pydantic import ValidationError

from src.data.schema import (
    FountainRecord,
    as_utc,
    format_timestamp,
    parse_timestamp,
    record_from_json,
    record_to_json,
)
from src.fountains.config import DEFAULT_CACHE_TTL_HOURS
from src.fountains.errors import CacheReadError, CacheWriteError

logger = logging.getLogger(__name__)

CACHE_VALIDITY = timedelta(hours=DEFAULT_CACHE_TTL_HOURS)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class CacheEnvelope:
    """A persisted record set and the time it was fetched."""
    records: List[FountainRecord]
    fetched_at: datetime

    def age(self, now: datetime) -> timedelta:
        return now - self.fetched_at

    def to_json(self) -> dict:
        return {
            "fountains": [record_to_json(r) for r in self.records],
            "timestamp": format_timestamp(self.fetched_at),
        }

    @classmethod
    def from_json(cls, data: dict) -> "CacheEnvelope":
        if not isinstance(data, dict):
            raise ValueError("Cache envelope must be a JSON object")
        if "fountains" not in data or "timestamp" not in data:
            raise ValueError("Cache envelope is missing 'fountains' or 'timestamp'")
        if not isinstance(data["fountains"], list):
            raise ValueError("'fountains' must be a list")
        return cls(
            records=[record_from_json(item) for item in data["fountains"]],
            fetched_at=parse_timestamp(data["timestamp"]),
        )


class CacheStore:
    """
    File-backed envelope store with a fixed validity window.

    Args:
        path: Location of the cache file.
        ttl: Validity window (default 24h). An envelope is valid while
            its age is strictly below ttl.
        clock: Returns the current aware datetime; injectable for tests.
    """

    def __init__(
        self,
        path: Path,
        ttl: timedelta = CACHE_VALIDITY,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.path = Path(path)
        self.ttl = ttl
        self.clock = clock

    def _read_envelope(self) -> Optional[CacheEnvelope]:
        if not self.path.exists():
            return None
        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
            return CacheEnvelope.from_json(data)
        except (OSError, ValueError, ValidationError) as e:
            raise CacheReadError(f"Could not read cache at {self.path}: {e}") from e

    def _is_fresh(self, envelope: CacheEnvelope) -> bool:
        return envelope.age(as_utc(self.clock())) < self.ttl

    def load(self) -> Optional[CacheEnvelope]:
        """Return the persisted envelope if it exists, decodes and is fresh."""
        try:
            envelope = self._read_envelope()
        except CacheReadError as e:
            logger.warning("%s; treating as no cache", e)
            return None

        if envelope is None:
            logger.debug("Cache file does not exist: %s", self.path)
            return None
        if not self._is_fresh(envelope):
            logger.info("Cache expired (fetched at %s)", format_timestamp(envelope.fetched_at))
            return None

        logger.info("Loaded %d fountains from cache", len(envelope.records))
        return envelope

    def is_valid(self) -> bool:
        """Diagnostics: True iff load() would return an envelope."""
        try:
            envelope = self._read_envelope()
        except CacheReadError:
            return False
        return envelope is not None and self._is_fresh(envelope)

    def _write_envelope(self, envelope: CacheEnvelope) -> None:
        payload = json.dumps(envelope.to_json(), ensure_ascii=False, indent=2)
        tmp_name = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            # Write next to the target so os.replace stays on one filesystem
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent,
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self.path)
        except OSError as e:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise CacheWriteError(f"Could not write cache at {self.path}: {e}") from e

    def save(self, records: Sequence[FountainRecord]) -> bool:
        """
        Persist records with the current time, replacing any prior envelope.

        Returns:
            True on success, False if the write failed (the failure is logged).
        """
        fetched_at = as_utc(self.clock()).replace(microsecond=0)
        envelope = CacheEnvelope(records=list(records), fetched_at=fetched_at)
        try:
            self._write_envelope(envelope)
        except CacheWriteError as e:
            logger.warning("%s", e)
            return False
        logger.info("Saved %d fountains to cache", len(envelope.records))
        return True

    def clear(self) -> None:
        """Remove the persisted envelope; a later load() returns None."""
        try:
            self.path.unlink()
            logger.info("Cache cleared: %s", self.path)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning("Could not clear cache at %s: %s", self.path, e)
