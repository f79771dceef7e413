"""Bounded local history of soil analyses.

The whole history is one JSON array on disk, newest first, capped at
``max_records``. Writers (``save``, ``delete``, ``import_all``, ``clear_all``)
are serialized by a lock; readers load the file fresh on every call.
"""

from __future__ import annotations

import json
import logging
import os
import time
import uuid
from collections import Counter
from datetime import datetime, timezone
from pathlib import Path
from threading import Lock
from typing import Any

from pydantic import TypeAdapter, ValidationError

from soilsense.core.errors import InvalidFormat, StorageError
from soilsense.services.ai.soil.contracts import (
    AnalysisResult,
    HistoryRecord,
    HistoryStatistics,
    StorageSize,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_RECORDS = 50

_RECORDS_ADAPTER = TypeAdapter(list[HistoryRecord])


def generate_record_id() -> str:
    return f"analysis_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


class HistoryStore:
    def __init__(self, path: str | Path, *, max_records: int = DEFAULT_MAX_RECORDS) -> None:
        self._path = Path(path)
        self._max_records = max(1, int(max_records))
        self._lock = Lock()

    @property
    def path(self) -> Path:
        return self._path

    @property
    def max_records(self) -> int:
        return self._max_records

    # -- persistence -------------------------------------------------

    def _load(self) -> list[HistoryRecord]:
        try:
            raw = self._path.read_bytes()
        except FileNotFoundError:
            return []
        except OSError:
            logger.warning("Failed to read history from %s", self._path, exc_info=True)
            return []
        try:
            return _RECORDS_ADAPTER.validate_json(raw)
        except (ValidationError, UnicodeDecodeError):
            logger.warning("History at %s is corrupt, treating as empty", self._path, exc_info=True)
            return []

    def _persist(self, records: list[HistoryRecord]) -> None:
        """Overwrite the stored history (write to temp file, then replace)."""
        data = _RECORDS_ADAPTER.dump_json(records)
        tmp_path = self._path.with_name(self._path.name + ".tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_bytes(data)
            os.replace(tmp_path, self._path)
        except OSError as exc:
            raise StorageError(f"Failed to persist history: {exc}") from exc

    # -- writers -----------------------------------------------------

    def save(self, image_data: str, result: AnalysisResult) -> HistoryRecord:
        record = HistoryRecord(
            id=generate_record_id(),
            timestamp=datetime.now(timezone.utc).isoformat(),
            image_data=image_data,
            result=result,
        )
        with self._lock:
            records = self._load()
            records.insert(0, record)
            dropped = len(records) - self._max_records
            if dropped > 0:
                del records[self._max_records :]
                logger.info("History full, evicted %d oldest record(s)", dropped)
            self._persist(records)
        logger.info("Analysis %s saved to local history", record.id)
        return record

    def delete(self, record_id: str) -> bool:
        with self._lock:
            records = self._load()
            remaining = [r for r in records if r.id != record_id]
            if len(remaining) == len(records):
                return False
            self._persist(remaining)
        logger.info("Analysis %s deleted", record_id)
        return True

    def clear_all(self) -> bool:
        with self._lock:
            try:
                self._path.unlink(missing_ok=True)
            except OSError as exc:
                raise StorageError(f"Failed to clear history: {exc}") from exc
        logger.info("All analyses cleared")
        return True

    def import_all(self, payload: str | bytes) -> int:
        """Replace the history with *payload*, a JSON array of records.

        Nothing is written unless every record validates. Arrays longer than
        ``max_records`` keep their first (newest) entries.
        """
        try:
            data: Any = json.loads(payload)
        except (ValueError, UnicodeDecodeError) as exc:
            raise InvalidFormat("Invalid JSON format") from exc
        if not isinstance(data, list):
            raise InvalidFormat("Invalid JSON format: expected an array of analyses")
        try:
            records = _RECORDS_ADAPTER.validate_python(data)
        except ValidationError as exc:
            raise InvalidFormat(f"Invalid analysis record: {exc.error_count()} error(s)") from exc

        records = records[: self._max_records]
        with self._lock:
            self._persist(records)
        logger.info("Imported %d analyses", len(records))
        return len(records)

    # -- readers -----------------------------------------------------

    def get_all(self) -> list[HistoryRecord]:
        return self._load()

    def get_by_id(self, record_id: str) -> HistoryRecord | None:
        return next((r for r in self._load() if r.id == record_id), None)

    def get_recent(self, count: int = 10) -> list[HistoryRecord]:
        return self._load()[: max(0, count)]

    def export_all(self) -> str:
        records = self._load()
        return json.dumps(_RECORDS_ADAPTER.dump_python(records, mode="json"), indent=2)

    def statistics(self) -> HistoryStatistics:
        records = self._load()
        counts = Counter(r.result.soil_type for r in records)
        average = sum(r.result.confidence for r in records) / len(records) if records else 0.0
        return HistoryStatistics(
            total_count=len(records),
            counts_by_soil_type=dict(counts),
            average_confidence=round(average, 1),
            oldest_timestamp=records[-1].timestamp if records else None,
            newest_timestamp=records[0].timestamp if records else None,
        )

    def storage_size(self) -> StorageSize:
        try:
            size = self._path.stat().st_size
        except FileNotFoundError:
            size = 0
        return StorageSize(
            bytes=size,
            kb=round(size / 1024, 2),
            mb=round(size / 1024 / 1024, 2),
        )
