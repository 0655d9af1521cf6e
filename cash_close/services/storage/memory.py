"""
In-Process Storage Implementations

InMemoryRecordStore keeps serialized records in a dict so callers never
hold a reference into the store: a deleted record cannot come back
through an object someone kept around.

JsonFileRecordStore persists the same map (date -> record) to one JSON
file, replacing it atomically on every write.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Optional

from cash_close.models.record import DailyRecord, StaffMember
from cash_close.services.storage.interface import (
    RecordStoreInterface,
    StaffDirectoryInterface,
    StorageError,
)


class InMemoryRecordStore(RecordStoreInterface):
    """Dict-backed record store. Used by tests and the default configuration."""

    def __init__(self, records: Optional[list[DailyRecord]] = None):
        self._records: dict[str, dict] = {}
        for record in records or []:
            self._records[record.date] = record.model_dump(mode="json")

    def get_by_date(self, record_date: str) -> Optional[DailyRecord]:
        data = self._records.get(record_date)
        if data is None:
            return None
        return DailyRecord.model_validate(data)

    def list_all(self) -> list[DailyRecord]:
        return [DailyRecord.model_validate(data) for data in self._records.values()]

    def upsert(
        self,
        record: DailyRecord,
        expected_version: Optional[int] = None,
    ) -> None:
        self.check_version(
            self.get_by_date(record.date), record.date, expected_version
        )
        self._records[record.date] = record.model_dump(mode="json")

    def delete(self, record_date: str) -> bool:
        return self._records.pop(record_date, None) is not None


class JsonFileRecordStore(RecordStoreInterface):
    """
    Record store backed by a single JSON file.

    The file holds one object keyed by closing date. Every operation
    re-reads the file, so two processes see each other's writes (and
    still clobber each other: last write wins).
    """

    def __init__(self, path: str | Path):
        self._path = Path(path)

    def _read(self) -> dict[str, dict]:
        if not self._path.exists():
            return {}
        try:
            with self._path.open("r", encoding="utf-8") as fh:
                data = json.load(fh)
        except (OSError, json.JSONDecodeError) as e:
            raise StorageError(f"Failed to read {self._path}: {e}")
        if not isinstance(data, dict):
            raise StorageError(f"Unexpected content in {self._path}")
        return data

    def _write(self, data: dict[str, dict]) -> None:
        directory = self._path.parent
        try:
            directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=directory, suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(data, fh, ensure_ascii=False, indent=2, sort_keys=True)
            os.replace(tmp_path, self._path)
        except OSError as e:
            raise StorageError(f"Failed to write {self._path}: {e}")

    @staticmethod
    def _parse(record_date: str, data: dict) -> DailyRecord:
        try:
            return DailyRecord.model_validate(data)
        except ValueError as e:
            raise StorageError(f"Malformed record for {record_date}: {e}")

    def get_by_date(self, record_date: str) -> Optional[DailyRecord]:
        data = self._read().get(record_date)
        if data is None:
            return None
        return self._parse(record_date, data)

    def list_all(self) -> list[DailyRecord]:
        return [
            self._parse(record_date, data)
            for record_date, data in self._read().items()
        ]

    def upsert(
        self,
        record: DailyRecord,
        expected_version: Optional[int] = None,
    ) -> None:
        data = self._read()
        existing = data.get(record.date)
        self.check_version(
            self._parse(record.date, existing) if existing else None,
            record.date,
            expected_version,
        )
        data[record.date] = record.model_dump(mode="json")
        self._write(data)

    def delete(self, record_date: str) -> bool:
        data = self._read()
        if record_date not in data:
            return False
        del data[record_date]
        self._write(data)
        return True


class InMemoryStaffDirectory(StaffDirectoryInterface):
    """Fixed staff list."""

    def __init__(self, staff: Optional[list[StaffMember]] = None):
        self._staff = list(staff or [])

    def list_staff(self) -> list[StaffMember]:
        return [member.model_copy() for member in self._staff]
