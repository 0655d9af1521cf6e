"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Swap Google Sheets for a file or a real database
2. Use in-memory storage for testing
3. Keep the closing workflow decoupled from storage implementation

The record store is a flat key-value store keyed by closing date.
There are no transactions: the last full-record write for a date wins.
`expected_version` is the optional optimistic-concurrency hook; when it
is given and does not match the stored version the write is refused.
"""

from abc import ABC, abstractmethod
from typing import Optional

from cash_close.models.record import DailyRecord, StaffMember


class RecordStoreInterface(ABC):
    """
    Abstract interface for daily record storage.

    Any storage implementation (memory, JSON file, Google Sheets, ...)
    must implement these methods.
    """

    @abstractmethod
    def get_by_date(self, record_date: str) -> Optional[DailyRecord]:
        """
        Retrieve the record for a closing date.

        Returns:
            A fresh copy of the record if found, None otherwise
        """
        pass

    @abstractmethod
    def list_all(self) -> list[DailyRecord]:
        """
        List every stored record.

        Ordering is not guaranteed; callers sort by date when it matters.
        """
        pass

    @abstractmethod
    def upsert(
        self,
        record: DailyRecord,
        expected_version: Optional[int] = None,
    ) -> None:
        """
        Insert the record, or fully replace the one with the same date.

        Args:
            record: The record to persist
            expected_version: Version the caller believes is stored
                (0 for "no record yet"). None disables the check.

        Raises:
            VersionConflictError: If expected_version does not match
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    def delete(self, record_date: str) -> bool:
        """
        Remove the record for a date.

        Returns:
            True if a record was removed, False if there was none
        """
        pass

    @staticmethod
    def check_version(
        existing: Optional[DailyRecord],
        record_date: str,
        expected_version: Optional[int],
    ) -> None:
        """Shared optimistic-concurrency check for implementations."""
        if expected_version is None:
            return
        stored_version = existing.version if existing else 0
        if stored_version != expected_version:
            raise VersionConflictError(
                record_date=record_date,
                expected_version=expected_version,
                stored_version=stored_version,
            )


class StaffDirectoryInterface(ABC):
    """
    Read access to the staff directory.

    Staff CRUD is managed elsewhere; the closing workflow only reads.
    """

    @abstractmethod
    def list_staff(self) -> list[StaffMember]:
        """Return every staff member."""
        pass

    def get_staff(self, staff_id: str) -> Optional[StaffMember]:
        """Find one staff member by id."""
        for member in self.list_staff():
            if member.id == staff_id:
                return member
        return None


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass


class VersionConflictError(StorageError):
    """The stored record changed since the caller loaded it."""

    def __init__(
        self,
        record_date: str,
        expected_version: Optional[int],
        stored_version: int,
    ):
        self.record_date = record_date
        self.expected_version = expected_version
        self.stored_version = stored_version
        super().__init__(
            f"Record {record_date} is at version {stored_version}, "
            f"expected {expected_version}"
        )
