"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
Records can live in memory, in a JSON file or in Google Sheets; the
closing workflow only sees the interfaces.
"""

from cash_close.services.storage.interface import (
    ConnectionError,
    NotFoundError,
    RecordStoreInterface,
    StaffDirectoryInterface,
    StorageError,
    VersionConflictError,
)
from cash_close.services.storage.memory import (
    InMemoryRecordStore,
    InMemoryStaffDirectory,
    JsonFileRecordStore,
)
from cash_close.services.storage.google_sheets import (
    GoogleSheetsClient,
    GoogleSheetsRecordStore,
    GoogleSheetsStaffDirectory,
)

__all__ = [
    # Interfaces
    "RecordStoreInterface",
    "StaffDirectoryInterface",
    # Exceptions
    "ConnectionError",
    "NotFoundError",
    "StorageError",
    "VersionConflictError",
    # In-process implementations
    "InMemoryRecordStore",
    "InMemoryStaffDirectory",
    "JsonFileRecordStore",
    # Google Sheets implementation
    "GoogleSheetsClient",
    "GoogleSheetsRecordStore",
    "GoogleSheetsStaffDirectory",
]
