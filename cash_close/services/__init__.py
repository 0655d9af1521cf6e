"""Services package."""

from cash_close.services.storage import (
    ConnectionError,
    GoogleSheetsClient,
    GoogleSheetsRecordStore,
    GoogleSheetsStaffDirectory,
    InMemoryRecordStore,
    InMemoryStaffDirectory,
    JsonFileRecordStore,
    NotFoundError,
    RecordStoreInterface,
    StaffDirectoryInterface,
    StorageError,
    VersionConflictError,
)

__all__ = [
    "ConnectionError",
    "GoogleSheetsClient",
    "GoogleSheetsRecordStore",
    "GoogleSheetsStaffDirectory",
    "InMemoryRecordStore",
    "InMemoryStaffDirectory",
    "JsonFileRecordStore",
    "NotFoundError",
    "RecordStoreInterface",
    "StaffDirectoryInterface",
    "StorageError",
    "VersionConflictError",
]
