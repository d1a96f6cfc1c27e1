from .attendance_record_repository import AttendanceRecordRepository
from .state_repository import StateRepository, InMemoryStateRepository
from .record_store import RecordStore, SqlRecordStore, InMemoryRecordStore

__all__ = [
    "AttendanceRecordRepository",
    "StateRepository",
    "InMemoryStateRepository",
    "RecordStore",
    "SqlRecordStore",
    "InMemoryRecordStore"
]
