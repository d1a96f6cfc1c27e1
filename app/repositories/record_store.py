"""
Record Store - Persistence boundary for attendance records

Every method may raise on infrastructure failure; callers in the
validation flow treat those failures as soft (see ValidationService).
"""
import threading
from abc import ABC, abstractmethod
from datetime import date
from typing import Callable, List, Optional

from sqlalchemy.orm import Session

from app.repositories.attendance_record_repository import AttendanceRecordRepository
from app.schemas.attendance import AttendanceRecord, AttendanceRecordCreate


class RecordStore(ABC):
    @abstractmethod
    def insert_attendance(self, record: AttendanceRecordCreate) -> AttendanceRecord:
        ...

    @abstractmethod
    def query_last_validated_record(self, user_id: str) -> Optional[AttendanceRecord]:
        ...

    @abstractmethod
    def query_today_validated_records(self, user_id: str, target_date: date) -> List[AttendanceRecord]:
        ...

    @abstractmethod
    def query_today_records(self, user_id: str, target_date: date) -> List[AttendanceRecord]:
        ...

    @abstractmethod
    def list_records(self, user_id: str = None, skip: int = 0, limit: int = 100) -> List[AttendanceRecord]:
        ...


class SqlRecordStore(RecordStore):
    """RecordStore over SQLAlchemy sessions, one session per call"""

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self.session_factory = session_factory
        self.repo = AttendanceRecordRepository()

    def insert_attendance(self, record: AttendanceRecordCreate) -> AttendanceRecord:
        with self.session_factory() as db:
            obj = self.repo.create_record(db, record.model_dump())
            return AttendanceRecord.model_validate(obj)

    def query_last_validated_record(self, user_id: str) -> Optional[AttendanceRecord]:
        with self.session_factory() as db:
            obj = self.repo.get_last_validated(db, user_id)
            return AttendanceRecord.model_validate(obj) if obj else None

    def query_today_validated_records(self, user_id: str, target_date: date) -> List[AttendanceRecord]:
        with self.session_factory() as db:
            rows = self.repo.get_records_for_day(db, user_id, target_date, validated_only=True)
            return [AttendanceRecord.model_validate(r) for r in rows]

    def query_today_records(self, user_id: str, target_date: date) -> List[AttendanceRecord]:
        with self.session_factory() as db:
            rows = self.repo.get_records_for_day(db, user_id, target_date)
            return [AttendanceRecord.model_validate(r) for r in rows]

    def list_records(self, user_id: str = None, skip: int = 0, limit: int = 100) -> List[AttendanceRecord]:
        with self.session_factory() as db:
            rows = self.repo.get_records_with_filters(db, user_id=user_id, skip=skip, limit=limit)
            return [AttendanceRecord.model_validate(r) for r in rows]


class InMemoryRecordStore(RecordStore):
    """Process-local RecordStore for tests and single-process runs"""

    def __init__(self) -> None:
        self._records: List[AttendanceRecord] = []
        self._lock = threading.Lock()

    def insert_attendance(self, record: AttendanceRecordCreate) -> AttendanceRecord:
        with self._lock:
            stored = AttendanceRecord(ar_id=len(self._records) + 1, **record.model_dump())
            self._records.append(stored)
            return stored

    def query_last_validated_record(self, user_id: str) -> Optional[AttendanceRecord]:
        with self._lock:
            validated = [
                r for r in self._records
                if r.ar_user_id == user_id and r.ar_validation_status == "VALID"
            ]
        if not validated:
            return None
        return max(validated, key=lambda r: (r.ar_recorded_at, r.ar_id))

    def query_today_validated_records(self, user_id: str, target_date: date) -> List[AttendanceRecord]:
        return [
            r for r in self.query_today_records(user_id, target_date)
            if r.ar_validation_status == "VALID"
        ]

    def query_today_records(self, user_id: str, target_date: date) -> List[AttendanceRecord]:
        with self._lock:
            rows = [
                r for r in self._records
                if r.ar_user_id == user_id and r.ar_recorded_at.date() == target_date
            ]
        return sorted(rows, key=lambda r: (r.ar_recorded_at, r.ar_id))

    def list_records(self, user_id: str = None, skip: int = 0, limit: int = 100) -> List[AttendanceRecord]:
        with self._lock:
            rows = [r for r in self._records if not user_id or r.ar_user_id == user_id]
        rows.sort(key=lambda r: (r.ar_recorded_at, r.ar_id), reverse=True)
        return rows[skip:skip + limit]
