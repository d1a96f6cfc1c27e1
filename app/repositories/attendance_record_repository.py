"""
Attendance Record Repository - Data access layer for attendance records
"""
from typing import List, Optional
from datetime import date, datetime, time, timedelta
from sqlalchemy.orm import Session
from sqlalchemy import and_

from atams.db import BaseRepository
from app.models.attendance_record import AttendanceRecord


class AttendanceRecordRepository(BaseRepository[AttendanceRecord]):
    def __init__(self):
        super().__init__(AttendanceRecord)

    def create_record(self, db: Session, record_data: dict) -> AttendanceRecord:
        """Insert attendance record and return the created object"""
        db_record = AttendanceRecord(**record_data)
        db.add(db_record)
        db.commit()
        db.refresh(db_record)
        return db_record

    def get_last_validated(self, db: Session, user_id: str) -> Optional[AttendanceRecord]:
        """Get user's most recent VALID record using ORM"""
        return db.query(AttendanceRecord).filter(
            and_(
                AttendanceRecord.ar_user_id == user_id,
                AttendanceRecord.ar_validation_status == "VALID"
            )
        ).order_by(AttendanceRecord.ar_recorded_at.desc(), AttendanceRecord.ar_id.desc()).first()

    def get_records_for_day(
        self,
        db: Session,
        user_id: str,
        target_date: date = None,
        validated_only: bool = False
    ) -> List[AttendanceRecord]:
        """Get user's records for a calendar day in chronological order"""
        if target_date is None:
            target_date = date.today()

        # Range filter keeps the recorded_at index usable
        day_start = datetime.combine(target_date, time.min)
        day_end = day_start + timedelta(days=1)

        query = db.query(AttendanceRecord).filter(
            and_(
                AttendanceRecord.ar_user_id == user_id,
                AttendanceRecord.ar_recorded_at >= day_start,
                AttendanceRecord.ar_recorded_at < day_end
            )
        )

        if validated_only:
            query = query.filter(AttendanceRecord.ar_validation_status == "VALID")

        return query.order_by(AttendanceRecord.ar_recorded_at.asc(), AttendanceRecord.ar_id.asc()).all()

    def get_records_with_filters(
        self,
        db: Session,
        user_id: str = None,
        validation_status: str = None,
        skip: int = 0,
        limit: int = 100
    ) -> List[AttendanceRecord]:
        """Get records with optional filters, newest first"""
        query = db.query(AttendanceRecord)

        if user_id:
            query = query.filter(AttendanceRecord.ar_user_id == user_id)
        if validation_status:
            query = query.filter(AttendanceRecord.ar_validation_status == validation_status)

        return query.order_by(AttendanceRecord.ar_recorded_at.desc()).offset(skip).limit(limit).all()
