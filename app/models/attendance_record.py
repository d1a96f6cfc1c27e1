"""
Attendance Record Model - Write-once log of every check-in/out attempt
"""
from sqlalchemy import Column, BigInteger, String, DateTime, Float, Integer
from sqlalchemy.sql import func
from atams.db import Base


class AttendanceRecord(Base):
    """Attendance Record model for attendance schema - Table: attendance.attendance_records"""
    __tablename__ = "attendance_records"
    __table_args__ = {"schema": "attendance"}

    ar_id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, index=True, autoincrement=True)
    ar_user_id = Column(String(64), nullable=False, index=True)  # Stable messaging channel id
    ar_action_type = Column(String(10), nullable=False)  # 'entrada' or 'salida'
    ar_lat = Column(Float, nullable=True)
    ar_lng = Column(Float, nullable=True)
    ar_zone_name = Column(String(255), nullable=True)  # Matched zone, NULL when rejected
    ar_distance_m = Column(Integer, nullable=True)
    ar_validation_status = Column(String(10), nullable=False, index=True)  # 'VALID' or 'INVALID'
    ar_accuracy_m = Column(Float, nullable=True)
    ar_gps_timestamp = Column(DateTime, nullable=True)  # Naive local time, as ar_recorded_at
    ar_recorded_at = Column(DateTime, server_default=func.now(), nullable=False, index=True)
