from .attendance_record import AttendanceRecord

__all__ = [
    "AttendanceRecord"
]
