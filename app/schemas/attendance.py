"""
Attendance Schemas for readings, records and validation verdicts
"""
import re
from typing import List, Literal, Optional
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.schemas.enums import AttendanceAction, RejectionReason
from app.schemas.fraud import RiskLevel, SuspiciousFlag
from app.schemas.zone import AuthorizedZone


class LocationReading(BaseModel):
    """
    GPS reading as delivered by the messaging channel

    Coordinates are optional here so that a missing value becomes a
    domain rejection instead of a request validation error. Non-finite
    or out-of-range values are malformed and never validate.
    """
    latitude: Optional[float] = Field(default=None, ge=-90, le=90, allow_inf_nan=False)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180, allow_inf_nan=False)
    accuracy_m: Optional[float] = Field(default=None, allow_inf_nan=False)
    captured_at: Optional[int] = None  # epoch seconds
    # Coordinate text as sent by the channel, when it arrived as text
    latitude_text: Optional[str] = None
    longitude_text: Optional[str] = None

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None


class AttendanceRecordBase(BaseModel):
    ar_user_id: str
    ar_action_type: Literal["entrada", "salida"]
    ar_lat: Optional[float] = None
    ar_lng: Optional[float] = None
    ar_zone_name: Optional[str] = None
    ar_distance_m: Optional[int] = None
    ar_validation_status: Literal["VALID", "INVALID"]
    ar_accuracy_m: Optional[float] = None
    ar_gps_timestamp: Optional[datetime] = None
    ar_recorded_at: datetime


class AttendanceRecordCreate(AttendanceRecordBase):
    pass


class AttendanceRecordInDB(AttendanceRecordBase):
    model_config = ConfigDict(from_attributes=True)

    ar_id: Optional[int] = None

    @field_validator('ar_gps_timestamp', 'ar_recorded_at', mode='before')
    @classmethod
    def fix_datetime_timezone(cls, v):
        """Fix datetime timezone format from PostgreSQL"""
        if v == '' or v is None:
            return None

        if isinstance(v, str):
            pattern = r'([+-]\d{2})$'
            match = re.search(pattern, v)
            if match:
                v = v + ':00'

        return v


class AttendanceRecord(AttendanceRecordInDB):
    pass


class ValidationVerdict(BaseModel):
    """Combined outcome of a submitted reading"""
    action: Optional[AttendanceAction] = None
    is_valid: bool = False
    reason: Optional[RejectionReason] = None
    risk: RiskLevel = RiskLevel.LOW
    flags: List[SuspiciousFlag] = Field(default_factory=list)
    reasons: List[str] = Field(default_factory=list)
    suggestions: List[str] = Field(default_factory=list)
    zone: Optional[AuthorizedZone] = None
    nearest_zone: Optional[AuthorizedZone] = None
    distance_m: Optional[int] = None
    remaining_block_minutes: Optional[int] = None
    warnings: List[str] = Field(default_factory=list)
    record_persisted: bool = False
    store_issue: Optional[RejectionReason] = None  # STORE_UNAVAILABLE when the write failed
    validated_at: Optional[datetime] = None
