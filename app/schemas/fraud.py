"""
Fraud Schemas - flags, history and per-user block records
"""
from enum import Enum
from typing import List, Optional
from datetime import datetime
from pydantic import BaseModel, Field


class Severity(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class FlagKind(str, Enum):
    IDENTICAL_LOCATIONS = "IDENTICAL_LOCATIONS"
    LOW_GPS_VARIATION = "LOW_GPS_VARIATION"
    IMPOSSIBLE_SPEED = "IMPOSSIBLE_SPEED"
    PERFECT_COORDINATES = "PERFECT_COORDINATES"
    EXCESSIVE_PRECISION = "EXCESSIVE_PRECISION"
    ROUNDED_COORDINATES = "ROUNDED_COORDINATES"
    SUSPICIOUS_ACCURACY = "SUSPICIOUS_ACCURACY"
    MISSING_TIMESTAMP = "MISSING_TIMESTAMP"
    ABNORMAL_ACCURACY = "ABNORMAL_ACCURACY"


FLAG_SEVERITY = {
    FlagKind.IDENTICAL_LOCATIONS: Severity.HIGH,
    FlagKind.LOW_GPS_VARIATION: Severity.MEDIUM,
    FlagKind.IMPOSSIBLE_SPEED: Severity.HIGH,
    FlagKind.PERFECT_COORDINATES: Severity.HIGH,
    FlagKind.EXCESSIVE_PRECISION: Severity.MEDIUM,
    FlagKind.ROUNDED_COORDINATES: Severity.HIGH,
    FlagKind.SUSPICIOUS_ACCURACY: Severity.MEDIUM,
    FlagKind.MISSING_TIMESTAMP: Severity.HIGH,
    FlagKind.ABNORMAL_ACCURACY: Severity.LOW,
}


class RiskLevel(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    BLOCKED = "BLOCKED"


class SuspiciousFlag(BaseModel):
    kind: FlagKind
    severity: Severity
    message: str

    @classmethod
    def of(cls, kind: FlagKind, message: str) -> "SuspiciousFlag":
        """Build a flag with the severity fixed for its kind"""
        return cls(kind=kind, severity=FLAG_SEVERITY[kind], message=message)


class HistoryEntry(BaseModel):
    lat: float
    lng: float
    timestamp: float  # epoch seconds


class Incident(BaseModel):
    occurred_at: datetime
    flags: List[SuspiciousFlag]


class UserFraudRecord(BaseModel):
    warning_count: int = 0
    last_warning_at: Optional[datetime] = None
    blocked: bool = False
    blocked_until: Optional[datetime] = None
    incidents: List[Incident] = Field(default_factory=list)


class BlockStatus(BaseModel):
    blocked: bool
    remaining_minutes: Optional[int] = None
    warning_count: int = 0
    message: Optional[str] = None


class RiskAssessment(BaseModel):
    level: RiskLevel
    flags: List[SuspiciousFlag] = Field(default_factory=list)
    warning_count: int = 0
    remaining_minutes: Optional[int] = None
    message: Optional[str] = None


class FraudReport(BaseModel):
    """Operator view of a user's fraud record and recent readings"""
    user_id: str
    record: Optional[UserFraudRecord] = None
    history: List[HistoryEntry] = Field(default_factory=list)
