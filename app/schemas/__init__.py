from .enums import AttendanceAction, AttendanceStatus, RejectionReason
from .zone import AuthorizedZone, GeofenceResult
from .fraud import (
    Severity,
    FlagKind,
    RiskLevel,
    SuspiciousFlag,
    HistoryEntry,
    Incident,
    UserFraudRecord,
    BlockStatus,
    RiskAssessment,
    FraudReport
)
from .attendance import (
    LocationReading,
    AttendanceRecordCreate,
    AttendanceRecord,
    ValidationVerdict
)
from .employee import EmployeeSession, EmployeeState, ActionValidation, CachedEmployeeState
from .message import TextMessageRequest, LocationMessageRequest, ChatReply
from .common import DataResponse, PaginationResponse

__all__ = [
    # Enums
    "AttendanceAction",
    "AttendanceStatus",
    "RejectionReason",
    # Zone schemas
    "AuthorizedZone",
    "GeofenceResult",
    # Fraud schemas
    "Severity",
    "FlagKind",
    "RiskLevel",
    "SuspiciousFlag",
    "HistoryEntry",
    "Incident",
    "UserFraudRecord",
    "BlockStatus",
    "RiskAssessment",
    "FraudReport",
    # Attendance schemas
    "LocationReading",
    "AttendanceRecordCreate",
    "AttendanceRecord",
    "ValidationVerdict",
    # Employee schemas
    "EmployeeSession",
    "EmployeeState",
    "ActionValidation",
    "CachedEmployeeState",
    # Message schemas
    "TextMessageRequest",
    "LocationMessageRequest",
    "ChatReply",
    # Common schemas
    "DataResponse",
    "PaginationResponse"
]
