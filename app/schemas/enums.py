from enum import Enum


class AttendanceAction(str, Enum):
    ENTRADA = "entrada"
    SALIDA = "salida"


class AttendanceStatus(str, Enum):
    IN = "IN"
    OUT = "OUT"


class RejectionReason(str, Enum):
    MISSING_COORDINATES = "MISSING_COORDINATES"
    STALE_READING = "STALE_READING"
    INSUFFICIENT_ACCURACY = "INSUFFICIENT_ACCURACY"
    GEOFENCE_MISMATCH = "GEOFENCE_MISMATCH"
    FRAUD_RISK_HIGH = "FRAUD_RISK_HIGH"
    USER_BLOCKED = "USER_BLOCKED"
    PENDING_CONFLICT = "PENDING_CONFLICT"
    POLICY_VIOLATION = "POLICY_VIOLATION"
    STORE_UNAVAILABLE = "STORE_UNAVAILABLE"
    NOTHING_PENDING = "NOTHING_PENDING"
