from .geofence_service import GeofenceService, haversine_distance
from .fraud_service import FraudService
from .risk_service import RiskService
from .store_gateway import RecordStoreGateway
from .employee_state_service import EmployeeStateService
from .validation_service import ValidationService
from .message_service import MessageService
from .cleanup_service import CleanupService

__all__ = [
    "GeofenceService",
    "haversine_distance",
    "FraudService",
    "RiskService",
    "RecordStoreGateway",
    "EmployeeStateService",
    "ValidationService",
    "MessageService",
    "CleanupService"
]
