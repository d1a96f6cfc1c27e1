"""
API Dependencies
Provides API key checks and the shared service instances used by the endpoints
"""
from fastapi import Header

from atams.exceptions import ForbiddenException

from app.core.config import settings
from app.db.session import SessionLocal
from app.repositories.record_store import SqlRecordStore
from app.services.cleanup_service import CleanupService
from app.services.employee_state_service import EmployeeStateService
from app.services.message_service import MessageService
from app.services.store_gateway import RecordStoreGateway
from app.services.validation_service import ValidationService

# Per-user state lives in process memory; one set of services per process
store_gateway = RecordStoreGateway(SqlRecordStore(SessionLocal))
employee_state_service = EmployeeStateService(store_gateway)
validation_service = ValidationService(store_gateway, employee_state_service)
message_service = MessageService(validation_service)
cleanup_service = CleanupService(validation_service)


def get_validation_service() -> ValidationService:
    return validation_service


def get_message_service() -> MessageService:
    return message_service


def get_cleanup_service() -> CleanupService:
    return cleanup_service


def require_channel_key(x_channel_key: str = Header(..., alias="X-Channel-Key")) -> None:
    """Messaging channel gateway must present CHANNEL_API_KEY"""
    if x_channel_key != settings.CHANNEL_API_KEY:
        raise ForbiddenException("Invalid channel API key")


def require_admin_key(x_admin_key: str = Header(..., alias="X-Admin-Key")) -> None:
    """Operator endpoints must present ADMIN_API_KEY"""
    if x_admin_key != settings.ADMIN_API_KEY:
        raise ForbiddenException("Invalid admin API key")


__all__ = [
    "get_validation_service",
    "get_message_service",
    "get_cleanup_service",
    "require_channel_key",
    "require_admin_key",
]
