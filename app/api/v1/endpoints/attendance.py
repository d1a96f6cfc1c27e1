"""
Attendance Endpoints - Record history and derived employee state
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from app.schemas import AttendanceRecord, DataResponse, EmployeeSession, EmployeeState
from app.services.validation_service import ValidationService
from app.api.deps import get_validation_service, require_admin_key
from app.core.config import settings
from atams.encryption import encrypt_response_data
from atams.exceptions import NotFoundException, ServiceUnavailableException

router = APIRouter()


@router.get(
    "/records",
    response_model=DataResponse[List[AttendanceRecord]],
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_admin_key)]
)
async def list_records(
    user_id: Optional[str] = Query(None, description="Filter by channel user id"),
    skip: int = Query(0, ge=0, description="Number of records to skip"),
    limit: int = Query(50, ge=1, le=1000, description="Maximum records to return"),
    validation_service: ValidationService = Depends(get_validation_service)
):
    """
    Get recent attendance attempts, newest first

    **Authentication:**
    - Requires X-Admin-Key header matching ADMIN_API_KEY

    Both VALID and INVALID attempts are listed.
    """
    records, ok = await validation_service.store.list_records(user_id, skip, limit)
    if not ok:
        raise ServiceUnavailableException("Record store unavailable")

    response = DataResponse(
        success=True,
        message="Attendance records retrieved successfully",
        data=records
    )

    return encrypt_response_data(response, settings)


@router.get(
    "/employees",
    response_model=DataResponse[List[EmployeeSession]],
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_admin_key)]
)
async def list_employees(
    validation_service: ValidationService = Depends(get_validation_service)
):
    """
    Get every employee session known to this process

    **Authentication:**
    - Requires X-Admin-Key header matching ADMIN_API_KEY
    """
    response = DataResponse(
        success=True,
        message="Employee sessions retrieved successfully",
        data=validation_service.state_service.list_sessions()
    )

    return encrypt_response_data(response, settings)


@router.get(
    "/employees/{user_id}/state",
    response_model=DataResponse[EmployeeState],
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_admin_key)]
)
async def get_employee_state(
    user_id: str,
    validation_service: ValidationService = Depends(get_validation_service)
):
    """
    Get the derived attendance state of an employee

    **Authentication:**
    - Requires X-Admin-Key header matching ADMIN_API_KEY

    **Raises:**
    - 404 if the employee never contacted the service
    """
    if not validation_service.state_service.has_session(user_id):
        raise NotFoundException("Employee session not found")

    state = await validation_service.get_state(user_id, force_refresh=True)

    response = DataResponse(
        success=True,
        message="Employee state retrieved successfully",
        data=state
    )

    return encrypt_response_data(response, settings)
