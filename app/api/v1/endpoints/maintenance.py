"""
Maintenance Endpoints - Fraud record inspection and state cleanup operations
"""
from fastapi import APIRouter, Depends, status
from pydantic import BaseModel

from app.schemas import DataResponse, FraudReport
from app.services.cleanup_service import CleanupService
from app.services.validation_service import ValidationService
from app.api.deps import get_cleanup_service, get_validation_service, require_admin_key
from atams.exceptions import NotFoundException

router = APIRouter()


class CleanupResult(BaseModel):
    """Cleanup operation result"""
    cleared_count: int
    message: str


@router.get(
    "/fraud/{user_id}",
    response_model=DataResponse[FraudReport],
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_admin_key)]
)
async def get_fraud_report(
    user_id: str,
    validation_service: ValidationService = Depends(get_validation_service)
):
    """
    Get a user's warnings, block status, incidents and location history

    **Authentication:**
    - Requires X-Admin-Key header matching ADMIN_API_KEY
    """
    report = FraudReport(
        user_id=user_id,
        record=validation_service.risk_service.get_record(user_id),
        history=validation_service.fraud_service.get_history(user_id)
    )

    return DataResponse(
        success=True,
        message="Fraud report retrieved successfully",
        data=report
    )


@router.post(
    "/fraud/{user_id}/clear",
    response_model=DataResponse[CleanupResult],
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_admin_key)]
)
async def clear_fraud_record(
    user_id: str,
    validation_service: ValidationService = Depends(get_validation_service)
):
    """
    Reset a user's warning counter and lift any active block

    **Authentication:**
    - Requires X-Admin-Key header matching ADMIN_API_KEY

    **Use case:**
    - Supervisor reviewed the incident and the user was at the workplace
    """
    async with validation_service.locks.hold(user_id):
        cleared = validation_service.risk_service.clear_warnings(user_id)
    if not cleared:
        raise NotFoundException("No fraud record for this user")

    result = CleanupResult(
        cleared_count=1,
        message=f"Warnings and block cleared for {user_id}"
    )

    return DataResponse(
        success=True,
        message="Fraud record cleared",
        data=result
    )


@router.post(
    "/sweep-pending",
    response_model=DataResponse[CleanupResult],
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_admin_key)]
)
async def sweep_pending(
    cleanup_service: CleanupService = Depends(get_cleanup_service)
):
    """
    Clear expired pending actions for every session

    **Authentication:**
    - Requires X-Admin-Key header matching ADMIN_API_KEY

    **Use case:**
    - Runs in the background every PENDING_SWEEP_INTERVAL_SECONDS;
      this endpoint triggers it on demand
    """
    cleared = await cleanup_service.sweep_expired_pending()

    result = CleanupResult(
        cleared_count=cleared,
        message=f"Successfully cleared {cleared} expired pending actions"
    )

    return DataResponse(
        success=True,
        message="Pending action sweep completed",
        data=result
    )
