"""
Zones Endpoints - Authorized geofence zones
"""
from typing import List

from fastapi import APIRouter, Depends, status

from app.schemas import AuthorizedZone, DataResponse
from app.services.validation_service import ValidationService
from app.api.deps import get_validation_service
from app.core.config import settings
from atams.encryption import encrypt_response_data

router = APIRouter()


@router.get(
    "/",
    response_model=DataResponse[List[AuthorizedZone]],
    status_code=status.HTTP_200_OK
)
async def list_zones(
    validation_service: ValidationService = Depends(get_validation_service)
):
    """
    Get the authorized zones in matching order

    The first zone whose radius covers a reading wins, so order matters.
    """
    response = DataResponse(
        success=True,
        message="Zones retrieved successfully",
        data=validation_service.geofence_service.list_zones()
    )

    return encrypt_response_data(response, settings)
