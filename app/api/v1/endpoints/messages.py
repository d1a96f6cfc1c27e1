"""
Messages Endpoints - Webhook for the messaging channel gateway
"""
from fastapi import APIRouter, Depends, status

from app.schemas import ChatReply, DataResponse, LocationMessageRequest, TextMessageRequest
from app.services.message_service import MessageService
from app.api.deps import get_message_service, require_channel_key

router = APIRouter()


@router.post(
    "/text",
    response_model=DataResponse[ChatReply],
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_channel_key)]
)
async def receive_text(
    request: TextMessageRequest,
    message_service: MessageService = Depends(get_message_service)
):
    """
    Process an inbound text command

    **Authentication:**
    - Requires X-Channel-Key header matching CHANNEL_API_KEY

    **Commands:**
    - entrada, salida, estado, ubicaciones, ayuda, cancelar (optional leading "/")
    """
    reply = await message_service.handle_text(request.user_id, request.text)

    return DataResponse(
        success=True,
        message="Message processed",
        data=reply
    )


@router.post(
    "/location",
    response_model=DataResponse[ChatReply],
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_channel_key)]
)
async def receive_location(
    request: LocationMessageRequest,
    message_service: MessageService = Depends(get_message_service)
):
    """
    Process an inbound location share

    **Authentication:**
    - Requires X-Channel-Key header matching CHANNEL_API_KEY

    **Response:**
    - Reply text for the user plus the structured validation verdict
    - Rejections are returned as verdicts, never as HTTP errors
    """
    reply = await message_service.handle_location(request)

    return DataResponse(
        success=True,
        message="Location processed",
        data=reply
    )
