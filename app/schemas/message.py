"""
Message Schemas for the messaging channel webhook
"""
from typing import Any, Optional
from pydantic import BaseModel, Field, model_validator

from app.schemas.attendance import ValidationVerdict


class TextMessageRequest(BaseModel):
    """Inbound text command keyed by the channel's stable user id"""
    user_id: str = Field(min_length=1)
    text: str = ""


class LocationMessageRequest(BaseModel):
    """
    Inbound location share

    Gateways may send coordinates as JSON numbers or as text. Text is
    kept verbatim in `latitude_text` / `longitude_text` for the
    coordinate shape checks.
    """
    user_id: str = Field(min_length=1)
    latitude: Optional[float] = Field(default=None, ge=-90, le=90, allow_inf_nan=False)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180, allow_inf_nan=False)
    accuracy: Optional[float] = Field(default=None, allow_inf_nan=False)
    timestamp: Optional[int] = None  # epoch seconds reported by the device
    latitude_text: Optional[str] = Field(default=None, exclude=True)
    longitude_text: Optional[str] = Field(default=None, exclude=True)

    @model_validator(mode='before')
    @classmethod
    def keep_coordinate_text(cls, data: Any) -> Any:
        if isinstance(data, dict):
            data = dict(data)
            for name in ('latitude', 'longitude'):
                value = data.get(name)
                data[f'{name}_text'] = value.strip() if isinstance(value, str) else None
        return data


class ChatReply(BaseModel):
    """Reply text the channel should deliver back to the user"""
    user_id: str
    reply: str
    verdict: Optional[ValidationVerdict] = None
