"""
Employee Schemas - sessions, derived attendance state and action checks
"""
from typing import List, Optional
from datetime import datetime
from pydantic import BaseModel, Field

from app.schemas.enums import AttendanceAction, AttendanceStatus, RejectionReason


class EmployeeSession(BaseModel):
    user_id: str
    display_id: str
    first_contact_at: datetime
    last_activity_at: datetime
    message_count: int = 0
    pending_action: Optional[AttendanceAction] = None
    pending_action_at: Optional[datetime] = None


class EmployeeState(BaseModel):
    user_id: str
    display_id: str
    status: AttendanceStatus = AttendanceStatus.OUT
    last_action: Optional[AttendanceAction] = None
    last_action_at: Optional[datetime] = None
    today_entries: int = 0
    today_exits: int = 0
    working_hours: float = 0.0
    can_enter: bool = False
    can_exit: bool = False
    warnings: List[str] = Field(default_factory=list)
    missing_exit: bool = False
    below_min_gap: bool = False
    is_working_hours: bool = False
    pending_action: Optional[AttendanceAction] = None
    cached_at: datetime


class ActionValidation(BaseModel):
    """Answer to "may this user start this action now?" """
    action: AttendanceAction
    is_allowed: bool
    reason: Optional[RejectionReason] = None
    message: str
    suggestions: List[str] = Field(default_factory=list)
    state: EmployeeState


class CachedEmployeeState(BaseModel):
    """Cache entry carrying its own expiry instant"""
    state: EmployeeState
    expires_at: datetime

    def is_fresh(self, now: datetime) -> bool:
        return now < self.expires_at
