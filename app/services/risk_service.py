"""
Risk Service - Aggregate fraud flags into a risk level and manage temporary blocks
"""
import math
from datetime import datetime, timedelta
from typing import List, Optional

from atams.logging import get_logger

from app.core.config import settings as default_settings
from app.repositories.state_repository import InMemoryStateRepository, StateRepository
from app.schemas.fraud import (
    BlockStatus,
    Incident,
    RiskAssessment,
    RiskLevel,
    Severity,
    SuspiciousFlag,
    UserFraudRecord,
)

logger = get_logger(__name__)


class RiskService:
    def __init__(
        self,
        record_repo: Optional[StateRepository[UserFraudRecord]] = None,
        settings=default_settings
    ) -> None:
        self.record_repo = record_repo if record_repo is not None else InMemoryStateRepository()
        self.settings = settings

    def _get_or_create(self, user_id: str) -> UserFraudRecord:
        record = self.record_repo.get(user_id)
        if record is None:
            record = UserFraudRecord()
            self.record_repo.set(user_id, record)
        return record

    def check_block(self, user_id: str, now: datetime) -> BlockStatus:
        """
        Report an active block, lifting it if it has expired

        An expired block resets the warning counter to zero.
        """
        record = self._get_or_create(user_id)

        if record.blocked and record.blocked_until and record.blocked_until > now:
            remaining = math.ceil((record.blocked_until - now).total_seconds() / 60)
            return BlockStatus(
                blocked=True,
                remaining_minutes=remaining,
                warning_count=record.warning_count,
                message=(
                    "🚫 Usuario temporalmente bloqueado por actividad sospechosa. "
                    f"Tiempo restante: {remaining} minutos."
                )
            )

        if record.blocked:
            record.blocked = False
            record.blocked_until = None
            record.warning_count = 0
            self.record_repo.set(user_id, record)
            logger.info(f"Block expired for {user_id}, warnings reset")

        return BlockStatus(blocked=False, warning_count=record.warning_count)

    def classify(self, flags: List[SuspiciousFlag]) -> RiskLevel:
        high = sum(1 for f in flags if f.severity == Severity.HIGH)
        medium = sum(1 for f in flags if f.severity == Severity.MEDIUM)

        if high >= 2:
            return RiskLevel.HIGH
        if high >= 1 or medium >= 2:
            return RiskLevel.MEDIUM
        return RiskLevel.LOW

    def register(self, user_id: str, flags: List[SuspiciousFlag], now: datetime) -> BlockStatus:
        """
        Count HIGH-severity flags as warnings and block on the limit

        Only HIGH flags increment the counter; the whole flag set is kept
        in the bounded incident log.
        """
        record = self._get_or_create(user_id)
        high_flags = [f for f in flags if f.severity == Severity.HIGH]

        if not high_flags:
            return BlockStatus(blocked=False, warning_count=record.warning_count)

        record.warning_count += len(high_flags)
        record.last_warning_at = now
        record.incidents.append(Incident(occurred_at=now, flags=list(flags)))

        size = self.settings.INCIDENT_LOG_SIZE
        if len(record.incidents) > size:
            record.incidents = record.incidents[-size:]

        if record.warning_count >= self.settings.MAX_WARNINGS_PER_USER:
            duration = self.settings.BLOCK_DURATION_MINUTES
            record.blocked = True
            record.blocked_until = now + timedelta(minutes=duration)
            self.record_repo.set(user_id, record)

            logger.warning(
                f"User {user_id} blocked for {duration} minutes",
                extra={'extra_data': {
                    'user_id': user_id,
                    'warning_count': record.warning_count,
                    'blocked_until': record.blocked_until.isoformat(),
                }}
            )
            return BlockStatus(
                blocked=True,
                remaining_minutes=duration,
                warning_count=record.warning_count,
                message=(
                    "🚫 Usuario bloqueado temporalmente por múltiples actividades sospechosas "
                    f"({record.warning_count} warnings). Duración: {duration} minutos."
                )
            )

        self.record_repo.set(user_id, record)
        return BlockStatus(blocked=False, warning_count=record.warning_count)

    def evaluate(self, user_id: str, flags: List[SuspiciousFlag], now: datetime) -> RiskAssessment:
        """
        Combine the block status and the current flag set into a risk level

        Warnings are registered only when the evaluation itself is HIGH.
        """
        block = self.check_block(user_id, now)
        if block.blocked:
            return RiskAssessment(
                level=RiskLevel.BLOCKED,
                flags=flags,
                warning_count=block.warning_count,
                remaining_minutes=block.remaining_minutes,
                message=block.message
            )

        level = self.classify(flags)
        warning_count = block.warning_count

        if level == RiskLevel.HIGH:
            registered = self.register(user_id, flags, now)
            warning_count = registered.warning_count
            if registered.blocked:
                return RiskAssessment(
                    level=RiskLevel.BLOCKED,
                    flags=flags,
                    warning_count=warning_count,
                    remaining_minutes=registered.remaining_minutes,
                    message=registered.message
                )

        return RiskAssessment(level=level, flags=flags, warning_count=warning_count)

    @staticmethod
    def is_accepted(authorized: bool, level: RiskLevel) -> bool:
        return authorized and level not in (RiskLevel.HIGH, RiskLevel.BLOCKED)

    def get_record(self, user_id: str) -> Optional[UserFraudRecord]:
        return self.record_repo.get(user_id)

    def clear_warnings(self, user_id: str) -> bool:
        """Reset warnings and lift any block; returns False for unknown users"""
        record = self.record_repo.get(user_id)
        if record is None:
            return False
        record.warning_count = 0
        record.blocked = False
        record.blocked_until = None
        self.record_repo.set(user_id, record)
        logger.info(f"Warnings cleared for {user_id}")
        return True
