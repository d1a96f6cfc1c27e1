"""
Cleanup Service - Maintenance operations for in-process state hygiene
"""
import asyncio

from atams.logging import get_logger

from app.services.validation_service import ValidationService

logger = get_logger(__name__)


class CleanupService:
    def __init__(self, validation_service: ValidationService) -> None:
        self.validation = validation_service

    async def sweep_expired_pending(self) -> int:
        """
        Clear pending actions older than PENDING_ACTION_TTL_MINUTES

        Expired actions are also cleared lazily on the next read; the
        sweep only keeps idle sessions from holding stale markers.

        Returns:
            int: Number of pending actions cleared
        """
        state_service = self.validation.state_service
        cleared = 0
        for session in state_service.list_sessions():
            async with self.validation.locks.hold(session.user_id):
                if state_service.expire_pending(session.user_id):
                    cleared += 1

        if cleared:
            logger.info(f"Swept {cleared} expired pending actions")
        return cleared

    async def run_periodic(self, interval_seconds: float) -> None:
        """Sweep every `interval_seconds` until the task is cancelled"""
        while True:
            await asyncio.sleep(interval_seconds)
            try:
                await self.sweep_expired_pending()
            except Exception as e:
                logger.error(f"Pending sweep failed: {str(e)}", exc_info=True)
