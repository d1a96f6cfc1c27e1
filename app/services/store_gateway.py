"""
Record Store Gateway - Bounded, soft-failing access to the RecordStore

Store calls run in the default executor with a timeout and at most
STORE_RETRIES retries. Failures are logged and reported through the
returned `ok` flag; they never propagate into the validation flow.
"""
import asyncio
from datetime import date
from functools import partial
from typing import Any, Callable, List, Optional, Tuple

from atams.logging import get_logger

from app.core.config import settings as default_settings
from app.repositories.record_store import RecordStore
from app.schemas.attendance import AttendanceRecord, AttendanceRecordCreate

logger = get_logger(__name__)


class RecordStoreGateway:
    def __init__(self, store: RecordStore, settings=default_settings) -> None:
        self.store = store
        self.timeout = settings.STORE_TIMEOUT_SECONDS
        self.retries = settings.STORE_RETRIES

    async def _call(
        self,
        operation: str,
        fn: Callable[..., Any],
        *args: Any,
        default: Any = None,
        retry_on_timeout: bool = True
    ) -> Tuple[Any, bool]:
        attempts = 1 + max(self.retries, 0)
        for attempt in range(1, attempts + 1):
            try:
                result = await asyncio.wait_for(
                    asyncio.get_running_loop().run_in_executor(None, partial(fn, *args)),
                    timeout=self.timeout
                )
                return result, True
            except asyncio.TimeoutError:
                logger.error(
                    f"Record store {operation} timed out after {self.timeout}s (attempt {attempt}/{attempts})",
                    extra={'extra_data': {'operation': operation, 'attempt': attempt}}
                )
                if not retry_on_timeout:
                    break
            except Exception as e:
                logger.error(
                    f"Record store {operation} failed: {str(e)} (attempt {attempt}/{attempts})",
                    exc_info=True,
                    extra={'extra_data': {'operation': operation, 'attempt': attempt}}
                )
        return default, False

    async def insert_attendance(self, record: AttendanceRecordCreate) -> Tuple[Optional[AttendanceRecord], bool]:
        # No retry on timeout: the first write may still commit
        return await self._call(
            "insert_attendance", self.store.insert_attendance, record, retry_on_timeout=False
        )

    async def last_validated(self, user_id: str) -> Tuple[Optional[AttendanceRecord], bool]:
        return await self._call("query_last_validated_record", self.store.query_last_validated_record, user_id)

    async def today_validated(self, user_id: str, target_date: date) -> Tuple[List[AttendanceRecord], bool]:
        return await self._call(
            "query_today_validated_records",
            self.store.query_today_validated_records, user_id, target_date,
            default=[]
        )

    async def today_records(self, user_id: str, target_date: date) -> Tuple[List[AttendanceRecord], bool]:
        return await self._call(
            "query_today_records",
            self.store.query_today_records, user_id, target_date,
            default=[]
        )

    async def list_records(self, user_id: str = None, skip: int = 0, limit: int = 100) -> Tuple[List[AttendanceRecord], bool]:
        return await self._call(
            "list_records", self.store.list_records, user_id, skip, limit,
            default=[]
        )
