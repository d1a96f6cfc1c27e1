import os
from datetime import datetime, timedelta

# Settings are read at import time; keep them out of any real database
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ["PENDING_SWEEP_INTERVAL_SECONDS"] = "0"
os.environ["CHANNEL_API_KEY"] = "test-channel-key"
os.environ["ADMIN_API_KEY"] = "test-admin-key"

import pytest

from app.core.config import settings
from app.repositories.record_store import InMemoryRecordStore
from app.schemas.attendance import AttendanceRecordCreate, LocationReading
from app.services.employee_state_service import EmployeeStateService
from app.services.fraud_service import FraudService
from app.services.geofence_service import GeofenceService
from app.services.message_service import MessageService
from app.services.risk_service import RiskService
from app.services.store_gateway import RecordStoreGateway
from app.services.validation_service import ValidationService

USER_ID = "5491123456789@c.us"

# A few meters from "Valle de los Ciervos"
IN_ZONE_LAT = -37.3716412
IN_ZONE_LNG = -59.1167891


class FakeClock:
    """Naive local clock that only moves when told to"""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now

    def epoch(self) -> int:
        return int(self.now.timestamp())


class FailingRecordStore(InMemoryRecordStore):
    """Every call fails as if the database were down"""

    def __init__(self) -> None:
        super().__init__()
        self.calls = 0

    def _fail(self, *args, **kwargs):
        self.calls += 1
        raise RuntimeError("database unavailable")

    insert_attendance = _fail
    query_last_validated_record = _fail
    query_today_validated_records = _fail
    query_today_records = _fail
    list_records = _fail


@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 3, 10, 9, 0, 0))


@pytest.fixture
def record_store():
    return InMemoryRecordStore()


@pytest.fixture
def gateway(record_store):
    return RecordStoreGateway(record_store, settings)


@pytest.fixture
def state_service(gateway, clock):
    return EmployeeStateService(gateway, settings=settings, clock=clock)


@pytest.fixture
def fraud_service():
    return FraudService(settings=settings)


@pytest.fixture
def risk_service():
    return RiskService(settings=settings)


@pytest.fixture
def validation_service(gateway, state_service, fraud_service, risk_service, clock):
    return ValidationService(
        gateway,
        state_service,
        geofence_service=GeofenceService(),
        fraud_service=fraud_service,
        risk_service=risk_service,
        settings=settings,
        clock=clock
    )


@pytest.fixture
def message_service(validation_service, clock):
    return MessageService(validation_service, settings=settings, clock=clock)


@pytest.fixture
def fresh_reading(clock):
    def build(lat=IN_ZONE_LAT, lng=IN_ZONE_LNG, accuracy=12.5, age_seconds=0):
        return LocationReading(
            latitude=lat,
            longitude=lng,
            accuracy_m=accuracy,
            captured_at=clock.epoch() - age_seconds
        )
    return build


@pytest.fixture
def add_record(record_store):
    def add(action, recorded_at, status="VALID", user_id=USER_ID):
        return record_store.insert_attendance(AttendanceRecordCreate(
            ar_user_id=user_id,
            ar_action_type=action,
            ar_lat=IN_ZONE_LAT,
            ar_lng=IN_ZONE_LNG,
            ar_zone_name="Valle de los Ciervos",
            ar_distance_m=3,
            ar_validation_status=status,
            ar_accuracy_m=12.5,
            ar_recorded_at=recorded_at
        ))
    return add
