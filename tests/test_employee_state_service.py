from datetime import datetime, timedelta

import pytest

from app.core.config import settings
from app.schemas.enums import AttendanceAction, AttendanceStatus, RejectionReason
from app.services.employee_state_service import (
    EmployeeStateService,
    extract_phone_number,
    format_display_id,
)
from app.services.store_gateway import RecordStoreGateway

from tests.conftest import USER_ID, FailingRecordStore

TODAY = datetime(2026, 3, 10)


def at(hour, minute=0, day=TODAY):
    return day.replace(hour=hour, minute=minute)


def test_display_id_formatting():
    assert extract_phone_number("5491123456789@c.us") == "5491123456789"
    assert extract_phone_number("5491123456789@s.whatsapp.net") == "5491123456789"
    assert format_display_id("5491123456789") == "+54 91 1234-56789"
    assert format_display_id("12345") == "12345"


def test_session_tracks_activity(state_service, clock):
    session = state_service.get_or_create_session(USER_ID)
    assert session.display_id == "+54 91 1234-56789"
    assert session.message_count == 0

    clock.advance(minutes=1)
    session = state_service.get_or_create_session(USER_ID)
    assert session.message_count == 1
    assert session.last_activity_at == clock.now
    assert session.first_contact_at == clock.now - timedelta(minutes=1)


@pytest.mark.asyncio
async def test_new_employee_is_out_and_may_enter(state_service):
    state = await state_service.compute_state(USER_ID)

    assert state.status == AttendanceStatus.OUT
    assert state.can_enter
    assert not state.can_exit
    assert state.is_working_hours


@pytest.mark.asyncio
async def test_last_validated_entrada_means_in(state_service, add_record):
    add_record("entrada", at(7))
    add_record("salida", at(8), status="INVALID")

    state = await state_service.compute_state(USER_ID)

    assert state.status == AttendanceStatus.IN
    assert state.today_entries == 1
    assert state.today_exits == 0
    assert state.working_hours == pytest.approx(2.0)
    assert state.can_exit


@pytest.mark.asyncio
async def test_entrada_outside_working_hours_is_denied(state_service, clock):
    clock.now = at(3)

    validation = await state_service.validate_action(USER_ID, AttendanceAction.ENTRADA)

    assert not validation.is_allowed
    assert validation.reason == RejectionReason.POLICY_VIOLATION
    assert "horario laboral" in validation.message


@pytest.mark.asyncio
async def test_working_hours_window_is_inclusive(state_service, clock):
    clock.now = at(22, 30)

    validation = await state_service.validate_action(USER_ID, AttendanceAction.ENTRADA)

    assert validation.is_allowed


@pytest.mark.asyncio
async def test_conflicting_pending_action_is_denied(state_service, add_record):
    add_record("entrada", at(7))
    state_service.set_pending_action(USER_ID, AttendanceAction.SALIDA)

    validation = await state_service.validate_action(USER_ID, AttendanceAction.ENTRADA)

    assert not validation.is_allowed
    assert validation.reason == RejectionReason.PENDING_CONFLICT
    assert any("cancelar" in s for s in validation.suggestions)


@pytest.mark.asyncio
async def test_same_pending_action_is_a_retry(state_service):
    state_service.set_pending_action(USER_ID, AttendanceAction.ENTRADA)

    validation = await state_service.validate_action(USER_ID, AttendanceAction.ENTRADA)

    assert validation.is_allowed
    assert validation.state.pending_action == AttendanceAction.ENTRADA


@pytest.mark.asyncio
async def test_entrada_while_in_is_denied(state_service, add_record):
    add_record("entrada", at(7))

    validation = await state_service.validate_action(USER_ID, AttendanceAction.ENTRADA)

    assert not validation.is_allowed
    assert "entrada activa" in validation.message


@pytest.mark.asyncio
async def test_daily_entry_cap(state_service, add_record):
    for hour in (6, 7):
        add_record("entrada", at(hour))
        add_record("salida", at(hour, 30))
    add_record("entrada", at(8))
    add_record("salida", at(8, 10))

    validation = await state_service.validate_action(USER_ID, AttendanceAction.ENTRADA)

    assert not validation.is_allowed
    assert validation.state.today_entries == 3
    assert "Límite" in validation.message


@pytest.mark.asyncio
async def test_minimum_gap_between_actions(state_service, add_record):
    add_record("entrada", at(8, 58))

    validation = await state_service.validate_action(USER_ID, AttendanceAction.SALIDA)

    assert not validation.is_allowed
    assert validation.state.below_min_gap
    assert "5 minutos" in validation.message


@pytest.mark.asyncio
async def test_salida_without_entrada_is_denied(state_service):
    validation = await state_service.validate_action(USER_ID, AttendanceAction.SALIDA)

    assert not validation.is_allowed
    assert "sin haber registrado entrada" in validation.message


@pytest.mark.asyncio
async def test_second_salida_is_denied(state_service, add_record):
    add_record("entrada", at(7))
    add_record("salida", at(8))

    validation = await state_service.validate_action(USER_ID, AttendanceAction.SALIDA)

    assert not validation.is_allowed
    assert "Ya registraste tu salida" in validation.message


@pytest.mark.asyncio
async def test_salida_reports_hours_worked(state_service, add_record):
    add_record("entrada", at(7))

    validation = await state_service.validate_action(USER_ID, AttendanceAction.SALIDA)

    assert validation.is_allowed
    assert "2.0h" in validation.message


@pytest.mark.asyncio
async def test_missing_exit_after_work_day(state_service, add_record, clock):
    clock.now = at(23)
    add_record("entrada", at(20))

    state = await state_service.compute_state(USER_ID)

    assert state.missing_exit
    assert any("salida faltante" in w for w in state.warnings)


@pytest.mark.asyncio
async def test_excessive_hours_warning(state_service, add_record):
    add_record("entrada", at(20, day=TODAY - timedelta(days=1)))

    state = await state_service.compute_state(USER_ID)

    assert state.status == AttendanceStatus.IN
    assert state.today_entries == 0
    assert any("excesivo" in w for w in state.warnings)


@pytest.mark.asyncio
async def test_pending_action_expires_after_ttl(state_service, clock):
    state_service.set_pending_action(USER_ID, AttendanceAction.ENTRADA)

    clock.advance(minutes=9, seconds=59)
    assert state_service.get_pending_action(USER_ID) == AttendanceAction.ENTRADA

    clock.advance(seconds=1)
    assert state_service.get_pending_action(USER_ID) is None
    state = await state_service.compute_state(USER_ID)
    assert state.pending_action is None
    assert state.can_enter


@pytest.mark.asyncio
async def test_pending_blocks_both_actions_without_changing_status(state_service):
    state_service.set_pending_action(USER_ID, AttendanceAction.ENTRADA)

    state = await state_service.compute_state(USER_ID)

    assert state.status == AttendanceStatus.OUT
    assert not state.can_enter
    assert not state.can_exit


def test_sweep_clears_only_expired(state_service, clock):
    state_service.set_pending_action("a@c.us", AttendanceAction.ENTRADA)
    clock.advance(minutes=6)
    state_service.set_pending_action("b@c.us", AttendanceAction.SALIDA)
    clock.advance(minutes=5)

    assert state_service.sweep_expired_pending() == 1
    assert state_service.get_pending_action("a@c.us") is None
    assert state_service.get_pending_action("b@c.us") == AttendanceAction.SALIDA


@pytest.mark.asyncio
async def test_state_is_cached_until_invalidated(state_service, add_record):
    first = await state_service.compute_state(USER_ID)
    add_record("entrada", at(7))

    cached = await state_service.compute_state(USER_ID)
    assert cached.status == AttendanceStatus.OUT
    assert cached.cached_at == first.cached_at

    state_service.invalidate(USER_ID)
    refreshed = await state_service.compute_state(USER_ID)
    assert refreshed.status == AttendanceStatus.IN


@pytest.mark.asyncio
async def test_cache_expires_after_ttl(state_service, add_record, clock):
    await state_service.compute_state(USER_ID)
    add_record("entrada", at(8, 30))

    clock.advance(minutes=60)
    state = await state_service.compute_state(USER_ID)

    assert state.status == AttendanceStatus.IN


@pytest.mark.asyncio
async def test_state_from_failed_store_is_not_cached(clock):
    service = EmployeeStateService(RecordStoreGateway(FailingRecordStore(), settings), clock=clock)

    state = await service.compute_state(USER_ID)

    assert state.status == AttendanceStatus.OUT
    assert service.cache_repo.get(USER_ID) is None


def test_clear_session(state_service):
    state_service.get_or_create_session(USER_ID)
    state_service.clear_session(USER_ID)

    assert not state_service.has_session(USER_ID)
    assert state_service.list_sessions() == []
