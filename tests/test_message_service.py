import asyncio

import pytest

from app.schemas.fraud import FlagKind
from app.schemas.message import LocationMessageRequest
from app.services.message_service import HELP_TEXT, UNKNOWN_COMMAND_TEXT, parse_command

from tests.conftest import IN_ZONE_LAT, IN_ZONE_LNG, USER_ID


def location(clock, lat=IN_ZONE_LAT, lng=IN_ZONE_LNG, accuracy=12.5):
    return LocationMessageRequest(
        user_id=USER_ID, latitude=lat, longitude=lng, accuracy=accuracy, timestamp=clock.epoch()
    )


def test_parse_command():
    assert parse_command("  /ENTRADA ") == "entrada"
    assert parse_command("Salida") == "salida"
    assert parse_command(None) == ""


@pytest.mark.asyncio
async def test_help(message_service):
    reply = await message_service.handle_text(USER_ID, "ayuda")
    assert reply.reply == HELP_TEXT


@pytest.mark.asyncio
async def test_greeting(message_service):
    reply = await message_service.handle_text(USER_ID, "Hola, buen día")
    assert "¡Hola!" in reply.reply


@pytest.mark.asyncio
async def test_entrada_command_is_case_and_slash_insensitive(message_service):
    reply = await message_service.handle_text(USER_ID, "/ENTRADA ")

    assert "ENTRADA - Validación exitosa" in reply.reply
    assert "+54 91 1234-56789" in reply.reply
    assert "10 minutos" in reply.reply


@pytest.mark.asyncio
async def test_denied_salida_shows_current_state(message_service):
    reply = await message_service.handle_text(USER_ID, "salida")

    assert "SALIDA NO PERMITIDA" in reply.reply
    assert "🔴 FUERA" in reply.reply
    assert "Entradas hoy: 0/3" in reply.reply


@pytest.mark.asyncio
async def test_unknown_command_reminds_pending_action(message_service):
    assert (await message_service.handle_text(USER_ID, "qué tal")).reply == UNKNOWN_COMMAND_TEXT

    await message_service.handle_text(USER_ID, "entrada")
    reply = await message_service.handle_text(USER_ID, "qué tal")

    assert "Registro de ENTRADA pendiente" in reply.reply


@pytest.mark.asyncio
async def test_cancel(message_service):
    await message_service.handle_text(USER_ID, "entrada")

    reply = await message_service.handle_text(USER_ID, "cancelar")
    assert "ENTRADA cancelado" in reply.reply

    reply = await message_service.handle_text(USER_ID, "cancelar")
    assert "No tienes ningún registro pendiente" in reply.reply


@pytest.mark.asyncio
async def test_zone_listing(message_service):
    reply = await message_service.handle_text(USER_ID, "ubicaciones")

    assert "1️⃣ *Valle de los Ciervos*" in reply.reply
    assert "4️⃣ *Oficina de Desarrollo (Testing)*" in reply.reply
    assert "Radio: 100m" in reply.reply


@pytest.mark.asyncio
async def test_location_without_pending_action(message_service, clock):
    reply = await message_service.handle_location(location(clock))

    assert "Ubicación recibida" in reply.reply
    assert reply.verdict.is_valid is False


@pytest.mark.asyncio
async def test_entrada_then_location_registers(message_service, clock):
    await message_service.handle_text(USER_ID, "entrada")

    reply = await message_service.handle_location(location(clock))

    assert "ENTRADA REGISTRADA" in reply.reply
    assert "Valle de los Ciervos" in reply.reply
    assert "10/03/2026" in reply.reply
    assert reply.verdict.is_valid


@pytest.mark.asyncio
async def test_rejected_location_lists_reasons(message_service, clock):
    await message_service.handle_text(USER_ID, "entrada")

    reply = await message_service.handle_location(location(clock, lat=-34.6037123, lng=-58.3815931))

    assert "ENTRADA RECHAZADA" in reply.reply
    assert "1. ❌ Ubicación NO autorizada" in reply.reply
    assert "Soluciones" in reply.reply


@pytest.mark.asyncio
async def test_status_report_includes_today_history(message_service, clock):
    await message_service.handle_text(USER_ID, "entrada")
    await message_service.handle_location(location(clock))
    clock.advance(minutes=10)

    reply = await message_service.handle_text(USER_ID, "estado")

    assert "ESTADO ACTUAL DE ASISTENCIA" in reply.reply
    assert "🟢 DENTRO" in reply.reply
    assert "Entradas registradas: 1" in reply.reply
    assert "1. 🟢 ENTRADA - 09:00:00 ✅" in reply.reply
    assert "Salida: ✅ Permitida" in reply.reply


@pytest.mark.asyncio
async def test_coordinates_sent_as_text_keep_their_shape(message_service, clock):
    await message_service.handle_text(USER_ID, "entrada")
    payload = LocationMessageRequest(
        user_id=USER_ID, latitude="-37.000000", longitude="-59.116792", accuracy=12.5, timestamp=clock.epoch()
    )

    reply = await message_service.handle_location(payload)

    assert payload.latitude == -37.0
    kinds = {f.kind for f in reply.verdict.flags}
    assert kinds >= {FlagKind.PERFECT_COORDINATES, FlagKind.ROUNDED_COORDINATES}


@pytest.mark.asyncio
async def test_status_report_waits_for_in_flight_reading(message_service, validation_service):
    async with validation_service.locks.hold(USER_ID):
        report = asyncio.create_task(message_service.handle_text(USER_ID, "estado"))
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        assert not report.done()

    reply = await report
    assert "ESTADO ACTUAL DE ASISTENCIA" in reply.reply


def test_coordinate_text_only_comes_from_the_coordinates():
    payload = LocationMessageRequest(
        user_id=USER_ID, latitude=-37.0, longitude=-59.116792, latitude_text="-37.3716412"
    )

    assert payload.latitude_text is None
    assert payload.longitude_text is None
