"""
Message Service - Chat command parsing and Spanish reply rendering
"""
from datetime import datetime
from typing import Callable, List

from atams.logging import get_logger

from app.core.config import settings as default_settings
from app.schemas.attendance import AttendanceRecord, LocationReading, ValidationVerdict
from app.schemas.employee import ActionValidation, EmployeeState
from app.schemas.enums import AttendanceAction, AttendanceStatus, RejectionReason
from app.schemas.fraud import RiskLevel
from app.schemas.message import ChatReply, LocationMessageRequest
from app.services.validation_service import ValidationService

logger = get_logger(__name__)

GREETINGS = ("hola", "buenos dias", "buenas tardes")

HELP_TEXT = (
    "📋 *COMANDOS DISPONIBLES:*\n\n"
    "🟢 *entrada* - Registrar hora de entrada\n"
    "🔴 *salida* - Registrar hora de salida\n"
    "📊 *estado* - Ver último registro\n"
    "📍 *ubicaciones* - Ver puntos autorizados\n"
    "❌ *cancelar* - Cancelar registro pendiente\n"
    "❓ *ayuda* - Mostrar esta ayuda\n\n"
    "⚠️ *IMPORTANTE:* Para registrar entrada/salida necesitas compartir tu ubicación GPS actual."
)

GREETING_TEXT = (
    "👋 *¡Hola!* Soy el bot de asistencia.\n\n"
    "🏢 Sistema de Control de Asistencia con GPS\n\n"
    "📋 Comandos principales:\n"
    "• *entrada* - Registrar ingreso\n"
    "• *salida* - Registrar salida\n"
    "• *ayuda* - Ver todos los comandos\n\n"
    "📍 Recuerda que necesitas compartir tu ubicación GPS para registrar asistencia."
)

UNKNOWN_COMMAND_TEXT = (
    "❓ *Comando no reconocido*\n\n"
    "Envía *ayuda* para ver los comandos disponibles.\n\n"
    "💡 Comandos principales:\n"
    "• *entrada* - Registrar ingreso\n"
    "• *salida* - Registrar salida"
)


def parse_command(text: str) -> str:
    """Normalize inbound text: trimmed, lower-case, without a leading "/" """
    command = (text or "").strip().lower()
    if command.startswith("/"):
        command = command[1:].strip()
    return command


def _time(value: datetime) -> str:
    return value.strftime("%H:%M:%S")


def _status_label(status: AttendanceStatus) -> str:
    return "🟢 DENTRO" if status == AttendanceStatus.IN else "🔴 FUERA"


def _action_header(action: AttendanceAction):
    if action == AttendanceAction.ENTRADA:
        return "🟢", "ENTRADA"
    return "🔴", "SALIDA"


class MessageService:
    def __init__(
        self,
        validation_service: ValidationService,
        settings=default_settings,
        clock: Callable[[], datetime] = datetime.now
    ) -> None:
        self.validation = validation_service
        self.state_service = validation_service.state_service
        self.settings = settings
        self.clock = clock

    # ==================== ENTRY POINTS ====================

    async def handle_text(self, user_id: str, text: str) -> ChatReply:
        """Dispatch a text command and render the reply"""
        self.state_service.get_or_create_session(user_id)
        command = parse_command(text)
        logger.debug(f"Text command '{command}' from {user_id}")

        if command in (AttendanceAction.ENTRADA.value, AttendanceAction.SALIDA.value):
            action = AttendanceAction(command)
            validation = await self.validation.request_action(user_id, action)
            reply = self.format_action_validation(validation)
        elif command == "cancelar":
            cancelled = await self.validation.cancel(user_id)
            if cancelled:
                reply = (
                    f"❌ *Registro de {cancelled.value.upper()} cancelado*\n\n"
                    "Puedes intentar nuevamente cuando quieras.\n"
                    "Envía *entrada* o *salida* para registrar tu asistencia."
                )
            else:
                reply = "ℹ️ No tienes ningún registro pendiente para cancelar."
        elif command == "ayuda":
            reply = HELP_TEXT
        elif command == "estado":
            reply = await self.status_report(user_id)
        elif command == "ubicaciones":
            reply = self.format_zones()
        elif any(greeting in command for greeting in GREETINGS):
            reply = GREETING_TEXT
        else:
            pending = self.state_service.get_pending_action(user_id)
            if pending:
                reply = (
                    f"⏳ *Registro de {pending.value.upper()} pendiente*\n\n"
                    "📍 Envía tu ubicación actual para continuar.\n"
                    "❌ Responde *cancelar* si quieres cancelar.\n"
                    "❓ Responde *ayuda* si necesitas instrucciones."
                )
            else:
                reply = UNKNOWN_COMMAND_TEXT

        return ChatReply(user_id=user_id, reply=reply)

    async def handle_location(self, payload: LocationMessageRequest) -> ChatReply:
        """Validate a shared location against the pending action and render the verdict"""
        self.state_service.get_or_create_session(payload.user_id)
        reading = LocationReading(
            latitude=payload.latitude,
            longitude=payload.longitude,
            accuracy_m=payload.accuracy,
            captured_at=payload.timestamp,
            latitude_text=payload.latitude_text,
            longitude_text=payload.longitude_text
        )
        verdict = await self.validation.submit_reading(payload.user_id, reading)
        return ChatReply(user_id=payload.user_id, reply=self.format_verdict(verdict), verdict=verdict)

    # ==================== RENDERING ====================

    def format_action_validation(self, validation: ActionValidation) -> str:
        emoji, label = _action_header(validation.action)
        state = validation.state

        if validation.is_allowed:
            message = f"{emoji} *{label} - Validación exitosa* ✅\n\n"
            message += f"👤 *Empleado:* {state.display_id}\n"
            message += f"{validation.message}\n\n"

            warnings = [w for w in state.warnings if "pendiente" not in w]
            if warnings:
                message += "⚠️ *Advertencias:*\n"
                message += "".join(f"• {w}\n" for w in warnings)
                message += "\n"

            message += "📱 *AHORA comparte tu ubicación actual* para completar el registro.\n\n"
            message += (
                "📍 **IMPORTANTE:** Debes estar físicamente en el lugar de trabajo "
                "y usar \"Ubicación actual\" (NO buscar lugares).\n\n"
            )
            message += f"⏰ Tienes {self.settings.PENDING_ACTION_TTL_MINUTES} minutos para enviar tu ubicación.\n"
            message += "❓ Responde \"cancelar\" si quieres cancelar."
            return message

        message = f"{emoji} *{label} NO PERMITIDA* ❌\n\n"
        message += f"👤 *Empleado:* {state.display_id}\n"
        message += f"*Razón:* {validation.message}\n\n"

        if validation.suggestions:
            message += "💡 *Soluciones:*\n"
            message += "".join(f"• {s}\n" for s in validation.suggestions)
            message += "\n"

        message += "📊 *Tu estado actual:*\n"
        message += f"• Estado: {_status_label(state.status)}\n"
        message += f"• Entradas hoy: {state.today_entries}/{self.settings.MAX_ENTRIES_PER_DAY}\n"
        message += f"• Salidas hoy: {state.today_exits}\n"
        if state.last_action_at:
            message += f"• Última acción: {state.last_action.value} a las {_time(state.last_action_at)}\n"
        if state.pending_action:
            message += f"• Acción pendiente: {state.pending_action.value}\n"
        message += "\n📞 Si necesitas ayuda, contacta a tu supervisor."
        return message

    def format_verdict(self, verdict: ValidationVerdict) -> str:
        if verdict.reason == RejectionReason.NOTHING_PENDING:
            return (
                "📍 *Ubicación recibida*\n\n"
                "No tenías ninguna solicitud de registro pendiente.\n"
                "Envía *entrada* o *salida* para registrar tu asistencia."
            )

        emoji, label = _action_header(verdict.action)

        if verdict.risk == RiskLevel.BLOCKED:
            return (
                f"{emoji} *{label} BLOQUEADA* 🚫\n\n"
                + "\n".join(verdict.reasons)
                + "\n\n💡 *Para resolver este bloqueo:*\n"
                + "\n".join(f"• {s}" for s in verdict.suggestions)
            )

        if verdict.is_valid:
            moment = verdict.validated_at or self.clock()
            response = f"{emoji} *{label} REGISTRADA* ✅\n\n"
            response += f"📍 *Ubicación:* {verdict.zone.name}\n"
            response += f"📏 *Distancia:* {verdict.distance_m}m del punto autorizado\n"
            response += f"🕐 *Hora:* {_time(moment)}\n"
            response += f"📅 *Fecha:* {moment.strftime('%d/%m/%Y')}\n"

            if verdict.risk in (RiskLevel.MEDIUM, RiskLevel.HIGH):
                response += "\n⚠️ *ADVERTENCIA DE SEGURIDAD:*\n"
                response += "Se detectaron patrones inusuales en tu ubicación.\n"
                response += "Asegúrate de compartir siempre tu ubicación GPS actual real.\n"

            response += "\n¡Registro exitoso! 🎉"
            return response

        response = f"{emoji} *{label} RECHAZADA* ❌\n\n"
        response += "*Razones del rechazo:*\n"
        response += "".join(f"{index}. {reason}\n" for index, reason in enumerate(verdict.reasons, start=1))

        if verdict.risk == RiskLevel.HIGH:
            response += "\n🚨 *ALERTA DE SEGURIDAD:*\n"
            response += "El sistema detectó múltiples indicadores de ubicación fraudulenta.\n"
            response += (
                "Asegúrate de estar físicamente en el lugar de trabajo "
                "y compartir tu ubicación GPS real actual.\n\n"
            )

        if verdict.suggestions:
            response += "\n💡 *Soluciones:*\n"
            response += "".join(f"• {s}\n" for s in verdict.suggestions)
        response += "\n📞 Si crees que es un error, contacta a tu supervisor inmediatamente."
        return response

    def format_zones(self) -> str:
        response = "📍 *UBICACIONES AUTORIZADAS:*\n\n"
        for index, zone in enumerate(self.validation.geofence_service.list_zones(), start=1):
            response += f"{index}️⃣ *{zone.name}*\n"
            response += f"   📏 Radio: {zone.radius_m}m\n"
            response += f"   📱 Coordenadas: {zone.lat:.6f}, {zone.lng:.6f}\n\n"
        response += "⚠️ *Debes estar dentro del radio especificado para cada ubicación.*"
        return response

    async def status_report(self, user_id: str) -> str:
        today = self.clock().date()
        # State and history from the same moment
        async with self.validation.locks.hold(user_id):
            state = await self.state_service.compute_state(user_id, force_refresh=True)
            records, ok = await self.validation.store.today_records(user_id, today)
        if not ok and state.last_action is None:
            return "❌ Error consultando tu estado. Intenta más tarde."
        return self.format_status_report(state, records, today)

    def format_status_report(self, state: EmployeeState, records: List[AttendanceRecord], today=None) -> str:
        today = today or self.clock().date()
        report = "📊 *ESTADO ACTUAL DE ASISTENCIA*\n\n"
        report += f"👤 *Empleado:* {state.display_id}\n"
        report += f"📍 *Estado:* {_status_label(state.status)}\n"

        if state.last_action:
            report += f"⏰ *Última acción:* {state.last_action.value.upper()} a las {_time(state.last_action_at)}\n"
        if state.pending_action:
            report += f"⏳ *Pendiente:* {state.pending_action.value.upper()} - esperando ubicación\n"

        report += f"\n📈 *HOY ({today.strftime('%d/%m/%Y')}):*\n"
        report += f"• Entradas registradas: {state.today_entries}\n"
        report += f"• Salidas registradas: {state.today_exits}\n"
        if state.working_hours > 0:
            report += f"• Tiempo trabajando: {round(state.working_hours, 1)} horas\n"

        report += "\n🎯 *ACCIONES DISPONIBLES:*\n"
        report += f"• Entrada: {'✅ Permitida' if state.can_enter else '❌ No disponible'}\n"
        report += f"• Salida: {'✅ Permitida' if state.can_exit else '❌ No disponible'}\n"

        if state.warnings:
            report += "\n⚠️ *ADVERTENCIAS:*\n"
            report += "".join(f"• {w}\n" for w in state.warnings)

        if records:
            report += "\n📝 *HISTORIAL DE HOY:*\n"
            for index, record in enumerate(records, start=1):
                emoji = "🟢" if record.ar_action_type == AttendanceAction.ENTRADA.value else "🔴"
                status = "✅" if record.ar_validation_status == "VALID" else "❌"
                report += (
                    f"{index}. {emoji} {record.ar_action_type.upper()} - "
                    f"{_time(record.ar_recorded_at)} {status}\n"
                )

        return report
