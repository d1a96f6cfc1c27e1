"""
Validation Service - Orchestrates legality checks and reading validation per user
"""
import asyncio
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Callable, Dict, Optional

from atams.logging import get_logger

from app.core.config import settings as default_settings
from app.schemas.attendance import (
    AttendanceRecordCreate,
    LocationReading,
    ValidationVerdict,
)
from app.schemas.employee import ActionValidation, EmployeeState
from app.schemas.enums import AttendanceAction, RejectionReason
from app.schemas.fraud import RiskLevel
from app.services.employee_state_service import EmployeeStateService
from app.services.fraud_service import FraudService
from app.services.geofence_service import GeofenceService
from app.services.risk_service import RiskService
from app.services.store_gateway import RecordStoreGateway

logger = get_logger(__name__)

LOCATION_SUGGESTIONS = [
    "Estar físicamente en el lugar de trabajo",
    "Usar \"Ubicación actual\" (NO buscar lugares)",
    "Activar GPS con alta precisión",
    "Contactar supervisor si el problema persiste",
]

BLOCK_SUGGESTIONS = [
    "Contacta a tu supervisor inmediatamente",
    "Proporciona explicación de tu ubicación",
    "El bloqueo se levantará automáticamente después del tiempo especificado",
]


class KeyedLock:
    """
    One asyncio.Lock per key; operations for the same key run one at a time

    Entries live only while some caller holds or waits on them, so ids
    seen once do not accumulate.
    """

    def __init__(self) -> None:
        self._entries: Dict[str, list] = {}  # key -> [lock, holders]

    @asynccontextmanager
    async def hold(self, key: str):
        entry = self._entries.get(key)
        if entry is None:
            entry = [asyncio.Lock(), 0]
            self._entries[key] = entry
        entry[1] += 1
        try:
            async with entry[0]:
                yield
        finally:
            entry[1] -= 1
            if entry[1] == 0:
                del self._entries[key]

    def __len__(self) -> int:
        return len(self._entries)


class ValidationService:
    def __init__(
        self,
        store: RecordStoreGateway,
        state_service: EmployeeStateService,
        geofence_service: Optional[GeofenceService] = None,
        fraud_service: Optional[FraudService] = None,
        risk_service: Optional[RiskService] = None,
        settings=default_settings,
        clock: Callable[[], datetime] = datetime.now
    ) -> None:
        self.store = store
        self.state_service = state_service
        self.geofence_service = geofence_service or GeofenceService()
        self.fraud_service = fraud_service or FraudService(settings=settings)
        self.risk_service = risk_service or RiskService(settings=settings)
        self.settings = settings
        self.clock = clock
        self.locks = KeyedLock()

    async def request_action(self, user_id: str, action: AttendanceAction) -> ActionValidation:
        """
        Check legality of `action` and mark it pending when allowed

        Returns:
            ActionValidation: allowed/denied with reason, message and suggestions
        """
        async with self.locks.hold(user_id):
            validation = await self.state_service.validate_action(user_id, action)

            if validation.is_allowed:
                self.state_service.set_pending_action(user_id, action)
                validation.state.pending_action = action
            else:
                logger.info(
                    f"{action.value} denied for {user_id}: {validation.reason.value}",
                    extra={'extra_data': {'user_id': user_id, 'action': action.value, 'reason': validation.reason.value}}
                )

            return validation

    async def cancel(self, user_id: str) -> Optional[AttendanceAction]:
        """Clear the pending action without writing any record"""
        async with self.locks.hold(user_id):
            return self.state_service.clear_pending_action(user_id)

    async def get_state(self, user_id: str, force_refresh: bool = False) -> EmployeeState:
        async with self.locks.hold(user_id):
            return await self.state_service.compute_state(user_id, force_refresh=force_refresh)

    async def submit_reading(self, user_id: str, reading: LocationReading) -> ValidationVerdict:
        """
        Validate a GPS reading against the user's pending action

        Order: block status, coordinates present, freshness, fraud
        heuristics, risk aggregation, accuracy gate, geofence. Every
        attempt with a pending action is persisted, VALID or INVALID,
        and the pending marker is cleared.

        Returns:
            ValidationVerdict: combined outcome; `record_persisted` is
            False when the record store was unavailable
        """
        async with self.locks.hold(user_id):
            now = self.clock()
            action = self.state_service.get_pending_action(user_id)

            if action is None:
                return ValidationVerdict(
                    reason=RejectionReason.NOTHING_PENDING,
                    reasons=["No tenías ninguna solicitud de registro pendiente."],
                    suggestions=["Envía *entrada* o *salida* para registrar tu asistencia."],
                    validated_at=now
                )

            verdict = self._validate(user_id, action, reading, now)

            record = AttendanceRecordCreate(
                ar_user_id=user_id,
                ar_action_type=action.value,
                ar_lat=reading.latitude,
                ar_lng=reading.longitude,
                ar_zone_name=verdict.zone.name if verdict.zone else None,
                ar_distance_m=verdict.distance_m,
                ar_validation_status="VALID" if verdict.is_valid else "INVALID",
                ar_accuracy_m=reading.accuracy_m,
                ar_gps_timestamp=(
                    datetime.fromtimestamp(reading.captured_at) if reading.captured_at is not None else None
                ),
                ar_recorded_at=now
            )
            _, persisted = await self.store.insert_attendance(record)
            verdict.record_persisted = persisted
            if not persisted:
                verdict.store_issue = RejectionReason.STORE_UNAVAILABLE

            self.state_service.clear_pending_action(user_id)
            self.state_service.invalidate(user_id)

            log = logger.info if verdict.is_valid else logger.warning
            log(
                f"{action.value.upper()} {'VALID' if verdict.is_valid else 'REJECTED'} for {user_id}",
                extra={'extra_data': {
                    'user_id': user_id,
                    'action': action.value,
                    'risk': verdict.risk.value,
                    'reason': verdict.reason.value if verdict.reason else None,
                    'zone': verdict.zone.name if verdict.zone else None,
                    'distance_m': verdict.distance_m,
                    'record_persisted': persisted,
                }}
            )
            return verdict

    def _validate(
        self,
        user_id: str,
        action: AttendanceAction,
        reading: LocationReading,
        now: datetime
    ) -> ValidationVerdict:
        verdict = ValidationVerdict(action=action, validated_at=now)

        block = self.risk_service.check_block(user_id, now)
        if block.blocked:
            verdict.risk = RiskLevel.BLOCKED
            verdict.reason = RejectionReason.USER_BLOCKED
            verdict.reasons.append(block.message)
            verdict.remaining_block_minutes = block.remaining_minutes
            verdict.suggestions = list(BLOCK_SUGGESTIONS)
            return verdict

        if not reading.has_coordinates:
            verdict.reason = RejectionReason.MISSING_COORDINATES
            verdict.reasons.append("❌ Coordenadas GPS faltantes")
            verdict.suggestions = ["Comparte tu ubicación GPS actual desde WhatsApp"]
            return verdict

        stale = self.fraud_service.check_freshness(reading.captured_at, now)
        if stale:
            verdict.reason = RejectionReason.STALE_READING
            verdict.reasons.append(stale)
            verdict.suggestions = list(LOCATION_SUGGESTIONS)
            return verdict

        flags = self.fraud_service.analyze(user_id, reading, now)
        assessment = self.risk_service.evaluate(user_id, flags, now)
        verdict.flags = flags
        verdict.risk = assessment.level
        if flags:
            verdict.warnings.append(f"⚠️ Detectadas {len(flags)} señales de actividad sospechosa")

        if assessment.level == RiskLevel.BLOCKED:
            verdict.reason = RejectionReason.USER_BLOCKED
            verdict.reasons.append(assessment.message)
            verdict.remaining_block_minutes = assessment.remaining_minutes
            verdict.suggestions = list(BLOCK_SUGGESTIONS)
            return verdict

        inaccurate = self.fraud_service.check_accuracy(reading.accuracy_m)
        if inaccurate:
            verdict.reason = RejectionReason.INSUFFICIENT_ACCURACY
            verdict.reasons.append(inaccurate)
        else:
            geofence = self.geofence_service.authorize(reading.latitude, reading.longitude)
            verdict.distance_m = geofence.distance_m
            if geofence.authorized:
                verdict.zone = geofence.zone
                verdict.reasons.append(
                    f"Ubicación válida: {geofence.zone.name} ({geofence.distance_m}m del punto autorizado)"
                )
            else:
                verdict.nearest_zone = geofence.nearest_zone
                verdict.reason = RejectionReason.GEOFENCE_MISMATCH
                if geofence.nearest_zone is not None:
                    verdict.reasons.append(
                        f"❌ Ubicación NO autorizada. Estás a {geofence.distance_m}m de {geofence.nearest_zone.name}. "
                        f"Debes estar dentro de {geofence.nearest_zone.radius_m}m."
                    )
                else:
                    verdict.reasons.append("❌ No hay ubicaciones autorizadas configuradas")
            verdict.is_valid = self.risk_service.is_accepted(geofence.authorized, assessment.level)

        if assessment.level == RiskLevel.HIGH:
            verdict.is_valid = False
            verdict.reason = RejectionReason.FRAUD_RISK_HIGH
            verdict.reasons.append(
                "🚨 Registro rechazado: Múltiples indicadores de ubicación fraudulenta detectados"
            )

        if not verdict.is_valid:
            verdict.suggestions = list(LOCATION_SUGGESTIONS)
        return verdict
