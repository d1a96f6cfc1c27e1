"""
Employee State Service - Sessions, derived attendance state and action legality
"""
from datetime import datetime, timedelta
from typing import Callable, List, Optional

from atams.logging import get_logger

from app.core.config import settings as default_settings
from app.repositories.state_repository import InMemoryStateRepository, StateRepository
from app.schemas.employee import (
    ActionValidation,
    CachedEmployeeState,
    EmployeeSession,
    EmployeeState,
)
from app.schemas.enums import AttendanceAction, AttendanceStatus, RejectionReason
from app.services.store_gateway import RecordStoreGateway

logger = get_logger(__name__)


def extract_phone_number(channel_id: str) -> str:
    """"5491123456789@c.us" -> "5491123456789" """
    return channel_id.replace("@c.us", "").replace("@s.whatsapp.net", "").strip()


def format_display_id(phone_number: str) -> str:
    """"5491123456789" -> "+54 91 1234-56789"; shorter ids are returned as-is"""
    if len(phone_number) >= 10 and phone_number.isdigit():
        country_code = phone_number[:2]
        area_code = phone_number[2:4]
        number = phone_number[4:]
        return f"+{country_code} {area_code} {number[:4]}-{number[4:]}"
    return phone_number


class EmployeeStateService:
    def __init__(
        self,
        store: RecordStoreGateway,
        session_repo: Optional[StateRepository[EmployeeSession]] = None,
        cache_repo: Optional[StateRepository[CachedEmployeeState]] = None,
        settings=default_settings,
        clock: Callable[[], datetime] = datetime.now
    ) -> None:
        self.store = store
        self.session_repo = session_repo if session_repo is not None else InMemoryStateRepository()
        self.cache_repo = cache_repo if cache_repo is not None else InMemoryStateRepository()
        self.settings = settings
        self.clock = clock

    # ==================== SESSIONS ====================

    def _session(self, user_id: str) -> EmployeeSession:
        session = self.session_repo.get(user_id)
        if session is None:
            now = self.clock()
            session = EmployeeSession(
                user_id=user_id,
                display_id=format_display_id(extract_phone_number(user_id)),
                first_contact_at=now,
                last_activity_at=now
            )
            self.session_repo.set(user_id, session)
            logger.info(f"New employee session for {session.display_id}")
        return session

    def get_or_create_session(self, user_id: str) -> EmployeeSession:
        """Get the session for a contact, recording activity on existing ones"""
        existing = self.session_repo.get(user_id)
        if existing is None:
            return self._session(user_id)

        existing.last_activity_at = self.clock()
        existing.message_count += 1
        self.session_repo.set(user_id, existing)
        return existing

    def has_session(self, user_id: str) -> bool:
        return user_id in self.session_repo

    def list_sessions(self) -> List[EmployeeSession]:
        return [session for _, session in self.session_repo.items()]

    def clear_session(self, user_id: str) -> None:
        self.session_repo.delete(user_id)
        self.cache_repo.delete(user_id)

    # ==================== PENDING ACTIONS ====================

    def _pending_expired(self, session: EmployeeSession, now: datetime) -> bool:
        if session.pending_action is None or session.pending_action_at is None:
            return False
        ttl = timedelta(minutes=self.settings.PENDING_ACTION_TTL_MINUTES)
        return now - session.pending_action_at >= ttl

    def _expire_pending(self, session: EmployeeSession, now: datetime) -> bool:
        """Clear an expired pending action; returns True if one was cleared"""
        if not self._pending_expired(session, now):
            return False
        logger.info(f"Pending {session.pending_action.value} expired for {session.display_id}")
        session.pending_action = None
        session.pending_action_at = None
        self.session_repo.set(session.user_id, session)
        self.invalidate(session.user_id)
        return True

    def get_pending_action(self, user_id: str) -> Optional[AttendanceAction]:
        session = self.session_repo.get(user_id)
        if session is None:
            return None
        self._expire_pending(session, self.clock())
        return session.pending_action

    def set_pending_action(self, user_id: str, action: AttendanceAction) -> None:
        session = self._session(user_id)
        session.pending_action = action
        session.pending_action_at = self.clock()
        self.session_repo.set(user_id, session)
        self.invalidate(user_id)
        logger.info(f"Pending action {action.value} set for {session.display_id}")

    def clear_pending_action(self, user_id: str) -> Optional[AttendanceAction]:
        """Clear the pending marker; returns the action that was pending, if any"""
        session = self.session_repo.get(user_id)
        if session is None:
            return None

        self._expire_pending(session, self.clock())
        had_pending = session.pending_action
        session.pending_action = None
        session.pending_action_at = None
        self.session_repo.set(user_id, session)
        self.invalidate(user_id)

        if had_pending:
            logger.info(f"Pending action {had_pending.value} cleared for {session.display_id}")
        return had_pending

    def expire_pending(self, user_id: str, now: Optional[datetime] = None) -> bool:
        """Clear the user's pending action if it has expired; returns True if one was cleared"""
        session = self.session_repo.get(user_id)
        if session is None:
            return False
        return self._expire_pending(session, now or self.clock())

    def sweep_expired_pending(self, now: Optional[datetime] = None) -> int:
        """Proactively clear every expired pending action; returns how many were cleared"""
        now = now or self.clock()
        return sum(1 for user_id, _ in self.session_repo.items() if self.expire_pending(user_id, now))

    # ==================== DERIVED STATE ====================

    def invalidate(self, user_id: str) -> None:
        self.cache_repo.delete(user_id)

    async def compute_state(self, user_id: str, force_refresh: bool = False) -> EmployeeState:
        """
        Derive the employee's attendance state from validated records

        Served from cache while fresh. A state computed while the record
        store was unavailable is returned but not cached.
        """
        session = self._session(user_id)
        now = self.clock()
        self._expire_pending(session, now)

        cached = self.cache_repo.get(user_id)
        if not force_refresh and cached is not None and cached.is_fresh(now):
            return cached.state

        last_record, last_ok = await self.store.last_validated(user_id)
        today_records, today_ok = await self.store.today_validated(user_id, now.date())

        cfg = self.settings
        state = EmployeeState(
            user_id=user_id,
            display_id=session.display_id,
            today_entries=sum(1 for r in today_records if r.ar_action_type == AttendanceAction.ENTRADA.value),
            today_exits=sum(1 for r in today_records if r.ar_action_type == AttendanceAction.SALIDA.value),
            is_working_hours=cfg.WORK_DAY_START <= now.hour <= cfg.WORK_DAY_END,
            pending_action=session.pending_action,
            cached_at=now
        )

        if session.pending_action is not None:
            pending_minutes = (now - session.pending_action_at).total_seconds() / 60
            state.warnings.append(
                f"⏳ Acción pendiente: {session.pending_action.value} ({round(pending_minutes)} min)"
            )

        if last_record is not None:
            state.last_action = AttendanceAction(last_record.ar_action_type)
            state.last_action_at = last_record.ar_recorded_at
            minutes_since = (now - state.last_action_at).total_seconds() / 60

            if state.last_action == AttendanceAction.ENTRADA:
                state.status = AttendanceStatus.IN
                state.working_hours = minutes_since / 60

                if now.hour > cfg.WORK_DAY_END and minutes_since > cfg.MISSING_EXIT_THRESHOLD_HOURS * 60:
                    state.missing_exit = True
                    state.warnings.append(
                        f"⚠️ Posible salida faltante - Última entrada: {state.last_action_at.strftime('%H:%M')}"
                    )

                if state.working_hours > cfg.MAX_WORK_HOURS:
                    state.warnings.append(
                        f"⚠️ Tiempo de trabajo excesivo: {round(state.working_hours)} horas"
                    )

            if minutes_since < cfg.MIN_MINUTES_BETWEEN_ACTIONS:
                state.below_min_gap = True
                state.warnings.append(
                    f"⏰ Menos de {cfg.MIN_MINUTES_BETWEEN_ACTIONS} minutos desde última acción"
                )

        no_pending = state.pending_action is None
        state.can_enter = (
            state.status == AttendanceStatus.OUT
            and state.today_entries < cfg.MAX_ENTRIES_PER_DAY
            and state.is_working_hours
            and no_pending
        )
        state.can_exit = state.status == AttendanceStatus.IN and no_pending

        if last_ok and today_ok:
            self.cache_repo.set(user_id, CachedEmployeeState(
                state=state,
                expires_at=now + timedelta(minutes=cfg.STATE_CACHE_MINUTES)
            ))

        logger.debug(
            f"State computed for {state.display_id}",
            extra={'extra_data': {
                'status': state.status.value,
                'can_enter': state.can_enter,
                'can_exit': state.can_exit,
                'today_entries': state.today_entries,
                'today_exits': state.today_exits,
            }}
        )
        return state

    # ==================== LEGALITY ====================

    async def validate_action(self, user_id: str, action: AttendanceAction) -> ActionValidation:
        """
        Check whether the user may start `action` now

        Requesting the action that is already pending counts as a retry
        and goes through the normal checks.
        """
        state = await self.compute_state(user_id, force_refresh=True)
        cfg = self.settings

        def deny(reason: RejectionReason, message: str, *suggestions: str) -> ActionValidation:
            return ActionValidation(
                action=action,
                is_allowed=False,
                reason=reason,
                message=message,
                suggestions=list(suggestions),
                state=state
            )

        if state.pending_action is not None and state.pending_action != action:
            pending = state.pending_action.value
            return deny(
                RejectionReason.PENDING_CONFLICT,
                f"⏳ Ya tienes una {pending} pendiente. Completa esa acción primero o envía \"cancelar\".",
                f"Envía tu ubicación para completar {pending}",
                "O envía \"cancelar\" para cancelar la acción pendiente"
            )

        min_gap_message = f"⏰ Debes esperar al menos {cfg.MIN_MINUTES_BETWEEN_ACTIONS} minutos desde tu última acción"

        if action == AttendanceAction.ENTRADA:
            if not state.is_working_hours:
                return deny(
                    RejectionReason.POLICY_VIOLATION,
                    f"⏰ Fuera del horario laboral ({cfg.WORK_DAY_START}:00 - {cfg.WORK_DAY_END}:00)",
                    "Intenta registrar entrada durante el horario laboral"
                )
            if state.status == AttendanceStatus.IN:
                hours_in = (self.clock() - state.last_action_at).total_seconds() / 3600
                return deny(
                    RejectionReason.POLICY_VIOLATION,
                    f"🚫 Ya tienes una entrada activa desde las {state.last_action_at.strftime('%H:%M')} "
                    f"(hace {hours_in:.1f}h)",
                    "Registra tu salida primero antes de una nueva entrada",
                    "Si olvidaste registrar salida ayer, contacta a tu supervisor"
                )
            if state.today_entries >= cfg.MAX_ENTRIES_PER_DAY:
                return deny(
                    RejectionReason.POLICY_VIOLATION,
                    f"📊 Límite de entradas diarias alcanzado ({cfg.MAX_ENTRIES_PER_DAY})",
                    "Contacta a tu supervisor si necesitas más entradas"
                )
            if state.below_min_gap:
                return deny(
                    RejectionReason.POLICY_VIOLATION,
                    min_gap_message,
                    "Espera unos minutos e intenta nuevamente"
                )
            return ActionValidation(action=action, is_allowed=True, message="✅ Entrada permitida", state=state)

        if state.status == AttendanceStatus.OUT:
            if state.today_exits == 0 or state.last_action_at is None:
                return deny(
                    RejectionReason.POLICY_VIOLATION,
                    "🚫 No puedes registrar salida sin haber registrado entrada primero",
                    "Registra tu entrada primero"
                )
            return deny(
                RejectionReason.POLICY_VIOLATION,
                f"🚫 Ya registraste tu salida. Última salida: {state.last_action_at.strftime('%H:%M')}",
                "Si necesitas registrar una nueva entrada, hazlo primero"
            )
        if state.below_min_gap:
            return deny(
                RejectionReason.POLICY_VIOLATION,
                min_gap_message,
                "Espera unos minutos e intenta nuevamente"
            )

        message = "✅ Salida permitida"
        if state.working_hours > 0:
            message += f" (Tiempo trabajado: {round(state.working_hours, 1)}h)"
        return ActionValidation(action=action, is_allowed=True, message=message, state=state)
