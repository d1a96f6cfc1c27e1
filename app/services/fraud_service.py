"""
Fraud Service - Heuristic analysis of GPS readings and per-user history
"""
import math
import re
from datetime import datetime
from typing import List, Optional, Union

from atams.logging import get_logger

from app.core.config import settings as default_settings
from app.repositories.state_repository import InMemoryStateRepository, StateRepository
from app.schemas.attendance import LocationReading
from app.schemas.fraud import FlagKind, HistoryEntry, SuspiciousFlag
from app.services.geofence_service import haversine_distance

logger = get_logger(__name__)

ZERO_RUN = re.compile(r"0{3,}")


def coordinate_text(value: Union[float, str]) -> str:
    """Decimal text of a coordinate as inspected by the shape detectors"""
    if isinstance(value, str):
        return value.strip()
    return repr(float(value))


class FraudService:
    def __init__(
        self,
        history_repo: Optional[StateRepository[List[HistoryEntry]]] = None,
        settings=default_settings
    ) -> None:
        self.history_repo = history_repo if history_repo is not None else InMemoryStateRepository()
        self.settings = settings

    # ==================== INPUT VALIDATORS ====================

    def check_freshness(self, captured_at: Optional[int], now: datetime) -> Optional[str]:
        """
        Validate reading age

        Returns:
            str: rejection message if the reading is too old, else None.
            Readings without a timestamp are not checked here; the
            metadata detector flags them instead.
        """
        if captured_at is None:
            return None

        age_seconds = now.timestamp() - captured_at
        if age_seconds > self.settings.MAX_READING_AGE_SECONDS:
            age_minutes = round(age_seconds / 60)
            return (
                f"❌ Ubicación demasiado antigua ({age_minutes} minutos). "
                "Comparte tu ubicación actual."
            )
        return None

    def check_accuracy(self, accuracy: Optional[float]) -> Optional[str]:
        """Returns rejection message if accuracy is unknown or too coarse"""
        limit = self.settings.MIN_ACCURACY_M
        if accuracy is None or accuracy > limit:
            shown = f"{accuracy:g}" if accuracy is not None else "desconocida"
            return (
                f"❌ Precisión GPS insuficiente ({shown}m). "
                f"Necesitas precisión menor a {limit:g}m. "
                "Intenta desde un lugar con mejor señal GPS."
            )
        return None

    # ==================== STATELESS DETECTORS ====================

    def detect_perfect_coordinates(
        self,
        lat: Union[float, str],
        lng: Union[float, str]
    ) -> List[SuspiciousFlag]:
        """Inspect the decimal text of both coordinates for fabricated shapes"""
        flags = []
        lat_text = coordinate_text(lat)
        lng_text = coordinate_text(lng)

        if ZERO_RUN.search(lat_text) or ZERO_RUN.search(lng_text):
            flags.append(SuspiciousFlag.of(
                FlagKind.PERFECT_COORDINATES,
                "🎯 Coordenadas con patrones sospechosos (demasiados ceros)"
            ))

        lat_decimals = len(lat_text.split(".")[1]) if "." in lat_text else 0
        lng_decimals = len(lng_text.split(".")[1]) if "." in lng_text else 0
        max_digits = self.settings.SUSPICIOUS_PRECISION_DIGITS
        if lat_decimals > max_digits or lng_decimals > max_digits:
            flags.append(SuspiciousFlag.of(
                FlagKind.EXCESSIVE_PRECISION,
                "🔬 Precisión GPS anormalmente alta (posible coordenada buscada)"
            ))

        if lat_text.endswith(".000000") or lng_text.endswith(".000000"):
            flags.append(SuspiciousFlag.of(
                FlagKind.ROUNDED_COORDINATES,
                "📍 Coordenadas redondeadas detectadas (ubicación buscada)"
            ))

        return flags

    def validate_metadata(self, accuracy: Optional[float], captured_at: Optional[int]) -> List[SuspiciousFlag]:
        flags = []

        if accuracy is not None and math.floor(accuracy) in self.settings.suspicious_accuracy_values:
            flags.append(SuspiciousFlag.of(
                FlagKind.SUSPICIOUS_ACCURACY,
                f"📡 Precisión GPS sospechosa: {accuracy:g}m (valor poco común)"
            ))

        if captured_at is None:
            flags.append(SuspiciousFlag.of(
                FlagKind.MISSING_TIMESTAMP,
                "⏰ Falta timestamp GPS (posible ubicación buscada)"
            ))

        if accuracy is not None and not (
            self.settings.EXPECTED_ACCURACY_MIN_M <= accuracy <= self.settings.EXPECTED_ACCURACY_MAX_M
        ):
            flags.append(SuspiciousFlag.of(
                FlagKind.ABNORMAL_ACCURACY,
                f"📊 Precisión GPS fuera de rango normal: {accuracy:g}m"
            ))

        return flags

    # ==================== HISTORY DETECTORS ====================

    def record_history(self, user_id: str, lat: float, lng: float, timestamp: float) -> List[HistoryEntry]:
        """Append a reading to the user's bounded history and return it"""
        history = list(self.history_repo.get(user_id) or [])
        history.append(HistoryEntry(lat=lat, lng=lng, timestamp=timestamp))

        size = self.settings.LOCATION_HISTORY_SIZE
        if len(history) > size:
            history = history[-size:]

        self.history_repo.set(user_id, history)
        return history

    def analyze_history(self, history: List[HistoryEntry]) -> List[SuspiciousFlag]:
        """Run the pattern detectors over a history whose last entry is the current reading"""
        flags = []

        if len(history) >= 2:
            last = history[-1]
            identical_count = 0
            for previous in reversed(history[:-1]):
                if previous.lat == last.lat and previous.lng == last.lng:
                    identical_count += 1
                else:
                    break

            if identical_count >= self.settings.MAX_IDENTICAL_LOCATIONS:
                flags.append(SuspiciousFlag.of(
                    FlagKind.IDENTICAL_LOCATIONS,
                    f"⚠️ {identical_count + 1} ubicaciones idénticas consecutivas detectadas"
                ))

        if len(history) >= 3:
            recent = history[-3:]
            total_variation = 0.0
            for prev, cur in zip(recent, recent[1:]):
                total_variation += abs(cur.lat - prev.lat) + abs(cur.lng - prev.lng)

            if total_variation < self.settings.MIN_GPS_VARIATION:
                flags.append(SuspiciousFlag.of(
                    FlagKind.LOW_GPS_VARIATION,
                    "🔍 Variación GPS anormalmente baja (posible ubicación buscada)"
                ))

        if len(history) >= 2:
            previous, current = history[-2], history[-1]
            distance = haversine_distance(previous.lat, previous.lng, current.lat, current.lng)
            elapsed = current.timestamp - previous.timestamp

            if elapsed > 0:
                speed_kmh = (distance / 1000) / (elapsed / 3600)
            elif elapsed == 0 and distance > 0:
                speed_kmh = math.inf
            else:
                speed_kmh = 0.0

            if speed_kmh > self.settings.MAX_SPEED_KMH and distance > self.settings.MIN_SPEED_DISTANCE_M:
                shown = "∞" if math.isinf(speed_kmh) else str(round(speed_kmh))
                flags.append(SuspiciousFlag.of(
                    FlagKind.IMPOSSIBLE_SPEED,
                    f"🚗 Velocidad imposible: {shown} km/h entre ubicaciones"
                ))

        return flags

    # ==================== ENTRY POINT ====================

    def analyze(self, user_id: str, reading: LocationReading, now: datetime) -> List[SuspiciousFlag]:
        """
        Run all fraud detectors for a reading with coordinates

        The reading is added to the user's history before the history
        detectors run.
        """
        flags = []
        flags.extend(self.detect_perfect_coordinates(
            reading.latitude_text or reading.latitude,
            reading.longitude_text or reading.longitude
        ))
        flags.extend(self.validate_metadata(reading.accuracy_m, reading.captured_at))

        timestamp = reading.captured_at if reading.captured_at is not None else now.timestamp()
        history = self.record_history(user_id, reading.latitude, reading.longitude, timestamp)
        flags.extend(self.analyze_history(history))

        if flags:
            logger.warning(
                f"Suspicious location signals for {user_id}",
                extra={'extra_data': {
                    'user_id': user_id,
                    'flags': [f.kind.value for f in flags],
                    'lat': reading.latitude,
                    'lng': reading.longitude,
                }}
            )

        return flags

    def get_history(self, user_id: str) -> List[HistoryEntry]:
        return list(self.history_repo.get(user_id) or [])

    def clear_history(self, user_id: str) -> None:
        self.history_repo.delete(user_id)
