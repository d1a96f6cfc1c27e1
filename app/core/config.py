from typing import List

from atams import AtamsBaseSettings

from app.core.zones import DEFAULT_AUTHORIZED_ZONES
from app.schemas.zone import AuthorizedZone


class Settings(AtamsBaseSettings):
    """
    Application Settings

    Inherits from AtamsBaseSettings which includes:
    - DATABASE_URL (required)
    - ATLAS_SSO_URL, ATLAS_APP_CODE, ATLAS_ENCRYPTION_KEY, ATLAS_ENCRYPTION_IV
    - ENCRYPTION_ENABLED, ENCRYPTION_KEY, ENCRYPTION_IV (response encryption)
    - LOGGING_ENABLED, LOG_LEVEL, LOG_TO_FILE, LOG_FILE_PATH
    - CORS_ORIGINS, CORS_ALLOW_CREDENTIALS, CORS_ALLOW_METHODS, CORS_ALLOW_HEADERS
    - RATE_LIMIT_ENABLED, RATE_LIMIT_REQUESTS, RATE_LIMIT_WINDOW
    - DEBUG

    All settings can be overridden via .env file or by redefining them here.
    """
    APP_NAME: str = "geo-attendance"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    ATLAS_APP_CODE: str = "GEOATT"

    # Channel / operator authentication
    CHANNEL_API_KEY: str = "change_me_channel_key"
    ADMIN_API_KEY: str = "change_me_admin_key"

    # Authorized zones as JSON list of {id, name, lat, lng, radius_m}; empty uses the built-in list
    AUTHORIZED_ZONES: List[AuthorizedZone] = []

    # Reading validation
    MAX_READING_AGE_SECONDS: int = 120
    MIN_ACCURACY_M: float = 50

    # Fraud heuristics
    LOCATION_HISTORY_SIZE: int = 10
    MAX_IDENTICAL_LOCATIONS: int = 3
    MIN_GPS_VARIATION: float = 0.00001
    SUSPICIOUS_PRECISION_DIGITS: int = 10
    MAX_SPEED_KMH: float = 100
    MIN_SPEED_DISTANCE_M: int = 1000
    EXPECTED_ACCURACY_MIN_M: float = 5
    EXPECTED_ACCURACY_MAX_M: float = 100
    SUSPICIOUS_ACCURACY_VALUES: List[int] = [1, 2, 3]

    # Risk aggregation / blocking
    MAX_WARNINGS_PER_USER: int = 5
    BLOCK_DURATION_MINUTES: int = 30
    INCIDENT_LOG_SIZE: int = 20

    # Employee state control
    WORK_DAY_START: int = 6
    WORK_DAY_END: int = 22
    MAX_WORK_HOURS: float = 12
    MISSING_EXIT_THRESHOLD_HOURS: float = 2
    MAX_ENTRIES_PER_DAY: int = 3
    MIN_MINUTES_BETWEEN_ACTIONS: int = 5
    STATE_CACHE_MINUTES: int = 60
    PENDING_ACTION_TTL_MINUTES: int = 10
    PENDING_SWEEP_INTERVAL_SECONDS: float = 300  # 0 disables the background sweep

    # Record store hardening
    STORE_TIMEOUT_SECONDS: float = 5
    STORE_RETRIES: int = 1

    @property
    def authorized_zones(self) -> List[AuthorizedZone]:
        """
        Configured zones, or the built-in zone list when none are set

        Order is preserved: the geofence uses first-match over this list.
        """
        if not self.AUTHORIZED_ZONES:
            return list(DEFAULT_AUTHORIZED_ZONES)
        return list(self.AUTHORIZED_ZONES)

    @property
    def suspicious_accuracy_values(self) -> List[int]:
        return list(self.SUSPICIOUS_ACCURACY_VALUES)


settings = Settings()
