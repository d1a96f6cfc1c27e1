"""
Geofence Service - Authorize coordinates against configured circular zones
"""
import math
from typing import List, Optional, Sequence

from app.core.config import settings
from app.schemas.zone import AuthorizedZone, GeofenceResult

EARTH_RADIUS_KM = 6371


def haversine_distance(lat1: float, lng1: float, lat2: float, lng2: float) -> int:
    """
    Calculate distance between two coordinates using Haversine formula

    Returns:
        int: Distance in meters, rounded to the nearest meter
    """
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    delta_lat = math.radians(lat2 - lat1)
    delta_lng = math.radians(lng2 - lng1)

    a = (math.sin(delta_lat / 2) ** 2 +
         math.cos(lat1_rad) * math.cos(lat2_rad) *
         math.sin(delta_lng / 2) ** 2)
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return int(round(EARTH_RADIUS_KM * c * 1000))


class GeofenceService:
    def __init__(self, zones: Optional[Sequence[AuthorizedZone]] = None) -> None:
        self.zones: List[AuthorizedZone] = list(zones if zones is not None else settings.authorized_zones)

    def list_zones(self) -> List[AuthorizedZone]:
        return list(self.zones)

    def authorize(self, lat: float, lng: float) -> GeofenceResult:
        """
        Validate a coordinate against the authorized zones

        Zones are scanned in configured order and the first one whose
        radius covers the point wins, even if a later zone is closer.

        Returns:
            GeofenceResult: matched zone, or nearest zone for diagnostics
        """
        for zone in self.zones:
            distance = haversine_distance(lat, lng, zone.lat, zone.lng)
            if distance <= zone.radius_m:
                return GeofenceResult(authorized=True, zone=zone, distance_m=distance)

        nearest_zone = None
        min_distance = None
        for zone in self.zones:
            distance = haversine_distance(lat, lng, zone.lat, zone.lng)
            if min_distance is None or distance < min_distance:
                min_distance = distance
                nearest_zone = zone

        return GeofenceResult(authorized=False, nearest_zone=nearest_zone, distance_m=min_distance)
