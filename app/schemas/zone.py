"""
Zone Schemas for geofence configuration and results
"""
from typing import Optional
from pydantic import BaseModel, Field


class AuthorizedZone(BaseModel):
    """Circular zone: center + radius in meters"""
    id: int
    name: str
    lat: float = Field(ge=-90, le=90)
    lng: float = Field(ge=-180, le=180)
    radius_m: int = Field(gt=0)


class GeofenceResult(BaseModel):
    """
    Outcome of a geofence check

    When authorized, `zone` is the first matching zone. Otherwise
    `nearest_zone` carries the closest zone for diagnostics.
    """
    authorized: bool
    zone: Optional[AuthorizedZone] = None
    nearest_zone: Optional[AuthorizedZone] = None
    distance_m: Optional[int] = None
