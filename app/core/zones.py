"""
Built-in authorized zones, used when AUTHORIZED_ZONES is not configured
"""
from app.schemas.zone import AuthorizedZone


DEFAULT_AUTHORIZED_ZONES = (
    AuthorizedZone(id=1, name="Valle de los Ciervos", lat=-37.371644652229655, lng=-59.116792790280606, radius_m=100),
    AuthorizedZone(id=2, name="Refugio del Valle", lat=-37.37247355171709, lng=-59.11563111651744, radius_m=100),
    AuthorizedZone(id=3, name="Explora Tandil", lat=-37.33880343035198, lng=-59.131626087683635, radius_m=100),
    AuthorizedZone(id=4, name="Oficina de Desarrollo (Testing)", lat=-34.689821911341554, lng=-58.61410910531587, radius_m=100),
)
