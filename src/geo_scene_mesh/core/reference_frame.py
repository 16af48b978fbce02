"""Absolute (geographic or projected) to scene-local coordinate transforms.

Scene-local coordinate system:
- X: east-west, east positive
- Y: up (elevation)
- Z: north-south, north at -Z

Absolute coordinates are kept in double precision and only the offset from a
fixed origin is narrowed to float32, so vertices near the origin stay free of
jitter. The geographic branch is an equirectangular approximation that is
accurate to well under a metre within ~50 km of the origin.
"""

import math

import numpy as np

from ..errors import InvalidInput
from ..models import OriginKind, ReferenceOrigin

# WGS84 equatorial meridian arc length per degree
METERS_PER_DEGREE = 111_319.491

# Spherical Web Mercator radius (WGS84 semi-major axis)
EARTH_RADIUS_M = 6_378_137.0

_ORIGIN_KINDS = ("geographic", "projected")


def _require_finite(**values: float) -> None:
    for name, value in values.items():
        if not math.isfinite(value):
            raise InvalidInput(f"{name} must be a finite number, got {value}")


def create_origin(x: float, y: float, kind: OriginKind = "geographic") -> ReferenceOrigin:
    """Create a scene origin from lon/lat (geographic) or easting/northing (projected)."""
    _require_finite(x=x, y=y)
    if kind not in _ORIGIN_KINDS:
        raise InvalidInput(f"Unknown origin kind '{kind}', expected one of {_ORIGIN_KINDS}")
    return ReferenceOrigin(x=x, y=y, kind=kind)


def _axis_scales(origin: ReferenceOrigin) -> tuple[float, float]:
    """Metres per unit along X and Z for the given origin."""
    if not origin.is_geographic:
        return 1.0, 1.0
    cos_lat = math.cos(math.radians(origin.y))
    return METERS_PER_DEGREE * cos_lat, METERS_PER_DEGREE


def to_local(
    x: float, y: float, elevation: float, origin: ReferenceOrigin
) -> np.ndarray:
    """Convert an absolute coordinate to a float32 scene-local position (x, y, z)."""
    _require_finite(x=x, y=y, elevation=elevation)
    scale_x, scale_z = _axis_scales(origin)
    dx = (x - origin.x) * scale_x
    dz = -(y - origin.y) * scale_z
    return np.array([dx, elevation, dz], dtype=np.float32)


def to_geographic(local_position, origin: ReferenceOrigin) -> tuple[float, float]:
    """Convert a scene-local position back to absolute coordinates.

    Exact inverse of :func:`to_local`; the elevation component is ignored.
    """
    px, _, pz = (float(c) for c in local_position)
    _require_finite(local_x=px, local_z=pz)
    scale_x, scale_z = _axis_scales(origin)
    return origin.x + px / scale_x, origin.y - pz / scale_z


def meters_per_degree(direction: str, latitude: float) -> float:
    """Approximate metres per degree along ``"latitude"`` or ``"longitude"``."""
    _require_finite(latitude=latitude)
    if direction == "latitude":
        return METERS_PER_DEGREE
    if direction == "longitude":
        return METERS_PER_DEGREE * math.cos(math.radians(latitude))
    raise InvalidInput(f"direction must be 'latitude' or 'longitude', got '{direction}'")


def lon_lat_to_web_mercator(lon: float, lat: float) -> tuple[float, float]:
    """Convert WGS84 lon/lat to spherical Web Mercator (EPSG:3857) metres."""
    _require_finite(lon=lon, lat=lat)
    x = math.radians(lon) * EARTH_RADIUS_M
    y = math.log(math.tan(math.pi / 4.0 + math.radians(lat) / 2.0)) * EARTH_RADIUS_M
    return x, y


def web_mercator_to_lon_lat(x: float, y: float) -> tuple[float, float]:
    """Convert Web Mercator (EPSG:3857) metres to WGS84 lon/lat."""
    _require_finite(x=x, y=y)
    lon = math.degrees(x / EARTH_RADIUS_M)
    lat = math.degrees(2.0 * math.atan(math.exp(y / EARTH_RADIUS_M)) - math.pi / 2.0)
    return lon, lat


def create_web_mercator_origin(lon: float, lat: float) -> ReferenceOrigin:
    """Create a projected origin in Web Mercator metres from a lon/lat point."""
    x, y = lon_lat_to_web_mercator(lon, lat)
    return create_origin(x, y, kind="projected")


class ReferenceFrame:
    """Binds a single :class:`ReferenceOrigin` for repeated conversions."""

    def __init__(self, origin: ReferenceOrigin):
        self.origin = origin
        self.scale_x, self.scale_z = _axis_scales(origin)

    def to_local(self, x: float, y: float, elevation: float = 0.0) -> np.ndarray:
        return to_local(x, y, elevation, self.origin)

    def to_local_array(
        self, xs: np.ndarray, ys: np.ndarray, elevation: float = 0.0
    ) -> np.ndarray:
        """Vectorized :meth:`to_local`; returns an (N, 3) float32 array."""
        xs = np.asarray(xs, dtype=np.float64)
        ys = np.asarray(ys, dtype=np.float64)
        _require_finite(elevation=elevation)
        if not (np.all(np.isfinite(xs)) and np.all(np.isfinite(ys))):
            raise InvalidInput("Coordinates must be finite numbers")
        out = np.empty((xs.size, 3), dtype=np.float32)
        out[:, 0] = (xs - self.origin.x) * self.scale_x
        out[:, 1] = elevation
        out[:, 2] = -(ys - self.origin.y) * self.scale_z
        return out

    def to_geographic(self, local_position) -> tuple[float, float]:
        return to_geographic(local_position, self.origin)
