from __future__ import annotations

from typing import Iterable, Optional, Sequence, Tuple, Union
import math
import numpy as np


# --- WGS84 constants ---
_WGS84_A = 6378137.0              # semi-major axis (m)
_WGS84_F = 1.0 / 298.257223563    # flattening
_WGS84_E2 = _WGS84_F * (2.0 - _WGS84_F)  # first eccentricity squared

HANDEDNESS_TYPES = ("neu", "nwu")

LonLat = Tuple[float, float]
XY = Tuple[float, float]


# -------------------------
# Small vector helpers
# -------------------------
def rotate_deg(vec: Sequence[float], angle_deg: float) -> XY:
    """Counter-clockwise rotation of a 2D vector (standard rotation matrix)."""
    a = math.radians(angle_deg)
    ca, sa = math.cos(a), math.sin(a)
    x, y = float(vec[0]), float(vec[1])
    return (x * ca - y * sa, x * sa + y * ca)


def centroid(points: Iterable[Sequence[float]]) -> XY:
    """Arithmetic mean of 2D points; (0, 0) for an empty input."""
    arr = np.asarray([(float(p[0]), float(p[1])) for p in points], dtype=float)
    if arr.size == 0:
        return (0.0, 0.0)
    c = arr.mean(axis=0)
    return (float(c[0]), float(c[1]))


def circular_mean_deg(angles: Iterable[Optional[float]]) -> float:
    """
    Mean of angles in degrees using atan2(sum sin, sum cos), in [0, 360).

    None entries (unknown headings) are skipped. With no usable angle the
    result is 0, as atan2(0, 0) == 0.
    """
    s = 0.0
    c = 0.0
    for angle in angles:
        if angle is None:
            continue
        r = math.radians(float(angle))
        s += math.sin(r)
        c += math.cos(r)
    result = math.degrees(math.atan2(s, c))
    return result + 360.0 if result < 0 else result


def euclidean_distance_2d(a: Sequence[float], b: Sequence[float]) -> float:
    return math.hypot(float(a[0]) - float(b[0]), float(a[1]) - float(b[1]))


# -------------------------
# Great-circle
# -------------------------
def haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Haversine great-circle distance on WGS84 sphere approximation."""
    R = 6371008.8  # mean Earth radius (m)
    p1 = math.radians(lat1)
    p2 = math.radians(lat2)
    dphi = p2 - p1
    dl = math.radians(lon2 - lon1)
    a = math.sin(dphi / 2.0) ** 2 + math.cos(p1) * math.cos(p2) * math.sin(dl / 2.0) ** 2
    return 2 * R * math.asin(math.sqrt(a))


# -------------------------
# Flat-earth (local tangent plane) projection
# -------------------------
class FlatEarthTransformer:
    """
    Bidirectional lon/lat <-> local X/Y mapping on a tangent plane at `origin`.

    The projection scales latitude/longitude offsets with the WGS84 radii of
    curvature at the origin latitude. It is an approximation, not a geodesic
    computation: errors stay at the centimeter level within a few kilometers
    of the origin and grow quickly beyond that.

    Args:
        origin: (lon, lat) of the local origin, degrees.
        orientation_deg: heading of the local X axis, clockwise from north
            (0 = north, 90 = east). Numeric strings are accepted.
        handedness: "neu" (X north, Y east at zero orientation) or "nwu"
            (X north, Y west).
    """

    __slots__ = ("_origin", "_orientation_deg", "_handedness", "_r1", "_r2", "_y_mul")

    def __init__(
        self,
        origin: Optional[Sequence[float]],
        orientation_deg: Union[float, str] = 0.0,
        handedness: str = "nwu",
    ) -> None:
        if origin is None:
            raise ValueError("flat-earth transformer requires an origin")
        if handedness not in HANDEDNESS_TYPES:
            raise ValueError(f"unknown coordinate system type: {handedness!r}")
        try:
            orientation = float(orientation_deg)
        except (TypeError, ValueError):
            raise ValueError(f"invalid orientation: {orientation_deg!r}") from None
        if not math.isfinite(orientation):
            raise ValueError(f"invalid orientation: {orientation_deg!r}")

        lon0, lat0 = float(origin[0]), float(origin[1])
        if not (-90.0 <= lat0 <= 90.0) or not math.isfinite(lon0):
            raise ValueError("origin lat/lon out of range")

        self._origin: LonLat = (lon0, lat0)
        self._orientation_deg = orientation
        self._handedness = handedness

        phi = math.radians(lat0)
        x = 1.0 - _WGS84_E2 * math.sin(phi) ** 2
        # meters per radian of latitude / longitude at the origin
        self._r1 = _WGS84_A * (1.0 - _WGS84_E2) / x ** 1.5
        self._r2 = _WGS84_A / math.sqrt(x) * math.cos(phi)
        self._y_mul = 1.0 if handedness == "neu" else -1.0

    @property
    def origin(self) -> LonLat:
        return self._origin

    @property
    def orientation_deg(self) -> float:
        return self._orientation_deg

    @property
    def handedness(self) -> str:
        return self._handedness

    def to_local(self, point: Sequence[float]) -> XY:
        """(lon, lat) degrees -> local (x, y) meters."""
        north = math.radians(float(point[1]) - self._origin[1]) * self._r1
        east = math.radians(float(point[0]) - self._origin[0]) * self._r2
        x, y = rotate_deg((north, east), -self._orientation_deg)
        return (x, y * self._y_mul)

    def to_geo(self, point: Sequence[float]) -> LonLat:
        """Local (x, y) meters -> (lon, lat) degrees; exact inverse of to_local()."""
        north, east = rotate_deg((float(point[0]), float(point[1]) * self._y_mul), self._orientation_deg)
        lon = self._origin[0] + math.degrees(east / self._r2)
        lat = self._origin[1] + math.degrees(north / self._r1)
        return (lon, lat)

    def to_local_many(self, points: Iterable[Sequence[float]]) -> list:
        return [self.to_local(p) for p in points]

    def frame_rotation_deg(self, angle_deg: float) -> float:
        """
        Express a rotation of the local frame about the vertical axis as a
        counter-clockwise angle in this frame's own X/Y axes.

        A clockwise-from-north heading change appears with a positive sign in
        a "neu" frame and a negative sign in a mirrored "nwu" frame.
        """
        return angle_deg * self._y_mul
