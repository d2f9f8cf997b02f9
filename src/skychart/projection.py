"""Projection layer: rotated stereographic projection of the sky onto the chart disk.

Conventions follow the d3-geo projections the chart was first drawn with:
rotation angles are (lambda, phi, gamma) in degrees, screen y grows downward,
and the clip test runs on the rotated sphere, where the projection center
sits at (0, 0).
"""

import math
from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass
from typing import Any

import numpy as np
from numpy.typing import NDArray

from skychart.models import GeoPoint, ScreenPoint, Viewport

CLIP_ANGLE_DEG = 90.0  # Visible hemisphere half-angle
DISK_FILL = 0.9  # Chart diameter as a fraction of the smaller viewport side

_EPSILON = 1e-12


class DegenerateViewport(ValueError):
    """Viewport with zero (or negative) width or height."""


def disk_radius(viewport: Viewport) -> float:
    """Radius of the horizon disk: the chart fills 90% of the smaller side."""
    return min(viewport.width, viewport.height) * DISK_FILL / 2


def _wrap_pi(angle: float) -> float:
    return math.atan2(math.sin(angle), math.cos(angle))


@dataclass(frozen=True)
class Projection:
    """Stereographic projection clipped to a small circle around its center.

    Immutable: building another projection never affects this one.

    Attributes:
        scale: Pixels per unit of the raw projection; the clip circle at 90
            degrees lands exactly at this radius.
        translate: Screen position of the projection center.
        rotate: (lambda, phi, gamma) rotation in degrees applied before projecting.
        clip_angle: Angular radius of the drawable cap, degrees.
    """

    scale: float
    translate: ScreenPoint
    rotate: tuple[float, float, float]
    clip_angle: float = CLIP_ANGLE_DEG

    # --- rotation ---

    def _rotate_forward(self, lon: float, lat: float) -> tuple[float, float]:
        d_lambda, d_phi, d_gamma = (math.radians(a) for a in self.rotate)
        lam = _wrap_pi(lon + d_lambda)
        if d_phi == 0 and d_gamma == 0:
            return lam, lat
        cos_dp, sin_dp = math.cos(d_phi), math.sin(d_phi)
        cos_dg, sin_dg = math.cos(d_gamma), math.sin(d_gamma)
        cos_phi = math.cos(lat)
        x = math.cos(lam) * cos_phi
        y = math.sin(lam) * cos_phi
        z = math.sin(lat)
        k = z * cos_dp + x * sin_dp
        return (
            math.atan2(y * cos_dg - k * sin_dg, x * cos_dp - z * sin_dp),
            math.asin(max(-1.0, min(1.0, k * cos_dg + y * sin_dg))),
        )

    def _rotate_inverse(self, lam: float, phi: float) -> tuple[float, float]:
        d_lambda, d_phi, d_gamma = (math.radians(a) for a in self.rotate)
        if d_phi != 0 or d_gamma != 0:
            cos_dp, sin_dp = math.cos(d_phi), math.sin(d_phi)
            cos_dg, sin_dg = math.cos(d_gamma), math.sin(d_gamma)
            cos_phi = math.cos(phi)
            x = math.cos(lam) * cos_phi
            y = math.sin(lam) * cos_phi
            z = math.sin(phi)
            k = z * cos_dg - y * sin_dg
            lam = math.atan2(y * cos_dg + z * sin_dg, x * cos_dp + k * sin_dp)
            phi = math.asin(max(-1.0, min(1.0, k * cos_dp - x * sin_dp)))
        return _wrap_pi(lam - d_lambda), phi

    # --- forward / inverse ---

    def __call__(self, point: GeoPoint) -> ScreenPoint | None:
        """Project `point` to screen coordinates, or None outside the clip angle."""
        lam, phi = self._rotate_forward(math.radians(point.lon), math.radians(point.lat))
        cos_c = math.cos(lam) * math.cos(phi)
        if not cos_c > math.cos(math.radians(self.clip_angle)):
            return None
        k = 1 / (1 + cos_c)
        x = k * math.cos(phi) * math.sin(lam)
        y = k * math.sin(phi)
        tx, ty = self.translate
        return (tx + self.scale * x, ty - self.scale * y)

    def project_many(
        self,
        lons: NDArray[np.float64],
        lats: NDArray[np.float64],
    ) -> tuple[NDArray[np.float64], NDArray[np.float64], NDArray[np.bool_]]:
        """Vectorised forward projection.

        Returns (x, y, visible). Entries where `visible` is False are NaN.
        """
        d_lambda, d_phi, d_gamma = np.radians(self.rotate)
        lam = np.radians(np.asarray(lons, dtype=np.float64)) + d_lambda
        lam = np.arctan2(np.sin(lam), np.cos(lam))
        phi = np.radians(np.asarray(lats, dtype=np.float64))
        if d_phi != 0 or d_gamma != 0:
            cos_phi = np.cos(phi)
            x = np.cos(lam) * cos_phi
            y = np.sin(lam) * cos_phi
            z = np.sin(phi)
            k = z * np.cos(d_phi) + x * np.sin(d_phi)
            lam = np.arctan2(
                y * np.cos(d_gamma) - k * np.sin(d_gamma),
                x * np.cos(d_phi) - z * np.sin(d_phi),
            )
            phi = np.arcsin(np.clip(k * np.cos(d_gamma) + y * np.sin(d_gamma), -1.0, 1.0))

        cos_c = np.cos(lam) * np.cos(phi)
        visible = cos_c > math.cos(math.radians(self.clip_angle))
        with np.errstate(divide="ignore", invalid="ignore"):
            k = np.where(visible, 1 / (1 + cos_c), np.nan)
        tx, ty = self.translate
        sx = tx + self.scale * k * np.cos(phi) * np.sin(lam)
        sy = ty - self.scale * k * np.sin(phi)
        return sx, sy, visible

    def invert(self, screen: ScreenPoint) -> GeoPoint:
        """Inverse projection: the sky point drawn at `screen`."""
        tx, ty = self.translate
        x = (screen[0] - tx) / self.scale
        y = (ty - screen[1]) / self.scale
        z = math.hypot(x, y)
        c = 2 * math.atan(z)
        sin_c, cos_c = math.sin(c), math.cos(c)
        lam = math.atan2(x * sin_c, z * cos_c)
        phi = math.asin(max(-1.0, min(1.0, y * sin_c / z))) if z else 0.0
        lam, phi = self._rotate_inverse(lam, phi)
        return GeoPoint(math.degrees(lam), math.degrees(phi))

    @property
    def center(self) -> GeoPoint:
        """The sky point under the projection center."""
        return self.invert(self.translate)


def build(viewport: Viewport, observer_lat_deg: float, lst_deg: float) -> Projection | None:
    """Projection for an observer at `observer_lat_deg` at local sidereal time `lst_deg`.

    The rotation brings the observer's zenith (RA = LST, Dec = latitude) to the
    disk center. Returns None for a degenerate viewport: there is nothing to draw.
    """
    if viewport.is_degenerate:
        return None
    return Projection(
        scale=disk_radius(viewport),
        translate=viewport.center,
        rotate=(-lst_deg, -observer_lat_deg, 0.0),
    )


def require_viewport(viewport: Viewport) -> Viewport:
    """Raise DegenerateViewport for a zero-area viewport."""
    if viewport.is_degenerate:
        raise DegenerateViewport(f"Viewport has no area: {viewport.width}x{viewport.height}")
    return viewport


# --- Spherical helpers ---


def _to_vector(point: GeoPoint) -> tuple[float, float, float]:
    lam, phi = math.radians(point.lon), math.radians(point.lat)
    cos_phi = math.cos(phi)
    return (cos_phi * math.cos(lam), cos_phi * math.sin(lam), math.sin(phi))


def _from_vector(x: float, y: float, z: float) -> GeoPoint:
    return GeoPoint(math.degrees(math.atan2(y, x)), math.degrees(math.atan2(z, math.hypot(x, y))))


def geo_distance(a: GeoPoint, b: GeoPoint) -> float:
    """Great-circle distance between `a` and `b` in radians (haversine)."""
    phi0, phi1 = math.radians(a.lat), math.radians(b.lat)
    sin_dphi = math.sin((phi1 - phi0) / 2)
    sin_dlam = math.sin(math.radians(b.lon - a.lon) / 2)
    h = sin_dphi * sin_dphi + math.cos(phi0) * math.cos(phi1) * sin_dlam * sin_dlam
    h = max(0.0, min(1.0, h))
    return 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def interpolate(a: GeoPoint, b: GeoPoint, t: float) -> GeoPoint:
    """Point at fraction `t` along the great-circle arc from `a` to `b`."""
    d = geo_distance(a, b)
    sin_d = math.sin(d)
    if sin_d < _EPSILON:
        return a if t < 0.5 else b
    wa = math.sin((1 - t) * d) / sin_d
    wb = math.sin(t * d) / sin_d
    va, vb = _to_vector(a), _to_vector(b)
    return _from_vector(*(wa * p + wb * q for p, q in zip(va, vb)))


def densify(points: Sequence[GeoPoint], max_step_deg: float) -> list[GeoPoint]:
    """Insert great-circle points so no step exceeds `max_step_deg`."""
    if len(points) < 2:
        return list(points)
    out = [points[0]]
    max_step = math.radians(max_step_deg)
    for a, b in zip(points, points[1:]):
        n = max(1, math.ceil(geo_distance(a, b) / max_step - 1e-9))
        out.extend(interpolate(a, b, i / n) for i in range(1, n))
        out.append(b)
    return out


def _positions(coords: Iterable[Sequence[float]]) -> list[GeoPoint]:
    return [GeoPoint(float(c[0]), float(c[1])) for c in coords]


def _iter_parts(geometry: dict[str, Any]) -> Iterator[tuple[str, list[GeoPoint]]]:
    """Flatten a GeoJSON geometry into ("point" | "line", vertices) parts."""
    kind = geometry.get("type")
    coords = geometry.get("coordinates")
    if kind == "Point":
        yield "point", _positions([coords])
    elif kind == "MultiPoint":
        yield "point", _positions(coords)
    elif kind == "LineString":
        yield "line", _positions(coords)
    elif kind in ("MultiLineString", "Polygon"):
        for part in coords:
            yield "line", _positions(part)
    elif kind == "MultiPolygon":
        for polygon in coords:
            for ring in polygon:
                yield "line", _positions(ring)
    elif kind == "GeometryCollection":
        for sub in geometry.get("geometries", []):
            yield from _iter_parts(sub)


def geo_centroid(geometry: dict[str, Any]) -> GeoPoint | None:
    """Spherical centroid of a GeoJSON geometry.

    Line parts (including polygon rings) are weighted by arc length and take
    precedence over point parts. For polygons this is only an approximation
    of the area-weighted centroid. Returns None when the centroid is undefined
    (empty geometry, or vectors that cancel out).
    """
    line_sum = [0.0, 0.0, 0.0]
    line_weight = 0.0
    point_sum = [0.0, 0.0, 0.0]
    point_count = 0

    for kind, vertices in _iter_parts(geometry):
        for v in vertices:
            for i, c in enumerate(_to_vector(v)):
                point_sum[i] += c
            point_count += 1
        if kind != "line":
            continue
        for a, b in zip(vertices, vertices[1:]):
            w = geo_distance(a, b)
            va, vb = _to_vector(a), _to_vector(b)
            for i in range(3):
                line_sum[i] += w * (va[i] + vb[i])
            line_weight += w

    vector = line_sum if line_weight > _EPSILON else point_sum
    if point_count == 0 or math.sqrt(sum(c * c for c in vector)) < _EPSILON:
        return None
    return _from_vector(*vector)
