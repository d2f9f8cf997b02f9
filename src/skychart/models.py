"""Frozen data types passed between the catalog, observer, compute and render layers."""

from dataclasses import dataclass
from datetime import tzinfo
from typing import Any

ScreenPoint = tuple[float, float]
Polyline = tuple[ScreenPoint, ...]


@dataclass(frozen=True)
class GeoPoint:
    """A point on the sphere. Sky coordinates use RA as lon and Dec as lat."""

    lon: float  # Longitude / right ascension (degrees, [-180, 180] or [0, 360))
    lat: float  # Latitude / declination (degrees, [-90, 90])


@dataclass(frozen=True)
class StarFeature:
    """A single catalog star."""

    point: GeoPoint
    magnitude: float  # Apparent magnitude (lower = brighter)


@dataclass(frozen=True)
class ConstellationLineFeature:
    """Stick-figure geometry for one constellation. One polyline per LineString."""

    lines: tuple[tuple[GeoPoint, ...], ...]
    id: str | None = None  # IAU abbreviation when the feed provides one


@dataclass(frozen=True)
class ConstellationLabelFeature:
    """Name anchor for one constellation. `geometry` is the raw GeoJSON geometry."""

    geometry: dict[str, Any]
    name: str | None = None  # Display name ("Orion")
    id: str | None = None  # Stable identifier ("Ori")

    @property
    def text(self) -> str:
        return self.name or self.id or ""


@dataclass(frozen=True)
class Catalogs:
    """The three read-only datasets. Loaded once, never mutated."""

    stars: tuple[StarFeature, ...]
    lines: tuple[ConstellationLineFeature, ...]
    labels: tuple[ConstellationLabelFeature, ...]


@dataclass(frozen=True)
class ObserverState:
    """User-controlled observer inputs, handed to the core by value on every recompute."""

    latitude: float  # Decimal degrees
    longitude: float  # Decimal degrees, east positive
    when: str | None  # Naive local "YYYY-MM-DDTHH:MM"; None until the picker is initialised
    tz: tzinfo | None = None  # Observer's zone; None means the host's local zone


@dataclass(frozen=True)
class Viewport:
    """Rendering surface size in device pixels."""

    width: float
    height: float

    @property
    def is_degenerate(self) -> bool:
        return self.width <= 0 or self.height <= 0

    @property
    def center(self) -> ScreenPoint:
        return (self.width / 2, self.height / 2)


@dataclass(frozen=True)
class HorizonDisk:
    cx: float
    cy: float
    r: float


@dataclass(frozen=True)
class LabelMark:
    """A projected constellation name."""

    text: str
    x: float
    y: float
    visible: bool  # False when the centroid is beyond the horizon threshold


@dataclass(frozen=True)
class StarMarker:
    x: float
    y: float
    radius: float
    magnitude: float


@dataclass(frozen=True)
class DrawableScene:
    """The sole input to renderers. Recreated on every recompute, never patched."""

    viewport: Viewport
    horizon: HorizonDisk
    graticule: tuple[Polyline, ...]
    constellation_lines: tuple[tuple[Polyline, ...], ...]  # One entry per constellation
    labels: tuple[LabelMark, ...]
    stars: tuple[StarMarker, ...]  # After magnitude filter, clipped to the visible hemisphere
    lst_deg: float  # Local sidereal time the scene was built for (unreduced)
