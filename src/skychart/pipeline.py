"""Scene computation layer: catalogs + observer + viewport in, DrawableScene out.

`render` is pure: the same inputs always give an equal scene, and nothing is
kept between calls.
"""

import logging
from collections.abc import Sequence

import numpy as np

from skychart import projection as sky_projection
from skychart.models import (
    Catalogs,
    ConstellationLabelFeature,
    ConstellationLineFeature,
    DrawableScene,
    GeoPoint,
    HorizonDisk,
    LabelMark,
    ObserverState,
    Polyline,
    StarFeature,
    StarMarker,
    Viewport,
)
from skychart.projection import Projection
from skychart.sidereal import InvalidTimeInput, parse_local_datetime, sidereal_time

LOG = logging.getLogger(__name__)

MAGNITUDE_LIMIT = 5.0  # Naked-eye threshold; dimmer stars are dropped, not faded
LABEL_HORIZON_RAD = 1.57  # Labels further than this from the view center are hidden
GRATICULE_STEP = 15.0  # degrees
GRATICULE_MINOR_EXTENT = 80.0  # Non-major meridians stop short of the poles
GRATICULE_PRECISION = 2.5  # degrees between sampled graticule points
LINE_PRECISION = 2.5  # max degrees between projected constellation vertices


def star_radius(magnitude: float) -> float:
    """Marker radius in pixels. Brighter stars are larger, never below 0.5."""
    return max(0.5, 3.5 - magnitude * 0.5)


def _frange(start: float, stop: float, step: float) -> list[float]:
    count = int(round((stop - start) / step))
    return [start + i * step for i in range(count + 1)]


def graticule_lines(step: float = GRATICULE_STEP) -> list[list[GeoPoint]]:
    """Meridians and parallels of a `step` x `step` degree grid, as sampled polylines."""
    lines: list[list[GeoPoint]] = []
    for lon in _frange(-180.0, 180.0 - step, step):
        extent = 90.0 if lon % 90 == 0 else GRATICULE_MINOR_EXTENT
        lines.append(
            [GeoPoint(lon, lat) for lat in _frange(-extent, extent, GRATICULE_PRECISION)]
        )
    first_parallel = -90.0 + step
    for lat in _frange(first_parallel, -first_parallel, step):
        lines.append(
            [GeoPoint(lon, lat) for lon in _frange(-180.0, 180.0, GRATICULE_PRECISION)]
        )
    return lines


def project_polyline(projection: Projection, points: Sequence[GeoPoint]) -> list[Polyline]:
    """Project a polyline, splitting it wherever a vertex falls outside the clip angle.

    Segments with an unprojectable endpoint are dropped rather than
    interpolated to the horizon. Runs of fewer than two points are discarded.
    """
    runs: list[Polyline] = []
    current: list[tuple[float, float]] = []
    for point in points:
        screen = projection(point)
        if screen is None:
            if len(current) > 1:
                runs.append(tuple(current))
            current = []
            continue
        current.append(screen)
    if len(current) > 1:
        runs.append(tuple(current))
    return runs


def _project_constellation(
    projection: Projection, feature: ConstellationLineFeature
) -> tuple[Polyline, ...]:
    paths: list[Polyline] = []
    for line in feature.lines:
        dense = sky_projection.densify(line, LINE_PRECISION)
        paths.extend(project_polyline(projection, dense))
    return tuple(paths)


def _label_mark(
    projection: Projection, feature: ConstellationLabelFeature, view_center: GeoPoint
) -> LabelMark | None:
    centroid = sky_projection.geo_centroid(feature.geometry)
    if centroid is None:
        return None
    screen = projection(centroid)
    if screen is None:
        return None
    visible = sky_projection.geo_distance(centroid, view_center) <= LABEL_HORIZON_RAD
    return LabelMark(text=feature.text, x=screen[0], y=screen[1], visible=visible)


def _star_markers(projection: Projection, stars: Sequence[StarFeature]) -> tuple[StarMarker, ...]:
    bright = [s for s in stars if s.magnitude <= MAGNITUDE_LIMIT]
    if not bright:
        return ()
    lons = np.array([s.point.lon for s in bright])
    lats = np.array([s.point.lat for s in bright])
    xs, ys, visible = projection.project_many(lons, lats)
    return tuple(
        StarMarker(
            x=float(xs[i]),
            y=float(ys[i]),
            radius=star_radius(star.magnitude),
            magnitude=star.magnitude,
        )
        for i, star in enumerate(bright)
        if visible[i]
    )


def render(
    catalogs: Catalogs | None,
    observer: ObserverState | None,
    viewport: Viewport | None,
) -> DrawableScene | None:
    """Build the full scene for one set of inputs.

    Returns None (a no-op, never an exception) when catalogs are not loaded,
    the viewport has no area, or the date-time is missing or unparseable.

    Args:
        catalogs: Star, constellation line, and label datasets.
        observer: Latitude, longitude, and local date-time.
        viewport: Rendering surface size in pixels.

    Returns:
        A fresh DrawableScene, or None when there is nothing to draw.
    """
    if catalogs is None or any(
        d is None for d in (catalogs.stars, catalogs.lines, catalogs.labels)
    ):
        LOG.debug("Skipping render: catalogs not loaded")
        return None
    if viewport is None:
        LOG.debug("Skipping render: viewport not measured yet")
        return None
    try:
        sky_projection.require_viewport(viewport)
    except sky_projection.DegenerateViewport as e:
        LOG.debug("Skipping render: %s", e)
        return None
    if observer is None:
        LOG.debug("Skipping render: no observer state")
        return None
    try:
        when = parse_local_datetime(observer.when, observer.tz)
    except InvalidTimeInput as e:
        LOG.debug("Skipping render: %s", e)
        return None

    lst = sidereal_time(when, observer.longitude)
    projection = sky_projection.build(viewport, observer.latitude, lst)
    if projection is None:
        return None

    cx, cy = viewport.center
    view_center = projection.invert((cx, cy))

    graticule: list[Polyline] = []
    for line in graticule_lines():
        graticule.extend(project_polyline(projection, line))

    constellations = tuple(_project_constellation(projection, f) for f in catalogs.lines)

    labels = tuple(
        mark
        for mark in (_label_mark(projection, f, view_center) for f in catalogs.labels)
        if mark is not None
    )

    return DrawableScene(
        viewport=viewport,
        horizon=HorizonDisk(cx=cx, cy=cy, r=projection.scale),
        graticule=tuple(graticule),
        constellation_lines=constellations,
        labels=labels,
        stars=_star_markers(projection, catalogs.stars),
        lst_deg=lst,
    )
