"""Unit tests for scene computation."""

from __future__ import annotations

import logging
import math
from dataclasses import replace
from datetime import timezone

import pytest

from skychart import pipeline
from skychart.models import (
    Catalogs,
    ConstellationLabelFeature,
    ConstellationLineFeature,
    GeoPoint,
    HorizonDisk,
    ObserverState,
    StarFeature,
    Viewport,
)
from skychart.pipeline import graticule_lines, project_polyline, render, star_radius
from skychart.projection import build, geo_centroid, geo_distance


def _label(lon: float, lat: float, name: str | None = "Label", ident: str | None = "Lbl"):
    return ConstellationLabelFeature(
        geometry={"type": "Point", "coordinates": [lon, lat]}, name=name, id=ident
    )


def _within_disk(scene, x: float, y: float) -> bool:
    hz = scene.horizon
    return math.hypot(x - hz.cx, y - hz.cy) <= hz.r + 1e-6


def test_end_to_end_scenario(catalogs, observer, viewport) -> None:
    scene = render(catalogs, observer, viewport)
    assert scene is not None
    assert scene.horizon == HorizonDisk(cx=400.0, cy=400.0, r=360.0)

    # The zenith star is drawn at the center; the antipodal one is not drawn at all.
    assert len(scene.stars) == 1
    star = scene.stars[0]
    assert star.x == pytest.approx(400.0, abs=1e-6)
    assert star.y == pytest.approx(400.0, abs=1e-6)
    assert star.radius == pytest.approx(3.0)

    assert scene.labels[0].text == "Zenith"
    assert scene.labels[0].visible
    assert scene.labels[0].x == pytest.approx(400.0, abs=1e-6)


def test_render_is_deterministic(catalogs, observer, viewport) -> None:
    assert render(catalogs, observer, viewport) == render(catalogs, observer, viewport)


def test_magnitude_filter(observer, viewport, lst) -> None:
    zenith = GeoPoint(lst, observer.latitude)
    cats = Catalogs(
        stars=tuple(StarFeature(zenith, m) for m in (4.9, 5.0, 5.1)), lines=(), labels=()
    )
    scene = render(cats, observer, viewport)
    assert scene is not None
    assert sorted(s.magnitude for s in scene.stars) == [4.9, 5.0]


def test_star_radius() -> None:
    mags = [-1.46, 0.0, 1.0, 2.5, 4.0, 5.0, 6.0, 7.0, 9.0]
    radii = [star_radius(m) for m in mags]
    assert radii == sorted(radii, reverse=True)
    assert star_radius(-1.46) == pytest.approx(4.23)
    assert star_radius(1.0) == pytest.approx(3.0)
    assert star_radius(7.0) == 0.5
    assert min(radii) >= 0.5


def test_label_visibility_threshold(viewport, lst) -> None:
    observer = ObserverState(latitude=0.0, longitude=20.3, when="2024-01-01T00:00", tz=timezone.utc)
    cats = Catalogs(
        stars=(),
        lines=(),
        labels=(
            _label(lst, -89.0, name="Near"),
            _label(lst, -89.99, name="Beyond"),  # 1.5706 rad: projectable but hidden
            _label(lst + 180, 0.0, name="Antipode"),
        ),
    )
    scene = render(cats, observer, viewport)
    assert scene is not None
    marks = {m.text: m for m in scene.labels}
    assert marks["Near"].visible
    assert not marks["Beyond"].visible
    assert "Antipode" not in marks


def test_label_threshold_is_inclusive(monkeypatch, viewport) -> None:
    proj = build(viewport, 0.0, 0.0)
    assert proj is not None
    center = GeoPoint(0.0, 0.0)
    feature = _label(80.0, 0.0)
    centroid = geo_centroid(feature.geometry)
    assert centroid is not None
    distance = geo_distance(centroid, center)

    monkeypatch.setattr(pipeline, "LABEL_HORIZON_RAD", distance)
    mark = pipeline._label_mark(proj, feature, center)
    assert mark is not None and mark.visible

    monkeypatch.setattr(pipeline, "LABEL_HORIZON_RAD", math.nextafter(distance, 0.0))
    mark = pipeline._label_mark(proj, feature, center)
    assert mark is not None and not mark.visible


def test_label_text_falls_back_to_id(catalogs, observer, viewport, lst) -> None:
    cats = replace(
        catalogs,
        labels=(
            _label(lst, observer.latitude, name=None, ident="Ori"),
            _label(lst, observer.latitude, name=None, ident=None),
        ),
    )
    scene = render(cats, observer, viewport)
    assert scene is not None
    assert [m.text for m in scene.labels] == ["Ori", ""]


def test_constellation_lines_are_clipped(observer, viewport, lst) -> None:
    observer = replace(observer, latitude=0.0)
    cats = Catalogs(
        stars=(),
        lines=(
            ConstellationLineFeature(
                lines=((GeoPoint(lst, 0.0), GeoPoint(lst + 60, 0.0), GeoPoint(lst + 120, 0.0)),),
                id="Crossing",
            ),
            ConstellationLineFeature(
                lines=((GeoPoint(lst + 120, 0.0), GeoPoint(lst + 150, 0.0)),), id="Below"
            ),
        ),
        labels=(),
    )
    scene = render(cats, observer, viewport)
    assert scene is not None
    crossing, below = scene.constellation_lines
    assert below == ()
    assert len(crossing) == 1
    run = crossing[0]
    assert run[0] == pytest.approx((400.0, 400.0), abs=1e-6)
    assert all(_within_disk(scene, x, y) for x, y in run)
    # Densified: more vertices than the visible source points.
    assert len(run) > 2


def test_project_polyline_splits_on_hidden_vertices() -> None:
    def fake(point):
        return None if point.lon > 100 else (point.lon, point.lat)

    points = [GeoPoint(lon, 0.0) for lon in (0, 50, 150, 60, 70)]
    assert project_polyline(fake, points) == [((0, 0.0), (50, 0.0)), ((60, 0.0), (70, 0.0))]

    lonely = [GeoPoint(lon, 0.0) for lon in (0, 150, 60, 160)]
    assert project_polyline(fake, lonely) == []


def test_graticule(catalogs, observer, viewport) -> None:
    lines = graticule_lines()
    assert len(lines) == 24 + 11  # meridians every 15 deg, parallels -75..75
    meridian_lats = sorted({p.lat for p in lines[0]})
    assert meridian_lats[0] == -90.0 and meridian_lats[-1] == 90.0
    assert min(p.lat for p in lines[1]) == -80.0

    scene = render(catalogs, observer, viewport)
    assert scene is not None
    assert scene.graticule
    assert all(_within_disk(scene, x, y) for line in scene.graticule for x, y in line)


@pytest.mark.parametrize(
    "field, value",
    [("stars", None), ("lines", None), ("labels", None)],
)
def test_missing_dataset_is_noop(catalogs, observer, viewport, field, value) -> None:
    assert render(replace(catalogs, **{field: value}), observer, viewport) is None


def test_noop_guards(catalogs, observer, viewport) -> None:
    assert render(None, observer, viewport) is None
    assert render(catalogs, None, viewport) is None
    assert render(catalogs, observer, None) is None
    assert render(catalogs, observer, Viewport(0, 600)) is None
    assert render(catalogs, replace(observer, when=None), viewport) is None
    assert render(catalogs, replace(observer, when="yesterday-ish"), viewport) is None


def test_degenerate_viewport_skip_is_logged(caplog, catalogs, observer) -> None:
    with caplog.at_level(logging.DEBUG, logger="skychart.pipeline"):
        assert render(catalogs, observer, Viewport(1280, 0)) is None
    assert "Viewport has no area: 1280x0" in caplog.text


def test_viewport_change_moves_everything(catalogs, observer) -> None:
    scene = render(catalogs, observer, Viewport(1200, 600))
    assert scene is not None
    assert scene.horizon == HorizonDisk(cx=600.0, cy=300.0, r=270.0)
    assert scene.stars[0].x == pytest.approx(600.0, abs=1e-6)
    assert scene.stars[0].y == pytest.approx(300.0, abs=1e-6)
