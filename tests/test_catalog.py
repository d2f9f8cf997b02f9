"""Unit tests for catalog parsing and loading."""

from __future__ import annotations

import asyncio
import json
import logging

import httpx
import pytest

from skychart.catalog import (
    CatalogLoadError,
    fetch_catalogs,
    load_catalogs,
    parse_labels,
    parse_lines,
    parse_stars,
)
from skychart.config import Settings
from skychart.models import GeoPoint

STARS = {
    "type": "FeatureCollection",
    "features": [
        {
            "type": "Feature",
            "id": 32349,
            "properties": {"mag": -1.47, "bv": "0.009"},
            "geometry": {"type": "Point", "coordinates": [101.287, -16.716]},
        },
        {
            "type": "Feature",
            "id": 1,
            "properties": {},
            "geometry": {"type": "Point", "coordinates": [10.0, 10.0]},
        },
    ],
}
LINES = {
    "type": "FeatureCollection",
    "features": [
        {
            "type": "Feature",
            "id": "Ori",
            "geometry": {
                "type": "MultiLineString",
                "coordinates": [[[88.79, 7.41], [81.28, 6.35]], [[78.63, -8.2], [83.0, -0.3]]],
            },
        },
        {
            "type": "Feature",
            "id": "Tri",
            "geometry": {"type": "LineString", "coordinates": [[28.27, 29.58], [32.39, 34.99]]},
        },
        {"type": "Feature", "id": "Odd", "geometry": {"type": "Point", "coordinates": [0, 0]}},
    ],
}
NAMES = {
    "type": "FeatureCollection",
    "features": [
        {
            "type": "Feature",
            "id": "Ori",
            "properties": {"n": "Orion"},
            "geometry": {"type": "Point", "coordinates": [83.8, 1.0]},
        },
        {
            "type": "Feature",
            "id": "Tri",
            "properties": {"name": "Triangulum"},
            "geometry": {"type": "Point", "coordinates": [31.0, 32.0]},
        },
    ],
}

SETTINGS = Settings(
    stars_url="https://feeds.test/stars.json",
    lines_url="https://feeds.test/lines.json",
    names_url="https://feeds.test/names.json",
)
PAYLOADS = {
    SETTINGS.stars_url: STARS,
    SETTINGS.lines_url: LINES,
    SETTINGS.names_url: NAMES,
}


def _transport(missing: str | None = None) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        if url == missing:
            return httpx.Response(404, text="not found")
        return httpx.Response(200, json=PAYLOADS[url])

    return httpx.MockTransport(handler)


def test_parse_stars_skips_missing_magnitude() -> None:
    stars = parse_stars(STARS)
    assert len(stars) == 1
    assert stars[0].point == GeoPoint(101.287, -16.716)
    assert stars[0].magnitude == -1.47


def test_parse_lines_accepts_line_geometries_only() -> None:
    lines = parse_lines(LINES)
    assert [f.id for f in lines] == ["Ori", "Tri"]
    assert len(lines[0].lines) == 2
    assert lines[1].lines == ((GeoPoint(28.27, 29.58), GeoPoint(32.39, 34.99)),)


def test_parse_labels_name_and_id() -> None:
    labels = parse_labels(NAMES)
    assert [(f.name, f.id, f.text) for f in labels] == [
        ("Orion", "Ori", "Orion"),
        (None, "Tri", "Tri"),
    ]
    assert labels[0].geometry["type"] == "Point"


@pytest.mark.parametrize("payload", [None, [], {"type": "FeatureCollection"}, {"features": "x"}])
def test_parse_rejects_non_collections(payload) -> None:
    with pytest.raises(CatalogLoadError):
        parse_stars(payload)


def test_parse_rejects_malformed_coordinates() -> None:
    bad = {"features": [{"properties": {"mag": 1.0}, "geometry": {"type": "Point", "coordinates": []}}]}
    with pytest.raises(CatalogLoadError) as info:
        parse_stars(bad)
    assert info.value.dataset == "stars"


def test_fetch_catalogs_loads_all_three() -> None:
    catalogs = asyncio.run(fetch_catalogs(SETTINGS, transport=_transport()))
    assert len(catalogs.stars) == 1
    assert len(catalogs.lines) == 2
    assert len(catalogs.labels) == 2


def test_fetch_catalogs_fails_as_a_whole() -> None:
    with pytest.raises(CatalogLoadError) as info:
        asyncio.run(fetch_catalogs(SETTINGS, transport=_transport(missing=SETTINGS.lines_url)))
    assert info.value.dataset == "constellation lines"


def test_load_catalogs_logs_and_returns_none(caplog) -> None:
    with caplog.at_level(logging.ERROR, logger="skychart.catalog"):
        result = load_catalogs(SETTINGS, transport=_transport(missing=SETTINGS.names_url))
    assert result is None
    assert "Error loading catalogs" in caplog.text


def test_load_catalogs_from_local_files(tmp_path) -> None:
    paths = {}
    for name, payload in (("stars", STARS), ("lines", LINES), ("names", NAMES)):
        path = tmp_path / f"{name}.json"
        path.write_text(json.dumps(payload), encoding="utf-8")
        paths[name] = path
    settings = Settings(
        stars_url=str(paths["stars"]),
        lines_url=paths["lines"].as_uri(),
        names_url=str(paths["names"]),
    )
    catalogs = load_catalogs(settings)
    assert catalogs is not None
    assert catalogs.labels[0].text == "Orion"


def test_load_catalogs_missing_local_file(tmp_path) -> None:
    settings = Settings(
        stars_url=str(tmp_path / "nope.json"),
        lines_url=str(tmp_path / "nope.json"),
        names_url=str(tmp_path / "nope.json"),
    )
    assert load_catalogs(settings) is None


@pytest.mark.parametrize(
    "geometry",
    [
        {"type": "Point"},
        {"type": "Point", "coordinates": ["east", 1.0]},
        {"type": "Polygon", "coordinates": None},
        {"type": "GeometryCollection", "geometries": ["Ori"]},
    ],
)
def test_parse_labels_rejects_unreadable_geometry(geometry) -> None:
    data = {"features": [{"id": "Ori", "properties": {"n": "Orion"}, "geometry": geometry}]}
    with pytest.raises(CatalogLoadError) as info:
        parse_labels(data)
    assert info.value.dataset == "constellation names"


def test_bad_label_geometry_fails_the_load(caplog) -> None:
    broken = {
        "type": "FeatureCollection",
        "features": [{"id": "Ori", "properties": {"n": "Orion"}, "geometry": {"type": "Point"}}],
    }

    def handler(request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        payload = broken if url == SETTINGS.names_url else PAYLOADS[url]
        return httpx.Response(200, json=payload)

    with caplog.at_level(logging.ERROR, logger="skychart.catalog"):
        result = load_catalogs(SETTINGS, transport=httpx.MockTransport(handler))
    assert result is None
    assert "constellation names" in caplog.text
