"""Catalog layer: fetch and parse the star, constellation line, and constellation name feeds.

All three feeds are GeoJSON FeatureCollections in d3-celestial's format, with
right ascension stored as longitude and declination as latitude:

    stars:  {"geometry": {"type": "Point", "coordinates": [ra, dec]}, "properties": {"mag": 1.2}}
    lines:  {"id": "Ori", "geometry": {"type": "MultiLineString", "coordinates": [...]}}
    names:  {"id": "Ori", "geometry": {...}, "properties": {"n": "Orion"}}

Loading is fire-once and all-or-nothing: the three requests run concurrently
and any single failure fails the whole load.
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

import httpx

from skychart.config import Settings
from skychart.models import (
    Catalogs,
    ConstellationLabelFeature,
    ConstellationLineFeature,
    GeoPoint,
    StarFeature,
)
from skychart.projection import geo_centroid

LOG = logging.getLogger(__name__)

_USER_AGENT = "skychart/0.1 (planisphere)"


class CatalogLoadError(RuntimeError):
    """A catalog feed could not be fetched or parsed."""

    def __init__(self, dataset: str, message: str) -> None:
        super().__init__(f"{dataset}: {message}")
        self.dataset = dataset


def _features(data: Any, dataset: str) -> list[dict[str, Any]]:
    if not isinstance(data, dict) or not isinstance(data.get("features"), list):
        raise CatalogLoadError(dataset, "not a GeoJSON FeatureCollection")
    return data["features"]


def _point(coords: Any) -> GeoPoint:
    return GeoPoint(float(coords[0]), float(coords[1]))


def parse_stars(data: Any) -> tuple[StarFeature, ...]:
    """Star points with magnitudes. Features without a magnitude are skipped."""
    stars: list[StarFeature] = []
    for feature in _features(data, "stars"):
        mag = (feature.get("properties") or {}).get("mag")
        geometry = feature.get("geometry") or {}
        if mag is None or geometry.get("type") != "Point":
            continue
        try:
            stars.append(StarFeature(point=_point(geometry["coordinates"]), magnitude=float(mag)))
        except (KeyError, IndexError, TypeError, ValueError) as e:
            raise CatalogLoadError("stars", f"malformed feature {feature.get('id')!r}") from e
    return tuple(stars)


def parse_lines(data: Any) -> tuple[ConstellationLineFeature, ...]:
    """Constellation stick figures. LineString and MultiLineString geometries are accepted."""
    features: list[ConstellationLineFeature] = []
    for feature in _features(data, "constellation lines"):
        geometry = feature.get("geometry") or {}
        kind = geometry.get("type")
        try:
            if kind == "LineString":
                parts = [geometry["coordinates"]]
            elif kind == "MultiLineString":
                parts = geometry["coordinates"]
            else:
                continue
            lines = tuple(tuple(_point(c) for c in part) for part in parts)
        except (KeyError, IndexError, TypeError, ValueError) as e:
            raise CatalogLoadError(
                "constellation lines", f"malformed feature {feature.get('id')!r}"
            ) from e
        ident = feature.get("id")
        features.append(
            ConstellationLineFeature(lines=lines, id=str(ident) if ident is not None else None)
        )
    return tuple(features)


def parse_labels(data: Any) -> tuple[ConstellationLabelFeature, ...]:
    """Constellation name anchors. Features without geometry are skipped; unreadable coordinates fail the load."""
    labels: list[ConstellationLabelFeature] = []
    for feature in _features(data, "constellation names"):
        geometry = feature.get("geometry")
        if not isinstance(geometry, dict):
            continue
        ident = feature.get("id")
        try:
            geo_centroid(geometry)
        except (AttributeError, KeyError, IndexError, TypeError, ValueError) as e:
            raise CatalogLoadError(
                "constellation names", f"malformed feature {ident!r}"
            ) from e
        name = (feature.get("properties") or {}).get("n")
        labels.append(
            ConstellationLabelFeature(
                geometry=geometry,
                name=str(name) if name else None,
                id=str(ident) if ident is not None else None,
            )
        )
    return tuple(labels)


def _is_local(url: str) -> bool:
    return urlparse(url).scheme in ("", "file")


def _read_local(url: str) -> Any:
    parsed = urlparse(url)
    path = Path(parsed.path if parsed.scheme == "file" else url)
    with path.open(encoding="utf-8") as f:
        return json.load(f)


async def _fetch_json(client: httpx.AsyncClient, url: str, dataset: str) -> Any:
    try:
        if _is_local(url):
            return _read_local(url)
        resp = await client.get(url)
        resp.raise_for_status()
        return resp.json()
    except (httpx.HTTPError, OSError, ValueError) as e:
        raise CatalogLoadError(dataset, f"failed to load {url}: {e}") from e


async def fetch_catalogs(
    settings: Settings,
    transport: httpx.AsyncBaseTransport | None = None,
) -> Catalogs:
    """Fetch all three feeds concurrently and parse them.

    Args:
        settings: Feed URLs and HTTP timeout.
        transport: Optional httpx transport (tests pass a MockTransport).

    Returns:
        Fully populated Catalogs.

    Raises:
        CatalogLoadError: Any feed failed to download or parse.
    """
    async with httpx.AsyncClient(
        timeout=settings.http_timeout,
        headers={"User-Agent": _USER_AGENT},
        follow_redirects=True,
        transport=transport,
    ) as client:
        results = await asyncio.gather(
            _fetch_json(client, settings.stars_url, "stars"),
            _fetch_json(client, settings.lines_url, "constellation lines"),
            _fetch_json(client, settings.names_url, "constellation names"),
            return_exceptions=True,
        )
    for result in results:
        if isinstance(result, BaseException):
            raise result
    stars_raw, lines_raw, names_raw = results
    return Catalogs(
        stars=parse_stars(stars_raw),
        lines=parse_lines(lines_raw),
        labels=parse_labels(names_raw),
    )


def load_catalogs(
    settings: Settings,
    transport: httpx.AsyncBaseTransport | None = None,
) -> Catalogs | None:
    """Blocking wrapper for the UI. Logs and returns None on failure; no partial catalogs."""
    try:
        catalogs = asyncio.run(fetch_catalogs(settings, transport=transport))
    except CatalogLoadError:
        LOG.exception("Error loading catalogs")
        return None
    LOG.info(
        "Loaded catalogs: %d stars, %d constellations, %d labels",
        len(catalogs.stars),
        len(catalogs.lines),
        len(catalogs.labels),
    )
    return catalogs
