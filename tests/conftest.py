from __future__ import annotations

from datetime import timezone

import pytest

from skychart.models import (
    Catalogs,
    ConstellationLabelFeature,
    ConstellationLineFeature,
    GeoPoint,
    ObserverState,
    StarFeature,
    Viewport,
)
from skychart.sidereal import parse_local_datetime, sidereal_time

WHEN = "2024-01-01T00:00"


@pytest.fixture
def observer() -> ObserverState:
    return ObserverState(latitude=51.54, longitude=20.3, when=WHEN, tz=timezone.utc)


@pytest.fixture
def viewport() -> Viewport:
    return Viewport(800, 800)


@pytest.fixture
def lst(observer: ObserverState) -> float:
    return sidereal_time(parse_local_datetime(observer.when, observer.tz), observer.longitude)


@pytest.fixture
def catalogs(observer: ObserverState, lst: float) -> Catalogs:
    zenith = GeoPoint(lst, observer.latitude)
    return Catalogs(
        stars=(
            StarFeature(zenith, 1.0),
            StarFeature(GeoPoint(lst + 180, -observer.latitude), 0.5),  # antipode
        ),
        lines=(
            ConstellationLineFeature(
                lines=((zenith, GeoPoint(lst + 30, observer.latitude - 10)),), id="Zen"
            ),
        ),
        labels=(
            ConstellationLabelFeature(
                geometry={"type": "Point", "coordinates": [lst, observer.latitude]},
                name="Zenith",
                id="Zen",
            ),
        ),
    )
