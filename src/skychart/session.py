"""Chart session: a versioned snapshot of all render inputs plus the last good scene.

Every setter swaps in a new immutable snapshot and recomputes synchronously.
A recompute that has nothing to draw (catalogs missing, zero-area viewport,
bad date-time) leaves the previous scene in place.
"""

import logging
from dataclasses import dataclass, replace
from collections.abc import Sequence
from datetime import datetime, timedelta, timezone, tzinfo

from skychart.models import Catalogs, DrawableScene, ObserverState, Viewport
from skychart.pipeline import render
from skychart.sidereal import now_local_iso

LOG = logging.getLogger(__name__)

DEFAULT_LATITUDE = 51.54
DEFAULT_LONGITUDE = 20.3

_OBSERVER_FIELDS = ("latitude", "longitude", "when", "tz")

# Evaluated by streamlit_js_eval inside its own component iframe, so the page
# size has to be read from the parent window.
BROWSER_PROBE_JS = (
    "[window.parent.innerWidth, window.parent.innerHeight, new Date().getTimezoneOffset()]"
)
CONTROLS_HEIGHT_PX = 140  # Space reserved above the chart for the input bar


def read_browser_probe(
    probe: Sequence[float] | None,
    reserved_height: float = CONTROLS_HEIGHT_PX,
) -> tuple[tzinfo, Viewport] | None:
    """Turn the `[width, height, tz offset]` probe result into a zone and a chart viewport.

    The offset uses the browser convention (UTC minus local, in minutes) and
    becomes one fixed-offset zone for the whole session. Returns None until the
    browser has answered.
    """
    if probe is None:
        return None
    width, height, offset_min = (float(v) for v in probe)
    tz = timezone(timedelta(minutes=-offset_min))
    return tz, Viewport(width=width, height=max(0.0, height - reserved_height))


@dataclass(frozen=True)
class ChartSnapshot:
    """All inputs of one recompute. Never mutated after it is handed to `render`."""

    version: int
    catalogs: Catalogs | None
    observer: ObserverState
    viewport: Viewport | None


def default_observer(tz: tzinfo | None = None, now: datetime | None = None) -> ObserverState:
    return ObserverState(
        latitude=DEFAULT_LATITUDE,
        longitude=DEFAULT_LONGITUDE,
        when=now_local_iso(tz, now),
        tz=tz,
    )


class ChartSession:
    """Owns the current snapshot; recomputes the scene whenever an input changes."""

    def __init__(
        self,
        catalogs: Catalogs | None = None,
        observer: ObserverState | None = None,
        viewport: Viewport | None = None,
    ) -> None:
        self._snapshot = ChartSnapshot(
            version=0,
            catalogs=catalogs,
            observer=observer or ObserverState(DEFAULT_LATITUDE, DEFAULT_LONGITUDE, when=None),
            viewport=viewport,
        )
        self._scene: DrawableScene | None = None
        self._recompute()

    @property
    def snapshot(self) -> ChartSnapshot:
        return self._snapshot

    @property
    def observer(self) -> ObserverState:
        return self._snapshot.observer

    @property
    def scene(self) -> DrawableScene | None:
        """The last successfully computed scene (None until the first one)."""
        return self._scene

    def update(self, **changes: object) -> DrawableScene | None:
        """Apply input changes and recompute.

        Accepts `catalogs`, `viewport`, and the observer fields `latitude`,
        `longitude`, `when`, `tz`. Changes equal to the current values do not
        bump the version or trigger a recompute.
        """
        unknown = set(changes) - {"catalogs", "viewport", *_OBSERVER_FIELDS}
        if unknown:
            raise TypeError(f"Unknown chart inputs: {', '.join(sorted(unknown))}")

        current = self._snapshot
        observer_changes = {k: v for k, v in changes.items() if k in _OBSERVER_FIELDS}
        observer = replace(current.observer, **observer_changes)
        catalogs = changes.get("catalogs", current.catalogs)
        viewport = changes.get("viewport", current.viewport)

        if (
            observer == current.observer
            and catalogs is current.catalogs
            and viewport == current.viewport
        ):
            return self._scene

        self._snapshot = ChartSnapshot(
            version=current.version + 1,
            catalogs=catalogs,  # type: ignore[arg-type]
            observer=observer,
            viewport=viewport,  # type: ignore[arg-type]
        )
        self._recompute()
        return self._scene

    def set_catalogs(self, catalogs: Catalogs | None) -> DrawableScene | None:
        return self.update(catalogs=catalogs)

    def set_viewport(self, width: float, height: float) -> DrawableScene | None:
        return self.update(viewport=Viewport(width, height))

    def set_latitude(self, latitude: float) -> DrawableScene | None:
        return self.update(latitude=latitude)

    def set_longitude(self, longitude: float) -> DrawableScene | None:
        return self.update(longitude=longitude)

    def set_datetime(self, when: str | None) -> DrawableScene | None:
        return self.update(when=when)

    def reset(self, now: datetime | None = None) -> ObserverState:
        """Restore the default location and the current local time."""
        tz = self._snapshot.observer.tz
        self.update(
            latitude=DEFAULT_LATITUDE,
            longitude=DEFAULT_LONGITUDE,
            when=now_local_iso(tz, now),
        )
        return self._snapshot.observer

    def _recompute(self) -> None:
        snapshot = self._snapshot
        scene = render(snapshot.catalogs, snapshot.observer, snapshot.viewport)
        if scene is None:
            LOG.debug("Recompute v%d produced no scene; keeping previous", snapshot.version)
            return
        self._scene = scene
