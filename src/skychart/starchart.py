"""Script entry point for a static star chart PNG.

Edit the observer variables at the top, then run:
    uv run python src/skychart/starchart.py
"""

import sys

from dotenv import load_dotenv

load_dotenv()

from skychart.catalog import load_catalogs  # noqa: E402
from skychart.config import Settings, configure_logging  # noqa: E402
from skychart.models import ObserverState, Viewport  # noqa: E402
from skychart.pipeline import render  # noqa: E402
from skychart.renderers.static import save_static_chart  # noqa: E402
from skychart.session import DEFAULT_LATITUDE, DEFAULT_LONGITUDE  # noqa: E402
from skychart.sidereal import local_sidereal_time, now_local_iso, parse_local_datetime  # noqa: E402

lat = DEFAULT_LATITUDE
lon = DEFAULT_LONGITUDE
when = now_local_iso()  # or e.g. "2024-01-01T00:00"
viewport = Viewport(width=1200, height=1200)

settings = Settings.from_env()
configure_logging(settings)

catalogs = load_catalogs(settings)
scene = render(catalogs, ObserverState(latitude=lat, longitude=lon, when=when), viewport)
if scene is None:
    sys.exit("Nothing to draw: catalogs unavailable or date-time invalid (see log).")
lst = local_sidereal_time(parse_local_datetime(when), lon)
path = save_static_chart(scene)
print(f"Local sidereal time {lst:.2f} deg at {when}")
print(f"Saved: {path}")
