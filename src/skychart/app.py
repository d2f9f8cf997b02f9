"""Sky Chart: Streamlit app for a live planisphere of the sky above an observer."""

import datetime

import streamlit as st
import streamlit.components.v1 as components
from dotenv import load_dotenv
from streamlit_js_eval import streamlit_js_eval

load_dotenv()

from skychart.catalog import load_catalogs  # noqa: E402
from skychart.config import Settings, configure_logging  # noqa: E402
from skychart.models import Catalogs  # noqa: E402
from skychart.renderers.svg_2d import render_svg_html  # noqa: E402
from skychart.session import (  # noqa: E402
    BROWSER_PROBE_JS,
    ChartSession,
    default_observer,
    read_browser_probe,
)

_settings = Settings.from_env()
configure_logging(_settings)

st.set_page_config(
    page_title="Star Base One : Sky Chart",
    page_icon="✦",
    layout="wide",
    initial_sidebar_state="collapsed",
)


@st.cache_resource(show_spinner=False)
def _load_catalogs(settings: Settings) -> Catalogs | None:
    # Fire-once per process: a failed load is logged inside and not retried.
    return load_catalogs(settings)


# --- Viewport + browser timezone (read via streamlit-js-eval) ---
# The JS call returns None on the first run; the rerun it triggers fills it in.
# Bumping viewport_seq (Reset / Update) re-reads the window size.
if "viewport_seq" not in st.session_state:
    st.session_state.viewport_seq = 0

_browser = read_browser_probe(
    streamlit_js_eval(
        js_expressions=BROWSER_PROBE_JS,
        key=f"_viewport_{st.session_state.viewport_seq}",
        height=0,
    )
)
if _browser is not None:
    st.session_state.tz, st.session_state.viewport = _browser

if "tz" not in st.session_state:
    # Defaults depend on the browser's wall clock; wait for the probe's rerun.
    st.stop()

_tz: datetime.tzinfo = st.session_state.tz

# --- Session state initialization ---


def _apply_observer_to_widgets(chart: ChartSession) -> None:
    observer = chart.observer
    st.session_state.lat_num = st.session_state.lat_slider = observer.latitude
    st.session_state.lon_num = st.session_state.lon_slider = observer.longitude
    if observer.when:
        local = datetime.datetime.fromisoformat(observer.when)
        st.session_state.date_val = local.date()
        st.session_state.time_val = local.time()


if "chart" not in st.session_state:
    st.session_state.chart = ChartSession(observer=default_observer(_tz))
    _apply_observer_to_widgets(st.session_state.chart)

_chart: ChartSession = st.session_state.chart


def _sync(src: str, dst: str) -> None:
    st.session_state[dst] = st.session_state[src]


def _reset() -> None:
    _chart.update(tz=st.session_state.get("tz"))
    _chart.reset()
    _apply_observer_to_widgets(_chart)
    st.session_state.viewport_seq += 1


st.markdown(
    """
    <style>
    html, body, [data-testid="stAppViewContainer"], [data-testid="stMain"] {
        background-color: #111111 !important;
    }
    [data-testid="stHeader"], [data-testid="stToolbar"] {
        display: none !important;
    }
    iframe[src*="streamlit_js_eval"] { display: none !important; }
    [data-testid="stMainBlockContainer"] {
        padding-top: 0.6rem !important;
        padding-bottom: 0 !important;
    }
    </style>
    """,
    unsafe_allow_html=True,
)

# --- Input panel ---
col1, col2, col3, col4, col5, col6, col7 = st.columns([1.2, 2, 1.2, 2, 1.4, 1.2, 1.4])
with col1:
    st.number_input(
        "Lat", min_value=-90.0, max_value=90.0, step=0.1, format="%.2f",
        key="lat_num", on_change=_sync, args=("lat_num", "lat_slider"),
    )
with col2:
    st.slider(
        "Lat slider", min_value=-90.0, max_value=90.0, step=0.1,
        key="lat_slider", on_change=_sync, args=("lat_slider", "lat_num"),
        label_visibility="hidden",
    )
with col3:
    st.number_input(
        "Long", min_value=-180.0, max_value=180.0, step=0.1, format="%.2f",
        key="lon_num", on_change=_sync, args=("lon_num", "lon_slider"),
    )
with col4:
    st.slider(
        "Long slider", min_value=-180.0, max_value=180.0, step=0.1,
        key="lon_slider", on_change=_sync, args=("lon_slider", "lon_num"),
        label_visibility="hidden",
    )
with col5:
    st.date_input("Date", key="date_val")
with col6:
    st.time_input("Time", key="time_val", step=60)
with col7:
    st.markdown("<div style='height:1.9rem'></div>", unsafe_allow_html=True)
    st.button("Reset / Update", key="reset_btn", on_click=_reset, use_container_width=True)

_date: datetime.date | None = st.session_state.get("date_val")
_time: datetime.time | None = st.session_state.get("time_val")
_when = f"{_date.isoformat()}T{_time.strftime('%H:%M')}" if _date and _time else None

# --- Recompute ---
_catalogs = _load_catalogs(_settings)
_chart.update(
    catalogs=_catalogs,
    viewport=st.session_state.get("viewport"),
    latitude=float(st.session_state.lat_num),
    longitude=float(st.session_state.lon_num),
    when=_when,
    tz=_tz,
)

# --- Chart area ---
if _catalogs is None:
    st.markdown(
        "<div style='color:#ff9999; padding:1rem;'>Star catalogs could not be loaded. "
        "The chart will appear once the data is available.</div>",
        unsafe_allow_html=True,
    )
elif _chart.scene is not None:
    _scene = _chart.scene
    components.html(
        render_svg_html(_scene),
        height=int(_scene.viewport.height) + 8,
        scrolling=False,
    )
