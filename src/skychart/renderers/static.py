"""Matplotlib static PNG renderer."""

from pathlib import Path

import matplotlib.pyplot as plt
from matplotlib.collections import LineCollection
from matplotlib.figure import Figure
from matplotlib.patches import Circle

from skychart.models import DrawableScene

_ROOT = Path(__file__).parent.parent.parent.parent

_DPI = 100


def render_static_chart(scene: DrawableScene) -> Figure:
    """Render a DrawableScene as a static matplotlib image.

    The axes use the scene's pixel space with y pointing down, so the image
    matches the SVG chart one to one.

    Args:
        scene: A fully computed scene.

    Returns:
        matplotlib Figure object.
    """
    w, h = scene.viewport.width, scene.viewport.height
    fig, ax = plt.subplots(figsize=(w / _DPI, h / _DPI), dpi=_DPI)
    fig.patch.set_facecolor("black")
    ax.set_facecolor("black")
    fig.subplots_adjust(left=0, right=1, top=1, bottom=0)

    hz = scene.horizon
    ax.add_patch(Circle((hz.cx, hz.cy), hz.r, facecolor="#1a253a", edgecolor="#333333", lw=2))

    ax.add_collection(
        LineCollection(list(scene.graticule), colors="white", linewidths=0.4, alpha=0.15)
    )
    segments = [line for polylines in scene.constellation_lines for line in polylines]
    ax.add_collection(
        LineCollection(segments, colors="#c9a96e", linewidths=0.8, alpha=0.6, zorder=1)
    )

    for label in scene.labels:
        if label.visible:
            ax.text(
                label.x, label.y, label.text,
                color="#c9a96e", fontsize=7, ha="center", va="center", zorder=2,
            )

    if scene.stars:
        # scatter sizes are areas in points^2; radius is in pixels.
        px_to_pt = 72 / _DPI
        ax.scatter(
            [s.x for s in scene.stars],
            [s.y for s in scene.stars],
            s=[(s.radius * 2 * px_to_pt) ** 2 for s in scene.stars],
            color="#f0e0b0",
            linewidths=0,
            zorder=3,
        )

    ax.set_xlim(0, w)
    ax.set_ylim(h, 0)
    ax.set_aspect("equal")
    ax.axis("off")

    return fig


def save_static_chart(scene: DrawableScene, output_path: Path | None = None) -> Path:
    """Save a DrawableScene as a PNG file.

    Args:
        scene: A fully computed scene.
        output_path: Destination path. Auto-generated under results/ if None.

    Returns:
        Path to the saved file.
    """
    if output_path is None:
        filename = f"skychart__lst_{scene.lst_deg % 360:06.2f}.png"
        output_path = _ROOT / "results" / filename

    output_path.parent.mkdir(parents=True, exist_ok=True)
    fig = render_static_chart(scene)
    fig.savefig(output_path, facecolor="black")
    plt.close(fig)
    return output_path
