"""SVG 2D star chart renderer.

Turns a DrawableScene into an SVG document in screen pixels (the scene is
already projected). `render_svg_html` wraps it in a minimal page for
embedding via st.components.v1.html().

Draw order: horizon disk, graticule, constellation lines, labels, stars.
"""

from __future__ import annotations

from xml.sax.saxutils import escape

from skychart.models import DrawableScene, Polyline

_BG = "#111111"
_SKY_INNER = "#1a253a"
_SKY_OUTER = "#111111"
_HORIZON_STROKE = "#333333"
_GRATICULE_COLOR = "#ffffff"
_LINE_COLOR = "#c9a96e"
_LABEL_COLOR = "#c9a96e"
_STAR_COLOR = "#f0e0b0"


def path_data(polylines: tuple[Polyline, ...]) -> str:
    """SVG path `d` attribute for a set of polylines ("M x,y L x,y ...")."""
    parts: list[str] = []
    for line in polylines:
        if len(line) < 2:
            continue
        (x0, y0), *rest = line
        segs = " ".join(f"L{x:.2f},{y:.2f}" for x, y in rest)
        parts.append(f"M{x0:.2f},{y0:.2f} {segs}")
    return " ".join(parts)


def _defs() -> str:
    # Cosmetic only: sky gradient on the disk, glow on stars, shadow under lines.
    return (
        "<defs>"
        '<radialGradient id="sky-gradient" cx="50%" cy="50%" r="80%">'
        f'<stop offset="0%" stop-color="{_SKY_INNER}"/>'
        f'<stop offset="100%" stop-color="{_SKY_OUTER}"/>'
        "</radialGradient>"
        '<filter id="star-glow">'
        '<feGaussianBlur stdDeviation="0.3" result="coloredBlur"/>'
        '<feMerge><feMergeNode in="coloredBlur"/><feMergeNode in="SourceGraphic"/></feMerge>'
        "</filter>"
        '<filter id="line-shadow">'
        '<feDropShadow dx="3" dy="4" stdDeviation="1" flood-color="#000" flood-opacity="0.8"/>'
        "</filter>"
        "</defs>"
    )


def render_svg(scene: DrawableScene) -> str:
    """Return the scene as a standalone SVG string.

    Hidden labels are kept in the document with display="none" so a
    client-side toggle can reveal them.

    Args:
        scene: A fully computed scene.

    Returns:
        SVG XML string sized to the scene's viewport.
    """
    w, h = scene.viewport.width, scene.viewport.height
    hz = scene.horizon
    parts: list[str] = [
        f'<svg xmlns="http://www.w3.org/2000/svg" width="{w:g}" height="{h:g}"'
        f' viewBox="0 0 {w:g} {h:g}">',
        _defs(),
        f'<circle class="horizon-circle" cx="{hz.cx:.2f}" cy="{hz.cy:.2f}" r="{hz.r:.2f}"'
        f' fill="url(#sky-gradient)" stroke="{_HORIZON_STROKE}" stroke-width="4"/>',
    ]

    graticule_d = path_data(scene.graticule)
    if graticule_d:
        parts.append(
            f'<path class="graticule" d="{graticule_d}" fill="none"'
            f' stroke="{_GRATICULE_COLOR}" stroke-width="0.5" stroke-opacity="0.15"/>'
        )

    parts.append('<g class="constellations">')
    for polylines in scene.constellation_lines:
        d = path_data(polylines)
        if d:
            parts.append(
                f'<path class="constellation" d="{d}" fill="none" stroke="{_LINE_COLOR}"'
                f' stroke-width="1" stroke-opacity="0.6" filter="url(#line-shadow)"/>'
            )
    parts.append("</g>")

    parts.append('<g class="constnames">')
    for label in scene.labels:
        display = "" if label.visible else ' display="none"'
        parts.append(
            f'<text class="constname" x="{label.x:.2f}" y="{label.y:.2f}" text-anchor="middle"'
            f' fill="{_LABEL_COLOR}" font-size="11"{display}>{escape(label.text)}</text>'
        )
    parts.append("</g>")

    parts.append('<g class="stars">')
    for star in scene.stars:
        parts.append(
            f'<circle class="star" cx="{star.x:.2f}" cy="{star.y:.2f}" r="{star.radius:.2f}"'
            f' fill="{_STAR_COLOR}" filter="url(#star-glow)"/>'
        )
    parts.append("</g>")

    parts.append("</svg>")
    return "\n".join(parts)


def render_svg_html(scene: DrawableScene) -> str:
    """Return a self-contained HTML page with the SVG chart, for st.components.v1.html()."""
    return f"""<!DOCTYPE html>
<html>
<head>
<meta charset="utf-8">
<meta name="viewport" content="width=device-width, initial-scale=1">
<style>
* {{ margin: 0; padding: 0; box-sizing: border-box; }}
html, body {{
    width: 100%;
    height: 100%;
    background: {_BG};
    overflow: hidden;
}}
svg {{ display: block; max-width: 100%; height: auto; margin: 0 auto; }}
</style>
</head>
<body>
{render_svg(scene)}
</body>
</html>"""
