"""Theme template merge and positional colorway remapping.

Purpose
-------
Figures arrive with whatever template their author rendered them with. The
chart model replaces that template with its own base theme layout and, when
the author chose a template explicitly, keeps only the author's colorway.

Trace colors baked into the figure refer to the author's colorway by value.
:func:`apply_colorway_to_data` rewrites them by *position*: a trace drawn in
the second color of the old colorway is redrawn in the second color of the
new one, so traces keep cycling consistently after the substitution.

Examples
--------
>>> data = [{"marker": {"color": "blue"}}]
>>> apply_colorway_to_data(["#111", "#222"], ["red", "blue"], data)
>>> data[0]["marker"]["color"]
'#222'
"""

from __future__ import annotations

from collections.abc import MutableMapping, Sequence
from typing import Any, Dict, List, Optional

from .theme import ChartTheme, make_default_layout

DEFAULT_COLOR_PATHS: tuple[tuple[str, ...], ...] = (
    ("marker", "color"),
    ("marker", "line", "color"),
    ("line", "color"),
    ("fillcolor",),
)


def declared_colorway(layout: Optional[MutableMapping[str, Any]]) -> List[str]:
    """Return ``layout.template.layout.colorway`` or an empty list."""
    template = (layout or {}).get("template")
    # A template may also be given by name ("plotly_dark"); that has no colorway here.
    if not isinstance(template, MutableMapping):
        return []
    template_layout = template.get("layout")
    if not isinstance(template_layout, MutableMapping):
        return []
    return list(template_layout.get("colorway") or [])


def build_template(
    theme: ChartTheme,
    plotly_layout: Optional[MutableMapping[str, Any]],
    *,
    is_user_set_template: bool,
) -> Dict[str, Any]:
    """Return the effective ``layout.template`` for a figure.

    Starts from a fresh :func:`make_default_layout`. When the figure author
    set a template explicitly, only its colorway replaces the base colorway;
    every other base field is kept.
    """
    template_layout = make_default_layout(theme)
    if is_user_set_template:
        colorway = declared_colorway(plotly_layout)
        if colorway:
            template_layout["colorway"] = colorway
    return {"layout": template_layout}


def _remap(value: Any, color_map: Dict[str, str]) -> Any:
    if isinstance(value, str):
        return color_map.get(value.upper(), value)
    if isinstance(value, list):
        return [_remap(item, color_map) for item in value]
    return value


def _remap_path(trace: MutableMapping[str, Any], path: Sequence[str], color_map: Dict[str, str]) -> None:
    node: Any = trace
    for key in path[:-1]:
        node = node.get(key) if isinstance(node, MutableMapping) else None
        if node is None:
            return
    if isinstance(node, MutableMapping) and path[-1] in node:
        node[path[-1]] = _remap(node[path[-1]], color_map)


def apply_colorway_to_data(
    colorway: Sequence[str],
    plotly_colorway: Sequence[str],
    data: Sequence[MutableMapping[str, Any]],
    *,
    color_paths: Sequence[Sequence[str]] = DEFAULT_COLOR_PATHS,
) -> None:
    """Rewrite trace colors from ``plotly_colorway`` positions to ``colorway``.

    Parameters
    ----------
    colorway : Sequence[str]
        Effective colorway. Shorter colorways wrap around.
    plotly_colorway : Sequence[str]
        Colorway the figure was rendered with. Matching is case-insensitive.
    data : Sequence[dict]
        Trace dicts, modified in place.
    color_paths : Sequence[Sequence[str]], optional
        Nested trace fields holding colors.
    """
    if not colorway or not plotly_colorway:
        return
    color_map: Dict[str, str] = {}
    for index, color in enumerate(plotly_colorway):
        # First occurrence wins when the old colorway repeats a color.
        color_map.setdefault(str(color).upper(), colorway[index % len(colorway)])
    for trace in data:
        if not isinstance(trace, MutableMapping):
            continue
        for path in color_paths:
            _remap_path(trace, path, color_map)


__all__ = [
    "DEFAULT_COLOR_PATHS",
    "apply_colorway_to_data",
    "build_template",
    "declared_colorway",
]
