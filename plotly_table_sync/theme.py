"""Base visual theme for synchronized charts.

:class:`ChartTheme` is an immutable bundle of the colors a chart model
needs to build its default layout. Models receive a theme through their
constructor; :data:`DEFAULT_THEME` is the value callers pass when they have
no preference.

Examples
--------
>>> layout = make_default_layout(DEFAULT_THEME)
>>> layout["colorway"][0] == DEFAULT_THEME.colorway[0]
True
>>> ChartTheme.from_plotly_template("plotly_white").plot_bgcolor  # doctest: +SKIP
'white'
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Dict

import plotly.colors
import plotly.io as pio


def _qualitative(name: str) -> tuple[str, ...]:
    return tuple(getattr(plotly.colors.qualitative, name))


@dataclass(frozen=True)
class ChartTheme:
    """Colors and fonts for the base chart layout.

    Parameters
    ----------
    paper_bgcolor, plot_bgcolor : str
        Outer and plotting-area backgrounds.
    title_color : str
        Title, legend and tick label color.
    colorway : tuple[str, ...]
        Trace colors cycled by position.
    gridcolor, linecolor, zerolinecolor : str
        Axis decoration colors.
    font_family : str
        Font family applied to the whole layout.
    """

    paper_bgcolor: str = "#2d2a2e"
    plot_bgcolor: str = "#1a171a"
    title_color: str = "#f0f0ee"
    colorway: tuple[str, ...] = field(default_factory=lambda: _qualitative("Plotly"))
    gridcolor: str = "#403e41"
    linecolor: str = "#5b5a5c"
    zerolinecolor: str = "#929192"
    font_family: str = "'Fira Sans', sans-serif"

    def __post_init__(self) -> None:
        """Freeze the colorway as a tuple and reject an empty one."""
        object.__setattr__(self, "colorway", tuple(self.colorway))
        if not self.colorway:
            raise ValueError("ChartTheme.colorway must contain at least one color")

    def with_colorway(self, colorway: Any) -> "ChartTheme":
        return replace(self, colorway=tuple(colorway))

    @classmethod
    def from_plotly_template(cls, name: str = "plotly") -> "ChartTheme":
        """Build a theme from a registered ``plotly.io.templates`` entry.

        Fields the template leaves unset keep the :class:`ChartTheme`
        defaults.
        """
        if name not in pio.templates:
            raise ValueError(f"Unknown plotly template: {name!r}")
        layout = pio.templates[name].layout
        defaults = cls()
        xaxis = layout.xaxis
        return cls(
            paper_bgcolor=layout.paper_bgcolor or defaults.paper_bgcolor,
            plot_bgcolor=layout.plot_bgcolor or defaults.plot_bgcolor,
            title_color=layout.font.color or defaults.title_color,
            colorway=tuple(layout.colorway or defaults.colorway),
            gridcolor=xaxis.gridcolor or defaults.gridcolor,
            linecolor=xaxis.linecolor or defaults.linecolor,
            zerolinecolor=xaxis.zerolinecolor or defaults.zerolinecolor,
        )


DEFAULT_THEME = ChartTheme()


def _axis(theme: ChartTheme) -> Dict[str, Any]:
    return {
        "automargin": True,
        "gridcolor": theme.gridcolor,
        "linecolor": theme.linecolor,
        "zerolinecolor": theme.zerolinecolor,
        "tickfont": {"color": theme.title_color},
        "title": {"font": {"color": theme.title_color}},
    }


def make_default_layout(theme: ChartTheme = DEFAULT_THEME) -> Dict[str, Any]:
    """Return a fresh Plotly layout dict styled by ``theme``.

    A new dict is built on every call; callers may mutate it freely.
    """
    return {
        "autosize": True,
        "colorway": list(theme.colorway),
        "font": {"family": theme.font_family, "color": theme.title_color},
        "title": {"font": {"color": theme.title_color}, "x": 0.5, "xanchor": "center"},
        "legend": {"font": {"color": theme.title_color}},
        "paper_bgcolor": theme.paper_bgcolor,
        "plot_bgcolor": theme.plot_bgcolor,
        "margin": {"l": 60, "r": 50, "t": 30, "b": 60, "pad": 0},
        "xaxis": _axis(theme),
        "yaxis": _axis(theme),
    }


__all__ = ["ChartTheme", "DEFAULT_THEME", "make_default_layout"]
