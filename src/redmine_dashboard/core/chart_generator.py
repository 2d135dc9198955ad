"""Matplotlib bar charts for the issue dashboard."""

from __future__ import annotations

import io
import logging
from collections.abc import Mapping, Sequence

import matplotlib  # isort: skip

matplotlib.use("Agg")

import matplotlib.pyplot as plt  # noqa: E402
from matplotlib.figure import Figure  # noqa: E402

logger = logging.getLogger(__name__)

# -- Light theme colour palette ------------------------------------------------
_LIGHT = {
    "bars": ["#4c9aff", "#36b37e", "#ffab00", "#ff5630", "#6554c0", "#00b8d9", "#97a0af"],
    "label_color": "#505f79",
    "grid": "#dfe1e6",
    "bg": "#ffffff",
    "face": "#ffffff",
    "legend_face": "#ffffff",
}

# -- Dark theme colour palette -------------------------------------------------
_DARK = {
    "bars": ["#2979ff", "#66bb6a", "#ffca28", "#ef5350", "#ab47bc", "#26c6da", "#90a4ae"],
    "label_color": "#b0bec5",
    "grid": "#37474f",
    "bg": "#1e1e1e",
    "face": "#1e1e1e",
    "legend_face": "#263238",
}


def generate_bar_chart(
    labels: Sequence[str],
    values: Sequence[float],
    *,
    title: str = "",
    dpi: int = 100,
    dark: bool = False,
) -> bytes | None:
    """Render a simple bar chart and return it as PNG bytes.

    Returns ``None`` when there is nothing to plot.
    """
    if not labels or not any(values):
        logger.debug("No data for chart %r: skipping", title)
        return None

    pal = _DARK if dark else _LIGHT
    fig, ax = _new_figure(pal, dpi)
    colours = [pal["bars"][i % len(pal["bars"])] for i in range(len(labels))]
    positions = range(len(labels))
    bars = ax.bar(positions, values, color=colours)
    ax.bar_label(bars, fontsize=7, color=pal["label_color"])
    ax.set_xticks(list(positions), [str(label) for label in labels])

    _style_axes(ax, pal, title)
    return _to_png(fig, dpi, title)


def generate_stacked_chart(
    data: Mapping[str, Mapping[str, float]],
    *,
    title: str = "",
    dpi: int = 100,
    dark: bool = False,
) -> bytes | None:
    """Render *data* (group → series → value) as stacked bars.

    Returns ``None`` when there is nothing to plot.
    """
    if not data or not any(v for series in data.values() for v in series.values()):
        logger.debug("No data for stacked chart %r: skipping", title)
        return None

    pal = _DARK if dark else _LIGHT
    groups = list(data)
    series_names = sorted({name for series in data.values() for name in series})

    fig, ax = _new_figure(pal, dpi)
    positions = list(range(len(groups)))
    bottoms = [0.0] * len(groups)
    for i, name in enumerate(series_names):
        heights = [float(data[g].get(name, 0)) for g in groups]
        ax.bar(
            positions, heights, bottom=bottoms,
            color=pal["bars"][i % len(pal["bars"])], label=name,
        )
        bottoms = [b + h for b, h in zip(bottoms, heights)]
    ax.set_xticks(positions, groups)

    legend = ax.legend(fontsize=6, loc="upper right", framealpha=0.9, facecolor=pal["legend_face"])
    for text in legend.get_texts():
        text.set_color(pal["label_color"])

    _style_axes(ax, pal, title)
    return _to_png(fig, dpi, title)


# -- helpers ------------------------------------------------------------------


def _new_figure(pal: dict, dpi: int) -> tuple[Figure, plt.Axes]:
    fig, ax = plt.subplots(figsize=(5.0, 3.2), dpi=dpi)
    fig.patch.set_facecolor(pal["face"])
    ax.set_facecolor(pal["bg"])
    return fig, ax


def _style_axes(ax: plt.Axes, pal: dict, title: str) -> None:
    if title:
        ax.set_title(title, fontsize=9, color=pal["label_color"])
    ax.tick_params(labelsize=7, colors=pal["label_color"])
    ax.tick_params(axis="x", labelrotation=30)
    ax.set_ylim(bottom=0)
    for spine in ax.spines.values():
        spine.set_color(pal["grid"])
    ax.grid(axis="y", linewidth=0.3, color=pal["grid"])
    ax.set_axisbelow(True)


def _to_png(fig: Figure, dpi: int, title: str) -> bytes:
    fig.tight_layout()
    buf = io.BytesIO()
    fig.savefig(
        buf, format="png", dpi=dpi, bbox_inches="tight",
        facecolor=fig.get_facecolor(), edgecolor="none",
    )
    plt.close(fig)
    data = buf.getvalue()
    logger.debug("Chart %r rendered: %d bytes", title, len(data))
    return data
