#!/usr/bin/env python3
"""
Figure styling for the workshop tutorial.

This module sets matplotlib defaults to match the Quarto document and
provides small helpers for drawing rasters and boundaries on map axes.
Import it at the start of any script that generates tutorial figures.

Usage
-----
from utils.figure_style import apply_style, plot_raster
apply_style()
"""
from __future__ import annotations

from pathlib import Path
from typing import Optional, Sequence

import numpy as np
import matplotlib.pyplot as plt

# Style parameters matching the tutorial document
FONT_FAMILY = 'serif'
FONT_SIZE = 10
TITLE_SIZE = 11
LABEL_SIZE = 10
TICK_SIZE = 9
LEGEND_SIZE = 9

# Figure dimensions (inches)
FIG_WIDTH_SINGLE = 6.5
FIG_HEIGHT_SINGLE = 4.5

FIG_WIDTH_DOUBLE = 10.0
FIG_HEIGHT_DOUBLE = 4.5

# DPI for saved figures
DPI = 300

# Colormaps by quantity
ELEVATION_CMAP = 'terrain'
VARIANCE_CMAP = 'magma'
DIVERGING_CMAP = 'RdBu_r'

PALETTES = {
    'default': ['#1f77b4', '#ff7f0e', '#2ca02c', '#d62728', '#9467bd', '#8c564b'],
    'models': ['#4c72b0', '#dd8452'],
    'observed_expected': ['#222222', '#c44e52'],
}


def apply_style(style: str = 'tutorial'):
    """
    Apply consistent figure styling.

    Parameters
    ----------
    style : str
        'tutorial' (default) or 'map'. Map style turns off the grid and
        keeps equal-aspect axes free of spines.
    """
    plt.rcParams.update({
        # Font settings
        'font.family': FONT_FAMILY,
        'font.size': FONT_SIZE,

        # Title and labels
        'axes.titlesize': TITLE_SIZE,
        'axes.labelsize': LABEL_SIZE,

        # Ticks
        'xtick.labelsize': TICK_SIZE,
        'ytick.labelsize': TICK_SIZE,

        # Legend
        'legend.fontsize': LEGEND_SIZE,
        'legend.framealpha': 0.9,

        # Figure size (default)
        'figure.figsize': (FIG_WIDTH_SINGLE, FIG_HEIGHT_SINGLE),
        'figure.dpi': 100,
        'savefig.dpi': DPI,

        # Grid
        'axes.grid': style != 'map',
        'grid.alpha': 0.3,

        # Spines
        'axes.spines.top': False,
        'axes.spines.right': False,

        # Layout
        'figure.constrained_layout.use': True,
    })


def get_color_palette(name: str = 'default') -> list[str]:
    """Named list of colours; unknown names fall back to 'default'."""
    return list(PALETTES.get(name, PALETTES['default']))


def save_figure(
    fig,
    output_path: Path,
    formats: Sequence[str] = ('png',),
) -> list[Path]:
    """
    Save a figure in one or more formats.

    ``output_path`` is taken without extension; one file per format is
    written next to it.
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    paths = []
    for fmt in formats:
        path = output_path.with_suffix(f'.{fmt}')
        fig.savefig(path, bbox_inches='tight')
        paths.append(path)
    return paths


def annotate_panel(ax, label: str) -> None:
    """Write a panel letter, e.g. '(a)', in the top-left corner."""
    ax.text(
        0.02, 0.98, label, transform=ax.transAxes,
        fontsize=TITLE_SIZE, fontweight='bold', va='top', ha='left',
    )


def plot_raster(
    ax,
    raster,
    band: int = 1,
    cmap: str = ELEVATION_CMAP,
    label: Optional[str] = None,
    vmin: Optional[float] = None,
    vmax: Optional[float] = None,
):
    """
    Draw one band of a Raster in map coordinates with a colorbar.

    Masked cells (nodata, NaN) are left transparent.
    """
    west, south, east, north = raster.bounds
    data = raster.band(band)

    image = ax.imshow(
        data,
        extent=(west, east, south, north),
        origin='upper',
        cmap=cmap,
        vmin=vmin,
        vmax=vmax,
        interpolation='nearest',
    )
    colorbar = ax.figure.colorbar(image, ax=ax, shrink=0.8)
    if label:
        colorbar.set_label(label)
    ax.set_aspect('equal')
    return image


def plot_boundary(ax, boundary, color: str = 'black', linewidth: float = 0.8) -> None:
    """Outline polygons without fill."""
    boundary.boundary.plot(ax=ax, color=color, linewidth=linewidth)


def map_axes(ax, title: Optional[str] = None) -> None:
    """Finish a map panel: equal aspect, km tick labels, optional title."""
    ax.set_aspect('equal')
    ax.xaxis.set_major_formatter(plt.FuncFormatter(lambda v, _: f'{v / 1000:.0f}'))
    ax.yaxis.set_major_formatter(plt.FuncFormatter(lambda v, _: f'{v / 1000:.0f}'))
    ax.set_xlabel('Easting (km)')
    ax.set_ylabel('Northing (km)')
    if title:
        ax.set_title(title)


def robust_limits(values, lower: float = 2.0, upper: float = 98.0) -> tuple[float, float]:
    """Percentile colour limits that ignore masked and NaN cells."""
    data = np.ma.masked_invalid(values).compressed()
    if data.size == 0:
        return 0.0, 1.0
    return float(np.percentile(data, lower)), float(np.percentile(data, upper))
