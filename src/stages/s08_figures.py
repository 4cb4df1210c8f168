#!/usr/bin/env python3
"""
Stage 08: Figure Generation

Purpose: Generate the tutorial figures and an interactive map.

This stage handles:
- Study area map (DEM, boundary, sample points)
- Empirical and fitted variogram
- IDW vs. kriging surfaces and kriging variance
- G function against complete spatial randomness
- Voronoi cells coloured by mean elevation
- Moran scatterplot of cell elevation
- Interactive HTML map of the Voronoi cells (folium via GeoDataFrame.explore)

Input Files
-----------
- None (uses the outputs of stages 00-06 in memory)

Output Files
------------
- manuscript_quarto/figures/*.png
- manuscript_quarto/figures/map_voronoi.html

Usage
-----
    python src/pipeline.py make_figures
"""
from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional

# Add parent directory for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

import numpy as np
import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt
import geopandas as gpd
from libpysal.weights import W, lag_spatial

from config import G_FUNCTION_STEPS, REGRESSION_Y, WEIGHTS_TRANSFORM, load_parameters
from spatial.core.raster import Raster
from spatial.point_pattern import g_function
from spatial.weights import contiguity_weights
from utils.figure_style import (
    DIVERGING_CMAP,
    ELEVATION_CMAP,
    FIG_HEIGHT_DOUBLE,
    FIG_WIDTH_DOUBLE,
    VARIANCE_CMAP,
    annotate_panel,
    apply_style,
    get_color_palette,
    map_axes,
    plot_boundary,
    plot_raster,
    robust_limits,
    save_figure,
)
from utils.helpers import ensure_dir, get_figures_dir, print_footer, print_header
from stages._qa_utils import QAMetrics, generate_qa_report


# ============================================================
# CONFIGURATION
# ============================================================

STAGE_NAME = 's08_figures'
INTERACTIVE_MAP = 'map_voronoi.html'


# ============================================================
# FIGURE FUNCTIONS
# ============================================================

def plot_study_area(
    boundary: gpd.GeoDataFrame,
    dem: Raster,
    points: gpd.GeoDataFrame,
    output_path: Path,
) -> Path:
    """DEM with boundary outline and sample locations."""
    fig, ax = plt.subplots()

    plot_raster(ax, dem, cmap=ELEVATION_CMAP, label='Elevation (m)')
    plot_boundary(ax, boundary)
    points.plot(ax=ax, color='black', markersize=6)
    map_axes(ax, f'Study area and {len(points)} sample points')

    paths = save_figure(fig, output_path)
    plt.close(fig)
    return paths[0]


def plot_variogram(interpolation, output_path: Path) -> Path:
    """Empirical semivariance with the fitted model curve."""
    table = interpolation.variogram_table()
    model = interpolation.variogram
    colors = get_color_palette('observed_expected')

    fig, ax = plt.subplots()

    lags_km = table['lag'] / 1000
    ax.scatter(lags_km, table['gamma'], s=12 + table['n_pairs'] / table['n_pairs'].max() * 60,
               color=colors[0], label='Empirical', zorder=3)

    d = np.linspace(0, table['lag'].max() * 1.05, 200)
    ax.plot(d / 1000, model(d), color=colors[1], label=f'{model.model.title()} model')
    ax.axhline(model.sill, color='grey', linestyle='--', linewidth=0.8, label='Sill')
    ax.axvline(model.range / 1000, color='grey', linestyle=':', linewidth=0.8, label='Range')

    ax.set_xlabel('Lag distance (km)')
    ax.set_ylabel('Semivariance (m²)')
    ax.set_title('Variogram of sampled elevation')
    ax.set_xlim(left=0)
    ax.set_ylim(bottom=0)
    ax.legend(loc='lower right')

    paths = save_figure(fig, output_path)
    plt.close(fig)
    return paths[0]


def plot_interpolation(
    interpolation,
    boundary: gpd.GeoDataFrame,
    points: gpd.GeoDataFrame,
    output_path: Path,
) -> Path:
    """IDW, kriging, their difference and the kriging variance."""
    fig, axes = plt.subplots(2, 2, figsize=(FIG_WIDTH_DOUBLE, FIG_HEIGHT_DOUBLE * 1.6))

    vmin, vmax = robust_limits(np.concatenate([
        interpolation.idw.band(1).compressed(), interpolation.kriging.band(1).compressed(),
    ]))
    diff = interpolation.difference()
    bound = max(abs(v) for v in robust_limits(diff.band(1)))

    panels = [
        (interpolation.idw, ELEVATION_CMAP, 'Elevation (m)', 'IDW', (vmin, vmax)),
        (interpolation.kriging, ELEVATION_CMAP, 'Elevation (m)', 'Ordinary kriging', (vmin, vmax)),
        (diff, DIVERGING_CMAP, 'Difference (m)', 'Kriging - IDW', (-bound, bound)),
        (interpolation.kriging_variance, VARIANCE_CMAP, 'Variance (m²)', 'Kriging variance', (None, None)),
    ]

    for ax, (raster, cmap, label, title, (lo, hi)), letter in zip(axes.flat, panels, 'abcd'):
        plot_raster(ax, raster, cmap=cmap, label=label, vmin=lo, vmax=hi)
        plot_boundary(ax, boundary)
        map_axes(ax, title)
        annotate_panel(ax, f'({letter})')

    points.plot(ax=axes.flat[3], color='white', edgecolor='black', markersize=5, linewidth=0.3)

    paths = save_figure(fig, output_path)
    plt.close(fig)
    return paths[0]


def plot_g_function(
    points: gpd.GeoDataFrame,
    boundary: gpd.GeoDataFrame,
    output_path: Path,
) -> Path:
    """Observed G(r) against the CSR expectation."""
    area = float(boundary.to_crs(points.crs).geometry.union_all().area)
    curve = g_function(points, area, steps=G_FUNCTION_STEPS)
    colors = get_color_palette('observed_expected')

    fig, ax = plt.subplots()
    ax.step(curve['r'] / 1000, curve['g_observed'], where='post', color=colors[0], label='Observed')
    ax.plot(curve['r'] / 1000, curve['g_csr'], color=colors[1], linestyle='--', label='CSR')
    ax.set_xlabel('Distance r (km)')
    ax.set_ylabel('G(r)')
    ax.set_title('Nearest-neighbour distance function')
    ax.set_ylim(0, 1.02)
    ax.legend(loc='lower right')

    paths = save_figure(fig, output_path)
    plt.close(fig)
    return paths[0]


def plot_voronoi(
    cells: gpd.GeoDataFrame,
    points: gpd.GeoDataFrame,
    output_path: Path,
) -> Path:
    """Voronoi cells coloured by mean DEM elevation."""
    fig, ax = plt.subplots()

    cells.plot(
        ax=ax, column=REGRESSION_Y, cmap=ELEVATION_CMAP, edgecolor='white', linewidth=0.3,
        legend=True, legend_kwds={'label': 'Mean elevation (m)', 'shrink': 0.8},
    )
    points.plot(ax=ax, color='black', markersize=3)
    map_axes(ax, f'Voronoi cells (n={len(cells)})')

    paths = save_figure(fig, output_path)
    plt.close(fig)
    return paths[0]


def plot_moran_scatter(
    cells: gpd.GeoDataFrame,
    w: W,
    output_path: Path,
) -> Path:
    """Standardised values against their spatial lag; slope = Moran's I."""
    y = cells[REGRESSION_Y].to_numpy(dtype='float64')
    z = (y - y.mean()) / y.std()
    lag = lag_spatial(w, z)
    slope = float(np.polyfit(z, lag, 1)[0])
    colors = get_color_palette('default')

    fig, ax = plt.subplots()
    ax.scatter(z, lag, s=10, color=colors[0], alpha=0.7)
    x = np.array([z.min(), z.max()])
    ax.plot(x, slope * x, color=colors[3], label=f'slope = {slope:.3f}')
    ax.axhline(0, color='black', linewidth=0.5)
    ax.axvline(0, color='black', linewidth=0.5)
    ax.set_xlabel('Mean elevation (standardised)')
    ax.set_ylabel('Spatial lag')
    ax.set_title("Moran scatterplot")
    ax.legend(loc='upper left')

    paths = save_figure(fig, output_path)
    plt.close(fig)
    return paths[0]


def write_interactive_map(cells: gpd.GeoDataFrame, output_path: Path) -> Path:
    """Leaflet map of the cells with a tooltip per cell."""
    columns = ['cell_id', 'sample_id', 'elevation', REGRESSION_Y, 'n_raster_cells']
    fmap = cells.explore(
        column=REGRESSION_Y,
        cmap=ELEVATION_CMAP,
        tooltip=[c for c in columns if c in cells.columns],
        style_kwds={'weight': 0.5, 'color': 'white', 'fillOpacity': 0.7},
    )
    fmap.save(str(output_path))
    return output_path


# ============================================================
# MAIN ENTRY POINT
# ============================================================

def main(
    params: Optional[dict] = None,
    boundary: Optional[gpd.GeoDataFrame] = None,
    dem: Optional[Raster] = None,
    points: Optional[gpd.GeoDataFrame] = None,
    interpolation=None,
    cells: Optional[gpd.GeoDataFrame] = None,
    w: Optional[W] = None,
    figures: Optional[list[str]] = None,
    use_demo: bool = False,
    verbose: bool = True,
) -> list[Path]:
    """
    Execute figure generation.

    Parameters
    ----------
    params : dict, optional
        Workshop parameters (default: config.load_parameters())
    boundary, dem, points, interpolation, cells, w : optional
        Outputs of earlier stages; computed when omitted
    figures : list, optional
        Specific figures to generate (default: all)
    use_demo : bool
        Force use of synthetic demo data
    verbose : bool
        Print detailed output

    Returns
    -------
    list[Path]
        Paths of the written files
    """
    params = params or load_parameters()

    if boundary is None:
        from stages import s00_boundary
        boundary = s00_boundary.main(params, use_demo=use_demo)
    if dem is None:
        from stages import s01_elevation
        dem = s01_elevation.main(params, boundary=boundary, use_demo=use_demo)
    if points is None:
        from stages import s02_sample
        points = s02_sample.main(params, boundary=boundary, dem=dem, use_demo=use_demo)
    if interpolation is None:
        from stages import s03_interpolate
        interpolation = s03_interpolate.main(params, boundary=boundary, points=points)
    if cells is None:
        from stages import s05_tessellate
        cells = s05_tessellate.main(params, boundary=boundary, dem=dem, points=points)
    if w is None:
        w = contiguity_weights(cells, kind=params['contiguity'], transform=WEIGHTS_TRANSFORM)

    print_header("Stage 08: Figure Generation")

    fig_dir = ensure_dir(get_figures_dir())
    apply_style()

    all_figures = {
        'study_area': lambda: plot_study_area(boundary, dem, points, fig_dir / 'fig_study_area'),
        'variogram': lambda: plot_variogram(interpolation, fig_dir / 'fig_variogram'),
        'interpolation': lambda: plot_interpolation(interpolation, boundary, points, fig_dir / 'fig_interpolation'),
        'g_function': lambda: plot_g_function(points, boundary, fig_dir / 'fig_g_function'),
        'voronoi': lambda: plot_voronoi(cells, points, fig_dir / 'fig_voronoi'),
        'moran': lambda: plot_moran_scatter(cells, w, fig_dir / 'fig_moran_scatter'),
        'interactive': lambda: write_interactive_map(cells, fig_dir / INTERACTIVE_MAP),
    }

    if figures:
        unknown = sorted(set(figures) - set(all_figures))
        if unknown:
            raise ValueError(f"Unknown figure(s): {', '.join(unknown)}. Options: {', '.join(all_figures)}")
        figures_to_make = {k: v for k, v in all_figures.items() if k in figures}
    else:
        figures_to_make = all_figures

    generated = []
    print(f"\n  Generating {len(figures_to_make)} figures...")

    for name, func in figures_to_make.items():
        print(f"\n  Creating: {name}")
        path = func()
        generated.append(path)
        print(f"    -> {path}")

    # Summary
    print("\n" + "-" * 60)
    print("FIGURE SUMMARY")
    print("-" * 60)
    print(f"  Generated: {len(generated)} files")
    print(f"  Output directory: {fig_dir}")

    if verbose and generated:
        print("\n  Files:")
        for path in generated:
            print(f"    - {path.name}")

    metrics = QAMetrics()
    metrics.add('n_figures_generated', len(generated))
    metrics.add('output_dir', str(fig_dir))
    total_size = sum(p.stat().st_size for p in generated if p.exists())
    metrics.add('total_size_kb', round(total_size / 1024, 1))
    generate_qa_report(STAGE_NAME, metrics)

    print_footer("Stage 08")

    return generated


if __name__ == '__main__':
    main()
