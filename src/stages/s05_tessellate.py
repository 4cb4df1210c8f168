#!/usr/bin/env python3
"""
Stage 05: Voronoi Tessellation

Purpose: Partition the study area around the sample and aggregate elevation per cell.

This stage handles:
- Voronoi cells of the sample points, clipped to the boundary
- Mean and standard deviation of DEM cells inside each Voronoi cell
- Centroid coordinates (km) used as regression covariates

Input Files
-----------
- None (uses the outputs of stages 00-02 in memory)

Output Files
------------
- data_work/diagnostics/voronoi_cells.csv
- data_work/spatial/voronoi_cells.gpkg (with --export)

Usage
-----
    python src/pipeline.py tessellate
"""
from __future__ import annotations

import sys
import warnings
from pathlib import Path
from typing import Optional

# Add parent directory for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

import geopandas as gpd

from config import CELLS_FILE, SPATIAL_DATA_DIR, load_parameters
from spatial.core.io import save_spatial
from spatial.core.raster import Raster
from spatial.regression import add_centroid_coordinates
from spatial.tessellation import voronoi_cells, zonal_mean
from utils.helpers import print_footer, print_header, save_diagnostic
from stages._qa_utils import qa_for_stage


# ============================================================
# CONFIGURATION
# ============================================================

STAGE_NAME = 's05_tessellate'
EXPORT_FILE = 'voronoi_cells.gpkg'
VALUE_COLUMN = 'elevation'


# ============================================================
# PROCESSING
# ============================================================

def tessellate(
    points: gpd.GeoDataFrame,
    boundary: gpd.GeoDataFrame,
    dem: Raster,
) -> gpd.GeoDataFrame:
    """
    Voronoi cells with zonal elevation statistics and centroid coordinates.

    Cells that contain no valid DEM cell are dropped with a warning.
    """
    print("  Building Voronoi cells...")
    cells = voronoi_cells(points, boundary)
    print(f"    -> {len(cells)} cells")

    print("  Aggregating elevation per cell...")
    cells = zonal_mean(cells, dem, column=VALUE_COLUMN)

    empty = cells[f'{VALUE_COLUMN}_mean'].isna()
    if empty.any():
        warnings.warn(
            f"Dropped {int(empty.sum())} Voronoi cell(s) without DEM coverage.",
            UserWarning,
        )
        cells = cells.loc[~empty].reset_index(drop=True)

    return add_centroid_coordinates(cells)


# ============================================================
# MAIN ENTRY POINT
# ============================================================

def main(
    params: Optional[dict] = None,
    boundary: Optional[gpd.GeoDataFrame] = None,
    dem: Optional[Raster] = None,
    points: Optional[gpd.GeoDataFrame] = None,
    use_demo: bool = False,
    export: bool = False,
    save: bool = True,
) -> gpd.GeoDataFrame:
    """
    Execute the tessellation stage.

    Parameters
    ----------
    params : dict, optional
        Workshop parameters (default: config.load_parameters())
    boundary, dem, points : optional
        Outputs of stages 00, 01 and 02; computed when omitted
    use_demo : bool
        Force use of synthetic demo data
    export : bool
        Also write the cells as GeoPackage
    save : bool
        Write the diagnostics table

    Returns
    -------
    gpd.GeoDataFrame
        One polygon per sample point with 'elevation_mean',
        'elevation_std', 'n_raster_cells', 'easting_km', 'northing_km'
    """
    params = params or load_parameters()

    if boundary is None:
        from stages import s00_boundary
        boundary = s00_boundary.main(params, use_demo=use_demo, save=save)
    if dem is None:
        from stages import s01_elevation
        dem = s01_elevation.main(params, boundary=boundary, use_demo=use_demo, save=save)
    if points is None:
        from stages import s02_sample
        points = s02_sample.main(params, boundary=boundary, dem=dem, use_demo=use_demo, save=save)

    print_header("Stage 05: Voronoi Tessellation")

    cells = tessellate(points, boundary, dem)

    if save:
        save_diagnostic(cells, CELLS_FILE)
    if export:
        path = save_spatial(cells, SPATIAL_DATA_DIR / EXPORT_FILE)
        print(f"  Exported: {path}")

    # Summary
    areas = cells.geometry.area / 1e6
    print("\n" + "-" * 60)
    print("SUMMARY")
    print("-" * 60)
    print(f"  Cells: {len(cells)}")
    print(f"  Cell area: {areas.min():,.1f} to {areas.max():,.1f} km² (median {areas.median():,.1f})")
    print(f"  Coverage: {areas.sum():,.0f} of {boundary.geometry.area.sum() / 1e6:,.0f} km²")

    qa_for_stage(STAGE_NAME, cells, additional_metrics={
        'min_raster_cells': int(cells['n_raster_cells'].min()),
    })

    print_footer("Stage 05")

    return cells


if __name__ == '__main__':
    main()
