#!/usr/bin/env python3
"""
Stage 02: Point Sample

Purpose: Draw the seeded point sample and attach elevation values.

This stage handles:
- Sampling points inside the boundary (random or regular design)
- Extracting the DEM value at each point
- Dropping points that fall on empty DEM cells (with a warning)

Input Files
-----------
- None (uses the outputs of stages 00 and 01 in memory)

Output Files
------------
- data_work/diagnostics/samples.csv
- data_work/spatial/samples.gpkg (with --export)

Usage
-----
    python src/pipeline.py sample_points
"""
from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional

# Add parent directory for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

import pandas as pd
import geopandas as gpd

from config import SAMPLES_FILE, SPATIAL_DATA_DIR, load_parameters
from spatial.core.io import save_spatial
from spatial.core.raster import Raster
from spatial.sampling import extract_values, sample_points
from utils.helpers import print_footer, print_header, save_diagnostic
from stages._qa_utils import qa_for_stage


# ============================================================
# CONFIGURATION
# ============================================================

STAGE_NAME = 's02_sample'
EXPORT_FILE = 'samples.gpkg'
VALUE_COLUMN = 'elevation'


# ============================================================
# PROCESSING
# ============================================================

def draw_sample(
    boundary: gpd.GeoDataFrame,
    dem: Raster,
    n: int,
    method: str,
    seed: int,
) -> gpd.GeoDataFrame:
    """Sample points in the boundary and attach DEM values."""
    print(f"  Drawing {n} {method} points (seed={seed})...")
    points = sample_points(boundary, n, method=method, seed=seed)
    print(f"    -> {len(points)} points")

    print("  Extracting elevation...")
    points = extract_values(points, dem, column=VALUE_COLUMN)
    print(f"    -> {len(points)} points with a value")

    return points


def samples_table(points: gpd.GeoDataFrame) -> pd.DataFrame:
    """Sample ids, coordinates and values without geometry."""
    table = pd.DataFrame(points.drop(columns=points.geometry.name))
    table.insert(1, 'x', points.geometry.x.to_numpy())
    table.insert(2, 'y', points.geometry.y.to_numpy())
    return table


# ============================================================
# MAIN ENTRY POINT
# ============================================================

def main(
    params: Optional[dict] = None,
    boundary: Optional[gpd.GeoDataFrame] = None,
    dem: Optional[Raster] = None,
    use_demo: bool = False,
    export: bool = False,
    save: bool = True,
) -> gpd.GeoDataFrame:
    """
    Execute the sampling stage.

    Parameters
    ----------
    params : dict, optional
        Workshop parameters (default: config.load_parameters())
    boundary : gpd.GeoDataFrame, optional
        Output of stage 00; computed when omitted
    dem : Raster, optional
        Output of stage 01; computed when omitted
    use_demo : bool
        Force use of synthetic demo data
    export : bool
        Also write the samples as GeoPackage
    save : bool
        Write the diagnostics table

    Returns
    -------
    gpd.GeoDataFrame
        Sample points with 'sample_id' and 'elevation'
    """
    params = params or load_parameters()

    if boundary is None:
        from stages import s00_boundary
        boundary = s00_boundary.main(params, use_demo=use_demo, save=save)
    if dem is None:
        from stages import s01_elevation
        dem = s01_elevation.main(params, boundary=boundary, use_demo=use_demo, save=save)

    print_header("Stage 02: Point Sample")

    points = draw_sample(
        boundary, dem,
        n=int(params['sample_size']),
        method=params['sampling_method'],
        seed=params['random_seed'],
    )

    if save:
        save_diagnostic(samples_table(points), SAMPLES_FILE)
    if export:
        path = save_spatial(points, SPATIAL_DATA_DIR / EXPORT_FILE)
        print(f"  Exported: {path}")

    # Summary
    values = points[VALUE_COLUMN]
    print("\n" + "-" * 60)
    print("SUMMARY")
    print("-" * 60)
    print(f"  Points: {len(points)}")
    print(f"  Elevation: {values.min():,.0f} to {values.max():,.0f} m")
    print(f"  Mean (sd): {values.mean():,.0f} ({values.std():,.0f}) m")

    qa_for_stage(STAGE_NAME, points, additional_metrics={
        'requested': int(params['sample_size']),
        'seed': params['random_seed'],
        'method': params['sampling_method'],
    })

    print_footer("Stage 02")

    return points


if __name__ == '__main__':
    main()
