#!/usr/bin/env python3
"""
Stage 01: Elevation Raster

Purpose: Load the DEM, crop it to the study area and warp it to the working CRS.

This stage handles:
- Reading a GeoTIFF DEM (or generating a synthetic one)
- Masking cells outside the boundary and cropping to its extent
- Warping to the projected CRS at a fixed cell size
- Summarising the elevation values

Input Files
-----------
- data_raw/elevation.tif
- OR synthetic DEM if no raw data exists

Output Files
------------
- data_work/diagnostics/elevation_summary.csv
- data_work/spatial/elevation.tif (with --export)

Usage
-----
    python src/pipeline.py load_elevation
"""
from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional

# Add parent directory for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

import pandas as pd
import geopandas as gpd

from config import (
    DEM_RESAMPLING,
    DEM_RESOLUTION,
    ELEVATION_FILE,
    ELEVATION_SUMMARY_FILE,
    RANDOM_SEED,
    SPATIAL_DATA_DIR,
    load_parameters,
)
from spatial.core.raster import Raster, crop_raster, read_raster, warp_raster, write_raster
from utils.helpers import print_footer, print_header, save_diagnostic
from stages._qa_utils import qa_for_raster


# ============================================================
# CONFIGURATION
# ============================================================

STAGE_NAME = 's01_elevation'
EXPORT_FILE = 'elevation.tif'


# ============================================================
# DATA LOADING
# ============================================================

def load_dem(use_demo: bool = False) -> Raster:
    """Read the raw DEM, or generate the synthetic one."""
    if not use_demo and ELEVATION_FILE.exists():
        print(f"  Loading: {ELEVATION_FILE}")
        return read_raster(ELEVATION_FILE)

    if not use_demo:
        print(f"\n  No raw elevation file found: {ELEVATION_FILE}")
    print("  Generating synthetic demo DEM...")

    from utils.synthetic_data import SyntheticDataGenerator

    return SyntheticDataGenerator(seed=RANDOM_SEED).generate_dem()


# ============================================================
# PROCESSING
# ============================================================

def prepare_dem(
    dem: Raster,
    boundary: gpd.GeoDataFrame,
    target_crs: str,
    resolution: float = DEM_RESOLUTION,
    resampling: str = DEM_RESAMPLING,
) -> Raster:
    """
    Crop, warp and re-mask a DEM to the boundary in ``target_crs``.

    The first crop keeps every touched cell so that the warp has support
    along the border; the second crop masks the warped grid exactly.
    """
    print("  Cropping to boundary...")
    cropped = crop_raster(dem, boundary, crop=True, all_touched=True)
    print(f"    -> {dem.shape} -> {cropped.shape}")

    print(f"  Warping to {target_crs} at {resolution:g} m ({resampling})...")
    warped = warp_raster(cropped, target_crs, resolution=resolution, resampling=resampling)

    masked = crop_raster(warped, boundary, crop=True)
    print(f"    -> {masked.shape}")
    return masked


def summarize_dem(dem: Raster) -> pd.DataFrame:
    """One-row table of grid size and elevation statistics."""
    summary = dem.summary(1)
    return pd.DataFrame([{
        'crs': dem.crs.to_string(),
        'res_x': dem.res[0],
        'res_y': dem.res[1],
        'height': dem.height,
        'width': dem.width,
        **summary,
    }])


# ============================================================
# MAIN ENTRY POINT
# ============================================================

def main(
    params: Optional[dict] = None,
    boundary: Optional[gpd.GeoDataFrame] = None,
    use_demo: bool = False,
    export: bool = False,
    save: bool = True,
) -> Raster:
    """
    Execute the elevation stage.

    Parameters
    ----------
    params : dict, optional
        Workshop parameters (default: config.load_parameters())
    boundary : gpd.GeoDataFrame, optional
        Output of stage 00; computed when omitted
    use_demo : bool
        Force use of synthetic demo data
    export : bool
        Also write the processed DEM as GeoTIFF
    save : bool
        Write the diagnostics table

    Returns
    -------
    Raster
        Elevation in the projected CRS, NaN outside the boundary
    """
    params = params or load_parameters()

    if boundary is None:
        from stages import s00_boundary
        boundary = s00_boundary.main(params, use_demo=use_demo, save=save)

    print_header("Stage 01: Elevation Raster")

    dem = load_dem(use_demo)
    print(f"    -> {dem}")

    dem = prepare_dem(dem, boundary, params['projected_crs'])
    table = summarize_dem(dem)

    if save:
        save_diagnostic(table, ELEVATION_SUMMARY_FILE)
    if export:
        path = write_raster(dem, SPATIAL_DATA_DIR / EXPORT_FILE)
        print(f"  Exported: {path}")

    # Summary
    row = table.iloc[0]
    print("\n" + "-" * 60)
    print("SUMMARY")
    print("-" * 60)
    print(f"  Grid: {dem.height} x {dem.width} cells at {dem.res[0]:g} m")
    print(f"  Valid cells: {row['n_valid']:,}")
    print(f"  Elevation: {row['min']:,.0f} to {row['max']:,.0f} m (mean {row['mean']:,.0f} m)")

    qa_for_raster(STAGE_NAME, dem)

    print_footer("Stage 01")

    return dem


if __name__ == '__main__':
    main()
