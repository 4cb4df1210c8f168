#!/usr/bin/env python3
"""
Stage 00: Study Area Boundary

Purpose: Load the country polygon by attribute filter and compare CRSs.

This stage handles:
- Loading the admin-0 boundary layer (local zip, URL, or synthetic demo)
- Selecting the study country by attribute equality
- Comparing polygon area in two projected CRSs against the ellipsoid
- Checking that a reprojection round trip restores the coordinates
- Returning the boundary in the projected working CRS

Input Files
-----------
- data_raw/ne_10m_admin_0_countries.zip
- OR the Natural Earth URL (--download)
- OR synthetic boundaries if no raw data exists

Output Files
------------
- data_work/diagnostics/crs_areas.csv
- data_work/spatial/boundary.gpkg (with --export)

Usage
-----
    python src/pipeline.py load_boundary
    python src/pipeline.py load_boundary --demo
"""
from __future__ import annotations

import sys
import warnings
from pathlib import Path
from typing import Optional

# Add parent directory for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

import geopandas as gpd

from config import (
    AREA_RELATIVE_TOLERANCE,
    BOUNDARY_FILE,
    CRS_AREAS_FILE,
    NATURAL_EARTH_URL,
    RANDOM_SEED,
    ROUND_TRIP_TOLERANCE,
    SPATIAL_DATA_DIR,
    load_parameters,
)
from spatial.core.crs import compare_areas, get_crs_info, max_coordinate_shift, reproject, round_trip
from spatial.core.io import dissolve_boundary, load_boundary, save_spatial
from utils.helpers import print_footer, print_header, save_diagnostic
from stages._qa_utils import qa_for_stage


# ============================================================
# CONFIGURATION
# ============================================================

STAGE_NAME = 's00_boundary'
EXPORT_FILE = 'boundary.gpkg'


# ============================================================
# DATA LOADING
# ============================================================

def resolve_source(use_demo: bool = False, download: bool = False):
    """
    Decide where the boundary layer comes from.

    Returns
    -------
    str, Path or None
        URL, local file, or None when synthetic data should be used.
    """
    if use_demo:
        return None
    if download:
        return NATURAL_EARTH_URL
    if BOUNDARY_FILE.exists():
        return BOUNDARY_FILE

    print(f"\n  No raw boundary file found: {BOUNDARY_FILE}")
    return None


def generate_demo_boundaries() -> gpd.GeoDataFrame:
    """Synthetic admin-0 layer when no raw data exists."""
    print("  Generating synthetic demo boundaries...")

    from utils.synthetic_data import SyntheticDataGenerator

    countries = SyntheticDataGenerator(seed=RANDOM_SEED).generate_boundaries()
    print(f"    -> Generated {len(countries)} features")
    return countries


def load_country(
    name: str,
    field: str,
    use_demo: bool = False,
    download: bool = False,
) -> gpd.GeoDataFrame:
    """
    Load the study country as a single-row outline in its source CRS.

    Raises
    ------
    ValueError
        If the attribute is missing or no feature matches ``name``.
    """
    source = resolve_source(use_demo, download)

    if source is None:
        source = generate_demo_boundaries()
    else:
        print(f"  Loading: {source}")

    country = load_boundary(source, name, field)
    print(f"    -> {len(country)} feature(s) with {field} == {name!r}")

    return dissolve_boundary(country)


# ============================================================
# CRS CHECKS
# ============================================================

def check_areas(outline: gpd.GeoDataFrame, crs_list: list[str]):
    """Area table by method; warns when a projection distorts area."""
    print("  Comparing areas...")
    areas = compare_areas(outline, crs_list)

    for row in areas.itertuples():
        print(f"    {row.method:<12} {row.area_km2:>12,.1f} km²  ({row.rel_diff:+.4%})")

    worst = areas['rel_diff'].abs().max()
    if worst > AREA_RELATIVE_TOLERANCE:
        warnings.warn(
            f"Projected area differs from the ellipsoidal area by {worst:.2%}",
            UserWarning,
        )
    return areas


def check_round_trip(outline: gpd.GeoDataFrame, via_crs: str) -> float:
    """Maximum vertex shift after reprojecting to ``via_crs`` and back."""
    back = round_trip(outline, via_crs)
    shift = max_coordinate_shift(outline, back)
    print(f"  Round trip via {via_crs}: max shift {shift:.2e}")

    if shift > ROUND_TRIP_TOLERANCE:
        warnings.warn(
            f"Round trip via {via_crs} moved vertices by {shift:.2e} "
            f"(tolerance {ROUND_TRIP_TOLERANCE:.0e})",
            UserWarning,
        )
    return shift


# ============================================================
# MAIN ENTRY POINT
# ============================================================

def main(
    params: Optional[dict] = None,
    use_demo: bool = False,
    download: bool = False,
    export: bool = False,
    save: bool = True,
) -> gpd.GeoDataFrame:
    """
    Execute the boundary stage.

    Parameters
    ----------
    params : dict, optional
        Workshop parameters (default: config.load_parameters())
    use_demo : bool
        Force use of synthetic demo data
    download : bool
        Read the boundary layer from the Natural Earth URL
    export : bool
        Also write the projected boundary as GeoPackage
    save : bool
        Write the diagnostics table

    Returns
    -------
    gpd.GeoDataFrame
        Single-row boundary in the projected CRS
    """
    params = params or load_parameters()

    print_header("Stage 00: Study Area Boundary")

    outline = load_country(
        params['country_name'], params['country_field'],
        use_demo=use_demo, download=download,
    )
    print(f"    -> Source CRS: {outline.crs.to_string()}")

    areas = check_areas(outline, [params['projected_crs'], params['alternative_crs']])
    shift = check_round_trip(outline, params['projected_crs'])

    boundary = reproject(outline, params['projected_crs'])
    info = get_crs_info(boundary)
    print(f"\n  Reprojected to {info['name']} ({info['units']})")

    if save:
        save_diagnostic(areas, CRS_AREAS_FILE)
    if export:
        path = save_spatial(boundary, SPATIAL_DATA_DIR / EXPORT_FILE)
        print(f"  Exported: {path}")

    # Summary
    print("\n" + "-" * 60)
    print("SUMMARY")
    print("-" * 60)
    print(f"  Country: {params['country_name']}")
    print(f"  CRS: {params['projected_crs']}")
    print(f"  Area: {boundary.geometry.area.sum() / 1e6:,.1f} km²")
    print(f"  Max area difference: {areas['rel_diff'].abs().max():.4%}")

    qa_for_stage(STAGE_NAME, boundary, additional_metrics={
        'round_trip_shift': shift,
        'max_area_rel_diff': float(areas['rel_diff'].abs().max()),
    })

    print_footer("Stage 00")

    return boundary


if __name__ == '__main__':
    main()
