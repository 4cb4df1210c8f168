#!/usr/bin/env python3
"""
Stage 04: Point Pattern Analysis

Purpose: Test the sample locations against complete spatial randomness.

This stage handles:
- Clark-Evans nearest-neighbour ratio
- Quadrat count chi-square test
- G function and Ripley's K/L function curves

A correctly drawn random sample should not be flagged as clustered or
regular; a regular design should show R > 1.

Input Files
-----------
- None (uses the outputs of stages 00 and 02 in memory)

Output Files
------------
- data_work/diagnostics/point_pattern.csv
- data_work/diagnostics/g_function.csv
- data_work/diagnostics/ripley_k.csv

Usage
-----
    python src/pipeline.py point_pattern
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
    G_FUNCTION_FILE,
    G_FUNCTION_STEPS,
    K_FUNCTION_FILE,
    K_FUNCTION_STEPS,
    POINT_PATTERN_FILE,
    QUADRAT_GRID,
    load_parameters,
)
from spatial.point_pattern import g_function, ripley_k, summarize_pattern
from utils.helpers import add_significance_stars, format_pvalue, print_footer, print_header, save_diagnostic
from stages._qa_utils import QAMetrics, generate_qa_report


# ============================================================
# CONFIGURATION
# ============================================================

STAGE_NAME = 's04_point_pattern'


# ============================================================
# PROCESSING
# ============================================================

def study_area(boundary: gpd.GeoDataFrame, crs) -> float:
    """Boundary area in the units of ``crs``."""
    return float(boundary.to_crs(crs).geometry.union_all().area)


def pattern_curves(points: gpd.GeoDataFrame, area: float) -> tuple[pd.DataFrame, pd.DataFrame]:
    """G function and K/L function tables."""
    return (
        g_function(points, area, steps=G_FUNCTION_STEPS),
        ripley_k(points, area, steps=K_FUNCTION_STEPS),
    )


# ============================================================
# MAIN ENTRY POINT
# ============================================================

def main(
    params: Optional[dict] = None,
    boundary: Optional[gpd.GeoDataFrame] = None,
    points: Optional[gpd.GeoDataFrame] = None,
    use_demo: bool = False,
    save: bool = True,
) -> pd.DataFrame:
    """
    Execute the point pattern stage.

    Parameters
    ----------
    params : dict, optional
        Workshop parameters (default: config.load_parameters())
    boundary : gpd.GeoDataFrame, optional
        Output of stage 00; computed when omitted
    points : gpd.GeoDataFrame, optional
        Output of stage 02; computed when omitted
    use_demo : bool
        Force use of synthetic demo data
    save : bool
        Write the diagnostics tables

    Returns
    -------
    pd.DataFrame
        One row per test: statistic, z score or df, p-value
    """
    params = params or load_parameters()

    if boundary is None:
        from stages import s00_boundary
        boundary = s00_boundary.main(params, use_demo=use_demo, save=save)
    if points is None:
        from stages import s02_sample
        points = s02_sample.main(params, boundary=boundary, use_demo=use_demo, save=save)

    print_header("Stage 04: Point Pattern Analysis")

    nx, ny = QUADRAT_GRID
    print(f"  Testing {len(points)} points against CSR ({nx}x{ny} quadrats)...")
    summary = summarize_pattern(points, boundary, nx=nx, ny=ny)

    alpha = params['significance_level']
    summary['significant'] = summary['p_value'] < alpha

    for row in summary.itertuples():
        print(
            f"    {row.test:<14} {row.statistic:>8.3f}  "
            f"p={format_pvalue(row.p_value)}{add_significance_stars(row.p_value)}"
        )

    area = study_area(boundary, points.crs)
    g_curve, k_curve = pattern_curves(points, area)

    if save:
        save_diagnostic(summary, POINT_PATTERN_FILE)
        save_diagnostic(g_curve, G_FUNCTION_FILE)
        save_diagnostic(k_curve, K_FUNCTION_FILE)

    # Summary
    ce = summary.set_index('test').loc['clark_evans']
    print("\n" + "-" * 60)
    print("SUMMARY")
    print("-" * 60)
    print(f"  Clark-Evans R: {ce['statistic']:.3f}")
    print(f"  Tests rejecting CSR at {alpha}: {int(summary['significant'].sum())} of {len(summary)}")
    print(f"  Max |L(r) - r|: {k_curve['l_minus_r'].abs().max() / 1000:,.2f} km")

    metrics = QAMetrics()
    metrics.add('n_points', len(points))
    metrics.add('area_km2', area / 1e6)
    metrics.add('clark_evans_r', float(ce['statistic']))
    metrics.add('n_tests_significant', int(summary['significant'].sum()))
    generate_qa_report(STAGE_NAME, metrics)

    print_footer("Stage 04")

    return summary


if __name__ == '__main__':
    main()
