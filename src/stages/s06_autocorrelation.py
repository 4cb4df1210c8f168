#!/usr/bin/env python3
"""
Stage 06: Spatial Autocorrelation

Purpose: Build contiguity weights on the Voronoi cells and test Moran's I.

This stage handles:
- Queen (or rook) contiguity weights, row-standardised
- Checking that every unit's weights sum to one
- Global Moran's I for cell elevation and for a purely random control

Elevation is expected to be clustered; the random control is expected
not to be significant.

Input Files
-----------
- None (uses the output of stage 05 in memory)

Output Files
------------
- data_work/diagnostics/weights_summary.csv
- data_work/diagnostics/moran_results.csv

Usage
-----
    python src/pipeline.py test_autocorrelation
"""
from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional

# Add parent directory for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

import numpy as np
import pandas as pd
import geopandas as gpd
from libpysal.weights import W

from config import MORAN_FILE, WEIGHTS_FILE, WEIGHTS_TRANSFORM, REGRESSION_Y, load_parameters
from spatial.autocorrelation import add_random_attribute, moran_table
from spatial.weights import contiguity_weights, row_sums, weights_summary
from utils.helpers import format_pvalue, print_footer, print_header, save_diagnostic
from stages._qa_utils import QAMetrics, generate_qa_report


# ============================================================
# CONFIGURATION
# ============================================================

STAGE_NAME = 's06_autocorrelation'
RANDOM_COLUMN = 'random'
TEST_COLUMNS = [REGRESSION_Y, RANDOM_COLUMN]


# ============================================================
# PROCESSING
# ============================================================

def build_weights(cells: gpd.GeoDataFrame, kind: str) -> W:
    """Contiguity weights; aborts when the neighbour graph is disconnected."""
    print(f"  Building {kind} contiguity weights...")
    w = contiguity_weights(cells, kind=kind, transform=WEIGHTS_TRANSFORM)

    summary = weights_summary(w)
    print(
        f"    -> {summary['n']} units, {summary['mean_neighbors']:.2f} neighbours on average "
        f"({summary['min_neighbors']}-{summary['max_neighbors']})"
    )

    sums = row_sums(w)
    if WEIGHTS_TRANSFORM == 'r' and not np.allclose(sums.to_numpy(), 1.0):
        raise ValueError("Row-standardised weights do not sum to one for every unit.")

    return w


# ============================================================
# MAIN ENTRY POINT
# ============================================================

def main(
    params: Optional[dict] = None,
    cells: Optional[gpd.GeoDataFrame] = None,
    use_demo: bool = False,
    save: bool = True,
) -> tuple[W, pd.DataFrame]:
    """
    Execute the autocorrelation stage.

    Parameters
    ----------
    params : dict, optional
        Workshop parameters (default: config.load_parameters())
    cells : gpd.GeoDataFrame, optional
        Output of stage 05; computed when omitted
    use_demo : bool
        Force use of synthetic demo data
    save : bool
        Write the diagnostics tables

    Returns
    -------
    tuple
        (weights, Moran table with one row per tested column)
    """
    params = params or load_parameters()

    if cells is None:
        from stages import s05_tessellate
        cells = s05_tessellate.main(params, use_demo=use_demo, save=save)

    print_header("Stage 06: Spatial Autocorrelation")

    w = build_weights(cells, params['contiguity'])

    tested = add_random_attribute(cells, RANDOM_COLUMN, seed=params['random_seed'])
    print(f"  Moran's I ({params['moran_permutations']} permutations)...")
    table = moran_table(
        tested, TEST_COLUMNS, w,
        permutations=int(params['moran_permutations']),
        seed=params['random_seed'],
        alpha=params['significance_level'],
    )

    for row in table.itertuples():
        print(f"    {row.variable:<16} I={row.I:+.3f}  p={format_pvalue(row.p_value)}  {row.pattern}")

    if save:
        save_diagnostic(pd.DataFrame([weights_summary(w)]), WEIGHTS_FILE)
        save_diagnostic(table, MORAN_FILE)

    # Summary
    results = table.set_index('variable')
    print("\n" + "-" * 60)
    print("SUMMARY")
    print("-" * 60)
    print(f"  Weights: {params['contiguity']}, transform '{WEIGHTS_TRANSFORM}'")
    for variable in TEST_COLUMNS:
        print(f"  {variable}: {results.loc[variable, 'pattern']}")

    metrics = QAMetrics()
    metrics.update(weights_summary(w))
    for row in table.itertuples():
        metrics.add(f'moran_{row.variable}', row.I)
        metrics.add(f'p_{row.variable}', row.p_value)
    generate_qa_report(STAGE_NAME, metrics)

    print_footer("Stage 06")

    return w, table


if __name__ == '__main__':
    main()
