#!/usr/bin/env python3
"""
Stage 07: Spatial Regression

Purpose: Compare OLS with a spatial error model on the Voronoi cells.

This stage handles:
- OLS of cell elevation on centroid easting/northing, with Moran's I
  and Lagrange multiplier diagnostics on the residuals
- Maximum-likelihood spatial error model with the same covariates
- Side-by-side coefficient and fit tables (AIC, log-likelihood, lambda)

Input Files
-----------
- None (uses the outputs of stages 05 and 06 in memory)

Output Files
------------
- data_work/diagnostics/regression_comparison.csv

Usage
-----
    python src/pipeline.py fit_regression
"""
from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional

# Add parent directory for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

import pandas as pd
import geopandas as gpd
from libpysal.weights import W

from config import REGRESSION_FILE, REGRESSION_X, REGRESSION_Y, WEIGHTS_TRANSFORM, load_parameters
from spatial.regression import RegressionComparison, compare_models
from spatial.weights import contiguity_weights
from utils.helpers import add_significance_stars, print_footer, print_header, save_diagnostic
from stages._qa_utils import QAMetrics, generate_qa_report


# ============================================================
# CONFIGURATION
# ============================================================

STAGE_NAME = 's07_regression'


# ============================================================
# PROCESSING
# ============================================================

def comparison_table(comparison: RegressionComparison) -> pd.DataFrame:
    """Coefficients joined with the per-model fit statistics."""
    return comparison.coefficients.merge(comparison.fit, on='model', how='left')


def print_coefficients(comparison: RegressionComparison) -> None:
    for model, group in comparison.coefficients.groupby('model', sort=False):
        print(f"\n  {model}")
        for row in group.itertuples():
            stars = add_significance_stars(row.p_value)
            print(f"    {row.term:<12} {row.estimate:>12.3f} ({row.std_err:.3f}){stars}")


# ============================================================
# MAIN ENTRY POINT
# ============================================================

def main(
    params: Optional[dict] = None,
    cells: Optional[gpd.GeoDataFrame] = None,
    w: Optional[W] = None,
    use_demo: bool = False,
    save: bool = True,
) -> RegressionComparison:
    """
    Execute the regression stage.

    Parameters
    ----------
    params : dict, optional
        Workshop parameters (default: config.load_parameters())
    cells : gpd.GeoDataFrame, optional
        Output of stage 05; computed when omitted
    w : libpysal.weights.W, optional
        Weights from stage 06; built from ``cells`` when omitted
    use_demo : bool
        Force use of synthetic demo data
    save : bool
        Write the diagnostics table

    Returns
    -------
    RegressionComparison
    """
    params = params or load_parameters()

    if cells is None:
        from stages import s05_tessellate
        cells = s05_tessellate.main(params, use_demo=use_demo, save=save)
    if w is None:
        w = contiguity_weights(cells, kind=params['contiguity'], transform=WEIGHTS_TRANSFORM)

    print_header("Stage 07: Spatial Regression")

    print(f"  {REGRESSION_Y} ~ {' + '.join(REGRESSION_X)} (n={len(cells)})")
    comparison = compare_models(cells, REGRESSION_Y, REGRESSION_X, w)
    print_coefficients(comparison)

    if save:
        save_diagnostic(comparison_table(comparison), REGRESSION_FILE)

    # Summary
    fit = comparison.fit.set_index('model')
    print("\n" + "-" * 60)
    print("SUMMARY")
    print("-" * 60)
    for model, row in fit.iterrows():
        print(f"  {model:<14} AIC {row['aic']:>10.1f}  logL {row['log_likelihood']:>10.1f}")
    print(f"  Residual Moran's I (OLS): {fit.loc['ols', 'residual_moran_i']:.3f}")
    print(f"  Lambda (spatial error): {fit.loc['spatial_error', 'lambda']:.3f}")
    print(f"  Preferred by AIC: {comparison.preferred}")

    metrics = QAMetrics()
    metrics.add('n', int(fit.loc['ols', 'n']))
    metrics.add('aic_ols', float(fit.loc['ols', 'aic']))
    metrics.add('aic_spatial_error', float(fit.loc['spatial_error', 'aic']))
    metrics.add('lambda', float(fit.loc['spatial_error', 'lambda']))
    metrics.add('preferred', comparison.preferred)
    generate_qa_report(STAGE_NAME, metrics)

    print_footer("Stage 07")

    return comparison


if __name__ == '__main__':
    main()
