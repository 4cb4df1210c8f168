#!/usr/bin/env python3
"""
Stage 03: Interpolation

Purpose: Predict elevation surfaces from the sample by IDW and ordinary kriging.

This stage handles:
- Building a prediction grid over the boundary
- Inverse distance weighting
- Empirical variogram and weighted least-squares model fit
- Ordinary kriging with the fitted variogram (prediction + variance)
- k-fold cross-validation of both interpolators

Input Files
-----------
- None (uses the outputs of stages 00 and 02 in memory)

Output Files
------------
- data_work/diagnostics/variogram.csv
- data_work/diagnostics/variogram_model.csv
- data_work/diagnostics/cross_validation.csv
- data_work/spatial/{idw,kriging,kriging_variance}.tif (with --export)

Usage
-----
    python src/pipeline.py interpolate
"""
from __future__ import annotations

import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

# Add parent directory for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

import numpy as np
import pandas as pd
import geopandas as gpd

from config import (
    CROSS_VALIDATION_FILE,
    SPATIAL_DATA_DIR,
    VARIOGRAM_FILE,
    VARIOGRAM_MODEL_FILE,
    load_parameters,
)
from spatial.core.raster import Raster, write_raster
from spatial.interpolation import (
    EmpiricalVariogram,
    PredictionGrid,
    VariogramModel,
    cross_validate,
    empirical_variogram,
    fit_variogram,
    idw,
    ordinary_kriging,
    prediction_grid,
)
from utils.helpers import print_footer, print_header, save_diagnostic
from stages._qa_utils import QAMetrics, generate_qa_report, print_qa_summary


# ============================================================
# CONFIGURATION
# ============================================================

STAGE_NAME = 's03_interpolate'
VALUE_COLUMN = 'elevation'


@dataclass
class InterpolationResult:
    """Surfaces and diagnostics produced by the interpolation stage."""
    grid: PredictionGrid
    idw: Raster
    kriging: Raster
    kriging_variance: Raster
    empirical: EmpiricalVariogram
    variogram: VariogramModel
    cross_validation: pd.DataFrame

    def difference(self) -> Raster:
        """Kriging minus IDW prediction."""
        return Raster(
            self.kriging.data - self.idw.data,
            self.kriging.transform,
            self.kriging.crs,
            np.nan,
        )

    def variogram_table(self) -> pd.DataFrame:
        """Empirical bins with the fitted model evaluated at each lag."""
        table = self.empirical.to_frame()
        table['model_gamma'] = self.variogram(table['lag'].to_numpy())
        return table


# ============================================================
# PROCESSING
# ============================================================

def fit_model(points: gpd.GeoDataFrame, params: dict) -> tuple[EmpiricalVariogram, VariogramModel]:
    """Empirical variogram plus model fit from the literal starting values."""
    print("  Computing empirical variogram...")
    empirical = empirical_variogram(
        points, VALUE_COLUMN,
        n_lags=int(params['variogram_n_lags']),
        cutoff=params['variogram_cutoff'],
    )
    print(f"    -> {len(empirical.lags)} lag bins up to {empirical.cutoff / 1000:,.1f} km")

    print(f"  Fitting {params['variogram_model']} model...")
    model = fit_variogram(empirical, params['variogram_model'], params['variogram_initial'])
    print(
        f"    -> nugget {model.nugget:,.0f}, partial sill {model.psill:,.0f}, "
        f"range {model.range / 1000:,.1f} km"
    )
    return empirical, model


def run_cross_validation(
    points: gpd.GeoDataFrame,
    variogram: VariogramModel,
    params: dict,
) -> pd.DataFrame:
    """Same folds for both interpolators."""
    k = int(params['cv_folds'])
    print(f"  Cross-validating ({k} folds)...")

    rows = [
        cross_validate(
            points, VALUE_COLUMN, method='idw', k=k, seed=params['random_seed'],
            power=params['idw_power'], max_neighbors=params['idw_max_neighbors'],
        ),
        cross_validate(
            points, VALUE_COLUMN, method='kriging', k=k, seed=params['random_seed'],
            variogram=variogram,
        ),
    ]
    table = pd.DataFrame(rows)
    for row in table.itertuples():
        print(f"    {row.method:<8} RMSE {row.rmse:,.1f} m  MAE {row.mae:,.1f} m  bias {row.bias:+,.1f} m")
    return table


def interpolate(
    points: gpd.GeoDataFrame,
    boundary: gpd.GeoDataFrame,
    params: dict,
) -> InterpolationResult:
    """Run both interpolators on a common grid."""
    grid = prediction_grid(boundary, float(params['grid_resolution']))
    print(f"  Prediction grid: {grid.shape[0]} x {grid.shape[1]} ({grid.n_cells:,} cells inside)")

    print(f"  IDW (power={params['idw_power']})...")
    idw_surface = idw(
        points, VALUE_COLUMN, grid,
        power=params['idw_power'], max_neighbors=params['idw_max_neighbors'],
    )

    empirical, model = fit_model(points, params)

    print("  Ordinary kriging...")
    prediction, variance = ordinary_kriging(points, VALUE_COLUMN, grid, model)

    cv = run_cross_validation(points, model, params)

    return InterpolationResult(
        grid=grid,
        idw=idw_surface,
        kriging=prediction,
        kriging_variance=variance,
        empirical=empirical,
        variogram=model,
        cross_validation=cv,
    )


# ============================================================
# MAIN ENTRY POINT
# ============================================================

def main(
    params: Optional[dict] = None,
    boundary: Optional[gpd.GeoDataFrame] = None,
    points: Optional[gpd.GeoDataFrame] = None,
    use_demo: bool = False,
    export: bool = False,
    save: bool = True,
) -> InterpolationResult:
    """
    Execute the interpolation stage.

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
    export : bool
        Also write the surfaces as GeoTIFF
    save : bool
        Write the diagnostics tables

    Returns
    -------
    InterpolationResult
    """
    params = params or load_parameters()

    if boundary is None:
        from stages import s00_boundary
        boundary = s00_boundary.main(params, use_demo=use_demo, save=save)
    if points is None:
        from stages import s02_sample
        points = s02_sample.main(params, boundary=boundary, use_demo=use_demo, save=save)

    print_header("Stage 03: Interpolation")

    result = interpolate(points, boundary, params)

    if save:
        save_diagnostic(result.variogram_table(), VARIOGRAM_FILE)
        save_diagnostic(pd.DataFrame([result.variogram.to_dict()]), VARIOGRAM_MODEL_FILE)
        save_diagnostic(result.cross_validation, CROSS_VALIDATION_FILE)
    if export:
        for name, raster in [('idw', result.idw), ('kriging', result.kriging),
                             ('kriging_variance', result.kriging_variance)]:
            path = write_raster(raster, SPATIAL_DATA_DIR / f'{name}.tif')
            print(f"  Exported: {path}")

    # Summary
    diff = result.difference().summary(1)
    best = result.cross_validation.loc[result.cross_validation['rmse'].idxmin(), 'method']
    print("\n" + "-" * 60)
    print("SUMMARY")
    print("-" * 60)
    print(f"  Variogram: {result.variogram.model}, sill {result.variogram.sill:,.0f}")
    print(f"  Kriging - IDW: {diff['min']:+,.0f} to {diff['max']:+,.0f} m")
    print(f"  Lower CV error: {best}")

    metrics = QAMetrics()
    metrics.add('n_points', len(points))
    metrics.add('n_grid_cells', result.grid.n_cells)
    metrics.add('variogram_model', result.variogram.model)
    metrics.update({f'variogram_{k}': v for k, v in result.variogram.to_pykrige().items()})
    for row in result.cross_validation.itertuples():
        metrics.add(f'{row.method}_rmse', row.rmse)
    metrics.add('n_negative_variance', int(np.nansum(result.kriging_variance.data < 0)))
    print_qa_summary(metrics, STAGE_NAME)
    generate_qa_report(STAGE_NAME, metrics)

    print_footer("Stage 03")

    return result


if __name__ == '__main__':
    main()
