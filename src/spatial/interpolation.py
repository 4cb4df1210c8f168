"""
Spatial interpolation of point observations onto a grid.

Two estimators are provided:

- Inverse distance weighting (IDW) using a k-d tree
- Ordinary kriging (pykrige) with a variogram fitted to the observations

The variogram model formulas match pykrige's definitions so that fitted
parameters can be passed to ``OrdinaryKriging`` unchanged.

Example
-------
>>> grid = prediction_grid(boundary, resolution=2000)
>>> surface = idw(samples, 'elevation', grid, power=2)
>>> emp = empirical_variogram(samples, 'elevation', n_lags=15)
>>> vgm = fit_variogram(emp, 'spherical', {'psill': 3e5, 'range': 8e4, 'nugget': 5e3})
>>> prediction, variance = ordinary_kriging(samples, 'elevation', grid, vgm)
"""

from __future__ import annotations

from dataclasses import dataclass, asdict
from typing import Callable, Optional
import math

import numpy as np
import pandas as pd
from scipy.optimize import curve_fit
from scipy.spatial import cKDTree
from scipy.spatial.distance import pdist

import geopandas as gpd
from pykrige.ok import OrdinaryKriging
from rasterio.features import geometry_mask
from rasterio.transform import from_origin

from spatial.core.distance import point_coordinates
from spatial.core.raster import Raster, cell_centers


# ============================================================
# PREDICTION GRID
# ============================================================

@dataclass
class PredictionGrid:
    """Target grid for interpolation: georeferencing plus an inside mask."""
    transform: object
    shape: tuple[int, int]
    crs: object
    mask: np.ndarray

    @property
    def n_cells(self) -> int:
        return int(self.mask.sum())

    def centers(self) -> np.ndarray:
        """(n, 2) coordinates of the cell centres inside the mask."""
        xs, ys = cell_centers(self.transform, self.shape)
        return np.column_stack([xs[self.mask], ys[self.mask]])

    def to_raster(self, values: np.ndarray) -> Raster:
        """Scatter values for the inside cells into a NaN-filled Raster."""
        data = np.full(self.shape, np.nan)
        data[self.mask] = values
        return Raster(data, self.transform, self.crs, np.nan)


def prediction_grid(
    boundary: "gpd.GeoDataFrame",
    resolution: float,
) -> PredictionGrid:
    """
    Build a regular grid covering the boundary.

    Parameters
    ----------
    boundary : gpd.GeoDataFrame
        Study area in a projected CRS.
    resolution : float
        Cell size in CRS units.

    Raises
    ------
    ValueError
        If the boundary has no CRS, a geographic CRS, or the resolution
        is not positive.
    """
    if boundary.crs is None or boundary.crs.is_geographic:
        raise ValueError("Prediction grids require a boundary in a projected CRS.")
    if resolution <= 0:
        raise ValueError(f"resolution must be positive: {resolution}")

    minx, miny, maxx, maxy = boundary.total_bounds
    width = max(int(math.ceil((maxx - minx) / resolution)), 1)
    height = max(int(math.ceil((maxy - miny) / resolution)), 1)
    transform = from_origin(minx, maxy, resolution, resolution)

    inside = geometry_mask(
        list(boundary.geometry),
        out_shape=(height, width),
        transform=transform,
        invert=True,
    )

    return PredictionGrid(transform, (height, width), boundary.crs, inside)


def _observations(points: "gpd.GeoDataFrame", column: str, crs=None) -> tuple[np.ndarray, np.ndarray]:
    if column not in points.columns:
        raise ValueError(f"Column '{column}' not found in points.")
    if crs is not None and points.crs is not None and not points.crs.equals(crs):
        points = points.to_crs(crs)

    values = points[column].to_numpy(dtype="float64")
    if not np.all(np.isfinite(values)):
        raise ValueError(f"Column '{column}' contains missing or infinite values.")

    return point_coordinates(points), values


# ============================================================
# INVERSE DISTANCE WEIGHTING
# ============================================================

def idw_predict(
    coords: np.ndarray,
    values: np.ndarray,
    targets: np.ndarray,
    power: float = 2.0,
    max_neighbors: Optional[int] = None,
) -> np.ndarray:
    """
    Inverse distance weighted predictions at target coordinates.

    A target coinciding with an observation takes the observed value.
    """
    if len(coords) == 0:
        raise ValueError("IDW requires at least one observation.")

    k = len(coords) if max_neighbors is None else min(int(max_neighbors), len(coords))
    tree = cKDTree(coords)
    dist, idx = tree.query(targets, k=k)
    dist = np.asarray(dist).reshape(len(targets), k)
    idx = np.asarray(idx).reshape(len(targets), k)

    neighbor_values = values[idx]
    exact = dist[:, 0] == 0

    with np.errstate(divide="ignore"):
        weights = 1.0 / dist ** power
    weights[exact] = 0.0

    predictions = np.empty(len(targets))
    predictions[~exact] = (
        (weights[~exact] * neighbor_values[~exact]).sum(axis=1) / weights[~exact].sum(axis=1)
    )
    predictions[exact] = neighbor_values[exact, 0]

    return predictions


def idw(
    points: "gpd.GeoDataFrame",
    column: str,
    grid: PredictionGrid,
    power: float = 2.0,
    max_neighbors: Optional[int] = None,
) -> Raster:
    """
    Interpolate a point attribute onto a grid by inverse distance weighting.

    Returns
    -------
    Raster
        Predictions inside the grid mask, NaN elsewhere.
    """
    coords, values = _observations(points, column, grid.crs)
    predictions = idw_predict(coords, values, grid.centers(), power, max_neighbors)
    return grid.to_raster(predictions)


# ============================================================
# VARIOGRAM
# ============================================================

def spherical_model(d, psill, range_, nugget):
    d = np.asarray(d, dtype="float64")
    inner = psill * ((3.0 * d) / (2.0 * range_) - d ** 3 / (2.0 * range_ ** 3)) + nugget
    return np.where(d <= range_, inner, psill + nugget)


def exponential_model(d, psill, range_, nugget):
    d = np.asarray(d, dtype="float64")
    return psill * (1.0 - np.exp(-d / (range_ / 3.0))) + nugget


def gaussian_model(d, psill, range_, nugget):
    d = np.asarray(d, dtype="float64")
    return psill * (1.0 - np.exp(-(d ** 2) / (range_ * 4.0 / 7.0) ** 2)) + nugget


# Fitted ranges at or above this fraction of the largest lag count as unbounded
RANGE_BOUND_TOLERANCE = 0.999


VARIOGRAM_FUNCTIONS: dict[str, Callable] = {
    "spherical": spherical_model,
    "exponential": exponential_model,
    "gaussian": gaussian_model,
}


@dataclass
class EmpiricalVariogram:
    """Binned semivariances."""
    lags: np.ndarray
    gamma: np.ndarray
    counts: np.ndarray
    cutoff: float

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame({"lag": self.lags, "gamma": self.gamma, "n_pairs": self.counts})


@dataclass
class VariogramModel:
    """A fitted variogram in pykrige parameterisation."""
    model: str
    psill: float
    range: float
    nugget: float

    @property
    def sill(self) -> float:
        return self.psill + self.nugget

    def __call__(self, d) -> np.ndarray:
        return VARIOGRAM_FUNCTIONS[self.model](d, self.psill, self.range, self.nugget)

    def to_pykrige(self) -> dict:
        return {"psill": self.psill, "range": self.range, "nugget": self.nugget}

    def to_dict(self) -> dict:
        return {**asdict(self), "sill": self.sill}


def empirical_variogram(
    points: "gpd.GeoDataFrame",
    column: str,
    n_lags: int = 15,
    cutoff: Optional[float] = None,
) -> EmpiricalVariogram:
    """
    Compute the empirical (Matheron) semivariogram.

    Parameters
    ----------
    points : gpd.GeoDataFrame
        Observations in a projected CRS.
    column : str
        Attribute to analyse.
    n_lags : int, optional
        Number of equal-width distance bins. Default is 15.
    cutoff : float, optional
        Maximum distance. Defaults to one third of the bounding-box
        diagonal.

    Raises
    ------
    ValueError
        If fewer than three bins contain point pairs.
    """
    coords, values = _observations(points, column)

    if cutoff is None:
        extent = coords.max(axis=0) - coords.min(axis=0)
        cutoff = float(np.hypot(*extent)) / 3.0

    distances = pdist(coords)
    half_sq_diff = 0.5 * pdist(values[:, np.newaxis], metric="sqeuclidean")

    edges = np.linspace(0.0, cutoff, n_lags + 1)
    bins = np.digitize(distances, edges) - 1
    valid = (bins >= 0) & (bins < n_lags) & (distances > 0)

    counts = np.bincount(bins[valid], minlength=n_lags)
    dist_sum = np.bincount(bins[valid], weights=distances[valid], minlength=n_lags)
    gamma_sum = np.bincount(bins[valid], weights=half_sq_diff[valid], minlength=n_lags)

    filled = counts > 0
    if filled.sum() < 3:
        raise ValueError(
            f"Only {int(filled.sum())} lag bins contain point pairs; "
            "increase the cutoff or the number of observations."
        )

    return EmpiricalVariogram(
        lags=dist_sum[filled] / counts[filled],
        gamma=gamma_sum[filled] / counts[filled],
        counts=counts[filled],
        cutoff=float(cutoff),
    )


def fit_variogram(
    empirical: EmpiricalVariogram,
    model: str = "spherical",
    initial: Optional[dict] = None,
) -> VariogramModel:
    """
    Fit a variogram model by weighted least squares.

    Bins are weighted by their pair counts. The fit starts from
    ``initial`` (keys 'psill', 'range', 'nugget'), clipped into the
    parameter bounds. As in PyKrige's own fitting, the range is bounded
    by the first and last lag, the partial sill by ten times the largest
    semivariance and the nugget by the largest semivariance.

    Raises
    ------
    ValueError
        If the model family is unknown, the fit does not converge, the
        parameter covariance is singular, or the fitted range sits on the
        largest lag (the semivariance never levels off within the cutoff).
    """
    if model not in VARIOGRAM_FUNCTIONS:
        raise ValueError(
            f"Unknown variogram model '{model}'. Options: {', '.join(VARIOGRAM_FUNCTIONS)}"
        )

    if initial is None:
        initial = {
            "psill": float(np.max(empirical.gamma)),
            "range": float(empirical.cutoff) / 2.0,
            "nugget": float(np.min(empirical.gamma)),
        }

    max_gamma = float(np.max(empirical.gamma))
    max_range = float(np.max(empirical.lags))
    lower = np.array([0.0, float(np.min(empirical.lags)), 0.0])
    upper = np.array([10.0 * max_gamma, max_range, max_gamma])
    p0 = np.clip(
        [float(initial["psill"]), float(initial["range"]), float(initial["nugget"])],
        lower, upper,
    )

    try:
        params, covariance = curve_fit(
            VARIOGRAM_FUNCTIONS[model],
            empirical.lags,
            empirical.gamma,
            p0=p0,
            sigma=1.0 / np.sqrt(empirical.counts),
            bounds=(lower, upper),
            maxfev=10_000,
        )
    except RuntimeError as err:
        raise ValueError(f"Variogram fit did not converge for model '{model}': {err}") from err

    if not np.all(np.isfinite(params)) or not np.all(np.isfinite(covariance)):
        raise ValueError(
            f"Variogram fit for model '{model}' is singular; "
            "check the initial parameters and lag cutoff."
        )

    psill, range_, nugget = (float(p) for p in params)
    if range_ >= RANGE_BOUND_TOLERANCE * max_range:
        raise ValueError(
            f"Variogram fit for model '{model}' has no sill within the cutoff: "
            f"range {range_:,.0f} reached the largest lag {max_range:,.0f}."
        )

    return VariogramModel(model=model, psill=psill, range=range_, nugget=nugget)


# ============================================================
# ORDINARY KRIGING
# ============================================================

def kriging_predict(
    coords: np.ndarray,
    values: np.ndarray,
    targets: np.ndarray,
    variogram: VariogramModel,
) -> tuple[np.ndarray, np.ndarray]:
    """Ordinary kriging predictions and variances at target coordinates."""
    ok = OrdinaryKriging(
        coords[:, 0],
        coords[:, 1],
        values,
        variogram_model=variogram.model,
        variogram_parameters=variogram.to_pykrige(),
        verbose=False,
        enable_plotting=False,
    )
    z, ss = ok.execute("points", targets[:, 0], targets[:, 1], backend="vectorized")
    return np.asarray(z, dtype="float64"), np.asarray(ss, dtype="float64")


def ordinary_kriging(
    points: "gpd.GeoDataFrame",
    column: str,
    grid: PredictionGrid,
    variogram: VariogramModel,
) -> tuple[Raster, Raster]:
    """
    Krige a point attribute onto a grid with a fixed variogram.

    Returns
    -------
    tuple of Raster
        (prediction, kriging variance), NaN outside the grid mask.
    """
    coords, values = _observations(points, column, grid.crs)
    z, ss = kriging_predict(coords, values, grid.centers(), variogram)
    return grid.to_raster(z), grid.to_raster(ss)


# ============================================================
# CROSS-VALIDATION
# ============================================================

def cross_validate(
    points: "gpd.GeoDataFrame",
    column: str,
    method: str = "idw",
    k: int = 5,
    seed: Optional[int] = None,
    power: float = 2.0,
    max_neighbors: Optional[int] = None,
    variogram: Optional[VariogramModel] = None,
) -> dict:
    """
    k-fold cross-validation of an interpolator.

    Parameters
    ----------
    method : str
        'idw' or 'kriging'. Kriging requires ``variogram``.

    Returns
    -------
    dict
        'method', 'k', 'n', 'rmse', 'mae' and 'bias' (mean of
        prediction minus observation).
    """
    if method not in ("idw", "kriging"):
        raise ValueError(f"Unknown interpolation method '{method}'. Options: idw, kriging")
    if method == "kriging" and variogram is None:
        raise ValueError("Kriging cross-validation requires a fitted variogram.")

    coords, values = _observations(points, column)
    if k < 2 or k > len(values):
        raise ValueError(f"k must be between 2 and the number of points ({len(values)}): {k}")

    rng = np.random.default_rng(seed)
    folds = np.array_split(rng.permutation(len(values)), k)

    predictions = np.empty(len(values))
    for test in folds:
        train = np.setdiff1d(np.arange(len(values)), test)
        if method == "idw":
            predictions[test] = idw_predict(
                coords[train], values[train], coords[test], power, max_neighbors
            )
        else:
            predictions[test], _ = kriging_predict(
                coords[train], values[train], coords[test], variogram
            )

    errors = predictions - values
    return {
        "method": method,
        "k": k,
        "n": len(values),
        "rmse": float(np.sqrt(np.mean(errors ** 2))),
        "mae": float(np.mean(np.abs(errors))),
        "bias": float(np.mean(errors)),
    }
