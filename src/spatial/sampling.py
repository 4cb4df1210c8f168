"""
Point sampling within polygons.

Random samples are drawn by rejection sampling in the polygon's bounding
box; regular samples lie on a square grid with a random offset. Both are
fully determined by the seed.
"""

from __future__ import annotations

import warnings
from typing import Optional

import numpy as np

import geopandas as gpd
import shapely

from spatial.core.raster import Raster, sample_raster


SAMPLING_METHODS = ("random", "regular")

# Upper bound on rejection-sampling rounds before giving up
MAX_ROUNDS = 1000


def _study_area(polygons: "gpd.GeoDataFrame"):
    if polygons.crs is None:
        raise ValueError("Sampling polygon has no CRS.")
    if polygons.crs.is_geographic:
        warnings.warn(
            "Sampling in geographic coordinates is not uniform by area; "
            "reproject the polygon to a projected CRS first.",
            UserWarning,
        )
    area = polygons.geometry.union_all()
    if area.is_empty or area.area <= 0:
        raise ValueError("Sampling polygon is empty or has zero area.")
    return area


def random_points(
    polygons: "gpd.GeoDataFrame",
    n: int,
    seed: Optional[int] = None,
) -> "gpd.GeoDataFrame":
    """Exactly ``n`` uniformly distributed points inside the polygons."""
    area = _study_area(polygons)
    rng = np.random.default_rng(seed)
    minx, miny, maxx, maxy = area.bounds

    xs: list[np.ndarray] = []
    ys: list[np.ndarray] = []
    found = 0
    for _ in range(MAX_ROUNDS):
        if found >= n:
            break
        batch = max(2 * (n - found), 100)
        x = rng.uniform(minx, maxx, batch)
        y = rng.uniform(miny, maxy, batch)
        inside = shapely.contains_xy(area, x, y)
        xs.append(x[inside])
        ys.append(y[inside])
        found += int(inside.sum())
    else:
        if found < n:
            raise ValueError(f"Could not place {n} points after {MAX_ROUNDS} rounds.")

    x = np.concatenate(xs)[:n]
    y = np.concatenate(ys)[:n]

    return gpd.GeoDataFrame(
        {"sample_id": np.arange(n)},
        geometry=gpd.points_from_xy(x, y),
        crs=polygons.crs,
    )


def regular_points(
    polygons: "gpd.GeoDataFrame",
    n: int,
    seed: Optional[int] = None,
) -> "gpd.GeoDataFrame":
    """
    Points on a square grid inside the polygons.

    The spacing is ``sqrt(area / n)``, so the count is approximately ``n``.
    """
    area = _study_area(polygons)
    rng = np.random.default_rng(seed)
    minx, miny, maxx, maxy = area.bounds

    spacing = np.sqrt(area.area / n)
    offset_x, offset_y = rng.uniform(0, spacing, 2)

    gx, gy = np.meshgrid(
        np.arange(minx + offset_x, maxx, spacing),
        np.arange(miny + offset_y, maxy, spacing),
    )
    x = gx.ravel()
    y = gy.ravel()
    inside = shapely.contains_xy(area, x, y)

    return gpd.GeoDataFrame(
        {"sample_id": np.arange(int(inside.sum()))},
        geometry=gpd.points_from_xy(x[inside], y[inside]),
        crs=polygons.crs,
    )


def sample_points(
    polygons: "gpd.GeoDataFrame",
    n: int,
    method: str = "random",
    seed: Optional[int] = None,
) -> "gpd.GeoDataFrame":
    """
    Draw point samples within polygons.

    Parameters
    ----------
    polygons : gpd.GeoDataFrame
        Study area; all features are merged.
    n : int
        Number of points (exact for 'random', approximate for 'regular').
    method : str, optional
        'random' or 'regular'. Default is 'random'.
    seed : int, optional
        Random seed. The same seed yields identical coordinates.

    Returns
    -------
    gpd.GeoDataFrame
        Points with a 'sample_id' column, in the polygons' CRS.

    Examples
    --------
    >>> pts = sample_points(boundary, 200, seed=42)
    >>> len(pts)
    200
    """
    if n < 1:
        raise ValueError(f"n must be positive: {n}")

    if method == "random":
        return random_points(polygons, n, seed=seed)
    elif method == "regular":
        return regular_points(polygons, n, seed=seed)

    raise ValueError(f"Unknown sampling method '{method}'. Options: {', '.join(SAMPLING_METHODS)}")


def extract_values(
    points: "gpd.GeoDataFrame",
    raster: Raster,
    column: str = "elevation",
    band: int = 1,
) -> "gpd.GeoDataFrame":
    """
    Attach raster values to points, dropping points on empty cells.

    Returns
    -------
    gpd.GeoDataFrame
        Copy of ``points`` with ``column`` added and a fresh index.
    """
    result = points.copy()
    result[column] = sample_raster(raster, points, band=band)

    missing = result[column].isna()
    if missing.any():
        warnings.warn(
            f"Dropped {int(missing.sum())} of {len(result)} points without a raster value.",
            UserWarning,
        )
        result = result.loc[~missing]

    return result.reset_index(drop=True)
