"""
Point pattern statistics.

Summary statistics comparing an observed point pattern with complete
spatial randomness (CSR): Clark-Evans nearest-neighbour ratio, the G
function, Ripley's K/L functions and the quadrat chi-square test.

All distances are planar, so points must be in a projected CRS. No edge
correction is applied.
"""

from __future__ import annotations

from typing import Optional, Sequence

import numpy as np
import pandas as pd
from scipy import stats

import geopandas as gpd
from shapely.geometry import box

from spatial.core.distance import nearest_neighbor_distances, pairwise_distances


def _check_projected(points: "gpd.GeoDataFrame") -> None:
    if points.crs is not None and points.crs.is_geographic:
        raise ValueError("Point pattern statistics require a projected CRS.")
    if len(points) < 2:
        raise ValueError("At least two points are required.")


def clark_evans(points: "gpd.GeoDataFrame", area: float) -> dict:
    """
    Clark-Evans aggregation index.

    R < 1 indicates clustering, R > 1 regularity, R ≈ 1 randomness.

    Returns
    -------
    dict
        'n', 'intensity', 'mean_nn', 'expected_nn', 'R', 'z', 'p_value'.
    """
    _check_projected(points)
    if area <= 0:
        raise ValueError(f"area must be positive: {area}")

    n = len(points)
    intensity = n / area
    mean_nn = float(nearest_neighbor_distances(points).mean())
    expected_nn = 0.5 / np.sqrt(intensity)
    std_error = 0.26136 / np.sqrt(n * intensity)
    z = (mean_nn - expected_nn) / std_error

    return {
        "n": n,
        "intensity": intensity,
        "mean_nn": mean_nn,
        "expected_nn": float(expected_nn),
        "R": float(mean_nn / expected_nn),
        "z": float(z),
        "p_value": float(2 * stats.norm.sf(abs(z))),
    }


def g_function(
    points: "gpd.GeoDataFrame",
    area: float,
    steps: int = 50,
    max_distance: Optional[float] = None,
) -> pd.DataFrame:
    """
    Empirical nearest-neighbour distance distribution G(r).

    Returns
    -------
    pd.DataFrame
        Columns 'r', 'g_observed' and 'g_csr' (1 - exp(-λπr²)).
    """
    _check_projected(points)

    nn = nearest_neighbor_distances(points).to_numpy()
    intensity = len(points) / area
    if max_distance is None:
        max_distance = float(nn.max())

    r = np.linspace(0.0, max_distance, steps)
    observed = (nn[np.newaxis, :] <= r[:, np.newaxis]).mean(axis=1)

    return pd.DataFrame({
        "r": r,
        "g_observed": observed,
        "g_csr": 1.0 - np.exp(-intensity * np.pi * r ** 2),
    })


def ripley_k(
    points: "gpd.GeoDataFrame",
    area: float,
    radii: Optional[Sequence[float]] = None,
    steps: int = 25,
) -> pd.DataFrame:
    """
    Ripley's K and Besag's L function without edge correction.

    Parameters
    ----------
    radii : sequence of float, optional
        Distances at which to evaluate. Defaults to ``steps`` values up to
        a quarter of sqrt(area).

    Returns
    -------
    pd.DataFrame
        Columns 'r', 'k', 'k_csr' (πr²), 'l' and 'l_minus_r'.
    """
    _check_projected(points)

    n = len(points)
    if radii is None:
        radii = np.linspace(0.0, 0.25 * np.sqrt(area), steps)
    r = np.asarray(radii, dtype="float64")

    distances = np.sort(pairwise_distances(points))
    # Each unordered pair counts twice in the ordered-pair estimator
    pair_counts = 2 * np.searchsorted(distances, r, side="right")
    k = area * pair_counts / (n * (n - 1))
    l_values = np.sqrt(k / np.pi)

    return pd.DataFrame({
        "r": r,
        "k": k,
        "k_csr": np.pi * r ** 2,
        "l": l_values,
        "l_minus_r": l_values - r,
    })


def quadrat_test(
    points: "gpd.GeoDataFrame",
    boundary: "gpd.GeoDataFrame",
    nx: int = 5,
    ny: int = 5,
) -> tuple["gpd.GeoDataFrame", dict]:
    """
    Quadrat count chi-square test of CSR.

    The boundary's bounding box is split into ``nx`` by ``ny`` quadrats,
    each clipped to the boundary; expected counts are proportional to the
    clipped areas.

    Returns
    -------
    tuple
        (quadrats GeoDataFrame with 'observed' and 'expected' columns,
        dict with 'chi2', 'df', 'p_value', 'n_quadrats')
    """
    _check_projected(points)

    window = boundary.to_crs(points.crs).geometry.union_all()
    minx, miny, maxx, maxy = window.bounds
    x_edges = np.linspace(minx, maxx, nx + 1)
    y_edges = np.linspace(miny, maxy, ny + 1)

    coords = np.column_stack([points.geometry.x, points.geometry.y])
    counts, _, _ = np.histogram2d(coords[:, 0], coords[:, 1], bins=[x_edges, y_edges])

    cells = []
    for i in range(nx):
        for j in range(ny):
            tile = box(x_edges[i], y_edges[j], x_edges[i + 1], y_edges[j + 1]).intersection(window)
            cells.append({
                "ix": i,
                "iy": j,
                "observed": int(counts[i, j]),
                "area": tile.area,
                "geometry": tile,
            })

    quadrats = gpd.GeoDataFrame(cells, geometry="geometry", crs=points.crs)
    quadrats = quadrats.loc[quadrats["area"] > 0].reset_index(drop=True)

    n = quadrats["observed"].sum()
    quadrats["expected"] = n * quadrats["area"] / quadrats["area"].sum()

    chi2, p_value = stats.chisquare(quadrats["observed"], quadrats["expected"])

    return quadrats, {
        "chi2": float(chi2),
        "df": len(quadrats) - 1,
        "p_value": float(p_value),
        "n_quadrats": len(quadrats),
    }


def summarize_pattern(
    points: "gpd.GeoDataFrame",
    boundary: "gpd.GeoDataFrame",
    nx: int = 5,
    ny: int = 5,
) -> pd.DataFrame:
    """One-row-per-test summary of CSR tests for a point pattern."""
    area = boundary.to_crs(points.crs).geometry.union_all().area
    ce = clark_evans(points, area)
    _, qt = quadrat_test(points, boundary, nx, ny)

    return pd.DataFrame([
        {"test": "clark_evans", "statistic": ce["R"], "z_or_df": ce["z"], "p_value": ce["p_value"]},
        {"test": "quadrat_chi2", "statistic": qt["chi2"], "z_or_df": qt["df"], "p_value": qt["p_value"]},
    ])
