"""
Distance calculation utilities.

Planar point coordinates, pairwise distances and k-d tree based
nearest-neighbour distances for projected layers.
"""

from __future__ import annotations

import numpy as np
import pandas as pd
from scipy.spatial import cKDTree
from scipy.spatial.distance import pdist


try:
    import geopandas as gpd
    HAS_GEOPANDAS = True
except ImportError:
    HAS_GEOPANDAS = False
    gpd = None


def _check_geopandas() -> None:
    """Raise ImportError if geopandas is not available."""
    if not HAS_GEOPANDAS:
        raise ImportError(
            "geopandas is required for distance operations. "
            "Install with: pip install geopandas"
        )


def point_coordinates(gdf: "gpd.GeoDataFrame") -> np.ndarray:
    """
    (n, 2) array of x, y coordinates of point geometries.

    Raises
    ------
    ValueError
        If any geometry is not a Point.
    """
    _check_geopandas()

    geom_types = set(gdf.geometry.geom_type.unique())
    if geom_types - {"Point"}:
        raise ValueError(f"Point geometries required, got: {', '.join(sorted(geom_types))}")

    return np.column_stack([gdf.geometry.x.values, gdf.geometry.y.values])


def pairwise_distances(gdf: "gpd.GeoDataFrame") -> np.ndarray:
    """Condensed planar distance vector between all point pairs (CRS units)."""
    return pdist(point_coordinates(gdf))


def nearest_neighbor_distances(gdf: "gpd.GeoDataFrame") -> pd.Series:
    """
    Distance from each point to its nearest other point (planar).

    Raises
    ------
    ValueError
        If fewer than two points are given.
    """
    coords = point_coordinates(gdf)
    if len(coords) < 2:
        raise ValueError("At least two points are required for nearest-neighbour distances.")

    tree = cKDTree(coords)
    distances, _ = tree.query(coords, k=2)
    return pd.Series(distances[:, 1], index=gdf.index, name="nn_distance")
