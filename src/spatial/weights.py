"""
Spatial weights from polygon adjacency.

Thin wrappers around libpysal contiguity weights that refuse disconnected
neighbour graphs and report row-standardisation.
"""

from __future__ import annotations

import pandas as pd

import geopandas as gpd
from libpysal.weights import Queen, Rook, W


CONTIGUITY_BUILDERS = {
    "queen": Queen,
    "rook": Rook,
}

# libpysal transformation codes
TRANSFORMS = ("r", "b", "d", "v", "o")


def contiguity_weights(
    gdf: "gpd.GeoDataFrame",
    kind: str = "queen",
    transform: str = "r",
    allow_disconnected: bool = False,
) -> W:
    """
    Build contiguity weights for polygons.

    Parameters
    ----------
    gdf : gpd.GeoDataFrame
        Polygons. Units are identified by position (0..n-1).
    kind : str, optional
        'queen' (shared vertex or edge) or 'rook' (shared edge only).
    transform : str, optional
        libpysal transformation; 'r' row-standardises. Default is 'r'.
    allow_disconnected : bool, optional
        Accept islands or several connected components. Default False.

    Returns
    -------
    libpysal.weights.W

    Raises
    ------
    ValueError
        If ``kind`` or ``transform`` is unknown, or the neighbour graph is
        disconnected and ``allow_disconnected`` is False.
    """
    if kind not in CONTIGUITY_BUILDERS:
        raise ValueError(f"Unknown contiguity '{kind}'. Options: {', '.join(CONTIGUITY_BUILDERS)}")
    if transform not in TRANSFORMS:
        raise ValueError(f"Unknown weights transform '{transform}'. Options: {', '.join(TRANSFORMS)}")

    w = CONTIGUITY_BUILDERS[kind].from_dataframe(
        gdf.reset_index(drop=True), use_index=False, silence_warnings=True
    )

    if not allow_disconnected and (w.islands or w.n_components > 1):
        raise ValueError(
            f"Neighbour graph is disconnected: {len(w.islands)} island(s), "
            f"{w.n_components} component(s). Pass allow_disconnected=True to continue."
        )

    w.transform = transform
    return w


def row_sums(w: W) -> pd.Series:
    """Sum of neighbour weights for each unit."""
    return pd.Series(
        {unit: float(sum(w.weights[unit])) for unit in w.id_order},
        name="weight_sum",
    )


def weights_summary(w: W) -> dict:
    """Descriptive statistics of a weights structure."""
    cardinalities = pd.Series(w.cardinalities)
    return {
        "n": w.n,
        "transform": w.transform,
        "mean_neighbors": float(w.mean_neighbors),
        "min_neighbors": int(cardinalities.min()),
        "max_neighbors": int(cardinalities.max()),
        "n_islands": len(w.islands),
        "n_components": int(w.n_components),
        "pct_nonzero": float(w.pct_nonzero),
    }
