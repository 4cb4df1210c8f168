"""
Global spatial autocorrelation tests.

Wraps ``esda.Moran`` and collects results into tables for reporting.
"""

from __future__ import annotations

from dataclasses import dataclass, asdict
from typing import Iterable, Optional

import numpy as np
import pandas as pd

import geopandas as gpd
from esda.moran import Moran
from libpysal.weights import W


@dataclass
class MoranResult:
    """Results of a global Moran's I test."""
    variable: str
    I: float
    expected_I: float
    z_norm: float
    p_norm: float
    z_sim: Optional[float]
    p_sim: Optional[float]
    permutations: int
    alpha: float

    @property
    def p_value(self) -> float:
        """Permutation p-value when available, otherwise normal approximation."""
        return self.p_sim if self.permutations else self.p_norm

    @property
    def significant(self) -> bool:
        return self.p_value < self.alpha

    @property
    def pattern(self) -> str:
        if not self.significant:
            return "Random"
        return "Clustered" if self.I > self.expected_I else "Dispersed"

    def to_dict(self) -> dict:
        return {
            **asdict(self),
            "p_value": self.p_value,
            "significant": self.significant,
            "pattern": self.pattern,
        }


def global_moran(
    values,
    w: W,
    variable: str = "y",
    permutations: int = 999,
    seed: Optional[int] = None,
    alpha: float = 0.05,
) -> MoranResult:
    """
    Global Moran's I for values aligned with ``w.id_order``.

    Parameters
    ----------
    values : array-like
        One value per spatial unit.
    w : libpysal.weights.W
        Spatial weights; its transformation is used as is.
    permutations : int, optional
        Number of random permutations for the pseudo p-value. 0 disables
        the permutation test.
    seed : int, optional
        Seed for the permutation test.
    alpha : float, optional
        Test size. Default is 0.05.

    Raises
    ------
    ValueError
        If the number of values does not match ``w.n`` or values are not
        finite.
    """
    y = np.asarray(values, dtype="float64").ravel()
    if y.shape[0] != w.n:
        raise ValueError(f"Got {y.shape[0]} values for {w.n} spatial units.")
    if not np.all(np.isfinite(y)):
        raise ValueError(f"Variable '{variable}' contains missing or infinite values.")

    if seed is not None:
        # esda draws permutations from numpy's global generator
        np.random.seed(seed)

    mi = Moran(y, w, transformation=w.transform, permutations=permutations)

    return MoranResult(
        variable=variable,
        I=float(mi.I),
        expected_I=float(mi.EI),
        z_norm=float(mi.z_norm),
        p_norm=float(mi.p_norm),
        z_sim=float(mi.z_sim) if permutations else None,
        p_sim=float(mi.p_sim) if permutations else None,
        permutations=permutations,
        alpha=alpha,
    )


def moran_table(
    gdf: "gpd.GeoDataFrame",
    columns: Iterable[str],
    w: W,
    permutations: int = 999,
    seed: Optional[int] = None,
    alpha: float = 0.05,
) -> pd.DataFrame:
    """Moran's I for several columns, one row per column."""
    rows = []
    for column in columns:
        if column not in gdf.columns:
            raise ValueError(f"Column '{column}' not found.")
        result = global_moran(
            gdf[column].to_numpy(), w, variable=column,
            permutations=permutations, seed=seed, alpha=alpha,
        )
        rows.append(result.to_dict())
    return pd.DataFrame(rows)


def add_random_attribute(
    gdf: "gpd.GeoDataFrame",
    column: str = "random",
    seed: Optional[int] = None,
) -> "gpd.GeoDataFrame":
    """Copy of ``gdf`` with an i.i.d. standard normal column."""
    rng = np.random.default_rng(seed)
    result = gdf.copy()
    result[column] = rng.standard_normal(len(gdf))
    return result
