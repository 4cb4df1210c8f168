"""
Voronoi tessellation and zonal aggregation.

Partitions the study area into Voronoi cells around sample points and
summarises raster values within each cell.
"""

from __future__ import annotations

import numpy as np

import geopandas as gpd
import shapely
from rasterio.features import rasterize

from spatial.core.raster import Raster


def voronoi_cells(
    points: "gpd.GeoDataFrame",
    boundary: "gpd.GeoDataFrame",
) -> "gpd.GeoDataFrame":
    """
    Voronoi cells of the points, clipped to the boundary.

    Parameters
    ----------
    points : gpd.GeoDataFrame
        Generating points (distinct locations) in a projected CRS.
    boundary : gpd.GeoDataFrame
        Study area; reprojected to the points' CRS.

    Returns
    -------
    gpd.GeoDataFrame
        One polygon per point, in point order, carrying the point
        attributes plus 'cell_id'. Point geometries are dropped.

    Raises
    ------
    ValueError
        If fewer than three points are given or locations repeat.
    """
    if len(points) < 3:
        raise ValueError("At least three points are required for a Voronoi tessellation.")
    if points.geometry.duplicated().any():
        raise ValueError("Voronoi generators must be distinct; found duplicate locations.")

    window = boundary.to_crs(points.crs).geometry.union_all()
    generators = shapely.MultiPoint(list(points.geometry))
    diagram = shapely.voronoi_polygons(generators, extend_to=window.envelope.buffer(1.0))

    polygons = gpd.GeoDataFrame(geometry=list(diagram.geoms), crs=points.crs)
    joined = gpd.sjoin(
        points[[points.geometry.name]].reset_index(drop=True),
        polygons,
        how="left",
        predicate="within",
    )
    joined = joined[~joined.index.duplicated(keep="first")]

    if joined["index_right"].isna().any():
        raise ValueError("Could not match every point to a Voronoi cell.")

    cell_geoms = polygons.geometry.values[joined["index_right"].astype(int).to_numpy()]

    cells = gpd.GeoDataFrame(
        points.drop(columns=points.geometry.name).reset_index(drop=True),
        geometry=shapely.intersection(cell_geoms, window),
        crs=points.crs,
    )
    cells.insert(0, "cell_id", np.arange(len(cells)))
    return cells


def zonal_mean(
    cells: "gpd.GeoDataFrame",
    raster: Raster,
    column: str = "elevation",
    band: int = 1,
) -> "gpd.GeoDataFrame":
    """
    Summarise raster values within each polygon.

    A raster cell belongs to the polygon containing its centre. Polygons
    without any valid raster cell get NaN statistics.

    Returns
    -------
    gpd.GeoDataFrame
        Copy of ``cells`` with '<column>_mean', '<column>_std' and
        'n_raster_cells' columns.
    """
    if cells.crs is None:
        raise ValueError("Polygons have no CRS.")

    polygons = cells.to_crs(raster.crs.to_wkt())
    labels = rasterize(
        ((geom, i) for i, geom in enumerate(polygons.geometry) if geom is not None and not geom.is_empty),
        out_shape=raster.shape,
        transform=raster.transform,
        fill=-1,
        dtype="int32",
    )

    values = raster.band(band)
    valid = (labels >= 0) & ~np.ma.getmaskarray(values)
    ids = labels[valid]
    data = values.data[valid].astype("float64")

    n = len(cells)
    counts = np.bincount(ids, minlength=n)
    sums = np.bincount(ids, weights=data, minlength=n)
    squares = np.bincount(ids, weights=data ** 2, minlength=n)

    with np.errstate(invalid="ignore", divide="ignore"):
        means = np.where(counts > 0, sums / counts, np.nan)
        variances = np.where(counts > 0, squares / counts - means ** 2, np.nan)

    result = cells.copy()
    result[f"{column}_mean"] = means
    result[f"{column}_std"] = np.sqrt(np.clip(variances, 0, None))
    result["n_raster_cells"] = counts
    return result
