"""
Raster data utilities.

Provides an in-memory ``Raster`` container (band array, affine transform,
CRS, nodata value) and rasterio-backed functions for reading, writing,
cropping to polygons, warping to another CRS and sampling at points.
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Optional, Union

import numpy as np
import pandas as pd

try:
    import geopandas as gpd
    import rasterio
    import rasterio.mask
    from affine import Affine
    from rasterio.crs import CRS as RioCRS
    from rasterio.io import MemoryFile
    from rasterio.transform import array_bounds, rowcol
    from rasterio.warp import Resampling, calculate_default_transform, reproject
    HAS_RASTERIO = True
except ImportError:
    HAS_RASTERIO = False
    rasterio = None


def _check_rasterio() -> None:
    """Raise ImportError if rasterio is not available."""
    if not HAS_RASTERIO:
        raise ImportError(
            "rasterio and geopandas are required for raster operations. "
            "Install with: pip install rasterio geopandas"
        )


@dataclass
class Raster:
    """
    A regular grid of cell values with georeferencing.

    Attributes
    ----------
    data : np.ndarray
        Cell values with shape (bands, rows, cols). A 2-D array is
        promoted to a single band.
    transform : affine.Affine
        Maps (col, row) to (x, y) of the upper-left cell corner.
    crs : rasterio.crs.CRS
        Coordinate reference system of the grid.
    nodata : float, optional
        Value marking empty cells. NaN cells are always treated as empty.
    """
    data: np.ndarray
    transform: "Affine"
    crs: "RioCRS"
    nodata: Optional[float] = None

    def __post_init__(self):
        self.data = np.asarray(self.data)
        if self.data.ndim == 2:
            self.data = self.data[np.newaxis, :, :]
        if self.data.ndim != 3:
            raise ValueError(f"Raster data must be 2-D or 3-D, got {self.data.ndim}-D")
        if self.crs is not None and not isinstance(self.crs, RioCRS):
            self.crs = RioCRS.from_user_input(self.crs)

    @property
    def count(self) -> int:
        return self.data.shape[0]

    @property
    def height(self) -> int:
        return self.data.shape[1]

    @property
    def width(self) -> int:
        return self.data.shape[2]

    @property
    def shape(self) -> tuple[int, int]:
        return self.height, self.width

    @property
    def bounds(self) -> tuple[float, float, float, float]:
        """(left, bottom, right, top) in CRS units."""
        return array_bounds(self.height, self.width, self.transform)

    @property
    def res(self) -> tuple[float, float]:
        return abs(self.transform.a), abs(self.transform.e)

    def band(self, index: int = 1) -> np.ma.MaskedArray:
        """Return a 1-based band as a masked array (nodata and NaN masked)."""
        if not 1 <= index <= self.count:
            raise IndexError(f"Band {index} out of range 1..{self.count}")
        values = self.data[index - 1]
        mask = ~np.isfinite(values) if np.issubdtype(values.dtype, np.floating) else np.zeros(values.shape, bool)
        if self.nodata is not None and not np.isnan(self.nodata):
            mask |= values == self.nodata
        return np.ma.MaskedArray(values, mask=mask)

    def copy(self) -> "Raster":
        return Raster(self.data.copy(), self.transform, self.crs, self.nodata)

    def profile(self) -> dict:
        """rasterio creation options for this raster."""
        return {
            "driver": "GTiff",
            "height": self.height,
            "width": self.width,
            "count": self.count,
            "dtype": self.data.dtype.name,
            "crs": self.crs,
            "transform": self.transform,
            "nodata": self.nodata,
        }

    def summary(self, index: int = 1) -> dict:
        """Basic statistics of a band over valid cells."""
        values = self.band(index).compressed()
        n_cells = self.height * self.width
        if values.size == 0:
            return {"n_valid": 0, "n_cells": n_cells, "min": np.nan, "max": np.nan, "mean": np.nan}
        return {
            "n_valid": int(values.size),
            "n_cells": n_cells,
            "min": float(values.min()),
            "max": float(values.max()),
            "mean": float(values.mean()),
        }

    def __repr__(self) -> str:
        return (
            f"Raster(bands={self.count}, shape={self.shape}, res={self.res}, "
            f"crs={self.crs.to_string() if self.crs else None})"
        )


def raster_from_array(
    array: np.ndarray,
    transform: "Affine",
    crs,
    nodata: Optional[float] = None,
) -> Raster:
    """Wrap an array and its georeferencing in a ``Raster``."""
    _check_rasterio()
    return Raster(np.asarray(array), transform, crs, nodata)


def _as_float(raster: Raster) -> Raster:
    """Float copy with NaN as nodata, so masked cells survive resampling."""
    data = raster.data.astype("float64")
    if raster.nodata is not None and not np.isnan(raster.nodata):
        data[raster.data == raster.nodata] = np.nan
    return Raster(data, raster.transform, raster.crs, np.nan)


@contextmanager
def _in_memory(raster: Raster) -> Iterator["rasterio.io.DatasetReader"]:
    """Open a Raster as a rasterio dataset backed by memory."""
    with MemoryFile() as memfile:
        with memfile.open(**raster.profile()) as dst:
            dst.write(raster.data)
        with memfile.open() as src:
            yield src


def read_raster(path: Union[str, Path]) -> Raster:
    """
    Read all bands of a raster file.

    Raises
    ------
    FileNotFoundError
        If the file does not exist.
    """
    _check_rasterio()

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Raster file not found: {path}")

    with rasterio.open(path) as src:
        return Raster(src.read(), src.transform, src.crs, src.nodata)


def write_raster(raster: Raster, path: Union[str, Path]) -> Path:
    """Write a Raster to a GeoTIFF file."""
    _check_rasterio()

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    with rasterio.open(path, "w", **raster.profile()) as dst:
        dst.write(raster.data)

    return path


def crop_raster(
    raster: Raster,
    shapes: "gpd.GeoDataFrame",
    crop: bool = True,
    all_touched: bool = False,
) -> Raster:
    """
    Mask cells outside polygons and optionally crop to their extent.

    Parameters
    ----------
    raster : Raster
        Input grid.
    shapes : gpd.GeoDataFrame
        Polygons with a defined CRS; reprojected to the raster CRS.
    crop : bool, optional
        Crop the grid to the polygons' bounding box. Default is True.
    all_touched : bool, optional
        Keep every cell touched by a polygon, not only cells whose centre
        lies inside.

    Returns
    -------
    Raster
        New float raster with NaN outside the polygons.

    Raises
    ------
    ValueError
        If the polygons have no CRS or do not overlap the raster.
    """
    _check_rasterio()

    if shapes.crs is None:
        raise ValueError("Crop polygons have no CRS.")

    shapes = shapes.to_crs(raster.crs.to_wkt())
    source = _as_float(raster)

    with _in_memory(source) as src:
        out_image, out_transform = rasterio.mask.mask(
            src,
            list(shapes.geometry),
            crop=crop,
            all_touched=all_touched,
            nodata=np.nan,
            filled=True,
        )

    return Raster(out_image, out_transform, raster.crs, np.nan)


def warp_raster(
    raster: Raster,
    dst_crs: str,
    resolution: Optional[float] = None,
    resampling: str = "bilinear",
) -> Raster:
    """
    Reproject a raster to another CRS.

    Parameters
    ----------
    raster : Raster
        Input grid.
    dst_crs : str
        Target CRS.
    resolution : float, optional
        Target cell size in target CRS units. Chosen by rasterio if None.
    resampling : str, optional
        Name of a ``rasterio.warp.Resampling`` member, e.g. 'nearest',
        'bilinear', 'cubic', 'average'. Default is 'bilinear'.

    Returns
    -------
    Raster
        New float raster in ``dst_crs`` with NaN as nodata.
    """
    _check_rasterio()

    try:
        method = Resampling[resampling]
    except KeyError:
        valid = ", ".join(m.name for m in Resampling)
        raise ValueError(f"Unknown resampling method '{resampling}'. Options: {valid}") from None

    target_crs = RioCRS.from_user_input(dst_crs)
    source = _as_float(raster)

    kwargs = {}
    if resolution is not None:
        kwargs["resolution"] = resolution

    transform, width, height = calculate_default_transform(
        raster.crs, target_crs, raster.width, raster.height, *raster.bounds, **kwargs
    )

    destination = np.full((raster.count, height, width), np.nan, dtype="float64")
    for i in range(raster.count):
        reproject(
            source=source.data[i],
            destination=destination[i],
            src_transform=raster.transform,
            src_crs=raster.crs,
            src_nodata=np.nan,
            dst_transform=transform,
            dst_crs=target_crs,
            dst_nodata=np.nan,
            resampling=method,
        )

    return Raster(destination, transform, target_crs, np.nan)


def sample_raster(
    raster: Raster,
    points: "gpd.GeoDataFrame",
    band: int = 1,
) -> pd.Series:
    """
    Extract cell values at point locations.

    Points are reprojected to the raster CRS. Points outside the grid or
    on empty cells get NaN.

    Returns
    -------
    pd.Series
        Values indexed like ``points``.
    """
    _check_rasterio()

    if points.crs is None:
        raise ValueError("Points have no CRS.")

    pts = points.to_crs(raster.crs.to_wkt())
    values = np.full(len(pts), np.nan)
    if len(pts) == 0:
        return pd.Series(values, index=points.index, dtype="float64")

    rows, cols = rowcol(raster.transform, pts.geometry.x.values, pts.geometry.y.values)
    rows = np.asarray(rows)
    cols = np.asarray(cols)

    inside = (rows >= 0) & (rows < raster.height) & (cols >= 0) & (cols < raster.width)
    grid = raster.band(band).astype("float64").filled(np.nan)
    values[inside] = grid[rows[inside], cols[inside]]

    return pd.Series(values, index=points.index, dtype="float64")


def cell_centers(transform: "Affine", shape: tuple[int, int]) -> tuple[np.ndarray, np.ndarray]:
    """x and y coordinates of every cell centre, each with the grid's shape."""
    rows, cols = np.indices(shape)
    xs, ys = transform * (cols + 0.5, rows + 0.5)
    return np.asarray(xs), np.asarray(ys)


def raster_to_points(raster: Raster, band: int = 1, column: str = "value") -> "gpd.GeoDataFrame":
    """Cell centres of all valid cells as a point GeoDataFrame."""
    _check_rasterio()

    values = raster.band(band)
    xs, ys = cell_centers(raster.transform, raster.shape)
    valid = ~np.ma.getmaskarray(values)

    return gpd.GeoDataFrame(
        {column: values.data[valid].astype("float64")},
        geometry=gpd.points_from_xy(xs[valid], ys[valid]),
        crs=raster.crs.to_wkt(),
    )
