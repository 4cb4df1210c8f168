"""
Spatial data I/O utilities.

Provides functions for loading and saving vector data in GeoPackage,
Shapefile and GeoJSON formats, and for selecting boundary polygons by
attribute.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Union

import pandas as pd

try:
    import geopandas as gpd
    HAS_GEOPANDAS = True
except ImportError:
    HAS_GEOPANDAS = False
    gpd = None


# Supported file extensions and their drivers
SPATIAL_FORMATS = {
    ".gpkg": "GPKG",
    ".shp": "ESRI Shapefile",
    ".geojson": "GeoJSON",
    ".json": "GeoJSON",
}

# Zipped shapefiles are readable but not writable
READ_ONLY_FORMATS = {".zip"}


def _check_geopandas() -> None:
    """Raise ImportError if geopandas is not available."""
    if not HAS_GEOPANDAS:
        raise ImportError(
            "geopandas is required for spatial operations. "
            "Install with: pip install geopandas"
        )


def _is_url(source: Union[str, Path]) -> bool:
    return isinstance(source, str) and source.split("://", 1)[0] in ("http", "https")


def load_spatial(
    path: Union[str, Path],
    layer: Optional[str] = None,
    **kwargs,
) -> "gpd.GeoDataFrame":
    """
    Load spatial data from file or URL.

    Automatically detects format based on file extension. Supports
    GeoPackage, Shapefile (plain or zipped) and GeoJSON formats.

    Parameters
    ----------
    path : str or Path
        Path to the spatial data file, or an http(s) URL.
    layer : str, optional
        Layer name for multi-layer formats (e.g., GeoPackage).
    **kwargs
        Additional arguments passed to geopandas.read_file().

    Returns
    -------
    gpd.GeoDataFrame
        The loaded spatial data.

    Raises
    ------
    FileNotFoundError
        If a local file does not exist.
    ValueError
        If the file format is not supported.

    Examples
    --------
    >>> gdf = load_spatial('data_raw/ne_10m_admin_0_countries.zip')
    >>> gdf = load_spatial('data_work/spatial/boundary.gpkg')
    """
    _check_geopandas()

    read_kwargs = kwargs.copy()
    if layer is not None:
        read_kwargs["layer"] = layer

    if _is_url(path):
        return gpd.read_file(path, **read_kwargs)

    path = Path(path)

    if not path.exists():
        raise FileNotFoundError(f"Spatial file not found: {path}")

    ext = path.suffix.lower()
    if ext not in SPATIAL_FORMATS and ext not in READ_ONLY_FORMATS:
        supported = ", ".join(list(SPATIAL_FORMATS) + sorted(READ_ONLY_FORMATS))
        raise ValueError(
            f"Unsupported spatial format: {ext}. "
            f"Supported formats: {supported}"
        )

    return gpd.read_file(path, **read_kwargs)


def save_spatial(
    gdf: "gpd.GeoDataFrame",
    path: Union[str, Path],
    layer: Optional[str] = None,
    driver: Optional[str] = None,
    **kwargs,
) -> Path:
    """
    Save spatial data to file.

    Automatically selects driver based on file extension unless explicitly
    specified.

    Returns
    -------
    Path
        The path to the saved file.

    Examples
    --------
    >>> save_spatial(cells, 'data_work/spatial/voronoi_cells.gpkg')
    """
    _check_geopandas()

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    ext = path.suffix.lower()

    if driver is None:
        if ext not in SPATIAL_FORMATS:
            supported = ", ".join(SPATIAL_FORMATS.keys())
            raise ValueError(
                f"Cannot determine driver for extension: {ext}. "
                f"Supported formats: {supported}"
            )
        driver = SPATIAL_FORMATS[ext]

    write_kwargs = kwargs.copy()
    write_kwargs["driver"] = driver
    if layer is not None:
        write_kwargs["layer"] = layer

    gdf.to_file(path, **write_kwargs)

    return path


def load_boundary(
    source: Union[str, Path, "gpd.GeoDataFrame"],
    name: str,
    field: str = "ADMIN",
) -> "gpd.GeoDataFrame":
    """
    Select boundary polygon(s) by attribute value.

    Parameters
    ----------
    source : str, Path or gpd.GeoDataFrame
        Boundary dataset (path, URL or already loaded layer).
    name : str
        Value to match, e.g. ``"Switzerland"``.
    field : str, optional
        Attribute column to filter on. Default is ``"ADMIN"`` (Natural
        Earth admin-0 schema).

    Returns
    -------
    gpd.GeoDataFrame
        Matching features with a fresh RangeIndex.

    Raises
    ------
    ValueError
        If the field does not exist, no feature matches, or the result
        has no CRS.

    Examples
    --------
    >>> ch = load_boundary('data_raw/ne_10m_admin_0_countries.zip', 'Switzerland')
    """
    _check_geopandas()

    if isinstance(source, gpd.GeoDataFrame):
        gdf = source
    else:
        gdf = load_spatial(source)

    if field not in gdf.columns:
        raise ValueError(
            f"Attribute '{field}' not found. Available: {', '.join(map(str, gdf.columns))}"
        )

    selected = gdf.loc[gdf[field] == name]
    if selected.empty:
        raise ValueError(f"No feature with {field} == {name!r}")

    if selected.crs is None:
        raise ValueError("Boundary dataset has no CRS.")

    return selected.reset_index(drop=True)


def dissolve_boundary(gdf: "gpd.GeoDataFrame") -> "gpd.GeoDataFrame":
    """Merge all features into a single-row outline in the same CRS."""
    _check_geopandas()

    outline = gdf.geometry.union_all()
    return gpd.GeoDataFrame({"id": [0]}, geometry=[outline], crs=gdf.crs)


def has_geometry(df: Union[pd.DataFrame, "gpd.GeoDataFrame"]) -> bool:
    """
    Check if a DataFrame has a geometry column.

    Examples
    --------
    >>> df = pd.DataFrame({'x': [1, 2], 'y': [3, 4]})
    >>> has_geometry(df)
    False
    """
    if not HAS_GEOPANDAS:
        return False

    if isinstance(df, gpd.GeoDataFrame):
        return df.geometry is not None and not df.geometry.isna().all()

    return "geometry" in df.columns


def list_layers(path: Union[str, Path]) -> list[str]:
    """
    List available layers in a spatial data file.

    Examples
    --------
    >>> list_layers('data_work/spatial/workshop.gpkg')
    ['boundary', 'samples', 'cells']
    """
    _check_geopandas()

    path = Path(path)

    if not path.exists():
        raise FileNotFoundError(f"Spatial file not found: {path}")

    layers = gpd.list_layers(path)
    return list(layers["name"])
