"""
Coordinate Reference System (CRS) utilities.

Provides functions for checking, transforming and comparing coordinate
reference systems, including area comparisons between projected and
ellipsoidal (geodesic) methods.
"""

from __future__ import annotations

from typing import Iterable
import warnings

import numpy as np
import pandas as pd

try:
    import geopandas as gpd
    import shapely
    from pyproj import CRS, Geod
    HAS_GEOPANDAS = True
except ImportError:
    HAS_GEOPANDAS = False
    gpd = None
    shapely = None
    CRS = None
    Geod = None


# Common CRS codes
WGS84 = "EPSG:4326"

# Ellipsoid used for geodesic areas
ELLIPSOID = "WGS84"


def _check_geopandas() -> None:
    """Raise ImportError if geopandas is not available."""
    if not HAS_GEOPANDAS:
        raise ImportError(
            "geopandas and pyproj are required for CRS operations. "
            "Install with: pip install geopandas pyproj"
        )


def ensure_crs(
    gdf: "gpd.GeoDataFrame",
    target_crs: str = WGS84,
    allow_override: bool = False,
) -> "gpd.GeoDataFrame":
    """
    Ensure a GeoDataFrame has the specified CRS.

    If the GeoDataFrame has a different CRS, it will be reprojected.
    If the GeoDataFrame has no CRS, either the target CRS will be assigned
    (if allow_override=True) or an error will be raised.

    Parameters
    ----------
    gdf : gpd.GeoDataFrame
        The GeoDataFrame to check/transform.
    target_crs : str, optional
        Target CRS as EPSG code or proj4 string. Default is WGS84 (EPSG:4326).
    allow_override : bool, optional
        If True and the GeoDataFrame has no CRS, assign the target CRS
        without reprojection. Default is False.

    Returns
    -------
    gpd.GeoDataFrame
        GeoDataFrame with the target CRS.

    Raises
    ------
    ValueError
        If the GeoDataFrame has no CRS and allow_override is False.

    Warnings
    --------
    Using ``allow_override=True`` assumes the coordinates are already in
    the target CRS. Only use this when you are certain of the original
    coordinate system.

    Examples
    --------
    >>> gdf = ensure_crs(gdf, target_crs="EPSG:4326")
    >>> gdf = ensure_crs(gdf, target_crs="EPSG:2056")  # Swiss LV95
    """
    _check_geopandas()

    gdf = gdf.copy()

    if gdf.crs is None:
        if allow_override:
            gdf = gdf.set_crs(target_crs)
            warnings.warn(
                f"GeoDataFrame had no CRS. Assigned {target_crs} without reprojection.",
                UserWarning,
            )
        else:
            raise ValueError(
                "GeoDataFrame has no CRS. Set allow_override=True to assign "
                f"{target_crs} without reprojection, or set CRS explicitly."
            )
    elif not gdf.crs.equals(CRS.from_user_input(target_crs)):
        gdf = gdf.to_crs(target_crs)

    return gdf


def reproject(
    gdf: "gpd.GeoDataFrame",
    target_crs: str,
) -> "gpd.GeoDataFrame":
    """
    Reproject a GeoDataFrame to a target CRS.

    Unlike :func:`ensure_crs`, a missing source CRS is never assigned.

    Parameters
    ----------
    gdf : gpd.GeoDataFrame
        Data with a defined CRS.
    target_crs : str
        Target CRS (EPSG code, WKT or proj string).

    Returns
    -------
    gpd.GeoDataFrame
        New GeoDataFrame in the target CRS.

    Raises
    ------
    ValueError
        If the GeoDataFrame has no CRS.
    pyproj.exceptions.CRSError
        If ``target_crs`` cannot be parsed.
    """
    _check_geopandas()

    if gdf.crs is None:
        raise ValueError("Cannot reproject a GeoDataFrame without a CRS.")

    target = CRS.from_user_input(target_crs)
    return gdf.to_crs(target)


def round_trip(
    gdf: "gpd.GeoDataFrame",
    via_crs: str,
) -> "gpd.GeoDataFrame":
    """Reproject to ``via_crs`` and back to the original CRS."""
    _check_geopandas()

    original = gdf.crs
    return reproject(reproject(gdf, via_crs), original)


def max_coordinate_shift(
    gdf1: "gpd.GeoDataFrame",
    gdf2: "gpd.GeoDataFrame",
) -> float:
    """
    Largest absolute vertex displacement between two aligned GeoDataFrames.

    Both inputs must hold the same geometries vertex for vertex (e.g. a
    layer and its round-tripped copy).

    Raises
    ------
    ValueError
        If the geometries do not have the same number of vertices.
    """
    _check_geopandas()

    coords1 = shapely.get_coordinates(gdf1.geometry.values)
    coords2 = shapely.get_coordinates(gdf2.geometry.values)

    if coords1.shape != coords2.shape:
        raise ValueError(
            f"Vertex counts differ: {coords1.shape[0]} vs {coords2.shape[0]}"
        )

    if coords1.size == 0:
        return 0.0

    return float(np.abs(coords1 - coords2).max())


def geodesic_area(gdf: "gpd.GeoDataFrame") -> pd.Series:
    """
    Ellipsoidal area of each geometry in square metres.

    Areas are computed on the WGS84 ellipsoid with pyproj's geodesic
    routines, so no map projection distortion is involved.

    Parameters
    ----------
    gdf : gpd.GeoDataFrame
        Polygons with a defined CRS.

    Returns
    -------
    pd.Series
        Area per geometry in m², indexed like ``gdf``.
    """
    _check_geopandas()

    lonlat = reproject(gdf, WGS84)
    geod = Geod(ellps=ELLIPSOID)
    areas = [
        abs(geod.geometry_area_perimeter(geom)[0]) if geom is not None else np.nan
        for geom in lonlat.geometry
    ]
    return pd.Series(areas, index=gdf.index, name="area_m2")


def compare_areas(
    gdf: "gpd.GeoDataFrame",
    projected_crs: Iterable[str],
) -> pd.DataFrame:
    """
    Compare total polygon area between projected CRSs and the ellipsoid.

    Parameters
    ----------
    gdf : gpd.GeoDataFrame
        Polygons with a defined CRS.
    projected_crs : iterable of str
        Projected CRSs in which to measure planar area.

    Returns
    -------
    pd.DataFrame
        Columns ``method``, ``area_km2`` and ``rel_diff`` (relative
        difference to the ellipsoidal reference). The ellipsoidal row
        comes first.

    Raises
    ------
    ValueError
        If one of the CRSs is geographic (planar area would be in degrees²).

    Examples
    --------
    >>> table = compare_areas(boundary, ["EPSG:2056", "EPSG:3035"])
    >>> table["rel_diff"].abs().max() < 0.01
    True
    """
    _check_geopandas()

    reference = geodesic_area(gdf).sum() / 1e6
    rows = [{"method": "ellipsoidal", "area_km2": reference, "rel_diff": 0.0}]

    for crs in projected_crs:
        if CRS.from_user_input(crs).is_geographic:
            raise ValueError(f"Planar area requires a projected CRS, got {crs}")
        area = reproject(gdf, crs).geometry.area.sum() / 1e6
        rows.append({
            "method": str(crs),
            "area_km2": area,
            "rel_diff": (area - reference) / reference,
        })

    return pd.DataFrame(rows)


def get_crs_info(gdf: "gpd.GeoDataFrame") -> dict:
    """
    Get information about a GeoDataFrame's CRS.

    Returns
    -------
    dict
        Keys 'crs', 'epsg', 'name', 'is_geographic', 'is_projected' and
        'units'. All values are None when the CRS is missing.
    """
    _check_geopandas()

    if gdf.crs is None:
        return {
            "crs": None,
            "epsg": None,
            "name": None,
            "is_geographic": None,
            "is_projected": None,
            "units": None,
        }

    crs = gdf.crs

    try:
        units = crs.axis_info[0].unit_name
    except (AttributeError, IndexError):
        units = None

    return {
        "crs": crs,
        "epsg": crs.to_epsg(),
        "name": crs.name,
        "is_geographic": crs.is_geographic,
        "is_projected": crs.is_projected,
        "units": units,
    }
