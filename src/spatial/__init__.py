"""
Geospatial analysis utilities for the spatial data science workshop.

This package wraps the geospatial Python stack (geopandas, shapely,
pyproj, rasterio, pykrige, libpysal, esda, spreg) in small functions
that each return a new object: vector and raster I/O, CRS handling,
sampling, interpolation, point-pattern statistics, tessellation,
spatial weights, autocorrelation and spatial regression.

Example usage:
    from spatial import load_boundary, reproject, sample_points

    # Select a country by attribute
    ch = load_boundary('data_raw/ne_10m_admin_0_countries.zip', 'Switzerland')

    # Reproject to the Swiss national grid
    ch = reproject(ch, "EPSG:2056")

    # Seeded random sample inside the polygon
    pts = sample_points(ch, 200, seed=42)
"""

from spatial.core.io import load_spatial, save_spatial, has_geometry, list_layers, load_boundary
from spatial.core.raster import Raster, read_raster, write_raster, crop_raster, warp_raster
from spatial.core.distance import nearest_neighbor_distances
from spatial.core.crs import (
    ensure_crs,
    reproject,
    round_trip,
    compare_areas,
    geodesic_area,
    get_crs_info,
)
from spatial.sampling import sample_points, extract_values
from spatial.interpolation import (
    prediction_grid,
    idw,
    empirical_variogram,
    fit_variogram,
    ordinary_kriging,
    cross_validate,
)
from spatial.point_pattern import clark_evans, g_function, ripley_k, quadrat_test
from spatial.tessellation import voronoi_cells, zonal_mean
from spatial.weights import contiguity_weights, row_sums
from spatial.autocorrelation import global_moran, moran_table
from spatial.regression import compare_models

__all__ = [
    # I/O
    "load_spatial",
    "save_spatial",
    "has_geometry",
    "list_layers",
    "load_boundary",
    # Raster
    "Raster",
    "read_raster",
    "write_raster",
    "crop_raster",
    "warp_raster",
    # Distance
    "nearest_neighbor_distances",
    # CRS
    "ensure_crs",
    "reproject",
    "round_trip",
    "compare_areas",
    "geodesic_area",
    "get_crs_info",
    # Geostatistics
    "sample_points",
    "extract_values",
    "prediction_grid",
    "idw",
    "empirical_variogram",
    "fit_variogram",
    "ordinary_kriging",
    "cross_validate",
    # Point patterns
    "clark_evans",
    "g_function",
    "ripley_k",
    "quadrat_test",
    # Lattice statistics
    "voronoi_cells",
    "zonal_mean",
    "contiguity_weights",
    "row_sums",
    "global_moran",
    "moran_table",
    "compare_models",
]
