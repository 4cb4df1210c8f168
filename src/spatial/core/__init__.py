"""
Core spatial utilities: vector and raster I/O, distances, and CRS handling.
"""

from spatial.core.io import load_spatial, save_spatial, load_boundary, dissolve_boundary, has_geometry
from spatial.core.raster import (
    Raster,
    read_raster,
    write_raster,
    crop_raster,
    warp_raster,
    sample_raster,
)
from spatial.core.distance import nearest_neighbor_distances
from spatial.core.crs import ensure_crs, reproject, round_trip, compare_areas

__all__ = [
    "load_spatial",
    "save_spatial",
    "load_boundary",
    "dissolve_boundary",
    "has_geometry",
    "Raster",
    "read_raster",
    "write_raster",
    "crop_raster",
    "warp_raster",
    "sample_raster",
    "nearest_neighbor_distances",
    "ensure_crs",
    "reproject",
    "round_trip",
    "compare_areas",
]
