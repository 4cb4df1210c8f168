#!/usr/bin/env python3
"""
Synthetic demo data for running the workshop offline.

Generates a boundary layer with a Natural Earth style 'ADMIN' attribute
and a digital elevation model over the same extent, both in WGS84. The
outline is loosely modelled on Switzerland so that the Swiss projected CRS
applies; the terrain is a stationary field of rolling hills.
"""
from __future__ import annotations


import numpy as np

import geopandas as gpd
from rasterio.transform import from_origin
from shapely.geometry import Polygon

from spatial.core.raster import Raster


# Approximate extent of the demo study area (lon/lat)
DEMO_CENTER = (8.23, 46.80)
DEMO_RADII = (2.25, 0.92)
DEMO_BOUNDS = (5.5, 45.6, 11.0, 48.0)

DEM_NODATA = -9999.0


class SyntheticDataGenerator:
    """
    Seeded generator for demo boundaries and elevation.

    Parameters
    ----------
    seed : int, default=42
        Random seed; identical seeds give identical data.

    Examples
    --------
    >>> gen = SyntheticDataGenerator(seed=42)
    >>> countries = gen.generate_boundaries()
    >>> dem = gen.generate_dem(resolution=0.01)
    """

    def __init__(self, seed: int = 42):
        self.seed = seed

    def _rng(self, offset: int = 0) -> np.random.Generator:
        return np.random.default_rng(self.seed + offset)

    def _outline(self, center, radii, n_vertices: int, offset: int) -> Polygon:
        rng = self._rng(offset)
        theta = np.linspace(0, 2 * np.pi, n_vertices, endpoint=False)
        phase = rng.uniform(0, 2 * np.pi)
        radius = (
            1.0
            + 0.08 * np.sin(3 * theta + phase)
            + 0.04 * np.sin(7 * theta + 2 * phase)
            + rng.uniform(-0.02, 0.02, n_vertices)
        )
        lon = center[0] + radii[0] * radius * np.cos(theta)
        lat = center[1] + radii[1] * radius * np.sin(theta)
        return Polygon(np.column_stack([lon, lat]))

    def generate_boundaries(self, n_vertices: int = 72) -> "gpd.GeoDataFrame":
        """
        Boundary layer with the demo country and one neighbour.

        Returns
        -------
        gpd.GeoDataFrame
            Columns 'ADMIN', 'ISO_A3' and geometry, CRS EPSG:4326.
        """
        main = self._outline(DEMO_CENTER, DEMO_RADII, n_vertices, offset=0)
        neighbour = self._outline((13.3, 47.6), (3.2, 0.9), n_vertices, offset=1).difference(main)

        return gpd.GeoDataFrame(
            {
                'ADMIN': ['Switzerland', 'Austria'],
                'ISO_A3': ['CHE', 'AUT'],
            },
            geometry=[main, neighbour],
            crs='EPSG:4326',
        )

    def generate_dem(
        self,
        resolution: float = 0.01,
        bounds: tuple[float, float, float, float] = DEMO_BOUNDS,
        n_hills: int = 400,
        hill_width_km: float = 20.0,
    ) -> Raster:
        """
        Digital elevation model in metres on a lon/lat grid.

        Elevation is a sum of randomly placed Gaussian hills of one width
        plus small white noise. The field is stationary: its semivariance
        levels off at a range of about 3.5 hill widths (70 km by default),
        with a partial sill of roughly 300,000 m^2.
        """
        rng = self._rng(100)
        west, south, east, north = bounds
        width = int(round((east - west) / resolution))
        height = int(round((north - south) / resolution))

        lon = west + (np.arange(width) + 0.5) * resolution
        lat = north - (np.arange(height) + 0.5) * resolution
        lon, lat = np.meshgrid(lon, lat)

        # Local kilometre coordinates so hills are round on the ground
        km_per_degree = 111.32
        x_km = lon * km_per_degree * np.cos(np.radians(DEMO_CENTER[1]))
        y_km = lat * km_per_degree

        centers_lon = rng.uniform(west, east, n_hills)
        centers_lat = rng.uniform(south, north, n_hills)
        heights = rng.uniform(100.0, 400.0, n_hills)
        cx_km = centers_lon * km_per_degree * np.cos(np.radians(DEMO_CENTER[1]))
        cy_km = centers_lat * km_per_degree

        elevation = np.full(lon.shape, 200.0)
        for cx, cy, h in zip(cx_km, cy_km, heights):
            elevation += h * np.exp(
                -((x_km - cx) ** 2 + (y_km - cy) ** 2) / (2 * hill_width_km ** 2)
            )

        elevation += rng.normal(0.0, 15.0, elevation.shape)

        return Raster(
            elevation.astype('float32'),
            from_origin(west, north, resolution, resolution),
            'EPSG:4326',
            DEM_NODATA,
        )
