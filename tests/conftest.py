#!/usr/bin/env python3
"""
Shared pytest fixtures for the test suite.

This module provides common fixtures used across test modules including:
- Temporary directories and redirected output locations
- Small synthetic geometries (square study area, polygon lattice)
- The seeded demo boundary, DEM and point sample
"""
from __future__ import annotations

import sys
from pathlib import Path

# Add src directory to Python path for test imports
_project_root = Path(__file__).parent.parent
_src_path = _project_root / 'src'
if str(_src_path) not in sys.path:
    sys.path.insert(0, str(_src_path))

import shutil
import tempfile

import numpy as np
import pytest

import geopandas as gpd
from shapely.geometry import box

# Swiss national grid origin used for synthetic projected data
LV95 = 'EPSG:2056'
X0, Y0 = 2_600_000.0, 1_200_000.0


# ============================================================
# PATH FIXTURES
# ============================================================

@pytest.fixture
def project_root() -> Path:
    """Get the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def temp_dir():
    """Create a temporary directory that is cleaned up after tests."""
    temp_path = Path(tempfile.mkdtemp())
    yield temp_path
    shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def isolated_outputs(temp_dir, monkeypatch):
    """
    Redirect diagnostics, figures and QA reports to a temporary tree.

    Returns a dict of the redirected directories.
    """
    import config
    from stages import _qa_utils

    dirs = {
        'diagnostics': temp_dir / 'data_work' / 'diagnostics',
        'figures': temp_dir / 'manuscript_quarto' / 'figures',
        'quality': temp_dir / 'data_work' / 'quality',
        'spatial': temp_dir / 'data_work' / 'spatial',
    }
    monkeypatch.setattr(config, 'DIAGNOSTICS_DIR', dirs['diagnostics'])
    monkeypatch.setattr(config, 'MANUSCRIPT_FIGURES_DIR', dirs['figures'])
    monkeypatch.setattr(_qa_utils, 'QA_REPORTS_DIR', dirs['quality'])
    return dirs


# ============================================================
# GEOMETRY FIXTURES
# ============================================================

@pytest.fixture
def square_boundary() -> gpd.GeoDataFrame:
    """100 km x 100 km square study area in LV95."""
    return gpd.GeoDataFrame(
        {'id': [0]},
        geometry=[box(X0, Y0, X0 + 100_000, Y0 + 100_000)],
        crs=LV95,
    )


@pytest.fixture
def lattice_gdf() -> gpd.GeoDataFrame:
    """
    10 x 10 grid of 1 km squares.

    Columns: 'row', 'col', 'trend' (row + col, strongly clustered) and
    'checker' ((row + col) % 2, perfectly dispersed under rook contiguity).
    """
    rows, cols = np.divmod(np.arange(100), 10)
    geoms = [
        box(X0 + c * 1000, Y0 + r * 1000, X0 + (c + 1) * 1000, Y0 + (r + 1) * 1000)
        for r, c in zip(rows, cols)
    ]
    return gpd.GeoDataFrame(
        {
            'row': rows,
            'col': cols,
            'trend': (rows + cols).astype(float),
            'checker': ((rows + cols) % 2).astype(float),
        },
        geometry=geoms,
        crs=LV95,
    )


@pytest.fixture
def trend_points(square_boundary) -> gpd.GeoDataFrame:
    """150 random points with a smooth planar trend plus small noise."""
    rng = np.random.default_rng(0)
    x = X0 + rng.uniform(0, 100_000, 150)
    y = Y0 + rng.uniform(0, 100_000, 150)
    value = (
        500.0
        + 0.01 * (x - X0)
        + 0.005 * (y - Y0)
        + 300.0 * np.sin((x - X0) / 20_000.0)
        + rng.normal(0, 5, 150)
    )
    return gpd.GeoDataFrame(
        {'sample_id': np.arange(150), 'elevation': value},
        geometry=gpd.points_from_xy(x, y),
        crs=LV95,
    )


# ============================================================
# DEMO DATA FIXTURES
# ============================================================

@pytest.fixture(scope='session')
def demo_countries() -> gpd.GeoDataFrame:
    """Synthetic admin-0 layer in WGS84."""
    from utils.synthetic_data import SyntheticDataGenerator
    return SyntheticDataGenerator(seed=42).generate_boundaries()


@pytest.fixture(scope='session')
def demo_boundary(demo_countries) -> gpd.GeoDataFrame:
    """Demo country outline in LV95."""
    from spatial.core.crs import reproject
    from spatial.core.io import dissolve_boundary, load_boundary

    country = load_boundary(demo_countries, 'Switzerland', 'ADMIN')
    return reproject(dissolve_boundary(country), LV95)


@pytest.fixture(scope='session')
def demo_dem():
    """Synthetic DEM in WGS84."""
    from utils.synthetic_data import SyntheticDataGenerator
    return SyntheticDataGenerator(seed=42).generate_dem(resolution=0.02)


@pytest.fixture(scope='session')
def projected_dem(demo_dem, demo_boundary):
    """Demo DEM cropped to the boundary and warped to LV95 at 2 km."""
    from stages.s01_elevation import prepare_dem
    return prepare_dem(demo_dem, demo_boundary, LV95, resolution=2000.0)


@pytest.fixture(scope='session')
def demo_points(demo_boundary, projected_dem) -> gpd.GeoDataFrame:
    """200 seeded sample points with elevation."""
    from spatial.sampling import extract_values, sample_points

    points = sample_points(demo_boundary, 200, seed=42)
    return extract_values(points, projected_dem, column='elevation')


@pytest.fixture(scope='session')
def demo_interpolation(demo_boundary, demo_points):
    """Interpolation stage result on a coarse 5 km grid."""
    from config import load_parameters
    from stages.s03_interpolate import interpolate

    params = load_parameters()
    params['grid_resolution'] = 5000.0
    return interpolate(demo_points, demo_boundary, params)


@pytest.fixture(scope='session')
def demo_cells(demo_points, demo_boundary, projected_dem) -> gpd.GeoDataFrame:
    """Voronoi cells of the demo sample with zonal mean elevation."""
    from stages.s05_tessellate import tessellate
    return tessellate(demo_points, demo_boundary, projected_dem)
