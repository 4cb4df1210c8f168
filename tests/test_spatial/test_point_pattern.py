"""Tests for point pattern statistics."""

import pytest
import numpy as np
import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent / "src"))

import geopandas as gpd
from shapely.geometry import Point

from spatial.point_pattern import (
    clark_evans,
    g_function,
    quadrat_test,
    ripley_k,
    summarize_pattern,
)
from spatial.sampling import sample_points

from conftest import X0, Y0

AREA = 100_000.0 ** 2


@pytest.fixture
def regular_points():
    """10 x 10 lattice with 10 km spacing, centred in the 100 km square."""
    offsets = 5_000 + 10_000 * np.arange(10)
    gx, gy = np.meshgrid(X0 + offsets, Y0 + offsets)
    return gpd.GeoDataFrame(geometry=gpd.points_from_xy(gx.ravel(), gy.ravel()), crs="EPSG:2056")


@pytest.fixture
def clustered_points():
    """100 points packed into a 2 km patch."""
    rng = np.random.default_rng(1)
    x = X0 + 49_000 + rng.uniform(0, 2_000, 100)
    y = Y0 + 49_000 + rng.uniform(0, 2_000, 100)
    return gpd.GeoDataFrame(geometry=gpd.points_from_xy(x, y), crs="EPSG:2056")


@pytest.fixture
def random_pattern(square_boundary):
    return sample_points(square_boundary, 200, seed=42)


class TestClarkEvans:
    """Tests for clark_evans."""

    def test_regular(self, regular_points):
        result = clark_evans(regular_points, AREA)

        assert result["R"] == pytest.approx(2.0)
        assert result["mean_nn"] == pytest.approx(10_000.0)
        assert result["p_value"] < 0.001

    def test_clustered(self, clustered_points):
        result = clark_evans(clustered_points, AREA)
        assert result["R"] < 0.1
        assert result["z"] < 0
        assert result["p_value"] < 0.001

    def test_random(self, random_pattern):
        result = clark_evans(random_pattern, AREA)
        assert 0.85 < result["R"] < 1.2
        assert result["n"] == 200
        assert result["intensity"] == pytest.approx(200 / AREA)

    def test_area_positive(self, regular_points):
        with pytest.raises(ValueError, match="area must be positive"):
            clark_evans(regular_points, 0)

    def test_geographic_raises(self):
        lonlat = gpd.GeoDataFrame(geometry=[Point(7, 46), Point(8, 47)], crs="EPSG:4326")
        with pytest.raises(ValueError, match="projected CRS"):
            clark_evans(lonlat, 1.0)

    def test_single_point_raises(self, regular_points):
        with pytest.raises(ValueError, match="At least two points"):
            clark_evans(regular_points.iloc[:1], AREA)


class TestDistanceFunctions:
    """Tests for g_function and ripley_k."""

    def test_g_columns(self, random_pattern):
        g = g_function(random_pattern, AREA, steps=20)

        assert list(g.columns) == ["r", "g_observed", "g_csr"]
        assert len(g) == 20
        assert g["g_observed"].iloc[0] == 0.0
        assert g["g_observed"].iloc[-1] == 1.0
        assert g["g_observed"].is_monotonic_increasing
        assert g["g_csr"].iloc[0] == 0.0

    def test_g_regular_step(self, regular_points):
        """Every lattice point has its nearest neighbour at exactly 10 km."""
        g = g_function(regular_points, AREA, max_distance=20_000, steps=5)
        np.testing.assert_array_equal(g["g_observed"].values, [0, 0, 1, 1, 1])

    def test_k_counts_pairs(self, regular_points):
        k = ripley_k(regular_points, AREA, radii=[0.0, 10_000.0, 1e6])

        assert k["k"].iloc[0] == 0.0
        assert k["k"].iloc[-1] == pytest.approx(AREA)
        # 180 lattice edges, each counted in both directions
        assert k["k"].iloc[1] == pytest.approx(AREA * 360 / (100 * 99))

    def test_k_default_radii(self, random_pattern):
        k = ripley_k(random_pattern, AREA, steps=10)

        assert len(k) == 10
        assert k["r"].iloc[-1] == pytest.approx(25_000.0)
        np.testing.assert_allclose(k["l_minus_r"], k["l"] - k["r"])

    def test_k_clustered_exceeds_csr(self, clustered_points):
        k = ripley_k(clustered_points, AREA, radii=[5_000.0])
        assert k["k"].iloc[0] > k["k_csr"].iloc[0]


class TestQuadratTest:
    """Tests for quadrat_test and summarize_pattern."""

    def test_perfectly_even(self, regular_points, square_boundary):
        quadrats, result = quadrat_test(regular_points, square_boundary, nx=5, ny=5)

        assert result["n_quadrats"] == 25
        assert result["df"] == 24
        assert (quadrats["observed"] == 4).all()
        assert result["chi2"] == pytest.approx(0.0)
        assert result["p_value"] == pytest.approx(1.0)

    def test_clustered_rejects(self, clustered_points, square_boundary):
        _, result = quadrat_test(clustered_points, square_boundary)
        assert result["p_value"] < 0.001

    def test_expected_sums_to_n(self, random_pattern, square_boundary):
        quadrats, _ = quadrat_test(random_pattern, square_boundary, nx=4, ny=3)
        assert quadrats["expected"].sum() == pytest.approx(200)
        assert quadrats["observed"].sum() == 200

    def test_summary_rows(self, random_pattern, square_boundary):
        summary = summarize_pattern(random_pattern, square_boundary)

        assert list(summary["test"]) == ["clark_evans", "quadrat_chi2"]
        assert summary["p_value"].between(0, 1).all()
