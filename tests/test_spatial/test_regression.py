"""Tests for OLS vs. spatial error regression."""

import pytest
import numpy as np
import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent / "src"))

import geopandas as gpd
from shapely.geometry import box

from spatial.regression import (
    RegressionComparison,
    add_centroid_coordinates,
    compare_models,
    fit_ols,
)
from spatial.weights import contiguity_weights

from conftest import X0, Y0

X_COLUMNS = ["easting_km", "northing_km"]


@pytest.fixture
def surface(lattice_gdf):
    """Lattice with a planar trend plus a smooth, spatially correlated error."""
    rng = np.random.default_rng(0)
    gdf = add_centroid_coordinates(lattice_gdf)
    smooth = 3.0 * np.sin(gdf["row"] / 2.0) + 3.0 * np.cos(gdf["col"] / 2.0)
    gdf["height"] = (
        0.5 * (gdf["easting_km"] - X0 / 1000)
        - 0.3 * (gdf["northing_km"] - Y0 / 1000)
        + smooth
        + rng.normal(0, 0.3, len(gdf))
    )
    return gdf


@pytest.fixture
def comparison(surface):
    w = contiguity_weights(surface, "queen")
    return compare_models(surface, "height", X_COLUMNS, w)


class TestCentroidCoordinates:
    """Tests for add_centroid_coordinates."""

    def test_kilometres(self, lattice_gdf):
        result = add_centroid_coordinates(lattice_gdf)

        assert result.loc[0, "easting_km"] == pytest.approx(X0 / 1000 + 0.5)
        assert result.loc[0, "northing_km"] == pytest.approx(Y0 / 1000 + 0.5)
        assert "easting_km" not in lattice_gdf.columns

    def test_geographic_raises(self):
        lonlat = gpd.GeoDataFrame(geometry=[box(6, 46, 7, 47)], crs="EPSG:4326")
        with pytest.raises(ValueError, match="projected CRS"):
            add_centroid_coordinates(lonlat)


class TestCompareModels:
    """Tests for compare_models."""

    def test_returns_comparison(self, comparison):
        assert isinstance(comparison, RegressionComparison)
        assert list(comparison.fit["model"]) == ["ols", "spatial_error"]

    def test_coefficient_rows(self, comparison):
        coefs = comparison.coefficients

        ols_terms = coefs.loc[coefs["model"] == "ols", "term"].tolist()
        err_terms = coefs.loc[coefs["model"] == "spatial_error", "term"].tolist()
        assert ols_terms == ["CONSTANT", *X_COLUMNS]
        assert err_terms == ["CONSTANT", *X_COLUMNS, "lambda"]
        assert (coefs["std_err"] > 0).all()
        assert coefs["p_value"].between(0, 1).all()

    def test_ols_matches_least_squares(self, surface, comparison):
        design = np.column_stack([np.ones(len(surface)), surface[X_COLUMNS].to_numpy()])
        expected, *_ = np.linalg.lstsq(design, surface["height"].to_numpy(), rcond=None)

        coefs = comparison.coefficients
        estimates = coefs.loc[coefs["model"] == "ols", "estimate"].to_numpy()
        np.testing.assert_allclose(estimates, expected, rtol=1e-6, atol=1e-6)

    def test_ols_residuals_autocorrelated(self, comparison):
        ols = comparison.fit.set_index("model").loc["ols"]
        assert ols["residual_moran_i"] > 0
        assert ols["residual_moran_p"] < 0.05
        assert np.isnan(ols["lambda"])

    def test_error_model_absorbs_structure(self, comparison):
        fit = comparison.fit.set_index("model")
        assert fit.loc["spatial_error", "lambda"] > 0
        assert fit.loc["spatial_error", "log_likelihood"] >= fit.loc["ols", "log_likelihood"]

    def test_preferred_has_lowest_aic(self, comparison):
        fit = comparison.fit.set_index("model")
        assert fit.loc[comparison.preferred, "aic"] == fit["aic"].min()


class TestFitOls:
    """Tests for input validation."""

    def test_missing_column(self, surface):
        w = contiguity_weights(surface)
        with pytest.raises(ValueError, match="Column\\(s\\) not found: rainfall"):
            fit_ols(surface, "rainfall", X_COLUMNS, w)

    def test_nan_values(self, surface):
        w = contiguity_weights(surface)
        broken = surface.copy()
        broken.loc[3, "height"] = np.nan
        with pytest.raises(ValueError, match="missing or infinite"):
            fit_ols(broken, "height", X_COLUMNS, w)
