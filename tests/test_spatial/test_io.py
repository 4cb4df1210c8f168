"""Tests for spatial data I/O utilities."""

import pytest
import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent / "src"))

from spatial.core.io import SPATIAL_FORMATS, READ_ONLY_FORMATS

# Try to import geopandas-dependent functions
try:
    import geopandas as gpd
    import pandas as pd
    from shapely.geometry import Point, box

    from spatial.core.io import (
        load_spatial,
        save_spatial,
        load_boundary,
        dissolve_boundary,
        has_geometry,
        list_layers,
    )

    HAS_GEOPANDAS = True
except ImportError:
    HAS_GEOPANDAS = False


class TestSpatialFormats:
    """Tests for supported spatial formats."""

    def test_gpkg_supported(self):
        assert SPATIAL_FORMATS[".gpkg"] == "GPKG"

    def test_shp_supported(self):
        assert SPATIAL_FORMATS[".shp"] == "ESRI Shapefile"

    def test_geojson_supported(self):
        assert SPATIAL_FORMATS[".geojson"] == "GeoJSON"
        assert SPATIAL_FORMATS[".json"] == "GeoJSON"

    def test_zip_read_only(self):
        """Zipped shapefiles can be read but have no write driver."""
        assert ".zip" in READ_ONLY_FORMATS
        assert ".zip" not in SPATIAL_FORMATS


@pytest.fixture
def countries():
    """Three admin-0 style polygons; Austria is split into two parts."""
    if not HAS_GEOPANDAS:
        pytest.skip("geopandas not installed")
    return gpd.GeoDataFrame(
        {
            "ADMIN": ["Switzerland", "Austria", "Austria"],
            "ISO_A3": ["CHE", "AUT", "AUT"],
        },
        geometry=[box(6, 46, 10, 47.5), box(10, 46.5, 13, 48), box(13, 46.5, 17, 49)],
        crs="EPSG:4326",
    )


@pytest.mark.skipif(not HAS_GEOPANDAS, reason="geopandas not installed")
class TestLoadSpatial:
    """Tests for load_spatial function."""

    def test_load_geojson(self, countries, tmp_path):
        filepath = tmp_path / "countries.geojson"
        countries.to_file(filepath, driver="GeoJSON")

        result = load_spatial(filepath)

        assert len(result) == 3
        assert "ADMIN" in result.columns
        assert result.crs.to_epsg() == 4326

    def test_load_gpkg_layer(self, countries, tmp_path):
        filepath = tmp_path / "countries.gpkg"
        countries.to_file(filepath, layer="admin0", driver="GPKG")

        result = load_spatial(filepath, layer="admin0")
        assert len(result) == 3

    def test_file_not_found(self, tmp_path):
        with pytest.raises(FileNotFoundError, match="not found"):
            load_spatial(tmp_path / "nonexistent.gpkg")

    def test_unsupported_format(self, tmp_path):
        filepath = tmp_path / "test.xyz"
        filepath.touch()

        with pytest.raises(ValueError, match="Unsupported spatial format"):
            load_spatial(filepath)


@pytest.mark.skipif(not HAS_GEOPANDAS, reason="geopandas not installed")
class TestSaveSpatial:
    """Tests for save_spatial function."""

    def test_save_gpkg(self, countries, tmp_path):
        filepath = tmp_path / "output.gpkg"
        result_path = save_spatial(countries, filepath)

        assert result_path == filepath
        assert len(gpd.read_file(filepath)) == 3

    def test_save_creates_parent_dirs(self, countries, tmp_path):
        filepath = tmp_path / "subdir" / "nested" / "output.geojson"
        result_path = save_spatial(countries, filepath)

        assert result_path.exists()

    def test_save_with_layer(self, countries, tmp_path):
        filepath = tmp_path / "workshop.gpkg"
        save_spatial(countries, filepath, layer="boundary")

        assert "boundary" in list_layers(filepath)

    def test_unsupported_format(self, countries, tmp_path):
        with pytest.raises(ValueError, match="Cannot determine driver"):
            save_spatial(countries, tmp_path / "output.zip")

    @pytest.mark.parametrize("extension", [".geojson", ".gpkg"])
    def test_round_trip(self, countries, tmp_path, extension):
        """Attributes and CRS survive a save/load cycle."""
        filepath = tmp_path / f"countries{extension}"

        save_spatial(countries, filepath)
        loaded = load_spatial(filepath)

        assert len(loaded) == len(countries)
        assert set(loaded.columns) == set(countries.columns)
        assert loaded.crs.to_epsg() == 4326


@pytest.mark.skipif(not HAS_GEOPANDAS, reason="geopandas not installed")
class TestLoadBoundary:
    """Tests for load_boundary and dissolve_boundary."""

    def test_filter_by_name(self, countries):
        result = load_boundary(countries, "Switzerland")

        assert len(result) == 1
        assert result.loc[0, "ISO_A3"] == "CHE"
        assert result.crs.to_epsg() == 4326

    def test_custom_field(self, countries):
        result = load_boundary(countries, "AUT", field="ISO_A3")
        assert len(result) == 2
        assert list(result.index) == [0, 1]

    def test_from_file(self, countries, tmp_path):
        filepath = tmp_path / "countries.gpkg"
        countries.to_file(filepath, driver="GPKG")

        result = load_boundary(filepath, "Austria")
        assert len(result) == 2

    def test_missing_field(self, countries):
        with pytest.raises(ValueError, match="Attribute 'NAME' not found"):
            load_boundary(countries, "Switzerland", field="NAME")

    def test_no_match(self, countries):
        with pytest.raises(ValueError, match="No feature"):
            load_boundary(countries, "Liechtenstein")

    def test_no_crs(self, countries):
        naive = countries.set_crs(None, allow_override=True)
        with pytest.raises(ValueError, match="no CRS"):
            load_boundary(naive, "Switzerland")

    def test_dissolve_parts(self, countries):
        """Multi-part countries collapse into a single row."""
        parts = load_boundary(countries, "Austria")
        outline = dissolve_boundary(parts)

        assert len(outline) == 1
        assert outline.crs.equals(parts.crs)
        assert outline.geometry.iloc[0].area == pytest.approx(parts.geometry.area.sum())


@pytest.mark.skipif(not HAS_GEOPANDAS, reason="geopandas not installed")
class TestHasGeometry:
    """Tests for has_geometry function."""

    def test_geodataframe_with_geometry(self, countries):
        assert has_geometry(countries) is True

    def test_geodataframe_without_geometry(self):
        """Should return False for GeoDataFrame with all null geometry."""
        gdf = gpd.GeoDataFrame({"name": ["Bern"]})
        gdf["geometry"] = None

        assert has_geometry(gdf) is False

    def test_regular_dataframe(self):
        df = pd.DataFrame({"name": ["Bern"], "value": [100]})
        assert has_geometry(df) is False

    def test_dataframe_with_geometry_column(self):
        df = pd.DataFrame({"name": ["Bern"], "geometry": ["POINT(7.45 46.95)"]})
        assert has_geometry(df) is True


@pytest.mark.skipif(not HAS_GEOPANDAS, reason="geopandas not installed")
class TestListLayers:
    """Tests for list_layers function."""

    @pytest.fixture
    def multi_layer_gpkg(self, tmp_path):
        """GeoPackage with a boundary and a samples layer."""
        filepath = tmp_path / "workshop.gpkg"
        points = [Point(7.45, 46.95)]
        gpd.GeoDataFrame({"id": [0]}, geometry=[box(6, 46, 10, 47.5)], crs="EPSG:4326").to_file(
            filepath, layer="boundary", driver="GPKG"
        )
        gpd.GeoDataFrame({"name": ["Bern"]}, geometry=points, crs="EPSG:4326").to_file(
            filepath, layer="samples", driver="GPKG"
        )
        return filepath

    def test_list_layers(self, multi_layer_gpkg):
        layers = list_layers(multi_layer_gpkg)
        assert sorted(layers) == ["boundary", "samples"]

    def test_file_not_found(self, tmp_path):
        with pytest.raises(FileNotFoundError, match="not found"):
            list_layers(tmp_path / "nonexistent.gpkg")
