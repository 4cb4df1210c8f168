#!/usr/bin/env python3
"""
Tests for src/stages/s00_boundary.py

Tests cover:
- Source resolution (demo, download, local file)
- Attribute-filter loading of the study country
- CRS area comparison and round-trip checks
- The stage entry point on demo data
"""
from __future__ import annotations

import pytest
import pandas as pd
from pathlib import Path
import sys

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent / 'src'))

from stages import s00_boundary
from stages.s00_boundary import (
    check_areas,
    check_round_trip,
    load_country,
    resolve_source,
)


# ============================================================
# SOURCE RESOLUTION TESTS
# ============================================================

class TestResolveSource:
    """Tests for resolve_source."""

    def test_demo_means_synthetic(self):
        assert resolve_source(use_demo=True) is None
        assert resolve_source(use_demo=True, download=True) is None

    def test_download_returns_url(self):
        from config import NATURAL_EARTH_URL
        assert resolve_source(download=True) == NATURAL_EARTH_URL

    def test_local_file(self, temp_dir, monkeypatch):
        path = temp_dir / 'countries.zip'
        path.write_bytes(b'')
        monkeypatch.setattr(s00_boundary, 'BOUNDARY_FILE', path)

        assert resolve_source() == path

    def test_missing_file_falls_back(self, temp_dir, monkeypatch, capsys):
        monkeypatch.setattr(s00_boundary, 'BOUNDARY_FILE', temp_dir / 'missing.zip')

        assert resolve_source() is None
        assert 'No raw boundary file found' in capsys.readouterr().out


# ============================================================
# LOADING TESTS
# ============================================================

class TestLoadCountry:
    """Tests for load_country on the synthetic layer."""

    def test_single_outline(self):
        outline = load_country('Switzerland', 'ADMIN', use_demo=True)

        assert len(outline) == 1
        assert outline.crs.to_epsg() == 4326
        assert outline.geometry.iloc[0].is_valid

    def test_unknown_name(self):
        with pytest.raises(ValueError, match="No feature with ADMIN == 'Atlantis'"):
            load_country('Atlantis', 'ADMIN', use_demo=True)

    def test_unknown_field(self):
        with pytest.raises(ValueError):
            load_country('Switzerland', 'NAME_XX', use_demo=True)


# ============================================================
# CRS CHECK TESTS
# ============================================================

class TestCheckAreas:
    """Tests for check_areas."""

    def test_methods(self, demo_countries):
        outline = demo_countries[demo_countries['ADMIN'] == 'Switzerland']
        areas = check_areas(outline, ['EPSG:2056', 'EPSG:3035'])

        assert len(areas) == 3
        assert {'method', 'area_km2', 'rel_diff'} <= set(areas.columns)
        assert areas['area_km2'].gt(0).all()

    def test_warns_above_tolerance(self, demo_countries, monkeypatch):
        monkeypatch.setattr(s00_boundary, 'AREA_RELATIVE_TOLERANCE', 0.0)
        outline = demo_countries[demo_countries['ADMIN'] == 'Switzerland']

        with pytest.warns(UserWarning, match="differs from the ellipsoidal area"):
            check_areas(outline, ['EPSG:2056', 'EPSG:3035'])


class TestCheckRoundTrip:
    """Tests for check_round_trip."""

    def test_shift_below_tolerance(self, demo_countries):
        from config import ROUND_TRIP_TOLERANCE
        outline = demo_countries[demo_countries['ADMIN'] == 'Switzerland']

        shift = check_round_trip(outline, 'EPSG:2056')

        assert 0 <= shift < ROUND_TRIP_TOLERANCE

    def test_warns_when_tolerance_exceeded(self, demo_countries, monkeypatch):
        monkeypatch.setattr(s00_boundary, 'ROUND_TRIP_TOLERANCE', -1.0)
        outline = demo_countries[demo_countries['ADMIN'] == 'Switzerland']

        with pytest.warns(UserWarning, match="Round trip via EPSG:2056"):
            check_round_trip(outline, 'EPSG:2056')


# ============================================================
# MAIN TESTS
# ============================================================

class TestMain:
    """Tests for the stage entry point."""

    def test_demo_run(self, isolated_outputs):
        boundary = s00_boundary.main(use_demo=True)

        assert len(boundary) == 1
        assert boundary.crs.to_epsg() == 2056

        areas = pd.read_csv(isolated_outputs['diagnostics'] / 'crs_areas.csv')
        assert len(areas) == 3

        reports = list(isolated_outputs['quality'].glob('s00_boundary_quality_*.csv'))
        assert len(reports) == 1
        metrics = pd.read_csv(reports[0]).set_index('metric')['value']
        assert 'round_trip_shift' in metrics.index
        assert float(metrics['n_rows']) == 1

    def test_no_save(self, isolated_outputs):
        s00_boundary.main(use_demo=True, save=False)
        assert not (isolated_outputs['diagnostics'] / 'crs_areas.csv').exists()

    def test_export(self, isolated_outputs, monkeypatch):
        monkeypatch.setattr(s00_boundary, 'SPATIAL_DATA_DIR', isolated_outputs['spatial'])
        s00_boundary.main(use_demo=True, export=True, save=False)
        assert (isolated_outputs['spatial'] / 'boundary.gpkg').exists()
