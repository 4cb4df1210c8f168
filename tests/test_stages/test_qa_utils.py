#!/usr/bin/env python3
"""
Tests for src/stages/_qa_utils.py

Tests cover:
- QAMetrics container
- Table, geometry and raster metrics
- Threshold checks
- Report writing
"""
from __future__ import annotations

import pytest
import numpy as np
import pandas as pd
from pathlib import Path
import sys

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent / 'src'))

from shapely.geometry import Polygon

from stages._qa_utils import (
    QAMetrics,
    check_thresholds,
    compute_dataframe_metrics,
    compute_raster_metrics,
    generate_qa_report,
    qa_for_stage,
)


class TestQAMetrics:
    """Tests for the QAMetrics container."""

    def test_suffixes(self):
        metrics = QAMetrics().add('n_rows', 3).add_pct('missing', 12.5).add_count('dropped', 2)

        assert metrics.to_dict() == {'n_rows': 3, 'missing_pct': 12.5, 'dropped_count': 2}
        assert len(metrics) == 3

    def test_to_dict_is_copy(self):
        metrics = QAMetrics().add('a', 1)
        metrics.to_dict()['a'] = 2
        assert metrics.to_dict()['a'] == 1


class TestDataFrameMetrics:
    """Tests for compute_dataframe_metrics."""

    def test_plain_table(self):
        df = pd.DataFrame({'a': [1.0, np.nan, 1.0], 'b': [1, 2, 1]})
        metrics = compute_dataframe_metrics(df).to_dict()

        assert metrics['n_rows'] == 3
        assert metrics['missing_cells_count'] == 1
        assert metrics['duplicate_rows_count'] == 1
        assert 'crs' not in metrics

    def test_geometry_metrics(self, lattice_gdf):
        metrics = compute_dataframe_metrics(lattice_gdf).to_dict()

        assert metrics['crs'] == 'EPSG:2056'
        assert metrics['geometry_types'] == 'Polygon'
        assert metrics['n_invalid_geometries'] == 0
        assert metrics['n_columns'] == 5

    def test_invalid_geometry_flagged(self, lattice_gdf):
        broken = lattice_gdf.copy()
        bowtie = Polygon([(0, 0), (1, 1), (1, 0), (0, 1)])
        broken.loc[0, 'geometry'] = bowtie

        metrics = compute_dataframe_metrics(broken)
        warnings = check_thresholds(metrics)

        assert metrics.to_dict()['n_invalid_geometries'] == 1
        assert '1 invalid geometries' in warnings


class TestRasterMetrics:
    """Tests for compute_raster_metrics."""

    def test_projected_dem(self, projected_dem):
        metrics = compute_raster_metrics(projected_dem).to_dict()

        assert metrics['res_x'] == pytest.approx(2000.0)
        assert metrics['n_bands'] == 1
        assert 0 < metrics['missing_pct'] < 100
        assert metrics['value_min'] <= metrics['value_mean'] <= metrics['value_max']


class TestCheckThresholds:
    """Tests for check_thresholds."""

    def test_clean(self):
        assert check_thresholds({'n_rows': 100, 'missing_pct': 0.0, 'duplicate_pct': 0.0}) == []

    def test_violations(self):
        warnings = check_thresholds({'n_rows': 2, 'missing_pct': 50.0, 'duplicate_pct': 10.0})
        assert len(warnings) == 3

    def test_custom_thresholds(self):
        warnings = check_thresholds({'n_rows': 50}, thresholds={'min_row_count': 100})
        assert warnings == ['Row count (50) below threshold (100)']


class TestReports:
    """Tests for report writing."""

    def test_generate_report(self, temp_dir):
        path = generate_qa_report('s99_test', {'n': 1, 'crs': 'EPSG:2056'},
                                  output_dir=temp_dir, include_timestamp=False)

        assert path == temp_dir / 's99_test_quality.csv'
        report = pd.read_csv(path)
        assert list(report.columns) == ['metric', 'value', 'stage', 'timestamp']
        assert list(report['metric']) == ['n', 'crs']

    def test_qa_for_stage(self, isolated_outputs, lattice_gdf, capsys):
        path = qa_for_stage('s99_test', lattice_gdf, additional_metrics={'seed': 42})

        assert path.parent == isolated_outputs['quality']
        assert 'QA Summary: s99_test' in capsys.readouterr().out
        metrics = pd.read_csv(path).set_index('metric')['value']
        assert 'seed' in metrics.index

    def test_disabled(self, temp_dir, monkeypatch):
        from stages import _qa_utils
        monkeypatch.setattr(_qa_utils, 'ENABLE_QA_REPORTS', False)
        assert generate_qa_report('s99_test', {'n': 1}, output_dir=temp_dir) is None
