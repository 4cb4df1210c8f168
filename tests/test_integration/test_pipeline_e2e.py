#!/usr/bin/env python3
"""
End-to-end integration tests for the workshop pipeline.

These tests run src/pipeline.py in a subprocess on the synthetic demo
data and check the files each stage leaves behind.
"""
from __future__ import annotations

import pytest
import subprocess
import sys
from pathlib import Path

import pandas as pd

# Mark all tests as integration and e2e
pytestmark = [pytest.mark.integration, pytest.mark.e2e]


# ============================================================
# FIXTURES
# ============================================================

@pytest.fixture
def project_root():
    """Get the project root directory."""
    return Path(__file__).parent.parent.parent


@pytest.fixture
def pipeline_script(project_root):
    """Get the pipeline.py script path."""
    return project_root / 'src' / 'pipeline.py'


@pytest.fixture
def diagnostics_dir(project_root):
    """Get the data_work/diagnostics directory."""
    return project_root / 'data_work' / 'diagnostics'


@pytest.fixture(scope='module')
def demo_run():
    """Run the whole pipeline once on demo data."""
    root = Path(__file__).parent.parent.parent
    return run_pipeline_command(root, 'run_all', '--demo', timeout=900)


# ============================================================
# HELPER FUNCTIONS
# ============================================================

def run_pipeline_command(project_root, *args, timeout=120):
    """Run a pipeline command and return the result."""
    cmd = [
        sys.executable,
        'src/pipeline.py',
        *args
    ]
    result = subprocess.run(
        cmd,
        cwd=project_root,
        capture_output=True,
        text=True,
        timeout=timeout
    )
    return result


# ============================================================
# PIPELINE AVAILABILITY TESTS
# ============================================================

class TestPipelineAvailable:
    """Tests that verify the pipeline is available and runnable."""

    def test_pipeline_script_exists(self, pipeline_script):
        assert pipeline_script.exists()

    def test_help(self, project_root):
        result = run_pipeline_command(project_root, '--help')
        assert result.returncode == 0
        assert 'run_all' in result.stdout

    def test_list_stages_command(self, project_root):
        result = run_pipeline_command(project_root, 'list_stages')
        assert result.returncode == 0, result.stderr
        assert 's00_boundary' in result.stdout
        assert 's08_figures' in result.stdout

    def test_show_config(self, project_root):
        result = run_pipeline_command(project_root, 'show_config')
        assert result.returncode == 0, result.stderr
        assert 'EPSG:2056' in result.stdout

    def test_bad_params_file(self, project_root, tmp_path):
        path = tmp_path / 'params.yml'
        path.write_text("contiguity: bishop\n")

        result = run_pipeline_command(project_root, 'show_config', '--params', str(path))

        assert result.returncode != 0
        assert 'contiguity' in result.stderr


# ============================================================
# SINGLE STAGE TESTS
# ============================================================

class TestSingleStage:
    """Stage commands run their upstream stages themselves."""

    def test_load_boundary_demo(self, project_root, diagnostics_dir):
        result = run_pipeline_command(project_root, 'load_boundary', '--demo')

        assert result.returncode == 0, result.stderr
        assert 'Stage 00' in result.stdout
        assert len(pd.read_csv(diagnostics_dir / 'crs_areas.csv')) == 3


# ============================================================
# END-TO-END PIPELINE TESTS
# ============================================================

class TestPipelineE2E:
    """End-to-end tests for the complete pipeline."""

    @pytest.mark.slow
    def test_demo_pipeline_runs(self, demo_run):
        assert demo_run.returncode == 0, f"Pipeline failed: {demo_run.stderr}"
        assert 'Workshop pipeline complete.' in demo_run.stdout

    @pytest.mark.slow
    @pytest.mark.parametrize('filename', [
        'crs_areas.csv',
        'elevation_summary.csv',
        'samples.csv',
        'variogram.csv',
        'variogram_model.csv',
        'cross_validation.csv',
        'point_pattern.csv',
        'g_function.csv',
        'ripley_k.csv',
        'voronoi_cells.csv',
        'weights_summary.csv',
        'moran_results.csv',
        'regression_comparison.csv',
    ])
    def test_diagnostics_written(self, demo_run, diagnostics_dir, filename):
        assert demo_run.returncode == 0, demo_run.stderr
        table = pd.read_csv(diagnostics_dir / filename)
        assert len(table) > 0

    @pytest.mark.slow
    def test_sample_size(self, demo_run, diagnostics_dir):
        samples = pd.read_csv(diagnostics_dir / 'samples.csv')
        assert 190 <= len(samples) <= 200
        assert samples['sample_id'].is_unique

    @pytest.mark.slow
    def test_figures_written(self, demo_run, project_root):
        figures_dir = project_root / 'manuscript_quarto' / 'figures'
        assert (figures_dir / 'fig_study_area.png').exists()
        assert (figures_dir / 'fig_moran_scatter.png').exists()
        assert (figures_dir / 'map_voronoi.html').exists()

    @pytest.mark.slow
    def test_qa_reports(self, demo_run, project_root):
        quality_dir = project_root / 'data_work' / 'quality'
        for stage in ['s00_boundary', 's03_interpolate', 's07_regression']:
            assert list(quality_dir.glob(f'{stage}_quality_*.csv')), stage


# ============================================================
# MANUSCRIPT TESTS
# ============================================================

class TestManuscript:
    """Tests for the tutorial document."""

    def test_index_qmd_exists(self, project_root):
        assert (project_root / 'manuscript_quarto' / 'index.qmd').exists()

    def test_common_helpers_exist(self, project_root):
        assert (project_root / 'manuscript_quarto' / 'code' / '_common.py').exists()

    def test_library_cells_execute(self, project_root):
        """The CRS and sampling cells run when the document renders."""
        text = (project_root / 'manuscript_quarto' / 'index.qmd').read_text()

        assert 'eval: false' not in text
        assert 'compare_areas(ch, ' in text
        assert 'sample_points(ch_lv95, 200' in text
