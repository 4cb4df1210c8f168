#!/usr/bin/env python3
"""
Tests for src/pipeline.py

Tests cover:
- CLI argument parsing
- Command routing
- Stage discovery
"""
from __future__ import annotations

import pytest
import sys
from pathlib import Path
from unittest.mock import patch

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))


class TestParseArgs:
    """Tests for argument parsing."""

    @pytest.mark.parametrize('cmd', [
        'load_boundary', 'load_elevation', 'sample_points', 'interpolate',
        'point_pattern', 'tessellate', 'test_autocorrelation', 'fit_regression',
        'make_figures', 'run_all', 'show_config',
    ])
    def test_stage_commands(self, cmd):
        """Every workshop command parses with default options."""
        from pipeline import parse_args
        with patch('sys.argv', ['pipeline.py', cmd]):
            args = parse_args()
            assert args.cmd == cmd
            assert args.demo is False
            assert args.params is None

    def test_common_options(self):
        """--demo, --export and --params are accepted after the command."""
        from pipeline import parse_args
        args = parse_args(['interpolate', '--demo', '--export', '-p', 'workshop.yml'])
        assert args.demo is True
        assert args.export is True
        assert args.params == 'workshop.yml'

    def test_download_flag(self):
        from pipeline import parse_args
        assert parse_args(['load_boundary', '--download']).download is True
        assert parse_args(['run_all', '--download', '--demo']).download is True

    def test_download_only_where_supported(self):
        from pipeline import parse_args
        with pytest.raises(SystemExit):
            parse_args(['interpolate', '--download'])

    def test_figure_subset(self):
        from pipeline import parse_args
        args = parse_args(['make_figures', '--figures', 'variogram', 'moran'])
        assert args.figures == ['variogram', 'moran']

    def test_figures_default_all(self):
        from pipeline import parse_args
        assert parse_args(['make_figures']).figures is None

    def test_command_required(self):
        from pipeline import parse_args
        with patch('sys.argv', ['pipeline.py']):
            with pytest.raises(SystemExit):
                parse_args()

    def test_unknown_command(self):
        from pipeline import parse_args
        with pytest.raises(SystemExit):
            parse_args(['ingest_data'])


class TestCommandRouting:
    """Tests for command routing in main()."""

    def test_routes_to_correct_stage(self):
        """Stage commands call the matching stage's main()."""
        from pipeline import main
        with patch('stages.s03_interpolate.main') as stage_main:
            main(['interpolate', '--demo'])

        stage_main.assert_called_once()
        params = stage_main.call_args.args[0]
        assert params['sample_size'] == 200
        assert stage_main.call_args.kwargs == {'use_demo': True, 'export': False}

    def test_figures_forwarded(self):
        from pipeline import main
        with patch('stages.s08_figures.main') as stage_main:
            main(['make_figures', '-f', 'moran'])

        assert stage_main.call_args.kwargs == {'use_demo': False, 'figures': ['moran']}

    def test_download_forwarded(self):
        from pipeline import main
        with patch('stages.s00_boundary.main') as stage_main:
            main(['load_boundary', '--download'])

        assert stage_main.call_args.kwargs['download'] is True

    def test_params_file_applied(self, temp_dir):
        from pipeline import main
        path = temp_dir / 'params.yml'
        path.write_text("sample_size: 60\n")

        with patch('stages.s02_sample.main') as stage_main:
            main(['sample_points', '--params', str(path)])

        assert stage_main.call_args.args[0]['sample_size'] == 60

    def test_show_config(self, capsys):
        from pipeline import main
        main(['show_config'])

        out = capsys.readouterr().out
        assert 'Workshop Parameters' in out
        assert 'projected_crs' in out
        assert 'EPSG:2056' in out

    def test_every_command_has_stage(self):
        """STAGE_COMMANDS only points at existing stage modules."""
        from pipeline import STAGE_COMMANDS
        stages_dir = Path(__file__).parent.parent / 'src' / 'stages'
        for module in STAGE_COMMANDS.values():
            assert (stages_dir / f'{module}.py').exists(), module


class TestRunStageCommand:
    """Tests for run_stage command."""

    def test_run_stage_parses(self):
        from pipeline import parse_args
        with patch('sys.argv', ['pipeline.py', 'run_stage', 's04_point_pattern']):
            args = parse_args()
            assert args.cmd == 'run_stage'
            assert args.stage_name == 's04_point_pattern'

    def test_run_stage_requires_name(self):
        from pipeline import parse_args
        with patch('sys.argv', ['pipeline.py', 'run_stage']):
            with pytest.raises(SystemExit):
                parse_args()

    def test_run_stage_unknown_raises(self):
        from pipeline import run_stage_by_name
        with pytest.raises(ValueError, match="Stage 's99_missing' not found"):
            run_stage_by_name('s99_missing')

    def test_run_stage_private_module_rejected(self):
        from pipeline import run_stage_by_name
        with pytest.raises(ValueError, match="not found"):
            run_stage_by_name('_qa_utils')

    def test_run_stage_calls_main(self):
        from pipeline import run_stage_by_name
        with patch('stages.s07_regression.main', return_value='done') as stage_main:
            result = run_stage_by_name('s07_regression', params={'x': 1}, use_demo=True)

        assert result == 'done'
        stage_main.assert_called_once_with({'x': 1}, use_demo=True)


class TestListStagesCommand:
    """Tests for list_stages command."""

    def test_list_stages_parses(self):
        from pipeline import parse_args
        with patch('sys.argv', ['pipeline.py', 'list_stages']):
            args = parse_args()
            assert args.cmd == 'list_stages'

    def test_list_stages_with_prefix(self):
        from pipeline import parse_args
        with patch('sys.argv', ['pipeline.py', 'list_stages', '--prefix', 's00']):
            args = parse_args()
            assert args.prefix == 's00'


class TestDiscoverStages:
    """Tests for stage discovery functions."""

    def test_discover_stages_finds_core_stages(self):
        """discover_stages() finds every workshop stage in order."""
        from pipeline import discover_stages, STAGE_COMMANDS
        stage_names = [name for name, _ in discover_stages()]

        assert stage_names == sorted(STAGE_COMMANDS.values())

    def test_descriptions_from_purpose_line(self):
        from pipeline import discover_stages
        stages = dict(discover_stages())
        assert all(stages.values())

    def test_prefix_filter(self):
        from pipeline import discover_stages
        stages = discover_stages('s03')
        assert [name for name, _ in stages] == ['s03_interpolate']

    def test_list_available_stages_format(self, capsys):
        from pipeline import list_available_stages
        list_available_stages(prefix=None)

        out = capsys.readouterr().out
        assert 's05_tessellate' in out
        assert 'tessellate' in out
        assert 'Total: 9 stage(s)' in out

    def test_list_unknown_prefix(self, capsys):
        from pipeline import list_available_stages
        list_available_stages(prefix='s42')
        assert "No stages found with prefix 's42'" in capsys.readouterr().out
