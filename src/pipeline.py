#!/usr/bin/env python3
"""
Module: pipeline.py
Purpose: Main orchestration CLI for the spatial data science workshop.

This module provides a command-line interface to execute the workshop
stages. Stages pass their outputs to each other in memory; running a
stage command runs every stage it depends on first. Only presentation
outputs (diagnostic tables, figures, optional exports) are written.

Commands
--------
# Vector and raster data
load_boundary : Load the country polygon and compare CRSs
    Options: --download
load_elevation : Load, crop and warp the DEM
sample_points : Draw the seeded sample and extract elevation

# Geostatistics
interpolate : IDW and ordinary kriging surfaces with cross-validation
point_pattern : Test the sample against complete spatial randomness

# Lattice statistics
tessellate : Voronoi cells with zonal mean elevation
test_autocorrelation : Contiguity weights and Moran's I
fit_regression : OLS vs. spatial error model

# Figures
make_figures : Generate tutorial figures and the interactive map
    Options: --figures

# Whole workshop
run_all : Run every stage in order

# Stage utilities
list_stages : List available stages
    Options: --prefix
run_stage : Run a specific stage by name
    Options: <stage_name>
show_config : Print the effective parameters

Global options
--------------
--params FILE.yml : Override workshop parameters
--demo : Use synthetic data even if raw data exists
--export : Also write GeoPackage/GeoTIFF copies to data_work/spatial/

Usage
-----
    python src/pipeline.py run_all --demo
    python src/pipeline.py interpolate --params workshop.yml
"""
from __future__ import annotations

import argparse
import importlib
import re
import sys
from pathlib import Path
from typing import Optional

sys.path.insert(0, str(Path(__file__).parent))


STAGE_COMMANDS = {
    'load_boundary': 's00_boundary',
    'load_elevation': 's01_elevation',
    'sample_points': 's02_sample',
    'interpolate': 's03_interpolate',
    'point_pattern': 's04_point_pattern',
    'tessellate': 's05_tessellate',
    'test_autocorrelation': 's06_autocorrelation',
    'fit_regression': 's07_regression',
    'make_figures': 's08_figures',
}


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        '--params', '-p',
        default=None,
        help='YAML file with parameter overrides'
    )
    common.add_argument(
        '--demo',
        action='store_true',
        help='Use synthetic demo data instead of raw data'
    )
    common.add_argument(
        '--export',
        action='store_true',
        help='Write GeoPackage/GeoTIFF copies of stage outputs'
    )

    p = argparse.ArgumentParser(
        description='Spatial Data Science Workshop Pipeline',
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    sub = p.add_subparsers(dest='cmd', required=True)

    # Vector and raster data
    p_boundary = sub.add_parser('load_boundary', parents=[common],
                                help='Load the country polygon and compare CRSs')
    p_boundary.add_argument(
        '--download',
        action='store_true',
        help='Read Natural Earth boundaries from the web'
    )
    sub.add_parser('load_elevation', parents=[common], help='Load, crop and warp the DEM')
    sub.add_parser('sample_points', parents=[common], help='Draw the seeded point sample')

    # Geostatistics
    sub.add_parser('interpolate', parents=[common], help='IDW and ordinary kriging')
    sub.add_parser('point_pattern', parents=[common], help='Point pattern tests')

    # Lattice statistics
    sub.add_parser('tessellate', parents=[common], help='Voronoi cells with zonal means')
    sub.add_parser('test_autocorrelation', parents=[common], help="Contiguity weights and Moran's I")
    sub.add_parser('fit_regression', parents=[common], help='OLS vs. spatial error model')

    # Figures
    p_fig = sub.add_parser('make_figures', parents=[common], help='Generate tutorial figures')
    p_fig.add_argument(
        '--figures', '-f',
        nargs='+',
        default=None,
        help='Subset of figures (e.g. variogram moran)'
    )

    # Whole workshop
    p_all = sub.add_parser('run_all', parents=[common], help='Run every stage in order')
    p_all.add_argument(
        '--download',
        action='store_true',
        help='Read Natural Earth boundaries from the web'
    )

    # Stage utilities
    p_list = sub.add_parser('list_stages', help='List available stages')
    p_list.add_argument(
        '--prefix',
        default=None,
        help='Filter by stage prefix (e.g., s00, s01)'
    )

    p_run = sub.add_parser('run_stage', parents=[common], help='Run a specific stage by name')
    p_run.add_argument(
        'stage_name',
        help='Stage name (e.g., s03_interpolate)'
    )

    sub.add_parser('show_config', parents=[common], help='Print the effective parameters')

    return p.parse_args(argv)


def run_all(
    params: Optional[dict] = None,
    use_demo: bool = False,
    download: bool = False,
    export: bool = False,
) -> dict:
    """
    Run every stage in order, passing outputs in memory.

    Returns
    -------
    dict
        Stage outputs keyed by short name.
    """
    from config import load_parameters
    from stages import (
        s00_boundary, s01_elevation, s02_sample, s03_interpolate, s04_point_pattern,
        s05_tessellate, s06_autocorrelation, s07_regression, s08_figures,
    )

    params = params or load_parameters()

    boundary = s00_boundary.main(params, use_demo=use_demo, download=download, export=export)
    dem = s01_elevation.main(params, boundary=boundary, use_demo=use_demo, export=export)
    points = s02_sample.main(params, boundary=boundary, dem=dem, export=export)
    interpolation = s03_interpolate.main(params, boundary=boundary, points=points, export=export)
    pattern = s04_point_pattern.main(params, boundary=boundary, points=points)
    cells = s05_tessellate.main(params, boundary=boundary, dem=dem, points=points, export=export)
    w, moran = s06_autocorrelation.main(params, cells=cells)
    regression = s07_regression.main(params, cells=cells, w=w)
    figures = s08_figures.main(
        params, boundary=boundary, dem=dem, points=points,
        interpolation=interpolation, cells=cells, w=w,
    )

    print("\n" + "=" * 60)
    print("Workshop pipeline complete.")
    print("=" * 60)

    return {
        'boundary': boundary,
        'dem': dem,
        'points': points,
        'interpolation': interpolation,
        'point_pattern': pattern,
        'cells': cells,
        'weights': w,
        'moran': moran,
        'regression': regression,
        'figures': figures,
    }


def run_command(cmd: str, params: dict, args: argparse.Namespace):
    """Dispatch a stage command; upstream stages run inside the stage."""
    module = importlib.import_module(f'stages.{STAGE_COMMANDS[cmd]}')

    kwargs = {'use_demo': args.demo}
    if cmd == 'load_boundary':
        kwargs['download'] = args.download
    if cmd == 'make_figures':
        kwargs['figures'] = args.figures
    elif cmd in ('load_boundary', 'load_elevation', 'sample_points', 'interpolate', 'tessellate'):
        kwargs['export'] = args.export

    return module.main(params, **kwargs)


def show_config(params: dict) -> None:
    """Print the effective parameters."""
    print("Workshop Parameters")
    print("=" * 60)
    for key, value in params.items():
        print(f"  {key:<22} {value}")


def main(argv: Optional[list[str]] = None):
    """Main entry point."""
    args = parse_args(argv)

    if args.cmd == 'list_stages':
        list_available_stages(args.prefix)
        return

    from config import load_parameters
    params = load_parameters(args.params)

    if args.cmd in STAGE_COMMANDS:
        run_command(args.cmd, params, args)

    elif args.cmd == 'run_all':
        run_all(params, use_demo=args.demo, download=args.download, export=args.export)

    elif args.cmd == 'run_stage':
        run_stage_by_name(args.stage_name, params, use_demo=args.demo)

    elif args.cmd == 'show_config':
        show_config(params)


def discover_stages(prefix: str = None) -> list[tuple[str, str]]:
    """
    Discover available stage modules.

    Parameters
    ----------
    prefix : str, optional
        Filter by stage prefix (e.g., 's00', 's01')

    Returns
    -------
    list[tuple[str, str]]
        List of (stage_name, description) tuples
    """
    stages_dir = Path(__file__).parent / 'stages'
    stages = []

    for f in sorted(stages_dir.glob('s*.py')):
        name = f.stem
        if prefix and not name.startswith(prefix):
            continue

        match = re.search(r'Purpose:\s*(.+?)(?:\n|$)', f.read_text())
        desc = match.group(1).strip() if match else ''

        stages.append((name, desc))

    return stages


def list_available_stages(prefix: str = None) -> None:
    """List available stage modules."""
    print("Available Pipeline Stages")
    print("=" * 60)

    stages = discover_stages(prefix)

    if not stages:
        if prefix:
            print(f"No stages found with prefix '{prefix}'")
        else:
            print("No stages found")
        return

    commands = {module: cmd for cmd, module in STAGE_COMMANDS.items()}
    for name, desc in stages:
        print(f"  {name:<22} {commands.get(name, ''):<22} {desc}")

    print()
    print(f"Total: {len(stages)} stage(s)")
    print()
    print("Run a stage with: python src/pipeline.py run_stage <stage_name>")


def run_stage_by_name(stage_name: str, params: Optional[dict] = None, use_demo: bool = False):
    """
    Run a stage by its module name.

    Parameters
    ----------
    stage_name : str
        Stage module name (e.g., 's03_interpolate')

    Raises
    ------
    ValueError
        If no stage module with that name exists.
    """
    stages_dir = Path(__file__).parent / 'stages'
    stage_file = stages_dir / f'{stage_name}.py'

    if not stage_name.startswith('s') or not stage_file.exists():
        available = ', '.join(name for name, _ in discover_stages())
        raise ValueError(f"Stage '{stage_name}' not found. Available: {available}")

    module = importlib.import_module(f'stages.{stage_name}')
    return module.main(params, use_demo=use_demo)


if __name__ == '__main__':
    main()
