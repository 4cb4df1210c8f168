#!/usr/bin/env python3
"""
Quality Assurance Utilities for Pipeline Stages.

This module provides functions for generating per-stage QA reports
that track data quality metrics throughout the pipeline. Vector outputs
get table and geometry metrics, raster outputs get grid metrics.

Usage
-----
    from stages._qa_utils import qa_for_stage, QAMetrics

    # At the end of a pipeline stage:
    qa_for_stage('s02_sample', samples, additional_metrics={'seed': 42})

    # Or assemble metrics by hand
    metrics = QAMetrics()
    metrics.add('n_cells', raster.width * raster.height)
    generate_qa_report('s01_elevation', metrics)
"""
from __future__ import annotations

import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Optional, Union

# Add parent for config import
sys.path.insert(0, str(Path(__file__).parent.parent))

import pandas as pd

from config import ENABLE_QA_REPORTS, QA_REPORTS_DIR, QA_THRESHOLDS


class QAMetrics:
    """
    Container for QA metrics collected during a pipeline stage.

    Examples
    --------
    >>> metrics = QAMetrics()
    >>> metrics.add('n_rows', 200)
    >>> metrics.add_pct('missing', 2.5)
    >>> metrics.to_dict()
    {'n_rows': 200, 'missing_pct': 2.5}
    """

    def __init__(self):
        self._metrics: dict[str, Any] = {}

    def add(self, name: str, value: Any) -> 'QAMetrics':
        """Add a metric."""
        self._metrics[name] = value
        return self

    def add_pct(self, name: str, value: float) -> 'QAMetrics':
        """Add a percentage metric (appends '_pct' to name)."""
        self._metrics[f'{name}_pct'] = round(value, 2)
        return self

    def add_count(self, name: str, value: int) -> 'QAMetrics':
        """Add a count metric (appends '_count' to name)."""
        self._metrics[f'{name}_count'] = value
        return self

    def update(self, values: dict) -> 'QAMetrics':
        for key, value in values.items():
            self.add(key, value)
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return self._metrics.copy()

    def __len__(self) -> int:
        return len(self._metrics)

    def __repr__(self) -> str:
        return f"QAMetrics({self._metrics})"


def compute_dataframe_metrics(df) -> QAMetrics:
    """
    Compute standard QA metrics for a (Geo)DataFrame.

    Geometry columns are excluded from the missing-value and duplicate
    counts; for GeoDataFrames the geometry metrics are added instead.

    Parameters
    ----------
    df : pandas.DataFrame or geopandas.GeoDataFrame
        The table to analyze

    Returns
    -------
    QAMetrics
        Metrics including row count, column count, missing values, etc.
    """
    metrics = QAMetrics()

    geometry_name = getattr(df, '_geometry_column_name', None)
    table = pd.DataFrame(df.drop(columns=geometry_name)) if geometry_name else df

    # Basic counts
    metrics.add('n_rows', len(df))
    metrics.add('n_columns', len(df.columns))

    # Missing values
    total_cells = table.size
    missing_cells = table.isna().sum().sum()
    metrics.add_count('missing_cells', int(missing_cells))
    if total_cells > 0:
        metrics.add_pct('missing', (missing_cells / total_cells) * 100)
    else:
        metrics.add_pct('missing', 0.0)

    # Duplicates
    n_duplicates = table.duplicated().sum() if len(table.columns) else 0
    metrics.add_count('duplicate_rows', int(n_duplicates))
    if len(df) > 0:
        metrics.add_pct('duplicate', (n_duplicates / len(df)) * 100)
    else:
        metrics.add_pct('duplicate', 0.0)

    if geometry_name:
        metrics.update(compute_geometry_metrics(df))

    return metrics


def compute_geometry_metrics(gdf) -> dict:
    """CRS, geometry types, validity and bounds of a GeoDataFrame."""
    geometry = gdf.geometry
    bounds = geometry.total_bounds if len(gdf) else [float('nan')] * 4
    return {
        'crs': gdf.crs.to_string() if gdf.crs is not None else 'none',
        'geometry_types': ','.join(sorted(geometry.geom_type.dropna().unique())),
        'n_empty_geometries': int(geometry.is_empty.sum()),
        'n_invalid_geometries': int((~geometry.is_valid).sum()),
        'minx': float(bounds[0]),
        'miny': float(bounds[1]),
        'maxx': float(bounds[2]),
        'maxy': float(bounds[3]),
    }


def compute_raster_metrics(raster, band: int = 1) -> QAMetrics:
    """
    Grid size, resolution and value statistics of a Raster band.

    Parameters
    ----------
    raster : spatial.core.raster.Raster
        The grid to analyze
    band : int
        1-based band index
    """
    metrics = QAMetrics()
    summary = raster.summary(band)

    metrics.add('crs', raster.crs.to_string() if raster.crs is not None else 'none')
    metrics.add('n_bands', raster.count)
    metrics.add('height', raster.height)
    metrics.add('width', raster.width)
    metrics.add('res_x', float(raster.res[0]))
    metrics.add('res_y', float(raster.res[1]))
    metrics.add('n_valid', summary['n_valid'])
    if summary['n_cells'] > 0:
        metrics.add_pct('missing', (1 - summary['n_valid'] / summary['n_cells']) * 100)
    metrics.add('value_min', summary['min'])
    metrics.add('value_max', summary['max'])
    metrics.add('value_mean', summary['mean'])

    return metrics


def generate_qa_report(
    stage_name: str,
    metrics: Union[QAMetrics, dict],
    output_dir: Optional[Path] = None,
    include_timestamp: bool = True,
) -> Optional[Path]:
    """
    Generate a QA report for a pipeline stage.

    Parameters
    ----------
    stage_name : str
        Name of the stage (e.g., 's00_boundary', 's01_elevation')
    metrics : QAMetrics or dict
        Metrics to include in the report
    output_dir : Path, optional
        Output directory (default: QA_REPORTS_DIR from config)
    include_timestamp : bool
        Whether to include timestamp in filename (default: True)

    Returns
    -------
    Path or None
        Path to generated report, or None if QA reports are disabled
    """
    if not ENABLE_QA_REPORTS:
        return None

    if isinstance(metrics, QAMetrics):
        metrics_dict = metrics.to_dict()
    else:
        metrics_dict = dict(metrics)

    if output_dir is None:
        output_dir = QA_REPORTS_DIR

    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
    if include_timestamp:
        filename = f'{stage_name}_quality_{timestamp}.csv'
    else:
        filename = f'{stage_name}_quality.csv'

    report_path = output_dir / filename

    rows = [
        {
            'metric': key,
            'value': value,
            'stage': stage_name,
            'timestamp': timestamp,
        }
        for key, value in metrics_dict.items()
    ]

    pd.DataFrame(rows).to_csv(report_path, index=False)

    print(f"QA report saved: {report_path}")
    return report_path


def print_qa_summary(metrics: Union[QAMetrics, dict], stage_name: str = '') -> None:
    """
    Print a formatted summary of QA metrics.

    Parameters
    ----------
    metrics : QAMetrics or dict
        Metrics to display
    stage_name : str, optional
        Stage name for header
    """
    if isinstance(metrics, QAMetrics):
        metrics_dict = metrics.to_dict()
    else:
        metrics_dict = dict(metrics)

    if stage_name:
        print(f"\nQA Summary: {stage_name}")
    else:
        print("\nQA Summary")
    print("-" * 40)

    for key, value in metrics_dict.items():
        if isinstance(value, float):
            print(f"  {key}: {value:,.2f}")
        elif isinstance(value, int):
            print(f"  {key}: {value:,}")
        else:
            print(f"  {key}: {value}")


def check_thresholds(
    metrics: Union[QAMetrics, dict],
    thresholds: Optional[dict] = None,
) -> list[str]:
    """
    Check metrics against thresholds and return warnings.

    Parameters
    ----------
    metrics : QAMetrics or dict
        Metrics to check
    thresholds : dict, optional
        Threshold definitions (default: QA_THRESHOLDS from config)

    Returns
    -------
    list[str]
        List of warning messages for threshold violations
    """
    if thresholds is None:
        thresholds = QA_THRESHOLDS

    if isinstance(metrics, QAMetrics):
        metrics_dict = metrics.to_dict()
    else:
        metrics_dict = dict(metrics)

    warnings = []

    if 'missing_pct' in metrics_dict and 'max_missing_pct' in thresholds:
        if metrics_dict['missing_pct'] > thresholds['max_missing_pct']:
            warnings.append(
                f"Missing values ({metrics_dict['missing_pct']:.1f}%) exceed "
                f"threshold ({thresholds['max_missing_pct']}%)"
            )

    if 'n_rows' in metrics_dict and 'min_row_count' in thresholds:
        if metrics_dict['n_rows'] < thresholds['min_row_count']:
            warnings.append(
                f"Row count ({metrics_dict['n_rows']}) below "
                f"threshold ({thresholds['min_row_count']})"
            )

    if 'duplicate_pct' in metrics_dict and 'max_duplicate_pct' in thresholds:
        if metrics_dict['duplicate_pct'] > thresholds['max_duplicate_pct']:
            warnings.append(
                f"Duplicate rows ({metrics_dict['duplicate_pct']:.1f}%) exceed "
                f"threshold ({thresholds['max_duplicate_pct']}%)"
            )

    if metrics_dict.get('n_invalid_geometries', 0) > 0:
        warnings.append(f"{metrics_dict['n_invalid_geometries']} invalid geometries")

    if metrics_dict.get('n_empty_geometries', 0) > 0:
        warnings.append(f"{metrics_dict['n_empty_geometries']} empty geometries")

    return warnings


# =============================================================================
# CONVENIENCE FUNCTIONS FOR COMMON PATTERNS
# =============================================================================

def _report(stage_name: str, metrics: QAMetrics, additional_metrics: Optional[dict]) -> Optional[Path]:
    if additional_metrics:
        metrics.update(additional_metrics)

    warnings = check_thresholds(metrics)
    if warnings:
        print(f"\nQA Warnings for {stage_name}:")
        for warning in warnings:
            print(f"  WARNING: {warning}")

    print_qa_summary(metrics, stage_name)
    return generate_qa_report(stage_name, metrics)


def qa_for_stage(
    stage_name: str,
    df,
    additional_metrics: Optional[dict] = None,
) -> Optional[Path]:
    """
    Complete QA workflow for a stage producing a (Geo)DataFrame.

    Computes standard metrics, adds any additional metrics, prints
    threshold warnings and a summary, and writes the QA report.

    Returns
    -------
    Path or None
        Path to generated report
    """
    return _report(stage_name, compute_dataframe_metrics(df), additional_metrics)


def qa_for_raster(
    stage_name: str,
    raster,
    additional_metrics: Optional[dict] = None,
) -> Optional[Path]:
    """Complete QA workflow for a stage producing a Raster."""
    return _report(stage_name, compute_raster_metrics(raster), additional_metrics)
