#!/usr/bin/env python3
"""
Common utility functions for the workshop pipeline.

This module provides shared helper functions used across multiple stages.
"""
from __future__ import annotations

from pathlib import Path
from typing import Optional

import pandas as pd


def ensure_dir(path: Path) -> Path:
    """Ensure a directory exists, creating it if necessary."""
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_project_root() -> Path:
    """Get the project root directory."""
    current = Path(__file__).resolve()
    for parent in current.parents:
        if (parent / 'src').exists() and (parent / 'manuscript_quarto').exists():
            return parent
    raise RuntimeError("Could not find project root")


def get_diagnostics_dir() -> Path:
    """Directory for tables consumed by the tutorial document."""
    from config import DIAGNOSTICS_DIR
    return DIAGNOSTICS_DIR


def get_figures_dir() -> Path:
    """Directory for figures embedded in the tutorial document."""
    from config import MANUSCRIPT_FIGURES_DIR
    return MANUSCRIPT_FIGURES_DIR


def save_diagnostic(
    df: pd.DataFrame,
    filename: str,
    output_dir: Optional[Path] = None,
) -> Path:
    """
    Save a diagnostic table as CSV.

    Parameters
    ----------
    df : pd.DataFrame
        Table to save. Geometry columns are dropped.
    filename : str
        File name, e.g. 'moran_results.csv'.
    output_dir : Path, optional
        Defaults to data_work/diagnostics/.

    Returns
    -------
    Path
        Path to the written file.
    """
    output_dir = ensure_dir(output_dir or get_diagnostics_dir())
    path = output_dir / filename

    if 'geometry' in df.columns:
        df = pd.DataFrame(df.drop(columns='geometry'))

    df.to_csv(path, index=False)
    print(f"  Saved: {path}")
    return path


def print_header(title: str) -> None:
    """Print a stage banner."""
    print("=" * 60)
    print(title)
    print("=" * 60)


def print_footer(title: str) -> None:
    print("\n" + "=" * 60)
    print(f"{title} complete.")
    print("=" * 60)


def format_pvalue(p: float, threshold: float = 0.001) -> str:
    """Format p-value for display."""
    if p < threshold:
        return f"<{threshold}"
    return f"{p:.3f}"


def add_significance_stars(p: float) -> str:
    """Add significance stars based on p-value."""
    if p < 0.001:
        return "***"
    elif p < 0.01:
        return "**"
    elif p < 0.05:
        return "*"
    return ""
