"""
Common utilities for tutorial table and figure rendering.
Loads diagnostic CSVs written by the pipeline and provides helper functions
for table rendering.
"""

import sys
from pathlib import Path

import pandas as pd
from IPython.display import Markdown, display


def show_table(df: pd.DataFrame, floatfmt: str = ".3f") -> None:
    """Display a DataFrame as a properly rendered markdown table.

    This function works correctly in both HTML and PDF output formats.
    """
    display(Markdown(df.to_markdown(index=False, floatfmt=floatfmt)))


def _find_project_root() -> Path:
    """Find project root by looking for characteristic files."""
    current = Path(__file__).resolve()
    for parent in current.parents:
        if (parent / 'src').exists() and (parent / 'manuscript_quarto').exists():
            return parent
    # Fallback: assume manuscript_quarto is one level down from root
    return Path(__file__).parent.parent.parent


# Project paths
PROJECT_ROOT = _find_project_root()
DATA_DIR = PROJECT_ROOT / "data_work" / "diagnostics"
FIG_DIR = PROJECT_ROOT / "manuscript_quarto" / "figures"

# Make the pipeline modules importable from tutorial cells
if str(PROJECT_ROOT / "src") not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT / "src"))


def data_available() -> bool:
    """Check if pipeline data is available for tutorial rendering."""
    return DATA_DIR.exists() and any(DATA_DIR.glob("*.csv"))


def load_diagnostic(name: str, required: bool = True) -> pd.DataFrame:
    """Load a diagnostic CSV file by name (without .csv extension).

    Parameters
    ----------
    name : str
        Name of the diagnostic file (without .csv extension)
    required : bool
        If True, raise error when file missing. If False, return empty DataFrame.

    Returns
    -------
    pd.DataFrame
        Loaded data, or empty DataFrame if not required and missing
    """
    path = DATA_DIR / f"{name}.csv"
    if not path.exists():
        if required:
            raise FileNotFoundError(
                f"Diagnostic file not found: {path}\n"
                f"Run the pipeline first: python src/pipeline.py run_all --demo"
            )
        return pd.DataFrame()
    return pd.read_csv(path)


def figure_path(name: str) -> Path:
    """Path of a figure written by the make_figures stage."""
    return FIG_DIR / name


def format_pvalue(p: float, threshold: float = 0.001) -> str:
    """Format p-value for display."""
    if p < threshold:
        return f"<{threshold}"
    return f"{p:.3f}"


def format_percent(value: float, decimals: int = 2) -> str:
    """Format value as percentage."""
    return f"{value * 100:.{decimals}f}%"


# Workshop loaders
def load_crs_areas() -> pd.DataFrame:
    """Polygon area by CRS and ellipsoidal method."""
    return load_diagnostic("crs_areas")


def load_elevation_summary() -> pd.DataFrame:
    return load_diagnostic("elevation_summary")


def load_samples() -> pd.DataFrame:
    return load_diagnostic("samples")


def load_variogram() -> tuple[pd.DataFrame, pd.DataFrame]:
    """Empirical bins and the fitted model parameters."""
    return load_diagnostic("variogram"), load_diagnostic("variogram_model")


def load_cross_validation() -> pd.DataFrame:
    return load_diagnostic("cross_validation")


def load_point_pattern() -> pd.DataFrame:
    return load_diagnostic("point_pattern")


def load_weights_summary() -> pd.DataFrame:
    return load_diagnostic("weights_summary")


def load_moran() -> pd.DataFrame:
    """Moran's I for cell elevation and the random control."""
    return load_diagnostic("moran_results")


def load_regression() -> pd.DataFrame:
    """OLS and spatial error coefficients with fit statistics."""
    return load_diagnostic("regression_comparison")
