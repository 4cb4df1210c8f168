#!/usr/bin/env python3
"""
Configuration constants for the spatial data science workshop.

This module centralizes paths, the literal workshop parameters (CRS
identifiers, sample size, random seed, variogram family and starting
values) and pipeline settings. The narrated outputs of the tutorial are
only reproducible when these values are left unchanged.

Usage
-----
    from config import PROJECT_ROOT, DIAGNOSTICS_DIR, RANDOM_SEED

    # Or import specific sections
    from config import (
        # Paths
        DATA_RAW_DIR,
        DATA_WORK_DIR,
        MANUSCRIPT_FIGURES_DIR,

        # CRS
        GEOGRAPHIC_CRS,
        PROJECTED_CRS,

        # Methodological Parameters
        SAMPLE_SIZE,
        VARIOGRAM_MODEL,
        SIGNIFICANCE_LEVEL,
    )

    # Override parameters from a YAML file
    params = load_parameters('workshop.yml')
"""
from __future__ import annotations

from pathlib import Path
from typing import Optional, Union


# =============================================================================
# PATHS
# =============================================================================

def _find_project_root() -> Path:
    """Find project root by looking for characteristic directories."""
    current = Path(__file__).resolve()
    for parent in current.parents:
        if (parent / 'src').exists() and (parent / 'manuscript_quarto').exists():
            return parent
    # Fallback: use parent of src/
    return Path(__file__).resolve().parent.parent


PROJECT_ROOT = _find_project_root()

# Data directories
DATA_RAW_DIR = PROJECT_ROOT / 'data_raw'
DATA_WORK_DIR = PROJECT_ROOT / 'data_work'
DIAGNOSTICS_DIR = DATA_WORK_DIR / 'diagnostics'
SPATIAL_DATA_DIR = DATA_WORK_DIR / 'spatial'

# Output directories
MANUSCRIPT_DIR = PROJECT_ROOT / 'manuscript_quarto'
MANUSCRIPT_FIGURES_DIR = MANUSCRIPT_DIR / 'figures'

# Raw inputs (used when present, otherwise synthetic demo data is generated)
BOUNDARY_FILE = DATA_RAW_DIR / 'ne_10m_admin_0_countries.zip'
ELEVATION_FILE = DATA_RAW_DIR / 'elevation.tif'

# Natural Earth admin-0 countries (read directly by GDAL when downloading)
NATURAL_EARTH_URL = (
    'https://naciscdn.org/naturalearth/10m/cultural/ne_10m_admin_0_countries.zip'
)


# =============================================================================
# QUALITY ASSURANCE
# =============================================================================

# Enable per-stage QA report generation
ENABLE_QA_REPORTS = True

# Output directory for QA reports
QA_REPORTS_DIR = DATA_WORK_DIR / 'quality'

# QA thresholds
QA_THRESHOLDS = {
    'max_missing_pct': 5.0,       # Warn if >5% missing values
    'min_row_count': 10,          # Warn if fewer than 10 rows
    'max_duplicate_pct': 1.0,     # Warn if >1% duplicate rows
}


# =============================================================================
# STUDY AREA AND CRS
# =============================================================================

# Attribute filter applied to the boundary dataset
COUNTRY_NAME = 'Switzerland'
COUNTRY_FIELD = 'ADMIN'

# Coordinate reference systems
GEOGRAPHIC_CRS = 'EPSG:4326'   # WGS84
PROJECTED_CRS = 'EPSG:2056'    # CH1903+ / LV95
ALTERNATIVE_CRS = 'EPSG:3035'  # ETRS89 / LAEA Europe

# Relative tolerance between projected and ellipsoidal areas
AREA_RELATIVE_TOLERANCE = 0.01

# Absolute tolerance (degrees) for reprojection round trips
ROUND_TRIP_TOLERANCE = 1e-7


# =============================================================================
# ELEVATION
# =============================================================================

# Cell size (metres) of the DEM after warping to PROJECTED_CRS
DEM_RESOLUTION = 1000.0

# rasterio.warp.Resampling member used for the warp
DEM_RESAMPLING = 'bilinear'


# =============================================================================
# SAMPLING
# =============================================================================

SAMPLE_SIZE = 200
RANDOM_SEED = 42

# Options: 'random', 'regular'
SAMPLING_METHOD = 'random'


# =============================================================================
# INTERPOLATION
# =============================================================================

# Prediction grid resolution in metres (PROJECTED_CRS units)
GRID_RESOLUTION = 2000.0

# Inverse distance weighting
IDW_POWER = 2.0
IDW_MAX_NEIGHBORS = None  # None = use all observations

# Variogram model family. Options: 'spherical', 'exponential', 'gaussian'
VARIOGRAM_MODEL = 'spherical'
VARIOGRAM_MODELS = ['spherical', 'exponential', 'gaussian']

# Starting values for the variogram fit (elevation in m, distances in m)
VARIOGRAM_INITIAL = {
    'psill': 300_000.0,
    'range': 80_000.0,
    'nugget': 5_000.0,
}

# Number of lag bins; cutoff defaults to one third of the bbox diagonal
VARIOGRAM_N_LAGS = 15
VARIOGRAM_CUTOFF = None

# k-fold cross-validation of the interpolators
CV_FOLDS = 5


# =============================================================================
# POINT PATTERN ANALYSIS
# =============================================================================

QUADRAT_GRID = (5, 5)
G_FUNCTION_STEPS = 50
K_FUNCTION_STEPS = 25


# =============================================================================
# LATTICE STATISTICS
# =============================================================================

# Options: 'queen', 'rook'
CONTIGUITY = 'queen'
CONTIGUITY_KINDS = ['queen', 'rook']

# libpysal transformation code ('r' = row-standardised)
WEIGHTS_TRANSFORM = 'r'

MORAN_PERMUTATIONS = 999

# Regression specification on Voronoi cells
REGRESSION_Y = 'elevation_mean'
REGRESSION_X = ['easting_km', 'northing_km']


# =============================================================================
# METHODOLOGICAL PARAMETERS
# =============================================================================

# Statistical thresholds
SIGNIFICANCE_LEVEL = 0.05


# =============================================================================
# FILE NAMING CONVENTIONS
# =============================================================================

CRS_AREAS_FILE = 'crs_areas.csv'
ELEVATION_SUMMARY_FILE = 'elevation_summary.csv'
SAMPLES_FILE = 'samples.csv'
VARIOGRAM_FILE = 'variogram.csv'
VARIOGRAM_MODEL_FILE = 'variogram_model.csv'
CROSS_VALIDATION_FILE = 'cross_validation.csv'
POINT_PATTERN_FILE = 'point_pattern.csv'
G_FUNCTION_FILE = 'g_function.csv'
K_FUNCTION_FILE = 'ripley_k.csv'
CELLS_FILE = 'voronoi_cells.csv'
WEIGHTS_FILE = 'weights_summary.csv'
MORAN_FILE = 'moran_results.csv'
REGRESSION_FILE = 'regression_comparison.csv'


# =============================================================================
# TUNABLE PARAMETERS
# =============================================================================

# Keys accepted in a YAML parameter file
DEFAULT_PARAMETERS = {
    'country_name': COUNTRY_NAME,
    'country_field': COUNTRY_FIELD,
    'geographic_crs': GEOGRAPHIC_CRS,
    'projected_crs': PROJECTED_CRS,
    'alternative_crs': ALTERNATIVE_CRS,
    'sample_size': SAMPLE_SIZE,
    'random_seed': RANDOM_SEED,
    'sampling_method': SAMPLING_METHOD,
    'grid_resolution': GRID_RESOLUTION,
    'idw_power': IDW_POWER,
    'idw_max_neighbors': IDW_MAX_NEIGHBORS,
    'variogram_model': VARIOGRAM_MODEL,
    'variogram_initial': dict(VARIOGRAM_INITIAL),
    'variogram_n_lags': VARIOGRAM_N_LAGS,
    'variogram_cutoff': VARIOGRAM_CUTOFF,
    'cv_folds': CV_FOLDS,
    'contiguity': CONTIGUITY,
    'moran_permutations': MORAN_PERMUTATIONS,
    'significance_level': SIGNIFICANCE_LEVEL,
}


def load_parameters(path: Optional[Union[str, Path]] = None) -> dict:
    """
    Load workshop parameters, optionally overridden from a YAML file.

    Parameters
    ----------
    path : str or Path, optional
        YAML file with a flat mapping of parameter names to values.
        Only keys present in DEFAULT_PARAMETERS are accepted.

    Returns
    -------
    dict
        Parameters with overrides applied.

    Raises
    ------
    FileNotFoundError
        If the parameter file does not exist.
    ValueError
        If the file contains unknown keys or invalid values.
    """
    params = {
        key: (dict(value) if isinstance(value, dict) else value)
        for key, value in DEFAULT_PARAMETERS.items()
    }

    if path is None:
        return params

    import yaml

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Parameter file not found: {path}")

    with open(path) as f:
        overrides = yaml.safe_load(f) or {}

    if not isinstance(overrides, dict):
        raise ValueError(f"Parameter file must contain a mapping: {path}")

    unknown = sorted(set(overrides) - set(params))
    if unknown:
        raise ValueError(
            f"Unknown parameter(s) in {path.name}: {', '.join(unknown)}. "
            f"Available: {', '.join(sorted(params))}"
        )

    for key, value in overrides.items():
        if key == 'variogram_initial':
            params[key].update(value)
        else:
            params[key] = value

    validate_parameters(params)
    return params


# =============================================================================
# VALIDATION
# =============================================================================

def validate_parameters(params: dict) -> bool:
    """
    Validate a parameter dictionary.

    Raises
    ------
    ValueError
        If any parameter is invalid. All problems are reported at once.
    """
    errors = []

    if not 0 < params['significance_level'] < 1:
        errors.append(
            f"significance_level must be between 0 and 1: {params['significance_level']}"
        )

    if int(params['sample_size']) < 3:
        errors.append(f"sample_size must be at least 3: {params['sample_size']}")

    if params['sampling_method'] not in ('random', 'regular'):
        errors.append(f"sampling_method must be 'random' or 'regular': {params['sampling_method']}")

    if params['variogram_model'] not in VARIOGRAM_MODELS:
        errors.append(
            f"variogram_model must be one of {VARIOGRAM_MODELS}: {params['variogram_model']}"
        )

    missing = {'psill', 'range', 'nugget'} - set(params['variogram_initial'])
    if missing:
        errors.append(f"variogram_initial is missing: {', '.join(sorted(missing))}")

    if params['grid_resolution'] <= 0:
        errors.append(f"grid_resolution must be positive: {params['grid_resolution']}")

    if params['contiguity'] not in CONTIGUITY_KINDS:
        errors.append(f"contiguity must be one of {CONTIGUITY_KINDS}: {params['contiguity']}")

    if int(params['cv_folds']) < 2:
        errors.append(f"cv_folds must be at least 2: {params['cv_folds']}")

    if errors:
        raise ValueError("Configuration errors:\n" + "\n".join(f"  - {e}" for e in errors))

    return True


def validate_config() -> bool:
    """
    Validate configuration settings.

    Returns
    -------
    bool
        True if all validations pass

    Raises
    ------
    ValueError
        If any configuration is invalid
    """
    errors = []

    if not PROJECT_ROOT.exists():
        errors.append(f"PROJECT_ROOT does not exist: {PROJECT_ROOT}")

    if SAMPLE_SIZE < 3:
        errors.append(f"SAMPLE_SIZE must be at least 3: {SAMPLE_SIZE}")

    if errors:
        raise ValueError("Configuration errors:\n" + "\n".join(f"  - {e}" for e in errors))

    return validate_parameters(DEFAULT_PARAMETERS)


def ensure_directories() -> None:
    """Create required directories if they don't exist."""
    for path in [DATA_RAW_DIR, DATA_WORK_DIR, DIAGNOSTICS_DIR, SPATIAL_DATA_DIR,
                 MANUSCRIPT_FIGURES_DIR, QA_REPORTS_DIR]:
        path.mkdir(parents=True, exist_ok=True)


def get_data_dir(subdir: str = 'work') -> Path:
    """Get data directory by short name."""
    if subdir == 'raw':
        return DATA_RAW_DIR
    elif subdir == 'work':
        return DATA_WORK_DIR
    elif subdir == 'diagnostics':
        return DIAGNOSTICS_DIR
    elif subdir == 'spatial':
        return SPATIAL_DATA_DIR
    else:
        return PROJECT_ROOT / f'data_{subdir}'


# =============================================================================
# MODULE INITIALIZATION
# =============================================================================

if __name__ == '__main__':
    # Print configuration when run directly
    print("Workshop Configuration")
    print("=" * 50)
    print(f"PROJECT_ROOT:      {PROJECT_ROOT}")
    print(f"DATA_RAW_DIR:      {DATA_RAW_DIR}")
    print(f"DATA_WORK_DIR:     {DATA_WORK_DIR}")
    print(f"MANUSCRIPT_DIR:    {MANUSCRIPT_DIR}")
    print()
    for key, value in DEFAULT_PARAMETERS.items():
        print(f"{key + ':':<20} {value}")
    print()
    print("Validating configuration...")
    try:
        validate_config()
        print("Configuration valid.")
    except ValueError as e:
        print(f"Configuration invalid:\n{e}")
