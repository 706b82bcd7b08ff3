"""
Configuration for the Met acquisition analysis.
Values come from a local .env file (or the process environment) and can be
overridden on the command line.
"""

import os
from dataclasses import dataclass
from typing import Dict, List, Optional

from dotenv import load_dotenv

# ==============================================================================
# CONFIGURATION
# ==============================================================================

# Accession years before this are excluded from the analysis
DEFAULT_MIN_YEAR = 1900
DEFAULT_INPUT_PATH = "MetObjects.txt"
DEFAULT_OUTPUT_DIR = "analysis_output"
DEFAULT_FIGURE_DPI = 300

# Canonical field name -> header spellings found in Met exports
COLUMN_ALIASES: Dict[str, List[str]] = {
    "object_id": ["Object ID", "Object.ID", "object_id", "objectID"],
    "department": ["Department", "department"],
    "credit_line": ["Credit Line", "Credit.Line", "credit_line", "creditLine"],
    "accession_year": ["AccessionYear", "Accession Year", "accession_year", "accessionYear"],
}

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass
class AnalysisConfig:
    """Settings for one analysis run."""
    input_path: str = DEFAULT_INPUT_PATH
    output_dir: str = DEFAULT_OUTPUT_DIR
    min_year: int = DEFAULT_MIN_YEAR
    save_plots: bool = True
    export_summary: bool = True
    figure_dpi: int = DEFAULT_FIGURE_DPI
    strict_chi_square: bool = False


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ValueError(f"{name} must be a boolean (true/false), got '{raw}'")


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw.strip())
    except ValueError:
        raise ValueError(f"{name} must be an integer, got '{raw}'") from None


def load_config(env_file: Optional[str] = None) -> AnalysisConfig:
    """
    Builds an AnalysisConfig from environment variables, loading a .env file
    first. Variables already set in the environment win over the .env file.
    """
    load_dotenv(env_file)
    return AnalysisConfig(
        input_path=os.environ.get("MET_OBJECTS_PATH", DEFAULT_INPUT_PATH),
        output_dir=os.environ.get("MET_OUTPUT_DIR", DEFAULT_OUTPUT_DIR),
        min_year=_env_int("MET_MIN_YEAR", DEFAULT_MIN_YEAR),
        save_plots=_env_bool("MET_SAVE_PLOTS", True),
        export_summary=_env_bool("MET_EXPORT_SUMMARY", True),
        figure_dpi=_env_int("MET_FIGURE_DPI", DEFAULT_FIGURE_DPI),
        strict_chi_square=_env_bool("MET_STRICT_CHI_SQUARE", False),
    )


def resolve_columns(columns) -> Dict[str, str]:
    """
    Maps each canonical field to the matching header in *columns*.
    Raises ValueError when a required field has no matching header.
    """
    stripped = {str(col).strip(): col for col in columns}
    resolved = {}
    for field, aliases in COLUMN_ALIASES.items():
        match = next((stripped[a] for a in aliases if a in stripped), None)
        if match is None:
            raise ValueError(
                f"Required column for '{field}' not found. Expected one of: {', '.join(aliases)}"
            )
        resolved[field] = match
    return resolved


def known_headers() -> List[str]:
    """All header spellings the loader reads from a raw file."""
    return [alias for aliases in COLUMN_ALIASES.values() for alias in aliases]
