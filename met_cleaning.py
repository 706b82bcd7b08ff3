"""
Loading and cleaning of Met Open Access object records.

The loader reads only the four fields the analysis needs; the normalizer
keeps records with a usable accession year (>= 1900 by default) and drops
everything else without complaint.
"""

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import pandas as pd

from met_config import DEFAULT_MIN_YEAR, known_headers, resolve_columns

CANONICAL_FIELDS = ["object_id", "department", "credit_line", "accession_year"]
# Missing departments form their own blank group, as in the R export
MISSING_DEPARTMENT = ""

# Accession years are four-digit; anything larger is a data-entry error
MAX_ACCESSION_YEAR = 9999

# Plain integer text, optionally with a zero fraction ("1955", "1955.0")
YEAR_PATTERN = re.compile(r"^[+-]?(\d+)(\.0*)?$")

# Encodings tried in order for CSV exports; latin1 decodes any byte so it goes last
CSV_ENCODINGS = ["utf-8", "cp1252", "latin1"]


@dataclass(frozen=True)
class NormalizationReport:
    """How many raw records survived normalization."""
    total: int
    kept: int

    @property
    def dropped(self) -> int:
        return self.total - self.kept


# ==============================================================================
# 1. DATA LOADING
# ==============================================================================

def load_met_objects(file_path) -> pd.DataFrame:
    """
    Reads the raw Met objects export as string columns.
    Supports comma-separated .csv/.txt files and Excel workbooks.
    """
    path = Path(file_path)
    if not path.exists():
        raise FileNotFoundError(f"The file '{path}' was not found.")

    wanted = set(known_headers())
    usecols = lambda col: str(col).strip() in wanted  # noqa: E731

    suffix = path.suffix.lower()
    if suffix in (".csv", ".txt"):
        df = None
        for encoding in CSV_ENCODINGS:
            try:
                df = pd.read_csv(path, dtype=str, usecols=usecols, encoding=encoding,
                                 keep_default_na=False)
                break
            except UnicodeDecodeError:
                # Try the next encoding
                continue
        if df is None:
            raise ValueError(f"Could not decode '{path}' with any of: {', '.join(CSV_ENCODINGS)}")
    elif suffix in (".xls", ".xlsx"):
        df = pd.read_excel(path, dtype=str, usecols=usecols, keep_default_na=False)
    else:
        raise ValueError(f"Unsupported file format: {path.name}. Requires .csv, .txt, .xls, or .xlsx.")

    print(f"✅ Loaded {len(df):,} object records from '{path.name}'")
    return df


# ==============================================================================
# 2. NORMALIZATION
# ==============================================================================

def parse_accession_year(value) -> Optional[int]:
    """
    Returns the accession year as an int, or None when the value is missing,
    not plain integer text, or above MAX_ACCESSION_YEAR ('1955.0' counts as
    1955; '1_955', '1.9e3' and '1955.5' do not).
    """
    if value is None:
        return None
    if not isinstance(value, str) and pd.isna(value):
        return None
    text = str(value).strip()
    if not text:
        return None
    match = YEAR_PATTERN.match(text)
    if match is None:
        return None
    year = int(match.group(1))
    if text.startswith("-"):
        year = -year
    if year > MAX_ACCESSION_YEAR:
        return None
    return year


def normalize_records(raw: pd.DataFrame, min_year: int = DEFAULT_MIN_YEAR) -> pd.DataFrame:
    """
    Selects the four analysis fields and keeps records whose accession year
    parses as an integer >= min_year. Relative order is preserved and the
    input frame is left untouched.
    """
    columns = resolve_columns(raw.columns)
    df = raw[[columns[field] for field in CANONICAL_FIELDS]].copy()
    df.columns = CANONICAL_FIELDS

    years = pd.to_numeric(df["accession_year"].apply(parse_accession_year), errors="coerce")
    keep = years.notna() & (years >= min_year)

    normalized = df.loc[keep].copy()
    normalized["accession_year"] = years[keep].astype("int64")
    normalized["department"] = normalized["department"].fillna(MISSING_DEPARTMENT).astype(str)
    normalized["credit_line"] = normalized["credit_line"].fillna("").astype(str)
    return normalized.reset_index(drop=True)


def normalization_report(raw: pd.DataFrame, normalized: pd.DataFrame) -> NormalizationReport:
    return NormalizationReport(total=len(raw), kept=len(normalized))
