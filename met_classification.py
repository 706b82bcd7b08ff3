"""
Acquisition type classification from credit-line text, plus decade buckets.
"""

from typing import List, Tuple

import pandas as pd

PHILANTHROPY = "Philanthropy"
PURCHASE = "Purchase"
OTHER = "Other"
ACQUISITION_TYPES = [PHILANTHROPY, PURCHASE, OTHER]

# Evaluated top-down, first match wins. A credit line naming both a gift and
# a purchase is Philanthropy.
ACQUISITION_RULES: List[Tuple[str, Tuple[str, ...]]] = [
    (PHILANTHROPY, ("gift", "bequest", "donation", "donor")),
    (PURCHASE, ("purchase",)),
]


def classify_credit_line(credit_line) -> str:
    """Returns Philanthropy, Purchase, or Other for a credit line."""
    if credit_line is None or (not isinstance(credit_line, str) and pd.isna(credit_line)):
        return OTHER
    text = str(credit_line).casefold()
    for label, keywords in ACQUISITION_RULES:
        if any(keyword in text for keyword in keywords):
            return label
    return OTHER


def decade_of(year: int) -> int:
    """Rounds a year down to its decade, e.g. 1995 -> 1990."""
    return (int(year) // 10) * 10


def classify_records(normalized: pd.DataFrame) -> pd.DataFrame:
    """
    Returns a new frame with an `acquisition_type` label and a `decade`
    bucket added to every normalized record.
    """
    classified = normalized.copy()
    classified["acquisition_type"] = classified["credit_line"].apply(classify_credit_line).astype(object)
    classified["decade"] = classified["accession_year"].apply(decade_of).astype("int64")
    return classified


def acquisition_type_counts(classified: pd.DataFrame) -> pd.Series:
    """Number of records per acquisition type, always listing all three labels."""
    counts = classified["acquisition_type"].value_counts()
    return counts.reindex(ACQUISITION_TYPES, fill_value=0).astype("int64")
