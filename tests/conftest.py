"""Shared fixtures for the acquisition analysis tests."""

import matplotlib

matplotlib.use("Agg")

import pandas as pd
import pytest

RAW_COLUMNS = ["Object ID", "Department", "Credit Line", "AccessionYear"]

MET_ENV_VARS = [
    "MET_OBJECTS_PATH",
    "MET_OUTPUT_DIR",
    "MET_MIN_YEAR",
    "MET_SAVE_PLOTS",
    "MET_EXPORT_SUMMARY",
    "MET_FIGURE_DPI",
    "MET_STRICT_CHI_SQUARE",
]

# (department, decade) -> (gifts, purchases, other)
MUSEUM_GROUPS = {
    ("Paintings", 1950): (3, 1, 0),
    ("Paintings", 1960): (2, 2, 0),
    ("Paintings", 1970): (4, 0, 1),
    ("Paintings", 1980): (1, 3, 0),
    ("Arms and Armor", 1950): (1, 3, 0),
    ("Arms and Armor", 1960): (0, 4, 1),
    ("Arms and Armor", 1970): (2, 2, 0),
    ("Arms and Armor", 1980): (1, 1, 2),
    ("Egyptian Art", 1950): (2, 0, 2),
    ("Egyptian Art", 1960): (3, 1, 0),
    ("Egyptian Art", 1970): (1, 2, 1),
    ("Egyptian Art", 1980): (4, 1, 0),
}


def make_raw(rows):
    return pd.DataFrame(rows, columns=RAW_COLUMNS)


@pytest.fixture
def example_raw():
    """The three Paintings records from the worked example."""
    return make_raw([
        ["1", "Paintings", "Gift of Jane Doe", "1955"],
        ["2", "Paintings", "Purchase, 1962 Funds", "1955"],
        ["3", "Paintings", "Gift of John Roe", "1951"],
    ])


@pytest.fixture
def museum_raw():
    """Three departments over four decades, plus records the cleaner must drop."""
    rows = []
    object_id = 1
    for (department, decade), (gifts, purchases, other) in MUSEUM_GROUPS.items():
        credit_lines = (
            ["Gift of a Friend of the Museum"] * gifts
            + ["Purchase, Rogers Fund"] * purchases
            + ["Museum Accession"] * other
        )
        for offset, credit_line in enumerate(credit_lines):
            rows.append([str(object_id), department, credit_line, str(decade + offset % 10)])
            object_id += 1
    rows += [
        ["900", "Paintings", "Gift of J. Pierpont Morgan", "1899"],
        ["901", "Paintings", "Purchase, Rogers Fund", ""],
        ["902", "Egyptian Art", "Gift of Edward S. Harkness", "n.d."],
        ["903", "Arms and Armor", "Bequest of George C. Stone", None],
    ]
    return make_raw(rows)


@pytest.fixture
def clean_env(monkeypatch):
    """Removes MET_* variables and restores them after the test."""
    for name in MET_ENV_VARS:
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    return monkeypatch
