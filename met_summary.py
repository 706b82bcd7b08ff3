"""
Department x decade summary of acquisition types.

Groups are built in a single pass over the classified records, so a
(department, decade) row only exists when at least one record falls into
it and every ratio has a non-zero denominator.
"""

from dataclasses import asdict, dataclass
from typing import Dict, List, Sequence, Tuple

import pandas as pd

from met_classification import PHILANTHROPY, PURCHASE

SUMMARY_COLUMNS = [
    "department",
    "decade",
    "gift_count",
    "purchase_count",
    "total_count",
    "gift_ratio",
    "purchase_ratio",
]


@dataclass(frozen=True)
class AggregateRow:
    department: str
    decade: int
    gift_count: int
    purchase_count: int
    total_count: int

    @property
    def gift_ratio(self) -> float:
        return self.gift_count / self.total_count

    @property
    def purchase_ratio(self) -> float:
        return self.purchase_count / self.total_count

    def as_dict(self) -> Dict[str, object]:
        row = asdict(self)
        row["gift_ratio"] = self.gift_ratio
        row["purchase_ratio"] = self.purchase_ratio
        return row


def aggregate_records(classified: pd.DataFrame) -> List[AggregateRow]:
    """
    Counts gifts, purchases and all records per (department, decade).
    Rows come back sorted by key, but callers should not rely on the order.
    """
    groups: Dict[Tuple[str, int], List[int]] = {}
    for department, decade, acquisition_type in classified[
        ["department", "decade", "acquisition_type"]
    ].itertuples(index=False, name=None):
        counts = groups.setdefault((department, int(decade)), [0, 0, 0])
        if acquisition_type == PHILANTHROPY:
            counts[0] += 1
        elif acquisition_type == PURCHASE:
            counts[1] += 1
        counts[2] += 1

    return [
        AggregateRow(
            department=department,
            decade=decade,
            gift_count=gifts,
            purchase_count=purchases,
            total_count=total,
        )
        for (department, decade), (gifts, purchases, total) in sorted(groups.items())
    ]


def summary_frame(rows: Sequence[AggregateRow]) -> pd.DataFrame:
    """Materializes aggregate rows as a DataFrame with SUMMARY_COLUMNS."""
    if not rows:
        return pd.DataFrame(columns=SUMMARY_COLUMNS)
    return pd.DataFrame([row.as_dict() for row in rows], columns=SUMMARY_COLUMNS)


def build_summary_table(classified: pd.DataFrame) -> pd.DataFrame:
    return summary_frame(aggregate_records(classified))


def count_combinations(classified: pd.DataFrame, columns: Sequence[str]) -> pd.DataFrame:
    """Number of records (`n`) for each observed combination of *columns*."""
    return (
        classified.groupby(list(columns), sort=True)
        .size()
        .reset_index(name="n")
    )
