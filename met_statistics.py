"""
Statistical tests over the acquisition summary.

- One-way ANOVA:         gift_ratio ~ department
- Linear regression:     gift_ratio ~ department + decade  (OLS)
- Chi-square test:       department x acquisition type (Philanthropy vs Purchase)

Each analysis is a pure function of its input table. Failures are raised as
StatisticalAnalysisError subclasses so that the caller can report one
analysis as failed and carry on with the others.
"""

from dataclasses import dataclass
from typing import Dict, List, Union

import numpy as np
import pandas as pd
from scipy import stats

from met_classification import PHILANTHROPY, PURCHASE

# Expected counts below this make the chi-square approximation unreliable
MIN_EXPECTED_COUNT = 5.0

# Sums of squares below this are treated as exactly zero
_SS_TOLERANCE = 1e-12


class StatisticalAnalysisError(ValueError):
    """Base class for analyses that cannot run on the given data."""


class DegenerateModelError(StatisticalAnalysisError):
    """The regression design matrix is rank deficient or has a constant predictor."""


class InsufficientDataError(StatisticalAnalysisError):
    """Not enough groups (or counts) for the test to be meaningful."""


# ==============================================================================
# RESULT TYPES
# ==============================================================================

@dataclass(frozen=True)
class AnovaResult:
    df_between: int
    df_within: int
    ss_between: float
    ss_within: float
    f_statistic: float
    p_value: float
    group_count: int
    observation_count: int

    @property
    def ms_between(self) -> float:
        return self.ss_between / self.df_between

    @property
    def ms_within(self) -> float:
        return self.ss_within / self.df_within

    def table(self) -> pd.DataFrame:
        """ANOVA table with a `department` row and a `Residuals` row."""
        return pd.DataFrame(
            {
                "Df": [self.df_between, self.df_within],
                "Sum Sq": [self.ss_between, self.ss_within],
                "Mean Sq": [self.ms_between, self.ms_within],
                "F value": [self.f_statistic, np.nan],
                "Pr(>F)": [self.p_value, np.nan],
            },
            index=["department", "Residuals"],
        )


@dataclass(frozen=True, eq=False)
class RegressionResult:
    coefficients: pd.DataFrame  # indexed by term: estimate, std_error, t_value, p_value
    r_squared: float
    adj_r_squared: float
    f_statistic: float
    f_p_value: float
    df_model: int
    df_residual: int
    n_observations: int
    reference_level: str


@dataclass(frozen=True, eq=False)
class ChiSquareResult:
    statistic: float
    dof: int
    p_value: float
    table: pd.DataFrame      # observed counts, departments x acquisition types
    expected: pd.DataFrame
    low_expected_cells: int
    yates_correction: bool

    @property
    def approximation_ok(self) -> bool:
        return self.low_expected_cells == 0


AnalysisOutcome = Union[AnovaResult, RegressionResult, ChiSquareResult, StatisticalAnalysisError]


# ==============================================================================
# ANOVA
# ==============================================================================

def run_anova(summary: pd.DataFrame) -> AnovaResult:
    """
    One-way analysis of variance of gift_ratio across departments.
    Departments observed in a single decade still count as a group.
    """
    data = summary[["department", "gift_ratio"]].dropna()
    groups = [
        group["gift_ratio"].to_numpy(dtype=float)
        for _, group in data.groupby("department", sort=True)
    ]
    group_count = len(groups)
    n = len(data)
    if group_count < 2:
        raise InsufficientDataError(
            f"ANOVA needs at least two departments, got {group_count}"
        )
    df_between = group_count - 1
    df_within = n - group_count
    if df_within < 1:
        raise InsufficientDataError(
            "ANOVA needs more observations than departments "
            f"({n} rows for {group_count} departments)"
        )

    grand_mean = data["gift_ratio"].to_numpy(dtype=float).mean()
    ss_between = float(sum(len(g) * (g.mean() - grand_mean) ** 2 for g in groups))
    ss_within = float(sum(((g - g.mean()) ** 2).sum() for g in groups))

    if ss_within > _SS_TOLERANCE:
        result = stats.f_oneway(*groups)
        f_statistic, p_value = float(result.statistic), float(result.pvalue)
    elif ss_between > _SS_TOLERANCE:
        # Groups are internally constant but differ from each other
        f_statistic, p_value = float("inf"), 0.0
    else:
        f_statistic, p_value = float("nan"), float("nan")

    return AnovaResult(
        df_between=df_between,
        df_within=df_within,
        ss_between=ss_between,
        ss_within=ss_within,
        f_statistic=float(f_statistic),
        p_value=p_value,
        group_count=group_count,
        observation_count=n,
    )


# ==============================================================================
# REGRESSION
# ==============================================================================

def build_design_matrix(summary: pd.DataFrame):
    """
    Intercept, treatment-coded department dummies (first level alphabetically
    is the reference) and decade as a numeric column.
    Returns (X, term names, reference level).
    """
    levels = sorted(summary["department"].unique())
    reference = levels[0] if levels else ""
    n = len(summary)
    columns = [np.ones(n)]
    names = ["Intercept"]
    for level in levels[1:]:
        columns.append((summary["department"] == level).to_numpy(dtype=float))
        names.append(f"department[{level}]")
    columns.append(summary["decade"].to_numpy(dtype=float))
    names.append("decade")
    return np.column_stack(columns), names, reference


def run_regression(summary: pd.DataFrame) -> RegressionResult:
    """Ordinary least squares fit of gift_ratio ~ department + decade."""
    data = summary[["department", "decade", "gift_ratio"]].dropna()
    n = len(data)
    if n == 0 or data["decade"].nunique() < 2:
        raise DegenerateModelError(
            "decade is constant across all rows and is collinear with the intercept"
        )

    X, names, reference = build_design_matrix(data)
    y = data["gift_ratio"].to_numpy(dtype=float)
    n_params = X.shape[1]
    if n <= n_params:
        raise DegenerateModelError(
            f"{n} department/decade rows cannot fit {n_params} parameters"
        )
    if np.linalg.matrix_rank(X) < n_params:
        raise DegenerateModelError("design matrix is rank deficient")

    # (X'X)^-1 == pinv(X) pinv(X)', computed through the SVD of X
    x_pinv = np.linalg.pinv(X)
    beta = x_pinv @ y
    residuals = y - X @ beta
    rss = float(residuals @ residuals)
    df_residual = n - n_params
    df_model = n_params - 1
    sigma2 = rss / df_residual

    xtx_inv = x_pinv @ x_pinv.T
    std_errors = np.sqrt(sigma2 * np.diag(xtx_inv))
    with np.errstate(divide="ignore", invalid="ignore"):
        t_values = beta / std_errors
    p_values = 2 * stats.t.sf(np.abs(t_values), df_residual)

    tss = float(((y - y.mean()) ** 2).sum())
    if tss > _SS_TOLERANCE:
        r_squared = 1.0 - rss / tss
        adj_r_squared = 1.0 - (1.0 - r_squared) * (n - 1) / df_residual
    else:
        r_squared = adj_r_squared = float("nan")

    explained = max(tss - rss, 0.0)
    if sigma2 > 0:
        f_statistic = (explained / df_model) / sigma2
    elif explained > _SS_TOLERANCE:
        f_statistic = float("inf")
    else:
        f_statistic = float("nan")
    f_p_value = float(stats.f.sf(f_statistic, df_model, df_residual))

    coefficients = pd.DataFrame(
        {
            "estimate": beta,
            "std_error": std_errors,
            "t_value": t_values,
            "p_value": p_values,
        },
        index=pd.Index(names, name="term"),
    )
    return RegressionResult(
        coefficients=coefficients,
        r_squared=float(r_squared),
        adj_r_squared=float(adj_r_squared),
        f_statistic=float(f_statistic),
        f_p_value=f_p_value,
        df_model=df_model,
        df_residual=df_residual,
        n_observations=n,
        reference_level=reference,
    )


# ==============================================================================
# CHI-SQUARE
# ==============================================================================

def build_contingency_table(classified: pd.DataFrame) -> pd.DataFrame:
    """
    Department x {Philanthropy, Purchase} counts. Records labeled Other are
    left out, and so is any department without a gift or purchase.
    """
    subset = classified[classified["acquisition_type"].isin([PHILANTHROPY, PURCHASE])]
    if subset.empty:
        return pd.DataFrame(columns=[PHILANTHROPY, PURCHASE], dtype="int64")
    table = pd.crosstab(subset["department"], subset["acquisition_type"])
    table = table.reindex(columns=[PHILANTHROPY, PURCHASE], fill_value=0)
    table = table.loc[table.sum(axis=1) > 0]
    table.columns.name = None
    return table.astype("int64")


def run_chi_square(classified: pd.DataFrame, strict: bool = False) -> ChiSquareResult:
    """
    Pearson chi-square test of independence between department and
    acquisition type. With strict=True, expected counts below 5 raise
    InsufficientDataError instead of being reported on the result.
    """
    table = build_contingency_table(classified)
    if len(table) < 2:
        raise InsufficientDataError(
            f"chi-square test needs at least two departments with gifts or purchases, got {len(table)}"
        )
    empty_labels = [label for label in table.columns if table[label].sum() == 0]
    if empty_labels:
        raise InsufficientDataError(
            f"no records labeled {', '.join(empty_labels)}; the contingency table is degenerate"
        )

    statistic, p_value, dof, expected = stats.chi2_contingency(table.to_numpy(), correction=True)
    expected_frame = pd.DataFrame(expected, index=table.index, columns=table.columns)
    low_expected_cells = int((expected < MIN_EXPECTED_COUNT).sum())
    if strict and low_expected_cells:
        raise InsufficientDataError(
            f"{low_expected_cells} cell(s) have expected counts below {MIN_EXPECTED_COUNT:g}"
        )

    return ChiSquareResult(
        statistic=float(statistic),
        dof=int(dof),
        p_value=float(p_value),
        table=table,
        expected=expected_frame,
        low_expected_cells=low_expected_cells,
        yates_correction=int(dof) == 1,
    )


# ==============================================================================
# ALL ANALYSES
# ==============================================================================

ANALYSIS_NAMES: List[str] = ["anova", "regression", "chi_square"]


def run_all_analyses(
    summary: pd.DataFrame,
    classified: pd.DataFrame,
    strict_chi_square: bool = False,
) -> Dict[str, AnalysisOutcome]:
    """
    Runs every analysis independently. Each entry holds either the result or
    the StatisticalAnalysisError that analysis raised.
    """
    runners = {
        "anova": lambda: run_anova(summary),
        "regression": lambda: run_regression(summary),
        "chi_square": lambda: run_chi_square(classified, strict=strict_chi_square),
    }
    outcomes: Dict[str, AnalysisOutcome] = {}
    for name in ANALYSIS_NAMES:
        try:
            outcomes[name] = runners[name]()
        except StatisticalAnalysisError as e:
            outcomes[name] = e
    return outcomes
