"""
The Met Museum Acquisition Analysis

Uses the Met Open Access dataset to measure how much the museum relies on
philanthropy (gifts, donations, bequests) versus institutional purchases,
across curatorial departments and decades:

    load -> normalize -> classify -> summarize -> statistics + figures
"""

import argparse
import math
import sys
from pathlib import Path
from typing import Dict, List, Optional

from met_classification import acquisition_type_counts, classify_records
from met_cleaning import load_met_objects, normalization_report, normalize_records
from met_config import AnalysisConfig, load_config
from met_plots import render_all_plots
from met_statistics import (
    AnalysisOutcome,
    AnovaResult,
    ChiSquareResult,
    RegressionResult,
    StatisticalAnalysisError,
    run_all_analyses,
)
from met_summary import build_summary_table

BANNER_WIDTH = 60
ANALYSIS_TITLES = {
    "anova": "ANOVA: Does Department Predict Gift Ratio?",
    "regression": "Regression: gift_ratio ~ Department + Decade",
    "chi_square": "Chi-Square Test: Department x Acquisition Type",
}


def print_banner(title: str):
    print("\n" + "=" * BANNER_WIDTH)
    print(title)
    print("=" * BANNER_WIDTH)


def format_p_value(p_value: float) -> str:
    if math.isnan(p_value):
        return "NA"
    if p_value < 2.2e-16:
        return "< 2.2e-16"
    return f"{p_value:.4g}"


# ==============================================================================
# REPORT FORMATTING
# ==============================================================================

def format_anova(result: AnovaResult) -> List[str]:
    return [
        result.table().to_string(float_format=lambda v: f"{v:.4g}"),
        f"F({result.df_between}, {result.df_within}) = {result.f_statistic:.4g}, "
        f"p = {format_p_value(result.p_value)}",
    ]


def format_regression(result: RegressionResult) -> List[str]:
    return [
        f"Reference department: {result.reference_level}",
        result.coefficients.to_string(float_format=lambda v: f"{v:.4g}"),
        f"R-squared: {result.r_squared:.4f}, Adjusted R-squared: {result.adj_r_squared:.4f}",
        f"F-statistic: {result.f_statistic:.4g} on {result.df_model} and {result.df_residual} DF, "
        f"p = {format_p_value(result.f_p_value)}",
    ]


def format_chi_square(result: ChiSquareResult) -> List[str]:
    lines = [
        result.table.to_string(),
        f"X-squared = {result.statistic:.4g}, df = {result.dof}, p = {format_p_value(result.p_value)}"
        + (" (Yates' continuity correction)" if result.yates_correction else ""),
    ]
    if not result.approximation_ok:
        lines.append(
            f"⚠️  {result.low_expected_cells} cell(s) have expected counts below 5; "
            "the chi-squared approximation may be incorrect."
        )
    return lines


FORMATTERS = {
    AnovaResult: format_anova,
    RegressionResult: format_regression,
    ChiSquareResult: format_chi_square,
}


def report_outcomes(outcomes: Dict[str, AnalysisOutcome]):
    for name, outcome in outcomes.items():
        print_banner(ANALYSIS_TITLES.get(name, name))
        if isinstance(outcome, StatisticalAnalysisError):
            print(f"❌ {type(outcome).__name__}: {outcome}")
            continue
        for line in FORMATTERS[type(outcome)](outcome):
            print(line)


# ==============================================================================
# PIPELINE
# ==============================================================================

def run_analysis(config: AnalysisConfig) -> Dict[str, object]:
    """
    Runs the whole analysis for *config* and returns the derived tables and
    statistical outcomes. Loader errors propagate to the caller.
    """
    print_banner("1. Loading the Met objects dataset...")
    raw = load_met_objects(config.input_path)

    print_banner("2. Cleaning records...")
    normalized = normalize_records(raw, min_year=config.min_year)
    report = normalization_report(raw, normalized)
    print(f"{report.kept:,} of {report.total:,} records have an accession year >= {config.min_year} "
          f"({report.dropped:,} dropped).")

    print_banner("3. Classifying acquisition types...")
    classified = classify_records(normalized)
    print(acquisition_type_counts(classified).to_string())

    print_banner("4. Building the department x decade summary...")
    summary = build_summary_table(classified)
    print(f"{len(summary):,} department/decade groups.")
    if not summary.empty:
        print(summary.head().to_string(index=False))

    output_dir = Path(config.output_dir)
    if config.export_summary:
        output_dir.mkdir(parents=True, exist_ok=True)
        summary_path = output_dir / "summary_table.csv"
        summary.to_csv(summary_path, index=False)
        print(f"✅ Summary table saved to '{summary_path}'")

    outcomes = run_all_analyses(summary, classified, strict_chi_square=config.strict_chi_square)
    report_outcomes(outcomes)

    plots = []
    if config.save_plots:
        print_banner("Visualizations")
        plots = render_all_plots(summary, classified, output_dir, dpi=config.figure_dpi)

    return {
        "classified": classified,
        "summary": summary,
        "outcomes": outcomes,
        "plots": plots,
    }


# ==============================================================================
# MAIN PROGRAM
# ==============================================================================

def parse_args(argv: Optional[List[str]], defaults: AnalysisConfig) -> AnalysisConfig:
    parser = argparse.ArgumentParser(
        description="Philanthropy vs purchase analysis of Met Museum acquisitions."
    )
    parser.add_argument("input_path", nargs="?", default=defaults.input_path,
                        help=f"Met objects CSV/TXT/XLSX file (default: {defaults.input_path})")
    parser.add_argument("--output-dir", default=defaults.output_dir,
                        help="Directory for figures and the summary table")
    parser.add_argument("--min-year", type=int, default=defaults.min_year,
                        help="Earliest accession year to keep")
    parser.add_argument("--no-plots", action="store_true", help="Skip the figures")
    parser.add_argument("--strict-chi-square", action="store_true",
                        help="Fail the chi-square test when expected counts are below 5")
    args = parser.parse_args(argv)
    return AnalysisConfig(
        input_path=args.input_path,
        output_dir=args.output_dir,
        min_year=args.min_year,
        save_plots=defaults.save_plots and not args.no_plots,
        export_summary=defaults.export_summary,
        figure_dpi=defaults.figure_dpi,
        strict_chi_square=defaults.strict_chi_square or args.strict_chi_square,
    )


def main(argv: Optional[List[str]] = None) -> int:
    try:
        config = parse_args(argv, load_config())
    except ValueError as e:
        print(f"❌ ERROR: Invalid configuration. Reason: {e}")
        return 1

    try:
        run_analysis(config)
    except FileNotFoundError as e:
        print(f"❌ ERROR: {e}")
        return 1
    except ValueError as e:
        print(f"❌ ERROR: Could not process the dataset. Reason: {e}")
        return 1

    print_banner("✅ Analysis complete!")
    return 0


if __name__ == "__main__":
    sys.exit(main())
