"""
Figures for the Met acquisition analysis.

Every plot function takes one of the analysis tables (the department x
decade summary or the classified records), returns a matplotlib Figure and
never modifies its input.
"""

from pathlib import Path
from typing import Dict, List, Tuple

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import seaborn as sns
from matplotlib.patches import Patch, Rectangle
from statsmodels.nonparametric.smoothers_lowess import lowess

from met_classification import ACQUISITION_TYPES
from met_summary import count_combinations

# Label of the black smoothed curve on the trend plot
TREND_LABEL = "overall trend"

# Colors for acquisition types, shared by the flow diagram and the treemap
TYPE_COLORS = dict(zip(ACQUISITION_TYPES, sns.color_palette("Set2", len(ACQUISITION_TYPES))))


def _require_rows(table: pd.DataFrame, what: str):
    if table.empty:
        raise ValueError(f"Cannot draw the {what}: the table has no rows.")


def _type_legend(ax, title="Acquisition Type", **kwargs):
    handles = [Patch(facecolor=TYPE_COLORS[t], label=t) for t in ACQUISITION_TYPES]
    ax.legend(handles=handles, title=title, **kwargs)


def save_figure(fig, file_path, dpi: int = 300) -> Path:
    """Writes *fig* as an image and closes it."""
    path = Path(file_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(path, dpi=dpi, bbox_inches="tight")
    plt.close(fig)
    print(f"✅ Plot saved as: {path}")
    return path


# ==============================================================================
# 1. TREND OVER TIME
# ==============================================================================

def plot_gift_ratio_trend(summary: pd.DataFrame):
    """One faint line per department plus a LOWESS curve over all rows in black."""
    _require_rows(summary, "trend plot")
    fig, ax = plt.subplots(figsize=(10, 6))
    sns.lineplot(
        data=summary, x="decade", y="gift_ratio", hue="department",
        estimator=None, alpha=0.25, legend=False, ax=ax,
    )
    if summary["decade"].nunique() >= 2:
        fitted = lowess(summary["gift_ratio"], summary["decade"])
        ax.plot(fitted[:, 0], fitted[:, 1], color="black", linewidth=2, label=TREND_LABEL)
    ax.set_title("Philanthropy Ratio Over Time at The Met\n"
                 "Each line = department; black curve = overall trend", fontsize=14)
    ax.set_xlabel("Decade", fontsize=12)
    ax.set_ylabel("Share of Acquisitions from Philanthropy", fontsize=12)
    ax.set_ylim(0, 1)
    return fig


# ==============================================================================
# 2. DEPARTMENT BOXPLOT
# ==============================================================================

def plot_department_boxplot(summary: pd.DataFrame):
    _require_rows(summary, "department boxplot")
    order = sorted(summary["department"].unique())
    fig, ax = plt.subplots(figsize=(12, 7))
    sns.boxplot(data=summary, x="department", y="gift_ratio", order=order, color="steelblue", ax=ax)
    ax.set_title("Differences in Philanthropy Reliance by Department\n"
                 "Each box shows the distribution of gift ratios across decades", fontsize=14)
    ax.set_xlabel("")
    ax.set_ylabel("Gift Ratio", fontsize=12)
    plt.setp(ax.get_xticklabels(), rotation=45, ha="right")
    return fig


# ==============================================================================
# 3. ALLUVIAL DIAGRAM (decade -> acquisition type -> department)
# ==============================================================================

def _stack_strata(totals: pd.Series, gap: float) -> Dict[object, Tuple[float, float]]:
    """(bottom, top) of each stratum on an axis, stacked in the order given."""
    positions = {}
    bottom = 0.0
    for category, total in totals.items():
        positions[category] = (bottom, bottom + float(total))
        bottom += float(total) + gap
    return positions


def _draw_links(ax, links: pd.DataFrame, left_strata, right_strata, x_left, x_right, left_order, right_order):
    """
    Draws ribbons between two axes. `links` has columns left, right, n and a
    `color` column. Ribbons leaving a stratum are stacked in the order of the
    stratum they arrive at, and vice versa, so ribbons do not cross inside a
    stratum.
    """
    left_rank = {c: i for i, c in enumerate(left_order)}
    right_rank = {c: i for i, c in enumerate(right_order)}
    left_offset = {c: left_strata[c][0] for c in left_order}
    right_offset = {c: right_strata[c][0] for c in right_order}

    left_spans = {}
    for row in sorted(links.itertuples(index=False), key=lambda r: (left_rank[r.left], right_rank[r.right])):
        start = left_offset[row.left]
        left_spans[(row.left, row.right)] = (start, start + row.n)
        left_offset[row.left] = start + row.n

    t = np.linspace(0.0, 1.0, 60)
    ease = 3 * t ** 2 - 2 * t ** 3
    xs = x_left + (x_right - x_left) * t
    for row in sorted(links.itertuples(index=False), key=lambda r: (right_rank[r.right], left_rank[r.left])):
        start = right_offset[row.right]
        right_span = (start, start + row.n)
        right_offset[row.right] = start + row.n
        left_span = left_spans[(row.left, row.right)]
        lower = left_span[0] + (right_span[0] - left_span[0]) * ease
        upper = left_span[1] + (right_span[1] - left_span[1]) * ease
        ax.fill_between(xs, lower, upper, color=row.color, alpha=0.7, linewidth=0)


def plot_acquisition_flows(classified: pd.DataFrame):
    """Alluvial diagram of record counts: decade -> acquisition type -> department."""
    _require_rows(classified, "acquisition flow diagram")
    axes = ["decade", "acquisition_type", "department"]
    counts = count_combinations(classified, axes)
    grand_total = counts["n"].sum()
    gap = grand_total * 0.02
    stratum_width = 0.12

    orders = {
        "decade": sorted(counts["decade"].unique()),
        "acquisition_type": [t for t in ACQUISITION_TYPES if t in set(counts["acquisition_type"])],
        "department": sorted(counts["department"].unique()),
    }
    strata = {
        axis: _stack_strata(counts.groupby(axis)["n"].sum().reindex(orders[axis]), gap)
        for axis in axes
    }

    fig, ax = plt.subplots(figsize=(14, 9))
    for i, (left, right) in enumerate(zip(axes, axes[1:])):
        links = counts.groupby([left, right], as_index=False)["n"].sum()
        links = links.rename(columns={left: "left", right: "right"})
        type_column = "left" if left == "acquisition_type" else "right"
        links["color"] = links[type_column].map(TYPE_COLORS)
        _draw_links(
            ax, links, strata[left], strata[right],
            i + stratum_width / 2, i + 1 - stratum_width / 2,
            orders[left], orders[right],
        )

    for i, axis in enumerate(axes):
        for category, (bottom, top) in strata[axis].items():
            ax.add_patch(Rectangle((i - stratum_width / 2, bottom), stratum_width, top - bottom,
                                   facecolor="white", edgecolor="grey", linewidth=0.8))
            ax.text(i, (bottom + top) / 2, str(category), ha="center", va="center", fontsize=6)

    ax.set_xlim(-0.5, len(axes) - 0.5)
    ax.set_ylim(0, max(top for positions in strata.values() for _, top in positions.values()))
    ax.invert_yaxis()
    ax.set_xticks(range(len(axes)))
    ax.set_xticklabels(["Decade", "Acquisition Type", "Department"])
    ax.set_ylabel("Number of Acquisitions", fontsize=12)
    first, last = orders["decade"][0], orders["decade"][-1]
    ax.set_title("Acquisition Flows Across Time and Departments\n"
                 f"Decade → Acquisition Type → Department ({first}–{last + 9})", fontsize=14)
    _type_legend(ax, loc="upper right")
    sns.despine(ax=ax, left=True, bottom=True)
    return fig


# ==============================================================================
# 4. TREEMAP (department composition)
# ==============================================================================

def plot_department_treemap(classified: pd.DataFrame):
    """
    Slice-and-dice treemap: one column per department, sized by its number of
    acquisitions and split by acquisition type.
    """
    _require_rows(classified, "department treemap")
    counts = count_combinations(classified, ["department", "acquisition_type"])
    totals = counts.groupby("department")["n"].sum().sort_values(ascending=False)
    grand_total = totals.sum()

    fig, ax = plt.subplots(figsize=(14, 8))
    x = 0.0
    for department, department_total in totals.items():
        width = department_total / grand_total
        parts = counts[counts["department"] == department].set_index("acquisition_type")["n"]
        y = 0.0
        for acquisition_type in ACQUISITION_TYPES:
            n = parts.get(acquisition_type, 0)
            if not n:
                continue
            height = n / department_total
            ax.add_patch(Rectangle((x, y), width, height, facecolor=TYPE_COLORS[acquisition_type],
                                   edgecolor="white", linewidth=1))
            y += height
        if width >= 0.02:
            ax.text(x + width / 2, 0.5, department, rotation=90, ha="center", va="center",
                    color="white", fontsize=7)
        x += width

    ax.set_xlim(0, 1)
    ax.set_ylim(0, 1)
    ax.axis("off")
    ax.set_title("Department-Level Composition of Acquisition Types\n"
                 "Relative dominance of philanthropy vs purchases", fontsize=14)
    _type_legend(ax, loc="upper left", bbox_to_anchor=(1.0, 1.0))
    return fig


# ==============================================================================
# 5. HEATMAP (department x decade)
# ==============================================================================

def plot_philanthropy_heatmap(summary: pd.DataFrame):
    _require_rows(summary, "philanthropy heatmap")
    pivot = summary.pivot(index="department", columns="decade", values="gift_ratio").astype(float)
    fig, ax = plt.subplots(figsize=(14, 8))
    sns.heatmap(
        pivot, cmap=sns.light_palette("steelblue", as_cmap=True), vmin=0, vmax=1,
        linewidths=0.5, linecolor="white", cbar_kws={"label": "Gift Ratio"}, ax=ax,
    )
    ax.set_title("Philanthropy Dependence Across Departments and Decades\n"
                 "Gift Ratio = gifts / total acquisitions", fontsize=14)
    ax.set_xlabel("Decade", fontsize=12)
    ax.set_ylabel("Department", fontsize=12)
    plt.setp(ax.get_xticklabels(), rotation=45, ha="right")
    return fig


# ==============================================================================
# 6. RIDGELINE (gift ratio distribution per decade)
# ==============================================================================

def plot_gift_ratio_ridgeline(summary: pd.DataFrame):
    """
    Density of department gift ratios for each decade, one ridge per decade.
    Decades with a single department (or identical ratios) show no ridge.
    """
    _require_rows(summary, "ridgeline plot")
    decades = [str(d) for d in sorted(summary["decade"].unique())]
    data = summary.assign(decade=summary["decade"].astype(str), gift_ratio=summary["gift_ratio"].astype(float))

    grid = sns.FacetGrid(
        data, row="decade", hue="decade", row_order=decades, hue_order=decades,
        aspect=12, height=0.6, palette=sns.color_palette("crest", len(decades)),
    )
    grid.map(sns.kdeplot, "gift_ratio", fill=True, alpha=0.8, clip=(0, 1), warn_singular=False)
    for ax, decade in zip(grid.axes.flat, decades):
        ax.axhline(0, color="white", linewidth=1, clip_on=False)
        ax.text(0, 0.2, decade, fontweight="bold", ha="left", va="center", transform=ax.transAxes)
    grid.figure.subplots_adjust(hspace=-0.25)
    grid.set_titles("")
    grid.set(yticks=[], ylabel="", xlim=(0, 1))
    grid.set_xlabels("Gift Ratio")
    grid.despine(bottom=True, left=True)
    grid.figure.suptitle("Distribution of Philanthropy Reliance Over Time", fontsize=14)
    return grid.figure


# ==============================================================================
# RENDER ALL
# ==============================================================================

PLOTS = [
    ("1_gift_ratio_trend.png", plot_gift_ratio_trend, "summary"),
    ("2_department_boxplot.png", plot_department_boxplot, "summary"),
    ("3_acquisition_flows.png", plot_acquisition_flows, "classified"),
    ("4_department_treemap.png", plot_department_treemap, "classified"),
    ("5_philanthropy_heatmap.png", plot_philanthropy_heatmap, "summary"),
    ("6_gift_ratio_ridgeline.png", plot_gift_ratio_ridgeline, "summary"),
]


def render_all_plots(summary: pd.DataFrame, classified: pd.DataFrame, output_dir, dpi: int = 300) -> List[Path]:
    """
    Draws and saves all six figures. A figure that cannot be drawn is
    reported and skipped; the others are still written.
    """
    tables = {"summary": summary, "classified": classified}
    saved = []
    for filename, plot_function, table_name in PLOTS:
        try:
            fig = plot_function(tables[table_name])
        except ValueError as e:
            print(f"❌ Skipped {filename}: {e}")
            continue
        saved.append(save_figure(fig, Path(output_dir) / filename, dpi=dpi))
    return saved
