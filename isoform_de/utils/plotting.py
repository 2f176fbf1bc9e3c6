"""Shared visualization functions for the descriptive plots.

All plot functions accept an output_path argument and save to disk (PNG and
SVG). They do not call plt.show() — call that explicitly if running
interactively. Inputs are the shaped data from isoform_de.descriptive; no
function here computes anything used downstream.
"""

from pathlib import Path
from typing import Optional, Sequence

import matplotlib.pyplot as plt
import pandas as pd
import seaborn as sns
from adjustText import adjust_text


def _save(fig, output_path: str | Path) -> Path:
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(output_path, dpi=150, bbox_inches="tight")
    fig.savefig(output_path.with_suffix(".svg"), bbox_inches="tight")
    plt.close(fig)
    return output_path


def plot_replicate_concordance(
    x: Sequence[float],
    y: Sequence[float],
    output_path: str | Path,
    x_label: str,
    y_label: str,
    r: Optional[float] = None,
    figsize: tuple = (6, 6),
) -> Path:
    """Scatter two samples' log2(FPKM + 1) values against each other.

    Args:
        x: Values of the first sample.
        y: Values of the second sample, same feature order as x.
        output_path: Path to save the figure.
        x_label: Axis label (usually the sample id).
        y_label: Axis label.
        r: Optional Pearson correlation shown in the title.
        figsize: Figure width × height in inches.
    """
    fig, ax = plt.subplots(figsize=figsize)
    ax.scatter(x, y, s=6, alpha=0.4, color="steelblue", edgecolors="none")
    lim = max(max(x, default=0.0), max(y, default=0.0)) * 1.05 or 1.0
    ax.plot([0, lim], [0, lim], ls="--", color="gray", lw=0.8)
    ax.set_xlabel(f"{x_label} log2(FPKM+1)")
    ax.set_ylabel(f"{y_label} log2(FPKM+1)")
    ax.set_title("Replicate concordance" + (f" (r = {r:.3f})" if r is not None else ""))
    plt.tight_layout()
    return _save(fig, output_path)


def plot_histogram(
    values: Sequence[float],
    output_path: str | Path,
    x_label: str,
    title: str = "",
    bins: int | Sequence[float] = 50,
    color: str = "steelblue",
    figsize: tuple = (7, 5),
) -> Path:
    """Histogram of a 1-D distribution (transcript lengths, log2 fc)."""
    fig, ax = plt.subplots(figsize=figsize)
    ax.hist(list(values), bins=bins, color=color, edgecolor="white")
    ax.set_xlabel(x_label)
    ax.set_ylabel("Frequency")
    ax.set_title(title)
    plt.tight_layout()
    return _save(fig, output_path)


def plot_count_bars(
    counts: pd.Series,
    output_path: str | Path,
    x_label: str,
    y_label: str,
    title: str = "",
    figsize: tuple = (7, 5),
) -> Path:
    """Bar chart with one bar per index value of counts (e.g. genes per transcript count)."""
    fig, ax = plt.subplots(figsize=figsize)
    ax.bar([str(i) for i in counts.index], counts.to_numpy(), color="steelblue",
           edgecolor="white")
    ax.set_xlabel(x_label)
    ax.set_ylabel(y_label)
    ax.set_title(title)
    plt.tight_layout()
    return _save(fig, output_path)


def plot_sample_boxplot(
    long_df: pd.DataFrame,
    output_path: str | Path,
    title: str = "Per-sample expression",
    figsize: tuple = (10, 5),
) -> Path:
    """Boxplot of log2 values per sample, colored by condition.

    Args:
        long_df: Columns ['sample', 'condition', 'log2_value'].
        output_path: Path to save the figure.
        title: Figure title.
        figsize: Figure dimensions.
    """
    fig, ax = plt.subplots(figsize=figsize)
    sns.boxplot(data=long_df, x="sample", y="log2_value", hue="condition", ax=ax, dodge=False)
    ax.set_xlabel("Sample")
    ax.set_ylabel("log2(FPKM+1)")
    ax.set_title(title)
    ax.tick_params(axis="x", rotation=45)
    plt.tight_layout()
    return _save(fig, output_path)


def plot_feature_boxplot(
    long_df: pd.DataFrame,
    output_path: str | Path,
    title: str,
    order: Optional[list] = None,
    figsize: tuple = (5, 5),
) -> Path:
    """Boxplot of one feature's values by condition with samples overlaid.

    Args:
        long_df: Columns ['sample', 'condition', 'log2_value'].
        output_path: Path to save the figure.
        title: Figure title (usually the transcript or gene name).
        order: Condition order on the x-axis (reference first).
        figsize: Figure dimensions.
    """
    fig, ax = plt.subplots(figsize=figsize)
    sns.boxplot(data=long_df, x="condition", y="log2_value", order=order, ax=ax,
                color="lightgrey")
    sns.stripplot(data=long_df, x="condition", y="log2_value", order=order, ax=ax,
                  color="black", size=5)
    ax.set_xlabel("")
    ax.set_ylabel("log2(FPKM+1)")
    ax.set_title(title)
    plt.tight_layout()
    return _save(fig, output_path)


def plot_condition_means(
    means: pd.DataFrame,
    output_path: str | Path,
    x_col: str,
    y_col: str,
    highlight: Optional[pd.Series] = None,
    labels: Optional[pd.Series] = None,
    figsize: tuple = (7, 7),
) -> Path:
    """Scatter per-feature mean log2 expression of one condition vs the other.

    Args:
        means: DataFrame indexed by feature id with one column per condition.
        output_path: Path to save the figure.
        x_col: Condition plotted on the x-axis (reference).
        y_col: Condition plotted on the y-axis.
        highlight: Optional boolean Series (same index) of features drawn in red,
            usually the significant ones.
        labels: Optional Series (feature id → name) of points to label.
        figsize: Figure dimensions.
    """
    fig, ax = plt.subplots(figsize=figsize)
    ax.scatter(means[x_col], means[y_col], s=6, alpha=0.4, color="gray", edgecolors="none")
    if highlight is not None and highlight.any():
        hl = means.loc[highlight[highlight].index]
        ax.scatter(hl[x_col], hl[y_col], s=10, color="firebrick", label="p < threshold")
        ax.legend(loc="upper left")

    if labels is not None and len(labels):
        texts = [
            ax.text(means.at[fid, x_col], means.at[fid, y_col], name, fontsize=8)
            for fid, name in labels.items() if fid in means.index
        ]
        adjust_text(texts, ax=ax, arrowprops=dict(arrowstyle="-", color="lightgrey"))

    lim = max(means[x_col].max(), means[y_col].max(), 1.0) * 1.05
    ax.plot([0, lim], [0, lim], ls="--", color="black", lw=0.8)
    ax.set_xlabel(f"{x_col} mean log2(FPKM+1)")
    ax.set_ylabel(f"{y_col} mean log2(FPKM+1)")
    ax.set_title(f"{y_col} vs {x_col}")
    plt.tight_layout()
    return _save(fig, output_path)
