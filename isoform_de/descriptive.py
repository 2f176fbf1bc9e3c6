"""Descriptive plots of the quantification and test results.

The functions in the first half only shape data; they are deterministic and
never modify their inputs. ``render_all`` hands their output to the plotting
functions in ``utils.plotting``:

  - per-sample log2(FPKM + 1) distributions of transcripts and of genes,
    colored by condition
  - replicate concordance: for each condition, two of its samples against
    each other, with Pearson r
  - number of genes with 1, 2, 3, ... transcripts
  - transcript length distribution
  - log2 fold change distribution (fold changes are stored linear; the log2
    values exist only for this histogram)
  - condition means scatter, significant transcripts highlighted and the top
    ones labeled
  - boxplot by condition of the top-ranked transcript

Usage:
    python -m isoform_de.descriptive --config configs/default_config.yaml \\
        --pheno-file data/phenodata.csv \\
        --data-dir data/ballgown/ \\
        --output-dir results/differential_expression/ \\
        --plot-dir results/plots/
"""

import argparse
import logging
from pathlib import Path
from typing import Iterable, Optional

import numpy as np
import pandas as pd
from scipy.stats import pearsonr

from .config import AnalysisConfig
from .differential_expression import DifferentialExpressionRun, run_full_pipeline
from .expression import ExpressionTable, FeatureAnnotation, Granularity, transcripts_per_gene
from .samples import SampleRegistry
from .utils.plotting import (
    plot_condition_means,
    plot_count_bars,
    plot_feature_boxplot,
    plot_histogram,
    plot_replicate_concordance,
    plot_sample_boxplot,
)
from .utils.stats import log2_transform

logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
log = logging.getLogger(__name__)


# ── Data preparation ──────────────────────────────────────────────────────────

def log2_expression(table: ExpressionTable) -> pd.DataFrame:
    """log2(x + 1) of every value, same shape and labels as table.data."""
    return log2_transform(table.data)


def replicate_concordance(
    table: ExpressionTable,
    sample_x: str,
    sample_y: str,
) -> tuple[np.ndarray, np.ndarray, float]:
    """Log2 values of two samples and their Pearson correlation.

    Returns:
        Tuple (x, y, r). r is NaN when either sample is constant or fewer
        than two features are present.
    """
    logged = log2_expression(table)
    x = logged[sample_x].to_numpy()
    y = logged[sample_y].to_numpy()
    if len(x) < 2 or np.ptp(x) == 0 or np.ptp(y) == 0:
        return x, y, float("nan")
    return x, y, float(pearsonr(x, y)[0])


def transcripts_per_gene_counts(
    annotation: FeatureAnnotation,
    transcript_ids: Optional[Iterable[str]] = None,
) -> pd.Series:
    """How many genes have 1, 2, 3, ... transcripts.

    Returns:
        Series indexed by transcripts-per-gene with the number of genes,
        sorted by index.
    """
    per_gene = transcripts_per_gene(annotation, transcript_ids)
    return per_gene.value_counts().sort_index().rename("n_genes")


def transcript_lengths(
    annotation: FeatureAnnotation,
    transcript_ids: Optional[Iterable[str]] = None,
) -> np.ndarray:
    """Transcript lengths in annotation order."""
    tx = annotation.transcripts
    if transcript_ids is not None:
        tx = tx.loc[list(transcript_ids)]
    return tx["length"].astype(float).to_numpy()


def log2_fold_changes(results: pd.DataFrame) -> np.ndarray:
    """Finite log2 of the linear fold changes, for histogramming."""
    fc = results["fc"].astype(float).to_numpy()
    with np.errstate(divide="ignore", invalid="ignore"):
        logged = np.log2(fc)
    return logged[np.isfinite(logged)]


def condition_means(table: ExpressionTable, registry: SampleRegistry) -> pd.DataFrame:
    """Mean log2(x + 1) per feature and condition.

    Returns:
        DataFrame indexed like table.data with columns [reference, comparison].
    """
    logged = log2_expression(table)
    group_a, group_b = registry.groups()
    return pd.DataFrame({
        registry.reference: logged[group_a].mean(axis=1),
        registry.comparison: logged[group_b].mean(axis=1),
    })


def feature_by_condition(
    table: ExpressionTable,
    registry: SampleRegistry,
    feature_id: str,
) -> pd.DataFrame:
    """Long-form log2 values of one feature, one row per sample.

    Returns:
        DataFrame with columns ['sample', 'condition', 'log2_value'] in
        registry order.
    """
    row = log2_transform(table.data.loc[feature_id])
    return pd.DataFrame({
        "sample": registry.ids,
        "condition": [registry.condition_of(s) for s in registry.ids],
        "log2_value": row[registry.ids].to_numpy(),
    })


def sample_distributions(table: ExpressionTable, registry: SampleRegistry) -> pd.DataFrame:
    """Long-form log2 values of every feature and sample.

    Returns:
        DataFrame with columns ['sample', 'condition', 'log2_value'], samples
        in registry order.
    """
    logged = log2_expression(table)
    long_df = logged.melt(var_name="sample", value_name="log2_value", ignore_index=True)
    long_df.insert(1, "condition", long_df["sample"].map(registry.condition_of))
    return long_df


def replicate_pairs(registry: SampleRegistry) -> list[tuple[str, str]]:
    """First two samples of each condition that has replicates, reference first."""
    return [(group[0], group[1]) for group in registry.groups() if len(group) >= 2]


# ── Rendering ─────────────────────────────────────────────────────────────────

def render_all(
    run: DifferentialExpressionRun,
    plot_dir: str | Path,
    n_labels: int = 10,
) -> list[Path]:
    """Render every descriptive plot for a finished pipeline run.

    Args:
        run: Output of run_differential_expression / run_full_pipeline.
        plot_dir: Directory for the figures.
        n_labels: Number of top-ranked transcripts labeled on the means scatter.

    Returns:
        Paths of the PNG files written.
    """
    plot_dir = Path(plot_dir)
    registry = run.registry
    transcripts = run.tables[Granularity.TRANSCRIPT]
    genes = run.tables[Granularity.GENE]
    written = []

    written.append(plot_sample_boxplot(
        sample_distributions(transcripts, registry),
        plot_dir / "sample_distributions.png",
    ))
    written.append(plot_sample_boxplot(
        sample_distributions(genes, registry),
        plot_dir / "gene_distributions.png",
        title="Per-sample gene expression",
    ))

    if len(transcripts):
        for sample_x, sample_y in replicate_pairs(registry):
            x, y, r = replicate_concordance(transcripts, sample_x, sample_y)
            written.append(plot_replicate_concordance(
                x, y, plot_dir / f"concordance_{sample_x}_{sample_y}.png",
                x_label=sample_x, y_label=sample_y, r=None if np.isnan(r) else r,
            ))

    written.append(plot_count_bars(
        transcripts_per_gene_counts(run.annotation), plot_dir / "transcripts_per_gene.png",
        x_label="Transcripts per gene", y_label="Genes", title="Transcripts per gene",
    ))

    written.append(plot_histogram(
        transcript_lengths(run.annotation), plot_dir / "transcript_lengths.png",
        x_label="Transcript length (bp)", title="Transcript lengths",
    ))

    tx_results = run.results[Granularity.TRANSCRIPT]
    if not tx_results.empty:
        written.append(plot_histogram(
            log2_fold_changes(tx_results), plot_dir / "log2_fold_change.png",
            x_label=f"log2 fold change ({registry.comparison} / {registry.reference})",
            title="Fold change distribution", color="darkorange",
        ))

    filtered_tx = run.filtered[Granularity.TRANSCRIPT]
    report = run.reports[Granularity.TRANSCRIPT]
    if len(filtered_tx):
        means = condition_means(filtered_tx, registry)
        significant = means.index.isin(report["id"])
        labels = report.head(n_labels).set_index("id")["transcriptNames"]
        written.append(plot_condition_means(
            means, plot_dir / "condition_means.png",
            x_col=registry.reference, y_col=registry.comparison,
            highlight=pd.Series(significant, index=means.index), labels=labels,
        ))

    if not report.empty:
        top = report.iloc[0]
        written.append(plot_feature_boxplot(
            feature_by_condition(transcripts, registry, top["id"]),
            plot_dir / f"top_transcript_{top['id']}.png",
            title=f"{top['transcriptNames']} ({top['geneNames']})",
            order=[registry.reference, registry.comparison],
        ))

    log.info("Wrote %d plots to %s", len(written), plot_dir)
    return written


# ── CLI ───────────────────────────────────────────────────────────────────────

def main() -> None:
    parser = argparse.ArgumentParser(
        description="Run the differential expression pipeline and render descriptive plots."
    )
    parser.add_argument("--config", help="Path to YAML config file.")
    parser.add_argument("--pheno-file", required=True, help="Phenotype CSV.")
    parser.add_argument("--data-dir", required=True, help="Per-sample ctab directories.")
    parser.add_argument("--output-dir", required=True, help="Output directory for reports.")
    parser.add_argument("--plot-dir", required=True, help="Output directory for figures.")
    parser.add_argument("--n-labels", type=int, default=10)
    args = parser.parse_args()

    config = AnalysisConfig.from_yaml(args.config) if args.config else AnalysisConfig()
    run = run_full_pipeline(args.pheno_file, args.data_dir, args.output_dir, config)
    render_all(run, args.plot_dir, n_labels=args.n_labels)


if __name__ == "__main__":
    main()
