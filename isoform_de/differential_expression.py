"""Differential expression between two conditions at transcript and gene level.

For each feature (transcript or gene) that survives the variance filter:

  - fc:   linear fold change, mean(condition B) / mean(condition A), on the
          raw measurement (FPKM by default)
  - pval: two-sided pooled-variance t-test on log2(x + 1) values, the
          two-group case of the F test comparing ``~ condition`` to ``~ 1``
  - qval: Benjamini-Hochberg adjusted p-value over every testable feature of
          the call

Features whose test is undefined (zero within-group variance and identical
group means, or no residual degrees of freedom) get pval = qval = NaN and
untestable = True. They stay in the result table but never reach the report.

Pipeline:
  1. Read the phenotype table into a SampleRegistry.
  2. Load per-sample t_data.ctab files (transcript table, gene table, names).
  3. Variance filter on transcripts; regroup surviving transcripts into genes.
  4. Test both granularities.
  5. Annotate, keep p < significance_threshold, rank, export SigDiff.txt.

Usage:
    python -m isoform_de.differential_expression --config configs/default_config.yaml \\
        --pheno-file data/phenodata.csv \\
        --data-dir data/ballgown/ \\
        --output-dir results/differential_expression/
"""

import argparse
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import numpy as np
import pandas as pd

from .config import AnalysisConfig
from .expression import (
    ExpressionTable,
    FeatureAnnotation,
    Granularity,
    Measurement,
    aggregate_to_genes,
    load_expression,
)
from .ranking import annotate_results, export_report, rank_significant
from .samples import SampleRegistry, load_phenotype_table
from .utils.stats import apply_bh_correction, fold_change, log2_transform, two_group_test
from .variance_filter import filter_by_variance

logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
log = logging.getLogger(__name__)

RESULT_COLUMNS = ["feature", "id", "fc", "pval", "qval", "untestable"]
REPORT_NAME = "SigDiff.txt"


# ── Test runner ───────────────────────────────────────────────────────────────

def run_stattest(
    table: ExpressionTable,
    registry: SampleRegistry,
    feature: Optional[Granularity] = None,
) -> pd.DataFrame:
    """Test every row of table for a difference between the two conditions.

    Args:
        table: Filtered expression table (features × samples).
        registry: Sample registry; its reference condition is group A.
        feature: Granularity label for the 'feature' column. Defaults to the
            table's own granularity.

    Returns:
        DataFrame with RESULT_COLUMNS, one row per input row, input order.
    """
    feature = Granularity(feature or table.granularity)
    if len(table) == 0:
        return pd.DataFrame({c: pd.Series(dtype=object) for c in RESULT_COLUMNS})

    group_a, group_b = registry.groups()
    raw_a = table.data[group_a].to_numpy(dtype=float)
    raw_b = table.data[group_b].to_numpy(dtype=float)

    pvals = two_group_test(log2_transform(raw_a), log2_transform(raw_b))
    results = pd.DataFrame({
        "feature": feature.value,
        "id": table.data.index.astype(str).to_numpy(),
        "fc": fold_change(raw_a, raw_b),
        "pval": pvals,
        "untestable": np.isnan(pvals),
    })
    results = apply_bh_correction(results)[RESULT_COLUMNS]

    n_untestable = int(results["untestable"].sum())
    if n_untestable:
        log.warning("%d of %d %ss untestable (degenerate variance).",
                    n_untestable, len(results), feature.value)
    log.info("Tested %d %ss: %s (n=%d) vs %s (n=%d)",
             len(results), feature.value, registry.comparison, len(group_b),
             registry.reference, len(group_a))
    return results


# ── Pipeline ──────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class DifferentialExpressionRun:
    """Everything one pipeline run produced, keyed by granularity."""

    registry: SampleRegistry
    annotation: FeatureAnnotation
    tables: dict
    filtered: dict
    results: dict
    reports: dict


def run_differential_expression(
    transcripts: ExpressionTable,
    annotation: FeatureAnnotation,
    registry: SampleRegistry,
    config: Optional[AnalysisConfig] = None,
    genes: Optional[ExpressionTable] = None,
) -> DifferentialExpressionRun:
    """Filter, test, annotate and rank at transcript and gene level.

    The variance filter is applied to the transcript table; the gene table
    tested is rebuilt from the surviving transcripts.

    Args:
        transcripts: Unfiltered transcript table.
        annotation: Names for transcripts and genes.
        registry: Sample registry.
        config: Analysis options. Defaults to AnalysisConfig().
        genes: Unfiltered gene table, kept on the run for plotting. Built from
            transcripts if not given.

    Returns:
        DifferentialExpressionRun with per-granularity tables and reports.
    """
    config = config or AnalysisConfig()
    if genes is None:
        genes = aggregate_to_genes(transcripts, annotation)

    filtered_tx = filter_by_variance(transcripts, config.variance_threshold)
    filtered = {
        Granularity.TRANSCRIPT: filtered_tx,
        Granularity.GENE: aggregate_to_genes(filtered_tx, annotation),
    }

    results, reports = {}, {}
    for level, table in filtered.items():
        results[level] = run_stattest(table, registry, level)
        annotated = annotate_results(results[level], annotation)
        reports[level] = rank_significant(annotated, config.significance_threshold)

    return DifferentialExpressionRun(
        registry=registry,
        annotation=annotation,
        tables={Granularity.TRANSCRIPT: transcripts, Granularity.GENE: genes},
        filtered=filtered,
        results=results,
        reports=reports,
    )


def write_outputs(
    run: DifferentialExpressionRun,
    output_dir: str | Path,
    config: Optional[AnalysisConfig] = None,
) -> Path:
    """Write full result tables and the ranked reports.

    SigDiff.txt holds the report for config.feature_granularity; the other
    granularity goes to SigDiff_<granularity>.txt.

    Returns:
        Path of SigDiff.txt.
    """
    config = config or AnalysisConfig()
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    for level, results in run.results.items():
        results.to_csv(output_dir / f"{level.value}_results.csv", index=False,
                       lineterminator="\n")

    primary = config.feature_granularity
    report_path = export_report(run.reports[primary], output_dir / REPORT_NAME)
    for level, report in run.reports.items():
        if level is not primary:
            export_report(report, output_dir / f"SigDiff_{level.value}.txt")
    return report_path


def run_full_pipeline(
    pheno_file: str | Path,
    data_dir: str | Path,
    output_dir: str | Path,
    config: Optional[AnalysisConfig] = None,
) -> DifferentialExpressionRun:
    """Run the complete pipeline from input files to SigDiff.txt.

    Args:
        pheno_file: Phenotype CSV (sample ids and conditions).
        data_dir: Directory with one t_data.ctab subdirectory per sample.
        output_dir: Output directory.
        config: Analysis options.

    Returns:
        The DifferentialExpressionRun that was written.
    """
    config = config or AnalysisConfig()
    registry = load_phenotype_table(
        pheno_file,
        id_col=config.id_col,
        condition_col=config.condition_col,
        reference=config.reference_condition,
    )
    transcripts, genes, annotation = load_expression(
        data_dir, registry, config.measurement_kind
    )
    run = run_differential_expression(transcripts, annotation, registry, config, genes=genes)
    write_outputs(run, output_dir, config)
    return run


# ── CLI ───────────────────────────────────────────────────────────────────────

def main() -> None:
    parser = argparse.ArgumentParser(
        description="Two-condition differential expression from StringTie ctab tables."
    )
    parser.add_argument("--config", help="Path to YAML config file.")
    parser.add_argument("--pheno-file", required=True, help="Phenotype CSV.")
    parser.add_argument("--data-dir", required=True, help="Per-sample ctab directories.")
    parser.add_argument("--output-dir", required=True, help="Output directory.")
    parser.add_argument("--significance-threshold", type=float, default=None)
    parser.add_argument("--variance-threshold", type=float, default=None)
    parser.add_argument("--measurement-kind", choices=[m.value for m in Measurement], default=None)
    parser.add_argument("--feature-granularity", choices=[g.value for g in Granularity], default=None)
    parser.add_argument("--reference-condition", default=None)
    args = parser.parse_args()

    config = AnalysisConfig.from_yaml(args.config) if args.config else AnalysisConfig()
    config = config.updated(
        significance_threshold=args.significance_threshold,
        variance_threshold=args.variance_threshold,
        measurement_kind=args.measurement_kind,
        feature_granularity=args.feature_granularity,
        reference_condition=args.reference_condition,
    )

    run_full_pipeline(
        pheno_file=args.pheno_file,
        data_dir=args.data_dir,
        output_dir=args.output_dir,
        config=config,
    )


if __name__ == "__main__":
    main()
