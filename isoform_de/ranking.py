"""Annotate differential-expression results, rank significant features, export.

Report layout (tab-separated, one row per significant feature):

    geneNames  transcriptNames  id  fc  pval  qval

Rows are ordered by p-value ascending, then by absolute fold change
descending; ties keep their input order.
"""

import logging
from pathlib import Path

import numpy as np
import pandas as pd

from .expression import FeatureAnnotation, Granularity
from .utils.io import save_report

log = logging.getLogger(__name__)

REPORT_COLUMNS = ["geneNames", "transcriptNames", "id", "fc", "pval", "qval"]


def annotate_results(results: pd.DataFrame, annotation: FeatureAnnotation) -> pd.DataFrame:
    """Attach gene and transcript names to a differential-expression table.

    Transcript rows take their names from the transcript annotation. Gene
    rows take the gene name plus the comma-joined names of the gene's
    transcripts. Rows whose id has no annotation are dropped with a warning.

    Args:
        results: Output of run_stattest (columns 'feature', 'id', 'fc',
            'pval', 'qval', 'untestable').
        annotation: Feature annotation from load_expression.

    Returns:
        DataFrame with REPORT_COLUMNS plus 'untestable', in input row order.
    """
    if results.empty:
        return pd.DataFrame(columns=REPORT_COLUMNS + ["untestable"])

    feature = Granularity(results["feature"].iloc[0])
    if feature is Granularity.TRANSCRIPT:
        names = annotation.transcripts[["gene_name", "t_name"]].rename(
            columns={"gene_name": "geneNames", "t_name": "transcriptNames"}
        )
    else:
        names = annotation.genes[["gene_name"]].rename(columns={"gene_name": "geneNames"})
        names["transcriptNames"] = annotation.transcript_names_by_gene()

    known = results["id"].isin(names.index)
    n_missing = int((~known).sum())
    if n_missing:
        log.warning(
            "Dropping %d %s results without annotation: %s",
            n_missing, feature.value, results.loc[~known, "id"].tolist()[:10],
        )

    annotated = results.loc[known].join(names, on="id")
    return annotated[REPORT_COLUMNS + ["untestable"]].reset_index(drop=True)


def rank_significant(annotated: pd.DataFrame, threshold: float = 0.05) -> pd.DataFrame:
    """Select rows with p-value below threshold and rank them.

    NaN p-values (untestable features) never pass. Sorting is stable: rows
    with equal p-value and equal |fold change| keep their input order.

    Args:
        annotated: Output of annotate_results.
        threshold: Significance cutoff on the raw p-value (strict <).

    Returns:
        Ranked report with REPORT_COLUMNS, index reset.
    """
    sig = annotated.loc[annotated["pval"] < threshold, REPORT_COLUMNS]
    # Secondary key first, then primary; both sorts are stable
    neg_abs_fc = -np.abs(sig["fc"].astype(float))
    sig = sig.loc[neg_abs_fc.sort_values(kind="mergesort").index]
    sig = sig.sort_values("pval", kind="mergesort")
    log.info("%d of %d features with p < %g", len(sig), len(annotated), threshold)
    return sig.reset_index(drop=True)


def export_report(report: pd.DataFrame, path: str | Path) -> Path:
    """Write the ranked report as unquoted TSV with a literal header row."""
    path = save_report(report[REPORT_COLUMNS], path)
    log.info("Report saved: %s (%d rows)", path, len(report))
    return path
