"""Low-variance feature filter.

Features whose across-sample variance is at or below the threshold carry too
little signal to test and are removed before the differential test. Variance
is the sample variance (ddof=1) over all samples, both conditions pooled.
"""

import logging

import pandas as pd

from .expression import ExpressionTable

log = logging.getLogger(__name__)


def row_variance(table: ExpressionTable) -> pd.Series:
    """Sample variance (ddof=1) of each feature across all samples."""
    return table.data.var(axis=1, ddof=1)


def filter_by_variance(table: ExpressionTable, threshold: float = 1.0) -> ExpressionTable:
    """Keep only features with variance strictly greater than threshold.

    The input table is not modified. An empty result is valid.

    Args:
        table: Expression table to filter.
        threshold: Variance cutoff; rows with variance <= threshold are dropped.

    Returns:
        New ExpressionTable with the surviving rows in input order.
    """
    keep = row_variance(table) > threshold
    filtered = ExpressionTable(
        data=table.data.loc[keep].copy(),
        granularity=table.granularity,
        measurement=table.measurement,
    )
    log.info(
        "Variance filter (> %g): kept %d of %d %ss",
        threshold, len(filtered), len(table), table.granularity.value,
    )
    if len(filtered) == 0:
        log.warning("No %ss passed the variance filter.", table.granularity.value)
    return filtered
