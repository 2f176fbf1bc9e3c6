"""Shared statistical functions used across analysis modules."""

from typing import Sequence

import numpy as np
import pandas as pd
from scipy.stats import t as t_dist
from statsmodels.stats.multitest import multipletests

# Pooled variances / mean differences below this are treated as exactly zero
_ZERO_TOL = 1e-12


def log2_transform(values: pd.DataFrame | np.ndarray) -> pd.DataFrame | np.ndarray:
    """Return log2(x + 1), the scale on which expression is tested and plotted."""
    return np.log2(values + 1.0)


def correct(p_values: Sequence[float], method: str = "fdr_bh") -> np.ndarray:
    """Adjust a batch of p-values for multiple testing.

    The correction is computed once over every defined p-value in the batch.
    NaN entries (untestable features) are left out of the family and stay
    NaN in the output.

    Args:
        p_values: Raw p-values, NaN for untestable features.
        method: statsmodels multipletests method (default Benjamini-Hochberg).

    Returns:
        Array of adjusted p-values (q-values), same length and order as input.
    """
    p = np.asarray(p_values, dtype=float)
    q = np.full(p.shape, np.nan)
    defined = ~np.isnan(p)
    if defined.any():
        q[defined] = multipletests(p[defined], method=method)[1]
    return q


def apply_bh_correction(
    df: pd.DataFrame,
    pvalue_col: str = "pval",
    qvalue_col: str = "qval",
) -> pd.DataFrame:
    """Add a Benjamini-Hochberg q-value column computed over the whole table.

    Args:
        df: DataFrame containing a column of p-values.
        pvalue_col: Name of the column containing raw p-values.
        qvalue_col: Name of the q-value column to add.

    Returns:
        Copy of df with the q-value column added.
    """
    df = df.copy()
    df[qvalue_col] = correct(df[pvalue_col].to_numpy())
    return df


def fold_change(values_a: np.ndarray, values_b: np.ndarray) -> np.ndarray:
    """Linear fold change mean(B) / mean(A) per row.

    Rows where both means are zero give NaN; rows where only mean(A) is zero
    give +inf.

    Args:
        values_a: Array (n_features × n_samples_A) of raw measurements.
        values_b: Array (n_features × n_samples_B) of raw measurements.

    Returns:
        Array of fold changes, one per row.
    """
    mean_a = values_a.mean(axis=1)
    mean_b = values_b.mean(axis=1)
    with np.errstate(divide="ignore", invalid="ignore"):
        return mean_b / mean_a


def two_group_test(values_a: np.ndarray, values_b: np.ndarray) -> np.ndarray:
    """Two-sided pooled-variance two-sample t-test per row.

    With two groups this is the same test as the F test comparing
    ``y ~ condition`` against ``y ~ 1``. Degenerate rows are resolved
    deterministically:

      - pooled variance 0 and different group means → p = 0
      - pooled variance 0 and equal group means     → p = NaN (untestable)
      - fewer than one residual degree of freedom   → p = NaN for every row

    Args:
        values_a: Array (n_features × n_samples_A), usually log2(x + 1).
        values_b: Array (n_features × n_samples_B), same scale as values_a.

    Returns:
        Array of p-values, one per row, NaN for untestable rows.
    """
    n_rows = values_a.shape[0]
    n_a, n_b = values_a.shape[1], values_b.shape[1]
    dof = n_a + n_b - 2
    if n_a == 0 or n_b == 0 or dof < 1:
        return np.full(n_rows, np.nan)

    mean_a = values_a.mean(axis=1)
    mean_b = values_b.mean(axis=1)
    ss = (
        ((values_a - mean_a[:, None]) ** 2).sum(axis=1)
        + ((values_b - mean_b[:, None]) ** 2).sum(axis=1)
    )
    pooled = ss / dof
    diff = mean_b - mean_a

    zero_var = pooled <= _ZERO_TOL
    same_mean = np.abs(diff) <= _ZERO_TOL

    se = np.sqrt(pooled * (1.0 / n_a + 1.0 / n_b))
    with np.errstate(divide="ignore", invalid="ignore"):
        t_stat = diff / se
    pvals = 2.0 * t_dist.sf(np.abs(t_stat), dof)

    pvals[zero_var & ~same_mean] = 0.0
    pvals[zero_var & same_mean] = np.nan
    return np.clip(pvals, 0.0, 1.0)
