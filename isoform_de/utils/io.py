"""I/O helpers for loading quantification tables and saving reports."""

import csv
from pathlib import Path

import numpy as np
import pandas as pd
import yaml

from ..errors import DataFormatError

# StringTie -B writes one of these per sample directory
CTAB_NAME = "t_data.ctab"
CTAB_ID_COLUMNS = ["t_id", "t_name", "gene_id", "gene_name"]
CTAB_REQUIRED = CTAB_ID_COLUMNS + ["length"]


def read_ctab(path: str | Path, measurement: str) -> pd.DataFrame:
    """Load one sample's transcript table (t_data.ctab).

    Args:
        path: Path to the tab-separated t_data.ctab file.
        measurement: Name of the measurement column to keep (e.g. 'FPKM', 'cov').

    Returns:
        DataFrame indexed by 't_id' with columns ['t_name', 'gene_id',
        'gene_name', 'length', measurement].

    Raises:
        FileNotFoundError: If the file does not exist.
        DataFormatError: If required columns are missing, transcript ids are
            duplicated, or the measurement or length column holds non-numeric,
            non-finite or negative values.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Quantification table not found: {path}")

    df = pd.read_csv(path, sep="\t", dtype=str, keep_default_na=False)
    required = set(CTAB_REQUIRED) | {measurement}
    missing = required - set(df.columns)
    if missing:
        raise DataFormatError(f"{path} missing columns: {sorted(missing)}")

    if df["t_id"].duplicated().any():
        raise DataFormatError(f"{path} has duplicated t_id values.")

    for column in (measurement, "length"):
        values = pd.to_numeric(df[column], errors="coerce")
        if values.isna().any():
            raise DataFormatError(f"{path} has non-numeric '{column}' values.")
        if not np.isfinite(values).all():
            raise DataFormatError(f"{path} has non-finite '{column}' values.")
        if (values < 0).any():
            raise DataFormatError(f"{path} has negative '{column}' values.")
        df[column] = values.astype(float)

    return df[CTAB_REQUIRED + [measurement]].set_index("t_id")


def load_phenotype(
    path: str | Path,
    id_col: str = "ids",
    condition_col: str = "condition",
) -> pd.DataFrame:
    """Load a sample phenotype table (one row per sample).

    Args:
        path: CSV with at least a sample id column and a condition column.
        id_col: Column holding sample ids (also the per-sample directory names).
        condition_col: Column holding the condition label.

    Returns:
        DataFrame with columns [id_col, condition_col] as strings.

    Raises:
        FileNotFoundError: If the file does not exist.
        DataFormatError: If either column is missing.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Phenotype table not found: {path}")
    df = pd.read_csv(path, dtype=str)
    missing = {id_col, condition_col} - set(df.columns)
    if missing:
        raise DataFormatError(f"Phenotype table missing columns: {sorted(missing)}")
    return df[[id_col, condition_col]]


def save_report(df: pd.DataFrame, path: str | Path) -> Path:
    """Write a report as unquoted tab-separated text without an index column.

    Args:
        df: Report rows, already in the desired column and row order.
        path: Output path.

    Returns:
        The path written.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(path, sep="\t", index=False, quoting=csv.QUOTE_NONE, lineterminator="\n")
    return path


def load_config(path: str | Path) -> dict:
    """Load a YAML configuration file.

    Args:
        path: Path to a YAML config file.

    Returns:
        Dictionary of configuration parameters.

    Raises:
        FileNotFoundError: If the config file does not exist.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    with open(path) as f:
        return yaml.safe_load(f) or {}
