"""
isoform_de - Test configuration and fixtures
"""
import matplotlib

matplotlib.use("Agg")

import pandas as pd
import pytest
from pathlib import Path

from isoform_de.samples import SampleRegistry

CTAB_COLUMNS = [
    "t_id", "chr", "strand", "start", "end", "t_name", "num_exons",
    "length", "gene_id", "gene_name", "cov", "FPKM",
]

# t_id, t_name, gene_id, gene_name, length, FPKM for s1..s4 (old, old, young, young)
TRANSCRIPTS = [
    ("1", "TX-A1", "G1", "GENEA", 1500, [1.0, 1.0, 100.0, 100.0]),
    ("2", "TX-A2", "G1", "GENEA", 900, [5.0, 5.0, 5.0, 5.0]),
    ("3", "TX-B1", "G2", "GENEB", 2100, [10.0, 12.0, 30.0, 33.0]),
    ("4", "TX-C1", "G3", "GENEC", 600, [20.0, 25.0, 22.0, 19.0]),
    ("5", "TX-C2", "G3", "GENEC", 1200, [0.0, 0.0, 8.0, 9.0]),
]

SAMPLES = [("s1", "old"), ("s2", "old"), ("s3", "young"), ("s4", "young")]


def write_ctab(path: Path, rows: list[dict]) -> Path:
    """Write a t_data.ctab file from row dicts (missing columns get defaults)."""
    path.parent.mkdir(parents=True, exist_ok=True)
    defaults = {"chr": "chr1", "strand": "+", "start": 100, "end": 2000,
                "num_exons": 2, "cov": 1.0}
    df = pd.DataFrame([{**defaults, **r} for r in rows])
    columns = [c for c in CTAB_COLUMNS if c in df.columns]
    df[columns].to_csv(path, sep="\t", index=False)
    return path


def write_dataset(root: Path, transcripts=TRANSCRIPTS, samples=SAMPLES) -> tuple[Path, Path]:
    """Write per-sample ctab directories and a phenotype CSV under root.

    Returns:
        Tuple (pheno_file, data_dir).
    """
    data_dir = root / "ballgown"
    for col, (sid, _) in enumerate(samples):
        rows = [
            {"t_id": tid, "t_name": tname, "gene_id": gid, "gene_name": gname,
             "length": length, "FPKM": values[col], "cov": values[col] / 2}
            for tid, tname, gid, gname, length, values in transcripts
        ]
        write_ctab(data_dir / sid / "t_data.ctab", rows)

    pheno_file = root / "phenodata.csv"
    pd.DataFrame(samples, columns=["ids", "condition"]).to_csv(pheno_file, index=False)
    return pheno_file, data_dir


@pytest.fixture
def registry():
    """Two old and two young samples; 'old' is the reference condition."""
    return SampleRegistry.from_pairs(SAMPLES)


@pytest.fixture
def dataset(tmp_path):
    """Phenotype CSV and ballgown directory for the five test transcripts."""
    return write_dataset(tmp_path)


@pytest.fixture
def loaded(dataset, registry):
    """(transcript_table, gene_table, annotation) loaded from the dataset."""
    from isoform_de.expression import load_expression

    _, data_dir = dataset
    return load_expression(data_dir, registry)
