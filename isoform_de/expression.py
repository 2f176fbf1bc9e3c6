"""Expression table loading from per-sample StringTie quantifications.

Each sample directory under the data root holds a ``t_data.ctab`` written by
``stringtie -B``: one row per assembled transcript with its id, name, parent
gene and measurements (FPKM, coverage). This module turns those files into:

  - a transcript-level ExpressionTable (transcripts × samples)
  - a gene-level ExpressionTable (genes × samples), the per-sample sum of the
    gene's transcript values
  - a FeatureAnnotation mapping transcript and gene ids to readable names

Column order always follows the SampleRegistry. Tables are never modified in
place; every operation returns a new table.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterable, Optional

import pandas as pd

from .errors import DataFormatError
from .samples import SampleRegistry
from .utils.io import CTAB_NAME, read_ctab

log = logging.getLogger(__name__)


class Granularity(str, Enum):
    TRANSCRIPT = "transcript"
    GENE = "gene"


class Measurement(str, Enum):
    FPKM = "FPKM"
    COV = "cov"


@dataclass(frozen=True)
class ExpressionTable:
    """Numeric features × samples table for one granularity and measurement."""

    data: pd.DataFrame
    granularity: Granularity
    measurement: Measurement

    def __len__(self) -> int:
        return len(self.data)

    @property
    def samples(self) -> list[str]:
        return list(self.data.columns)

    @property
    def features(self) -> list[str]:
        return list(self.data.index)

    def select(self, feature_ids: Iterable[str]) -> "ExpressionTable":
        """Return a new table restricted to feature_ids, keeping column order."""
        return ExpressionTable(
            data=self.data.loc[list(feature_ids)].copy(),
            granularity=self.granularity,
            measurement=self.measurement,
        )


@dataclass(frozen=True)
class FeatureAnnotation:
    """Readable names for transcripts and genes.

    Attributes:
        transcripts: Indexed by t_id; columns ['t_name', 'gene_id',
            'gene_name', 'length'].
        genes: Indexed by gene_id; column ['gene_name'].
    """

    transcripts: pd.DataFrame
    genes: pd.DataFrame

    @classmethod
    def from_ctab(cls, ctab: pd.DataFrame) -> "FeatureAnnotation":
        transcripts = ctab[["t_name", "gene_id", "gene_name", "length"]].copy()
        genes = (
            transcripts.drop_duplicates("gene_id")
            .set_index("gene_id")[["gene_name"]]
        )
        return cls(transcripts=transcripts, genes=genes)

    def gene_of(self, transcript_ids: Iterable[str]) -> pd.Series:
        """Map transcript ids to their parent gene ids."""
        return self.transcripts.loc[list(transcript_ids), "gene_id"]

    def transcript_names_by_gene(self) -> pd.Series:
        """Comma-joined transcript names per gene id, in transcript table order."""
        return self.transcripts.groupby("gene_id", sort=False)["t_name"].agg(",".join)


def load_expression(
    data_dir: str | Path,
    registry: SampleRegistry,
    measurement: Measurement = Measurement.FPKM,
) -> tuple[ExpressionTable, ExpressionTable, FeatureAnnotation]:
    """Load transcript and gene tables for every sample in the registry.

    Expects ``data_dir/<sample_id>/t_data.ctab`` for each sample. All samples
    must report the same set of transcript ids (StringTie -B run against a
    merged reference produces this).

    Args:
        data_dir: Root directory with one subdirectory per sample.
        registry: Sample registry; defines which files are read and the
            column order of the returned tables.
        measurement: Measurement column to load.

    Returns:
        Tuple of (transcript_table, gene_table, annotation).

    Raises:
        FileNotFoundError: If a sample's table is missing.
        DataFormatError: If a table's schema is wrong or the samples disagree
            on the transcript set.
    """
    measurement = Measurement(measurement)
    data_dir = Path(data_dir)

    columns = {}
    reference_ctab: Optional[pd.DataFrame] = None
    for sample in registry:
        ctab = read_ctab(data_dir / sample.id / CTAB_NAME, measurement.value)
        if reference_ctab is None:
            reference_ctab = ctab
        elif not ctab.index.sort_values().equals(reference_ctab.index.sort_values()):
            raise DataFormatError(
                f"Sample '{sample.id}' transcript ids differ from sample "
                f"'{registry.samples[0].id}'."
            )
        columns[sample.id] = ctab[measurement.value]

    values = pd.DataFrame(columns).loc[reference_ctab.index, registry.ids]
    values.index.name = "t_id"

    annotation = FeatureAnnotation.from_ctab(reference_ctab)
    transcripts = ExpressionTable(values, Granularity.TRANSCRIPT, measurement)
    genes = aggregate_to_genes(transcripts, annotation)
    log.info(
        "Loaded %s for %d samples: %d transcripts, %d genes",
        measurement.value, len(registry), len(transcripts), len(genes),
    )
    return transcripts, genes, annotation


def aggregate_to_genes(
    transcripts: ExpressionTable,
    annotation: FeatureAnnotation,
) -> ExpressionTable:
    """Sum transcript values per parent gene and sample.

    Args:
        transcripts: Transcript-level table.
        annotation: Annotation covering every transcript in the table.

    Returns:
        Gene-level table (index 'gene_id'), genes in first-seen order.
    """
    gene_ids = annotation.gene_of(transcripts.features)
    gene_ids.index = transcripts.data.index
    data = transcripts.data.groupby(gene_ids, sort=False).sum()
    data.index.name = "gene_id"
    return ExpressionTable(data, Granularity.GENE, transcripts.measurement)


def transcripts_per_gene(
    annotation: FeatureAnnotation,
    transcript_ids: Optional[Iterable[str]] = None,
) -> pd.Series:
    """Count transcripts per gene, optionally restricted to transcript_ids.

    Returns:
        Series indexed by gene_id with the number of transcripts.
    """
    tx = annotation.transcripts
    if transcript_ids is not None:
        tx = tx.loc[list(transcript_ids)]
    return tx.groupby("gene_id", sort=False).size().rename("n_transcripts")
