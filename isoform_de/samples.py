"""Sample registry: sample ids and their condition label.

The registry is fixed once built. Its sample order is the column order of
every expression table derived from the run, and its two condition labels
define the comparison: the reference condition (A) is the denominator of
the fold change, the other condition (B) the numerator.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator, Optional

from .errors import ConfigurationError
from .utils.io import load_phenotype

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Sample:
    id: str
    condition: str


@dataclass(frozen=True)
class SampleRegistry:
    samples: tuple[Sample, ...]
    reference: str
    comparison: str

    @classmethod
    def from_pairs(
        cls,
        pairs: Iterable[tuple[str, str]],
        reference: Optional[str] = None,
    ) -> "SampleRegistry":
        """Build and validate a registry from (sample_id, condition) pairs.

        Args:
            pairs: Sample id and condition label for each sample, in the
                order the expression table columns should follow.
            reference: Label of condition A. Defaults to the first of the two
                labels in sorted order.

        Returns:
            A validated SampleRegistry.

        Raises:
            ConfigurationError: On duplicate sample ids, a condition count
                other than two, or a reference label that is not present.
        """
        samples = tuple(Sample(str(sid), str(cond)) for sid, cond in pairs)

        seen = set()
        dupes = []
        for s in samples:
            if s.id in seen:
                dupes.append(s.id)
            seen.add(s.id)
        if dupes:
            raise ConfigurationError(f"Duplicate sample ids: {sorted(set(dupes))}")

        labels = sorted({s.condition for s in samples})
        if len(labels) != 2:
            raise ConfigurationError(
                f"Expected exactly two conditions, found {len(labels)}: {labels}"
            )

        if reference is None:
            reference = labels[0]
        elif reference not in labels:
            raise ConfigurationError(
                f"Reference condition '{reference}' not among conditions {labels}"
            )
        comparison = labels[1] if reference == labels[0] else labels[0]
        return cls(samples=samples, reference=reference, comparison=comparison)

    def __iter__(self) -> Iterator[Sample]:
        return iter(self.samples)

    def __len__(self) -> int:
        return len(self.samples)

    @property
    def ids(self) -> list[str]:
        return [s.id for s in self.samples]

    def condition_of(self, sample_id: str) -> str:
        for s in self.samples:
            if s.id == sample_id:
                return s.condition
        raise KeyError(sample_id)

    def groups(self) -> tuple[list[str], list[str]]:
        """Return (condition A sample ids, condition B sample ids) in registry order."""
        group_a = [s.id for s in self.samples if s.condition == self.reference]
        group_b = [s.id for s in self.samples if s.condition == self.comparison]
        return group_a, group_b


def load_phenotype_table(
    path: str | Path,
    id_col: str = "ids",
    condition_col: str = "condition",
    reference: Optional[str] = None,
) -> SampleRegistry:
    """Read a phenotype CSV into a SampleRegistry.

    Args:
        path: CSV with one row per sample.
        id_col: Column with sample ids.
        condition_col: Column with condition labels.
        reference: Optional label of condition A.

    Returns:
        Validated SampleRegistry in file row order.
    """
    pheno = load_phenotype(path, id_col=id_col, condition_col=condition_col)
    registry = SampleRegistry.from_pairs(
        zip(pheno[id_col], pheno[condition_col]), reference=reference
    )
    group_a, group_b = registry.groups()
    log.info(
        "Loaded %d samples: %d '%s' (reference), %d '%s'",
        len(registry), len(group_a), registry.reference, len(group_b), registry.comparison,
    )
    return registry
