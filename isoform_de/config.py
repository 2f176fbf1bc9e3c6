"""Analysis configuration: defaults, YAML loading and validation."""

from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Mapping, Optional

from .errors import ConfigurationError
from .expression import Granularity, Measurement
from .utils.io import load_config

CONFIG_SECTION = "differential_expression"


@dataclass(frozen=True)
class AnalysisConfig:
    significance_threshold: float = 0.05
    variance_threshold: float = 1.0
    measurement_kind: Measurement = Measurement.FPKM
    feature_granularity: Granularity = Granularity.TRANSCRIPT
    reference_condition: Optional[str] = None
    id_col: str = "ids"
    condition_col: str = "condition"

    def __post_init__(self):
        try:
            object.__setattr__(self, "measurement_kind", Measurement(self.measurement_kind))
            object.__setattr__(self, "feature_granularity", Granularity(self.feature_granularity))
            object.__setattr__(self, "significance_threshold", float(self.significance_threshold))
            object.__setattr__(self, "variance_threshold", float(self.variance_threshold))
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(str(exc)) from exc

        if not 0.0 < self.significance_threshold <= 1.0:
            raise ConfigurationError(
                f"significance_threshold must be in (0, 1], got {self.significance_threshold}"
            )
        if self.variance_threshold < 0:
            raise ConfigurationError(
                f"variance_threshold must be >= 0, got {self.variance_threshold}"
            )

    @classmethod
    def from_dict(cls, options: Optional[Mapping[str, Any]]) -> "AnalysisConfig":
        """Build a config from a mapping, rejecting unknown keys."""
        options = dict(options or {})
        known = {f.name for f in fields(cls)}
        unknown = set(options) - known
        if unknown:
            raise ConfigurationError(f"Unknown configuration options: {sorted(unknown)}")
        return cls(**options)

    @classmethod
    def from_yaml(cls, path: str | Path, section: str = CONFIG_SECTION) -> "AnalysisConfig":
        """Load the given section of a YAML config file."""
        cfg = load_config(path)
        return cls.from_dict(cfg.get(section, {}))

    def updated(self, **overrides) -> "AnalysisConfig":
        """Return a copy with the non-None overrides applied."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})
