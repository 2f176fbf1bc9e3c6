"""Exceptions raised by the analysis modules.

Missing or unreadable input files raise the built-in FileNotFoundError.
Degenerate test rows are not exceptions; they are flagged in the result
table's 'untestable' column.
"""


class ConfigurationError(ValueError):
    """Invalid sample registry or analysis configuration."""


class DataFormatError(ValueError):
    """Input table does not match the expected schema or sample layout."""
