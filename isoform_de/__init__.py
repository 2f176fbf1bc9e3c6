"""
isoform_de: Transcript- and gene-level differential expression between two
conditions (old vs young) from StringTie/ballgown quantification tables.

Analyses:
    1. samples                 — Sample registry and phenotype table
    2. expression              — Per-sample t_data.ctab loading (transcript/gene)
    3. variance_filter         — Drop low-variance features
    4. differential_expression — Two-group test, fold change, BH q-values
    5. ranking                 — Annotate, rank and export SigDiff.txt
    6. descriptive             — Data prep and rendering of diagnostic plots
"""

__version__ = "0.1.0"
