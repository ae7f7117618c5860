"""
I/O for count matrices and cell annotations.

Key Functions:
    - load_matrix: Load a delimited gene-by-cell count file
    - load_sample_metadata / attach_metadata: Per-cell annotations
    - resolve_group_labels: Group label per cell for grouped methods
    - write_matrix / write_sample_metadata: CSV output

Examples:
    >>> from codahd.io import load_matrix, write_matrix
    >>> from pathlib import Path
    >>>
    >>> counts = load_matrix(Path("counts.tsv"))
    >>> write_matrix(clr(counts), Path("out/counts_clr"))
"""

from codahd.io.formats import sniff_delimiter
from codahd.io.loaders import load_matrix
from codahd.io.metadata import attach_metadata, load_sample_metadata, resolve_group_labels
from codahd.io.writers import write_matrix, write_sample_metadata

__all__ = [
    'sniff_delimiter',
    'load_matrix',
    'load_sample_metadata',
    'attach_metadata',
    'resolve_group_labels',
    'write_matrix',
    'write_sample_metadata',
]
