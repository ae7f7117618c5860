"""
Delimiter detection for gene-by-cell text files.

Count matrices arrive as TSV (10x ``features.tsv``-style exports, most
pipelines), CSV (R ``write.csv``) and occasionally semicolon-separated
(European locale spreadsheets).
"""

from __future__ import annotations

from itertools import islice
from pathlib import Path

__all__ = ['SUPPORTED_DELIMITERS', 'sniff_delimiter']

# Preference order when several delimiters split the rows consistently.
SUPPORTED_DELIMITERS = ('\t', ',', ';')


def sniff_delimiter(path: Path, n_lines: int = 20) -> str:
    """
    Auto-detect the delimiter of a matrix or metadata table.

    A delimiter qualifies when it splits every sampled data row into the
    same number of fields (at least two). The header is only used for
    one-line files, since it may lack the corner cell above the row ids.

    Args:
        path: Path to data file
        n_lines: Non-empty lines to sample, header included

    Returns:
        Detected delimiter character ('\\t', ',' or ';')

    Raises:
        ValueError: If no supported delimiter splits the rows consistently
    """
    with open(path, 'r', encoding='utf-8', errors='ignore') as f:
        lines = [line.rstrip('\r\n') for line in islice(f, n_lines)]
    lines = [line for line in lines if line.strip()]
    rows = lines[1:] or lines

    for delimiter in SUPPORTED_DELIMITERS:
        widths = {line.count(delimiter) for line in rows}
        if len(widths) == 1 and widths.pop() > 0:
            return delimiter

    raise ValueError(
        f"Could not detect delimiter in {path}. "
        "Please specify it explicitly"
    )
