"""
CSV writers for transformed matrices and cell annotations.

Output naming follows a base-path convention so that a transform run leaves
a predictable set of files side by side:

    {base}.data.csv     transformed matrix (features × samples)
    {base}.params.json  transform parameters (written by the CLI)

Examples:
    >>> from pathlib import Path
    >>> from codahd.io.writers import write_matrix
    >>>
    >>> data_path = write_matrix(clr_matrix, Path("results/pbmc_clr"))
    >>> data_path
    PosixPath('results/pbmc_clr.data.csv')
"""

from __future__ import annotations

import logging
from pathlib import Path

from codahd.core.errors import InvalidInputError
from codahd.core.matrix import ExpressionMatrix

logger = logging.getLogger(__name__)

__all__ = ['write_matrix', 'write_sample_metadata']


def _ensure_parent(path: Path) -> None:
    if path.parent != Path('.') and not path.parent.exists():
        path.parent.mkdir(parents=True, exist_ok=True)


def write_matrix(matrix: ExpressionMatrix, path: Path) -> Path:
    """
    Write a matrix to ``{path}.data.csv``.

    The first column holds feature ids (or ILR contrast labels), the header
    row holds sample ids. Parent directories are created as needed and
    existing files are overwritten.

    Returns:
        Path of the written file

    Raises:
        TypeError: If matrix is not an ExpressionMatrix
        InvalidInputError: If the matrix is empty
    """
    if not isinstance(matrix, ExpressionMatrix):
        raise TypeError(f"matrix must be ExpressionMatrix, got {type(matrix)}")
    if matrix.data.size == 0:
        raise InvalidInputError("Cannot write empty matrix")

    path = Path(path)
    _ensure_parent(path)

    data_path = Path(str(path) + ".data.csv")
    matrix.to_dataframe().to_csv(data_path)
    logger.info(f"Wrote data matrix to {data_path}")
    return data_path


def write_sample_metadata(matrix: ExpressionMatrix, path: Path) -> Path:
    """
    Write cell annotations to CSV with sample id as first column.

    Args:
        matrix: Matrix whose sample_metadata is written
        path: Output path (used exactly as provided)
    """
    if not isinstance(matrix, ExpressionMatrix):
        raise TypeError(f"matrix must be ExpressionMatrix, got {type(matrix)}")

    path = Path(path)
    _ensure_parent(path)

    metadata = matrix.sample_metadata.copy()
    metadata.index.name = metadata.index.name or 'sample_id'
    metadata.reset_index().to_csv(path, index=False)
    logger.info(f"Wrote sample metadata to {path}")
    return path
