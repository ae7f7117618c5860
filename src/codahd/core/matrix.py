"""
Core data structure for single-cell count matrices.

ExpressionMatrix couples a numerical gene-by-cell matrix with its row and
column names and with per-cell annotations (cell type, cluster, sample group).

Biological Context:
    Single-cell count matrices are oriented the way Seurat stores them:
    - Rows = features (genes)
    - Columns = samples (cells)
    - Values = UMI / read counts (raw) or transformed values

    Compositional transforms only look at ratios within a cell, so every
    operation in this package works column by column and must keep gene and
    cell names in their original order.

Engineering Design:
    - Immutable: operations return new instances
    - NumPy arrays for data, pandas Index/DataFrame for names and metadata
    - Validated: constructor checks shape and name consistency and raises
      InvalidInputError on mismatch

Examples:
    >>> import numpy as np
    >>> import pandas as pd
    >>> from codahd.core.matrix import ExpressionMatrix
    >>>
    >>> matrix = ExpressionMatrix(
    ...     data=np.array([[4, 0], [2, 2], [0, 6]]),
    ...     feature_ids=pd.Index(["CD3E", "MS4A1", "LYZ"]),
    ...     sample_ids=pd.Index(["cell_1", "cell_2"]),
    ... )
    >>> matrix.shape
    (3, 2)
"""

from __future__ import annotations

from typing import Optional
import numpy as np
import pandas as pd

from codahd.core.errors import InvalidInputError

__all__ = ['ExpressionMatrix']


class ExpressionMatrix:
    """
    Immutable container for a gene-by-cell matrix plus cell annotations.

    Attributes:
        data: Numerical matrix (features × samples), float64
        feature_ids: Row identifiers (gene symbols, Ensembl ids, or ILR
            contrast labels for transformed output)
        sample_ids: Column identifiers (cell barcodes)
        sample_metadata: Per-cell annotations indexed by sample_ids

    Shape Invariants:
        - data.shape[0] == len(feature_ids)
        - data.shape[1] == len(sample_ids)
        - feature_ids and sample_ids are unique
        - sample_metadata.index equals sample_ids
    """

    def __init__(
        self,
        data: np.ndarray,
        feature_ids: pd.Index,
        sample_ids: pd.Index,
        sample_metadata: Optional[pd.DataFrame] = None,
    ):
        """
        Initialize ExpressionMatrix with validation.

        Args:
            data: 2D array (features × samples)
            feature_ids: Row identifiers, one per row
            sample_ids: Column identifiers, one per column
            sample_metadata: Optional DataFrame indexed by sample_ids.
                Defaults to an empty frame with the right index.

        Raises:
            InvalidInputError: If shapes or names are inconsistent
        """
        if not isinstance(data, np.ndarray):
            raise InvalidInputError(f"data must be np.ndarray, got {type(data)}")
        if not isinstance(feature_ids, pd.Index):
            feature_ids = pd.Index(feature_ids)
        if not isinstance(sample_ids, pd.Index):
            sample_ids = pd.Index(sample_ids)

        if data.ndim != 2:
            raise InvalidInputError(f"data must be 2D, got shape {data.shape}")

        n_features, n_samples = data.shape

        if len(feature_ids) != n_features:
            raise InvalidInputError(
                f"feature_ids length ({len(feature_ids)}) must match data rows ({n_features})"
            )
        if len(sample_ids) != n_samples:
            raise InvalidInputError(
                f"sample_ids length ({len(sample_ids)}) must match data columns ({n_samples})"
            )
        if feature_ids.has_duplicates:
            dups = feature_ids[feature_ids.duplicated()].unique()
            raise InvalidInputError(f"Duplicate feature ids (first 10): {list(dups[:10])}")
        if sample_ids.has_duplicates:
            dups = sample_ids[sample_ids.duplicated()].unique()
            raise InvalidInputError(f"Duplicate sample ids (first 10): {list(dups[:10])}")

        if sample_metadata is None:
            sample_metadata = pd.DataFrame(index=sample_ids)
        elif not isinstance(sample_metadata, pd.DataFrame):
            raise InvalidInputError(
                f"sample_metadata must be pd.DataFrame, got {type(sample_metadata)}"
            )
        elif not sample_metadata.index.equals(sample_ids):
            raise InvalidInputError(
                "sample_metadata.index must match sample_ids exactly. "
                f"Got {len(sample_metadata.index)} metadata rows for {len(sample_ids)} samples."
            )

        self._data = data.astype(float, copy=False)
        self._feature_ids = feature_ids
        self._sample_ids = sample_ids
        self._sample_metadata = sample_metadata

    @classmethod
    def from_dataframe(
        cls,
        df: pd.DataFrame,
        sample_metadata: Optional[pd.DataFrame] = None,
    ) -> ExpressionMatrix:
        """Build from a genes × cells DataFrame (index = genes, columns = cells)."""
        try:
            data = df.to_numpy(dtype=float, copy=True)
        except (TypeError, ValueError) as e:
            raise InvalidInputError(f"DataFrame contains non-numeric values: {e}") from e
        return cls(
            data=data,
            feature_ids=pd.Index(df.index),
            sample_ids=pd.Index(df.columns),
            sample_metadata=sample_metadata,
        )

    @property
    def data(self) -> np.ndarray:
        """Matrix values (features × samples)."""
        return self._data

    @property
    def feature_ids(self) -> pd.Index:
        """Row identifiers."""
        return self._feature_ids

    @property
    def sample_ids(self) -> pd.Index:
        """Column identifiers."""
        return self._sample_ids

    @property
    def sample_metadata(self) -> pd.DataFrame:
        """Per-cell annotations."""
        return self._sample_metadata

    @property
    def shape(self) -> tuple[int, int]:
        """Matrix dimensions (n_features, n_samples)."""
        return self._data.shape

    @property
    def n_features(self) -> int:
        return self._data.shape[0]

    @property
    def n_samples(self) -> int:
        return self._data.shape[1]

    def with_data(
        self,
        data: np.ndarray,
        feature_ids: Optional[pd.Index] = None,
    ) -> ExpressionMatrix:
        """
        Return a new matrix with replaced values, keeping sample names and metadata.

        feature_ids must be given when the number of rows changes (ILR output).
        """
        return ExpressionMatrix(
            data=data,
            feature_ids=self._feature_ids if feature_ids is None else feature_ids,
            sample_ids=self._sample_ids,
            sample_metadata=self._sample_metadata,
        )

    def select_samples(self, mask: np.ndarray | pd.Series) -> ExpressionMatrix:
        """
        Subset matrix by samples (columns), preserving column order.

        Args:
            mask: Boolean array/Series indicating which samples to keep.
                If Series, uses values and ignores index.

        Raises:
            InvalidInputError: If mask length doesn't match n_samples
        """
        if isinstance(mask, pd.Series):
            mask = mask.values
        mask = np.asarray(mask, dtype=bool)

        if len(mask) != self.n_samples:
            raise InvalidInputError(
                f"mask length ({len(mask)}) must match n_samples ({self.n_samples})"
            )

        return ExpressionMatrix(
            data=self._data[:, mask],
            feature_ids=self._feature_ids,
            sample_ids=self._sample_ids[mask],
            sample_metadata=self._sample_metadata.loc[self._sample_ids[mask]],
        )

    def select_features(self, mask: np.ndarray | pd.Series) -> ExpressionMatrix:
        """
        Subset matrix by features (rows), preserving row order.

        Raises:
            InvalidInputError: If mask length doesn't match n_features
        """
        if isinstance(mask, pd.Series):
            mask = mask.values
        mask = np.asarray(mask, dtype=bool)

        if len(mask) != self.n_features:
            raise InvalidInputError(
                f"mask length ({len(mask)}) must match n_features ({self.n_features})"
            )

        return ExpressionMatrix(
            data=self._data[mask, :],
            feature_ids=self._feature_ids[mask],
            sample_ids=self._sample_ids,
            sample_metadata=self._sample_metadata,
        )

    def with_metadata(self, sample_metadata: pd.DataFrame) -> ExpressionMatrix:
        """Return a new matrix with replaced cell annotations."""
        return ExpressionMatrix(
            data=self._data,
            feature_ids=self._feature_ids,
            sample_ids=self._sample_ids,
            sample_metadata=sample_metadata,
        )

    def to_dataframe(self) -> pd.DataFrame:
        """Matrix values as a genes × cells DataFrame."""
        return pd.DataFrame(self._data, index=self._feature_ids, columns=self._sample_ids)

    def copy(self, deep: bool = True) -> ExpressionMatrix:
        """
        Create a copy of this matrix.

        Args:
            deep: If True, copy all arrays. If False, share arrays.
        """
        if deep:
            return ExpressionMatrix(
                data=self._data.copy(),
                feature_ids=self._feature_ids.copy(),
                sample_ids=self._sample_ids.copy(),
                sample_metadata=self._sample_metadata.copy(),
            )
        return ExpressionMatrix(
            data=self._data,
            feature_ids=self._feature_ids,
            sample_ids=self._sample_ids,
            sample_metadata=self._sample_metadata,
        )

    def __repr__(self) -> str:
        if self.n_features == 0 or self.n_samples == 0:
            return f"ExpressionMatrix({self.n_features} features × {self.n_samples} samples)"
        return (
            f"ExpressionMatrix({self.n_features} features × {self.n_samples} samples)\n"
            f"  Features: {self.feature_ids[0]}...{self.feature_ids[-1]}\n"
            f"  Samples: {self.sample_ids[0]}...{self.sample_ids[-1]}\n"
            f"  Metadata columns: {list(self.sample_metadata.columns)}"
        )
