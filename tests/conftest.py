"""
Pytest configuration and shared fixtures.

This module provides synthetic count-matrix generators and shared fixtures
for all test suites.
"""

import matplotlib

matplotlib.use("Agg")

import numpy as np
import pandas as pd
import pytest

from codahd.core.matrix import ExpressionMatrix


def generate_synthetic_counts(
    n_genes: int = 60,
    n_cells: int = 24,
    dispersion: float = 2.0,
    seed: int = 42,
) -> ExpressionMatrix:
    """
    Generate a sparse single-cell-like count matrix.

    Args:
        n_genes: Number of genes (features)
        n_cells: Number of cells (samples)
        dispersion: Negative-binomial size parameter (smaller = more zeros)
        seed: Random seed for reproducibility

    Design:
        - Gene means are log-normal (few highly expressed genes, long tail)
        - Cell size factors are log-normal (uneven sequencing depth)
        - Counts are negative binomial around gene mean × size factor
        - Gene 0 is forced positive so no cell is empty
        - Fewer than 100 genes keeps iterative reference selection within
          its default iteration cap
    """
    rng = np.random.RandomState(seed)

    gene_means = rng.lognormal(mean=1.5, sigma=1.0, size=n_genes)
    size_factors = rng.lognormal(mean=0.0, sigma=0.4, size=n_cells)
    mu = gene_means[:, np.newaxis] * size_factors[np.newaxis, :]

    counts = rng.negative_binomial(dispersion, dispersion / (dispersion + mu)).astype(float)
    counts[0, :] = np.maximum(counts[0, :], 1.0)

    return ExpressionMatrix(
        data=counts,
        feature_ids=pd.Index([f"GENE{i:03d}" for i in range(n_genes)]),
        sample_ids=pd.Index([f"cell_{j:03d}" for j in range(n_cells)]),
    )


def generate_log_data(n_features: int = 20, n_samples: int = 10, seed: int = 0) -> np.ndarray:
    """
    Log-space matrix with a clear structure for reference-selection tests.

    - Row means increase with row index (row n-1 most abundant)
    - Small, varied noise on every row
    - Row 0 is least abundant and has by far the largest variance
    """
    rng = np.random.RandomState(seed)
    means = np.linspace(0.0, 5.0, n_features)
    scales = np.linspace(0.05, 0.3, n_features)
    log_data = means[:, np.newaxis] + rng.randn(n_features, n_samples) * scales[:, np.newaxis]
    log_data[0] = -10.0 + 10.0 * (-1.0) ** np.arange(n_samples)
    return log_data


@pytest.fixture
def counts():
    """60 genes × 24 cells of sparse negative-binomial counts."""
    return generate_synthetic_counts()


@pytest.fixture
def grouped_counts(counts):
    """``counts`` with a two-level ``cell_type`` annotation (alternating T / B)."""
    labels = ["T" if j % 2 == 0 else "B" for j in range(counts.n_samples)]
    metadata = pd.DataFrame({"cell_type": labels}, index=counts.sample_ids)
    return counts.with_metadata(metadata)


@pytest.fixture
def small_counts():
    """The 3 × 2 matrix [[4, 0], [2, 2], [0, 6]]."""
    return ExpressionMatrix(
        data=np.array([[4.0, 0.0], [2.0, 2.0], [0.0, 6.0]]),
        feature_ids=pd.Index(["g1", "g2", "g3"]),
        sample_ids=pd.Index(["c1", "c2"]),
    )


@pytest.fixture
def dense_counts():
    """30 genes × 8 cells of strictly positive Poisson counts."""
    rng = np.random.RandomState(7)
    data = rng.poisson(20, size=(30, 8)).astype(float) + 1.0
    return ExpressionMatrix(
        data=data,
        feature_ids=pd.Index([f"g{i}" for i in range(30)]),
        sample_ids=pd.Index([f"c{j}" for j in range(8)]),
    )


@pytest.fixture
def log_data():
    """20 features × 10 samples; see generate_log_data."""
    return generate_log_data()


@pytest.fixture
def counts_file(tmp_path, counts):
    """``counts`` written as a tab-separated file."""
    path = tmp_path / "counts.tsv"
    counts.to_dataframe().to_csv(path, sep="\t")
    return path
