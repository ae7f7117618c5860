"""
Visual comparison of two transforms of the same count matrix.

The question this answers: "Do the pseudo-count CLR and the LogNorm CLR
tell the same story?" Left panel: every paired entry against the identity
line. Right panel: distribution of per-cell RMSE, to spot cells where the
two paths disagree (typically very shallow cells).
"""

from __future__ import annotations

from typing import Optional

import matplotlib.pyplot as plt
import numpy as np
import seaborn as sns

from codahd.coda.compare import ComparisonResult
from codahd.core.matrix import ExpressionMatrix
from codahd.viz.core import Figure
from codahd.viz.styles import DEFAULT_PALETTE, Palette

__all__ = ['plot_transform_comparison']


def plot_transform_comparison(
    a: ExpressionMatrix,
    b: ExpressionMatrix,
    result: ComparisonResult,
    labels: tuple[str, str] = ("s/10000 CLR", "LogNorm CLR"),
    max_points: int = 50_000,
    seed: int = 0,
    palette: Optional[Palette] = None,
) -> Figure:
    """
    Paired-value scatter and per-sample RMSE histogram.

    Parameters
    ----------
    a, b : ExpressionMatrix
        Transformed matrices with identical ids (as passed to compare_matrices)
    result : ComparisonResult
        Output of ``compare_matrices(a, b)``
    labels : tuple of str
        Axis labels for a and b
    max_points : int
        Entries drawn in the scatter (random subsample beyond this)
    seed : int
        Subsampling seed, so figures are reproducible
    """
    palette = palette or DEFAULT_PALETTE

    x = a.data.ravel()
    y = b.data.ravel()
    if x.size > max_points:
        idx = np.random.default_rng(seed).choice(x.size, size=max_points, replace=False)
        x, y = x[idx], y[idx]

    fig, (ax_scatter, ax_hist) = plt.subplots(1, 2, figsize=(10, 4.5))

    ax_scatter.scatter(x, y, s=4, alpha=0.3, color=palette.primary, rasterized=True)
    lo = float(min(x.min(), y.min()))
    hi = float(max(x.max(), y.max()))
    ax_scatter.plot([lo, hi], [lo, hi], color=palette.neutral, linestyle="--", linewidth=1)
    ax_scatter.set_xlabel(labels[0])
    ax_scatter.set_ylabel(labels[1])
    ax_scatter.set_title(
        f"RMSE = {result.rmse:.3g}, "
        f"{result.exact_match_fraction:.1%} equal at {result.decimals} dp"
    )

    sns.histplot(result.per_sample_rmse.to_numpy(), ax=ax_hist, color=palette.secondary, bins=30)
    ax_hist.set_xlabel("Per-sample RMSE")
    ax_hist.set_ylabel("Samples")
    ax_hist.set_title(f"max |diff| = {result.max_abs_diff:.3g}")

    fig.tight_layout()

    return Figure(
        fig=fig,
        title=f"{labels[0]} vs {labels[1]}",
        metadata={
            "rmse": result.rmse,
            "bitwise_identical": result.bitwise_identical,
            "n_points": int(x.size),
        },
    )
