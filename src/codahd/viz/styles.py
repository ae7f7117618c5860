"""
Matplotlib/seaborn styling shared by all codahd figures.

Conventions
-----------
- Pseudo-count CLR = Blue (#2563eb), LogNorm CLR = Orange (#f97316)
- Identity / reference lines = neutral grey
- Colorblind-safe colors throughout
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

import matplotlib.pyplot as plt
import seaborn as sns


@dataclass(frozen=True)
class Palette:
    """
    Colors for transform comparison figures.

    Attributes
    ----------
    primary : str
        First transform (e.g. s/10000 CLR)
    secondary : str
        Second transform (e.g. LogNorm CLR)
    neutral : str
        Reference lines and annotations
    """
    primary: str = "#2563eb"
    secondary: str = "#f97316"
    neutral: str = "#6b7280"


DEFAULT_PALETTE = Palette()


def configure_style(
    style: Literal["paper", "notebook"] = "paper",
    font_scale: float = 1.0
) -> Palette:
    """
    Configure matplotlib and seaborn for consistent figure style.

    Parameters
    ----------
    style : {"paper", "notebook"}
        paper: high DPI, minimal decoration. notebook: moderate sizes.
    font_scale : float
        Multiplier for all font sizes.
    """
    base_params = {
        "figure.facecolor": "white",
        "axes.facecolor": "white",
        "axes.edgecolor": "#333333",
        "axes.labelcolor": "#333333",
        "text.color": "#333333",
        "axes.spines.top": False,
        "axes.spines.right": False,
        "legend.frameon": False,
    }

    if style == "paper":
        style_params = {
            "font.size": 10 * font_scale,
            "axes.titlesize": 11 * font_scale,
            "axes.labelsize": 10 * font_scale,
            "figure.dpi": 300,
            "savefig.dpi": 300,
        }
        context = "paper"
    else:
        style_params = {
            "font.size": 11 * font_scale,
            "axes.titlesize": 12 * font_scale,
            "axes.labelsize": 11 * font_scale,
            "figure.dpi": 100,
            "savefig.dpi": 150,
        }
        context = "notebook"

    sns.set_theme(style="whitegrid", context=context, font_scale=font_scale)
    plt.rcParams.update({**base_params, **style_params})

    return DEFAULT_PALETTE
