"""
Static figures (matplotlib/seaborn) for inspecting transform output.

Examples
--------
>>> from codahd.viz import plot_transform_comparison, configure_style
>>> configure_style("paper")
>>> fig = plot_transform_comparison(clr_fixed, clr_lognorm, compare_matrices(clr_fixed, clr_lognorm))
>>> fig.save("comparison.png")
"""

from codahd.viz.comparison import plot_transform_comparison
from codahd.viz.core import Figure
from codahd.viz.styles import DEFAULT_PALETTE, Palette, configure_style

__all__ = [
    'Figure',
    'Palette',
    'DEFAULT_PALETTE',
    'configure_style',
    'plot_transform_comparison',
]
