"""
Saved comparison figures that carry their run summary.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import matplotlib.figure
import matplotlib.pyplot as plt

__all__ = ['Figure']

_FORMATS = ('png', 'pdf', 'svg')


@dataclass
class Figure:
    """
    A matplotlib figure plus the numbers it was drawn from.

    ``metadata`` (RMSE, point count, ...) is embedded in the saved file as
    document info, so an exported plot still identifies the comparison it
    shows after it is separated from its ``.comparison.json``.
    """
    fig: matplotlib.figure.Figure
    title: str
    metadata: dict = field(default_factory=dict)

    def summary(self) -> str:
        return "; ".join(f"{key}={value}" for key, value in self.metadata.items())

    def _file_metadata(self, fmt: str) -> dict:
        if fmt == 'pdf':
            return {'Title': self.title, 'Subject': self.summary(), 'Creator': 'codahd'}
        if fmt == 'svg':
            return {'Title': self.title, 'Description': self.summary(), 'Creator': 'codahd'}
        return {'Title': self.title, 'Description': self.summary(), 'Software': 'codahd'}

    def save(self, path: Path | str, dpi: int = 150) -> Path:
        """Write the figure; the format follows the file suffix (png, pdf or svg)."""
        path = Path(path)
        fmt = path.suffix.lstrip('.').lower()
        if fmt not in _FORMATS:
            raise ValueError(
                f"Unsupported figure format {path.suffix!r}; use one of {', '.join(_FORMATS)}"
            )
        path.parent.mkdir(parents=True, exist_ok=True)
        self.fig.savefig(
            path, format=fmt, dpi=dpi, bbox_inches='tight', facecolor='white',
            metadata=self._file_metadata(fmt),
        )
        return path

    def close(self) -> None:
        plt.close(self.fig)
