"""argparse ``type=`` callables that enforce numeric bounds on CLI options."""

from __future__ import annotations

import argparse
import math
from typing import Callable


def _bounded(cast: Callable[[str], float], lower: float, inclusive: bool, kind: str):
    bound = f">= {lower:g}" if inclusive else f"> {lower:g}"

    def parse(value: str):
        try:
            number = cast(value)
        except ValueError:
            raise argparse.ArgumentTypeError(f"{value!r} is not a valid {kind}") from None
        if not math.isfinite(number):
            raise argparse.ArgumentTypeError(f"{value} is not a finite {kind}")
        if number < lower or (number == lower and not inclusive):
            raise argparse.ArgumentTypeError(f"{value} must be {bound}")
        return number

    parse.__name__ = kind
    return parse


_positive_int = _bounded(int, 0, inclusive=False, kind="integer")
_non_negative_int = _bounded(int, 0, inclusive=True, kind="integer")
_positive_float = _bounded(float, 0.0, inclusive=False, kind="float")
_non_negative_float = _bounded(float, 0.0, inclusive=True, kind="float")
