"""
Reference selection for centered log-ratio transforms.

Every CLR-family transform divides each sample by the geometric mean of a
reference subset of its features. The methods differ only in how that subset
is chosen:

    CLR        all features
    IQLR       features whose log-ratio variance across samples lies in the
               interquartile range of all feature variances
    LVHA       low-variance, high-abundance features
    mdCLR      features whose robust dispersion stays below median + k * MAD;
               reference is the median of the retained features
    manual     caller-supplied feature list
    groupIQLR  IQLR within each sample group
    groupLVHA  LVHA within each sample group
    ILR        no scalar reference; orthonormal balances (see codahd.coda.ilr)

Each method is a frozen dataclass carrying only its own parameters, so a
method object can be built once from a config file and reused.

Iterative refinement:
    IQLR, LVHA and mdCLR alternate between (a) computing the reference from
    the currently selected features and (b) re-evaluating the selection
    criterion on log-ratios against that reference. The selection can only
    shrink (new = old & criterion), so the loop reaches a fixed point after at
    most one iteration per feature. A fixed point is declared when the
    selection is unchanged and the reference moved by at most
    ``ConvergenceCriteria.tol``; ``max_iter`` caps the loop.

Examples:
    >>> from codahd.coda.reference import IQLR, parse_method, select_reference
    >>> selection = select_reference(log_data, IQLR(), feature_ids, sample_ids)
    >>> selection.n_reference_features
    >>> parse_method("group-lvha", groups="cell_type")
    GroupLVHA(groups='cell_type', ...)
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field, fields, replace
from typing import Any, ClassVar, Optional

import numpy as np
import pandas as pd
from scipy.stats import median_abs_deviation, rankdata

from codahd.coda.config import ConvergenceCriteria
from codahd.coda.ilr import ILR_BASES, ilr_coordinates
from codahd.core.errors import ConvergenceError, InvalidConfigError, InvalidInputError
from codahd.io.metadata import resolve_group_labels
from codahd.utils.statistics import feature_dispersion

logger = logging.getLogger(__name__)

__all__ = [
    'ReferenceSelection',
    'ReferenceMethod',
    'IterativeMethod',
    'GroupedMethod',
    'CLR',
    'IQLR',
    'LVHA',
    'MdCLR',
    'Manual',
    'GroupIQLR',
    'GroupLVHA',
    'ILR',
    'METHOD_NAMES',
    'parse_method',
    'select_reference',
]


@dataclass(frozen=True)
class ReferenceSelection:
    """
    Per-sample reference chosen by a method.

    Only built from a fixed point; iterative methods that fail to reach one
    raise ConvergenceError instead.

    Attributes:
        log_reference: Log-reference per sample, shape (n_samples,)
        mask: Boolean (n_features, n_samples); True where the feature is part
            of that sample's reference
        method: Name of the method that produced the selection
        n_iterations: Refinement iterations (0 for non-iterative methods;
            maximum over groups for grouped methods)
    """

    log_reference: np.ndarray
    mask: np.ndarray
    method: str
    n_iterations: int = 0

    @property
    def n_reference_features(self) -> np.ndarray:
        """Number of reference features per sample."""
        return self.mask.sum(axis=0)


class ReferenceMethod(ABC):
    """Base class of the reference-method variants."""

    name: ClassVar[str] = ""

    @abstractmethod
    def select(
        self,
        log_data: np.ndarray,
        feature_ids: pd.Index,
        sample_ids: pd.Index,
        sample_metadata: Optional[pd.DataFrame] = None,
    ) -> ReferenceSelection:
        """Choose the reference of every sample of ``log_data`` (features × samples)."""
        pass

    def transform(
        self,
        log_data: np.ndarray,
        selection: ReferenceSelection,
        feature_ids: pd.Index,
    ) -> tuple[np.ndarray, pd.Index]:
        """Log-ratios against the selected reference; rows keep their feature ids."""
        return log_data - selection.log_reference[np.newaxis, :], feature_ids

    def params(self) -> dict[str, Any]:
        """JSON-friendly parameters (inverse of :func:`parse_method`)."""
        out: dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, ConvergenceCriteria):
                out['max_iter'] = value.max_iter
                out['tol'] = value.tol
            elif isinstance(value, Mapping):
                out[f.name] = dict(value)
            elif isinstance(value, tuple):
                out[f.name] = list(value)
            else:
                out[f.name] = value
        return out


def _mean_reference(log_data: np.ndarray, keep: np.ndarray) -> np.ndarray:
    return log_data[keep].mean(axis=0)


def _median_reference(log_data: np.ndarray, keep: np.ndarray) -> np.ndarray:
    return np.median(log_data[keep], axis=0)


def _log_ratio_variance(log_data: np.ndarray, log_reference: np.ndarray) -> np.ndarray:
    return np.var(log_data - log_reference[np.newaxis, :], axis=1, ddof=1)


def _check_quantile(name: str, value: float) -> None:
    if not 0.0 <= value <= 1.0:
        raise InvalidConfigError(f"{name} must be in [0, 1], got {value!r}")


def _fixed_point(
    log_data: np.ndarray,
    reference: Callable[[np.ndarray, np.ndarray], np.ndarray],
    refine: Callable[[np.ndarray, np.ndarray, np.ndarray], np.ndarray],
    criteria: ConvergenceCriteria,
    method: str,
) -> tuple[np.ndarray, np.ndarray, int]:
    """
    Alternate reference computation and feature re-selection until stable.

    Args:
        log_data: Log-space matrix (features × samples)
        reference: (log_data, keep) -> log reference per sample
        refine: (log_data, log_reference, keep) -> boolean feature criterion
        criteria: Iteration cap and reference tolerance
        method: Method name for logging and errors

    Returns:
        (feature mask, log reference, iterations used)

    Raises:
        ConvergenceError: Empty selection, or no fixed point within max_iter
    """
    n_features = log_data.shape[0]
    keep = np.ones(n_features, dtype=bool)
    log_reference = reference(log_data, keep)

    for iteration in range(1, criteria.max_iter + 1):
        candidate = keep & refine(log_data, log_reference, keep)
        n_kept = int(candidate.sum())
        if n_kept == 0:
            raise ConvergenceError(
                f"{method} selected no reference features at iteration {iteration}",
                method=method,
                n_iterations=iteration,
            )

        candidate_reference = reference(log_data, candidate)
        delta = float(np.max(np.abs(candidate_reference - log_reference)))
        logger.debug(
            f"{method} iteration {iteration}: {n_kept}/{n_features} reference features, "
            f"max |delta ref| = {delta:.3g}"
        )

        if np.array_equal(candidate, keep) and delta <= criteria.tol:
            return keep, log_reference, iteration

        keep, log_reference = candidate, candidate_reference

    raise ConvergenceError(
        f"{method} did not reach a fixed point within {criteria.max_iter} iterations",
        method=method,
        n_iterations=criteria.max_iter,
    )


# =============================================================================
# Method variants
# =============================================================================

@dataclass(frozen=True)
class CLR(ReferenceMethod):
    """Plain centered log-ratio: every feature is in the reference."""

    name: ClassVar[str] = 'clr'

    def select(self, log_data, feature_ids, sample_ids, sample_metadata=None):
        keep = np.ones(log_data.shape[0], dtype=bool)
        return ReferenceSelection(
            log_reference=_mean_reference(log_data, keep),
            mask=np.ones(log_data.shape, dtype=bool),
            method=self.name,
        )


class IterativeMethod(ReferenceMethod):
    """Shared select() for methods refined by :func:`_fixed_point`."""

    convergence: ConvergenceCriteria

    def _reference(self, log_data: np.ndarray, keep: np.ndarray) -> np.ndarray:
        return _mean_reference(log_data, keep)

    @abstractmethod
    def _refine(self, log_data: np.ndarray, log_reference: np.ndarray, keep: np.ndarray) -> np.ndarray:
        pass

    def select(self, log_data, feature_ids, sample_ids, sample_metadata=None):
        n_features, n_samples = log_data.shape
        if n_samples < 2:
            raise InvalidInputError(
                f"{self.name} needs at least 2 samples to estimate feature variability, "
                f"got {n_samples}"
            )

        keep, log_reference, n_iterations = _fixed_point(
            log_data, self._reference, self._refine, self.convergence, self.name
        )
        return ReferenceSelection(
            log_reference=log_reference,
            mask=np.repeat(keep[:, np.newaxis], n_samples, axis=1),
            method=self.name,
            n_iterations=n_iterations,
        )


@dataclass(frozen=True)
class IQLR(IterativeMethod):
    """
    Inter-quartile log-ratio reference.

    Keeps features whose log-ratio variance lies between the ``lower_quantile``
    and ``upper_quantile`` of all feature variances. The bounds are taken at
    observed variances (lower / higher order statistics), so at least one
    feature always qualifies.
    """

    name: ClassVar[str] = 'iqlr'

    lower_quantile: float = 0.25
    upper_quantile: float = 0.75
    convergence: ConvergenceCriteria = field(default_factory=ConvergenceCriteria)

    def __post_init__(self):
        _check_quantile('lower_quantile', self.lower_quantile)
        _check_quantile('upper_quantile', self.upper_quantile)
        if self.lower_quantile > self.upper_quantile:
            raise InvalidConfigError(
                f"lower_quantile ({self.lower_quantile}) exceeds upper_quantile ({self.upper_quantile})"
            )

    def _refine(self, log_data, log_reference, keep):
        variances = _log_ratio_variance(log_data, log_reference)
        lower = np.quantile(variances, self.lower_quantile, method='lower')
        upper = np.quantile(variances, self.upper_quantile, method='higher')
        return (variances >= lower) & (variances <= upper)


@dataclass(frozen=True)
class LVHA(IterativeMethod):
    """
    Low-variance, high-abundance reference.

    Features are ranked by log-ratio variance against the current reference
    (ascending) plus mean log abundance (descending); ties go to the earlier
    feature. Each iteration keeps the best ``retain`` share of the current
    selection and recomputes the reference from it, until the selection is
    down to ``fraction`` of all features (at least ``min_features``).
    """

    name: ClassVar[str] = 'lvha'

    fraction: float = 0.1
    retain: float = 0.5
    min_features: int = 2
    convergence: ConvergenceCriteria = field(default_factory=ConvergenceCriteria)

    def __post_init__(self):
        if not 0.0 < self.fraction <= 1.0:
            raise InvalidConfigError(f"fraction must be in (0, 1], got {self.fraction!r}")
        if not 0.0 < self.retain < 1.0:
            raise InvalidConfigError(f"retain must be in (0, 1), got {self.retain!r}")
        if isinstance(self.min_features, bool) or not isinstance(self.min_features, (int, np.integer)):
            raise InvalidConfigError(f"min_features must be an integer, got {self.min_features!r}")
        if self.min_features < 1:
            raise InvalidConfigError(f"min_features must be >= 1, got {self.min_features}")

    def target_size(self, n_features: int) -> int:
        """Final reference size for a matrix with ``n_features`` rows."""
        by_fraction = int(np.ceil(round(self.fraction * n_features, 9)))
        return min(n_features, max(self.min_features, by_fraction))

    def _refine(self, log_data, log_reference, keep):
        n_keep = int(keep.sum())
        size = max(self.target_size(keep.size), int(np.ceil(self.retain * n_keep)))
        if size >= n_keep:
            return keep

        candidates = np.flatnonzero(keep)
        variances = _log_ratio_variance(log_data[candidates], log_reference)
        abundance = log_data[candidates].mean(axis=1)
        score = rankdata(variances) + rankdata(-abundance)
        best = candidates[np.argsort(score, kind='stable')[:size]]

        ranked = np.zeros_like(keep)
        ranked[best] = True
        return ranked


@dataclass(frozen=True)
class MdCLR(IterativeMethod):
    """
    Median-based robust CLR.

    Features whose log-ratio dispersion (normal-scaled MAD across samples)
    exceeds ``median + n_mads * MAD`` of all feature dispersions are dropped
    from the reference. The reference is the median of the retained features.
    """

    name: ClassVar[str] = 'mdclr'

    n_mads: float = 3.0
    convergence: ConvergenceCriteria = field(default_factory=ConvergenceCriteria)

    def __post_init__(self):
        if not np.isfinite(self.n_mads) or self.n_mads < 0:
            raise InvalidConfigError(f"n_mads must be a non-negative number, got {self.n_mads!r}")

    def _reference(self, log_data, keep):
        return _median_reference(log_data, keep)

    def _refine(self, log_data, log_reference, keep):
        dispersion = feature_dispersion(log_data - log_reference[np.newaxis, :])
        cutoff = np.median(dispersion) + self.n_mads * median_abs_deviation(dispersion, scale='normal')
        return dispersion <= cutoff


@dataclass(frozen=True)
class Manual(ReferenceMethod):
    """Caller-chosen reference features (e.g. housekeeping genes), same for every sample."""

    name: ClassVar[str] = 'manual'

    features: tuple = ()

    def __post_init__(self):
        features = (self.features,) if isinstance(self.features, str) else tuple(self.features)
        if not features:
            raise InvalidConfigError("Manual reference requires at least one feature name")
        object.__setattr__(self, 'features', tuple(dict.fromkeys(features)))

    def select(self, log_data, feature_ids, sample_ids, sample_metadata=None):
        feature_ids = pd.Index(feature_ids)
        missing = [f for f in self.features if f not in feature_ids]
        if missing:
            raise InvalidConfigError(
                f"{len(missing)} manual reference feature(s) not found in matrix: {missing[:10]}"
            )
        keep = feature_ids.isin(list(self.features))
        return ReferenceSelection(
            log_reference=_mean_reference(log_data, keep),
            mask=np.repeat(keep[:, np.newaxis], log_data.shape[1], axis=1),
            method=self.name,
        )


class GroupedMethod(ReferenceMethod):
    """Runs an inner method independently on the columns of each sample group."""

    groups: Any

    def __post_init__(self):
        if self.groups is None:
            raise InvalidConfigError(
                f"{self.name} requires groups (metadata column name or sample -> label mapping)"
            )
        if isinstance(self.groups, (pd.Series, Mapping)):
            object.__setattr__(self, 'groups', dict(self.groups.items()))

    @abstractmethod
    def inner(self) -> ReferenceMethod:
        pass

    def select(self, log_data, feature_ids, sample_ids, sample_metadata=None):
        sample_ids = pd.Index(sample_ids)
        labels = resolve_group_labels(self.groups, sample_ids, sample_metadata).to_numpy()
        method = self.inner()

        mask = np.zeros(log_data.shape, dtype=bool)
        log_reference = np.empty(log_data.shape[1])
        n_iterations = 0

        for label in pd.unique(labels):
            cols = np.flatnonzero(labels == label)
            logger.debug(f"{self.name}: group '{label}' ({cols.size} samples)")
            sub = method.select(log_data[:, cols], feature_ids, sample_ids[cols])
            mask[:, cols] = sub.mask
            log_reference[cols] = sub.log_reference
            n_iterations = max(n_iterations, sub.n_iterations)

        return ReferenceSelection(
            log_reference=log_reference,
            mask=mask,
            method=self.name,
            n_iterations=n_iterations,
        )


@dataclass(frozen=True)
class GroupIQLR(GroupedMethod):
    """IQLR within each sample group."""

    name: ClassVar[str] = 'groupiqlr'

    groups: Any = None
    lower_quantile: float = 0.25
    upper_quantile: float = 0.75
    convergence: ConvergenceCriteria = field(default_factory=ConvergenceCriteria)

    def __post_init__(self):
        super().__post_init__()
        self.inner()

    def inner(self) -> IQLR:
        return IQLR(self.lower_quantile, self.upper_quantile, self.convergence)


@dataclass(frozen=True)
class GroupLVHA(GroupedMethod):
    """LVHA within each sample group."""

    name: ClassVar[str] = 'grouplvha'

    groups: Any = None
    fraction: float = 0.1
    retain: float = 0.5
    min_features: int = 2
    convergence: ConvergenceCriteria = field(default_factory=ConvergenceCriteria)

    def __post_init__(self):
        super().__post_init__()
        self.inner()

    def inner(self) -> LVHA:
        return LVHA(self.fraction, self.retain, self.min_features, self.convergence)


@dataclass(frozen=True)
class ILR(ReferenceMethod):
    """
    Isometric log-ratio.

    The selection is the CLR reference (kept for diagnostics); transform()
    returns D - 1 balance coordinates instead of per-feature log-ratios.
    """

    name: ClassVar[str] = 'ilr'

    basis: str = 'pivot'

    def __post_init__(self):
        if self.basis not in ILR_BASES:
            raise InvalidConfigError(
                f"Unknown ILR basis '{self.basis}'. Must be one of {list(ILR_BASES)}"
            )

    def select(self, log_data, feature_ids, sample_ids, sample_metadata=None):
        if log_data.shape[0] < 2:
            raise InvalidInputError(f"ILR needs at least 2 features, got {log_data.shape[0]}")
        return replace(CLR().select(log_data, feature_ids, sample_ids), method=self.name)

    def transform(self, log_data, selection, feature_ids):
        return ilr_coordinates(log_data, feature_ids, self.basis)


# =============================================================================
# Dispatch
# =============================================================================

_METHODS: dict[str, type[ReferenceMethod]] = {
    cls.name: cls for cls in (CLR, IQLR, LVHA, MdCLR, Manual, GroupIQLR, GroupLVHA, ILR)
}

METHOD_NAMES = tuple(_METHODS)


def parse_method(method: str | ReferenceMethod, **params) -> ReferenceMethod:
    """
    Build a method variant from its name and parameters.

    Names are case-insensitive; '-' and '_' are ignored ("group-iqlr",
    "GroupIQLR" and "group_iqlr" are equivalent). ``max_iter`` and ``tol``
    configure the convergence criteria of iterative methods.

    Raises:
        InvalidConfigError: Unknown method name or parameter
    """
    if isinstance(method, ReferenceMethod):
        if params:
            raise InvalidConfigError(
                f"Parameters {sorted(params)} given together with a method instance"
            )
        return method

    key = str(method).strip().lower().replace('-', '').replace('_', '')
    if key not in _METHODS:
        raise InvalidConfigError(
            f"Unknown method: '{method}'. Must be one of {list(METHOD_NAMES)}"
        )
    cls = _METHODS[key]
    accepted = {f.name for f in fields(cls)}

    params = dict(params)
    if 'convergence' in accepted and ('max_iter' in params or 'tol' in params):
        defaults = ConvergenceCriteria()
        params['convergence'] = ConvergenceCriteria(
            max_iter=params.pop('max_iter', defaults.max_iter),
            tol=params.pop('tol', defaults.tol),
        )

    unknown = sorted(set(params) - accepted)
    if unknown:
        raise InvalidConfigError(
            f"Unknown parameter(s) for method '{key}': {unknown}. Accepted: {sorted(accepted)}"
        )
    return cls(**params)


def select_reference(
    log_data: np.ndarray,
    method: str | ReferenceMethod,
    feature_ids: pd.Index,
    sample_ids: pd.Index,
    sample_metadata: Optional[pd.DataFrame] = None,
) -> ReferenceSelection:
    """
    Choose the per-sample reference of a log-space matrix.

    Args:
        log_data: Log-adjusted matrix (features × samples), finite
        method: Method variant or method name
        feature_ids: Row names
        sample_ids: Column names
        sample_metadata: Annotations (needed when groups name a column)

    Raises:
        InvalidInputError: Shape/name mismatch or non-finite values
        InvalidConfigError: Bad method configuration
        ConvergenceError: Iterative refinement failed
    """
    method = parse_method(method)
    feature_ids = pd.Index(feature_ids)
    sample_ids = pd.Index(sample_ids)

    if log_data.ndim != 2 or log_data.shape != (len(feature_ids), len(sample_ids)):
        raise InvalidInputError(
            f"log_data shape {log_data.shape} does not match "
            f"{len(feature_ids)} features × {len(sample_ids)} samples"
        )
    if not np.all(np.isfinite(log_data)):
        raise InvalidInputError("log_data contains NaN or infinite values")

    return method.select(log_data, feature_ids, sample_ids, sample_metadata)
