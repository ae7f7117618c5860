"""
Tests for per-cell pseudo-count computation and configuration parsing.
"""

import numpy as np
import pytest

from codahd.coda.config import PseudocountConfig, PseudocountMode
from codahd.coda.pseudocount import (
    PseudocountAdjuster,
    add_pseudocount,
    compute_pseudocounts,
    log_adjusted,
)
from codahd.core.errors import InvalidConfigError, InvalidInputError

DATA = np.array([[4.0, 0.0], [2.0, 2.0], [0.0, 6.0]])


class TestComputePseudocounts:
    """Constants per mode on the 3 × 2 example."""

    def test_sum_over_fixed(self):
        constants = compute_pseudocounts(DATA, PseudocountConfig(PseudocountMode.SUM_OVER_FIXED))
        np.testing.assert_allclose(constants, [6 / 10000, 8 / 10000])

    def test_sum_over_max(self):
        constants = compute_pseudocounts(DATA, PseudocountConfig(PseudocountMode.SUM_OVER_MAX))
        np.testing.assert_allclose(constants, [6 / 4, 8 / 6])

    def test_sum_over_geomean_is_default(self):
        constants = compute_pseudocounts(DATA, PseudocountConfig())
        np.testing.assert_allclose(constants, [6 / np.sqrt(8), 8 / np.sqrt(12)])

    def test_manual(self):
        constants = compute_pseudocounts(DATA, PseudocountConfig(PseudocountMode.MANUAL, value=0.5))
        np.testing.assert_array_equal(constants, [0.5, 0.5])

    def test_custom_fixed_divisor(self):
        config = PseudocountConfig(PseudocountMode.SUM_OVER_FIXED, fixed_divisor=100.0)
        np.testing.assert_allclose(compute_pseudocounts(DATA, config), [0.06, 0.08])

    @pytest.mark.parametrize("config", [
        PseudocountConfig(),
        PseudocountConfig(PseudocountMode.SUM_OVER_MAX),
        PseudocountConfig(PseudocountMode.SUM_OVER_FIXED),
        PseudocountConfig(PseudocountMode.MANUAL, value=1.0),
    ])
    def test_all_zero_column_rejected_in_every_mode(self, config):
        data = np.array([[1.0, 0.0], [2.0, 0.0]])
        with pytest.raises(InvalidInputError, match="all-zero"):
            compute_pseudocounts(data, config)

    def test_negative_rejected(self):
        with pytest.raises(InvalidInputError, match="negative"):
            compute_pseudocounts(np.array([[1.0, -1.0], [2.0, 3.0]]), PseudocountConfig())

    def test_nan_rejected(self):
        with pytest.raises(InvalidInputError, match="NaN"):
            compute_pseudocounts(np.array([[1.0, np.nan], [2.0, 3.0]]), PseudocountConfig())

    def test_log_adjusted_is_finite(self):
        logged = log_adjusted(DATA, PseudocountConfig(PseudocountMode.SUM_OVER_FIXED))
        assert np.all(np.isfinite(logged))
        np.testing.assert_allclose(logged[0, 0], np.log(4 + 6 / 10000))


class TestPseudocountConfig:
    """Validation and parsing."""

    def test_manual_requires_value(self):
        with pytest.raises(InvalidConfigError, match="requires a value"):
            PseudocountConfig(PseudocountMode.MANUAL)

    @pytest.mark.parametrize("value", [0.0, -1.0, float("inf")])
    def test_manual_value_must_be_positive(self, value):
        with pytest.raises(InvalidConfigError, match="positive"):
            PseudocountConfig(PseudocountMode.MANUAL, value=value)

    def test_value_rejected_for_other_modes(self):
        with pytest.raises(InvalidConfigError, match="only used with mode 'manual'"):
            PseudocountConfig(PseudocountMode.SUM_OVER_MAX, value=1.0)

    def test_string_mode_is_coerced(self):
        assert PseudocountConfig(mode="s/max").mode is PseudocountMode.SUM_OVER_MAX

    @pytest.mark.parametrize("spec, mode, value", [
        (None, PseudocountMode.SUM_OVER_GEOMEAN, None),
        ("s/gm", PseudocountMode.SUM_OVER_GEOMEAN, None),
        ("S/MAX", PseudocountMode.SUM_OVER_MAX, None),
        ("s/10000", PseudocountMode.SUM_OVER_FIXED, None),
        (0.5, PseudocountMode.MANUAL, 0.5),
        ("0.25", PseudocountMode.MANUAL, 0.25),
        ({"mode": "manual", "value": 2}, PseudocountMode.MANUAL, 2),
    ])
    def test_parse(self, spec, mode, value):
        config = PseudocountConfig.parse(spec)
        assert config.mode is mode
        assert config.value == value

    @pytest.mark.parametrize("spec", ["foo", True, [1, 2]])
    def test_parse_rejects(self, spec):
        with pytest.raises(InvalidConfigError):
            PseudocountConfig.parse(spec)

    def test_to_dict(self):
        assert PseudocountConfig().to_dict() == {
            "mode": "s/gm", "value": None, "fixed_divisor": 10000.0,
        }


class TestPseudocountAdjuster:
    """Transform wrapper."""

    def test_apply_returns_positive_copy(self, small_counts):
        before = small_counts.data.copy()
        adjusted = PseudocountAdjuster("s/10000").apply(small_counts)
        assert np.all(adjusted.data > 0)
        np.testing.assert_array_equal(small_counts.data, before)
        assert adjusted.feature_ids.equals(small_counts.feature_ids)

    def test_matches_add_pseudocount(self, counts):
        config = PseudocountConfig(PseudocountMode.SUM_OVER_MAX)
        np.testing.assert_array_equal(
            PseudocountAdjuster(config).apply(counts).data,
            add_pseudocount(counts, config).data,
        )

    def test_params_recorded(self):
        adjuster = PseudocountAdjuster(0.5)
        assert adjuster.params["mode"] == "manual"
        assert adjuster.params["value"] == 0.5
        assert "PseudocountAdjuster(" in repr(adjuster)

    def test_validate_reports_problems(self, small_counts):
        bad = small_counts.with_data(np.array([[1.0, 0.0], [-1.0, 0.0], [0.0, 0.0]]))
        assert PseudocountAdjuster().validate(small_counts) == []
        errors = PseudocountAdjuster().validate(bad)
        assert any("negative" in e for e in errors)
        assert any("all-zero" in e for e in errors)
