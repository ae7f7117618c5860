"""
Tests for the library-size log-normalization path.
"""

import numpy as np
import pytest

from codahd.coda.config import LogNormConfig
from codahd.coda.lognorm import LogNormAdjuster, lognorm_adjust
from codahd.core.errors import InvalidConfigError, InvalidInputError


class TestLogNormAdjust:

    def test_raw_counts_formula(self, counts):
        logged = lognorm_adjust(counts.data, LogNormConfig())
        expected = np.log1p(counts.data / counts.data.sum(axis=0) * 10000)
        np.testing.assert_allclose(logged, expected, rtol=1e-5, atol=1e-5)
        assert logged.dtype == np.float64

    def test_float64_storage_matches_formula_exactly(self, counts):
        logged = lognorm_adjust(counts.data, LogNormConfig(dtype="float64"))
        expected = np.log1p(counts.data / counts.data.sum(axis=0) * 10000)
        np.testing.assert_allclose(logged, expected, rtol=1e-12)

    def test_scale_factor(self, small_counts):
        logged = lognorm_adjust(small_counts.data, LogNormConfig(scale_factor=6.0, dtype="float64"))
        np.testing.assert_allclose(logged[0, 0], np.log1p(4.0))

    def test_pre_normalized_used_directly(self):
        data = np.array([[0.5, 0.0], [1.5, 0.0]])
        logged = lognorm_adjust(data, LogNormConfig(is_log_normalized=True))
        np.testing.assert_array_equal(logged, data)
        assert logged is not data

    def test_all_zero_column_rejected_when_normalizing(self):
        with pytest.raises(InvalidInputError, match="all-zero"):
            lognorm_adjust(np.array([[1.0, 0.0], [2.0, 0.0]]), LogNormConfig())

    def test_negative_rejected(self):
        with pytest.raises(InvalidInputError, match="negative"):
            lognorm_adjust(np.array([[1.0, -0.5]]), LogNormConfig(is_log_normalized=True))

    def test_adjuster_wraps_function(self, small_counts):
        adjusted = LogNormAdjuster().apply(small_counts)
        np.testing.assert_array_equal(adjusted.data, lognorm_adjust(small_counts.data, LogNormConfig()))
        assert adjusted.sample_ids.equals(small_counts.sample_ids)


class TestLogNormConfig:

    @pytest.mark.parametrize("scale", [0.0, -1.0])
    def test_scale_factor_must_be_positive(self, scale):
        with pytest.raises(InvalidConfigError, match="scale_factor"):
            LogNormConfig(scale_factor=scale)

    def test_dtype_must_be_float(self):
        with pytest.raises(InvalidConfigError, match="floating"):
            LogNormConfig(dtype="int32")

    def test_parse(self):
        assert LogNormConfig.parse(None) is None
        assert LogNormConfig.parse(False) is None
        assert LogNormConfig.parse(True) == LogNormConfig()
        assert LogNormConfig.parse({"scale_factor": 1e6}).scale_factor == 1e6

    def test_parse_rejects(self):
        with pytest.raises(InvalidConfigError):
            LogNormConfig.parse("yes")
