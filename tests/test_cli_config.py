"""
Tests for config-file loading, validation and CLI merging.
"""

import argparse
import json

import pytest

from codahd.cli import transform
from codahd.cli._validators import (
    _non_negative_float,
    _non_negative_int,
    _positive_float,
    _positive_int,
)
from codahd.cli.config import load_config, merge_config_with_args, validate_config
from codahd.cli.transform import build_transform_config
from codahd.coda.config import LogNormConfig, PseudocountMode
from codahd.coda.reference import IQLR, LVHA, GroupIQLR, ILR, Manual
from codahd.core.errors import InvalidConfigError


def parse_transform_args(argv):
    """Parse ``codahd transform`` arguments; returns (args, raw argv)."""
    parser = argparse.ArgumentParser()
    subparsers = parser.add_subparsers(dest="command")
    transform.register_parser(subparsers)
    raw = ["transform", *argv]
    return parser.parse_args(raw), raw


class TestLoadConfig:

    def test_yaml(self, tmp_path):
        path = tmp_path / "run.yaml"
        path.write_text("method: iqlr\nmethod_params:\n  max_iter: 50\npseudocount: s/max\n")
        config = load_config(path)
        assert config == {"method": "iqlr", "method_params": {"max_iter": 50}, "pseudocount": "s/max"}

    def test_json(self, tmp_path):
        path = tmp_path / "run.json"
        path.write_text(json.dumps({"method": "ilr", "lognorm": True}))
        assert load_config(path)["lognorm"] is True

    def test_empty_yaml(self, tmp_path):
        path = tmp_path / "empty.yml"
        path.write_text("")
        assert load_config(path) == {}

    def test_missing(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "none.yaml")

    def test_unsupported_suffix(self, tmp_path):
        path = tmp_path / "run.toml"
        path.write_text("method = 'clr'")
        with pytest.raises(InvalidConfigError, match="Unsupported"):
            load_config(path)

    def test_top_level_list(self, tmp_path):
        path = tmp_path / "run.yaml"
        path.write_text("- clr\n- iqlr\n")
        with pytest.raises(InvalidConfigError, match="mapping"):
            load_config(path)

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "run.yaml"
        path.write_text("method: [clr\n")
        with pytest.raises(InvalidConfigError, match="Invalid YAML"):
            load_config(path)


class TestValidateConfig:

    def test_valid(self):
        validate_config({
            "input": "counts.tsv",
            "method": "group-lvha",
            "method_params": {"groups": "cell_type", "min_features": 2},
            "pseudocount": {"mode": "manual", "value": 0.5},
            "lognorm": False,
        })

    @pytest.mark.parametrize("config, message", [
        ({"methd": "clr"}, "Unknown config key"),
        ({"method": "alr"}, "Unknown method"),
        ({"method": "clr", "method_params": {"n_mads": 2}}, "Unknown parameter"),
        ({"method_params": {"max_iter": 3}}, "without method"),
        ({"pseudocount": "s/min"}, "pseudocount"),
        ({"lognorm": "yes"}, "lognorm"),
    ])
    def test_invalid(self, config, message):
        with pytest.raises(InvalidConfigError, match=message):
            validate_config(config)


class TestMergeConfig:

    def test_config_fills_defaults(self):
        args, raw = parse_transform_args([])
        merged = merge_config_with_args(
            {
                "input": "counts.tsv",
                "output": "out/run",
                "method": "iqlr",
                "method_params": {"max_iter": 5, "lower_quantile": 0.1},
            },
            args,
            raw,
        )
        assert str(merged.input) == "counts.tsv"
        assert merged.method == "iqlr"
        assert merged.max_iter == 5
        assert merged.method_params == {"lower_quantile": 0.1}

        method = build_transform_config(merged).method
        assert method == IQLR(lower_quantile=0.1, convergence=method.convergence)
        assert method.convergence.max_iter == 5

    def test_explicit_cli_wins(self):
        args, raw = parse_transform_args(["--method", "lvha", "--max-iter", "9"])
        merged = merge_config_with_args({"method": "iqlr", "method_params": {"max_iter": 5}}, args, raw)
        config = build_transform_config(merged)
        assert isinstance(config.method, LVHA)
        assert config.method.convergence.max_iter == 9

    def test_short_option_counts_as_explicit(self):
        args, raw = parse_transform_args(["-m", "ilr"])
        merged = merge_config_with_args({"method": "iqlr"}, args, raw)
        assert merged.method == "ilr"

    def test_manual_pseudocount_from_config(self):
        args, raw = parse_transform_args([])
        merged = merge_config_with_args({"pseudocount": 0.5}, args, raw)
        config = build_transform_config(merged)
        assert config.pseudocount.mode is PseudocountMode.MANUAL
        assert config.pseudocount.value == 0.5

    def test_lognorm_from_config(self):
        args, raw = parse_transform_args([])
        merged = merge_config_with_args({"lognorm": {"scale_factor": 1e6}}, args, raw)
        assert build_transform_config(merged).lognorm == LogNormConfig(scale_factor=1e6)

    def test_method_params_with_flags(self):
        args, raw = parse_transform_args([])
        merged = merge_config_with_args(
            {"method": "manual", "method_params": {"features": ["GAPDH", "ACTB"]}}, args, raw
        )
        assert build_transform_config(merged).method == Manual(features=("GAPDH", "ACTB"))

        merged = merge_config_with_args(
            {"method": "group-iqlr", "method_params": {"groups": "cell_type"}}, args, raw
        )
        assert build_transform_config(merged).method == GroupIQLR(groups="cell_type")

        merged = merge_config_with_args({"method": "ilr", "method_params": {"basis": "helmert"}}, args, raw)
        assert build_transform_config(merged).method == ILR(basis="helmert")


class TestBuildTransformConfig:

    def test_defaults(self):
        args, _ = parse_transform_args([])
        config = build_transform_config(args)
        assert config.method.name == "clr"
        assert config.pseudocount.mode is PseudocountMode.SUM_OVER_GEOMEAN
        assert config.lognorm is None

    def test_manual_pseudocount_value(self):
        args, _ = parse_transform_args(["--pseudocount", "manual", "--pseudocount-value", "0.25"])
        assert build_transform_config(args).pseudocount.value == 0.25

    def test_numeric_pseudocount(self):
        args, _ = parse_transform_args(["--pseudocount", "0.5"])
        assert build_transform_config(args).pseudocount.value == 0.5

    def test_already_log_normalized_implies_lognorm(self):
        args, _ = parse_transform_args(["--already-log-normalized"])
        assert build_transform_config(args).lognorm.is_log_normalized

    def test_value_with_non_manual_mode(self):
        args, _ = parse_transform_args(["--pseudocount", "s/max", "--pseudocount-value", "1"])
        with pytest.raises(InvalidConfigError):
            build_transform_config(args)

    def test_invalid_max_iter_rejected_by_parser(self):
        with pytest.raises(SystemExit):
            parse_transform_args(["--max-iter", "0"])


class TestBoundValidators:

    @pytest.mark.parametrize("check, value, expected", [
        (_positive_int, "3", 3),
        (_non_negative_int, "0", 0),
        (_positive_float, "1e4", 10000.0),
        (_non_negative_float, "0", 0.0),
    ])
    def test_accepts(self, check, value, expected):
        assert check(value) == expected

    @pytest.mark.parametrize("check, value, match", [
        (_positive_int, "0", "must be > 0"),
        (_non_negative_int, "-1", "must be >= 0"),
        (_positive_float, "-5", "must be > 0"),
        (_non_negative_float, "nan", "not a finite"),
        (_positive_float, "inf", "not a finite"),
        (_positive_int, "2.5", "not a valid integer"),
    ])
    def test_rejects(self, check, value, match):
        with pytest.raises(argparse.ArgumentTypeError, match=match):
            check(value)

    def test_nan_tol_rejected_by_parser(self):
        with pytest.raises(SystemExit):
            parse_transform_args(["--tol", "nan"])
