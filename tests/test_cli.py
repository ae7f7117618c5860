"""
End-to-end tests for the codahd command line.
"""

import json

import numpy as np
import pandas as pd
import pytest

from codahd import __version__
from codahd.cli import main
from codahd.coda.transformer import TransformConfig, log_ratio_transform
from codahd.io.loaders import load_matrix


@pytest.fixture
def metadata_file(tmp_path, counts):
    path = tmp_path / "cells.csv"
    labels = ["T" if j % 2 == 0 else "B" for j in range(counts.n_samples)]
    pd.DataFrame({"barcode": counts.sample_ids, "cell_type": labels}).to_csv(path, index=False)
    return path


class TestTransformCommand:

    def test_clr_writes_data_and_params(self, tmp_path, counts_file, counts):
        out = tmp_path / "results" / "clr"
        assert main(["transform", "--input", str(counts_file), "--output", str(out)]) == 0

        data_path = tmp_path / "results" / "clr.data.csv"
        params_path = tmp_path / "results" / "clr.params.json"
        assert data_path.exists() and params_path.exists()

        result = load_matrix(data_path)
        np.testing.assert_allclose(result.data, log_ratio_transform(counts).data, atol=1e-10)

        params = json.loads(params_path.read_text())
        assert params["command"] == "transform"
        assert params["codahd_version"] == __version__
        assert params["transform"] == TransformConfig().to_dict()
        assert params["input_shape"] == [60, 24]
        assert params["output_shape"] == [60, 24]
        assert params["reference"]["method"] == "clr"
        assert params["reference"]["n_reference_features"]["min"] == 60

    def test_iqlr_with_options(self, tmp_path, counts_file):
        out = tmp_path / "iqlr"
        code = main([
            "transform", "-i", str(counts_file), "-o", str(out),
            "-m", "IQLR", "--pseudocount", "s/max", "--max-iter", "50",
        ])
        assert code == 0
        params = json.loads((tmp_path / "iqlr.params.json").read_text())
        assert params["transform"]["method"] == "iqlr"
        assert params["transform"]["method_params"]["max_iter"] == 50
        assert params["transform"]["pseudocount"]["mode"] == "s/max"
        assert set(params["reference"]) == {"method", "n_iterations", "n_reference_features"}
        assert params["reference"]["n_iterations"] >= 1

    def test_ilr_output_rows(self, tmp_path, counts_file):
        out = tmp_path / "ilr"
        assert main(["transform", "-i", str(counts_file), "-o", str(out), "-m", "ilr"]) == 0
        result = load_matrix(tmp_path / "ilr.data.csv")
        assert result.shape == (59, 24)
        assert result.feature_ids[0] == "ilr1_GENE000"

    def test_group_iqlr_with_metadata(self, tmp_path, counts_file, metadata_file):
        out = tmp_path / "grouped"
        code = main([
            "transform", "-i", str(counts_file), "-o", str(out),
            "-m", "group-iqlr", "--metadata", str(metadata_file), "--group-col", "cell_type",
        ])
        assert code == 0
        params = json.loads((tmp_path / "grouped.params.json").read_text())
        assert params["transform"]["method_params"]["groups"] == "cell_type"
        assert params["metadata"] == str(metadata_file)

    def test_lognorm(self, tmp_path, counts_file):
        out = tmp_path / "lognorm"
        assert main(["transform", "-i", str(counts_file), "-o", str(out), "--lognorm"]) == 0
        params = json.loads((tmp_path / "lognorm.params.json").read_text())
        assert params["transform"]["lognorm"]["scale_factor"] == 10000.0

    def test_config_file(self, tmp_path, counts_file):
        config_path = tmp_path / "run.yaml"
        config_path.write_text(
            f"input: {counts_file}\n"
            f"output: {tmp_path / 'from_config'}\n"
            "method: lvha\n"
            "method_params:\n"
            "  min_features: 3\n"
            "pseudocount: s/10000\n"
        )
        assert main(["transform", "--config", str(config_path)]) == 0
        params = json.loads((tmp_path / "from_config.params.json").read_text())
        assert params["transform"]["method"] == "lvha"
        assert params["transform"]["method_params"]["min_features"] == 3
        assert params["reference"]["n_reference_features"]["min"] >= 3

    def test_bad_method(self, tmp_path, counts_file):
        assert main(["transform", "-i", str(counts_file), "-o", str(tmp_path / "x"), "-m", "alr"]) == 1

    def test_missing_input_file(self, tmp_path):
        assert main(["transform", "-i", str(tmp_path / "nope.tsv"), "-o", str(tmp_path / "x")]) == 1

    def test_missing_output(self, counts_file):
        assert main(["transform", "-i", str(counts_file)]) == 1

    def test_manual_feature_absent(self, tmp_path, counts_file, capsys):
        code = main([
            "transform", "-i", str(counts_file), "-o", str(tmp_path / "x"),
            "-m", "manual", "--features", "GENE001", "NOT_A_GENE",
        ])
        assert code == 1
        assert "NOT_A_GENE" in capsys.readouterr().out
        assert not (tmp_path / "x.data.csv").exists()

    def test_group_column_absent(self, tmp_path, counts_file):
        code = main([
            "transform", "-i", str(counts_file), "-o", str(tmp_path / "x"),
            "-m", "group-lvha", "--group-col", "cell_type",
        ])
        assert code == 1


class TestCompareCommand:

    def test_writes_report(self, tmp_path, counts_file):
        out = tmp_path / "cmp" / "run"
        assert main(["compare", "--input", str(counts_file), "--output", str(out)]) == 0

        report = json.loads((tmp_path / "cmp" / "run.comparison.json").read_text())
        assert report["shape"] == [60, 24]
        assert report["rmse"] < 0.5
        assert report["exact_match_fraction"] > 0.95
        assert report["bitwise_identical"] is False
        assert len(report["per_sample_rmse"]) == 24

    def test_plot(self, tmp_path, counts_file):
        out = tmp_path / "cmp"
        assert main(["compare", "-i", str(counts_file), "-o", str(out), "--plot"]) == 0
        assert (tmp_path / "cmp.comparison.png").stat().st_size > 0

    def test_missing_input(self, tmp_path):
        assert main(["compare", "-i", str(tmp_path / "nope.tsv"), "-o", str(tmp_path / "x")]) == 1


def test_no_command_prints_help(capsys):
    assert main([]) == 0
    assert "transform" in capsys.readouterr().out
