# tests/test_pipeline.py
import importlib.util
from pathlib import Path

import numpy as np
import pandas as pd
import pytest

from pathway_calling import (
    InvalidInput,
    InvalidSignature,
    InvalidThreshold,
    PathwayClassificationPipeline,
    ScoreProvider,
    get_default_pathway_calling_config,
)

SCRIPT = Path(__file__).resolve().parents[1] / "scripts" / "pathway_calling_pipeline.py"

SCORES = {"A": (0.9, -0.8), "B": (0.1, 0.05), "C": (-0.9, 0.85), "D": (0.3, 0.2)}


class FixedScores(ScoreProvider):
    """Returns preset scores and records how it was called."""

    def __init__(self, scores=SCORES):
        super().__init__({})
        self.scores = scores
        self.calls = []

    def score(self, expr, up_genes, down_genes):
        self.calls.append((list(expr.columns), up_genes, down_genes))
        up = pd.Series({s: self.scores[s][0] for s in expr.columns})
        down = pd.Series({s: self.scores[s][1] for s in expr.columns})
        return up, down


@pytest.fixture
def expression():
    return pd.DataFrame(
        np.arange(16, dtype=float).reshape(4, 4) + 0.5,
        index=["G1", "G2", "G3", "G4"],
        columns=["A", "B", "C", "D"],
    )


@pytest.fixture
def absolute_config():
    config = get_default_pathway_calling_config()
    config["classification"]["mode"] = "absolute"
    config["output"]["save_plots"] = False
    return config


def test_absolute_classification_end_to_end(expression, example_signature):
    provider = FixedScores()
    pipeline = PathwayClassificationPipeline(score_provider=provider)
    result = pipeline.classify_absolute(
        expression, example_signature, -0.25, 0.25, -0.25, 0.35
    )

    assert result.labels.to_dict() == {
        "A": "Active",
        "B": "Uncertain",
        "C": "Inactive",
        "D": "Uncertain",
    }
    assert provider.calls == [(["A", "B", "C", "D"], ["G1", "G2"], ["G3", "G4"])]
    assert result.metadata["mode"] == "absolute"


def test_invalid_thresholds_fail_before_scoring(expression, example_signature):
    provider = FixedScores()
    pipeline = PathwayClassificationPipeline(score_provider=provider)
    with pytest.raises(InvalidThreshold):
        pipeline.classify_absolute(expression, example_signature, 0.5, 0.1, -0.25, 0.35)
    assert provider.calls == []


def test_percentile_classification(expression, example_signature):
    pipeline = PathwayClassificationPipeline(score_provider=FixedScores())
    result = pipeline.classify_percentile(expression, example_signature, 25)
    # Up quartiles -0.15 / 0.45, down quartiles -0.1625 / 0.3625
    assert result.labels.to_dict() == {
        "A": "Active",
        "B": "Uncertain",
        "C": "Inactive",
        "D": "Uncertain",
    }
    assert result.metadata["percent_thresh"] == 25
    assert result.thresholds.up_low == pytest.approx(-0.15)


def test_non_numeric_expression_rejected_before_scoring(example_signature):
    provider = FixedScores()
    expr = pd.DataFrame({"A": ["x", "y"], "B": [1.0, 2.0]}, index=["G1", "G3"])
    pipeline = PathwayClassificationPipeline(score_provider=provider)
    with pytest.raises(InvalidInput):
        pipeline.classify_percentile(expr, example_signature)
    assert provider.calls == []


def test_bad_signature_rejected(expression):
    sig = pd.DataFrame({"gene": ["G1", "G2"], "expression": [1, 2]})
    pipeline = PathwayClassificationPipeline(score_provider=FixedScores())
    with pytest.raises(InvalidSignature):
        pipeline.classify_percentile(expression, sig)


def test_invalid_config_rejected():
    config = get_default_pathway_calling_config()
    config["classification"]["mode"] = "majority"
    with pytest.raises(ValueError, match="Configuration validation failed"):
        PathwayClassificationPipeline(config=config)


def test_evaluate(expression, example_signature):
    pipeline = PathwayClassificationPipeline(score_provider=FixedScores())
    result = pipeline.classify_absolute(
        expression, example_signature, -0.25, 0.25, -0.25, 0.35
    )
    truth = pd.DataFrame(
        {"sample": ["A", "B", "C", "D"], "ER": ["Active", "Inactive", "Inactive", "Active"]}
    )
    evaluation = pipeline.evaluate(result, truth, "ER", show_stats=False)
    cm = evaluation.confusion_matrix
    assert cm.loc["Active"].tolist() == [1, 0, 1]
    assert cm.loc["Inactive"].tolist() == [0, 1, 1]
    assert evaluation.statistics.sensitivity == pytest.approx(1.0)


def _write_inputs(tmp_path, expression, signature):
    expression.rename_axis("gene").to_csv(tmp_path / "expr.csv")
    signature.to_csv(tmp_path / "sig.tsv", sep="\t", index=False)
    pd.DataFrame(
        {"sample": ["A", "B", "C", "D"], "ER": ["Active", "Inactive", "Active", "Active"]}
    ).to_csv(tmp_path / "truth.csv", index=False)


def test_run_full_pipeline(tmp_path, expression, example_signature, absolute_config):
    _write_inputs(tmp_path, expression, example_signature)
    pipeline = PathwayClassificationPipeline(
        config=absolute_config, score_provider=FixedScores()
    )
    out = tmp_path / "out"
    results = pipeline.run_full_pipeline(
        tmp_path / "expr.csv",
        tmp_path / "sig.tsv",
        out,
        ground_truth_path=tmp_path / "truth.csv",
        pathway="ER",
    )

    predictions = pd.read_csv(out / "predictions.csv")
    assert predictions.set_index("sample")["class"].to_dict() == {
        "A": "Active",
        "B": "Uncertain",
        "C": "Inactive",
        "D": "Uncertain",
    }
    assert (out / "scores.csv").exists()
    assert (out / "config.yaml").exists()
    assert (out / "evaluation_report.md").exists()
    cm = pd.read_csv(out / "confusion_matrix.csv", index_col=0)
    assert cm.loc["Active"].tolist() == [1, 1, 1]
    assert results["evaluation"].counts["n_matched"] == 4


def test_run_full_pipeline_requires_pathway(tmp_path, expression, example_signature, absolute_config):
    _write_inputs(tmp_path, expression, example_signature)
    pipeline = PathwayClassificationPipeline(
        config=absolute_config, score_provider=FixedScores()
    )
    with pytest.raises(ValueError, match="pathway"):
        pipeline.run_full_pipeline(
            tmp_path / "expr.csv",
            tmp_path / "sig.tsv",
            tmp_path / "out",
            ground_truth_path=tmp_path / "truth.csv",
        )


def test_gsva_pipeline_on_counts(tmp_path):
    rng = np.random.default_rng(3)
    group = np.array([1] * 5 + [0] * 5)
    values = np.vstack(
        [
            rng.poisson(20, size=(30, 10)),
            rng.poisson(np.where(group == 1, 80, 4), size=(4, 10)),
            rng.poisson(np.where(group == 1, 4, 80), size=(4, 10)),
        ]
    )
    genes = [f"B{i}" for i in range(30)] + [f"U{i}" for i in range(4)] + [f"D{i}" for i in range(4)]
    expr = pd.DataFrame(values, index=genes, columns=[f"S{j}" for j in range(10)])
    sig = pd.DataFrame(
        {"gene": [f"U{i}" for i in range(4)] + [f"D{i}" for i in range(4)], "expression": [1] * 4 + [-1] * 4}
    )

    pipeline = PathwayClassificationPipeline()
    scores = pipeline.score(expr, sig)
    assert list(scores.columns) == ["Up", "Down"]
    assert list(scores.index) == list(expr.columns)

    result = pipeline.classify_absolute(expr, sig, 0.0, 0.0, 0.0, 0.0)
    assert result.metadata["score_provider"]["method"] == "GSVAScorer"
    assert (result.labels.iloc[:5] == "Active").all()
    assert (result.labels.iloc[5:] == "Inactive").all()


def _load_script():
    spec = importlib.util.spec_from_file_location("pathway_calling_pipeline", SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def test_cli_overrides():
    script = _load_script()
    args = script.build_parser().parse_args(
        ["-e", "x.csv", "-s", "y.csv", "-o", "out", "--mode", "absolute", "--up-low", "-0.3"]
    )
    config = script.apply_cli_overrides(get_default_pathway_calling_config(), args)
    assert config["classification"]["mode"] == "absolute"
    assert config["classification"]["absolute"]["up_low"] == -0.3
    assert config["classification"]["absolute"]["up_high"] == 0.25


def test_cli_reports_failure(tmp_path, expression):
    script = _load_script()
    expression.rename_axis("gene").to_csv(tmp_path / "expr.csv")
    pd.DataFrame({"gene": ["G1"], "expression": [1]}).to_csv(tmp_path / "sig.csv", index=False)
    code = script.main(
        ["-e", str(tmp_path / "expr.csv"), "-s", str(tmp_path / "sig.csv"), "-o", str(tmp_path / "out")]
    )
    assert code == 1
