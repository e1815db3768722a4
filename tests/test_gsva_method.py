# tests/test_gsva_method.py
import numpy as np
import pandas as pd
import pytest

from pathway_calling import GSVAScorer, InvalidInput, InvalidSignature

UP = ["U1", "U2", "U3"]
DOWN = ["D1", "D2", "D3"]
ACTIVE_SAMPLES = ["S0", "S1", "S2", "S3"]
INACTIVE_SAMPLES = ["S4", "S5", "S6", "S7"]


def _signal_matrix(counts=False, seed=7):
    """Background genes plus signature genes separating two sample groups."""
    rng = np.random.default_rng(seed)
    samples = ACTIVE_SAMPLES + INACTIVE_SAMPLES
    group = np.array([1] * 4 + [0] * 4)
    if counts:
        background = rng.poisson(20, size=(40, 8))
        up = rng.poisson(np.where(group == 1, 60, 5), size=(3, 8))
        down = rng.poisson(np.where(group == 1, 5, 60), size=(3, 8))
    else:
        background = rng.normal(size=(40, 8))
        up = np.where(group == 1, 5.0, -5.0) + rng.normal(size=(3, 8))
        down = np.where(group == 1, -5.0, 5.0) + rng.normal(size=(3, 8))
    values = np.vstack([background, up, down]).astype(float)
    genes = [f"B{i}" for i in range(40)] + UP + DOWN
    return pd.DataFrame(values, index=genes, columns=samples)


@pytest.mark.parametrize("counts", [False, True])
def test_scores_separate_sample_groups(counts):
    expr = _signal_matrix(counts=counts)
    up, down = GSVAScorer().score(expr, UP, DOWN)

    assert up[ACTIVE_SAMPLES].min() > up[INACTIVE_SAMPLES].max()
    assert down[ACTIVE_SAMPLES].max() < down[INACTIVE_SAMPLES].min()
    assert (up[ACTIVE_SAMPLES] > 0).all()
    assert (down[ACTIVE_SAMPLES] < 0).all()


def test_scores_follow_matrix_sample_order():
    expr = _signal_matrix()
    expr = expr[list(reversed(expr.columns))]
    up, down = GSVAScorer().score(expr, UP, DOWN)
    assert list(up.index) == list(expr.columns)
    assert list(down.index) == list(expr.columns)
    assert up.name == "Up" and down.name == "Down"


def test_scores_are_bounded():
    up, down = GSVAScorer().score(_signal_matrix(), UP, DOWN)
    assert np.all(np.abs(up.to_numpy()) <= 1 + 1e-9)
    assert np.all(np.abs(down.to_numpy()) <= 1 + 1e-9)


def test_scoring_is_deterministic():
    expr = _signal_matrix()
    first = GSVAScorer().score(expr, UP, DOWN)
    second = GSVAScorer().score(expr, UP, DOWN)
    pd.testing.assert_series_equal(first[0], second[0])
    pd.testing.assert_series_equal(first[1], second[1])


def test_kernel_selection():
    scorer = GSVAScorer()
    assert scorer.resolve_kcdf(_signal_matrix(counts=True)) == "poisson"
    assert scorer.resolve_kcdf(_signal_matrix(counts=False)) == "gaussian"
    assert GSVAScorer({"kcdf": "gaussian"}).resolve_kcdf(_signal_matrix(counts=True)) == "gaussian"


def test_invalid_kcdf_rejected():
    with pytest.raises(ValueError, match="kcdf"):
        GSVAScorer({"kcdf": "laplace"})


def test_gene_set_absent_from_matrix():
    with pytest.raises(InvalidSignature, match="up-regulated"):
        GSVAScorer().score(_signal_matrix(), ["NOPE1", "NOPE2"], DOWN)


def test_constant_genes_are_dropped_before_set_matching():
    expr = _signal_matrix()
    expr.loc["U1"] = 3.0
    expr.loc["U2"] = 3.0
    expr.loc["U3"] = 3.0
    with pytest.raises(InvalidSignature, match="up-regulated"):
        GSVAScorer().score(expr, UP, DOWN)


def test_min_size_enforced():
    with pytest.raises(InvalidSignature, match="minimum 5"):
        GSVAScorer({"min_size": 5}).score(_signal_matrix(), UP, DOWN)


def test_single_sample_rejected():
    expr = _signal_matrix()[["S0"]]
    with pytest.raises(InvalidInput, match="two samples"):
        GSVAScorer().score(expr, UP, DOWN)


def test_forced_poisson_rejects_continuous_data():
    scorer = GSVAScorer({"kcdf": "poisson"})
    assert scorer.resolve_kcdf(_signal_matrix(counts=True)) == "poisson"
    with pytest.raises(InvalidInput, match="Poisson"):
        scorer.score(_signal_matrix(counts=False), UP, DOWN)
