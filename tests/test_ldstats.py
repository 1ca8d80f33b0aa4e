import numpy as np
import pytest

from ldgeno.ldstats import cor_mat, ld_scores


@pytest.fixture
def geno():
    rng = np.random.default_rng(1)
    return rng.integers(0, 3, size=(40, 6)).astype(float)


def test_cor_mat_matches_corrcoef(geno):
    corr = np.corrcoef(geno, rowvar=False)
    res = cor_mat(geno, 100, np.full(40, -1.0), np.arange(6.0), False)
    assert len(res) == 6
    for j0, (ind, val) in enumerate(res):
        np.testing.assert_array_equal(ind, np.arange(j0))
        np.testing.assert_allclose(val, corr[j0, :j0])


def test_cor_mat_fill_diag(geno):
    res = cor_mat(geno, 100, np.full(40, -1.0), np.arange(6.0), True)
    for j0, (ind, val) in enumerate(res):
        assert len(ind) == j0 + 1
        assert ind[-1] == j0
        assert val[-1] == 1.0


def test_cor_mat_window(geno):
    res = cor_mat(geno, 1.5, np.full(40, -1.0), np.arange(6.0), False)
    for j0, (ind, _) in enumerate(res):
        np.testing.assert_array_equal(ind, np.arange(max(j0 - 1, 0), j0))


def test_cor_mat_threshold_filters(geno):
    corr = np.corrcoef(geno, rowvar=False)
    thr = np.full(40, 0.1)
    res = cor_mat(geno, 100, thr, np.arange(6.0), False)
    for j0, (ind, val) in enumerate(res):
        expected = [j for j in range(j0) if abs(corr[j0, j]) > 0.1]
        np.testing.assert_array_equal(ind, expected)
        assert np.all(np.abs(val) > 0.1)


def test_cor_mat_nan_always_kept(geno):
    x = np.column_stack([geno[:, 0], np.ones(40)])
    res = cor_mat(x, 100, np.full(40, 1.0), np.arange(2.0), False)
    ind, val = res[1]
    np.testing.assert_array_equal(ind, [0])
    assert np.isnan(val[0])


def test_cor_mat_duplicates_clipped(geno):
    x = np.column_stack([geno[:, 0], geno[:, 0]])
    _, val = cor_mat(x, 100, np.full(40, -1.0), np.arange(2.0), False)[1]
    assert -1.0 <= val[0] <= 1.0
    assert val[0] == pytest.approx(1.0)


def test_cor_mat_missing_values(geno):
    x = geno.copy()
    x[[0, 5, 9], 0] = 3
    x[[2, 5, 20], 1] = 3
    both = ~np.isin(np.arange(40), [0, 2, 5, 9, 20])
    expected = np.corrcoef(x[both, 0], x[both, 1])[0, 1]
    _, val = cor_mat(x, 100, np.full(40, -1.0), np.arange(6.0), False)[1]
    assert val[0] == pytest.approx(expected)

    x_nan = np.where(x == 3, np.nan, x)
    _, val_nan = cor_mat(x_nan, 100, np.full(40, -1.0), np.arange(6.0), False)[1]
    assert val_nan[0] == pytest.approx(expected)


def test_cor_mat_bad_pos(geno):
    with pytest.raises(ValueError):
        cor_mat(geno, 100, np.full(40, -1.0), np.arange(5.0), False)


def test_cor_mat_short_thr(geno):
    with pytest.raises(ValueError):
        cor_mat(geno, 100, np.full(10, -1.0), np.arange(6.0), False)


def test_ld_scores_match_corrcoef(geno):
    corr = np.corrcoef(geno, rowvar=False)
    expected = (corr ** 2).sum(axis=0)
    np.testing.assert_allclose(ld_scores(geno, 100, np.arange(6.0)), expected)


def test_ld_scores_zero_window(geno):
    np.testing.assert_array_equal(ld_scores(geno, 0, np.arange(6.0)), np.ones(6))


def test_ld_scores_skip_nan(geno):
    x = np.column_stack([geno[:, 0], np.ones(40)])
    np.testing.assert_array_equal(ld_scores(x, 100, np.arange(2.0)), np.ones(2))


def test_ld_scores_consistent_with_cor_mat(geno):
    x = geno.copy()
    x[[1, 4, 7], 2] = 3
    x[[3, 11], 5] = 3
    pos = np.array([0.0, 1.0, 2.0, 3.0, 5.0, 6.0])
    scores = ld_scores(x, 2.5, pos)
    pairs = cor_mat(x, 2.5, np.full(40, -1.0), pos, False)
    total = sum(float((val ** 2).sum()) for _, val in pairs)
    assert scores.sum() - 6 == pytest.approx(2 * total)


def test_ld_scores_bad_pos(geno):
    with pytest.raises(ValueError):
        ld_scores(geno, 100, np.arange(7.0))