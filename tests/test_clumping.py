import numpy as np
import pytest
from scipy import sparse

from ldgeno.bed import Bed
from ldgeno.clumping import (
    bed_clumping_chr,
    clumping_chr,
    clumping_chr_cached,
    which_to_check,
)
from ldgeno.genotypes import colstats
from ldgeno.plink import write_bed_file


@pytest.fixture
def geno():
    c0 = [0, 1, 2, 0, 1, 2]
    c2 = [0, 0, 0, 2, 2, 2]
    return np.column_stack([c0, c0, c2]).astype(float)


def _clump(x, ord_ind, rank_ind, thr=0.5, size=10):
    stats = colstats(x)
    return clumping_chr(x, ord_ind, rank_ind, [1.0, 2.0, 3.0],
                        stats.sum_x, stats.deno_x, size, thr)


def test_which_to_check_alternates():
    keep = np.full(5, -1)
    result = which_to_check(2, keep, [0, 1, 4, 2, 3], np.arange(5.0), 10)
    assert result == [3, 1, 4, 0]


def test_which_to_check_window_and_rank():
    pos = np.array([0.0, 1.0, 2.0, 3.0, 4.0, 5.0, 6.0])
    rank = np.array([5, 0, 6, 1, 2, 3, 4])
    keep = np.full(7, -1)
    j0, size = 3, 2
    result = which_to_check(j0, keep, rank, pos, size)
    expected = {j for j in range(7)
                if j != j0 and abs(pos[j] - pos[j0]) <= size and rank[j] < rank[j0]}
    assert set(result) == expected
    assert len(result) == len(expected)


def test_which_to_check_skips_pruned():
    keep = np.full(5, -1)
    rank = [0, 1, 4, 2, 3]
    full = which_to_check(2, keep, rank, np.arange(5.0), 10)
    keep[3] = 0
    reduced = which_to_check(2, keep, rank, np.arange(5.0), 10)
    assert 3 not in reduced
    assert reduced == [j for j in full if j != 3]


def test_clumping_prunes_duplicate(geno):
    keep = _clump(geno, [0, 1, 2], [0, 1, 2])
    assert keep.tolist() == [True, False, True]


def test_clumping_order_decides_which_duplicate(geno):
    ord_ind = [1, 0, 2]
    keep = _clump(geno, ord_ind, [1, 0, 2])
    assert keep[ord_ind[0]]
    assert not keep[ord_ind[1]]
    assert keep[2]


def test_clumping_high_threshold_keeps_all(geno):
    keep = _clump(geno, [0, 1, 2], [0, 1, 2], thr=1.5)
    assert keep.all()


def test_clumping_zero_window_keeps_all(geno):
    keep = _clump(geno, [0, 1, 2], [0, 1, 2], size=0)
    assert keep.all()


def test_inconsistent_rank_raises(geno):
    with pytest.raises(ValueError):
        _clump(geno, [0, 1, 2], [2, 1, 0])


def test_ord_not_permutation_raises(geno):
    with pytest.raises(ValueError):
        _clump(geno, [0, 0, 2], [0, 1, 2])


def test_bed_clumping_matches_matrix(tmp_path, geno):
    path = tmp_path / "clump.bed"
    code = np.full(256, np.nan)
    code[:3] = [0, 1, 2]
    write_bed_file(path, geno.astype(np.uint8), code)
    stats = colstats(geno)
    center = stats.sum_x / geno.shape[0]
    scale = np.sqrt(stats.deno_x)
    expected = _clump(geno, [0, 1, 2], [0, 1, 2])
    with Bed(path, *geno.shape) as bed:
        keep = bed_clumping_chr(bed, None, None, center, scale, [0, 1, 2],
                                [0, 1, 2], [1.0, 2.0, 3.0], 10, 0.5)
    np.testing.assert_array_equal(keep, expected)


def test_cached_matches_and_caches(geno):
    stats = colstats(geno)
    sqcor = sparse.csc_matrix((3, 3))
    keep, new = clumping_chr_cached(geno, sqcor, np.arange(3), [0, 1, 2],
                                    [0, 1, 2], [1.0, 2.0, 3.0], stats.sum_x,
                                    stats.deno_x, 10, 0.5)
    np.testing.assert_array_equal(keep, _clump(geno, [0, 1, 2], [0, 1, 2]))
    assert new[0, 1] == pytest.approx(1.0)
    assert sqcor.nnz == 0


def test_cached_value_is_used(geno):
    stats = colstats(geno)
    sqcor = sparse.lil_matrix((3, 3))
    sqcor[0, 2] = 0.9
    keep, new = clumping_chr_cached(geno, sqcor, np.arange(3), [0, 1, 2],
                                    [0, 1, 2], [1.0, 2.0, 3.0], stats.sum_x,
                                    stats.deno_x, 10, 0.5)
    assert keep.tolist() == [True, False, False]
    assert new[0, 2] == pytest.approx(0.9)


def test_cached_sp_ind_size_mismatch(geno):
    stats = colstats(geno)
    with pytest.raises(ValueError):
        clumping_chr_cached(geno, sparse.csc_matrix((3, 3)), np.arange(2),
                            [0, 1, 2], [0, 1, 2], [1.0, 2.0, 3.0],
                            stats.sum_x, stats.deno_x, 10, 0.5)