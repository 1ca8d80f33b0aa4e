"""Greedy LD clumping of variants within a genomic window."""

from __future__ import annotations

import numpy as np
from scipy import sparse

from .bed import ScaledBedAccessor


def which_to_check(j0, keep, rank_ind, pos, size):
    """Indices of variants near ``j0`` that rank before it and are not pruned.

    Variants are visited outwards, alternating right then left, while their
    position stays within ``size`` of that of ``j0``. ``keep`` holds -1 for
    undecided, 0 for pruned and 1 for kept variants.
    """
    m = len(pos)
    pos_min = pos[j0] - size
    pos_max = pos[j0] + size
    to_check = []
    not_min = not_max = True
    k = 1
    while not_max or not_min:
        if not_max:
            j = j0 + k
            not_max = j < m and pos[j] <= pos_max
            if not_max and rank_ind[j0] > rank_ind[j] and keep[j] != 0:
                to_check.append(j)
        if not_min:
            j = j0 - k
            not_min = j >= 0 and pos[j] >= pos_min
            if not_min and rank_ind[j0] > rank_ind[j] and keep[j] != 0:
                to_check.append(j)
        k += 1
    return to_check


def _clump(m, ord_ind, rank_ind, pos, size, thr, r2_between):
    ord_ind = np.asarray(ord_ind, dtype=np.intp)
    rank_ind = np.asarray(rank_ind)
    pos = np.asarray(pos, dtype=float)
    if ord_ind.shape != (m,) or rank_ind.shape != (m,) or pos.shape != (m,):
        raise ValueError("Incompatibility between dimensions.")
    if not np.array_equal(np.sort(ord_ind), np.arange(m)):
        raise ValueError("'ord_ind' must be a permutation of the variant indices.")

    keep = np.full(m, -1, dtype=np.int8)
    for j0 in ord_ind:
        keep_j0 = True
        for j in which_to_check(j0, keep, rank_ind, pos, size):
            if keep[j] == -1:
                raise ValueError("'ord_ind' and 'rank_ind' are inconsistent.")
            if r2_between(j, j0) > thr:
                keep_j0 = False
                break
        keep[j0] = keep_j0
    return keep.astype(bool)


def clumping_chr(x, ord_ind, rank_ind, pos, sum_x, deno_x, size, thr):
    """Clump the columns of a decoded genotype matrix.

    Columns are visited in the order ``ord_ind`` (0-based); a column is pruned
    when its squared correlation with an already kept column of better rank
    within ``size`` of its position exceeds ``thr``. Returns a boolean mask.
    """
    x = np.asarray(x, dtype=float)
    if x.ndim != 2:
        raise ValueError("Matrix must be two-dimensional.")
    n, m = x.shape
    sum_x = np.asarray(sum_x, dtype=float)
    deno_x = np.asarray(deno_x, dtype=float)
    if sum_x.shape != (m,) or deno_x.shape != (m,):
        raise ValueError("Incompatibility between dimensions.")

    def r2_between(j, j0):
        with np.errstate(divide="ignore", invalid="ignore"):
            num = x[:, j] @ x[:, j0] - sum_x[j] * sum_x[j0] / n
            return num * num / (deno_x[j] * deno_x[j0])

    return _clump(m, ord_ind, rank_ind, pos, size, thr, r2_between)


def bed_clumping_chr(bed, ind_row, ind_col, center, scale, ord_ind, rank_ind,
                     pos, size, thr):
    """Clump variants of a .bed file using centred and scaled genotypes."""
    x = ScaledBedAccessor(bed, ind_row, ind_col, center, scale).to_array()

    def r2_between(j, j0):
        r = x[:, j] @ x[:, j0]
        return r * r

    return _clump(x.shape[1], ord_ind, rank_ind, pos, size, thr, r2_between)


def clumping_chr_cached(x, sqcor, sp_ind, ord_ind, rank_ind, pos, sum_x, deno_x,
                        size, thr):
    """Clump like :func:`clumping_chr`, reusing squared correlations from ``sqcor``.

    ``sp_ind`` gives, for each column, its index in the sparse matrix ``sqcor``.
    Zero entries are computed and stored in a copy. Returns ``(keep, new_sqcor)``.
    """
    x = np.asarray(x, dtype=float)
    if x.ndim != 2:
        raise ValueError("Matrix must be two-dimensional.")
    n, m = x.shape
    sp_ind = np.asarray(sp_ind, dtype=np.intp)
    sum_x = np.asarray(sum_x, dtype=float)
    deno_x = np.asarray(deno_x, dtype=float)
    if sp_ind.shape != (m,) or sum_x.shape != (m,) or deno_x.shape != (m,):
        raise ValueError("Incompatibility between dimensions.")

    lookup = sparse.csc_matrix(sqcor, dtype=float)
    cache = sparse.dok_matrix(lookup, copy=True)

    def r2_between(j, j0):
        j_sp, j0_sp = sp_ind[j], sp_ind[j0]
        r2 = float(lookup[j_sp, j0_sp])
        if r2 == 0:
            with np.errstate(divide="ignore", invalid="ignore"):
                num = x[:, j] @ x[:, j0] - sum_x[j] * sum_x[j0] / n
                r2 = float(num * num / (deno_x[j] * deno_x[j0]))
            cache[j_sp, j0_sp] = r2
        return r2

    keep = _clump(m, ord_ind, rank_ind, pos, size, thr, r2_between)
    return keep, cache.tocsc()