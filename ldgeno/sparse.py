"""Statistics on sparse correlation matrices."""

from __future__ import annotations

import numpy as np
from scipy import sparse


def ld_scores_sparse(corr, ind_sub):
    """For each column in ``ind_sub``, the sum of squared correlations with ``ind_sub``."""
    mat = sparse.csc_matrix(corr, dtype=float)
    ind_sub = np.asarray(ind_sub, dtype=np.intp)
    use = np.zeros(mat.shape[0], dtype=bool)
    use[ind_sub] = True
    sub = mat[:, ind_sub].tocsc()
    sq = sub.multiply(sub).tocsc()
    return np.asarray(sq[use].sum(axis=0)).ravel()


def sp_col_sums_sq_sym(p, i, x):
    """Column sums of squares of a symmetric matrix given by one triangle in CSC form."""
    p = np.asarray(p, dtype=np.intp)
    i = np.asarray(i, dtype=np.intp)
    x = np.asarray(x, dtype=float)
    m = p.size - 1
    cols = np.repeat(np.arange(m), np.diff(p))
    rows = i[:p[-1]]
    sq = x[:p[-1]] ** 2
    res = np.bincount(cols, weights=sq, minlength=m)
    off = rows != cols
    res += np.bincount(rows[off], weights=sq[off], minlength=m)
    return res