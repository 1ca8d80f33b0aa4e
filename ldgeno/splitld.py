"""Optimal splitting of a correlation matrix into nearly independent LD blocks."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from scipy import sparse


@dataclass(frozen=True, eq=False)
class BlockCosts:
    """Minimal costs per (start, number of blocks - 1) and the end of the first block.

    ``best_ind`` holds -1 where no split is possible.
    """

    cost: np.ndarray
    best_ind: np.ndarray


def get_l(p, i, x, thr_r2, max_r2):
    """Cumulative sums ``L(col, row)`` of squared correlations, from the end of each column.

    Input is the lower triangle (with diagonal) of a correlation matrix in CSC form.
    Squared correlations below ``thr_r2`` are ignored; any above ``max_r2`` make
    the sum infinite. Returns the arrays ``(i, j, x)`` of the non-zero entries.
    """
    p = np.asarray(p, dtype=np.intp)
    i = np.asarray(i, dtype=np.intp)
    x = np.asarray(x, dtype=float)
    res_i, res_j, res_x = [], [], []
    for col in range(p.size - 1):
        total = 0.0
        k = p[col + 1] - 1
        for row in range(i[k], col, -1):
            if row == i[k]:
                r2 = x[k] * x[k]
                if r2 >= thr_r2:
                    total = np.inf if r2 > max_r2 else total + r2
                k -= 1
            if total > 0:
                res_i.append(col)
                res_j.append(row)
                res_x.append(total)
    return (np.array(res_i, dtype=np.intp), np.array(res_j, dtype=np.intp),
            np.array(res_x, dtype=float))


def get_c(l, min_size, max_size, max_k, max_cost, pos_scaled):
    """Dynamic programming over block splits; ``l`` is m x (m + 1) with a zero last column."""
    mat = sparse.csc_matrix(l, dtype=float)
    m = mat.shape[0]
    pos_scaled = np.asarray(pos_scaled, dtype=float)

    res_e = []
    for col in range(m):
        lcol = mat[:, col + 1].toarray().ravel()
        e = 0.0
        count = 0
        pos_min = pos_scaled[col] - 1
        values = []
        for row in range(col, -1, -1):
            if pos_scaled[row] < pos_min:
                break
            e += lcol[row]
            if e > max_cost:
                break
            count += 1
            if count >= min_size:
                values.append(float(np.float32(e)))
                if count == max_size:
                    break
        res_e.append(values)

    best_ind = np.full((m + 1, max_k), -1, dtype=np.intp)
    c1 = np.full((m + 1, max_k), np.inf)
    c2 = np.full((m + 1, max_k), np.inf)

    pos_min = pos_scaled[m - 1] - 1
    for size in range(min_size, max_size + 1):
        row = m - size
        if row < 0 or pos_scaled[row] < pos_min:
            break
        best_ind[row, 0] = m
        c1[row, 0] = 0.0
        c2[row, 0] = float(size * size)

    for k in range(1, max_k):
        for col in range(m - 1, -1, -1):
            row = col - min_size + 1
            for e in res_e[col]:
                cost1 = e + c1[col + 1, k - 1]
                cost2 = (col - row + 1) ** 2 + c2[col + 1, k - 1]
                if cost1 < c1[row, k]:
                    best_ind[row, k] = col + 1
                    c1[row, k] = cost1
                    c2[row, k] = cost2
                elif cost1 == c1[row, k] and cost2 < c2[row, k]:
                    best_ind[row, k] = col + 1
                    c2[row, k] = cost2
                row -= 1
        if c1[0, k] > max_cost and c1[0, k] > c1[0, k - 1]:
            break

    return BlockCosts(cost=c1[:m], best_ind=best_ind[:m])


def get_perc(p, i, all_last):
    """Fraction of non-zero entries of a symmetric matrix that fall within the blocks.

    Input is the lower triangle (with diagonal) in CSC form; ``all_last`` gives
    the last index of each block.
    """
    p = np.asarray(p, dtype=np.int64)
    i = np.asarray(i, dtype=np.int64)
    m = p.size - 1
    count_all = 2.0 * i.size - m
    count_within = count_all
    grp = 0
    limit = all_last[grp]
    for j in range(m):
        if j > limit:
            grp += 1
            limit = all_last[grp]
        lo, up = p[j], p[j + 1]
        for k in range(up - 1, lo, -1):
            if i[k] > limit:
                count_within -= 2
            else:
                break
    return count_within / count_all