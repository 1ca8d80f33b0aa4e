"""Windowed correlations and LD scores between genotype columns."""

from __future__ import annotations

import numpy as np

from .bed import MISSING_CODE


def _prepare(x):
    """Zero-filled values and a mask of present entries; 3 and NaN are missing."""
    x = np.asarray(x, dtype=float)
    if x.ndim != 2:
        raise ValueError("Matrix must be two-dimensional.")
    present = ~np.isnan(x) & (x != MISSING_CODE)
    return np.where(present, x, 0.0), present


def _check_pos(pos, m):
    pos = np.asarray(pos, dtype=float)
    if pos.shape != (m,):
        raise ValueError("Incompatibility between dimensions.")
    return pos


def _window(pos, j0, size):
    """Columns before ``j0`` within ``size`` of its position, nearest first."""
    pos_min = pos[j0] - size
    j = j0 - 1
    while j >= 0 and pos[j] >= pos_min:
        j -= 1
    return np.arange(j0 - 1, j, -1)


def _pair_stats(values, present, j0, js):
    """Numerator, denominators and complete-pair counts between ``j0`` and ``js``."""
    valid = present[:, js] & present[:, j0][:, None]
    xv = values[:, j0][:, None] * valid
    yv = values[:, js] * valid
    nona = valid.sum(axis=0)
    x_sum, xx_sum = xv.sum(axis=0), (xv * xv).sum(axis=0)
    y_sum, yy_sum = yv.sum(axis=0), (yv * yv).sum(axis=0)
    xy_sum = (xv * yv).sum(axis=0)
    with np.errstate(divide="ignore", invalid="ignore"):
        num = xy_sum - x_sum * y_sum / nona
        deno_x = xx_sum - x_sum * x_sum / nona
        deno_y = yy_sum - y_sum * y_sum / nona
    return num, deno_x, deno_y, nona


def cor_mat(x, size, thr, pos, fill_diag=False):
    """Correlations of each column with the previous columns within ``size``.

    A correlation computed on ``k`` complete pairs is kept when it is NaN or its
    absolute value exceeds ``thr[k - 1]``; kept values are clipped to [-1, 1].
    Returns, for each column, a pair ``(indices, values)`` in increasing index
    order; with ``fill_diag`` the column itself comes last with a value of 1.
    """
    values, present = _prepare(x)
    n, m = values.shape
    pos = _check_pos(pos, m)
    thr = np.asarray(thr, dtype=float)
    if thr.ndim != 1 or thr.size < n:
        raise ValueError("'thr' must have one value per possible number of samples.")

    result = []
    for j0 in range(m):
        js = _window(pos, j0, size)
        num, deno_x, deno_y, nona = _pair_stats(values, present, j0, js)
        with np.errstate(divide="ignore", invalid="ignore"):
            r = num / np.sqrt(deno_x * deno_y)
            selected = np.isnan(r) | (np.abs(r) > thr[np.maximum(nona - 1, 0)])
        ind = js[selected][::-1]
        val = np.clip(r[selected], -1.0, 1.0)[::-1]
        if fill_diag:
            ind = np.append(ind, j0)
            val = np.append(val, 1.0)
        result.append((ind, val))
    return result


def ld_scores(x, size, pos):
    """LD score of each column: 1 plus the squared correlations with columns within ``size``."""
    values, present = _prepare(x)
    m = values.shape[1]
    pos = _check_pos(pos, m)

    res = np.ones(m)
    for j0 in range(m):
        js = _window(pos, j0, size)
        num, deno_x, deno_y, _ = _pair_stats(values, present, j0, js)
        with np.errstate(divide="ignore", invalid="ignore"):
            r2 = num * num / (deno_x * deno_y)
        ok = ~np.isnan(r2)
        res[j0] += r2[ok].sum()
        np.add.at(res, js[ok], r2[ok])
    return res