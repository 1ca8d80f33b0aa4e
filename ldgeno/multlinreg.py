"""Per-variant linear regressions of covariate columns on genotypes."""

from __future__ import annotations

import numpy as np

from .bed import MISSING_CODE


def mult_lin_reg(x, u):
    """t-scores of the regressions of each column of ``u`` on each column of ``x``.

    Rows where a genotype is missing (3 or NaN) are left out for that variant.
    Returns an (m, K) array; a score is NaN when fewer than two values are
    present or when its denominator is zero.
    """
    x = np.asarray(x, dtype=float)
    u = np.asarray(u, dtype=float)
    if x.ndim != 2 or u.ndim != 2:
        raise ValueError("Matrices must be two-dimensional.")
    if u.shape[0] != x.shape[0]:
        raise ValueError("Incompatibility between dimensions.")

    present = ~np.isnan(x) & (x != MISSING_CODE)
    xv = np.where(present, x, 0.0)
    w = present.astype(float)

    nona = present.sum(axis=0).astype(float)[:, None]
    x_sum = xv.sum(axis=0)[:, None]
    xx_sum = (xv * xv).sum(axis=0)[:, None]
    xy_sum = xv.T @ u
    y_sum = w.T @ u
    yy_sum = w.T @ (u * u)

    with np.errstate(divide="ignore", invalid="ignore"):
        deno_x = xx_sum - x_sum * x_sum / nona
        num = xy_sum - x_sum * y_sum / nona
        deno_y = yy_sum - y_sum * y_sum / nona
        deno = deno_x * deno_y - num * num
        tscore = num * np.sqrt((nona - 2) / deno)
    bad = (deno == 0) | (nona < 2)
    return np.where(bad, np.nan, tscore)