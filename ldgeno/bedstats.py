"""Column statistics, counts and matrix products computed on .bed files."""

from __future__ import annotations

import warnings
from dataclasses import dataclass

import numpy as np

from .bed import MISSING_CODE, BedAccessor, ScaledBedAccessor


@dataclass(frozen=True, eq=False)
class BedColStats:
    """Per-variant sums, centred sums of squares and non-missing counts."""

    sum_x: np.ndarray
    deno_x: np.ndarray
    nb_nona_col: np.ndarray


def bed_colstats(bed, ind_row=None, ind_col=None):
    """Compute per-variant statistics ignoring missing values.

    Warns when some variants have more than half of their values missing.
    """
    geno = BedAccessor(bed, ind_row, ind_col).to_array()
    n = geno.shape[0]
    present = geno != MISSING_CODE
    x = np.where(present, geno, 0).astype(float)
    sum_x = x.sum(axis=0)
    xx_sum = (x * x).sum(axis=0)
    nb_nona = present.sum(axis=0)
    with np.errstate(divide="ignore", invalid="ignore"):
        deno_x = xx_sum - sum_x * sum_x / nb_nona

    n_bad = int(np.count_nonzero(2 * nb_nona < n))
    if n_bad > 0:
        warnings.warn(f"{n_bad} variants have >50% missing values.", stacklevel=2)

    return BedColStats(sum_x=sum_x, deno_x=deno_x, nb_nona_col=nb_nona)


def _code_indicators(geno):
    return geno[None, :, :] == np.arange(4)[:, None, None]


def bed_col_counts(bed, ind_row=None, ind_col=None):
    """Counts of genotypes 0, 1, 2 and missing (rows) for each variant (columns)."""
    geno = BedAccessor(bed, ind_row, ind_col).to_array()
    return _code_indicators(geno).sum(axis=1)


def bed_row_counts(bed, ind_row=None, ind_col=None):
    """Counts of genotypes 0, 1, 2 and missing (rows) for each sample (columns)."""
    geno = BedAccessor(bed, ind_row, ind_col).to_array()
    return _code_indicators(geno).sum(axis=2)


def prod_and_row_sums_sq(bed, ind_row, ind_col, center, scale, v):
    """Return ``(X @ V, row sums of X**2)`` for the scaled genotype matrix X."""
    x = ScaledBedAccessor(bed, ind_row, ind_col, center, scale).to_array()
    v = np.asarray(v, dtype=float)
    if v.ndim != 2 or v.shape[0] != x.shape[1]:
        raise ValueError("Incompatibility between dimensions.")
    return x @ v, (x * x).sum(axis=1)


def bed_prod_vec(bed, ind_row, ind_col, center, scale, x):
    """Product of the scaled genotype matrix with a vector of length ncol."""
    mat = ScaledBedAccessor(bed, ind_row, ind_col, center, scale).to_array()
    return mat @ np.asarray(x, dtype=float)


def bed_cprod_vec(bed, ind_row, ind_col, center, scale, x):
    """Cross-product of the scaled genotype matrix with a vector of length nrow."""
    mat = ScaledBedAccessor(bed, ind_row, ind_col, center, scale).to_array()
    return mat.T @ np.asarray(x, dtype=float)