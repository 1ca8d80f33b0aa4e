"""Operations on raw genotype matrices stored as bytes with a 256-value code."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum

import numpy as np


def _resolve_indices(ind, limit, name):
    if ind is None:
        return np.arange(limit, dtype=np.intp)
    arr = np.asarray(ind)
    if arr.ndim != 1:
        raise ValueError(f"'{name}' must be one-dimensional.")
    if arr.size == 0:
        return np.empty(0, dtype=np.intp)
    if not np.issubdtype(arr.dtype, np.integer):
        raise TypeError(f"'{name}' must hold integers.")
    arr = arr.astype(np.intp)
    if arr.min() < 0 or arr.max() >= limit:
        raise IndexError(f"'{name}' holds indices out of bounds [0, {limit}).")
    return arr


def _check_raw(raw):
    raw = np.asarray(raw)
    if raw.ndim != 2:
        raise ValueError("Genotype matrix must be two-dimensional.")
    if raw.dtype != np.uint8:
        raise TypeError("Genotype matrix must hold unsigned bytes (uint8).")
    return raw


def decode_code256(raw, code256, ind_row=None, ind_col=None):
    """Decode a byte matrix through a 256-entry code into a float matrix."""
    raw = _check_raw(raw)
    code = np.asarray(code256, dtype=float)
    if code.shape != (256,):
        raise ValueError("'code256' must have 256 values.")
    rows = _resolve_indices(ind_row, raw.shape[0], "ind_row")
    cols = _resolve_indices(ind_col, raw.shape[1], "ind_col")
    return code[raw[np.ix_(rows, cols)]]


@dataclass(frozen=True, eq=False)
class ColStats:
    """Per-column sums and centred sums of squares."""

    sum_x: np.ndarray
    deno_x: np.ndarray


def colstats(x):
    """Column sums and centred sums of squares of a decoded matrix."""
    x = np.asarray(x, dtype=float)
    if x.ndim != 2:
        raise ValueError("Matrix must be two-dimensional.")
    n = x.shape[0]
    sum_x = x.sum(axis=0)
    with np.errstate(divide="ignore", invalid="ignore"):
        deno_x = (x * x).sum(axis=0) - sum_x * sum_x / n
    return ColStats(sum_x=sum_x, deno_x=deno_x)


class ImputeMethod(IntEnum):
    """How missing genotypes are filled in."""

    MODE = 1
    MEAN0 = 2
    MEAN2 = 3
    RANDOM = 4


def _mode_code(c0, c1, c2):
    imputed = 0
    if c1 > c0:
        imputed = 1
    if imputed == 0 and c2 > c0:
        imputed = 2
    if imputed == 1 and c2 > c1:
        imputed = 2
    return imputed + 4


def impute(raw, method, rng=None):
    """Fill missing genotypes of a byte matrix in place.

    Values other than 0, 1 and 2 are missing. Imputed values are stored with the
    code offsets: 4 + genotype for MODE, MEAN0 and RANDOM, and
    7 + round(100 * mean) for MEAN2.
    """
    try:
        method = ImputeMethod(method)
    except ValueError:
        raise ValueError("Parameter 'method' should be 1, 2, 3, or 4.") from None
    raw = _check_raw(raw)
    if method is ImputeMethod.RANDOM and rng is None:
        rng = np.random.default_rng()

    for j, column in enumerate(raw.T):
        missing = column > 2
        nb_na = int(np.count_nonzero(missing))
        if nb_na == 0:
            continue
        c1 = int(np.count_nonzero(column == 1))
        c2 = int(np.count_nonzero(column == 2))
        c = column.size - nb_na

        if method is ImputeMethod.MODE:
            column[missing] = _mode_code(c - c1 - c2, c1, c2)
            continue

        if c == 0:
            raise ValueError(f"Cannot impute column {j}: all values are missing.")
        if method is ImputeMethod.RANDOM:
            af = (0.5 * c1 + c2) / c
            column[missing] = rng.binomial(2, af, size=nb_na) + 4
        else:
            mean = (c1 + 2.0 * c2) / c
            if method is ImputeMethod.MEAN0:
                column[missing] = round(mean) + 4
            else:
                column[missing] = round(100 * mean) + 7


def replace_snp(target, source, ind_row=None, ind_col=None):
    """Copy the selected sub-matrix of ``source`` into ``target`` in place."""
    target = _check_raw(target)
    source = _check_raw(source)
    rows = _resolve_indices(ind_row, source.shape[0], "ind_row")
    cols = _resolve_indices(ind_col, source.shape[1], "ind_col")
    if (rows.size, cols.size) != target.shape:
        raise ValueError("Incompatibility between dimensions.")
    target[...] = source[np.ix_(rows, cols)]