"""Reading 8-bit, zlib-compressed, bi-allelic BGEN variant blocks."""

from __future__ import annotations

import struct
import zlib
from dataclasses import dataclass

import numpy as np

_UINT_FORMATS = {4: "<I", 2: "<H"}


class BgenFormatError(ValueError):
    """A BGEN variant block does not have the expected layout."""


@dataclass(frozen=True, eq=False)
class BgenResult:
    """Variant identifiers, imputation INFO, allele frequencies and genotype codes."""

    ids: list
    info: np.ndarray
    freq: np.ndarray
    genotypes: np.ndarray


def read_uint(stream, n_byte=4):
    """Read a little-endian unsigned integer of 2 or 4 bytes."""
    try:
        fmt = _UINT_FORMATS[n_byte]
    except KeyError:
        raise ValueError("Not supported.") from None
    data = stream.read(n_byte)
    if len(data) != n_byte:
        raise BgenFormatError("Unexpected end of file.")
    return struct.unpack(fmt, data)[0]


def read_string(stream, n_byte=2):
    """Read a string prefixed by its length stored on ``n_byte`` bytes."""
    length = read_uint(stream, n_byte)
    data = stream.read(length)
    if len(data) != length:
        raise BgenFormatError("Unexpected end of file.")
    return data.decode("utf-8", errors="replace")


def _read_variant(stream, ind_row, n):
    """Return the variant id, the missing mask and the (p0, p1) probabilities * 255."""
    variant_id = read_string(stream)
    read_string(stream)  # rsid
    read_string(stream)  # chromosome
    pos = read_uint(stream)
    n_allele = read_uint(stream, 2)
    if pos <= 0:
        raise BgenFormatError("Positions should be positive.")
    if n_allele != 2:
        raise BgenFormatError("Only 2 alleles allowed.")
    read_string(stream, 4)
    read_string(stream, 4)

    c = read_uint(stream) - 4
    d = read_uint(stream)
    if d != 10 + 3 * n:
        raise BgenFormatError("Probabilities should be stored using 8 bits.")
    compressed = stream.read(c)
    try:
        out = zlib.decompress(compressed)
    except zlib.error:
        raise BgenFormatError("Problem when uncompressing.") from None
    if len(out) != d:
        raise BgenFormatError("Problem when uncompressing.")

    buf = np.frombuffer(out, dtype=np.uint8)
    missing = buf[8 + ind_row] >= 0x80
    i_prob = 10 + n + 2 * ind_row
    p0 = buf[i_prob].astype(np.intp)
    p1 = buf[i_prob + 1].astype(np.intp)
    return variant_id, missing, p0, p1


def _prepare(ind_row, offsets, n):
    ind_row = np.asarray(ind_row, dtype=np.intp)
    if ind_row.size and (ind_row.min() < 0 or ind_row.max() >= n):
        raise IndexError("'ind_row' holds indices out of bounds.")
    return ind_row, [int(o) for o in offsets]


def read_bgen(filename, offsets, ind_row, decode, dosage, n, rng=None):
    """Read variants at ``offsets`` as byte codes for the samples ``ind_row``.

    With ``dosage`` the code is ``decode[2 * p0 + p1]``; otherwise a hard call
    4, 5 or 6 is sampled from the probabilities. Missing values are coded 3.
    """
    ind_row, offsets = _prepare(ind_row, offsets, n)
    decode = np.asarray(decode, dtype=np.uint8)
    if rng is None:
        rng = np.random.default_rng()

    ids = []
    info = np.full(len(offsets), np.nan)
    freq = np.full(len(offsets), np.nan)
    geno = np.empty((ind_row.size, len(offsets)), dtype=np.uint8)

    with open(filename, "rb") as stream:
        for k, offset in enumerate(offsets):
            stream.seek(offset)
            variant_id, missing, p0, p1 = _read_variant(stream, ind_row, n)
            ids.append(variant_id)
            ok = ~missing
            nona = int(ok.sum())
            e = (2 * p0 + p1)[ok].astype(float)
            f = (4 * p0 + p1)[ok].astype(float)
            af = e.sum()
            num = (255 * f - e * e).sum()
            coef = 255.0 * (2 * nona)
            with np.errstate(divide="ignore", invalid="ignore"):
                info[k] = 1 - np.float64(num) * 2 * nona / (af * (coef - af))
                freq[k] = 1 - np.float64(af) / coef

            if dosage:
                values = decode[2 * p0 + p1]
            else:
                first = rng.random(p0.size) * 255 - p0
                values = np.where(first < 0, 4, np.where(first < p1, 5, 6))
            geno[:, k] = np.where(missing, 3, values)

    return BgenResult(ids=ids, info=info, freq=freq, genotypes=geno)


def extract_submat_bgen(filename, offsets, ind_row, decode, dosage, n, rng=None):
    """Read variants at ``offsets`` as a float matrix, NaN for missing values.

    With ``dosage`` values are ``decode[2 * p0 + p1]``; otherwise hard calls
    0, 1 or 2 are sampled from the probabilities.
    """
    ind_row, offsets = _prepare(ind_row, offsets, n)
    decode = np.asarray(decode, dtype=float)
    if rng is None:
        rng = np.random.default_rng()

    x = np.empty((ind_row.size, len(offsets)))
    with open(filename, "rb") as stream:
        for j, offset in enumerate(offsets):
            stream.seek(offset)
            _, missing, p0, p1 = _read_variant(stream, ind_row, n)
            if dosage:
                values = decode[2 * p0 + p1]
            else:
                first = rng.random(p0.size) * 255 - p0
                values = np.where(first < 0, 0.0, np.where(first < p1, 1.0, 2.0))
            x[:, j] = np.where(missing, np.nan, values)
    return x


def prod_bgen(filename, offsets, y, ind_row, decode, dosage, n, max_size, rng=None):
    """Product of the genotype matrix read at ``offsets`` with ``y``, by blocks."""
    y = np.asarray(y, dtype=float)
    offsets = list(offsets)
    if y.ndim != 2 or y.shape[0] != len(offsets):
        raise ValueError("Incompatibility between dimensions.")
    if max_size < 1:
        raise ValueError("'max_size' must be positive.")
    result = np.zeros((len(ind_row), y.shape[1]))
    for start in range(0, len(offsets), max_size):
        block = offsets[start:start + max_size]
        x = extract_submat_bgen(filename, block, ind_row, decode, dosage, n, rng)
        result += x @ y[start:start + len(block)]
    return result