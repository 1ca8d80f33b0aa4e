"""Memory-mapped access to PLINK .bed genotype files (variant-major mode)."""

from __future__ import annotations

import os

import numpy as np

BED_MAGIC = b"\x6c\x1b"
VARIANT_MAJOR = 0x01
MISSING_CODE = 3


def code_table(na_value=MISSING_CODE):
    """Return the 4 x 256 table decoding one byte into four genotypes.

    Entry ``[i, k]`` is the genotype of the ``i``-th sample packed in byte ``k``:
    bits ``00`` give 2, ``01`` missing (``na_value``), ``10`` give 1, ``11`` give 0.
    """
    num = np.array([2, na_value, 1, 0])
    k = np.arange(256)
    shifts = 2 * np.arange(4)[:, None]
    return num[(k[None, :] >> shifts) & 3]


def _resolve_indices(ind, limit, name):
    """Turn 0-based indices (or None for all) into a checked index array."""
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


class Bed:
    """A read-only memory mapping of a .bed file with ``n`` samples and ``m`` variants."""

    def __init__(self, path, n, m):
        self.path = os.fspath(path)
        self.n = int(n)
        self.m = int(m)
        self.n_byte = (self.n + 3) // 4

        with open(self.path, "rb") as handle:
            header = handle.read(3)
        if len(header) < 3 or header[:2] != BED_MAGIC:
            raise ValueError("File is not a binary PED file.")
        if header[2] != VARIANT_MAJOR:
            raise ValueError("Variant-major is the only mode supported.")
        size = os.path.getsize(self.path)
        if 3 + self.n_byte * self.m != size:
            raise ValueError("n or p does not match the dimensions of the file.")

        self._map = np.memmap(self.path, dtype=np.uint8, mode="r")

    @property
    def closed(self):
        return self._map is None

    @property
    def data(self):
        """Genotype bytes as an (m, n_byte) array, one row per variant."""
        if self._map is None:
            raise ValueError("I/O operation on a closed bed file.")
        return self._map[3:].reshape(self.m, self.n_byte)

    def close(self):
        self._map = None

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()

    def __repr__(self):
        state = "closed" if self.closed else "open"
        return f"Bed({self.path!r}, n={self.n}, m={self.m}, {state})"


class BedAccessor:
    """Decoded view of a subset of a .bed file: rows are samples, columns variants."""

    def __init__(self, bed, ind_row=None, ind_col=None, na_value=MISSING_CODE):
        self.bed = bed
        self.ind_row = _resolve_indices(ind_row, bed.n, "ind_row")
        self.ind_col = _resolve_indices(ind_col, bed.m, "ind_col")
        self._lookup = code_table(na_value)
        self._byte_row = self.ind_row // 4
        self._shift = self.ind_row % 4

    @property
    def nrow(self):
        return self.ind_row.size

    @property
    def ncol(self):
        return self.ind_col.size

    @property
    def shape(self):
        return (self.nrow, self.ncol)

    def __getitem__(self, key):
        i, j = key
        byte = self.bed.data[self.ind_col[j], self._byte_row[i]]
        return self._lookup[self._shift[i], byte].item()

    def column(self, j):
        """Decoded genotypes of the ``j``-th selected variant."""
        raw = self.bed.data[self.ind_col[j], self._byte_row]
        return self._lookup[self._shift, raw]

    def to_array(self):
        """All selected genotypes as an (nrow, ncol) array."""
        raw = self.bed.data[self.ind_col][:, self._byte_row]
        return np.ascontiguousarray(self._lookup[self._shift[None, :], raw].T)


class ScaledBedAccessor(BedAccessor):
    """Like :class:`BedAccessor`, but genotypes are centred and scaled per column."""

    def __init__(self, bed, ind_row, ind_col, center, scale, na_value=0.0):
        super().__init__(bed, ind_row, ind_col)
        center = np.asarray(center, dtype=float)
        scale = np.asarray(scale, dtype=float)
        if center.shape != (self.ncol,) or scale.shape != (self.ncol,):
            raise ValueError("Incompatibility between dimensions.")
        lookup = np.empty((4, self.ncol))
        with np.errstate(divide="ignore", invalid="ignore"):
            lookup[:3] = (np.arange(3)[:, None] - center) / scale
        lookup[3] = na_value
        self._lookup_scale = lookup

    def __getitem__(self, key):
        _, j = key
        return self._lookup_scale[super().__getitem__(key), j].item()

    def column(self, j):
        return self._lookup_scale[super().column(j), j]

    def to_array(self):
        geno = super().to_array()
        return self._lookup_scale[geno, np.arange(self.ncol)]


def read_bed(bed, ind_row=None, ind_col=None):
    """Read genotypes as a float array, with NaN for missing values."""
    return BedAccessor(bed, ind_row, ind_col, na_value=np.nan).to_array()


def read_bed_scaled(bed, ind_row, ind_col, center, scale):
    """Read centred and scaled genotypes; missing values become 0."""
    return ScaledBedAccessor(bed, ind_row, ind_col, center, scale).to_array()