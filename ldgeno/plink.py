"""Reading and writing PLINK .bed files into byte genotype matrices."""

from __future__ import annotations

import numpy as np

from .bed import BED_MAGIC, MISSING_CODE, VARIANT_MAJOR, BedAccessor, code_table
from .genotypes import decode_code256

_GENO_BITS = np.array([0b11, 0b10, 0b00, 0b01])


def _default_read_table():
    return code_table(MISSING_CODE).astype(np.uint8)


def _default_write_table():
    """Map ``g0 + 4*g1 + 16*g2 + 64*g3`` (genotypes 0, 1, 2, 3=missing) to a bed byte."""
    ind = np.arange(256)
    shifts = 2 * np.arange(4)
    digits = (ind[:, None] >> shifts) & 3
    return (_GENO_BITS[digits] << shifts).sum(axis=1).astype(np.uint8)


def read_bed_file(filename, n, m, table=None):
    """Read a whole .bed file of ``n`` samples and ``m`` variants into a byte matrix.

    ``table`` is a 4 x 256 table giving, for a byte, the code of each of its four
    samples; by default genotypes are 0, 1, 2 and 3 for missing values.
    """
    n, m = int(n), int(m)
    if table is None:
        table = _default_read_table()
    table = np.asarray(table, dtype=np.uint8)
    if table.shape != (4, 256):
        raise ValueError("'table' must be a 4 x 256 matrix.")
    n_byte = (n + 3) // 4

    with open(filename, "rb") as handle:
        header = handle.read(3)
        if len(header) < 3 or header[:2] != BED_MAGIC:
            raise ValueError("Wrong magic number. Aborting..")
        body = handle.read(n_byte * m)
        if len(body) < n_byte * m:
            raise ValueError("File is shorter than expected from 'n' and 'm'.")
        if handle.read(1):
            raise ValueError("File has more data than expected from 'n' and 'm'.")

    data = np.frombuffer(body, dtype=np.uint8).reshape(m, n_byte)
    decoded = table[:, data].transpose(1, 2, 0).reshape(m, 4 * n_byte)[:, :n]
    return np.ascontiguousarray(decoded.T)


def bed_to_matrix(bed, ind_row=None, ind_col=None):
    """Copy a subset of an opened :class:`~ldgeno.bed.Bed` into a byte matrix."""
    return BedAccessor(bed, ind_row, ind_col).to_array().astype(np.uint8)


def write_bed_file(filename, raw, code256, table=None, ind_row=None, ind_col=None):
    """Write a subset of a byte matrix, decoded through ``code256``, as a .bed file.

    Decoded values must be 0, 1, 2 or missing (NaN or 3). ``table`` maps
    ``g0 + 4*g1 + 16*g2 + 64*g3`` to the byte that stores four samples.
    """
    geno = decode_code256(raw, code256, ind_row, ind_col)
    geno = np.where(np.isnan(geno), MISSING_CODE, geno)
    if not np.isin(geno, (0, 1, 2, MISSING_CODE)).all():
        raise ValueError("Genotypes must be coded as 0, 1, 2 or missing.")
    geno = geno.astype(np.intp)

    if table is None:
        table = _default_write_table()
    table = np.asarray(table, dtype=np.uint8)
    if table.shape != (256,):
        raise ValueError("'table' must have 256 values.")

    n, m = geno.shape
    n_byte = (n + 3) // 4
    padded = np.zeros((4 * n_byte, m), dtype=np.intp)
    padded[:n] = geno
    groups = padded.reshape(n_byte, 4, m)
    ind = (groups * (4 ** np.arange(4))[None, :, None]).sum(axis=1)
    body = np.ascontiguousarray(table[ind].T)

    with open(filename, "wb") as handle:
        handle.write(BED_MAGIC + bytes([VARIANT_MAJOR]))
        handle.write(body.tobytes())