import numpy as np
import pytest

from ldgeno.bed import (
    Bed,
    BedAccessor,
    ScaledBedAccessor,
    code_table,
    read_bed,
    read_bed_scaled,
)

GENO = np.array(
    [
        [0, 1, 2, 3],
        [2, 2, 0, 1],
        [1, 3, 0, 0],
        [0, 0, 2, 2],
        [2, 1, 1, 3],
        [1, 0, 0, 2],
        [0, 2, 1, 1],
    ]
)

_BITS = {0: 3, 1: 2, 2: 0, 3: 1}


def _bed_bytes(geno, header=b"\x6c\x1b\x01"):
    n, _ = geno.shape
    n_byte = (n + 3) // 4
    out = bytearray(header)
    for col in geno.T:
        buf = bytearray(n_byte)
        for i, g in enumerate(col):
            buf[i // 4] |= _BITS[int(g)] << (2 * (i % 4))
        out += buf
    return bytes(out)


@pytest.fixture
def bed(tmp_path):
    path = tmp_path / "geno.bed"
    path.write_bytes(_bed_bytes(GENO))
    with Bed(path, *GENO.shape) as b:
        yield b


def _expected_nan():
    return np.where(GENO == 3, np.nan, GENO.astype(float))


def test_code_table_all_zero_bits_decode_to_two():
    assert code_table(3)[:, 0].tolist() == [2, 2, 2, 2]


def test_code_table_all_one_bits_decode_to_zero():
    assert code_table(3)[:, 255].tolist() == [0, 0, 0, 0]


def test_code_table_missing_uses_na_value():
    assert code_table(-9)[:, 0x55].tolist() == [-9, -9, -9, -9]


def test_read_bed_round_trip(bed):
    np.testing.assert_array_equal(read_bed(bed), _expected_nan())


def test_read_bed_subset(bed):
    res = read_bed(bed, [4, 0], [2])
    np.testing.assert_array_equal(res, _expected_nan()[np.ix_([4, 0], [2])])


def test_accessor_column_matches_array(bed):
    acc = BedAccessor(bed, None, [3, 1])
    full = acc.to_array()
    np.testing.assert_array_equal(acc.column(1), full[:, 1])
    np.testing.assert_array_equal(full, GENO[:, [3, 1]])
    assert acc[2, 1] == GENO[2, 1]
    assert acc.shape == (7, 2)


def test_out_of_range_index_raises(bed):
    with pytest.raises(IndexError):
        BedAccessor(bed, [7], None)


def test_dimension_mismatch(tmp_path):
    path = tmp_path / "g.bed"
    path.write_bytes(_bed_bytes(GENO))
    with pytest.raises(ValueError, match="does not match"):
        Bed(path, 7, 5)


def test_bad_magic(tmp_path):
    path = tmp_path / "g.bed"
    path.write_bytes(_bed_bytes(GENO, header=b"\x00\x1b\x01"))
    with pytest.raises(ValueError, match="not a binary PED"):
        Bed(path, *GENO.shape)


def test_sample_major_rejected(tmp_path):
    path = tmp_path / "g.bed"
    path.write_bytes(_bed_bytes(GENO, header=b"\x6c\x1b\x00"))
    with pytest.raises(ValueError, match="Variant-major"):
        Bed(path, *GENO.shape)


def test_scaled_read(bed):
    center = np.array([1.0, 0.5, 1.5, 1.0])
    scale = np.array([1.0, 2.0, 0.5, 4.0])
    res = read_bed_scaled(bed, None, None, center, scale)
    expected = np.where(GENO == 3, 0.0, (GENO - center) / scale)
    np.testing.assert_allclose(res, expected)
    acc = ScaledBedAccessor(bed, None, None, center, scale)
    np.testing.assert_allclose(acc.column(3), expected[:, 3])


def test_scaled_size_mismatch(bed):
    with pytest.raises(ValueError):
        ScaledBedAccessor(bed, None, [0, 1], [0.0], [1.0, 1.0])


def test_closed_bed_raises(tmp_path):
    path = tmp_path / "g.bed"
    path.write_bytes(_bed_bytes(GENO))
    with Bed(path, *GENO.shape) as b:
        pass
    assert b.closed
    with pytest.raises(ValueError):
        read_bed(b)