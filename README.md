# ldgeno

Tools for genotype matrices (samples × variants), built on numpy and scipy.
It is a library; it has no command-line program.

Every index passed to these functions starts at 0. Functions that draw random
numbers take a `numpy.random.Generator` as `rng` (a fresh one is made when it is
left out), so runs can be reproduced by seeding it.

## Modules

### `ldgeno.bed` — PLINK `.bed` files

- `Bed(path, n, m)` memory-maps a variant-major `.bed` file of `n` samples and
  `m` variants. It checks the magic number, the mode byte and the file size,
  and raises `ValueError` when one is wrong. It is a context manager; `close()`
  releases the mapping.
- `code_table(na_value)` gives the 4 × 256 table that decodes a byte into four
  genotypes (0, 1, 2, or `na_value` for missing).
- `BedAccessor(bed, ind_row, ind_col, na_value)` is a decoded view of a subset
  of samples and variants, with `column(j)` and `to_array()`;
  `ScaledBedAccessor(bed, ind_row, ind_col, center, scale, na_value)` does the
  same with each variant centred and scaled (missing values become `na_value`,
  0 by default).
- `read_bed(bed, ind_row, ind_col)` returns a float array with NaN for missing
  values; `read_bed_scaled(bed, ind_row, ind_col, center, scale)` returns the
  centred and scaled values.

### `ldgeno.bedstats` — statistics on `.bed` files

- `bed_colstats` returns a `BedColStats` (`sum_x`, `deno_x`, `nb_nona_col`)
  computed without missing values, and warns when variants have more than half
  of their values missing.
- `bed_col_counts` and `bed_row_counts` count genotypes 0, 1, 2 and missing per
  variant or per sample (a 4-row array).
- `prod_and_row_sums_sq` returns `X @ V` and the row sums of `X ** 2` for the
  scaled matrix `X`; `bed_prod_vec` and `bed_cprod_vec` give `X @ x` and
  `X.T @ x`.

### `ldgeno.genotypes` — byte matrices

- `decode_code256(raw, code256, ind_row, ind_col)` decodes a `uint8` matrix
  through a 256-value code.
- `colstats(x)` returns a `ColStats` with column sums and centred sums of
  squares.
- `impute(raw, method, rng)` fills missing values (anything above 2) in place,
  by `ImputeMethod.MODE`, `MEAN0`, `MEAN2` or `RANDOM`; imputed values are
  stored with the code offsets (4 + genotype, or 7 + round(100 × mean) for
  `MEAN2`).
- `replace_snp(target, source, ind_row, ind_col)` copies a sub-matrix in place.

### `ldgeno.plink` — reading and writing `.bed` files as byte matrices

- `read_bed_file(filename, n, m, table)` reads a whole file into an `(n, m)`
  `uint8` matrix (0, 1, 2, and 3 for missing by default).
- `bed_to_matrix(bed, ind_row, ind_col)` copies a subset of an open `Bed`.
- `write_bed_file(filename, raw, code256, table, ind_row, ind_col)` writes a
  subset of a byte matrix, decoded through `code256`, as a variant-major file.

### `ldgeno.clumping` — LD clumping

- `which_to_check(j0, keep, rank_ind, pos, size)` lists the nearby variants of
  better rank that are not pruned.
- `clumping_chr` (on a decoded matrix with precomputed `sum_x` and `deno_x`),
  `bed_clumping_chr` (on scaled `.bed` genotypes) and `clumping_chr_cached`
  (reusing squared correlations from a sparse matrix and returning an updated
  copy) return a boolean mask of the kept variants.

### `ldgeno.ldstats` — windowed correlations

- `cor_mat(x, size, thr, pos, fill_diag)` returns, for each column, the indices
  and values of its correlations with earlier columns within `size` whose
  absolute value exceeds the threshold for the number of complete pairs.
- `ld_scores(x, size, pos)` returns 1 plus the sum of squared correlations
  within the window. Both treat 3 and NaN as missing.

### `ldgeno.multlinreg`

- `mult_lin_reg(x, u)` returns an `(m, K)` array of t-scores of each column of
  `u` regressed on each variant, leaving out missing genotypes.

### `ldgeno.bgen` — BGEN variant blocks

Reads bi-allelic variant blocks with zlib-compressed, 8-bit probabilities,
starting at given byte offsets.

- `read_uint(stream, n_byte)` and `read_string(stream, n_byte)` read
  little-endian integers and length-prefixed strings.
- `read_bgen(filename, offsets, ind_row, decode, dosage, n, rng)` returns a
  `BgenResult` with the variant ids, INFO scores, frequencies and a `uint8`
  matrix of codes (dosages through `decode`, or sampled hard calls 4–6; 3 for
  missing).
- `extract_submat_bgen(...)` returns a float matrix with NaN for missing
  values; `prod_bgen(..., y, ..., max_size, rng)` multiplies it by `y` block by
  block.
- Malformed blocks raise `BgenFormatError`.

### `ldgeno.sparse`

- `ld_scores_sparse(corr, ind_sub)` sums squared correlations within a subset
  of a sparse matrix.
- `sp_col_sums_sq_sym(p, i, x)` gives column sums of squares of a symmetric
  matrix stored as one triangle in CSC form.

### `ldgeno.splitld` — splitting LD into blocks

- `get_l(p, i, x, thr_r2, max_r2)` computes the cumulative cost entries.
- `get_c(l, min_size, max_size, max_k, max_cost, pos_scaled)` runs the dynamic
  programming and returns `BlockCosts` (`cost`, `best_ind`, with -1 where no
  split is possible).
- `get_perc(p, i, all_last)` gives the fraction of non-zero entries kept within
  the blocks.

### `ldgeno.ldpred2` — polygenic scores

- `ldpred2_gibbs_one` (posterior means), `ldpred2_gibbs_one_sampling` (sampled
  effects) and `ldpred2_gibbs_auto` (also estimating `p`, `h2` and optionally
  `alpha`, returning an `AutoResult`) are Gibbs samplers over a sparse
  correlation matrix.
- `MLEObjective` and `mle_alpha` fit `(alpha + 1, sigma2)` by bounded L-BFGS-B.
- `lassosum2` runs coordinate descent with `soft_thres` and returns a
  `LassoResult` (`beta_est`, `num_iter`).
- When a sampler or the descent diverges, the estimates are NaN.

## Example

```python
import numpy as np
from ldgeno.bed import Bed, read_bed
from ldgeno.bedstats import bed_colstats

with Bed("data.bed", n=500, m=1000) as bed:
    genotypes = read_bed(bed)            # float array, NaN where missing
    stats = bed_colstats(bed)
    center = stats.sum_x / stats.nb_nona_col
```

## What it does not do

- It does not read `.bim`, `.fam` or `.sample` files; sample and variant counts
  are passed in.
- It does not parse BGEN headers or indexes; the byte offset of each variant
  block must be supplied.
- It keeps matrices in memory as numpy arrays; there is no on-disk matrix
  storage apart from reading and writing `.bed` files.

## Installation

```
pip install .
```

Install the test extra with `pip install .[test]`, then run `pytest`.