"""Polygenic score models fitted from summary statistics and a sparse LD matrix."""

from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np
from scipy import optimize, sparse

MIN_H2 = 1e-3


class _SparseCorr:
    """Column access to a sparse correlation matrix stored in CSC form."""

    def __init__(self, corr):
        mat = sparse.csc_matrix(corr, dtype=float)
        mat.sort_indices()
        self.ncol = mat.shape[1]
        self.nrow = mat.shape[0]
        self._indptr = mat.indptr
        self._indices = mat.indices
        self._data = mat.data

    def incr_mult_col(self, j, dotprods, shift):
        """Add ``shift`` times column ``j`` to ``dotprods`` in place."""
        lo, up = self._indptr[j], self._indptr[j + 1]
        dotprods[self._indices[lo:up]] += shift * self._data[lo:up]


def _prepare(corr, beta_hat, ind_sub, *per_variant):
    sfbm = _SparseCorr(corr)
    beta_hat = np.asarray(beta_hat, dtype=float)
    if beta_hat.ndim != 1:
        raise ValueError("'beta_hat' must be one-dimensional.")
    m = beta_hat.size
    ind_sub = np.asarray(ind_sub, dtype=np.intp)
    if ind_sub.shape != (m,):
        raise ValueError("Incompatibility between dimensions.")
    if m and (ind_sub.min() < 0 or ind_sub.max() >= sfbm.ncol):
        raise IndexError("'ind_sub' holds indices out of bounds.")
    others = []
    for values in per_variant:
        values = np.asarray(values, dtype=float)
        if values.shape != (m,):
            raise ValueError("Incompatibility between dimensions.")
        others.append(values)
    return (sfbm, beta_hat, ind_sub, *others)


class MLEObjective:
    """Negative log-likelihood of causal effects in ``(alpha + 1, sigma2)``.

    Effects are modelled as ``beta_j ~ N(0, sigma2 * var_j^(alpha + 1))``.
    """

    def __init__(self, ind_causal, log_var, curr_beta, boot=False, rng=None):
        ind_causal = np.asarray(ind_causal, dtype=np.intp)
        log_var = np.asarray(log_var, dtype=float)
        curr_beta = np.asarray(curr_beta, dtype=float)
        nb = ind_causal.size
        if boot and nb:
            if rng is None:
                rng = np.random.default_rng()
            picks = (nb * rng.random(nb)).astype(np.intp)
            ind_causal = ind_causal[picks]
        self.nb = nb
        self.a = log_var[ind_causal]
        self.b = curr_beta[ind_causal] ** 2
        self.sum_a = float(self.a.sum())

    def __call__(self, par):
        alpha_plus_one, sigma2 = float(par[0]), float(par[1])
        sum_c = float(np.sum(self.b * np.exp(-alpha_plus_one * self.a)))
        return alpha_plus_one * self.sum_a + self.nb * math.log(sigma2) + sum_c / sigma2

    def gradient(self, par):
        """Partial derivatives with respect to ``alpha + 1`` and ``sigma2``."""
        alpha_plus_one, sigma2 = float(par[0]), float(par[1])
        c = self.b * np.exp(-alpha_plus_one * self.a)
        sum_c = float(c.sum())
        sum_ac = float(np.sum(self.a * c))
        return np.array([
            self.sum_a - sum_ac / sigma2,
            (self.nb - sum_c / sigma2) / sigma2,
        ])


def mle_alpha(par, ind_causal, log_var, curr_beta, alpha_bounds, boot=False, rng=None):
    """Maximum-likelihood ``(alpha + 1, sigma2)`` by bounded L-BFGS-B from ``par``.

    ``alpha + 1`` is bounded by ``alpha_bounds`` and ``sigma2`` stays within a
    factor of 2 of its starting value.
    """
    par = np.asarray(par, dtype=float)
    objective = MLEObjective(ind_causal, log_var, curr_beta, boot, rng)
    bounds = [(float(alpha_bounds[0]), float(alpha_bounds[1])),
              (par[1] / 2, par[1] * 2)]
    start = np.array([np.clip(par[0], *bounds[0]), np.clip(par[1], *bounds[1])])
    result = optimize.minimize(objective, start, jac=objective.gradient,
                               method="L-BFGS-B", bounds=bounds)
    return np.asarray(result.x, dtype=float)


def _posterior(res_beta_hat, c1, n_j, inv_odd_p):
    c2 = 1 / (1 + 1 / c1)
    c3 = c2 * res_beta_hat
    c4 = c2 / n_j
    postp = 1 / (1 + inv_odd_p * math.sqrt(1 + c1) * math.exp(-c3 * c3 / c4 / 2))
    return c3, c4, postp


def ldpred2_gibbs_one(corr, beta_hat, n_vec, ind_sub, h2, p, sparse, burn_in,
                      num_iter, rng=None):
    """Posterior mean effects from a Gibbs sampler with fixed ``h2`` and ``p``.

    Returns NaN for every variant when the sampler diverges.
    """
    sfbm, beta_hat, ind_sub, n_vec = _prepare(corr, beta_hat, ind_sub, n_vec)
    if rng is None:
        rng = np.random.default_rng()
    m = beta_hat.size
    curr_beta = np.zeros(m)
    avg_beta = np.zeros(m)
    dotprods = np.zeros(sfbm.nrow)

    h2_per_var = h2 / (m * p)
    inv_odd_p = (1 - p) / p
    gap0 = 2 * float(beta_hat @ beta_hat)

    for k in range(-burn_in, num_iter):
        gap = 0.0
        for j, j2 in enumerate(ind_sub):
            res_beta_hat_j = beta_hat[j] - (dotprods[j2] - curr_beta[j])
            c3, c4, post_p_j = _posterior(res_beta_hat_j, h2_per_var * n_vec[j],
                                          n_vec[j], inv_odd_p)
            diff = -curr_beta[j]
            if sparse and post_p_j < p:
                curr_beta[j] = 0.0
            else:
                if post_p_j > rng.random():
                    curr_beta[j] = rng.normal(c3, math.sqrt(c4))
                    diff += curr_beta[j]
                    gap += curr_beta[j] * curr_beta[j]
                else:
                    curr_beta[j] = 0.0
                if k >= 0:
                    avg_beta[j] += c3 * post_p_j
            if diff != 0:
                sfbm.incr_mult_col(j2, dotprods, diff)

        if gap > gap0:
            return np.full(m, np.nan)

    return avg_beta / num_iter


def ldpred2_gibbs_one_sampling(corr, beta_hat, n_vec, ind_sub, h2, p, sparse,
                               burn_in, num_iter, rng=None):
    """Sampled effects after burn-in, as an (m, num_iter) array."""
    sfbm, beta_hat, ind_sub, n_vec = _prepare(corr, beta_hat, ind_sub, n_vec)
    if rng is None:
        rng = np.random.default_rng()
    m = beta_hat.size
    curr_beta = np.zeros(m)
    sample_beta = np.zeros((m, num_iter))
    dotprods = np.zeros(sfbm.nrow)

    h2_per_var = h2 / (m * p)
    inv_odd_p = (1 - p) / p

    for k in range(-burn_in, num_iter):
        for j, j2 in enumerate(ind_sub):
            res_beta_hat_j = beta_hat[j] + curr_beta[j] - dotprods[j2]
            c3, c4, post_p_j = _posterior(res_beta_hat_j, h2_per_var * n_vec[j],
                                          n_vec[j], inv_odd_p)
            diff = -curr_beta[j]
            if sparse and post_p_j < p:
                curr_beta[j] = 0.0
            else:
                if post_p_j > rng.random():
                    curr_beta[j] = rng.normal(c3, math.sqrt(c4))
                else:
                    curr_beta[j] = 0.0
                diff += curr_beta[j]
                if k >= 0:
                    sample_beta[j, k] = curr_beta[j]
            if diff != 0:
                sfbm.incr_mult_col(j2, dotprods, diff)

    return sample_beta


@dataclass(frozen=True, eq=False)
class AutoResult:
    """Averaged estimates, some sampled effects and the path of the parameters."""

    beta_est: np.ndarray
    postp_est: np.ndarray
    corr_est: np.ndarray
    sample_beta: sparse.csc_matrix
    path_p_est: np.ndarray
    path_h2_est: np.ndarray
    path_alpha_est: np.ndarray


def ldpred2_gibbs_auto(corr, beta_hat, n_vec, log_var, ind_sub, p_init, h2_init,
                       burn_in, num_iter, report_step, no_jump_sign, shrink_corr,
                       use_mle, p_bounds, alpha_bounds, mean_ld=1.0, verbose=False,
                       rng=None):
    """Gibbs sampler that also estimates ``p``, ``h2`` and optionally ``alpha``."""
    sfbm, beta_hat, ind_sub, n_vec, log_var = _prepare(
        corr, beta_hat, ind_sub, n_vec, log_var)
    if report_step < 1:
        raise ValueError("'report_step' must be positive.")
    if rng is None:
        rng = np.random.default_rng()
    m = beta_hat.size
    curr_beta = np.zeros(m)
    dotprods = np.zeros(sfbm.nrow)
    avg_beta = np.zeros(m)
    avg_postp = np.zeros(m)
    avg_beta_hat = np.zeros(m)

    sample_beta = sparse.lil_matrix((m, num_iter // report_step))
    ind_report = 0
    next_k_reported = burn_in + report_step - 1

    num_iter_tot = burn_in + num_iter
    p_est = np.full(num_iter_tot, np.nan)
    h2_est = np.full(num_iter_tot, np.nan)
    alpha_est = np.full(num_iter_tot, np.nan)

    p_lo, p_hi = float(p_bounds[0]), float(p_bounds[1])
    cur_h2_est = 0.0
    h2 = max(h2_init, MIN_H2)
    p = min(max(p_lo, p_init), p_hi)
    par_mle = np.array([0.0, h2 / (m * p)])

    gap0 = 2 * float(beta_hat @ beta_hat)

    for k in range(num_iter_tot):
        inv_odd_p = (1 - p) / p
        alpha_plus_one, sigma2 = par_mle
        gap = 0.0
        ind_causal = []

        for j, j2 in enumerate(ind_sub):
            dotprod = dotprods[j2]
            res_beta_hat_j = beta_hat[j] - shrink_corr * (dotprod - curr_beta[j])
            scale_freq = math.exp(alpha_plus_one * log_var[j]) if use_mle else 1.0
            c3, c4, postp = _posterior(res_beta_hat_j, scale_freq * sigma2 * n_vec[j],
                                       n_vec[j], inv_odd_p)

            prev_beta = curr_beta[j]
            dotprod_shrunk = shrink_corr * dotprod + (1 - shrink_corr) * prev_beta

            if k >= burn_in:
                avg_postp[j] += postp
                avg_beta[j] += c3 * postp
                avg_beta_hat[j] += dotprod_shrunk

            diff = -prev_beta
            if postp > rng.random():
                samp_beta = rng.normal(c3, math.sqrt(c4))
                if no_jump_sign and samp_beta * prev_beta < 0:
                    curr_beta[j] = 0.0
                else:
                    curr_beta[j] = samp_beta
                    diff += samp_beta
                    ind_causal.append(j)
                    gap += samp_beta * samp_beta
            else:
                curr_beta[j] = 0.0

            if diff != 0:
                cur_h2_est += diff * (2 * dotprod_shrunk + diff)
                sfbm.incr_mult_col(j2, dotprods, diff)

        if gap > gap0:
            avg_beta.fill(np.nan)
            avg_postp.fill(np.nan)
            avg_beta_hat.fill(np.nan)
            break

        nb_causal = len(ind_causal)
        p = rng.beta(1 + nb_causal / mean_ld, 1 + (m - nb_causal) / mean_ld)
        p = min(max(p_lo, p), p_hi)
        h2 = max(cur_h2_est, MIN_H2)
        if use_mle:
            par_mle = mle_alpha(par_mle, ind_causal, log_var, curr_beta,
                                alpha_bounds, boot=True, rng=rng)
        else:
            par_mle[1] = h2 / (m * p)

        if verbose:
            print(f"{k + 1}: {p} // {h2} // {par_mle[0] - 1}")

        p_est[k] = p
        h2_est[k] = h2
        if use_mle:
            alpha_est[k] = par_mle[0] - 1

        if k == next_k_reported:
            for i in ind_causal:
                sample_beta[i, ind_report] = curr_beta[i]
            ind_report += 1
            next_k_reported += report_step

    return AutoResult(
        beta_est=avg_beta / num_iter,
        postp_est=avg_postp / num_iter,
        corr_est=avg_beta_hat / num_iter,
        sample_beta=sample_beta.tocsc(),
        path_p_est=p_est,
        path_h2_est=h2_est,
        path_alpha_est=alpha_est,
    )


def soft_thres(z, l1, one_plus_l2):
    """Elastic-net soft thresholding of ``z``."""
    if z > 0:
        num = z - l1
        return num / one_plus_l2 if num > 0 else 0.0
    num = z + l1
    return num / one_plus_l2 if num < 0 else 0.0


@dataclass(frozen=True, eq=False)
class LassoResult:
    """Estimated effects and the number of iterations used."""

    beta_est: np.ndarray
    num_iter: int


def lassosum2(corr, beta_hat, lambda_, delta_plus_one, ind_sub, dfmax, maxiter, tol):
    """Penalised regression by coordinate descent on the correlation matrix.

    Effects are all NaN when the descent diverges.
    """
    sfbm, beta_hat, ind_sub, lambda_, delta_plus_one = _prepare(
        corr, beta_hat, ind_sub, lambda_, delta_plus_one)
    m = beta_hat.size
    curr_beta = np.zeros(m)
    dotprods = np.zeros(sfbm.nrow)
    gap0 = 2 * float(beta_hat @ beta_hat)

    k = 0
    for k in range(maxiter):
        conv = True
        df = 0
        gap = 0.0
        for j, j2 in enumerate(ind_sub):
            u_j = beta_hat[j] - (dotprods[j2] - curr_beta[j])
            new_beta_j = soft_thres(u_j, lambda_[j], delta_plus_one[j])
            if new_beta_j != 0:
                gap += new_beta_j * new_beta_j
                df += 1
            shift = new_beta_j - curr_beta[j]
            if shift != 0:
                if conv and abs(shift) > tol:
                    conv = False
                curr_beta[j] = new_beta_j
                sfbm.incr_mult_col(j2, dotprods, shift)

        if gap > gap0:
            curr_beta.fill(np.nan)
            break
        if conv or df > dfmax:
            break
    else:
        k = maxiter

    return LassoResult(beta_est=curr_beta, num_iter=k + 1)