"""Permutation-averaged impulse responses of the GDFM common component.

The common component is represented blockwise: the cross-section is
split into blocks of ``q + 1`` variables, each following a low-order VAR
whose innovations are driven by ``q`` common shocks. The partition
depends on the ordering of the variables, so the estimation is repeated
over random permutations, every permutation is identified by a Cholesky
normalisation and the results are averaged (Forni, Hallin, Lippi and
Zaffaroni, 2017).
"""

from __future__ import annotations

from dataclasses import dataclass, field
import math
import warnings

import numpy as np
from joblib import Parallel, delayed

from .selection import select_var_order
from .utils import (
    block_partition,
    check_autocovariance,
    max_lag,
    var_to_vma,
    yule_walker,
)


NO_FACTOR_WARNING = "There should be at least one factor for common component estimation!"


@dataclass
class IRFConfig:
    """Configuration of :func:`estimate_common_irf`.

    Parameters
    ----------
    q : int
        Number of unrestricted (dynamic) factors.
    factor_var_order : int, optional
        Fixed VAR order used for every block. If ``None`` the order of
        each block is selected by BIC.
    max_var_order : int, optional
        Largest order considered by the BIC. Defaults to
        ``min(max(1, ceil(10 * log10(n) / (q + 1)**2)), 10)``, capped at the
        largest lag of the autocovariance.
    trunc_lags : int, default 20
        Truncation lag of the VMA representation.
    n_perm : int, default 10
        Number of permutations, the first being the identity.
    n_jobs : int, optional
        Number of joblib workers. ``None`` or ``1`` runs sequentially.
    """

    q: int
    factor_var_order: int | None = None
    max_var_order: int | None = None
    trunc_lags: int = 20
    n_perm: int = 10
    n_jobs: int | None = None

    def __post_init__(self) -> None:
        if self.n_perm < 1:
            raise ValueError("n_perm must be at least 1")
        if self.trunc_lags < 0:
            raise ValueError("trunc_lags must be non-negative")
        if self.factor_var_order is not None and self.factor_var_order < 1:
            raise ValueError("factor_var_order must be at least 1")
        if self.max_var_order is not None and self.max_var_order < 1:
            raise ValueError("max_var_order must be at least 1")

    def resolved_max_var_order(self, n: int, max_lag: int | None = None) -> int:
        """Return the warm-up length / largest VAR order for ``n`` samples.

        The default order is capped at ``max_lag``, the number of lags held
        by the autocovariance, when given. Orders set explicitly are
        returned unchanged.
        """
        if self.factor_var_order is not None:
            return self.factor_var_order
        if self.max_var_order is not None:
            return self.max_var_order
        order = min(max(1, math.ceil(10 * math.log10(n) / (self.q + 1) ** 2)), 10)
        if max_lag is not None:
            order = min(order, max_lag)
        return order


@dataclass(frozen=True)
class PermutationFit:
    """Identified IRFs and shocks for a single permutation."""

    irf: np.ndarray
    shocks: np.ndarray
    var_orders: tuple[int, ...]


@dataclass
class IRFEstimate:
    """Permutation-averaged IRFs and shocks.

    Attributes
    ----------
    irf : np.ndarray
        Impulse responses of shape ``(p, q, trunc_lags + 2)``; slice 0
        holds the contemporaneous loadings.
    shocks : np.ndarray
        Identified common shocks of shape ``(q, n)``. The first
        ``max_var_order`` columns are ``NaN``.
    var_orders : list of tuple of int
        Block VAR orders used for each permutation.
    """

    irf: np.ndarray
    shocks: np.ndarray
    var_orders: list[tuple[int, ...]] = field(default_factory=list)

    @property
    def n_perm(self) -> int:
        return len(self.var_orders)


# ---------------------------------------------------------------------------
def draw_permutations(
    p: int, n_perm: int, rng: np.random.Generator | int | None = None
) -> np.ndarray:
    """Return ``n_perm`` permutations of ``0..p-1``, the first the identity."""

    rng = np.random.default_rng(rng)
    perms = np.empty((n_perm, p), dtype=int)
    perms[0] = np.arange(p)
    for i in range(1, n_perm):
        perms[i] = rng.permutation(p)
    return perms


# ---------------------------------------------------------------------------
def cholesky_identification(B0: np.ndarray) -> np.ndarray:
    """Return the rotation ``H`` making ``B0 @ H`` lower triangular.

    ``H = B0^{-1} L`` where ``L`` is the lower Cholesky factor of
    ``B0 B0'``, so ``B0 @ H = L`` has a positive diagonal. A zero ``B0``
    is returned unchanged.

    Raises
    ------
    numpy.linalg.LinAlgError
        If ``B0 B0'`` is not positive definite or ``B0`` is singular.
    """

    B0 = np.atleast_2d(B0)
    if np.all(B0 == 0):
        return B0.copy()
    L = np.linalg.cholesky(B0 @ B0.T)
    return np.linalg.solve(B0, L)


# ---------------------------------------------------------------------------
def fit_permutation(
    xx: np.ndarray,
    gamma_c: np.ndarray,
    perm: np.ndarray,
    q: int,
    max_var_order: int,
    trunc_lags: int,
    factor_var_order: int | None = None,
) -> PermutationFit:
    """Estimate identified IRFs and shocks for one ordering of the variables.

    Parameters
    ----------
    xx : ndarray, shape (p, n)
        Centred data.
    gamma_c : ndarray, shape (p, p, 2 * mm + 1)
        Autocovariance of the common component in the original ordering.
    perm : ndarray of int, shape (p,)
        Permutation of the variables; blocks are contiguous in the
        permuted ordering.
    q : int
        Number of common shocks.
    max_var_order : int
        Largest admissible VAR order, also the number of warm-up columns.
    trunc_lags : int
        Truncation lag of the VMA representation.
    factor_var_order : int, optional
        Fixed order for every block instead of BIC selection.
    """

    p, n = xx.shape
    gamma_perm = gamma_c[np.ix_(perm, perm)]
    blocks = block_partition(p, q)
    w = max_var_order

    # innovation proxy in the permuted ordering
    z = xx[perm].copy()
    z[:, :w] = np.nan
    coefs = []
    orders = []
    for block in blocks:
        pblock = perm[block]
        m = len(block)
        if factor_var_order is None:
            s = select_var_order(gamma_perm, block, n, max_var_order).order
        else:
            s = factor_var_order
        A = yule_walker(gamma_perm, block, s).A
        coefs.append(A)
        orders.append(s)
        for ell in range(1, s + 1):
            z[block, w:] -= A[:, (ell - 1) * m : ell * m] @ xx[pblock, w - ell : n - ell]

    zw = z[:, w:]
    zz = zw @ zw.T / (n - w)
    U, d, _ = np.linalg.svd(zz)
    U = U[:, :q]
    d = d[:q]
    R = U * np.sqrt(d)
    u = (U.T @ z) / np.sqrt(d)[:, None]

    irf = np.zeros((p, q, trunc_lags + 2))
    for block, A in zip(blocks, coefs):
        pblock = perm[block]
        Psi = var_to_vma(A, trunc_lags + 1)
        for ell in range(trunc_lags + 2):
            irf[pblock, :, ell] = Psi[:, :, ell] @ R[block]

    H = cholesky_identification(irf[:q, :, 0])
    irf = np.einsum("pql,qk->pkl", irf, H)
    shocks = H.T @ u
    return PermutationFit(irf=irf, shocks=shocks, var_orders=tuple(orders))


# ---------------------------------------------------------------------------
def aggregate_permutations(fits: list[PermutationFit]) -> IRFEstimate:
    """Average permutation-specific IRFs and shocks."""

    if not fits:
        raise ValueError("fits must not be empty")
    irf = np.mean(np.stack([f.irf for f in fits], axis=0), axis=0)
    shocks = np.mean(np.stack([f.shocks for f in fits], axis=0), axis=0)
    return IRFEstimate(irf=irf, shocks=shocks, var_orders=[f.var_orders for f in fits])


# ---------------------------------------------------------------------------
def estimate_common_irf(
    xx: np.ndarray,
    gamma_c: np.ndarray,
    config: IRFConfig,
    rng: np.random.Generator | int | None = None,
) -> IRFEstimate | None:
    """Estimate the blockwise VAR representation of the common component.

    Parameters
    ----------
    xx : ndarray, shape (p, n)
        Centred data.
    gamma_c : ndarray, shape (p, p, 2 * mm + 1)
        Autocovariance of the common component.
    config : IRFConfig
        Estimation settings.
    rng : Generator, int or None
        Source of the random permutations.

    Returns
    -------
    IRFEstimate or None
        ``None`` (with a warning) if ``config.q < 1``.

    Raises
    ------
    ValueError
        If the shapes are inconsistent or a VAR order set in ``config``
        exceeds the lags held by ``gamma_c``.
    numpy.linalg.LinAlgError
        If a Yule-Walker system is singular or a prediction error
        covariance is not positive definite.
    """

    xx = np.asarray(xx, dtype=float)
    if xx.ndim != 2:
        raise ValueError("xx must be a 2D array of shape (p, n)")
    gamma_c = check_autocovariance(gamma_c, "gamma_c")
    p, n = xx.shape
    if gamma_c.shape[0] != p:
        raise ValueError("gamma_c must match the number of variables in xx")

    if config.q < 1:
        warnings.warn(NO_FACTOR_WARNING)
        return None

    mm = max_lag(gamma_c)
    if mm < 1:
        raise ValueError("gamma_c must hold at least one lag")
    name = "factor_var_order" if config.factor_var_order is not None else "max_var_order"
    value = getattr(config, name)
    if value is not None and value > mm:
        raise ValueError(f"{name} = {value} exceeds the {mm} lags available in gamma_c")
    max_var_order = config.resolved_max_var_order(n, mm)
    if max_var_order >= n:
        raise ValueError("max_var_order must be smaller than the sample size")
    perms = draw_permutations(p, config.n_perm, rng)

    def _fit(perm):
        return fit_permutation(
            xx,
            gamma_c,
            perm,
            config.q,
            max_var_order,
            config.trunc_lags,
            config.factor_var_order,
        )

    if config.n_jobs is not None and config.n_jobs != 1:
        fits = Parallel(n_jobs=config.n_jobs)(delayed(_fit)(perm) for perm in perms)
    else:
        fits = [_fit(perm) for perm in perms]
    return aggregate_permutations(fits)
