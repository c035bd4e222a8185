"""Blockwise VAR utilities for the generalised dynamic factor model."""

from __future__ import annotations

from dataclasses import dataclass
import numpy as np


@dataclass(frozen=True)
class YuleWalkerSystem:
    """Solution of the block Yule-Walker equations ``A C = B``.

    Attributes
    ----------
    A : np.ndarray
        VAR coefficients of shape ``(m, m * order)``; column group ``l``
        holds the lag ``l + 1`` coefficient matrix.
    B : np.ndarray
        Stacked lag ``1..order`` cross-covariances, shape ``(m, m * order)``.
    C : np.ndarray
        Block-Toeplitz autocovariance matrix, shape
        ``(m * order, m * order)``.
    """

    A: np.ndarray
    B: np.ndarray
    C: np.ndarray

    @property
    def order(self) -> int:
        return self.A.shape[1] // self.A.shape[0]


def check_autocovariance(gamma: np.ndarray, name: str = "gamma") -> np.ndarray:
    """Return ``gamma`` as a float array after validating its shape.

    Autocovariance tensors have shape ``(p, p, 2 * mm + 1)`` with lag ``h``
    stored at slice ``h`` for ``h = 0..mm``.
    """

    gamma = np.asarray(gamma, dtype=float)
    if gamma.ndim != 3:
        raise ValueError(f"{name} must be a 3D array")
    if gamma.shape[0] != gamma.shape[1]:
        raise ValueError(f"{name} must have shape (p, p, 2 * mm + 1)")
    if gamma.shape[2] % 2 != 1:
        raise ValueError(f"{name} must have an odd number of lag slices")
    return gamma


def max_lag(gamma: np.ndarray) -> int:
    """Largest lag ``mm`` stored in an autocovariance tensor."""
    return (gamma.shape[2] - 1) // 2


def block_partition(p: int, q: int) -> list[np.ndarray]:
    """Split ``0..p-1`` into contiguous blocks of size ``q + 1``.

    There are ``p // (q + 1)`` blocks and the last one absorbs the
    remainder, so every block has at least ``q + 1`` members.
    """

    if q < 0:
        raise ValueError("q must be non-negative")
    size = q + 1
    N = p // size
    if N < 1:
        raise ValueError(f"p = {p} is too small for blocks of size q + 1 = {size}")
    blocks = [np.arange(j * size, (j + 1) * size) for j in range(N - 1)]
    blocks.append(np.arange((N - 1) * size, p))
    return blocks


def var_to_vma(A: np.ndarray, trunc_lags: int) -> np.ndarray:
    """Invert a VAR coefficient block into a truncated VMA expansion.

    Parameters
    ----------
    A : array_like, shape (d, d * s)
        VAR coefficients ``[A_1, ..., A_s]``.
    trunc_lags : int
        Number of MA lags after the contemporaneous one.

    Returns
    -------
    ndarray
        Array of shape ``(d, d, trunc_lags + 1)`` whose slice ``l`` holds
        ``Psi_l = sum_{k=1}^{min(s, l)} Psi_{l-k} A_k`` with ``Psi_0 = I``.
    """

    A = np.atleast_2d(np.asarray(A, dtype=float))
    d = A.shape[0]
    if d == 0 or A.shape[1] == 0 or A.shape[1] % d != 0:
        raise ValueError("A must have shape (d, d * s) with s >= 1")
    if trunc_lags < 0:
        raise ValueError("trunc_lags must be non-negative")
    s = A.shape[1] // d

    Psi = np.zeros((d, d, trunc_lags + 1))
    Psi[:, :, 0] = np.eye(d)
    for ell in range(1, trunc_lags + 1):
        for k in range(1, min(ell, s) + 1):
            Psi[:, :, ell] += Psi[:, :, ell - k] @ A[:, (k - 1) * d : k * d]
    return Psi


def block_toeplitz(gamma_block: np.ndarray, order: int) -> np.ndarray:
    """Return the ``(m * order, m * order)`` block-Toeplitz matrix.

    Block ``(l, k)`` is ``Gamma(l - k)`` on and below the block diagonal
    and ``Gamma(k - l)'`` above it.
    """

    m = gamma_block.shape[0]
    C = np.zeros((m * order, m * order))
    for l in range(order):
        for k in range(order):
            if l >= k:
                G = gamma_block[:, :, l - k]
            else:
                G = gamma_block[:, :, k - l].T
            C[l * m : (l + 1) * m, k * m : (k + 1) * m] = G
    return C


def yule_walker(gamma: np.ndarray, block: np.ndarray, order: int) -> YuleWalkerSystem:
    """Solve the Yule-Walker equations of a VAR(``order``) for one block.

    Parameters
    ----------
    gamma : ndarray, shape (p, p, 2 * mm + 1)
        Autocovariance tensor, already permuted if needed.
    block : array_like of int
        Row/column indices of the block.
    order : int
        VAR order, ``1 <= order <= mm``.

    Raises
    ------
    numpy.linalg.LinAlgError
        If the block-Toeplitz matrix is singular.
    """

    block = np.asarray(block, dtype=int)
    if order < 1:
        raise ValueError("order must be at least 1")
    if order > max_lag(gamma):
        raise ValueError(
            f"order {order} exceeds the {max_lag(gamma)} lags available in gamma"
        )
    g = gamma[np.ix_(block, block, np.arange(order + 1))]
    m = len(block)

    B = np.zeros((m, m * order))
    for l in range(order):
        B[:, l * m : (l + 1) * m] = g[:, :, l + 1].T
    C = block_toeplitz(g, order)
    # C is symmetric, so A C = B  <=>  C A' = B'
    A = np.linalg.solve(C, B.T).T
    return YuleWalkerSystem(A=A, B=B, C=C)
