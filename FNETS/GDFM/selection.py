"""Order and factor-number selection for the GDFM common component.

This module provides the BIC-type criterion used to choose the VAR order
of each block in the blockwise VAR representation, and the eigenvalue
ratio rule of Ahn and Horenstein (2013) used to choose the number of
restricted factors.
"""

from __future__ import annotations

from dataclasses import dataclass
import numpy as np

from .utils import yule_walker


@dataclass
class OrderSelectionResult:
    """Result of the blockwise VAR order selection.

    Attributes
    ----------
    order : int
        Selected VAR order (always at least 1).
    bic : np.ndarray
        Criterion values for orders ``0..max_var_order``. Entry 0 is the
        no-dynamics reference ``log det Gamma(0)`` and is never selected.
    """

    order: int
    bic: np.ndarray


def _logdet_pd(G: np.ndarray, what: str) -> float:
    try:
        L = np.linalg.cholesky(0.5 * (G + G.T))
    except np.linalg.LinAlgError as err:
        raise np.linalg.LinAlgError(f"{what} is not positive definite") from err
    return float(2 * np.sum(np.log(np.diag(L))))


def _logdet_reference(G: np.ndarray) -> float:
    # log det of the no-dynamics reference; NaN when det(G) < 0
    sign, logdet = np.linalg.slogdet(G)
    if sign > 0:
        return float(logdet)
    return -np.inf if sign == 0 else np.nan


def var_order_bic(
    gamma: np.ndarray, block: np.ndarray, n: int, max_var_order: int = 5
) -> np.ndarray:
    """Return the BIC-type criterion for orders ``0..max_var_order``.

    For order ``s`` the criterion is

    ``log det G0 + 2 * log(n) * s * m**2 / n``

    where ``G0 = Gamma(0) - B A' - A B' + A C A'`` is the one-step
    prediction error covariance of the block VAR(``s``) and ``m`` the
    block size. Entry 0 is ``log det Gamma(0)``, kept as a reference
    only; it is ``NaN`` when the determinant is negative.

    Raises
    ------
    numpy.linalg.LinAlgError
        If a prediction error covariance is not positive definite or a
        Yule-Walker system is singular.
    """

    block = np.asarray(block, dtype=int)
    m = len(block)
    G_zero = gamma[np.ix_(block, block)][:, :, 0]

    bic = np.zeros(max_var_order + 1)
    bic[0] = _logdet_reference(G_zero)
    for s in range(1, max_var_order + 1):
        yw = yule_walker(gamma, block, s)
        G0 = G_zero - yw.B @ yw.A.T - yw.A @ yw.B.T + yw.A @ yw.C @ yw.A.T
        bic[s] = (
            _logdet_pd(G0, f"Prediction error covariance at order {s}")
            + 2 * np.log(n) * s * m**2 / n
        )
    return bic


def select_var_order(
    gamma: np.ndarray, block: np.ndarray, n: int, max_var_order: int = 5
) -> OrderSelectionResult:
    """Select the block VAR order minimising :func:`var_order_bic`."""

    if max_var_order < 1:
        raise ValueError("max_var_order must be at least 1")
    bic = var_order_bic(gamma, block, n, max_var_order)
    order = int(np.argmin(bic[1:])) + 1
    return OrderSelectionResult(order=order, bic=bic)


# ---------------------------------------------------------------------------
# Number of restricted factors
# ---------------------------------------------------------------------------


def default_max_r(n: int, p: int, q: int) -> int:
    """Default upper bound for the number of restricted factors."""
    return max(q, min(50, int(round(np.sqrt(min(n, p))))))


def eigenvalue_ratio(eigenvalues: np.ndarray, q: int, max_r: int) -> int:
    """Return the number of restricted factors by the eigenvalue ratio rule.

    The ratios ``d_k / d_{k+1}`` of consecutive eigenvalues (sorted in
    decreasing order, 1-based ``k``) are compared for ``k = q..max_r``
    and the maximising ``k`` is returned. The result is never smaller
    than ``q``.
    """

    d = np.asarray(eigenvalues, dtype=float)
    q = max(int(q), 1)
    # need d_{k+1} for the largest k
    max_r = min(int(max_r), d.size - 1)
    if max_r < q:
        return q
    with np.errstate(divide="ignore", invalid="ignore"):
        ratios = d[q - 1 : max_r] / d[q : max_r + 1]
    # 0 / 0 between trailing zero eigenvalues is skipped
    ratios = np.where(np.isnan(ratios), -np.inf, ratios)
    return int(np.argmax(ratios)) + q
