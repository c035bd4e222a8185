from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Sequence
import warnings

import numpy as np

from ..GDFM.irf import NO_FACTOR_WARNING
from ..GDFM.model import FactorType, GDFMModel
from ..GDFM.selection import default_max_r, eigenvalue_ratio
from ..GDFM.utils import check_autocovariance, max_lag


FactorNumberSelector = Callable[..., Sequence[int]]

R_METHODS = ("ic", "er")


@dataclass
class CommonForecast:
    """In-sample estimate and forecasts of the common component.

    Attributes
    ----------
    in_sample : np.ndarray
        Array ``(n, p)``; rows without an estimate are ``NaN``.
    forecast : np.ndarray
        Array ``(n_ahead, p)``; row ``h - 1`` is the ``h``-step forecast.
    n_ahead : int
        Forecast horizon actually used.
    r : int, optional
        Number of restricted factors (restricted forecasts only).
    """

    in_sample: np.ndarray
    forecast: np.ndarray
    n_ahead: int
    r: int | None = None


def _check_data(xx: np.ndarray) -> np.ndarray:
    xx = np.asarray(xx, dtype=float)
    if xx.ndim != 2:
        raise ValueError("xx must be a 2D array of shape (p, n)")
    return xx


def _check_horizon(n_ahead: int) -> int:
    n_ahead = int(n_ahead)
    if n_ahead < 0:
        raise ValueError("n_ahead must be non-negative")
    return n_ahead


# ---------------------------------------------------------------------------
def restricted_predict(
    xx: np.ndarray,
    gamma_x: np.ndarray,
    gamma_c: np.ndarray,
    q: int,
    r: int | None = None,
    max_r: int | None = None,
    r_method: str | None = None,
    n_ahead: int = 1,
    factor_number_selector: FactorNumberSelector | None = None,
) -> CommonForecast:
    """Forecast the common component under a restricted (static) representation.

    The data are projected on the ``r`` leading eigenvectors of
    ``gamma_x[:, :, 0]`` and the ``h``-step forecast is
    ``gamma_c[:, :, h]' U_r D_r^{-1} U_r' x_n`` (Forni, Hallin, Lippi and
    Reichlin, 2005).

    Parameters
    ----------
    xx : ndarray, shape (p, n)
        Centred data.
    gamma_x, gamma_c : ndarray, shape (p, p, 2 * mm + 1)
        Autocovariances of the data and of the common component.
    q : int
        Number of unrestricted factors, a lower bound for ``r``.
    r : int, optional
        Number of restricted factors, clamped to ``q <= r <= p``. Selected
        by ``r_method`` if ``None``.
    max_r : int, optional
        Largest number of restricted factors considered.
    r_method : {"ic", "er"}, optional
        ``"ic"`` uses the information criterion returned by
        ``factor_number_selector``; ``"er"`` the eigenvalue ratio.
    n_ahead : int, default 1
        Forecast horizon, at most the largest lag of ``gamma_c``.
    factor_number_selector : callable, optional
        ``selector(xx, covx=..., q_max=...)`` returning a sequence of
        factor number estimates; the fifth one is used. Required for
        ``r_method="ic"``.
    """

    xx = _check_data(xx)
    gamma_x = check_autocovariance(gamma_x, "gamma_x")
    gamma_c = check_autocovariance(gamma_c, "gamma_c")
    n_ahead = _check_horizon(n_ahead)
    p, n = xx.shape
    if max_r is None:
        max_r = default_max_r(n, p, q)
    max_r = min(max_r, p)

    mm = max_lag(gamma_c)
    if n_ahead > mm:
        warnings.warn(f"At most {mm}-step ahead forecast is available!")
        n_ahead = mm

    U, d, _ = np.linalg.svd(gamma_x[:, :, 0])
    if r is None:
        if r_method == "ic":
            if factor_number_selector is None:
                raise ValueError("r_method='ic' requires a factor_number_selector")
            q_hat = factor_number_selector(xx, covx=gamma_x[:, :, 0], q_max=max_r)
            r = int(q_hat[4])
        elif r_method == "er":
            r = eigenvalue_ratio(d, q, max_r)
        else:
            raise ValueError(f"r_method must be one of {R_METHODS} when r is None")
    r = min(max(q, int(r)), p, U.shape[1])

    U_r = U[:, :r]
    in_sample = U_r @ (U_r.T @ xx)
    fc = np.zeros((n_ahead, p))
    if n_ahead >= 1:
        proj_x = (U_r / d[:r]) @ (U_r.T @ xx[:, n - 1])
        for h in range(1, n_ahead + 1):
            fc[h - 1] = gamma_c[:, :, h].T @ proj_x

    return CommonForecast(in_sample=in_sample.T, forecast=fc, n_ahead=n_ahead, r=r)


# ---------------------------------------------------------------------------
def unrestricted_predict(
    xx: np.ndarray,
    irf: np.ndarray,
    shocks: np.ndarray,
    n_ahead: int = 1,
) -> CommonForecast:
    """Forecast the common component from its IRFs and identified shocks.

    The ``h``-step forecast only uses shocks observed up to time ``n``:
    ``sum_{j=0}^{L-h} irf[:, :, j + h] u_{n-j}`` where ``L`` is the
    truncation lag of ``irf``.
    """

    xx = _check_data(xx)
    n_ahead = _check_horizon(n_ahead)
    irf = np.asarray(irf, dtype=float)
    shocks = np.atleast_2d(np.asarray(shocks, dtype=float))
    p, n = xx.shape
    if irf.ndim != 3 or irf.shape[0] != p:
        raise ValueError("irf must have shape (p, q, L + 1)")
    if shocks.shape != (irf.shape[1], n):
        raise ValueError("shocks must have shape (q, n)")

    L = irf.shape[2] - 1
    if n_ahead > L:
        warnings.warn(f"At most {L}-step ahead forecast is available!")
        n_ahead = L

    in_sample = np.zeros((p, n))
    in_sample[:, :L] = np.nan
    for ell in range(L + 1):
        in_sample[:, L:] += irf[:, :, ell] @ shocks[:, L - ell : n - ell]

    fc = np.zeros((n_ahead, p))
    for h in range(1, n_ahead + 1):
        for j in range(L - h + 1):
            fc[h - 1] += irf[:, :, j + h] @ shocks[:, n - 1 - j]

    return CommonForecast(in_sample=in_sample.T, forecast=fc, n_ahead=n_ahead)


# ---------------------------------------------------------------------------
def common_predict(
    model: GDFMModel,
    x: np.ndarray,
    n_ahead: int = 1,
    fc_restricted: bool = True,
    r: int | str = "ic",
    factor_number_selector: FactorNumberSelector | None = None,
) -> CommonForecast:
    """Forecast the factor-driven common component.

    Parameters
    ----------
    model : GDFMModel
        Fitted model; ``model.factor`` selects the representation.
    x : ndarray, shape (p, n)
        Data, centred with ``model.mean_x``.
    n_ahead : int, default 1
        Forecast horizon.
    fc_restricted : bool, default True
        Whether to forecast with the restricted representation. Models
        fitted with a restricted factor space always forecast restricted.
    r : int or {"ic", "er"}, default "ic"
        Number of restricted factors or the method selecting it.
    factor_number_selector : callable, optional
        Passed to :func:`restricted_predict` for ``r="ic"``.

    Returns
    -------
    CommonForecast
        All-zero arrays when the model has no common component.
    """

    xx = model.center(x)
    n_ahead = _check_horizon(n_ahead)
    p, n = xx.shape

    if isinstance(r, str):
        if r not in R_METHODS:
            raise ValueError(f"r must be an integer or one of {R_METHODS}")
        r_method, r = r, None
    else:
        r_method = None

    pre = CommonForecast(
        in_sample=np.zeros((n, p)), forecast=np.zeros((n_ahead, p)), n_ahead=n_ahead
    )
    if model.factor is None:
        return pre
    if model.q < 1:
        warnings.warn(NO_FACTOR_WARNING)
        return pre

    if model.acv is None and (fc_restricted or model.factor is FactorType.RESTRICTED):
        raise ValueError("Restricted forecasting requires model.acv")

    if model.factor is FactorType.UNRESTRICTED:
        if fc_restricted:
            return restricted_predict(
                xx,
                model.acv.gamma_x,
                model.acv.gamma_c,
                q=model.q,
                r=r,
                r_method=r_method,
                n_ahead=n_ahead,
                factor_number_selector=factor_number_selector,
            )
        if model.loadings is None or model.factors is None:
            raise ValueError("Unrestricted forecasting requires estimated loadings and factors")
        return unrestricted_predict(xx, model.loadings, model.factors, n_ahead=n_ahead)

    if not fc_restricted:
        warnings.warn(
            "fc_restricted is being set to True, as the model is generated "
            "with a restricted factor representation"
        )
    return restricted_predict(
        xx,
        model.acv.gamma_x,
        model.acv.gamma_c,
        q=model.q,
        r=model.q,
        r_method=r_method,
        n_ahead=n_ahead,
        factor_number_selector=factor_number_selector,
    )
