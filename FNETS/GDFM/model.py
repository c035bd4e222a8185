"""Model representation for the GDFM common component."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import numpy as np

from .irf import IRFConfig, IRFEstimate, estimate_common_irf
from .utils import check_autocovariance, max_lag


class FactorType(str, Enum):
    """Representation in which the common component was estimated."""

    RESTRICTED = "restricted"  # static factors, finite-dimensional factor space
    UNRESTRICTED = "unrestricted"  # dynamic factors, blockwise VAR / IRF


@dataclass
class Autocovariance:
    """Autocovariances of the data and of its common component.

    Both tensors have shape ``(p, p, 2 * mm + 1)``; slice ``h`` holds
    ``E[x_t x_{t+h}']`` for ``h = 0..mm`` and slice ``2 * mm + 1 - h``
    its transpose. They are produced by an external spectral estimator.
    """

    gamma_x: np.ndarray
    gamma_c: np.ndarray

    def __post_init__(self) -> None:
        self.gamma_x = check_autocovariance(self.gamma_x, "gamma_x")
        self.gamma_c = check_autocovariance(self.gamma_c, "gamma_c")
        if self.gamma_x.shape[0] != self.gamma_c.shape[0]:
            raise ValueError("gamma_x and gamma_c must have the same dimension")

    @property
    def p(self) -> int:
        return self.gamma_c.shape[0]

    @property
    def max_lag(self) -> int:
        """Largest lag available in ``gamma_c``."""
        return max_lag(self.gamma_c)


@dataclass
class GDFMModel:
    """Fitted common component of a generalised dynamic factor model.

    Parameters
    ----------
    mean_x : np.ndarray
        Per-variable mean of length ``p`` used for centring.
    q : int
        Number of unrestricted factors (number of static factors when
        ``factor`` is restricted).
    factor : FactorType, optional
        Representation of the factor space. ``None`` means the model has
        no common component.
    acv : Autocovariance, optional
        Autocovariances of the data and of the common component.
    loadings : np.ndarray, optional
        IRF tensor ``(p, q, trunc_lags + 2)`` of the unrestricted
        representation; slice 0 holds the contemporaneous loadings.
    factors : np.ndarray, optional
        Identified common shocks ``(q, n)``.
    """

    mean_x: np.ndarray
    q: int
    factor: FactorType | None = FactorType.UNRESTRICTED
    acv: Autocovariance | None = None
    loadings: np.ndarray | None = None
    factors: np.ndarray | None = None

    def __post_init__(self) -> None:
        self.mean_x = np.asarray(self.mean_x, dtype=float).reshape(-1)
        if isinstance(self.factor, str):
            self.factor = FactorType(self.factor)
        if self.acv is not None and self.acv.p != self.mean_x.size:
            raise ValueError("mean_x and acv must have the same dimension")

    @property
    def p(self) -> int:
        return self.mean_x.size

    def center(self, x: np.ndarray) -> np.ndarray:
        """Return ``x`` (shape ``(p, n)``) with ``mean_x`` removed."""
        x = np.asarray(x, dtype=float)
        if x.ndim != 2 or x.shape[0] != self.p:
            raise ValueError(f"x must have shape ({self.p}, n)")
        return x - self.mean_x[:, None]

    def estimate_irf(
        self,
        x: np.ndarray,
        config: IRFConfig | None = None,
        rng: np.random.Generator | int | None = None,
    ) -> IRFEstimate | None:
        """Estimate and store the blockwise IRFs and common shocks.

        Uses ``acv.gamma_c`` and the centred data. Nothing is stored
        when ``q < 1``.
        """

        if self.acv is None:
            raise RuntimeError("Model has no autocovariance estimates")
        if config is None:
            config = IRFConfig(q=self.q)
        est = estimate_common_irf(self.center(x), self.acv.gamma_c, config, rng)
        if est is not None:
            self.loadings = est.irf
            self.factors = est.shocks
        return est
