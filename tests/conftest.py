"""Shared pytest fixtures for FNETS tests.

This module provides common fixtures used across all test modules,
including simulators of the common component, population and sample
autocovariances, and model factories.
"""

import numpy as np
import pytest

from FNETS.GDFM import Autocovariance, FactorType, GDFMModel, var_to_vma

# ---------------------------------------------------------------------------
# Data generation helpers
# ---------------------------------------------------------------------------


def sample_autocovariance(x: np.ndarray, mm: int) -> np.ndarray:
    """Return sample autocovariances of ``x`` (shape ``(p, n)``).

    Slice ``h`` holds ``sum_t x_t x_{t+h}' / n`` for ``h = 0..mm`` and
    slice ``2 * mm + 1 - h`` its transpose.
    """
    p, n = x.shape
    xx = x - x.mean(axis=1, keepdims=True)
    gamma = np.zeros((p, p, 2 * mm + 1))
    for h in range(mm + 1):
        G = xx[:, : n - h] @ xx[:, h:].T / n
        gamma[:, :, h] = G
        if h > 0:
            gamma[:, :, 2 * mm + 1 - h] = G.T
    return gamma


def var_population_autocovariance(A: list, Sigma: np.ndarray, mm: int, n_terms: int = 400) -> np.ndarray:
    """Return population autocovariances of a stable VAR process.

    Parameters
    ----------
    A : list of ndarray
        Coefficient matrices ``A_1, ..., A_s``.
    Sigma : ndarray
        Innovation covariance.
    mm : int
        Largest lag stored.
    """
    m = Sigma.shape[0]
    s = len(A)
    F = np.zeros((m * s, m * s))
    F[:m] = np.hstack(A)
    if s > 1:
        F[m:, :-m] = np.eye(m * (s - 1))
    S = np.zeros((m * s, m * s))
    S[:m, :m] = Sigma

    G0 = np.zeros_like(S)
    Fk = np.eye(m * s)
    for _ in range(n_terms):
        G0 += Fk @ S @ Fk.T
        Fk = Fk @ F

    gamma = np.zeros((m, m, 2 * mm + 1))
    Gh = G0.copy()
    for h in range(mm + 1):
        gamma[:, :, h] = Gh[:m, :m]
        if h > 0:
            gamma[:, :, 2 * mm + 1 - h] = Gh[:m, :m].T
        Gh = Gh @ F.T
    return gamma


def simulate_var(A: list, n: int, rng: np.random.Generator, burnin: int = 100) -> np.ndarray:
    """Simulate ``n`` observations ``(m, n)`` of a VAR with unit innovations."""
    m = A[0].shape[0]
    s = len(A)
    e = rng.normal(size=(m, n + burnin))
    x = np.zeros((m, n + burnin))
    for t in range(n + burnin):
        x[:, t] = e[:, t]
        for l in range(1, min(s, t) + 1):
            x[:, t] += A[l - 1] @ x[:, t - l]
    return x[:, burnin:]


def sim_restricted(
    n: int, p: int, q: int, rng: np.random.Generator, lags: int = 1, burnin: int = 100
) -> dict:
    """Simulate a common component with a restricted representation.

    Factors follow a VAR(1) driven by ``q`` shocks and are loaded with
    ``lags`` lags, giving ``r = q * (lags + 1)`` static factors.

    Returns
    -------
    dict
        Dictionary with keys: chi, q, r.
    """
    r = q * (lags + 1)
    uu = rng.normal(size=(q, n + burnin))
    D0 = rng.uniform(0, 0.3, size=(q, q))
    np.fill_diagonal(D0, rng.uniform(0.5, 0.8, size=q))
    D = 0.7 * D0 / np.linalg.norm(D0, 2)

    f = np.zeros((q, n + burnin))
    f[:, 0] = uu[:, 0]
    for t in range(1, n + burnin):
        f[:, t] = D @ f[:, t - 1] + uu[:, t]
    f = f[:, burnin - lags :]

    loadings = rng.normal(size=(p, r))
    chi = np.zeros((p, n))
    for ii in range(lags + 1):
        chi += loadings[:, ii * q : (ii + 1) * q] @ f[:, lags - ii : lags - ii + n]
    return {"chi": chi, "q": q, "r": r}


def sim_unrestricted(n: int, p: int, q: int, rng: np.random.Generator) -> dict:
    """Simulate a common component without a restricted representation.

    Each variable loads every shock through a scalar AR(1) filter
    ``alpha / (1 - a L)``.

    Returns
    -------
    dict
        Dictionary with keys: chi, q.
    """
    trunc_lags = min(20, round(n / np.log(n)))
    uu = rng.normal(size=(n + trunc_lags, q))
    a = rng.uniform(-1, 1, size=(p, q))
    alpha = rng.uniform(-0.8, 0.8, size=(p, q))
    chi = np.zeros((p, n))
    for i in range(p):
        for j in range(q):
            coeffs = alpha[i, j] * var_to_vma(np.array([[a[i, j]]]), trunc_lags).ravel()
            chi[i] += np.convolve(uu[:, j], coeffs, mode="valid")
    return {"chi": chi, "q": q}


# ---------------------------------------------------------------------------
# Data fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def rng():
    """Provide a seeded random number generator for reproducibility."""
    return np.random.default_rng(42)


@pytest.fixture
def small_dims():
    """Small dimensions for fast tests."""
    return {"n": 200, "p": 9, "q": 2, "mm": 5}


@pytest.fixture
def unrestricted_data(rng, small_dims):
    """Small unrestricted common component with its autocovariance."""
    sim = sim_unrestricted(small_dims["n"], small_dims["p"], small_dims["q"], rng)
    chi = sim["chi"]
    return {
        "chi": chi,
        "q": sim["q"],
        "gamma_c": sample_autocovariance(chi, small_dims["mm"]),
    }


@pytest.fixture
def restricted_data(rng, small_dims):
    """Small restricted common component plus idiosyncratic noise."""
    sim = sim_restricted(small_dims["n"], small_dims["p"], small_dims["q"], rng)
    chi = sim["chi"]
    x = chi + 0.5 * rng.normal(size=chi.shape)
    return {
        "x": x,
        "chi": chi,
        "q": sim["q"],
        "r": sim["r"],
        "gamma_x": sample_autocovariance(x, small_dims["mm"]),
        "gamma_c": sample_autocovariance(chi, small_dims["mm"]),
    }


# ---------------------------------------------------------------------------
# Model fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def unrestricted_model(restricted_data):
    """An unrestricted GDFMModel without estimated IRFs."""
    x = restricted_data["x"]
    return GDFMModel(
        mean_x=x.mean(axis=1),
        q=restricted_data["q"],
        factor=FactorType.UNRESTRICTED,
        acv=Autocovariance(restricted_data["gamma_x"], restricted_data["gamma_c"]),
    )


@pytest.fixture
def restricted_model(restricted_data):
    """A restricted GDFMModel."""
    x = restricted_data["x"]
    return GDFMModel(
        mean_x=x.mean(axis=1),
        q=restricted_data["q"],
        factor=FactorType.RESTRICTED,
        acv=Autocovariance(restricted_data["gamma_x"], restricted_data["gamma_c"]),
    )
