import numpy as np

from FNETS.forecast import common_predict
from FNETS.GDFM import Autocovariance, FactorType, GDFMModel, IRFConfig

from conftest import sample_autocovariance, sim_restricted, sim_unrestricted


def generate_panel(seed, n=500, p=50, q=2, noise_scale=0.5):
    rng = np.random.default_rng(seed)
    sim = sim_restricted(n + 1, p, q, rng)
    chi = sim["chi"]
    x = chi + noise_scale * rng.normal(size=chi.shape)
    return x[:, :n], chi[:, :n], chi[:, n]


def fit_model(x, chi, factor=FactorType.UNRESTRICTED, q=2, mm=5):
    mean_x = x.mean(axis=1)
    gamma_x = sample_autocovariance(x, mm)
    gamma_c = sample_autocovariance(chi, mm)
    return GDFMModel(mean_x=mean_x, q=q, factor=factor, acv=Autocovariance(gamma_x, gamma_c))


def test_restricted_forecast_beats_zero():
    mse_fc = []
    mse_zero = []
    for seed in range(20):
        x, chi, chi_next = generate_panel(seed)
        model = fit_model(x, chi)
        out = common_predict(model, x, n_ahead=1, r=4)
        target = chi_next - chi.mean(axis=1)
        mse_fc.append(np.mean((out.forecast[0] - target) ** 2))
        mse_zero.append(np.mean(target**2))
    assert np.mean(mse_fc) < np.mean(mse_zero)


def test_unrestricted_pipeline():
    rng = np.random.default_rng(0)
    chi = sim_unrestricted(300, 20, 2, rng)["chi"]
    x = chi + 0.5 * rng.normal(size=chi.shape)
    # a small noise floor keeps every block of gamma_c full rank
    model = fit_model(x, chi + 0.2 * rng.normal(size=chi.shape))
    model.estimate_irf(x, IRFConfig(q=2, trunc_lags=10, n_perm=3), rng=0)
    out = common_predict(model, x, n_ahead=3, fc_restricted=False)
    assert out.forecast.shape == (3, 20)
    assert out.in_sample.shape == (300, 20)
    assert np.all(np.isfinite(out.forecast))
    # the first trunc_lags + 1 rows have no in-sample estimate
    assert np.all(np.isnan(out.in_sample[:11]))


def test_restricted_model_pipeline():
    x, chi, _ = generate_panel(1, n=300, p=20)
    model = fit_model(x, chi, factor=FactorType.RESTRICTED, q=4)
    out = common_predict(model, x, n_ahead=2)
    assert out.r == 4
    assert out.forecast.shape == (2, 20)
    assert np.all(np.isfinite(out.in_sample))
