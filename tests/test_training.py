import dataclasses

import numpy as np
import pandas as pd
import pytest

from conftest import make_frame
from va_pipeline.config import CHANNELS
from va_pipeline.module2_training import (
    FittedModel,
    RankDeficientWarning,
    fit_models,
    fit_ols,
    mean_reference,
    predict,
)


def test_noise_free_fit_reproduces_targets(linear_frame):
    models = fit_models(linear_frame)

    for target in ("valence", "arousal"):
        pred = predict(models[target], linear_frame)
        np.testing.assert_allclose(pred, linear_frame[target], atol=1e-8)
        assert models[target].is_full_rank


def test_noise_free_fit_recovers_coefficients(linear_frame):
    model = fit_ols(linear_frame, "arousal")

    assert model.intercept == pytest.approx(1.5)
    np.testing.assert_allclose(model.coefficients, np.arange(1, len(CHANNELS) + 1) * 0.1, atol=1e-8)
    assert model.channels == tuple(CHANNELS)
    assert model.n_train == len(linear_frame)


def test_ecg_only_scenario(ecg_only_frame):
    with pytest.warns(RankDeficientWarning):
        model = fit_ols(ecg_only_frame, "arousal")

    X = np.zeros((1, len(CHANNELS)))
    X[0, 0] = 3.0
    test_df = make_frame(X, valence=[5.0], arousal=[7.0])

    assert predict(model, test_df)[0] == pytest.approx(7.0, abs=1e-9)
    assert model.coefficients[0] == pytest.approx(2.0)
    assert all(c == pytest.approx(0.0, abs=1e-12) for c in model.coefficients[1:])


def test_underdetermined_fit_uses_centred_minimum_norm_slopes(linear_frame):
    few = linear_frame.head(3)

    with pytest.warns(RankDeficientWarning):
        first = fit_ols(few, "valence")
    with pytest.warns(RankDeficientWarning):
        second = fit_ols(few, "valence")

    assert first == second
    assert first.rank == 3
    assert not first.is_full_rank

    X = few[CHANNELS].to_numpy(dtype=float)
    y = few["valence"].to_numpy(dtype=float)
    Xc = X - X.mean(axis=0)
    expected_coef = np.linalg.pinv(Xc) @ (y - y.mean())
    expected_intercept = y.mean() - X.mean(axis=0) @ expected_coef

    np.testing.assert_allclose(first.coefficients, expected_coef, atol=1e-8)
    assert first.intercept == pytest.approx(expected_intercept, abs=1e-8)
    # still interpolates the training rows
    np.testing.assert_allclose(predict(first, few), few["valence"], atol=1e-8)


def test_fitted_model_is_immutable(linear_frame):
    model = fit_ols(linear_frame, "valence")
    with pytest.raises(dataclasses.FrozenInstanceError):
        model.intercept = 0.0


def test_fit_rejects_bad_input(linear_frame):
    with pytest.raises(ValueError, match="Unknown target"):
        fit_ols(linear_frame, "dominance")
    with pytest.raises(ValueError, match="Empty"):
        fit_ols(linear_frame.iloc[0:0], "valence")
    with pytest.raises(ValueError, match="skt"):
        fit_ols(linear_frame.drop(columns=["skt"]), "valence")

    bad = linear_frame.copy()
    bad.loc[2, "ecg"] = np.inf
    with pytest.raises(ValueError):
        fit_ols(bad, "valence")


def test_predict_is_row_wise(linear_frame):
    model = fit_ols(linear_frame, "arousal")

    full = predict(model, linear_frame)
    single = np.array([predict(model, linear_frame.iloc[[i]])[0] for i in range(len(linear_frame))])
    reversed_rows = predict(model, linear_frame.iloc[::-1])

    np.testing.assert_allclose(full, single)
    np.testing.assert_allclose(full, reversed_rows[::-1])


def test_as_dict(linear_frame):
    info = fit_ols(linear_frame, "valence").as_dict()
    assert info["target"] == "valence"
    assert set(info["coefficients"]) == set(CHANNELS)
    assert info["full_rank"] is True


def test_mean_reference(linear_frame):
    assert mean_reference(linear_frame, "valence") == pytest.approx(linear_frame["valence"].mean())
    with pytest.raises(ValueError):
        mean_reference(pd.DataFrame(columns=["valence"]), "valence")
