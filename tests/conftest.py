import numpy as np
import pandas as pd
import pytest

from va_pipeline.config import CHANNELS, load_config
from va_pipeline.synthetic import make_synthetic_observations


def make_frame(X, valence, arousal, subject=1, video="amusing-1"):
    df = pd.DataFrame(X, columns=CHANNELS)
    df.insert(0, "time", np.arange(len(df)) * 0.05)
    df.insert(0, "video", video)
    df.insert(0, "subject", subject)
    df["valence"] = valence
    df["arousal"] = arousal
    df["fold"] = 0
    return df


@pytest.fixture
def linear_frame():
    """Noise-free ratings that are exact linear functions of the channels."""
    rng = np.random.default_rng(0)
    X = rng.normal(0, 1, (60, len(CHANNELS)))
    valence = 4.0 + X @ np.linspace(-1, 1, len(CHANNELS))
    arousal = 1.5 + X @ np.arange(1, len(CHANNELS) + 1) * 0.1
    return make_frame(X, valence, arousal)


@pytest.fixture
def ecg_only_frame():
    """arousal = 2*ecg + 1 with every other channel zero."""
    X = np.zeros((10, len(CHANNELS)))
    X[:, 0] = np.arange(10, dtype=float)
    return make_frame(X, valence=np.full(10, 5.0), arousal=2 * X[:, 0] + 1)


@pytest.fixture
def synthetic_frame():
    return make_synthetic_observations(
        n_subjects=2, videos=["amusing-1", "scary-2"], n_samples=20, noise=0.3, seed=7
    )


@pytest.fixture
def small_config():
    config = load_config()
    config["synthetic"] = {
        "n_subjects": 2,
        "videos": ["amusing-1", "scary-2"],
        "n_samples": 20,
        "noise": 0.3,
        "seed": 7,
    }
    config["plots"]["max_groups"] = 1
    return config
