"""
Synthetic observation tables for demos and tests.

Ratings are a linear function of the channels plus Gaussian noise, clipped to
the 0-10 rating scale.
"""

from typing import Sequence

import numpy as np
import pandas as pd

from .config import CHANNELS

VALENCE_WEIGHTS = np.array([0.02, 0.5, -0.3, 0.1, 0.4, 0.8, -0.9, 0.0])
AROUSAL_WEIGHTS = np.array([0.05, 0.2, 0.9, 0.3, -0.2, 0.1, 0.2, 0.6])


def make_synthetic_observations(
    n_subjects: int = 6,
    videos: Sequence[str] = ("amusing-1", "boring-1", "relaxed-1", "scary-1"),
    n_samples: int = 120,
    noise: float = 0.5,
    seed: int = 42,
    sample_period: float = 0.05,
) -> pd.DataFrame:
    """
    Rows for every (subject, video) pair with the full observation schema.

    fold alternates by subject (0, 1, 0, ...).
    """
    rng = np.random.default_rng(seed)

    frames = []
    for subject in range(1, n_subjects + 1):
        offset = rng.normal(0, 0.3, len(CHANNELS))
        for video in videos:
            X = rng.normal(0, 1, (n_samples, len(CHANNELS))).cumsum(axis=0) * 0.1 + offset
            valence = 5 + X @ VALENCE_WEIGHTS + rng.normal(0, noise, n_samples)
            arousal = 5 + X @ AROUSAL_WEIGHTS + rng.normal(0, noise, n_samples)

            df = pd.DataFrame(X, columns=CHANNELS)
            df.insert(0, "time", np.arange(n_samples) * sample_period)
            df.insert(0, "video", video)
            df.insert(0, "subject", subject)
            df["valence"] = np.clip(valence, 0, 10)
            df["arousal"] = np.clip(arousal, 0, 10)
            df["fold"] = (subject - 1) % 2
            frames.append(df)

    return pd.concat(frames, ignore_index=True)
