"""
Module 2: Ordinary least-squares trainer

One independent linear model per rating (valence, arousal), each regressing the
rating on the physiological channels plus an intercept. No scaling, no
regularisation.
"""

import logging
import warnings
from dataclasses import dataclass
from typing import Dict, Sequence, Tuple

import numpy as np
import pandas as pd
from sklearn.linear_model import LinearRegression

from .config import CHANNELS, TARGETS

logger = logging.getLogger(__name__)


class RankDeficientWarning(UserWarning):
    """Design matrix [1 | X] does not have full column rank."""


@dataclass(frozen=True)
class FittedModel:
    target: str
    channels: Tuple[str, ...]
    intercept: float
    coefficients: Tuple[float, ...]
    n_train: int
    rank: int

    @property
    def is_full_rank(self) -> bool:
        return self.rank == len(self.channels) + 1

    def predict(self, df: pd.DataFrame) -> np.ndarray:
        return predict(self, df)

    def as_dict(self) -> dict:
        return {
            "target": self.target,
            "intercept": self.intercept,
            "coefficients": dict(zip(self.channels, self.coefficients)),
            "n_train": self.n_train,
            "rank": self.rank,
            "full_rank": self.is_full_rank,
        }


def _channel_matrix(df: pd.DataFrame, channels: Sequence[str]) -> np.ndarray:
    missing = [c for c in channels if c not in df.columns]
    if missing:
        raise ValueError(f"Missing channel columns {missing}")

    X = df[list(channels)].to_numpy(dtype=float)
    if not np.isfinite(X).all():
        raise ValueError("Channel columns contain NaN or infinite values")
    return X


def fit_ols(
    train_df: pd.DataFrame,
    target: str,
    channels: Sequence[str] = CHANNELS,
) -> FittedModel:
    """
    Fit target ~ intercept + channels by least squares.

    Rank-deficient designs (collinear or constant channels, fewer rows than
    predictors) emit RankDeficientWarning and fall back to the minimum-norm
    slope vector on mean-centred data: coefficients = pinv(Xc) @ (y - y_mean),
    intercept = y_mean - x_mean @ coefficients. This is not the minimum-norm
    solution of the full [1 | X] design; the intercept is never shrunk.

    Args:
        train_df: Full training table
        target: 'valence' or 'arousal'
        channels: Predictor columns

    Returns:
        Immutable FittedModel
    """
    if target not in TARGETS:
        raise ValueError(f"Unknown target '{target}'; expected one of {TARGETS}")
    if target not in train_df.columns:
        raise ValueError(f"Target column '{target}' not in data")
    if train_df.empty:
        raise ValueError("Empty training table")

    X = _channel_matrix(train_df, channels)
    y = train_df[target].to_numpy(dtype=float)
    if not np.isfinite(y).all():
        raise ValueError(f"Target column '{target}' contains NaN or infinite values")

    n_params = len(channels) + 1
    design = np.column_stack([np.ones(len(X)), X])
    rank = int(np.linalg.matrix_rank(design))

    if rank < n_params:
        msg = (
            f"{target}: design matrix rank {rank} < {n_params} parameters "
            f"({len(X)} rows); using minimum-norm slopes on centred channels"
        )
        logger.warning(msg)
        warnings.warn(msg, RankDeficientWarning, stacklevel=2)

    reg = LinearRegression(fit_intercept=True)
    reg.fit(X, y)

    model = FittedModel(
        target=target,
        channels=tuple(channels),
        intercept=float(reg.intercept_),
        coefficients=tuple(float(c) for c in reg.coef_),
        n_train=len(X),
        rank=rank,
    )

    logger.info(f"Fitted {target}: {len(X)} rows × {len(channels)} channels, intercept={model.intercept:.4f}")
    return model


def fit_models(
    train_df: pd.DataFrame,
    targets: Sequence[str] = TARGETS,
    channels: Sequence[str] = CHANNELS,
) -> Dict[str, FittedModel]:
    """Fit one model per target on the full training table."""
    return {target: fit_ols(train_df, target, channels=channels) for target in targets}


def predict(model: FittedModel, df: pd.DataFrame) -> np.ndarray:
    """Row-wise intercept + X @ coefficients; one value per row of df."""
    X = _channel_matrix(df, model.channels)
    return model.intercept + X @ np.asarray(model.coefficients, dtype=float)


def mean_reference(train_df: pd.DataFrame, target: str) -> float:
    """Training mean of the rating; the 'always predict the average' reference."""
    if train_df.empty:
        raise ValueError("Empty training table")
    return float(train_df[target].mean())
