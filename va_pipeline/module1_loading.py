"""
Module 1: CSV → validated observation tables

Load train/test tables of physiological channels and valence/arousal ratings.
Malformed input fails here, before any model is fitted.
"""

import logging
from pathlib import Path
from typing import Iterable, Sequence, Tuple

import numpy as np
import pandas as pd

from .config import CHANNELS, GROUP_KEYS, TARGETS

logger = logging.getLogger(__name__)


def validate_observations(
    df: pd.DataFrame,
    channels: Sequence[str] = CHANNELS,
    targets: Sequence[str] = TARGETS,
) -> pd.DataFrame:
    """
    Enforce the observation schema.

    Args:
        df: Raw table (e.g. straight from pd.read_csv)
        channels: Physiological channel columns used as predictors
        targets: Rating columns (valence, arousal)

    Returns:
        A new DataFrame with numeric channels/targets, int subject and str video.
        Column order and row order are preserved.
    """
    required = list(GROUP_KEYS) + ["time"] + list(channels) + list(targets)
    missing = [c for c in required if c not in df.columns]
    if missing:
        raise ValueError(f"Missing columns {missing}. Columns: {list(df.columns)[:30]}")

    out = df.copy()

    for col in ["time"] + list(channels) + list(targets):
        values = pd.to_numeric(out[col], errors="coerce").astype(float)
        bad = ~np.isfinite(values.to_numpy())
        if bad.any():
            raise ValueError(
                f"Column '{col}' has {int(bad.sum())} non-numeric or non-finite value(s)"
            )
        out[col] = values

    subject = pd.to_numeric(out["subject"], errors="coerce")
    if subject.isna().any():
        raise ValueError(f"Column 'subject' has {int(subject.isna().sum())} non-integer value(s)")
    fractional = (subject % 1 != 0)
    if fractional.any():
        raise ValueError(f"Column 'subject' has {int(fractional.sum())} non-integer value(s)")
    out["subject"] = subject.astype(int)
    out["video"] = out["video"].astype(str)

    return out


def load_observations(
    path: Path,
    channels: Sequence[str] = CHANNELS,
    targets: Sequence[str] = TARGETS,
) -> pd.DataFrame:
    """Read one observation CSV and validate it."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Observation file not found: {path}")

    df = pd.read_csv(path, compression="infer")
    df = validate_observations(df, channels=channels, targets=targets)

    logger.info(f"Loaded {path.name}: {len(df)} rows, {df.groupby(GROUP_KEYS).ngroups} groups")
    return df


def load_split(
    train_path: Path,
    test_path: Path,
    channels: Sequence[str] = CHANNELS,
    targets: Sequence[str] = TARGETS,
) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """Load the training and test tables."""
    train_df = load_observations(train_path, channels=channels, targets=targets)
    test_df = load_observations(test_path, channels=channels, targets=targets)
    return train_df, test_df


def split_by_fold(
    df: pd.DataFrame,
    test_folds: Iterable,
    fold_col: str = "fold",
) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """
    Partition one combined table into train/test by its fold label.

    Rows whose fold is in test_folds form the test table; all others train.
    """
    if fold_col not in df.columns:
        raise ValueError(f"Missing '{fold_col}' column needed for fold split")

    test_folds = {str(f) for f in test_folds}
    if not test_folds:
        raise ValueError("test_folds is empty; nothing to hold out")

    is_test = df[fold_col].astype(str).isin(test_folds)
    train_df = df[~is_test].reset_index(drop=True)
    test_df = df[is_test].reset_index(drop=True)

    if train_df.empty or test_df.empty:
        raise ValueError(
            f"Fold split {sorted(test_folds)} left train={len(train_df)}, test={len(test_df)} rows"
        )

    logger.info(f"Fold split: train={len(train_df)} rows, test={len(test_df)} rows")
    return train_df, test_df
