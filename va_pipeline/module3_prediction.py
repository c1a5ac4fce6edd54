"""
Module 3: Grouped prediction

Partition the test table by (subject, video) and apply each fitted model to
every group's rows. Predictions are aligned index-for-index with the group.
"""

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, List, Mapping, Sequence, Tuple

import numpy as np
import pandas as pd

from .config import GROUP_KEYS
from .module2_training import FittedModel, predict

logger = logging.getLogger(__name__)


def _readonly(values) -> np.ndarray:
    out = np.array(values, dtype=float)
    out.setflags(write=False)
    return out


@dataclass(frozen=True)
class GroupPrediction:
    subject: int
    video: str
    time: np.ndarray
    true: Mapping[str, np.ndarray] = field(default_factory=dict)
    predicted: Mapping[str, np.ndarray] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "time", _readonly(self.time))
        for name in ("true", "predicted"):
            arrays = {target: _readonly(values) for target, values in getattr(self, name).items()}
            object.__setattr__(self, name, MappingProxyType(arrays))

    @property
    def key(self) -> Tuple[int, str]:
        return (self.subject, self.video)

    @property
    def n_rows(self) -> int:
        return len(self.time)


def group_rows(
    df: pd.DataFrame,
    keys: Sequence[str] = GROUP_KEYS,
) -> Dict[tuple, pd.DataFrame]:
    """
    Explicit group-by: key tuple -> that group's rows in original order.

    Keys are returned sorted.
    """
    missing = [k for k in keys if k not in df.columns]
    if missing:
        raise ValueError(f"Missing group columns {missing}")

    groups = {}
    for key, rows in df.groupby(list(keys), sort=True):
        if not isinstance(key, tuple):
            key = (key,)
        groups[key] = rows
    return groups


def predict_group(
    models: Mapping[str, FittedModel],
    key: tuple,
    rows: pd.DataFrame,
) -> GroupPrediction:
    true = {}
    predicted = {}
    for target, model in models.items():
        true[target] = rows[target].to_numpy(dtype=float)
        predicted[target] = predict(model, rows)

    time = rows["time"].to_numpy(dtype=float) if "time" in rows.columns else np.arange(len(rows), dtype=float)
    subject = key[0]
    video = key[1] if len(key) > 1 else ""
    return GroupPrediction(subject=subject, video=video, time=time, true=true, predicted=predicted)


def predict_groups(
    models: Mapping[str, FittedModel],
    test_df: pd.DataFrame,
    keys: Sequence[str] = GROUP_KEYS,
) -> List[GroupPrediction]:
    """
    Apply every model to every (subject, video) group of the test table.

    Args:
        models: target -> FittedModel
        test_df: Held-out observations
        keys: Group columns

    Returns:
        One GroupPrediction per non-empty group, sorted by key
    """
    results = []
    for key, rows in group_rows(test_df, keys).items():
        if rows.empty:
            logger.debug(f"Skipping empty group {key}")
            continue
        results.append(predict_group(models, key, rows))

    logger.info(f"Predicted {len(results)} groups for targets {list(models)}")
    return results


def predictions_frame(groups: Sequence[GroupPrediction]) -> pd.DataFrame:
    """Long table: subject, video, time, target, true, predicted, residual."""
    frames = []
    for group in groups:
        for target, y_true in group.true.items():
            y_pred = group.predicted[target]
            frames.append(pd.DataFrame({
                "subject": group.subject,
                "video": group.video,
                "time": group.time,
                "target": target,
                "true": y_true,
                "predicted": y_pred,
                "residual": y_true - y_pred,
            }))

    if not frames:
        return pd.DataFrame(columns=["subject", "video", "time", "target", "true", "predicted", "residual"])
    return pd.concat(frames, ignore_index=True)
