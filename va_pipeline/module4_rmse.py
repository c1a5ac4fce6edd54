"""
Module 4: RMSE aggregation

Per-group RMSE between true and predicted ratings, then the arithmetic mean
over non-empty groups, separately for each target.

Each group's residuals are taken against that group's own true ratings, never
against a shared true-rating table for the whole test set.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Dict, Optional, Sequence, Tuple

import numpy as np
from sklearn.metrics import mean_squared_error

from .module3_prediction import GroupPrediction

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RmseSummary:
    target: str
    per_group: Dict[tuple, float] = field(default_factory=dict)
    mean_rmse: float = math.nan
    n_groups: int = 0
    n_skipped: int = 0

    def as_dict(self) -> dict:
        return {
            "target": self.target,
            "mean_rmse": self.mean_rmse,
            "n_groups": self.n_groups,
            "n_skipped": self.n_skipped,
            "per_group": {"/".join(str(k) for k in key): value for key, value in self.per_group.items()},
        }


def rmse(true: Sequence[float], predicted: Sequence[float]) -> float:
    """sqrt(mean((true - predicted)^2)), pairing values by index."""
    true = np.asarray(true, dtype=float)
    predicted = np.asarray(predicted, dtype=float)
    if true.shape != predicted.shape:
        raise ValueError(f"Series must be same length ({true.shape} vs {predicted.shape})")
    if true.size == 0:
        raise ValueError("Series cannot be empty")
    return float(np.sqrt(mean_squared_error(true, predicted)))


def group_rmse(group: GroupPrediction, target: str) -> Optional[float]:
    """RMSE for one group, or None when the group has no rows."""
    y_true = group.true[target]
    if len(y_true) == 0:
        return None
    return rmse(y_true, group.predicted[target])


def mean_of_groups(values: Sequence[Optional[float]]) -> float:
    """Arithmetic mean ignoring None (empty groups); NaN if nothing is left."""
    kept = [v for v in values if v is not None]
    if not kept:
        return math.nan
    return float(np.mean(kept))


def summarize_rmse(groups: Sequence[GroupPrediction], target: str) -> RmseSummary:
    """
    Per-group RMSE and their average for one target.

    Empty groups are excluded from the mean and counted in n_skipped.
    """
    per_group = {}
    skipped = 0
    for group in groups:
        value = group_rmse(group, target)
        if value is None:
            skipped += 1
            logger.debug(f"{target}: skipping empty group {group.key}")
            continue
        per_group[group.key] = value

    mean_value = mean_of_groups(list(per_group.values()))
    if not per_group:
        logger.warning(f"{target}: no non-empty groups; average RMSE undefined")

    return RmseSummary(
        target=target,
        per_group=per_group,
        mean_rmse=mean_value,
        n_groups=len(per_group),
        n_skipped=skipped,
    )


def summarize_all(
    groups: Sequence[GroupPrediction],
    targets: Sequence[str],
) -> Dict[str, RmseSummary]:
    return {target: summarize_rmse(groups, target) for target in targets}


def summarize_reference(
    groups: Sequence[GroupPrediction],
    target: str,
    value: float,
) -> RmseSummary:
    """Average group RMSE of a constant prediction (e.g. the training mean)."""
    per_group = {}
    skipped = 0
    for group in groups:
        y_true = group.true[target]
        if len(y_true) == 0:
            skipped += 1
            continue
        per_group[group.key] = rmse(y_true, np.full(len(y_true), value))

    return RmseSummary(
        target=target,
        per_group=per_group,
        mean_rmse=mean_of_groups(list(per_group.values())),
        n_groups=len(per_group),
        n_skipped=skipped,
    )


def normalized_rmse(value: float, scale: Tuple[float, float] = (0.0, 10.0)) -> float:
    """RMSE as a fraction of the rating-scale width."""
    lo, hi = scale
    if not hi > lo:
        raise ValueError(f"Invalid rating scale {scale}")
    return value / (hi - lo)
