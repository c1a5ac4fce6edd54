"""
Module 5: Diagnostic plots

Scatter and time-series views of predicted vs true ratings, per-group RMSE
bars, and an illustration of what a given RMSE looks like.
"""

import logging
from pathlib import Path

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import seaborn as sns

from .module3_prediction import GroupPrediction
from .module4_rmse import RmseSummary, rmse

logger = logging.getLogger(__name__)

sns.set_style("whitegrid")

TARGET_COLORS = {
    "valence": "steelblue",
    "arousal": "crimson",
}


def _save(fig, out_path: Path) -> Path:
    out_path = Path(out_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    fig.tight_layout()
    fig.savefig(out_path, dpi=150, bbox_inches="tight")
    plt.close(fig)
    logger.info(f"Saved plot to {out_path}")
    return out_path


def plot_scatter(pred_df: pd.DataFrame, target: str, out_path: Path) -> Path:
    """Predicted vs true rating for every test row of one target."""
    rows = pred_df[pred_df["target"] == target]
    if rows.empty:
        raise ValueError(f"No predictions for target '{target}'")

    fig, ax = plt.subplots(figsize=(7, 6))
    ax.scatter(rows["true"], rows["predicted"], alpha=0.4, s=15, c=TARGET_COLORS.get(target, "gray"))

    lo = float(min(rows["true"].min(), rows["predicted"].min()))
    hi = float(max(rows["true"].max(), rows["predicted"].max()))
    ax.plot([lo, hi], [lo, hi], "k--", linewidth=1.5, label="Perfect prediction")

    overall = rmse(rows["true"], rows["predicted"])
    ax.set_xlabel(f"True {target}", fontsize=12)
    ax.set_ylabel(f"Predicted {target}", fontsize=12)
    ax.set_title(f"{target.capitalize()}: predicted vs true (RMSE={overall:.3f})", fontsize=14, fontweight="bold")
    ax.legend(loc="upper left")
    ax.grid(True, alpha=0.3)
    return _save(fig, out_path)


def plot_group_timeseries(group: GroupPrediction, target: str, out_path: Path) -> Path:
    """True and predicted rating over time for one (subject, video)."""
    fig, ax = plt.subplots(figsize=(12, 4))
    ax.plot(group.time, group.true[target], "k-", linewidth=2, label="True")
    ax.plot(group.time, group.predicted[target], "-", color=TARGET_COLORS.get(target, "gray"),
            linewidth=1.5, alpha=0.8, label="Predicted")

    title = f"Subject {group.subject} · {group.video} · {target}"
    if group.n_rows:
        title += f" (RMSE={rmse(group.true[target], group.predicted[target]):.3f})"
    ax.set_xlabel("Time (s)")
    ax.set_ylabel(target.capitalize())
    ax.set_title(title, fontsize=12, fontweight="bold")
    ax.legend(loc="upper right")
    ax.grid(True, alpha=0.3)
    return _save(fig, out_path)


def plot_group_rmse(summary: RmseSummary, out_path: Path) -> Path:
    """Bar per (subject, video) group with the average RMSE as a dashed line."""
    if not summary.per_group:
        raise ValueError(f"No group RMSE values for '{summary.target}'")

    labels = ["/".join(str(k) for k in key) for key in summary.per_group]
    values = list(summary.per_group.values())

    fig, ax = plt.subplots(figsize=(max(8, 0.35 * len(labels)), 5))
    ax.bar(range(len(values)), values, color=TARGET_COLORS.get(summary.target, "gray"), alpha=0.7)
    ax.axhline(summary.mean_rmse, color="black", linestyle="--", linewidth=1.5,
               label=f"Average RMSE = {summary.mean_rmse:.3f}")
    ax.set_xticks(range(len(labels)))
    ax.set_xticklabels(labels, rotation=60, ha="right", fontsize=7)
    ax.set_ylabel("RMSE")
    ax.set_title(f"{summary.target.capitalize()}: RMSE per subject/video", fontsize=14, fontweight="bold")
    ax.legend(loc="upper right")
    ax.grid(axis="y", alpha=0.3)
    return _save(fig, out_path)


def plot_error_illustration(out_path: Path, seed: int = 42) -> Path:
    """
    Same true curve against predictions with known error structure.

    Shows that a constant offset, a noisy tracker and a flat average can share
    a similar RMSE while behaving very differently.
    """
    rng = np.random.default_rng(seed)
    t = np.linspace(0, 60, 300)
    true = 5 + 2 * np.sin(t / 8)

    candidates = {
        "Offset +1": true + 1.0,
        "Noisy (σ=1)": true + rng.normal(0, 1.0, t.size),
        "Flat mean": np.full_like(true, true.mean()),
        "Half amplitude": 5 + 1 * np.sin(t / 8),
    }

    fig, axes = plt.subplots(len(candidates), 1, figsize=(12, 2.6 * len(candidates)), sharex=True)
    for ax, (name, pred) in zip(axes, candidates.items()):
        ax.plot(t, true, "k-", linewidth=2, label="True")
        ax.plot(t, pred, "-", color="darkorange", linewidth=1.5, alpha=0.8, label=name)
        ax.set_ylim(0, 10)
        ax.set_title(f"{name}: RMSE={rmse(true, pred):.3f}", fontsize=11, fontweight="bold")
        ax.legend(loc="upper right", fontsize=8)
        ax.grid(True, alpha=0.3)
    axes[-1].set_xlabel("Time (s)")
    return _save(fig, out_path)
