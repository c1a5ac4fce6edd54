"""
Valence/Arousal RMSE Pipeline - Main Entrypoint

Orchestrates the modules: load → fit OLS per rating → predict per
(subject, video) → RMSE per group and on average → plots.

Usage:
    va-pipeline config/va_pipeline.yaml
    va-pipeline --synthetic --output-dir ./va_output
"""

import argparse
import json
import logging
import math
from pathlib import Path
from typing import Optional

import pandas as pd

from va_pipeline.config import load_config
from va_pipeline.module1_loading import load_observations, load_split, split_by_fold, validate_observations
from va_pipeline.module2_training import fit_models, mean_reference
from va_pipeline.module3_prediction import predict_groups, predictions_frame
from va_pipeline.module4_rmse import normalized_rmse, summarize_all, summarize_reference
from va_pipeline.module5_plots import (
    plot_error_illustration,
    plot_group_rmse,
    plot_group_timeseries,
    plot_scatter,
)
from va_pipeline.synthetic import make_synthetic_observations

logger = logging.getLogger(__name__)


def _banner(title: str) -> None:
    logger.info("\n" + "=" * 80)
    logger.info(title)
    logger.info("=" * 80)


def load_tables(config: dict, synthetic: bool = False):
    """Resolve the train/test tables from config (or generate them)."""
    channels = config["channels"]
    targets = config["targets"]
    paths = config["input_paths"]
    test_folds = config.get("test_folds") or []

    if synthetic:
        df = make_synthetic_observations(**config["synthetic"])
        df = validate_observations(df, channels=channels, targets=targets)
        logger.info(f"Generated synthetic data: {len(df)} rows")
        return split_by_fold(df, test_folds or [1])

    if paths.get("combined"):
        df = load_observations(paths["combined"], channels=channels, targets=targets)
        return split_by_fold(df, test_folds)

    if not paths.get("train") or not paths.get("test"):
        raise ValueError("Config needs input_paths.train and input_paths.test (or input_paths.combined)")

    return load_split(paths["train"], paths["test"], channels=channels, targets=targets)


def _json_safe(value):
    """NaN/inf -> None so metrics.json stays strict JSON."""
    if isinstance(value, dict):
        return {k: _json_safe(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_json_safe(v) for v in value]
    if isinstance(value, float) and not math.isfinite(value):
        return None
    return value


def write_artifacts(output_dir: Path, results: dict) -> None:
    output_dir.mkdir(parents=True, exist_ok=True)

    metrics = {
        "models": {t: m.as_dict() for t, m in results["models"].items()},
        "rmse": {t: s.as_dict() for t, s in results["summaries"].items()},
        "reference_rmse": {t: s.mean_rmse for t, s in results["references"].items()},
        "normalized_rmse": results["normalized"],
        "n_train": results["n_train"],
        "n_test": results["n_test"],
    }
    metrics_path = output_dir / "metrics.json"
    metrics_path.write_text(json.dumps(_json_safe(metrics), indent=2, default=str, allow_nan=False) + "\n")
    logger.info(f"Saved metrics to {metrics_path}")

    rows = []
    for target, summary in results["summaries"].items():
        for (subject, video), value in summary.per_group.items():
            rows.append({"subject": subject, "video": video, "target": target, "rmse": value})
    group_path = output_dir / "group_rmse.csv"
    pd.DataFrame(rows, columns=["subject", "video", "target", "rmse"]).to_csv(group_path, index=False)

    pred_path = output_dir / "predictions.csv"
    results["predictions"].to_csv(pred_path, index=False)
    logger.info(f"Saved group RMSE to {group_path} and predictions to {pred_path}")


def make_plots(output_dir: Path, results: dict, config: dict) -> list:
    plot_dir = output_dir / "plots"
    written = []
    pred_df = results["predictions"]
    max_groups = config["plots"]["max_groups"]

    for target, summary in results["summaries"].items():
        if summary.n_groups == 0:
            logger.warning(f"No groups to plot for {target}")
            continue
        written.append(plot_scatter(pred_df, target, plot_dir / f"scatter_{target}.png"))
        written.append(plot_group_rmse(summary, plot_dir / f"group_rmse_{target}.png"))
        for group in results["groups"][:max_groups]:
            name = f"timeseries_{target}_{group.subject}_{group.video}.png"
            written.append(plot_group_timeseries(group, target, plot_dir / name))

    written.append(plot_error_illustration(plot_dir / "rmse_illustration.png"))
    return written


def format_summary(results: dict) -> str:
    lines = []
    for target in sorted(results["summaries"]):
        summary = results["summaries"][target]
        reference = results["references"][target]
        lines.append(f"Average RMSE ({target}): {summary.mean_rmse:.3f}")
        lines.append(f"  over {summary.n_groups} subject/video groups")
        lines.append(f"  mean-rating reference: {reference.mean_rmse:.3f}")
        lines.append(f"  as fraction of rating scale: {results['normalized'][target]:.3f}")
    return "\n".join(lines)


def run_pipeline(
    config: dict,
    output_dir: Optional[Path] = None,
    synthetic: bool = False,
    plots: Optional[bool] = None,
) -> dict:
    """
    Execute the valence/arousal RMSE pipeline.

    Args:
        config: Merged configuration (see va_pipeline.config)
        output_dir: Output directory (default: from config)
        synthetic: Generate data instead of reading input_paths
        plots: Override config plots.enabled

    Returns:
        Dict with models, groups, summaries, references, normalized, predictions
    """
    if output_dir is None:
        output_dir = Path(config["output_dir"])
    output_dir = Path(output_dir)
    if plots is None:
        plots = config["plots"]["enabled"]

    targets = config["targets"]
    channels = config["channels"]
    keys = config["group_by"]

    _banner("MODULE 1: Load observations")
    train_df, test_df = load_tables(config, synthetic=synthetic)

    _banner("MODULE 2: Fit OLS models")
    models = fit_models(train_df, targets=targets, channels=channels)
    means = {t: mean_reference(train_df, t) for t in targets}

    _banner("MODULE 3: Predict per subject/video")
    groups = predict_groups(models, test_df, keys=keys)

    _banner("MODULE 4: RMSE")
    summaries = summarize_all(groups, targets)
    references = {t: summarize_reference(groups, t, means[t]) for t in targets}
    scale = tuple(config["rating_scale"])
    normalized = {t: normalized_rmse(summaries[t].mean_rmse, scale) for t in targets}

    results = {
        "models": models,
        "groups": groups,
        "summaries": summaries,
        "references": references,
        "normalized": normalized,
        "predictions": predictions_frame(groups),
        "n_train": len(train_df),
        "n_test": len(test_df),
    }

    write_artifacts(output_dir, results)

    if plots:
        _banner("MODULE 5: Plots")
        results["plots"] = make_plots(output_dir, results, config)

    _banner("PIPELINE COMPLETE")
    logger.info(f"Output files in: {output_dir}")
    return results


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Valence/Arousal OLS + RMSE Pipeline"
    )
    parser.add_argument(
        "config",
        type=Path,
        nargs="?",
        default=None,
        help="Path to pipeline config YAML (defaults used if omitted)",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=None,
        help="Output directory (overrides config)",
    )
    parser.add_argument(
        "--synthetic",
        action="store_true",
        help="Run on generated data instead of input_paths",
    )
    parser.add_argument(
        "--no-plots",
        action="store_true",
        help="Skip rendering diagnostic plots",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Debug logging",
    )

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    )
    logging.getLogger("matplotlib").setLevel(logging.WARNING)

    config = load_config(args.config)
    results = run_pipeline(
        config,
        output_dir=args.output_dir,
        synthetic=args.synthetic,
        plots=False if args.no_plots else None,
    )

    print(format_summary(results))
    return results


if __name__ == "__main__":
    main()
