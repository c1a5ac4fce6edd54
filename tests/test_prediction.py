import numpy as np
import pytest

from va_pipeline.module2_training import fit_models, predict
from va_pipeline.module3_prediction import GroupPrediction, group_rows, predict_groups, predictions_frame


def test_group_rows_sorted_and_order_preserving(synthetic_frame):
    shuffled = synthetic_frame.sample(frac=1.0, random_state=3)
    groups = group_rows(shuffled)

    assert list(groups) == sorted(groups)
    assert len(groups) == 4
    for key, rows in groups.items():
        expected = shuffled[(shuffled["subject"] == key[0]) & (shuffled["video"] == key[1])]
        assert rows.index.tolist() == expected.index.tolist()


def test_group_rows_missing_key(synthetic_frame):
    with pytest.raises(ValueError):
        group_rows(synthetic_frame.drop(columns=["video"]))


def test_predict_groups_aligned_with_rows(synthetic_frame):
    models = fit_models(synthetic_frame)
    groups = predict_groups(models, synthetic_frame)

    assert [g.key for g in groups] == sorted(g.key for g in groups)
    for group in groups:
        rows = synthetic_frame[
            (synthetic_frame["subject"] == group.subject) & (synthetic_frame["video"] == group.video)
        ]
        assert group.n_rows == len(rows)
        np.testing.assert_allclose(group.time, rows["time"])
        for target in ("valence", "arousal"):
            np.testing.assert_allclose(group.true[target], rows[target])
            np.testing.assert_allclose(group.predicted[target], predict(models[target], rows))


def test_no_leakage_between_groups(synthetic_frame):
    models = fit_models(synthetic_frame)
    together = {g.key: g for g in predict_groups(models, synthetic_frame)}

    one_group = synthetic_frame[
        (synthetic_frame["subject"] == 2) & (synthetic_frame["video"] == "scary-2")
    ]
    alone = predict_groups(models, one_group)

    assert len(alone) == 1
    np.testing.assert_allclose(
        alone[0].predicted["arousal"], together[(2, "scary-2")].predicted["arousal"]
    )


def test_predictions_frame(synthetic_frame):
    models = fit_models(synthetic_frame)
    groups = predict_groups(models, synthetic_frame)
    frame = predictions_frame(groups)

    assert len(frame) == 2 * len(synthetic_frame)
    np.testing.assert_allclose(frame["residual"], frame["true"] - frame["predicted"])
    assert set(frame["target"]) == {"valence", "arousal"}


def test_predictions_frame_empty():
    frame = predictions_frame([])
    assert frame.empty
    assert "residual" in frame.columns


def test_group_prediction_is_read_only(synthetic_frame):
    models = fit_models(synthetic_frame)
    group = predict_groups(models, synthetic_frame)[0]

    with pytest.raises(TypeError):
        group.true["valence"] = np.zeros(group.n_rows)
    with pytest.raises(ValueError):
        group.predicted["arousal"][0] = 99.0
    with pytest.raises(ValueError):
        group.time[0] = -1.0


def test_group_prediction_copies_inputs():
    true = np.array([1.0, 2.0])
    group = GroupPrediction(subject=1, video="a", time=np.arange(2.0), true={"arousal": true},
                            predicted={"arousal": np.array([1.0, 2.0])})

    true[0] = 50.0

    assert group.true["arousal"][0] == 1.0
    assert true.flags.writeable
