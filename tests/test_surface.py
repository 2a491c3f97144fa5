"""
Tests for evaluate() and DecisionSurface.
"""

import threading

import numpy as np
import pytest

from knn_canvas import (
    DecisionSurface,
    EvaluationCancelled,
    EvaluationGrid,
    InvalidInputError,
    InvalidParameterError,
    Prediction,
    TrainingSet,
    build_grid,
    evaluate,
    load_dataset,
)


def single_point(x, y):
    return EvaluationGrid([x], [y])


# ── Worked examples ────────────────────────────────────────────────────────────

class TestExamples:

    def test_k1_picks_nearest_corner(self, four_points):
        preds = evaluate(four_points, 1, single_point(0.1, 0.1))
        assert list(preds) == [Prediction(0.1, 0.1, "A", 1.0)]

    def test_k4_centre_tie_resolves_to_first_seen_class(self, four_points):
        # all four corners are equidistant, votes are 2-2
        preds = evaluate(four_points, 4, single_point(0.5, 0.5))
        assert preds[0].label == "A"
        assert preds[0].confidence == 0.5

    def test_vote_tie_goes_to_closest_class_not_label_order(self):
        ts = TrainingSet([(0, 0), (2, 0)], ["A", "B"])
        preds = evaluate(ts, 2, single_point(1.2, 0.0))
        assert preds[0].label == "B"
        assert preds[0].confidence == 0.5

    def test_equal_distance_neighbours_keep_training_order(self):
        ts = TrainingSet([(1, 0), (-1, 0), (5, 5)], ["B", "A", "A"])
        preds = evaluate(ts, 1, single_point(0.0, 0.0))
        assert preds[0].label == "B"

    def test_majority_wins_over_nearest(self):
        # nearest is B but the other two of k=3 are A
        ts = TrainingSet([(0, 0), (0, 0.5), (2, 2)], ["A", "A", "B"])
        preds = evaluate(ts, 3, single_point(1.9, 1.9))
        assert preds[0].label == "A"
        assert preds[0].confidence == pytest.approx(2 / 3)


# ── Properties over a real grid ────────────────────────────────────────────────

class TestProperties:

    @pytest.fixture
    def moons(self):
        return load_dataset("moons")

    @pytest.fixture
    def moons_grid(self, moons):
        return build_grid(moons, margin=0.5, step=0.25)

    def test_one_prediction_per_grid_point_in_grid_order(self, moons, moons_grid):
        preds = evaluate(moons, 7, moons_grid)
        assert len(preds) == len(moons_grid)
        np.testing.assert_array_equal(preds.points, moons_grid.points)
        assert (preds[3].x, preds[3].y) == tuple(moons_grid.points[3])

    def test_confidence_bounds_and_unanimity(self, moons, moons_grid):
        from knn_canvas.models.knn import KNNModel

        preds = evaluate(moons, 9, moons_grid)
        assert np.all(preds.confidence > 0)
        assert np.all(preds.confidence <= 1)

        proba = KNNModel({"n_neighbors": 9}).fit(moons).predict_proba(moons_grid.points)
        unanimous = proba.max(axis=1) == 1.0
        np.testing.assert_array_equal(preds.confidence == 1.0, unanimous)

    def test_idempotent(self, moons, moons_grid):
        first = evaluate(moons, 5, moons_grid)
        second = evaluate(moons, 5, moons_grid)
        assert first == second

    def test_chunking_does_not_change_result(self, moons, moons_grid):
        assert evaluate(moons, 5, moons_grid, chunk_size=7) == evaluate(moons, 5, moons_grid)

    def test_k1_is_nearest_neighbour(self, moons, moons_grid):
        preds = evaluate(moons, 1, moons_grid)
        assert np.all(preds.confidence == 1.0)

        d = np.linalg.norm(moons_grid.points[:, None, :] - moons.X[None, :, :], axis=2)
        expected = moons.labels[np.argmin(d, axis=1)]
        np.testing.assert_array_equal(preds.labels, expected)

    def test_k_equal_n_converges_to_global_majority(self, majority_a):
        grid = build_grid(majority_a, margin=1.0, step=0.5)
        preds = evaluate(majority_a, len(majority_a), grid)
        assert set(preds.labels.tolist()) == {"A"}
        np.testing.assert_allclose(preds.confidence, 0.6)

    def test_grid_does_not_depend_on_k(self, moons):
        surface = DecisionSurface(moons, margin=0.5, step=0.25)
        points = surface.grid.points.copy()
        surface.update(3)
        surface.update(11)
        np.testing.assert_array_equal(surface.grid.points, points)

    def test_predictions_are_read_only(self, four_points):
        preds = evaluate(four_points, 1, single_point(0.1, 0.1))
        with pytest.raises(ValueError):
            preds.labels[0] = "B"
        with pytest.raises(ValueError):
            preds.confidence[0] = 0.0

    def test_three_classes(self):
        blobs = load_dataset("blobs")
        preds = evaluate(blobs, 15, build_grid(blobs, margin=0.5, step=0.5))
        assert set(preds.labels.tolist()) <= set(blobs.classes)
        assert len(set(preds.labels.tolist())) == 3


# ── Distance weighting ─────────────────────────────────────────────────────────

class TestDistanceWeights:

    @pytest.fixture
    def ts(self):
        return TrainingSet([(0, 0), (0, 3), (1, 0)], ["A", "A", "B"])

    def test_uniform_votes_by_count(self, ts):
        preds = evaluate(ts, 3, single_point(0.9, 0.0))
        assert preds[0].label == "A"
        assert preds[0].confidence == pytest.approx(2 / 3)

    def test_distance_votes_favour_close_points(self, ts):
        preds = evaluate(ts, 3, single_point(0.9, 0.0), weights="distance")
        assert preds[0].label == "B"
        assert 0.8 < preds[0].confidence < 1.0
        assert preds.weights == "distance"

    def test_point_on_training_record_takes_whole_vote(self, ts):
        preds = evaluate(ts, 3, single_point(1.0, 0.0), weights="distance")
        assert preds[0].label == "B"
        assert preds[0].confidence == 1.0


# ── Validation ─────────────────────────────────────────────────────────────────

class TestValidation:

    def test_empty_training_set(self):
        with pytest.raises(InvalidInputError):
            evaluate(TrainingSet([], []), 1, single_point(0, 0))

    def test_single_class(self):
        ts = TrainingSet([(0, 0), (1, 1)], ["A", "A"])
        with pytest.raises(InvalidInputError):
            evaluate(ts, 1, single_point(0, 0))

    def test_empty_grid(self, four_points):
        with pytest.raises(InvalidInputError):
            evaluate(four_points, 1, EvaluationGrid([], []))

    @pytest.mark.parametrize("k", [0, -1, 5, 100])
    def test_k_out_of_range(self, four_points, k):
        with pytest.raises(InvalidParameterError):
            evaluate(four_points, k, single_point(0, 0))

    @pytest.mark.parametrize("k", [2.0, "2", True, None])
    def test_k_not_integer(self, four_points, k):
        with pytest.raises(InvalidParameterError):
            evaluate(four_points, k, single_point(0, 0))

    def test_numpy_integer_k_accepted(self, four_points):
        preds = evaluate(four_points, np.int64(1), single_point(0.1, 0.1))
        assert preds.k == 1

    def test_unknown_weights(self, four_points):
        with pytest.raises(InvalidParameterError):
            evaluate(four_points, 1, single_point(0, 0), weights="gaussian")

    def test_fails_before_any_evaluation(self, four_points):
        polls = []
        with pytest.raises(InvalidParameterError):
            evaluate(four_points, 9, single_point(0, 0), should_cancel=lambda: polls.append(1) or False)
        assert polls == []


# ── Cancellation ───────────────────────────────────────────────────────────────

def test_cancel_between_chunks(four_points):
    grid = build_grid(four_points, margin=1.0, step=0.5)
    polls = []

    def should_cancel():
        polls.append(1)
        return len(polls) > 2

    with pytest.raises(EvaluationCancelled):
        evaluate(four_points, 1, grid, should_cancel=should_cancel, chunk_size=5)
    assert len(polls) == 3


def test_large_training_set_shrinks_chunks(four_points, monkeypatch):
    import knn_canvas.surface as surface

    grid = build_grid(four_points, margin=1.0, step=0.5)
    expected = evaluate(four_points, 3, grid)

    # 8 pairs per block with 4 training points leaves 2 grid points per chunk
    monkeypatch.setattr(surface, "MAX_DISTANCE_BLOCK", 8)
    polls = []
    preds = evaluate(four_points, 3, grid, should_cancel=lambda: polls.append(1) or False)

    assert preds == expected
    assert len(polls) == 25


# ── DecisionSurface ────────────────────────────────────────────────────────────

class TestDecisionSurface:

    def test_update_replaces_predictions(self, four_points):
        surface = DecisionSurface(four_points, margin=1.0, step=0.5)
        assert surface.current is None

        first = surface.update(1)
        second = surface.update(3)
        assert surface.current is second
        assert first.k == 1 and second.k == 3
        assert len(second) == len(surface.grid)

    def test_same_k_reuses_predictions(self, four_points):
        surface = DecisionSurface(four_points, margin=1.0, step=0.5)
        assert surface.update(2) is surface.update(2)

    def test_invalid_k_keeps_previous_predictions(self, four_points):
        surface = DecisionSurface(four_points, margin=1.0, step=0.5)
        good = surface.update(2)
        with pytest.raises(InvalidParameterError):
            surface.update(0)
        assert surface.current is good

    def test_concurrent_updates_do_not_interleave(self):
        moons = load_dataset("moons")
        surface = DecisionSurface(moons, margin=0.5, step=0.25)
        errors = []

        def worker(k):
            try:
                preds = surface.update(k)
                assert preds.k == k
            except Exception as e:  # surfaced below
                errors.append(e)

        threads = [threading.Thread(target=worker, args=(k,)) for k in (1, 3, 5, 7, 9)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert surface.current.k in (1, 3, 5, 7, 9)
        assert surface.current == evaluate(moons, surface.current.k, surface.grid)
