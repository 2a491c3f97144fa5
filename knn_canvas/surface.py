# surface.py
"""
Decision surface over an evaluation grid.

evaluate() is a pure function of (training set, k, grid). DecisionSurface
wraps it for a UI that changes k: the grid is built once, predictions are
recomputed in full on every change and replaced wholesale.
"""

import logging
import threading
import time
from collections import namedtuple
from collections.abc import Sequence
from typing import Callable, Optional

import numpy as np

from knn_canvas.errors import EvaluationCancelled, InvalidInputError
from knn_canvas.models.knn import KNNModel, check_k, check_weights
from knn_canvas.utils.boundary_plot import DEFAULT_MARGIN, DEFAULT_STEP, EvaluationGrid, build_grid

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 1024
# grid points x training points held in one distance block (~64 MB of float64 differences)
MAX_DISTANCE_BLOCK = 4_000_000

Prediction = namedtuple("Prediction", ["x", "y", "label", "confidence"])


class Predictions(Sequence):
    """Read-only predictions, one per grid point, in grid order."""

    def __init__(self, points, labels, confidence, k: int, weights: str):
        points = np.array(points, dtype=float)
        labels = np.array(labels, dtype=object)
        confidence = np.array(confidence, dtype=float)
        for arr in (points, labels, confidence):
            arr.flags.writeable = False

        self.points = points
        self.labels = labels
        self.confidence = confidence
        self.k = k
        self.weights = weights

    def __len__(self):
        return int(self.labels.shape[0])

    def __getitem__(self, i):
        if isinstance(i, slice):
            return [self[j] for j in range(*i.indices(len(self)))]
        x, y = self.points[i]
        return Prediction(float(x), float(y), self.labels[i], float(self.confidence[i]))

    def __eq__(self, other):
        if not isinstance(other, Predictions):
            return NotImplemented
        return (
            self.k == other.k
            and self.weights == other.weights
            and np.array_equal(self.points, other.points)
            and np.array_equal(self.labels, other.labels)
            and np.array_equal(self.confidence, other.confidence)
        )

    __hash__ = None

    def __repr__(self):
        return f"Predictions(n={len(self)}, k={self.k}, weights={self.weights!r})"


def evaluate(
    training_set,
    k,
    grid: EvaluationGrid,
    weights: str = "uniform",
    should_cancel: Optional[Callable[[], bool]] = None,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> Predictions:
    """
    Classifies every grid point by majority vote of its k nearest
    training points.

    All inputs are validated before any point is evaluated. Grid points
    are processed chunk by chunk; should_cancel, if given, is polled
    between chunks. A chunk never holds more than MAX_DISTANCE_BLOCK
    point/training-point pairs, so large training sets get smaller chunks.

    Raises:
        InvalidInputError: empty training set, fewer than two classes, empty grid
        InvalidParameterError: k outside [1, len(training_set)], unknown weights
        EvaluationCancelled: should_cancel() returned True
    """
    n = len(training_set)
    if n == 0:
        raise InvalidInputError("Training set is empty")
    if len(set(training_set.labels.tolist())) < 2:
        raise InvalidInputError("Training set needs at least two classes to define a decision boundary")
    if len(grid) == 0:
        raise InvalidInputError("Evaluation grid is empty")
    k = check_k(k, n)
    weights = check_weights(weights)
    if chunk_size < 1:
        raise ValueError("chunk_size must be >= 1")

    model = KNNModel({"n_neighbors": k, "weights": weights}).fit(training_set)
    chunk_size = max(1, min(chunk_size, MAX_DISTANCE_BLOCK // n))

    start = time.perf_counter()
    points = grid.points
    codes = np.empty(len(grid), dtype=int)
    confidence = np.empty(len(grid), dtype=float)
    for lo in range(0, len(grid), chunk_size):
        if should_cancel is not None and should_cancel():
            raise EvaluationCancelled(f"Evaluation for k={k} cancelled at point {lo} of {len(grid)}")
        hi = min(lo + chunk_size, len(grid))
        codes[lo:hi], confidence[lo:hi], _ = model.vote(points[lo:hi])

    predictions = Predictions(points, model.decode(codes), confidence, k, weights)
    logger.debug(
        "Evaluated %d grid points for k=%d (%s) in %.1f ms",
        len(grid), k, weights, (time.perf_counter() - start) * 1000,
    )
    return predictions


class DecisionSurface:
    """
    Recompute-on-change holder for one training set.

    The grid is computed once. update(k) recomputes synchronously under a
    lock, so concurrent callers never interleave, and replaces the current
    predictions only when the computation succeeds.
    """

    def __init__(
        self,
        training_set,
        margin: float = DEFAULT_MARGIN,
        step: float = DEFAULT_STEP,
        weights: str = "uniform",
    ):
        self.training_set = training_set
        self.weights = check_weights(weights)
        self.grid = build_grid(training_set, margin=margin, step=step)
        self._lock = threading.Lock()
        self._current: Optional[Predictions] = None

    @property
    def current(self) -> Optional[Predictions]:
        return self._current

    def update(self, k) -> Predictions:
        with self._lock:
            k = check_k(k, len(self.training_set))
            current = self._current
            if current is not None and current.k == k:
                return current

            predictions = evaluate(self.training_set, k, self.grid, weights=self.weights)
            self._current = predictions
            logger.info("Decision surface recomputed for k=%d (%d points)", predictions.k, len(predictions))
            return predictions
