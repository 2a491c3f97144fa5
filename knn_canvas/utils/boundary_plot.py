# utils/boundary_plot.py
"""
Evaluation grid for the decision surface, and packing of a computed
surface into a JSON-friendly dict for the frontend.
"""

import logging
import math
from typing import Any, Dict, Optional

import numpy as np

from knn_canvas.errors import InvalidInputError, InvalidParameterError

logger = logging.getLogger(__name__)

DEFAULT_MARGIN = 1.0
DEFAULT_STEP = 0.1
MAX_GRID_POINTS = 250_000


class EvaluationGrid:
    """
    Regular lattice over the padded bounding box of a training set.

    Points are enumerated with x in the outer loop and y in the inner loop:
    point i*ny + j is (xs[i], ys[j]).
    """

    def __init__(self, xs, ys, margin: float = 0.0, step: Optional[float] = None):
        xs = np.array(xs, dtype=float)
        ys = np.array(ys, dtype=float)
        xx, yy = np.meshgrid(xs, ys, indexing="ij")  # xx[i, j] = xs[i]
        points = np.c_[xx.ravel(), yy.ravel()]

        for arr in (xs, ys, points):
            arr.flags.writeable = False

        self.xs = xs
        self.ys = ys
        self.points = points
        self.margin = float(margin)
        self.step = None if step is None else float(step)

    @property
    def nx(self) -> int:
        return int(self.xs.shape[0])

    @property
    def ny(self) -> int:
        return int(self.ys.shape[0])

    @property
    def bounds(self):
        if len(self) == 0:
            return None
        return float(self.xs[0]), float(self.xs[-1]), float(self.ys[0]), float(self.ys[-1])

    def __len__(self):
        return int(self.points.shape[0])

    def __repr__(self):
        return f"EvaluationGrid(nx={self.nx}, ny={self.ny}, step={self.step}, margin={self.margin})"


def _axis_count(lo: float, hi: float, step: float) -> int:
    return int(math.floor((hi - lo) / step + 1e-9)) + 1


def _axis(lo: float, n: int, step: float) -> np.ndarray:
    # lo + i*step rather than np.arange so the count does not drift with rounding
    return lo + step * np.arange(n, dtype=float)


def build_grid(
    training_set,
    margin: float = DEFAULT_MARGIN,
    step: float = DEFAULT_STEP,
    max_points: int = MAX_GRID_POINTS,
) -> EvaluationGrid:
    """
    Builds the evaluation lattice for a training set.

    Args:
        training_set: TrainingSet (anything with an (n, 2) .X array)
        margin: padding added on every side of the data's bounding box
        step: lattice spacing, identical on both axes
        max_points: upper bound on the number of grid points

    Raises:
        InvalidInputError: if the training set is empty
        InvalidParameterError: on a negative margin, non-positive step, or
            a grid exceeding max_points
    """
    X = np.asarray(training_set.X, dtype=float)
    if X.shape[0] == 0:
        raise InvalidInputError("Cannot build a grid around an empty training set")
    if not (math.isfinite(margin) and margin >= 0):
        raise InvalidParameterError(f"margin must be a finite number >= 0, got {margin}")
    if not (math.isfinite(step) and step > 0):
        raise InvalidParameterError(f"step must be a finite number > 0, got {step}")

    x_min, x_max = float(X[:, 0].min() - margin), float(X[:, 0].max() + margin)
    y_min, y_max = float(X[:, 1].min() - margin), float(X[:, 1].max() + margin)

    nx = _axis_count(x_min, x_max, step)
    ny = _axis_count(y_min, y_max, step)
    if nx * ny > max_points:
        raise InvalidParameterError(
            f"Grid of {nx}x{ny} points exceeds the limit of {max_points}; use a larger step"
        )

    grid = EvaluationGrid(_axis(x_min, nx, step), _axis(y_min, ny, step), margin, step)
    logger.info("Built evaluation grid %dx%d (%d points)", grid.nx, grid.ny, len(grid))
    return grid


def surface_to_dict(grid: EvaluationGrid, predictions) -> Dict[str, Any]:
    """
    Packs a grid and its predictions for the frontend.

    Returns:
        dict with keys: nx, ny, x_min, x_max, y_min, y_max, step, margin,
        k, weights, labels (flat list), confidence (flat list).
        Flat lists follow the grid order (x outer, y inner).
    """
    if len(predictions) != len(grid):
        raise ValueError(f"{len(predictions)} predictions for a grid of {len(grid)} points")

    x_min, x_max, y_min, y_max = grid.bounds
    return {
        "nx": grid.nx,
        "ny": grid.ny,
        "x_min": x_min,
        "x_max": x_max,
        "y_min": y_min,
        "y_max": y_max,
        "step": grid.step,
        "margin": grid.margin,
        "k": predictions.k,
        "weights": predictions.weights,
        "labels": predictions.labels.tolist(),
        "confidence": predictions.confidence.astype(float).tolist(),
    }


def training_to_dict(training_set) -> Dict[str, Any]:
    X = np.asarray(training_set.X, dtype=float)
    return {
        "x": X[:, 0].tolist(),
        "y": X[:, 1].tolist(),
        "labels": training_set.labels.tolist(),
    }
