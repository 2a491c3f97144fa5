"""
knn_canvas: k-nearest-neighbour decision surfaces for 2-D dashboards.
"""
from knn_canvas.errors import (
    EvaluationCancelled,
    InvalidInputError,
    InvalidParameterError,
    KnnCanvasError,
    MalformedRecordError,
)
from knn_canvas.surface import DecisionSurface, Prediction, Predictions, evaluate
from knn_canvas.utils.boundary_plot import EvaluationGrid, build_grid
from knn_canvas.utils.data_loader import TrainingSet, load_dataset, load_training_set

__version__ = "0.1.0"

__all__ = [
    "DecisionSurface",
    "EvaluationCancelled",
    "EvaluationGrid",
    "InvalidInputError",
    "InvalidParameterError",
    "KnnCanvasError",
    "MalformedRecordError",
    "Prediction",
    "Predictions",
    "TrainingSet",
    "build_grid",
    "evaluate",
    "load_dataset",
    "load_training_set",
]
