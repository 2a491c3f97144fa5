"""
Shared fixtures for the knn_canvas test-suite.

Run with:
    pytest -v
"""

import pytest

from knn_canvas.config import Config
from knn_canvas.utils.data_loader import TrainingSet


class CanvasTestConfig(Config):
    TESTING = True
    DATA_SOURCE = "dataset:moons"
    MARGIN = 1.0
    STEP = 0.5
    K_MAX = 100
    DEFAULT_K = 3
    LOG_TO_FILE = False


@pytest.fixture
def four_points():
    """Two classes on the corners of the unit square: A along y=0, B along y=1."""
    return TrainingSet(
        [(0, 0), (1, 0), (0, 1), (1, 1)],
        ["A", "A", "B", "B"],
    )


@pytest.fixture
def majority_a():
    """Three A's and two B's, so A is the unique global majority."""
    return TrainingSet(
        [(0, 0), (0, 1), (1, 0), (3, 3), (3, 4)],
        ["A", "A", "A", "B", "B"],
    )


@pytest.fixture
def write_csv(tmp_path):
    def _write(text, name="points.csv"):
        path = tmp_path / name
        path.write_text(text, encoding="utf-8")
        return str(path)

    return _write


@pytest.fixture
def make_app():
    from knn_canvas.app import create_app

    def _make(training_set=None, **overrides):
        config = type("Config", (CanvasTestConfig,), overrides)
        return create_app(config, training_set=training_set)

    return _make


@pytest.fixture
def app(make_app, four_points):
    return make_app(four_points)


@pytest.fixture
def client(app):
    return app.test_client()
