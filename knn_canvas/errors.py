# errors.py
"""
Error types raised by knn_canvas. All of them are fail-fast: nothing here
is retried or recovered internally, the caller decides what to show.
"""


class KnnCanvasError(Exception):
    """Base class for every knn_canvas error."""

    kind = "error"


class InvalidInputError(KnnCanvasError, ValueError):
    """Training data or grid cannot define a decision surface."""

    kind = "invalid_input"


class InvalidParameterError(KnnCanvasError, ValueError):
    """A numeric parameter (k, margin, step, weights) is out of range."""

    kind = "invalid_parameter"


class MalformedRecordError(KnnCanvasError, ValueError):
    """A training CSV row is missing a field or has a bad coordinate."""

    kind = "malformed_record"

    def __init__(self, message, row=None, column=None):
        super().__init__(message)
        self.row = row
        self.column = column


class EvaluationCancelled(KnnCanvasError):
    """should_cancel() asked an evaluation to stop between chunks."""

    kind = "cancelled"
