# models/knn.py
"""
KNN classifier with deterministic tie-breaking.

sklearn's KNeighborsClassifier does not promise which neighbour wins when
distances are equal, so the neighbour search and voting live here.
Rules:
  * neighbours are ordered by Euclidean distance, equal distances by
    training-set order (stable sort)
  * among classes with equal votes, the one whose nearest member ranks
    first in that order wins (closest representative, then earliest record)
"""
import numbers

import numpy as np
from sklearn.preprocessing import LabelEncoder

from knn_canvas.errors import InvalidParameterError

WEIGHTS = ("uniform", "distance")


def check_k(k, n_samples: int) -> int:
    # bool is an int subclass, True must not pass as k=1
    if isinstance(k, bool) or not isinstance(k, numbers.Integral):
        raise InvalidParameterError(f"k must be an integer, got {k!r}")
    k = int(k)
    if k < 1 or k > n_samples:
        raise InvalidParameterError(f"k must be between 1 and {n_samples}, got {k}")
    return k


def check_weights(weights) -> str:
    if weights not in WEIGHTS:
        raise InvalidParameterError(f"weights must be one of {WEIGHTS}, got {weights!r}")
    return weights


class KNNModel:
    def __init__(self, hyperparams=None):
        hyperparams = hyperparams or {}
        self.k = hyperparams.get("n_neighbors", 5)
        self.weights = check_weights(hyperparams.get("weights", "uniform"))
        self.le = LabelEncoder()
        self.fitted = False

    def fit(self, training_set):
        """Stores the training points; KNN has nothing else to learn."""
        X = np.asarray(training_set.X, dtype=float)
        self.k = check_k(self.k, X.shape[0])
        self.X_ = X
        self.y_ = np.asarray(self.le.fit_transform(list(training_set.labels)), dtype=int)
        self.classes_ = [str(c) for c in self.le.classes_]
        self.fitted = True
        return self

    def _check_fitted(self):
        if not self.fitted:
            raise RuntimeError("KNN model not fitted. Call fit first.")

    def kneighbors(self, points):
        """
        Returns (distances, indices), both (n_points, k), nearest first.
        """
        self._check_fitted()
        pts = np.asarray(points, dtype=float).reshape(-1, 2)

        # explicit differences: equal distances must compare exactly equal
        diff = pts[:, None, :] - self.X_[None, :, :]
        dist = np.hypot(diff[..., 0], diff[..., 1])

        order = np.argsort(dist, axis=1, kind="stable")[:, : self.k]
        return np.take_along_axis(dist, order, axis=1), order

    def _neighbour_weights(self, dist):
        if self.weights == "uniform":
            return np.ones_like(dist)

        # a neighbour sitting on the point takes the whole vote
        on_point = dist == 0.0
        with np.errstate(divide="ignore"):
            w = 1.0 / dist
        return np.where(on_point.any(axis=1, keepdims=True), on_point.astype(float), w)

    def vote(self, points):
        """
        Returns (winner codes, confidence, votes) for every point.

        votes is (n_points, n_classes) in classes_ order; confidence is the
        winner's share of the total vote.
        """
        dist, idx = self.kneighbors(points)
        codes = self.y_[idx]
        w = self._neighbour_weights(dist)

        n_classes = len(self.classes_)
        k = idx.shape[1]
        votes = np.zeros((codes.shape[0], n_classes))
        first_rank = np.full((codes.shape[0], n_classes), k)
        for c in range(n_classes):
            member = codes == c
            votes[:, c] = (w * member).sum(axis=1)
            first_rank[:, c] = np.where(member.any(axis=1), member.argmax(axis=1), k)

        tied = votes == votes.max(axis=1, keepdims=True)
        winner = np.where(tied, first_rank, k + 1).argmin(axis=1)

        total = votes.sum(axis=1)
        confidence = votes[np.arange(votes.shape[0]), winner] / total
        return winner, confidence, votes

    def predict(self, points):
        winner, _, _ = self.vote(points)
        return np.asarray(self.le.inverse_transform(winner), dtype=object)

    def predict_proba(self, points):
        _, _, votes = self.vote(points)
        return votes / votes.sum(axis=1, keepdims=True)

    def decode(self, codes):
        return np.asarray(self.le.inverse_transform(codes), dtype=object)
