# utils/data_loader.py
"""
Training data for the decision surface.

TrainingSet is the read-only (x, y, label) table every other module works
on. It comes either from a CSV file (load_training_set) or from one of the
built-in scikit-learn toy generators (load_dataset).
"""

import logging
import os
import re
from typing import Dict, List, Optional, Sequence, cast

import numpy as np
import pandas as pd
from sklearn.datasets import load_iris, make_blobs, make_circles, make_moons
from sklearn.preprocessing import StandardScaler
from sklearn.utils import Bunch

from knn_canvas.errors import MalformedRecordError

logger = logging.getLogger(__name__)

DATASET_PREFIX = "dataset:"
BUILTIN_DATASETS = ("moons", "circles", "blobs", "iris")

# "Expected 3 fields in line 4, saw 4" (line counts the header)
_PARSER_LINE = re.compile(r"line (\d+)")


class TrainingSet:
    """
    Immutable, ordered set of labelled 2-D points.

    Record order is meaningful: the evaluator breaks distance ties by it.
    """

    def __init__(self, X, labels: Sequence):
        X = np.array(X, dtype=float)
        if X.size == 0:
            X = X.reshape(0, 2)
        labels = np.array([str(lbl) for lbl in labels], dtype=object)

        if X.ndim != 2 or X.shape[1] != 2:
            raise ValueError("X must be (n_samples, 2)")
        if X.shape[0] != labels.shape[0]:
            raise ValueError(f"X has {X.shape[0]} rows but {labels.shape[0]} labels were given")

        X.flags.writeable = False
        labels.flags.writeable = False
        self._X = X
        self._labels = labels

    @property
    def X(self) -> np.ndarray:
        return self._X

    @property
    def labels(self) -> np.ndarray:
        return self._labels

    @property
    def classes(self) -> List[str]:
        return sorted(set(self._labels.tolist()))

    def class_counts(self) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for lbl in self._labels.tolist():
            counts[lbl] = counts.get(lbl, 0) + 1
        return {c: counts[c] for c in sorted(counts)}

    def __len__(self):
        return int(self._X.shape[0])

    def __iter__(self):
        for (x, y), lbl in zip(self._X.tolist(), self._labels.tolist()):
            yield x, y, lbl

    def __repr__(self):
        return f"TrainingSet(n={len(self)}, classes={self.classes})"


def load_training_set(
    path: str,
    x_col: Optional[str] = None,
    y_col: Optional[str] = None,
    label_col: Optional[str] = None,
) -> TrainingSet:
    """
    Reads a comma-separated, UTF-8 file with a header row.

    Without explicit column names the first three columns are x, y and
    label. Every row must carry all three fields and numeric, finite
    coordinates; the first offending row raises MalformedRecordError.

    Raises:
        FileNotFoundError: If path does not exist.
        MalformedRecordError: On a missing column, missing or extra field,
            bad coordinate, or bytes that are not UTF-8.
    """
    if not os.path.exists(path):
        raise FileNotFoundError(f"Training data file not found at {path}")

    # header=None: the header line fixes the field count, so a row with extra
    # fields is a parser error instead of an implicit index column
    try:
        raw = pd.read_csv(path, header=None, encoding="utf-8", dtype=str, keep_default_na=False)
    except pd.errors.EmptyDataError:
        raise MalformedRecordError(f"{path} is empty, a header row is required")
    except pd.errors.ParserError as e:
        match = _PARSER_LINE.search(str(e))
        row = int(match.group(1)) - 1 if match else None
        raise MalformedRecordError(f"Could not parse {path}: {e}", row=row)
    except UnicodeDecodeError as e:
        raise MalformedRecordError(f"{path} is not valid UTF-8: {e}")

    columns = [str(c) for c in raw.iloc[0].tolist()]
    data = raw.iloc[1:].reset_index(drop=True)
    data.columns = columns
    if x_col is None and y_col is None and label_col is None:
        if len(columns) < 3:
            raise MalformedRecordError(
                f"{path} has {len(columns)} column(s), expected at least x, y and label"
            )
        x_col, y_col, label_col = columns[0], columns[1], columns[2]
    else:
        for name in (x_col, y_col, label_col):
            if name is None or name not in columns:
                raise MalformedRecordError(f"Column {name!r} not found in {path} (columns: {columns})")

    # rows are 1-based data rows, header excluded
    for col in (x_col, y_col, label_col):
        values = data[col]
        missing = values.isna() | (values.astype(str).str.strip() == "")
        if missing.any():
            row = int(np.flatnonzero(missing.to_numpy())[0]) + 1
            raise MalformedRecordError(f"Row {row}: missing value for {col!r}", row=row, column=col)

    coords = []
    for col in (x_col, y_col):
        numeric = pd.to_numeric(data[col].str.strip(), errors="coerce").astype(float)
        bad = ~np.isfinite(numeric.to_numpy())
        if bad.any():
            row = int(np.flatnonzero(bad)[0]) + 1
            raise MalformedRecordError(
                f"Row {row}: non-numeric coordinate {data[col].iloc[row - 1]!r} in {col!r}",
                row=row,
                column=col,
            )
        coords.append(numeric.to_numpy())

    X = np.column_stack(coords) if len(data) else np.empty((0, 2))
    labels = data[label_col].str.strip().tolist()

    ts = TrainingSet(X, labels)
    logger.info("Loaded %d training records from %s (%d classes)", len(ts), path, len(ts.classes))
    return ts


def load_dataset(name: str) -> TrainingSet:
    """Builds one of the built-in toy datasets with standardized features."""
    name = name.lower()

    if name == "moons":
        X, y = make_moons(n_samples=200, noise=0.2, random_state=42)
        labels = ["Class 0", "Class 1"]

    elif name == "circles":
        X, y = make_circles(n_samples=200, noise=0.1, factor=0.5, random_state=42)
        labels = ["Class 0", "Class 1"]

    elif name == "blobs":
        blob_data = make_blobs(n_samples=300, centers=3, cluster_std=2.0, random_state=42)
        X = blob_data[0]
        y = blob_data[1]
        labels = ["Class 0", "Class 1", "Class 2"]

    elif name == "iris":
        # sepal length / sepal width only, the 2-D view
        ds = cast(Bunch, load_iris(return_X_y=False, as_frame=False))
        X = np.asarray(ds.data, dtype=float)[:, :2]
        y = np.asarray(ds.target)
        labels = [str(n) for n in ds.target_names]

    else:
        raise ValueError(f"Unknown dataset: {name}")

    X_scaled = StandardScaler().fit_transform(X)
    ts = TrainingSet(X_scaled, [labels[int(i)] for i in y])
    logger.info("Built %s dataset: %d records", name, len(ts))
    return ts


def resolve_training_source(source: str) -> TrainingSet:
    """'dataset:<name>' selects a built-in dataset, anything else is a CSV path."""
    if source.startswith(DATASET_PREFIX):
        return load_dataset(source[len(DATASET_PREFIX):])
    return load_training_set(source)
