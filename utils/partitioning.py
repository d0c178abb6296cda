"""Sequential percentage splits and random k-fold splits of a dataset."""

import math

import numpy as np

from data.LabeledDataset import Dataset
from models.common import ConfigurationError


def split_by_percentage(dataset: Dataset, percentage: float) -> list[Dataset]:
    """
    Split `dataset` sequentially at index floor(size * percentage / 100).

    No shuffling happens here, callers shuffle beforehand if they want a
    randomized split.

    Returns:
        Two datasets, rows [0, split_at) and rows [split_at, size).

    Raises:
        ConfigurationError: If either part would be empty.
    """
    split_at = math.floor(len(dataset) * percentage / 100)
    if split_at <= 0 or split_at >= len(dataset):
        raise ConfigurationError(
            f"Split data set is too small: {percentage}% of {len(dataset)} rows leaves an empty part"
        )
    return [dataset[:split_at], dataset[split_at:]]


def cross_split(dataset: Dataset, num_folds: int, rng: np.random.Generator | None = None) -> list[Dataset]:
    """
    Randomly split `dataset` into `num_folds` folds of size floor(size / num_folds).

    Each fold is filled by drawing uniformly random rows without replacement.
    The size % num_folds rows that remain afterwards are discarded.

    Raises:
        ConfigurationError: If `num_folds` is below one or exceeds the number of rows.
    """
    if num_folds < 1 or num_folds > len(dataset):
        raise ConfigurationError(
            f"Cannot split {len(dataset)} rows into {num_folds} non-empty folds"
        )
    rng = rng if rng is not None else np.random.default_rng()
    remaining = list(dataset)
    fold_size = len(dataset) // num_folds
    folds = []
    for _ in range(num_folds):
        fold = []
        while len(fold) < fold_size:
            index = int(rng.integers(len(remaining)))
            fold.append(remaining.pop(index))
        folds.append(Dataset(fold))
    return folds
