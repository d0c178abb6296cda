"""Ready-to-train folds: normalized train set, normalized held-out features and expected classes."""

from dataclasses import dataclass, field
from typing import Sequence

import numpy as np

from data.LabeledDataset import Dataset
from models.common import ConfigurationError
from utils.normalization import Normalizer, NormalizationMethod, get_normalizer
from utils.partitioning import split_by_percentage


@dataclass(frozen=True)
class Fold:
    """
    A train set plus positionally aligned held-out features and expected class indices.

    `statistics` holds the per-column (stat1, stat2) rows of the unnormalized
    train data both parts were scaled with; new data must be scaled with them
    before it reaches a network trained on this fold.
    """
    train_set: Dataset
    test_features: list[np.ndarray]
    expected_labels: list[int]
    statistics: np.ndarray = field(default_factory=lambda: np.empty((0, 2)))

    def __post_init__(self):
        if len(self.test_features) != len(self.expected_labels):
            raise ValueError(
                f"test_features and expected_labels must have same length. "
                f"Got {len(self.test_features)} and {len(self.expected_labels)}"
            )

    @property
    def input_dim(self) -> int:
        return len(self.test_features[0]) if self.test_features else len(self.train_set[0].features)


def _build_fold(train_data: Dataset, held_out: Dataset, normalizer: Normalizer) -> Fold:
    # statistics come from the unnormalized train data only
    statistics = normalizer.column_statistics(train_data)
    train_set = normalizer.normalize_dataset(train_data)
    test_features = normalizer.normalize_columns([row.features for row in held_out], statistics)
    expected = held_out.int_labels()
    return Fold(train_set=train_set, test_features=test_features, expected_labels=expected,
                statistics=statistics)


def for_percentage_split(dataset: Dataset, percentage: float,
                         method: "str | NormalizationMethod | Normalizer") -> Fold:
    """
    Create a fold from a sequential percentage split of `dataset`.

    Args:
        dataset: The data set to be split, shuffled beforehand if desired.
        percentage: The position (in percent) the data set is split at.
        method: The normalization method to be used.

    Raises:
        ConfigurationError: If the split leaves an empty train or held-out part.
    """
    train_data, held_out = split_by_percentage(dataset, percentage)
    return _build_fold(train_data, held_out, get_normalizer(method))


def for_cross_validation(splits: Sequence[Dataset],
                         method: "str | NormalizationMethod | Normalizer") -> list[Fold]:
    """
    Create one fold per split, training on the concatenation of all other splits.

    Args:
        splits: A split data set, e.g. from `cross_split`.
        method: The normalization method to be used.
    """
    if len(splits) < 2:
        raise ConfigurationError(f"Cross validation needs at least two splits, got {len(splits)}")
    normalizer = get_normalizer(method)
    folds = []
    for idx, split in enumerate(splits):
        train_data = Dataset.concat(*(other for other_idx, other in enumerate(splits) if other_idx != idx))
        folds.append(_build_fold(train_data, split, normalizer))
    return folds
