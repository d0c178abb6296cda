import numpy as np
import pytest

from data.LabeledDataset import Dataset, LabeledVector
from models.common import ConfigurationError
from utils.folds import Fold, for_cross_validation, for_percentage_split
from utils.normalization import NormalizationMethod


@pytest.fixture
def dataset() -> Dataset:
    # feature i, label "Class-<i % 3>"
    return Dataset.from_arrays(
        [[float(i), float(10 * i)] for i in range(10)],
        ["Class-{}".format(i % 3) for i in range(10)],
    )


class TestForPercentageSplit:
    """Test cases for folds built from a percentage split."""

    def test_train_part_is_self_normalized(self, dataset):
        fold = for_percentage_split(dataset, 70, "MinMax")
        assert len(fold.train_set) == 7
        # train rows 0..6 -> min 0, max 6
        np.testing.assert_allclose(fold.train_set.features()[:, 0], np.arange(7) / 6)
        assert fold.train_set.labels() == dataset[:7].labels()

    def test_held_out_part_uses_train_statistics(self, dataset):
        fold = for_percentage_split(dataset, 70, NormalizationMethod.MIN_MAX)
        assert len(fold.test_features) == 3
        np.testing.assert_allclose([v[0] for v in fold.test_features], [7 / 6, 8 / 6, 9 / 6])
        np.testing.assert_allclose([v[1] for v in fold.test_features], [70 / 60, 80 / 60, 90 / 60])

    def test_statistics_come_from_train_part(self, dataset):
        fold = for_percentage_split(dataset, 70, "MinMax")
        np.testing.assert_array_equal(fold.statistics, [[0.0, 6.0], [0.0, 60.0]])

    def test_expected_labels_are_integers(self, dataset):
        fold = for_percentage_split(dataset, 70, "ZScore")
        assert fold.expected_labels == [1, 2, 0]

    def test_too_small_split(self, dataset):
        with pytest.raises(ConfigurationError):
            for_percentage_split(dataset[:1], 50, "MinMax")

    def test_input_dim(self, dataset):
        assert for_percentage_split(dataset, 50, "MinMax").input_dim == 2


class TestForCrossValidation:
    """Test cases for folds built from k splits."""

    @pytest.fixture
    def splits(self, dataset) -> list[Dataset]:
        return [dataset[0:3], dataset[3:6], dataset[6:9]]

    def test_one_fold_per_split(self, splits):
        folds = for_cross_validation(splits, "MinMax")
        assert len(folds) == 3
        assert all(len(fold.train_set) == 6 for fold in folds)
        assert all(len(fold.test_features) == 3 for fold in folds)

    def test_train_set_is_complement_of_held_out_split(self, splits):
        folds = for_cross_validation(splits, "MinMax")
        # fold 1 trains on rows 0..2 and 6..8, in that order
        assert folds[1].train_set.labels() == splits[0].labels() + splits[2].labels()
        # rows 0..2, 6..8 -> min 0, max 8
        np.testing.assert_allclose([v[0] for v in folds[1].test_features], [3 / 8, 4 / 8, 5 / 8])
        assert folds[1].expected_labels == [0, 1, 2]

    def test_held_out_values_do_not_affect_their_normalization(self, splits):
        before = for_cross_validation(splits, "ZScore")
        changed = list(splits)
        rows = list(splits[0])
        rows[0] = LabeledVector([1000.0, -1000.0], rows[0].label)
        changed[0] = Dataset(rows)
        after = for_cross_validation(changed, "ZScore")
        for idx in (1, 2):
            np.testing.assert_array_equal(before[0].test_features[idx], after[0].test_features[idx])
        # folds that train on the changed row do see it
        assert not np.array_equal(before[1].test_features[0], after[1].test_features[0])

    def test_splits_are_not_modified(self, splits):
        before = [split.features().copy() for split in splits]
        for_cross_validation(splits, "MinMax")
        for split, values in zip(splits, before):
            np.testing.assert_array_equal(split.features(), values)

    def test_needs_two_splits(self, splits):
        with pytest.raises(ConfigurationError):
            for_cross_validation(splits[:1], "MinMax")


def test_fold_requires_aligned_labels():
    with pytest.raises(ValueError):
        Fold(train_set=Dataset.empty(), test_features=[np.zeros(2)], expected_labels=[])
