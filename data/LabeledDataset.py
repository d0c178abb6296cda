"""Labeled feature vectors, ordered datasets of them and the delimited-file reader."""

from dataclasses import dataclass
from typing import Iterable, Iterator, Literal, Sequence

import numpy as np
import pandas as pd
from pandas.errors import ParserError
from torch.utils.data import Dataset as TorchDataset

from models.common import ConfigurationError, DatasetParseError

_NUMBER_CHARS = frozenset("0123456789.")


@dataclass(frozen=True, eq=False)
class LabeledVector:
    """A row of the dataset: float64 features plus the class label string."""
    features: np.ndarray
    label: str

    def __post_init__(self):
        values = np.array(self.features, dtype=np.float64)
        if values.ndim != 1:
            raise ValueError(f"Features must be one-dimensional, got shape {values.shape}")
        values.flags.writeable = False
        object.__setattr__(self, "features", values)

    def __eq__(self, other):
        if not isinstance(other, LabeledVector):
            return NotImplemented
        return self.label == other.label and np.array_equal(self.features, other.features)

    __hash__ = None

    def _number_string(self) -> str:
        return "".join(char for char in self.label if char in _NUMBER_CHARS)

    def label_as_int(self) -> int:
        """Keep digits and dots of the label, drop the dots and parse the rest, e.g. "Class-1" -> 1."""
        digits = self._number_string().replace(".", "")
        if not digits:
            raise ConfigurationError(f"Label '{self.label}' carries no digits to use as class index")
        return int(digits)

    def label_as_float(self) -> float:
        number = self._number_string()
        if not number.strip("."):
            raise ConfigurationError(f"Label '{self.label}' carries no digits to use as number")
        return float(number)

    @property
    def dimension(self) -> int:
        return len(self.features)


class Dataset(TorchDataset):
    """Ordered, read-only collection of `LabeledVector` rows sharing one dimensionality."""

    def __init__(self, data: Iterable[LabeledVector] = ()):
        self._data: tuple[LabeledVector, ...] = tuple(data)

    @classmethod
    def empty(cls) -> "Dataset":
        return cls(())

    @classmethod
    def concat(cls, *datasets: "Dataset") -> "Dataset":
        """Chain the rows of all given datasets, keeping their order."""
        return cls(row for dataset in datasets for row in dataset)

    @classmethod
    def from_arrays(cls, features: Sequence[Sequence[float]], labels: Sequence[str]) -> "Dataset":
        if len(features) != len(labels):
            raise ValueError(f"features and labels must have same length. Got {len(features)} and {len(labels)}")
        return cls(LabeledVector(row, str(label)) for row, label in zip(features, labels))

    def __add__(self, other: "Dataset") -> "Dataset":
        if not isinstance(other, Dataset):
            return NotImplemented
        return Dataset.concat(self, other)

    def __getitem__(self, idx):
        """Return a single row, or a new dataset for slices."""
        if isinstance(idx, slice):
            return Dataset(self._data[idx])
        return self._data[idx]

    def __len__(self):
        """Length of the dataset (number of rows)."""
        return len(self._data)

    def __iter__(self) -> Iterator[LabeledVector]:
        return iter(self._data)

    def __eq__(self, other):
        if not isinstance(other, Dataset):
            return NotImplemented
        return self._data == other._data

    __hash__ = None

    def __repr__(self):
        return f"Dataset(rows={len(self)})"

    @property
    def rows(self) -> tuple[LabeledVector, ...]:
        return self._data

    def features(self) -> np.ndarray:
        """Stack all feature vectors into a (rows x features) float64 matrix."""
        return feature_matrix([row.features for row in self._data])

    def labels(self) -> list[str]:
        return [row.label for row in self._data]

    def int_labels(self) -> list[int]:
        return [row.label_as_int() for row in self._data]

    def shuffled(self, rng: np.random.Generator | None = None) -> "Dataset":
        """Return a copy with the rows in random order."""
        rng = rng if rng is not None else np.random.default_rng()
        order = rng.permutation(len(self._data))
        return Dataset(self._data[i] for i in order)

    def label_index(self) -> dict[str, int]:
        """Map each distinct label to its position in the sorted label set."""
        return {label: idx for idx, label in enumerate(sorted(set(self.labels())))}

    def encoded_labels(self, mapping: dict[str, int] | None = None) -> list[int]:
        mapping = mapping if mapping is not None else self.label_index()
        try:
            return [mapping[row.label] for row in self._data]
        except KeyError as e:
            raise ConfigurationError(f"Label {e.args[0]!r} is missing from the label index") from e


def feature_matrix(vectors: Sequence[Sequence[float]]) -> np.ndarray:
    """Build a float64 matrix from equally sized vectors, one vector per row."""
    if len(vectors) == 0:
        return np.empty((0, 0), dtype=np.float64)
    dims = {len(vector) for vector in vectors}
    if len(dims) != 1:
        raise ValueError(f"All vectors must share one dimensionality, got {sorted(dims)}")
    return np.array(vectors, dtype=np.float64)


def count_output_neurons(dataset: Dataset) -> int:
    """Number of output neurons required, i.e. the number of distinct labels."""
    return len(set(dataset.labels()))


def read_csv(csv_path: str, separator: str = ",", skip_header: bool = False,
             label_position: Literal['first', 'last'] = 'last') -> Dataset:
    """Read a delimited file into a dataset, taking the label from the first or last column."""
    try:
        df = pd.read_csv(
            csv_path,
            sep=separator,
            header=0 if skip_header else None,
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
            engine="python",
        )
    except ParserError as e:
        raise DatasetParseError(f"Could not parse {csv_path}: {e}") from e

    if df.shape[1] < 2:
        raise DatasetParseError(f"{csv_path} needs at least one feature and one label column")
    if df.isnull().values.any():
        raise DatasetParseError(f"{csv_path} contains rows with missing columns")

    label_col = df.columns[0] if label_position == 'first' else df.columns[-1]
    labels = df.pop(label_col).str.strip().to_list()

    features = np.empty(df.shape, dtype=np.float64)
    for (row, col), token in np.ndenumerate(df.values):
        try:
            features[row, col] = float(token.strip())
        except ValueError as e:
            raise DatasetParseError(
                f"Non-numeric feature {token!r} in {csv_path} at row {row}, column {col}"
            ) from e

    return Dataset.from_arrays(features, labels)
