"""Column-wise feature scaling with statistics taken from a designated reference set."""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Sequence

import numpy as np

from data.LabeledDataset import Dataset, LabeledVector, feature_matrix
from models.common import ConfigurationError


class Normalizer(ABC):
    """
    Abstract base class for normalization strategies.

    Implementations are stateless: every statistic is either computed from the
    vector being normalized or passed in explicitly, so a held-out vector can be
    scaled with training statistics only.
    """

    @abstractmethod
    def statistics(self, vector: np.ndarray) -> tuple[float, float]:
        """Return the two statistics this strategy scales with."""

    @abstractmethod
    def normalize_with(self, vector: np.ndarray, stat1: float, stat2: float) -> None:
        """
        Rescale `vector` in place using externally supplied statistics.

        Args:
            vector: The values to be normalized, modified in place.
            stat1: First statistic, e.g. from the train set.
            stat2: Second statistic, e.g. from the train set.
        """

    def normalize_self(self, vector: np.ndarray) -> None:
        """Rescale `vector` in place using its own statistics."""
        self.normalize_with(vector, *self.statistics(vector))

    def normalize_dataset(self, data: Dataset) -> Dataset:
        """
        Normalize every feature column of `data` with the column's own statistics.

        The input dataset is left untouched; labels are reattached to the
        normalized rows in their original order.
        """
        if len(data) == 0:
            return Dataset.empty()
        matrix = data.features()
        for col in range(matrix.shape[1]):
            self.normalize_self(matrix[:, col])
        return Dataset(
            LabeledVector(values, row.label) for values, row in zip(matrix, data)
        )

    def normalize_external(self, test_vectors: Sequence[np.ndarray], reference_data: Dataset) -> list[np.ndarray]:
        """
        Normalize `test_vectors` column-wise with statistics of `reference_data` only.

        Returns:
            New vectors, positionally aligned with `test_vectors`.
        """
        if len(test_vectors) == 0:
            return []
        return self.normalize_columns(test_vectors, self.column_statistics(reference_data))

    def column_statistics(self, reference_data: Dataset) -> np.ndarray:
        """Statistics of every feature column of `reference_data` as a (features x 2) matrix."""
        reference_matrix = reference_data.features()
        return np.array(
            [self.statistics(reference_matrix[:, col]) for col in range(reference_matrix.shape[1])],
            dtype=np.float64,
        ).reshape(-1, 2)

    def normalize_columns(self, vectors: Sequence[np.ndarray], statistics: np.ndarray) -> list[np.ndarray]:
        """Normalize copies of `vectors` column-wise with one (stat1, stat2) row per column."""
        if len(vectors) == 0:
            return []
        matrix = feature_matrix(vectors)
        statistics = np.asarray(statistics, dtype=np.float64)
        if statistics.shape != (matrix.shape[1], 2):
            raise ValueError(
                f"Statistics of shape {statistics.shape} do not fit vectors with {matrix.shape[1]} features"
            )
        for col, (stat1, stat2) in enumerate(statistics):
            self.normalize_with(matrix[:, col], float(stat1), float(stat2))
        return list(matrix)


class MinMaxNormalizer(Normalizer):
    """Maps the range [min, max] onto [0, 1]; constant columns stay unchanged."""

    def statistics(self, vector):
        return float(np.min(vector)), float(np.max(vector))

    def normalize_with(self, vector, stat1, stat2):
        low, high = stat1, stat2
        divisor = high - low
        if divisor != 0:
            vector[:] = (vector - low) / divisor


class ZScoreNormalizer(Normalizer):
    """
    Standardizes to zero mean and unit standard deviation.

    The deviation is sqrt(|SS / n - 1|), so a constant column gets sd 1 and
    is scaled to zero. A column whose mean is exactly zero is left unchanged
    as a whole. Single results that are not a number (0/0 when sd is zero)
    keep their original value while the rest of the column is updated.
    """

    def statistics(self, vector):
        values = np.asarray(vector, dtype=np.float64)
        n = len(values)
        mean = float(np.sum(values) / n)
        sd = float(np.sqrt(abs(np.sum((values - mean) ** 2) / n - 1)))
        return mean, sd

    def normalize_with(self, vector, stat1, stat2):
        mean, sd = stat1, stat2
        if mean == 0:
            return
        with np.errstate(divide='ignore', invalid='ignore'):
            scaled = (vector - mean) / np.float64(sd)
        keep = ~np.isnan(scaled)
        vector[keep] = scaled[keep]


class NormalizationMethod(Enum):
    """Selects one of the normalization strategies by name."""
    MIN_MAX = "MinMax"
    Z_SCORE = "ZScore"

    @property
    def normalizer(self) -> Normalizer:
        return _NORMALIZERS[self]

    @classmethod
    def parse(cls, name: "str | NormalizationMethod") -> "NormalizationMethod":
        if isinstance(name, NormalizationMethod):
            return name
        try:
            return cls(name)
        except ValueError:
            try:
                return cls[name.upper()]
            except KeyError:
                raise ConfigurationError(
                    f"Unknown normalization method {name!r}, expected one of {[m.value for m in cls]}"
                ) from None


_NORMALIZERS: dict[NormalizationMethod, Normalizer] = {
    NormalizationMethod.MIN_MAX: MinMaxNormalizer(),
    NormalizationMethod.Z_SCORE: ZScoreNormalizer(),
}


def get_normalizer(method: "str | NormalizationMethod | Normalizer") -> Normalizer:
    """Resolve a method name, enum member or normalizer instance to a normalizer."""
    if isinstance(method, Normalizer):
        return method
    return NormalizationMethod.parse(method).normalizer
