"""Shared configuration schema, mode enums and error types for training/evaluation scripts."""

from typing import Literal, Optional
from pydantic import BaseModel, Field, PositiveInt
from enum import Enum


class ConfigurationError(ValueError):
    """Raised when a split, fold count, label or snapshot cannot be used as configured."""


class LabelRangeError(ConfigurationError, IndexError):
    """Raised when a class index does not fit the number of output neurons."""


class DatasetParseError(ValueError):
    """Raised when a delimited dataset file cannot be parsed completely."""


class Config(BaseModel):
    """Strictly validates all tunable knobs for both training and evaluation."""
    dataset_csv: str                                                # Dataset file path
    testset_csv: Optional[str] = None                               # Held-out file path (evaluation only)
    separator: str = ","                                            # Column delimiter
    skip_header: bool = False                                       # First line is a header
    label_position: Literal['first', 'last'] = 'last'               # Column holding the class label
    shuffle: bool = True                                            # Shuffle rows before splitting
    validation: Literal['percentage', 'cross'] = 'percentage'       # Percentage split or k-fold cross validation
    training_split: int = Field(66, gt=0, lt=100)                   # Train part in percent (percentage split)
    num_folds: int = Field(10, ge=2)                                # Number of folds (cross validation)
    normalization: Literal['MinMax', 'ZScore'] = 'MinMax'           # Column-wise feature scaling
    hidden_layers: list[PositiveInt] = Field(..., min_length=1)     # Neurons per hidden layer
    learning_rate: float = Field(0.3, gt=0.0)                       # Online SGD step size
    epochs: int = Field(..., gt=0)                                  # Epochs of training
    seed: Optional[int] = None                                      # Seed for shuffling, folds and weights
    parallel: bool = False                                          # Train one network per fold concurrently
    max_workers: Optional[int] = Field(None, gt=0)                  # Thread pool size when parallel
    network_id: str = "MLP"                                         # Identifier prefix of trained networks


class ExecMode(Enum):
    """Lightweight flag to distinguish training vs evaluation CLI flows."""
    TRAIN = 1
    EVAL = 2
