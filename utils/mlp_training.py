"""Helpers for training and evaluating MLP networks, synchronously or as scheduled tasks."""

from concurrent.futures import Executor, Future, ThreadPoolExecutor, wait
from typing import Callable, Sequence

import numpy as np

from data.LabeledDataset import Dataset, count_output_neurons
from model.MLP import Network


def calculate_accuracy(predicted: Sequence[int], expected: Sequence[int]) -> float:
    """Percentage of positions where the predicted class equals the expected one."""
    if len(predicted) != len(expected):
        raise ValueError(f"predicted and expected must have same length. Got {len(predicted)} and {len(expected)}")
    if len(expected) == 0:
        raise ValueError("Cannot compute accuracy of an empty prediction")
    num_correct = sum(1 for p, e in zip(predicted, expected) if p == e)
    return num_correct / len(expected) * 100


class TrainingRunner:
    """
    Couples one network with the dataset and epoch count it is trained with.

    Use `train`/`predict`/`evaluate` directly on the calling thread, or hand
    the runner to an executor with `schedule`. Each runner owns its network,
    so different runners can train in parallel.
    """

    def __init__(self, network: Network, dataset: Dataset | None = None, num_epochs: int = 0,
                 num_outputs: int | None = None):
        self.network = network
        self.dataset = dataset if dataset is not None else Dataset.empty()
        self.num_epochs = num_epochs
        self.num_outputs = num_outputs

    def train(self, train_data: Dataset | None = None, num_epochs: int | None = None) -> None:
        """Train the network; the output size defaults to the number of distinct labels."""
        train_data = train_data if train_data is not None else self.dataset
        num_epochs = num_epochs if num_epochs is not None else self.num_epochs
        num_outputs = self.num_outputs if self.num_outputs is not None else count_output_neurons(train_data)
        print('Train - Network: {} Samples: {} Epochs: {}'.format(self.network.id, len(train_data), num_epochs))
        self.network.train_network(train_data, num_epochs, num_outputs)

    def predict(self, test_data: Sequence[np.ndarray]) -> list[int]:
        """Predict the class index of every vector in `test_data`."""
        return [self.network.predict(vector) for vector in test_data]

    def evaluate(self, test_data: Sequence[np.ndarray], expected: Sequence[int]) -> float:
        """Predict `test_data` and return the accuracy in percent."""
        accuracy = calculate_accuracy(self.predict(test_data), expected)
        print('Valid - Network: {} Accuracy: {:.4f}'.format(self.network.id, accuracy))
        return accuracy

    def run(self) -> str:
        """Train with the stored dataset and epoch count, returning the network id."""
        self.train()
        return self.network.id

    def schedule(self, executor: Executor, on_completed: Callable[[str], None] | None = None) -> "Future[str]":
        """
        Submit training to `executor`.

        The returned future resolves to the network id once training finished,
        or carries the exception training failed with. `on_completed` is called
        exactly once with the id, on the executing thread, after a successful run.
        """
        def task() -> str:
            network_id = self.run()
            if on_completed is not None:
                on_completed(network_id)
            return network_id

        return executor.submit(task)


def train_all(runners: Sequence[TrainingRunner], max_workers: int | None = None) -> list[str]:
    """
    Train all runners concurrently and block until every one of them is done.

    Returns:
        The network ids, in the order of `runners`.

    Raises:
        The first exception raised by any training task, after all tasks ended.
    """
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        futures = [runner.schedule(executor) for runner in runners]
        wait(futures)
    return [future.result() for future in futures]
