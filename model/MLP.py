"""Feed-forward sigmoid MLP trained with online backpropagation."""

from dataclasses import dataclass
from typing import Any, Iterator, Sequence

import numpy as np

from models.common import Config, ConfigurationError, LabelRangeError

STATE_FORMAT_VERSION = 1


def sigmoid(activation):
    """Transfer a neuron activation into (0, 1)."""
    return 1.0 / (1.0 + np.exp(-activation))


def sigmoid_derivative(output):
    """Derivative of the sigmoid expressed through the neuron output."""
    return output * (1.0 - output)


@dataclass
class Neuron:
    """Weights connecting one neuron to every input of its layer."""
    weights: np.ndarray

    def __post_init__(self):
        self.weights = np.array(self.weights, dtype=np.float64)


class Layer:
    """
    Neurons of one layer plus their shared output, bias and delta buffers.

    The buffers are reused by every forward and backward pass of the owning
    network; `output[i]`, `bias[i]` and `delta[i]` belong to `neurons[i]`.
    """

    def __init__(self, neurons: Sequence[Neuron], bias: np.ndarray | None = None):
        self.neurons: list[Neuron] = list(neurons)
        size = len(self.neurons)
        self.output = np.zeros(size, dtype=np.float64)
        self.bias = np.zeros(size, dtype=np.float64) if bias is None else np.array(bias, dtype=np.float64)
        self.delta = np.zeros(size, dtype=np.float64)
        if self.bias.shape != (size,):
            raise ValueError(f"Bias vector length {self.bias.shape} must match the number of neurons {size}")

    def __iter__(self) -> Iterator[Neuron]:
        return iter(self.neurons)

    def __len__(self):
        return len(self.neurons)

    def __repr__(self):
        return f"Layer(neurons={len(self.neurons)}, inputs={self.input_dim})"

    @property
    def input_dim(self) -> int:
        return len(self.neurons[0].weights) if self.neurons else 0

    def weight_matrix(self) -> np.ndarray:
        """Neuron weights stacked as a (neurons x inputs) matrix copy."""
        return np.stack([neuron.weights for neuron in self.neurons])


class Network:
    """
    Ordered stack of sigmoid layers trained by per-sample gradient descent.

    A network mutates its layer buffers in place during training and
    prediction, so one instance must never be used by two threads at once.
    """

    def __init__(self, network_id: str, layers: Sequence[Layer] = (), learning_rate: float = 0.3):
        self.id = network_id
        self.layers: list[Layer] = list(layers)
        self.learning_rate = learning_rate
        self._check_shapes()

    @classmethod
    def create(cls, network_id: str, num_inputs: int, hidden_layers: Sequence[int], num_outputs: int,
               learning_rate: float = 0.3, rng: np.random.Generator | None = None) -> "Network":
        """
        Create a network with standard-normal weights and zero biases.

        Args:
            network_id: The network identifier.
            num_inputs: Number of input values.
            hidden_layers: Number of neurons of each hidden layer, in order.
            num_outputs: Number of output neurons.
            learning_rate: Step size of the weight updates.
            rng: Random source for the initial weights, unseeded by default.
        """
        rng = rng if rng is not None else np.random.default_rng()
        layers = []
        num_weights = num_inputs
        for num_neurons in [*hidden_layers, num_outputs]:
            layers.append(Layer([Neuron(rng.standard_normal(num_weights)) for _ in range(num_neurons)]))
            num_weights = num_neurons
        return cls(network_id, layers, learning_rate)

    def _check_shapes(self):
        for idx in range(1, len(self.layers)):
            expected = len(self.layers[idx - 1])
            for neuron in self.layers[idx]:
                if len(neuron.weights) != expected:
                    raise ValueError(
                        f"Neurons of layer {idx} need {expected} weights, got {len(neuron.weights)}"
                    )
        for idx, layer in enumerate(self.layers):
            if len({len(neuron.weights) for neuron in layer}) > 1:
                raise ValueError(f"Neurons of layer {idx} have differing weight counts")

    @property
    def input_dim(self) -> int:
        return self.layers[0].input_dim

    @property
    def output_dim(self) -> int:
        return len(self.layers[-1])

    def forward(self, values) -> np.ndarray:
        """
        Propagate `values` through all layers.

        Every layer's output buffer is overwritten. The returned vector is a
        copy of the output layer's buffer.
        """
        inputs = np.asarray(values, dtype=np.float64)
        for layer in self.layers:
            for idx, neuron in enumerate(layer.neurons):
                activation = layer.bias[idx] + np.dot(inputs, neuron.weights)
                layer.output[idx] = sigmoid(activation)
            inputs = layer.output
        return inputs.copy()

    def backprop(self, expected) -> None:
        """
        Store the error signal of every neuron in the layers' delta buffers.

        Runs from the output layer back to the first one and reads only
        weights that have not been updated for this sample yet.
        """
        expected = np.asarray(expected, dtype=np.float64)
        output_pos = len(self.layers) - 1
        for idx in range(output_pos, -1, -1):  # reverse order
            layer = self.layers[idx]
            if idx == output_pos:
                errors = layer.output - expected
            else:
                next_layer = self.layers[idx + 1]
                errors = np.zeros(len(layer), dtype=np.float64)
                for k, neuron in enumerate(next_layer.neurons):
                    errors += neuron.weights * next_layer.delta[k]
            layer.delta[:] = errors * sigmoid_derivative(layer.output)

    def update_weights(self, values) -> None:
        """Apply the stored deltas, taking inputs from `values` or the previous layer's output."""
        sample = np.asarray(values, dtype=np.float64)
        for idx, layer in enumerate(self.layers):
            inputs = sample if idx == 0 else self.layers[idx - 1].output
            for n, neuron in enumerate(layer.neurons):
                step = self.learning_rate * layer.delta[n]
                neuron.weights -= step * inputs
                layer.bias[n] -= step

    def train_network(self, train_data, num_epochs: int, num_outputs: int) -> None:
        """
        Train on `train_data` with online gradient descent.

        Samples are visited in their given order in every epoch.

        Args:
            train_data: Rows with `features` and `label_as_int()`.
            num_epochs: Number of passes over the data.
            num_outputs: Length of the one-hot target vectors.
        """
        for _ in range(num_epochs):
            for row in train_data:
                self.forward(row.features)  # discard output
                expected = one_hot(row.label_as_int(), num_outputs)
                self.backprop(expected)
                self.update_weights(row.features)

    def predict(self, values) -> int:
        """Return the index of the largest output, the first one on ties."""
        return int(np.argmax(self.forward(values)))

    def to_state(self) -> dict[str, Any]:
        """Encode all trainable state as plain, versioned data."""
        return {
            "format_version": STATE_FORMAT_VERSION,
            "id": self.id,
            "learning_rate": float(self.learning_rate),
            "layers": [
                {"weights": layer.weight_matrix(), "bias": layer.bias.copy()}
                for layer in self.layers
            ],
        }

    @classmethod
    def from_state(cls, state: dict[str, Any]) -> "Network":
        """Restore a network from `to_state` output without retraining."""
        version = state.get("format_version")
        if version != STATE_FORMAT_VERSION:
            raise ConfigurationError(f"Unsupported network state version: {version}")
        layers = []
        for layer_state in state["layers"]:
            weights = np.array(layer_state["weights"], dtype=np.float64)
            if weights.ndim != 2:
                raise ValueError(f"Layer weights must be a matrix, got shape {weights.shape}")
            layers.append(Layer([Neuron(row.copy()) for row in weights], bias=layer_state["bias"]))
        return cls(state["id"], layers, float(state["learning_rate"]))

    def __str__(self):
        return "\n".join(
            f"Layer{idx}: {layer!r}" for idx, layer in enumerate(self.layers, start=1)
        )


def one_hot(label: int, num_classes: int) -> np.ndarray:
    """Binary target vector with a 1 at `label`."""
    if not 0 <= label < num_classes:
        raise LabelRangeError(f"Class index {label} is out of range for {num_classes} output neurons")
    vec = np.zeros(num_classes, dtype=np.float64)
    vec[label] = 1.0
    return vec


def load_model(input_size: int, num_outputs: int, cfg: Config, network_id: str | None = None,
               rng: np.random.Generator | None = None) -> Network:
    """Create a network whose hidden layers mirror `cfg.hidden_layers`."""
    return Network.create(
        network_id if network_id is not None else cfg.network_id,
        input_size,
        cfg.hidden_layers,
        num_outputs,
        learning_rate=cfg.learning_rate,
        rng=rng,
    )
