"""Utility helpers shared by training/evaluation scripts."""

from models.common import Config, ExecMode, ConfigurationError
import sys
import inspect
import os
import json
import tomllib
from typing import Any, Mapping
import argparse
import datetime
import numpy as np
import torch
import yaml
from data.LabeledDataset import Dataset, read_csv
from model.MLP import Network
from utils.folds import Fold, for_cross_validation, for_percentage_split
from utils.normalization import Normalizer, NormalizationMethod
from utils.partitioning import cross_split

MODEL_FILE = "model.pth"


def get_config(path: str) -> Config:
    """Load a configuration file from disk (py/json/yaml/toml) into `Config`."""

    def _resolve(p: str) -> str:
        candidates = [p]
        main_dir = get_base_path()
        if main_dir:
            candidates.append(os.path.join(main_dir, p))
            candidates.append(os.path.join(main_dir, os.path.basename(p)))
        candidates.append(os.path.join(os.getcwd(), p))
        for c in candidates:
            if os.path.isfile(c):
                return c
        raise FileNotFoundError(f"Config file not found: {p}")

    def _load(fp: str) -> Mapping[str, Any]:
        ext = os.path.splitext(fp)[1].lower()
        with open(fp, "rb") as f:
            if ext == ".json":
                return json.load(f)
            if ext in (".yml", ".yaml"):
                return yaml.safe_load(f) or {}
            if ext == ".toml":
                return tomllib.load(f)
            if ext == ".py":
                # Execute a simple Python config file of top-level assignments
                src = f.read().decode("utf-8")
                ns: dict[str, Any] = {}
                exec(compile(src, fp, "exec"), {}, ns)
                return {k: v for k, v in ns.items() if not k.startswith("_") and not callable(v)}
        raise ValueError(f"Unsupported config format: {fp}")

    cfg_path = _resolve(path)
    return Config.model_validate(_load(cfg_path))


def get_base_path():
    """Gets the absolute dir path of the script that was executed."""

    # Interactive interpreters have no '__main__' file
    if not hasattr(sys.modules['__main__'], '__file__'):
        return None

    main_script_file = inspect.getfile(sys.modules['__main__'])
    return os.path.dirname(os.path.abspath(main_script_file))


def resolve_path(path: str) -> str:
    """Resolve a path relative to the executed script's directory if it is not absolute."""
    base = get_base_path()
    if os.path.isabs(path) or base is None:
        return path
    return os.path.join(base, path)


def get_args(mode: ExecMode, argv: list[str] | None = None) -> argparse.Namespace:
    """Parse CLI arguments, toggling required flags based on execution mode."""
    parser = argparse.ArgumentParser(description="{} script".format("Training" if mode == ExecMode.TRAIN else "Evaluation"))

    if mode == ExecMode.TRAIN:
        parser.add_argument(
            "--save-model",
            action="store_true",
            default=False,
            help="Save the trained network"
        )

    elif mode == ExecMode.EVAL:
        parser.add_argument(
            "--model",
            type=str,
            required=True,
            help="Path to the model directory"
        )

    parser.add_argument(
        "--config",
        type=str,
        default="configs/seeds.py",
        help="Path to the config file (default: configs/seeds.py)"
    )

    args = parser.parse_args(argv)

    if not os.path.exists(args.config):
        raise FileNotFoundError(f"Config file not found: {args.config}")

    return args


def load_data(csv_path: str, cfg: Config) -> Dataset:
    """Read a delimited file relative to the project root using the configured layout."""
    return read_csv(resolve_path(csv_path), cfg.separator, cfg.skip_header, cfg.label_position)


def build_folds(dataset: Dataset, cfg: Config, rng: np.random.Generator | None = None) -> list[Fold]:
    """Shuffle (if configured) and split the dataset into normalized folds."""
    rng = rng if rng is not None else np.random.default_rng(cfg.seed)
    if cfg.shuffle:
        dataset = dataset.shuffled(rng)
    if cfg.validation == 'percentage':
        return [for_percentage_split(dataset, cfg.training_split, cfg.normalization)]
    if cfg.validation == 'cross':
        splits = cross_split(dataset, cfg.num_folds, rng)
        return for_cross_validation(splits, cfg.normalization)
    raise ConfigurationError(f"Unknown validation mode: {cfg.validation}")


def generate_run_dir_path() -> str:
    """Create a timestamped run directory path under results/ for logging and artifacts."""
    stamp = datetime.datetime.now().strftime("%Y-%m-%d_%H-%M-%S")
    return os.path.join(get_base_path() or os.getcwd(), "results", stamp)


def get_run_dir_path(model_path: str) -> str:
    """Resolve a possibly relative model folder path into an absolute path."""
    return resolve_path(model_path)


def save_model(network: Network, dir: str, statistics: np.ndarray | None = None,
               normalization: "str | NormalizationMethod | None" = None) -> str:
    """
    Persist the network's versioned state as tensors via torch.save.

    Args:
        network: The trained network.
        dir: The run directory receiving the checkpoint.
        statistics: Per-column (stat1, stat2) rows the network's inputs were scaled with.
        normalization: Name of the normalization method the statistics belong to.
    """
    os.makedirs(dir, exist_ok=True)
    state = network.to_state()
    checkpoint = {
        "format_version": state["format_version"],
        "id": state["id"],
        "learning_rate": state["learning_rate"],
        "layers": [
            {"weights": torch.from_numpy(layer["weights"]), "bias": torch.from_numpy(layer["bias"])}
            for layer in state["layers"]
        ],
    }
    if statistics is not None:
        if normalization is None:
            raise ConfigurationError("Saving normalization statistics needs the normalization method")
        checkpoint["normalization"] = NormalizationMethod.parse(normalization).value
        checkpoint["statistics"] = torch.from_numpy(np.array(statistics, dtype=np.float64))
    path = os.path.join(dir, MODEL_FILE)
    torch.save(checkpoint, path)
    print("Saved network {} to {}".format(network.id, path))
    return path


def _read_checkpoint(path: str) -> dict[str, Any]:
    model_fp = os.path.join(path, MODEL_FILE)
    if not os.path.isfile(model_fp):
        raise FileNotFoundError(f"Model checkpoint not found: {model_fp}")

    checkpoint = torch.load(model_fp, map_location="cpu", weights_only=True)
    if not isinstance(checkpoint, dict) or "layers" not in checkpoint:
        raise ConfigurationError("Invalid checkpoint format: expected key 'layers'")
    return checkpoint


def load_model(path: str) -> Network:
    """Restore a network saved with `save_model` from its directory."""
    checkpoint = _read_checkpoint(path)
    state = {key: checkpoint[key] for key in ("format_version", "id", "learning_rate")}
    state["layers"] = [
        {"weights": layer["weights"].numpy(), "bias": layer["bias"].numpy()}
        for layer in checkpoint["layers"]
    ]
    network = Network.from_state(state)
    print("Loaded network {} from {}".format(network.id, path))
    return network


def load_scaling(path: str) -> tuple[Normalizer, np.ndarray]:
    """Restore the normalizer and per-column statistics saved next to a network."""
    checkpoint = _read_checkpoint(path)
    if "statistics" not in checkpoint:
        raise ConfigurationError(f"Checkpoint in {path} carries no normalization statistics")
    normalizer = NormalizationMethod.parse(checkpoint["normalization"]).normalizer
    return normalizer, checkpoint["statistics"].numpy()
