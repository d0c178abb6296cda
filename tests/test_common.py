import json

import numpy as np
import pytest
from pydantic import ValidationError

from data.LabeledDataset import Dataset
from model.MLP import Network
from models.common import Config, ConfigurationError, ExecMode
from utils.common import build_folds, get_args, get_config, load_data, load_model, load_scaling, save_model
from utils.folds import for_percentage_split
from utils.normalization import MinMaxNormalizer

CONFIG = {
    "dataset_csv": "dataset/seeds.csv",
    "validation": "cross",
    "num_folds": 5,
    "normalization": "ZScore",
    "hidden_layers": [8, 4],
    "learning_rate": 0.2,
    "epochs": 10,
    "seed": 3,
}


def make_config(**overrides) -> Config:
    return Config.model_validate({**CONFIG, **overrides})


def make_dataset(size: int = 20) -> Dataset:
    rng = np.random.default_rng(0)
    return Dataset.from_arrays(rng.uniform(1.0, 2.0, size=(size, 3)), [str(i % 2) for i in range(size)])


class TestGetConfig:
    """Test cases for loading configuration files."""

    def test_python_config(self, tmp_path):
        path = tmp_path / "cfg.py"
        path.write_text("\n".join("{}={!r}".format(k, v) for k, v in CONFIG.items()))
        assert get_config(str(path)) == make_config()

    def test_json_config(self, tmp_path):
        path = tmp_path / "cfg.json"
        path.write_text(json.dumps(CONFIG))
        assert get_config(str(path)) == make_config()

    def test_yaml_config(self, tmp_path):
        path = tmp_path / "cfg.yaml"
        path.write_text("\n".join("{}: {}".format(k, json.dumps(v)) for k, v in CONFIG.items()))
        assert get_config(str(path)) == make_config()

    def test_toml_config(self, tmp_path):
        path = tmp_path / "cfg.toml"
        path.write_text("\n".join("{} = {}".format(k, json.dumps(v)) for k, v in CONFIG.items()))
        assert get_config(str(path)) == make_config()

    def test_defaults(self):
        cfg = Config(dataset_csv="x.csv", hidden_layers=[2], epochs=1)
        assert cfg.learning_rate == 0.3
        assert cfg.normalization == "MinMax"
        assert cfg.validation == "percentage"
        assert cfg.seed is None

    @pytest.mark.parametrize("override", [
        {"epochs": 0},
        {"training_split": 100},
        {"num_folds": 1},
        {"normalization": "Softmax"},
        {"hidden_layers": []},
        {"hidden_layers": [0]},
    ])
    def test_invalid_values(self, override):
        with pytest.raises(ValidationError):
            make_config(**override)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            get_config(str(tmp_path / "missing.py"))

    def test_unsupported_format(self, tmp_path):
        path = tmp_path / "cfg.ini"
        path.write_text("[x]")
        with pytest.raises(ValueError):
            get_config(str(path))


class TestGetArgs:
    """Test cases for CLI parsing."""

    def test_train_args(self, tmp_path):
        path = tmp_path / "cfg.py"
        path.write_text("")
        args = get_args(ExecMode.TRAIN, ["--config", str(path), "--save-model"])
        assert args.save_model is True
        assert args.config == str(path)

    def test_eval_requires_model(self, tmp_path):
        path = tmp_path / "cfg.py"
        path.write_text("")
        args = get_args(ExecMode.EVAL, ["--config", str(path), "--model", "results/run"])
        assert args.model == "results/run"
        with pytest.raises(SystemExit):
            get_args(ExecMode.EVAL, ["--config", str(path)])

    def test_missing_config(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            get_args(ExecMode.TRAIN, ["--config", str(tmp_path / "nope.py")])


class TestBuildFolds:
    """Test cases for building folds from a config."""

    def test_cross_validation(self):
        folds = build_folds(make_dataset(22), make_config())
        assert len(folds) == 5
        assert all(len(fold.test_features) == 4 for fold in folds)
        assert all(len(fold.train_set) == 16 for fold in folds)

    def test_percentage_split(self):
        folds = build_folds(make_dataset(20), make_config(validation="percentage", training_split=75))
        assert len(folds) == 1
        assert len(folds[0].train_set) == 15
        assert len(folds[0].test_features) == 5

    def test_unshuffled_percentage_split_keeps_order(self):
        dataset = make_dataset(20)
        fold = build_folds(dataset, make_config(validation="percentage", training_split=50, shuffle=False))[0]
        assert fold.expected_labels == dataset[10:].int_labels()

    def test_seed_makes_folds_reproducible(self):
        first = build_folds(make_dataset(), make_config())
        second = build_folds(make_dataset(), make_config())
        for a, b in zip(first, second):
            np.testing.assert_array_equal(np.array(a.test_features), np.array(b.test_features))

    def test_too_many_folds(self):
        with pytest.raises(ConfigurationError):
            build_folds(make_dataset(4), make_config(num_folds=5))


class TestPersistence:
    """Test cases for saving and restoring networks."""

    def test_save_and_load_roundtrip(self, tmp_path):
        rng = np.random.default_rng(9)
        network = Network.create("saved", 3, [5], 2, learning_rate=0.07, rng=rng)
        network.train_network(make_dataset(), 3, 2)

        save_model(network, str(tmp_path / "run"))
        restored = load_model(str(tmp_path / "run"))

        assert restored.id == "saved"
        assert restored.learning_rate == 0.07
        for vector in rng.normal(size=(20, 3)):
            np.testing.assert_array_equal(restored.forward(vector), network.forward(vector))

    def test_saved_scaling_reproduces_fold_predictions(self, tmp_path):
        # the extremes of the second column sit in the held-out rows
        rng = np.random.default_rng(12)
        features = rng.uniform(1.0, 2.0, size=(20, 3))
        features[17, 1], features[18, 1] = 0.0, 9.0
        dataset = Dataset.from_arrays(features, [str(i % 2) for i in range(20)])
        fold = for_percentage_split(dataset, 75, "MinMax")
        network = Network.create("scaled", 3, [4], 2, rng=rng)
        network.train_network(fold.train_set, 5, 2)

        save_model(network, str(tmp_path / "run"), fold.statistics, "MinMax")
        restored = load_model(str(tmp_path / "run"))
        normalizer, statistics = load_scaling(str(tmp_path / "run"))

        assert isinstance(normalizer, MinMaxNormalizer)
        np.testing.assert_array_equal(statistics, fold.statistics)
        scaled = normalizer.normalize_columns([row.features for row in dataset[15:]], statistics)
        for vector, expected in zip(scaled, fold.test_features):
            np.testing.assert_array_equal(vector, expected)
            assert restored.predict(vector) == network.predict(expected)
        # scaling with the whole file would differ
        whole = normalizer.normalize_external([row.features for row in dataset[15:]], dataset)
        assert not np.array_equal(whole[0], fold.test_features[0])

    def test_checkpoint_without_statistics(self, tmp_path):
        network = Network.create("plain", 3, [2], 2, rng=np.random.default_rng(0))
        save_model(network, str(tmp_path))
        with pytest.raises(ConfigurationError):
            load_scaling(str(tmp_path))

    def test_statistics_need_a_method(self, tmp_path):
        network = Network.create("plain", 3, [2], 2, rng=np.random.default_rng(0))
        with pytest.raises(ConfigurationError):
            save_model(network, str(tmp_path), np.zeros((3, 2)))

    def test_missing_checkpoint(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_model(str(tmp_path))


def test_load_data(tmp_path):
    path = tmp_path / "data.csv"
    path.write_text("id,a,b\n1,0.5,0.25\n2,1.5,0.75\n")
    cfg = make_config(dataset_csv=str(path), skip_header=True, label_position="first")
    data = load_data(cfg.dataset_csv, cfg)
    assert data.labels() == ["1", "2"]
    np.testing.assert_array_equal(data.features(), [[0.5, 0.25], [1.5, 0.75]])
