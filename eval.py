"""Evaluation entry point for a saved network.

Loads a saved run, normalizes the held-out CSV with the statistics of the fold
the network was trained on (stored in the checkpoint), and reports accuracy
plus the confusion matrix.
"""

from utils.common import get_args, load_model, load_scaling, get_run_dir_path, get_config, load_data, generate_run_dir_path
from utils.mlp_training import TrainingRunner, calculate_accuracy
from argparse import Namespace
from models.common import ExecMode, Config
from data.LabeledDataset import Dataset
from torch.utils.tensorboard import SummaryWriter
from sklearn.metrics import confusion_matrix

run_dir_path: str = generate_run_dir_path()

args: Namespace = get_args(ExecMode.EVAL)
cfg: Config = get_config(args.config)

if cfg.testset_csv is None:
    raise SystemExit("Config needs a 'testset_csv' for evaluation")

writer = SummaryWriter(log_dir=run_dir_path)

model_dir = get_run_dir_path(args.model)
network = load_model(model_dir)

# Reference statistics are those of the saved network's train part, never the test data
normalizer, statistics = load_scaling(model_dir)
test_ds: Dataset = load_data(cfg.testset_csv, cfg)

x_test = normalizer.normalize_columns([row.features for row in test_ds], statistics)
y_test = test_ds.int_labels()

print("Test rows: {}, features: {}".format(len(test_ds), len(x_test[0]) if x_test else 0))

runner = TrainingRunner(network)
y_pred = runner.predict(x_test)
accuracy = calculate_accuracy(y_pred, y_test)

cm = confusion_matrix(y_test, y_pred)
print("MLP Confusion Matrix (rows=true, cols=pred):")
print(cm)
print(f"MLP Test Accuracy: {accuracy:.4f}")

writer.add_scalar("MLP/Accuracy/test", accuracy, 0)
writer.add_text(tag='mlp', text_string='Confusion matrix:\n{}'.format(cm))

writer.flush()
writer.close()
