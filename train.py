"""End-to-end training script for the MLP classifier.

It handles three phases:
1. Read the configured dataset and build normalized folds (percentage split or
   k-fold cross validation).
2. Train one freshly initialized network per fold, sequentially or in a thread pool.
3. Report per-fold accuracy to stdout and TensorBoard, optionally saving the
   network of the last fold.
"""

from utils.common import get_args, get_config, load_data, build_folds, save_model, generate_run_dir_path
from models.common import Config, ExecMode
from argparse import Namespace
from data.LabeledDataset import Dataset, count_output_neurons
from model.MLP import load_model
from utils.mlp_training import TrainingRunner, train_all
from torch.utils.tensorboard import SummaryWriter
import numpy as np

run_dir_path = generate_run_dir_path()

writer = SummaryWriter(log_dir=run_dir_path)

args: Namespace = get_args(ExecMode.TRAIN)
cfg: Config = get_config(args.config)

print("Loaded Configuration: {}".format(cfg))

rng = np.random.default_rng(cfg.seed)

dataset: Dataset = load_data(cfg.dataset_csv, cfg)
folds = build_folds(dataset, cfg, rng)

# Output size comes from the full label set so every fold shares one architecture;
# labels numbered from 1 need one more neuron than there are classes
NUM_OUTPUTS = max(count_output_neurons(dataset), max(dataset.int_labels()) + 1)

print("Rows: {}, folds: {}, output neurons: {}".format(len(dataset), len(folds), NUM_OUTPUTS))

writer.add_text(tag='mlp', text_string='This is a simple MLP with these configs: {}'.format(cfg))

runners: list[TrainingRunner] = []
for idx, fold in enumerate(folds):
    network = load_model(fold.input_dim, NUM_OUTPUTS, cfg, "{}-{}".format(cfg.network_id, idx), rng)
    runners.append(TrainingRunner(network, fold.train_set, cfg.epochs, NUM_OUTPUTS))

if cfg.parallel:
    finished = train_all(runners, cfg.max_workers)
    print("Finished training of {}".format(", ".join(finished)))
else:
    for runner in runners:
        runner.run()

accuracies = []
for idx, (runner, fold) in enumerate(zip(runners, folds)):
    accuracy = runner.evaluate(fold.test_features, fold.expected_labels)
    print('Fold {} - Accuracy: {:.4f}'.format(idx, accuracy))
    writer.add_scalar("MLP/Accuracy/fold", accuracy, idx)
    accuracies.append(accuracy)

mean_accuracy = float(np.mean(accuracies))
print("Success rates: {}".format(["{:.4f}".format(a) for a in accuracies]))
print("Mean accuracy: {:.4f}".format(mean_accuracy))
writer.add_scalar("MLP/Accuracy/mean", mean_accuracy, 0)

writer.flush()
writer.close()

if args.save_model:
    # the saved network only understands inputs scaled with its own fold's statistics
    save_model(runners[-1].network, run_dir_path, folds[-1].statistics, cfg.normalization)
