"""Wheat seeds dataset (7 features, 3 classes) with 10-fold cross validation."""

dataset_csv="dataset/seeds_dataset.csv"   # Dataset file path
separator=","                             # Column delimiter
skip_header=False                         # File has no header line
label_position="last"                     # Class label is the last column
shuffle=True                              # Shuffle rows before splitting
validation="cross"                        # k-fold cross validation
num_folds=10                              # Number of folds
normalization="MinMax"                    # Column-wise min/max scaling
hidden_layers=[10]                        # Single small hidden layer
learning_rate=0.3                         # Online SGD step size
epochs=100                                # Passes over each train set
parallel=True                             # Train the folds concurrently
network_id="SEEDS"                        # Network identifier prefix
