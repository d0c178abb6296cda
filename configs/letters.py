"""Letter recognition subset (16 features) with a 66% percentage split."""

dataset_csv="dataset/letters_train.csv"   # Dataset file path
testset_csv="dataset/letters_test.csv"    # Held-out file path for eval.py
separator=","                             # Column delimiter
skip_header=True                          # First line holds column names
label_position="last"                     # Class label is the last column
shuffle=True                              # Shuffle rows before splitting
validation="percentage"                   # Sequential split after shuffling
training_split=66                         # Train part in percent
normalization="MinMax"                    # Column-wise min/max scaling
hidden_layers=[40]                        # Wider hidden layer for more classes
learning_rate=0.01                        # Small steps over many epochs
epochs=500                                # Passes over the train set
network_id="LETTERS"                      # Network identifier prefix
