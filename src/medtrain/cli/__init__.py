"""Command-line entrypoints for dataset generation and model training."""
