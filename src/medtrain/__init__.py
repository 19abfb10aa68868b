"""Offline dataset-to-model training pipeline for triage and survey classifiers."""

__version__ = "0.1.0"
