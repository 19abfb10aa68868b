"""PyTorch models for medtrain classifiers."""

from medtrain.ml.models import (
    LayerSpec,
    SurveyRiskClassifier,
    TriageTextClassifier,
    reset_layer_parameters,
)

__all__ = [
    "LayerSpec",
    "SurveyRiskClassifier",
    "TriageTextClassifier",
    "reset_layer_parameters",
]
