"""Dataset contracts, loaders and deterministic encoders."""

from medtrain.data.contracts import LabeledTabularExample, LabeledTextExample
from medtrain.data.labeling import TRIAGE_CLASSES, TriageLabel, normalize_triage_label
from medtrain.data.store import TextDatasetStore, load_text_examples
from medtrain.data.tabular import (
    SURVEY_FEATURES,
    CategoricalEncoder,
    load_survey_csv,
    normalize_age,
    normalize_gender,
    parse_age,
)
from medtrain.data.text import MAX_LEN, Vocabulary, build_vocabulary, tokenize
from medtrain.data.versioning import dataset_fingerprint

__all__ = [
    "MAX_LEN",
    "SURVEY_FEATURES",
    "TRIAGE_CLASSES",
    "CategoricalEncoder",
    "LabeledTabularExample",
    "LabeledTextExample",
    "TextDatasetStore",
    "TriageLabel",
    "Vocabulary",
    "build_vocabulary",
    "dataset_fingerprint",
    "load_survey_csv",
    "load_text_examples",
    "normalize_age",
    "normalize_gender",
    "normalize_triage_label",
    "parse_age",
    "tokenize",
]
