"""Feature assembly: labeled examples to fixed-width model tensors."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import numpy as np
import torch

from medtrain.data.contracts import LabeledTabularExample, LabeledTextExample
from medtrain.data.labeling import TRIAGE_CLASSES
from medtrain.data.tabular import (
    AGE_FEATURE,
    GENDER_FEATURE,
    SURVEY_FEATURES,
    CategoricalEncoder,
    is_valid_age,
    normalize_age,
    normalize_gender,
    parse_age,
)
from medtrain.data.text import MAX_LEN, Vocabulary

SURVEY_CLASSES: tuple[str, ...] = ("No", "Yes")


@dataclass(frozen=True, slots=True)
class AssembledDataset:
    """Parallel feature matrix / label vector with their layout metadata."""

    inputs: torch.Tensor
    labels: torch.Tensor
    class_names: tuple[str, ...]
    input_width: int
    dropped_rows: int = 0

    def __len__(self) -> int:
        return int(self.labels.shape[0])


def text_examples_to_dataset(
    examples: Sequence[LabeledTextExample],
    *,
    vocabulary: Vocabulary,
    class_names: Sequence[str] = TRIAGE_CLASSES,
    max_len: int = MAX_LEN,
) -> AssembledDataset:
    """Encode every text as a zero-padded id sequence of length ``max_len``."""
    if max_len <= 0:
        raise ValueError("max_len must be > 0")
    class_to_index = _class_index(class_names)

    rows: list[tuple[int, ...]] = []
    label_indices: list[int] = []
    for example in examples:
        label_name = example.label.value
        if label_name not in class_to_index:
            raise ValueError(f"Example label {label_name!r} is not present in class names")
        rows.append(vocabulary.encode_text(example.text, max_len=max_len))
        label_indices.append(class_to_index[label_name])

    inputs_np = np.asarray(rows, dtype=np.int64).reshape(len(rows), max_len)
    labels_np = np.asarray(label_indices, dtype=np.int64)
    return AssembledDataset(
        inputs=torch.from_numpy(inputs_np),
        labels=torch.from_numpy(labels_np),
        class_names=tuple(class_names),
        input_width=max_len,
    )


def tabular_examples_to_dataset(
    examples: Sequence[LabeledTabularExample],
    *,
    encoder: CategoricalEncoder,
    feature_names: Sequence[str] = SURVEY_FEATURES,
) -> AssembledDataset:
    """Build ``[normalized_age, gender_code, categorical ids...]`` per valid row.

    Rows whose age is missing, unparseable or outside [18, 100] are skipped
    before any categorical value is encoded, so they never reach a mapping.
    """
    if AGE_FEATURE not in feature_names or GENDER_FEATURE not in feature_names:
        raise ValueError("feature_names must include Age and Gender")
    categorical = tuple(
        name for name in feature_names if name not in (AGE_FEATURE, GENDER_FEATURE)
    )
    for name in categorical:
        encoder.declare(name)
    width = 2 + len(categorical)

    rows: list[list[float]] = []
    label_indices: list[int] = []
    dropped = 0
    for example in examples:
        age = parse_age(example.features.get(AGE_FEATURE))
        if age is None or not is_valid_age(age):
            dropped += 1
            continue
        vector = [normalize_age(age), float(normalize_gender(example.features.get(GENDER_FEATURE)))]
        vector.extend(
            float(encoder.encode(name, example.features.get(name))) for name in categorical
        )
        rows.append(vector)
        label_indices.append(1 if example.target else 0)

    inputs_np = np.asarray(rows, dtype=np.float32).reshape(len(rows), width)
    labels_np = np.asarray(label_indices, dtype=np.int64)
    return AssembledDataset(
        inputs=torch.from_numpy(inputs_np),
        labels=torch.from_numpy(labels_np),
        class_names=SURVEY_CLASSES,
        input_width=width,
        dropped_rows=dropped,
    )


def _class_index(class_names: Sequence[str]) -> dict[str, int]:
    if len(class_names) <= 1:
        raise ValueError("at least two classes are required for classification")
    if len(set(class_names)) != len(class_names):
        raise ValueError("class names must be unique")
    return {name: idx for idx, name in enumerate(class_names)}
