"""Tests for layers-model topology and weight buffer encoding."""

from __future__ import annotations

import numpy as np
import torch

from medtrain.export import encode_layers_model
from medtrain.export.layers_format import topology_input_width
from medtrain.ml import SurveyRiskClassifier, TriageTextClassifier


def test_encode_triage_model_topology_and_weight_specs() -> None:
    torch.manual_seed(0)
    model = TriageTextClassifier(vocab_size=6, num_classes=3)

    artifacts = encode_layers_model(model)

    layers = artifacts.model_topology["config"]["layers"]
    assert [layer["class_name"] for layer in layers] == [
        "Embedding",
        "GlobalAveragePooling1D",
        "Dense",
        "Dense",
    ]
    assert [layer["config"]["name"] for layer in layers] == [
        "embedding_Embedding1",
        "global_average_pooling1d_GlobalAveragePooling1D1",
        "dense_Dense1",
        "dense_Dense2",
    ]
    assert layers[0]["config"]["input_dim"] == 7
    assert layers[0]["config"]["batch_input_shape"] == [None, 20]
    assert layers[3]["config"]["activation"] == "softmax"
    assert [(spec.name, spec.shape) for spec in artifacts.weight_specs] == [
        ("embedding_Embedding1/embeddings", (7, 16)),
        ("dense_Dense1/kernel", (16, 16)),
        ("dense_Dense1/bias", (16,)),
        ("dense_Dense2/kernel", (16, 3)),
        ("dense_Dense2/bias", (3,)),
    ]
    assert len(artifacts.weight_data) == 1740
    assert topology_input_width(artifacts.model_topology) == 20


def test_encode_stores_dense_kernels_input_major_little_endian() -> None:
    model = SurveyRiskClassifier(input_width=3, hidden_units=2, second_hidden_units=2)
    with torch.no_grad():
        model.hidden.weight.copy_(torch.tensor([[1.0, 2.0, 3.0], [4.0, 5.0, 6.0]]))

    artifacts = encode_layers_model(model)

    first_kernel = np.frombuffer(artifacts.weight_data[: 6 * 4], dtype="<f4").reshape(3, 2)
    assert first_kernel.tolist() == [[1.0, 4.0], [2.0, 5.0], [3.0, 6.0]]
    assert artifacts.weight_specs[0].shape == (3, 2)


def test_encode_survey_model_declares_dropout_and_input_shape() -> None:
    artifacts = encode_layers_model(SurveyRiskClassifier(input_width=21))

    layers = artifacts.model_topology["config"]["layers"]
    assert layers[0]["config"]["batch_input_shape"] == [None, 21]
    assert layers[1]["class_name"] == "Dropout"
    assert layers[1]["config"]["rate"] == 0.2
    assert not any(spec.name.startswith("dropout") for spec in artifacts.weight_specs)


def test_model_json_references_single_weights_shard() -> None:
    artifacts = encode_layers_model(SurveyRiskClassifier(input_width=4))

    payload = artifacts.model_json()

    assert payload["format"] == "layers-model"
    assert payload["generatedBy"].startswith("medtrain ")
    assert payload["convertedBy"] is None
    assert payload["weightsManifest"][0]["paths"] == ["./weights.bin"]
    assert payload["weightsManifest"][0]["weights"][0] == {
        "name": "dense_Dense1/kernel",
        "shape": [4, 32],
        "dtype": "float32",
    }
