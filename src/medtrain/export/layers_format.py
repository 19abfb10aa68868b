"""Keras "layers-model" topology and weight buffer encoding for PyTorch models.

The emitted ``model.json`` + ``weights.bin`` pair is loadable by layers-model
runtimes (for example ``tf.loadLayersModel`` in the browser) without any of the
training environment. Weight values are little-endian float32, concatenated in
manifest order; dense kernels are stored ``[in, out]`` as Keras expects.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Protocol

import numpy as np
import torch
from torch import nn

from medtrain import __version__
from medtrain.ml.models import EMBEDDING_INIT_LIMIT, LayerSpec

LAYERS_MODEL_FORMAT = "layers-model"
GENERATED_BY = f"medtrain {__version__}"
WEIGHTS_FILE_NAME = "weights.bin"
MODEL_JSON_FILE_NAME = "model.json"

_KERAS_CLASS_NAMES = {
    "embedding": "Embedding",
    "global_average_pooling_1d": "GlobalAveragePooling1D",
    "dense": "Dense",
    "dropout": "Dropout",
}

_ZEROS = {"class_name": "Zeros", "config": {}}
_GLOROT_NORMAL = {
    "class_name": "VarianceScaling",
    "config": {"scale": 1, "mode": "fan_avg", "distribution": "normal", "seed": None},
}
_EMBEDDING_UNIFORM = {
    "class_name": "RandomUniform",
    "config": {"minval": -EMBEDDING_INIT_LIMIT, "maxval": EMBEDDING_INIT_LIMIT, "seed": None},
}


class SequentialLayersModel(Protocol):
    """Model exposing its layer stack for serialization."""

    def layer_specs(self) -> tuple[LayerSpec, ...]: ...


@dataclass(frozen=True, slots=True)
class WeightSpec:
    """Name, shape and dtype of one tensor inside ``weights.bin``."""

    name: str
    shape: tuple[int, ...]
    dtype: str = "float32"

    @property
    def byte_length(self) -> int:
        return int(np.prod(self.shape, dtype=np.int64)) * 4

    def to_json(self) -> dict[str, Any]:
        return {"name": self.name, "shape": list(self.shape), "dtype": self.dtype}


@dataclass(frozen=True, slots=True)
class LayersModelArtifacts:
    """Raw topology, per-tensor specs and the concatenated weight buffer."""

    model_topology: dict[str, Any]
    weight_specs: tuple[WeightSpec, ...]
    weight_data: bytes
    format: str = LAYERS_MODEL_FORMAT
    generated_by: str = GENERATED_BY
    converted_by: str | None = None

    def model_json(self, *, weights_path: str = f"./{WEIGHTS_FILE_NAME}") -> dict[str, Any]:
        """``model.json`` payload referencing a single weights shard."""
        return {
            "modelTopology": self.model_topology,
            "format": self.format,
            "generatedBy": self.generated_by,
            "convertedBy": self.converted_by,
            "weightsManifest": [
                {
                    "paths": [weights_path],
                    "weights": [spec.to_json() for spec in self.weight_specs],
                }
            ],
        }


def encode_layers_model(model: SequentialLayersModel, *, name: str = "sequential_1") -> LayersModelArtifacts:
    """Serialize a sequential PyTorch model into layers-model artifacts."""
    specs = model.layer_specs()
    if not specs:
        raise ValueError("model must declare at least one layer")

    counters: dict[str, int] = {}
    layers: list[dict[str, Any]] = []
    weight_specs: list[WeightSpec] = []
    chunks: list[bytes] = []
    for index, spec in enumerate(specs):
        class_name = _KERAS_CLASS_NAMES.get(spec.kind)
        if class_name is None:
            raise ValueError(f"unsupported layer kind: {spec.kind!r}")
        counters[class_name] = counters.get(class_name, 0) + 1
        layer_name = f"{_snake_case(class_name)}_{class_name}{counters[class_name]}"

        config, tensors = _layer_config(spec, layer_name=layer_name, first=index == 0)
        layers.append({"class_name": class_name, "config": config})
        for weight_name, array in tensors:
            weight_specs.append(WeightSpec(name=f"{layer_name}/{weight_name}", shape=tuple(array.shape)))
            chunks.append(array.tobytes(order="C"))

    topology = {
        "class_name": "Sequential",
        "config": {"name": name, "layers": layers},
        "keras_version": GENERATED_BY,
        "backend": "tensor_flow.js",
    }
    return LayersModelArtifacts(
        model_topology=topology,
        weight_specs=tuple(weight_specs),
        weight_data=b"".join(chunks),
    )


def topology_input_width(model_topology: dict[str, Any]) -> int:
    """Width of the input layer declared by a sequential topology."""
    layers = model_topology.get("config", {}).get("layers", [])
    if not layers:
        raise ValueError("topology declares no layers")
    shape = layers[0].get("config", {}).get("batch_input_shape")
    if not isinstance(shape, list) or len(shape) != 2 or not isinstance(shape[1], int):
        raise ValueError("first layer must declare batch_input_shape [null, width]")
    return int(shape[1])


def _layer_config(
    spec: LayerSpec,
    *,
    layer_name: str,
    first: bool,
) -> tuple[dict[str, Any], list[tuple[str, np.ndarray]]]:
    config: dict[str, Any]
    tensors: list[tuple[str, np.ndarray]] = []
    if spec.kind == "embedding":
        module = _require(spec.module, nn.Embedding)
        input_length = int(spec.options["input_length"])
        config = {
            "input_dim": int(module.num_embeddings),
            "output_dim": int(module.embedding_dim),
            "embeddings_initializer": _EMBEDDING_UNIFORM,
            "embeddings_regularizer": None,
            "activity_regularizer": None,
            "embeddings_constraint": None,
            "mask_zero": None,
            "input_length": input_length,
        }
        tensors.append(("embeddings", _float32(module.weight)))
        input_width: int | None = input_length
    elif spec.kind == "dense":
        module = _require(spec.module, nn.Linear)
        config = {
            "units": int(module.out_features),
            "activation": spec.options.get("activation", "linear"),
            "use_bias": module.bias is not None,
            "kernel_initializer": _GLOROT_NORMAL,
            "bias_initializer": _ZEROS,
            "kernel_regularizer": None,
            "bias_regularizer": None,
            "activity_regularizer": None,
            "kernel_constraint": None,
            "bias_constraint": None,
        }
        tensors.append(("kernel", _float32(module.weight.t())))
        if module.bias is not None:
            tensors.append(("bias", _float32(module.bias)))
        input_width = int(spec.options.get("input_width", module.in_features))
    elif spec.kind == "dropout":
        config = {"rate": float(spec.options["rate"]), "noise_shape": None, "seed": None}
        input_width = None
    else:
        config = {}
        input_width = None

    config["name"] = layer_name
    config["trainable"] = True
    if first:
        if input_width is None:
            raise ValueError(f"{spec.kind} cannot be the input layer")
        config["batch_input_shape"] = [None, input_width]
        config["dtype"] = "float32"
    return config, tensors


def _require(module: nn.Module | None, expected: type[nn.Module]) -> Any:
    if not isinstance(module, expected):
        raise ValueError(f"layer spec requires a {expected.__name__} module")
    return module


def _float32(tensor: torch.Tensor) -> np.ndarray:
    return np.ascontiguousarray(tensor.detach().cpu().numpy(), dtype="<f4")


def _snake_case(class_name: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", class_name).lower().replace("1_d", "1d")
