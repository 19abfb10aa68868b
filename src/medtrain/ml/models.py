"""PyTorch classifiers for triage text and survey risk prediction."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any

import torch
from torch import nn

EMBEDDING_INIT_LIMIT = 0.05


@dataclass(frozen=True, slots=True)
class LayerSpec:
    """Keras-style description of one layer in a sequential stack."""

    kind: str
    module: nn.Module | None = None
    options: dict[str, Any] = field(default_factory=dict)


class TriageTextClassifier(nn.Module):
    """Embedding + global average pooling classifier over padded token ids."""

    def __init__(
        self,
        vocab_size: int,
        num_classes: int,
        *,
        max_len: int = 20,
        embedding_dim: int = 16,
        hidden_units: int = 16,
    ) -> None:
        super().__init__()
        if vocab_size < 0:
            raise ValueError("vocab_size must be >= 0")
        if num_classes <= 1:
            raise ValueError("num_classes must be > 1")
        if max_len <= 0:
            raise ValueError("max_len must be > 0")
        if embedding_dim <= 0 or hidden_units <= 0:
            raise ValueError("embedding_dim and hidden_units must be > 0")

        self.max_len = max_len
        self.embedding = nn.Embedding(vocab_size + 1, embedding_dim)
        self.hidden = nn.Linear(embedding_dim, hidden_units)
        self.classifier = nn.Linear(hidden_units, num_classes)
        reset_layer_parameters(self)

    @property
    def input_width(self) -> int:
        return self.max_len

    def forward(self, x: torch.Tensor) -> torch.Tensor:
        """Return logits for token ids of shape [batch, max_len]."""
        if x.dim() != 2:
            raise ValueError("Input tensor must have shape [batch, max_len]")
        pooled = self.embedding(x.long()).mean(dim=1)
        return self.classifier(torch.relu(self.hidden(pooled)))

    def layer_specs(self) -> tuple[LayerSpec, ...]:
        return (
            LayerSpec("embedding", self.embedding, {"input_length": self.max_len}),
            LayerSpec("global_average_pooling_1d"),
            LayerSpec("dense", self.hidden, {"activation": "relu"}),
            LayerSpec("dense", self.classifier, {"activation": "softmax"}),
        )


class SurveyRiskClassifier(nn.Module):
    """Two hidden-layer MLP over the encoded survey feature vector."""

    def __init__(
        self,
        input_width: int,
        *,
        num_classes: int = 2,
        hidden_units: int = 32,
        second_hidden_units: int = 16,
        dropout: float = 0.2,
    ) -> None:
        super().__init__()
        if input_width <= 0:
            raise ValueError("input_width must be > 0")
        if num_classes <= 1:
            raise ValueError("num_classes must be > 1")
        if not 0.0 <= dropout < 1.0:
            raise ValueError("dropout must be in [0, 1)")

        self._input_width = input_width
        self.hidden = nn.Linear(input_width, hidden_units)
        self.dropout = nn.Dropout(p=dropout)
        self.second_hidden = nn.Linear(hidden_units, second_hidden_units)
        self.classifier = nn.Linear(second_hidden_units, num_classes)
        reset_layer_parameters(self)

    @property
    def input_width(self) -> int:
        return self._input_width

    def forward(self, x: torch.Tensor) -> torch.Tensor:
        """Return logits for feature vectors of shape [batch, input_width]."""
        if x.dim() != 2:
            raise ValueError("Input tensor must have shape [batch, features]")
        hidden = self.dropout(torch.relu(self.hidden(x)))
        return self.classifier(torch.relu(self.second_hidden(hidden)))

    def layer_specs(self) -> tuple[LayerSpec, ...]:
        return (
            LayerSpec("dense", self.hidden, {"activation": "relu", "input_width": self._input_width}),
            LayerSpec("dropout", self.dropout, {"rate": float(self.dropout.p)}),
            LayerSpec("dense", self.second_hidden, {"activation": "relu"}),
            LayerSpec("dense", self.classifier, {"activation": "softmax"}),
        )


def reset_layer_parameters(model: nn.Module) -> None:
    """Initialize weights the way the serialized layer config declares them.

    Embeddings draw from uniform(-0.05, 0.05), dense kernels from a Glorot
    truncated normal and biases start at zero.
    """
    with torch.no_grad():
        for module in model.modules():
            if isinstance(module, nn.Embedding):
                nn.init.uniform_(module.weight, -EMBEDDING_INIT_LIMIT, EMBEDDING_INIT_LIMIT)
            elif isinstance(module, nn.Linear):
                fan_out, fan_in = module.weight.shape
                std = math.sqrt(2.0 / float(fan_in + fan_out))
                nn.init.trunc_normal_(module.weight, mean=0.0, std=std, a=-2.0 * std, b=2.0 * std)
                if module.bias is not None:
                    nn.init.zeros_(module.bias)
