"""Inference metadata contracts written next to every model bundle."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

METADATA_FILE_NAME = "metadata.json"


@dataclass(frozen=True, slots=True)
class TriageModelMetadata:
    """Vocabulary and input layout needed to vectorize text at inference."""

    word_index: Mapping[str, int]
    max_len: int
    classes: tuple[str, ...]

    @property
    def input_width(self) -> int:
        return self.max_len

    def to_json(self) -> dict[str, Any]:
        return {
            "wordIndex": dict(self.word_index),
            "maxLen": self.max_len,
            "classes": list(self.classes),
        }


@dataclass(frozen=True, slots=True)
class SurveyModelMetadata:
    """Feature order, categorical mappings and vector width for survey input."""

    features: tuple[str, ...]
    mappings: Mapping[str, Mapping[str, int]]
    input_shape: tuple[int, ...]

    @property
    def input_width(self) -> int:
        return self.input_shape[0]

    def to_json(self) -> dict[str, Any]:
        return {
            "features": list(self.features),
            "mappings": {name: dict(mapping) for name, mapping in self.mappings.items()},
            "inputShape": list(self.input_shape),
        }


ModelMetadata = TriageModelMetadata | SurveyModelMetadata


def write_metadata(output_dir: Path, metadata: ModelMetadata) -> Path:
    """Write ``metadata.json``; key order is preserved, not sorted."""
    output_dir.mkdir(parents=True, exist_ok=True)
    path = output_dir / METADATA_FILE_NAME
    path.write_text(json.dumps(metadata.to_json(), indent=2), encoding="utf-8")
    return path


def metadata_input_width(payload: Mapping[str, Any]) -> int:
    """Input width declared by a parsed ``metadata.json`` of either model kind."""
    if "maxLen" in payload:
        return int(payload["maxLen"])
    shape = payload.get("inputShape")
    if isinstance(shape, list) and len(shape) == 1:
        return int(shape[0])
    raise ValueError("metadata declares neither maxLen nor a 1D inputShape")
