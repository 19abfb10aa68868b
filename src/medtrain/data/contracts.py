"""Labeled example contracts consumed by the feature assembler."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

from medtrain.data.labeling import TriageLabel, normalize_triage_label


@dataclass(frozen=True, slots=True)
class LabeledTextExample:
    """One free-text symptom description with its triage severity."""

    text: str
    label: TriageLabel

    def __post_init__(self) -> None:
        if not isinstance(self.text, str):
            raise ValueError("text must be a string")

    @classmethod
    def from_json(cls, payload: Mapping[str, Any]) -> LabeledTextExample:
        """Build an example from one ``{"text": ..., "label": ...}`` record."""
        text = payload.get("text")
        raw_label = payload.get("label")
        if not isinstance(text, str):
            raise ValueError("example text must be a string")
        if not isinstance(raw_label, str):
            raise ValueError("example label must be a string")
        return cls(text=text, label=normalize_triage_label(raw_label))

    def to_json(self) -> dict[str, str]:
        """JSON-safe record in dataset file layout."""
        return {"text": self.text, "label": self.label.value}


@dataclass(frozen=True, slots=True)
class LabeledTabularExample:
    """One survey row: raw column values keyed by header name, plus target."""

    features: Mapping[str, str | None] = field(default_factory=dict)
    target: bool = False
