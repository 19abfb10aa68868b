"""Triage severity ontology and label normalization."""

from __future__ import annotations

from enum import StrEnum


class TriageLabel(StrEnum):
    """Severity classes emitted by the triage model, in class-index order."""

    URGENT = "Urgent"
    ROUTINE = "Routine"
    MONITOR = "Monitor"


TRIAGE_CLASSES: tuple[str, ...] = tuple(label.value for label in TriageLabel)

_LABEL_ALIASES: dict[str, TriageLabel] = {
    "urgent": TriageLabel.URGENT,
    "routine": TriageLabel.ROUTINE,
    "monitor": TriageLabel.MONITOR,
}


def normalize_triage_label(raw_label: str) -> TriageLabel:
    """Resolve a raw dataset label into the canonical severity ontology."""
    label = _LABEL_ALIASES.get(raw_label.strip().lower())
    if label is None:
        raise ValueError(f"unknown triage label: {raw_label!r}")
    return label
