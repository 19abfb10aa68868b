"""Tests for the append-only triage dataset store."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from medtrain.data import TextDatasetStore, TriageLabel, load_text_examples


def test_store_load_missing_file_starts_empty(tmp_path: Path) -> None:
    store = TextDatasetStore(tmp_path / "triage.json")
    assert store.load() == 0
    assert store.records == ()


def test_store_load_corrupted_file_starts_empty(tmp_path: Path) -> None:
    path = tmp_path / "triage.json"
    path.write_text("[{\"text\": \"chest pa", encoding="utf-8")

    store = TextDatasetStore(path)

    assert store.load() == 0
    assert len(store) == 0


def test_store_load_non_array_starts_empty(tmp_path: Path) -> None:
    path = tmp_path / "triage.json"
    path.write_text("{\"text\": \"x\"}", encoding="utf-8")
    assert TextDatasetStore(path).load() == 0


def test_store_appends_after_existing_records_and_saves_atomically(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "triage.json"
    path.parent.mkdir()
    path.write_text(json.dumps([{"text": "old entry", "label": "Routine"}]), encoding="utf-8")

    store = TextDatasetStore(path)
    store.load()
    added = store.extend([{"text": "new entry", "label": "Urgent"}])
    store.save()

    assert added == 1
    assert json.loads(path.read_text(encoding="utf-8")) == [
        {"text": "old entry", "label": "Routine"},
        {"text": "new entry", "label": "Urgent"},
    ]
    assert [p.name for p in path.parent.iterdir()] == ["triage.json"]


def test_store_save_creates_parent_directory(tmp_path: Path) -> None:
    store = TextDatasetStore(tmp_path / "a" / "b" / "triage.json")
    store.extend([{"text": "x", "label": "Monitor"}])
    assert store.save().exists()


def test_load_text_examples_requires_existing_file(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_text_examples(tmp_path / "missing.json")


def test_load_text_examples_parses_records(tmp_path: Path) -> None:
    path = tmp_path / "triage.json"
    path.write_text(
        json.dumps([{"text": "sharp chest pain", "label": "Urgent"}, {"text": "sniffles", "label": "Monitor"}]),
        encoding="utf-8",
    )

    examples = load_text_examples(path)

    assert [example.label for example in examples] == [TriageLabel.URGENT, TriageLabel.MONITOR]


def test_load_text_examples_rejects_non_array(tmp_path: Path) -> None:
    path = tmp_path / "triage.json"
    path.write_text("{}", encoding="utf-8")
    with pytest.raises(ValueError):
        load_text_examples(path)


def test_store_keeps_non_object_entries_through_save(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    path = tmp_path / "triage.json"
    path.write_text(
        json.dumps(["legacy string entry", {"text": "old entry", "label": "Routine"}]),
        encoding="utf-8",
    )

    store = TextDatasetStore(path)
    with caplog.at_level("WARNING", logger="medtrain.data.store"):
        assert store.load() == 2
    store.extend([{"text": "new entry", "label": "Monitor"}])
    store.save()

    assert "non-object entries" in caplog.text
    assert json.loads(path.read_text(encoding="utf-8")) == [
        "legacy string entry",
        {"text": "old entry", "label": "Routine"},
        {"text": "new entry", "label": "Monitor"},
    ]
