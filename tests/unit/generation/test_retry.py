"""Tests for batched example generation with bounded retries."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from medtrain.data import TextDatasetStore
from medtrain.generation import GenerationConfig, generate_batch_with_retry, run_generation


class _ScriptedClient:
    """Replays canned responses; exceptions in the script are raised."""

    def __init__(self, responses: list[str | Exception]) -> None:
        self._responses = list(responses)
        self.prompts: list[str] = []

    def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        response = self._responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def _batch(*records: tuple[str, str]) -> str:
    return json.dumps([{"text": text, "label": label} for text, label in records])


def test_generate_batch_retries_with_linear_backoff() -> None:
    sleeps: list[float] = []
    client = _ScriptedClient(
        [
            ConnectionError("timeout"),
            "not json",
            _batch(("Crushing chest pressure", "Urgent")),
        ]
    )

    records = generate_batch_with_retry(client, attempts=3, backoff_seconds=2.0, sleep=sleeps.append)

    assert records == [{"text": "Crushing chest pressure", "label": "Urgent"}]
    assert sleeps == [4.0, 6.0]
    assert len(client.prompts) == 3


def test_generate_batch_returns_empty_after_exhausting_attempts(caplog: pytest.LogCaptureFixture) -> None:
    sleeps: list[float] = []
    client = _ScriptedClient([RuntimeError("boom 1"), RuntimeError("boom 2"), RuntimeError("boom 3")])

    with caplog.at_level("ERROR"):
        records = generate_batch_with_retry(client, attempts=3, backoff_seconds=2.0, sleep=sleeps.append)

    assert records == []
    assert sleeps == [4.0, 6.0]
    errors = [record.getMessage() for record in caplog.records if record.levelname == "ERROR"]
    assert errors == ["Failed after 3 attempts. Last error: boom 3"]


def test_generate_batch_retries_when_no_record_is_valid() -> None:
    client = _ScriptedClient(
        [
            json.dumps([{"text": "no label"}]),
            json.dumps([]),
            _batch(("Mild sore throat", "monitor"), ("Fainted twice", "Urgent")),
        ]
    )

    records = generate_batch_with_retry(client, sleep=lambda _: None)

    assert records == [
        {"text": "Mild sore throat", "label": "Monitor"},
        {"text": "Fainted twice", "label": "Urgent"},
    ]


def test_generate_batch_drops_malformed_records() -> None:
    client = _ScriptedClient(
        [json.dumps([{"text": "Ankle sprain", "label": "Routine"}, {"text": "x", "label": "Critical"}, 3])]
    )

    records = generate_batch_with_retry(client, sleep=lambda _: None)

    assert records == [{"text": "Ankle sprain", "label": "Routine"}]


def test_run_generation_appends_successful_batches_and_skips_failures(tmp_path: Path) -> None:
    path = tmp_path / "triage.json"
    path.write_text(json.dumps([{"text": "Existing entry", "label": "Routine"}]), encoding="utf-8")
    sleeps: list[float] = []
    client = _ScriptedClient(
        [
            _batch(("High fever and stiff neck", "Urgent")),
            RuntimeError("a"),
            RuntimeError("b"),
            _batch(("Mild rash on forearm", "Monitor"), ("Back pain for a week", "Routine")),
        ]
    )

    report = run_generation(
        TextDatasetStore(path),
        client,
        config=GenerationConfig(batches=3, attempts=2, backoff_seconds=1.0, inter_batch_delay_seconds=5.0),
        sleep=sleeps.append,
    )

    assert report.batches_succeeded == 2
    assert report.batches_skipped == 1
    assert report.examples_added == 3
    assert report.dataset_size == 4
    assert sleeps == [5.0, 2.0, 5.0, 5.0]
    saved = json.loads(path.read_text(encoding="utf-8"))
    assert [record["text"] for record in saved] == [
        "Existing entry",
        "High fever and stiff neck",
        "Mild rash on forearm",
        "Back pain for a week",
    ]


def test_run_generation_starts_fresh_from_corrupted_store(tmp_path: Path) -> None:
    path = tmp_path / "triage.json"
    path.write_text("{broken", encoding="utf-8")
    client = _ScriptedClient([_batch(("Chest tightness", "Urgent"))])

    report = run_generation(
        TextDatasetStore(path),
        client,
        config=GenerationConfig(batches=1),
        sleep=lambda _: None,
    )

    assert report.dataset_size == 1
    assert json.loads(path.read_text(encoding="utf-8")) == [{"text": "Chest tightness", "label": "Urgent"}]


def test_generation_config_validation() -> None:
    with pytest.raises(ValueError):
        GenerationConfig(batches=0)
    with pytest.raises(ValueError):
        GenerationConfig(attempts=0)
    with pytest.raises(ValueError):
        GenerationConfig(backoff_seconds=-1.0)
