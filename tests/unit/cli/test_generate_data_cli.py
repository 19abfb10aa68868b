"""Tests for the synthetic data generation CLI."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from medtrain.cli import generate_data


class _StaticClient:
    def __init__(self, *, model_id: str, api_key_env_var: str) -> None:
        self.model_id = model_id
        self.api_key_env_var = api_key_env_var

    def generate(self, prompt: str) -> str:
        return json.dumps([{"text": "Swollen ankle after a fall", "label": "Routine"}])


def test_generate_main_returns_two_without_api_key(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)

    exit_code = generate_data.main(["--workspace-root", str(tmp_path), "--env-file", "missing.env"])

    assert exit_code == 2
    assert not (tmp_path / "server").exists()


def test_generate_main_appends_batches(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(generate_data, "GeminiExampleClient", _StaticClient)

    exit_code = generate_data.main(
        [
            "--workspace-root",
            str(tmp_path),
            "--dataset",
            "data/triage.json",
            "--batches",
            "2",
            "--batch-delay-seconds",
            "0",
        ]
    )

    assert exit_code == 0
    saved = json.loads((tmp_path / "data" / "triage.json").read_text(encoding="utf-8"))
    assert saved == [{"text": "Swollen ankle after a fall", "label": "Routine"}] * 2
