"""Batched synthetic example generation with bounded retries."""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Protocol

from medtrain.data.contracts import LabeledTextExample
from medtrain.data.store import TextDatasetStore

logger = logging.getLogger(__name__)

TRIAGE_PROMPT = """Generate 5 realistic patient symptom descriptions for medical triage.
Focus on varied vocabulary and sentence structures.

For each description, assign one of the following labels based on medical urgency:
- Urgent: Immediate medical attention required (life-threatening or serious).
- Routine: Needs medical attention but not immediately life-threatening.
- Monitor: Can likely be managed at home or waited out, low risk.

Format the output as a strictly valid JSON array of objects:
[
  { "text": "Patient complaining of sharp chest pain radiating to left arm", "label": "Urgent" },
  ...
]
"""


class ExampleClient(Protocol):
    """Generative text service returning the raw response body for a prompt."""

    def generate(self, prompt: str) -> str: ...


Sleeper = Callable[[float], None]


@dataclass(frozen=True, slots=True)
class GenerationConfig:
    """Batch count, retry budget and pacing for one generation run."""

    batches: int = 3
    attempts: int = 3
    backoff_seconds: float = 2.0
    inter_batch_delay_seconds: float = 2.0
    prompt: str = TRIAGE_PROMPT

    def __post_init__(self) -> None:
        if self.batches <= 0:
            raise ValueError("batches must be > 0")
        if self.attempts <= 0:
            raise ValueError("attempts must be > 0")
        if self.backoff_seconds < 0 or self.inter_batch_delay_seconds < 0:
            raise ValueError("delays must be >= 0")


@dataclass(frozen=True, slots=True)
class GenerationReport:
    """Counts from one generation run."""

    batches_succeeded: int
    batches_skipped: int
    examples_added: int
    dataset_size: int


def generate_batch_with_retry(
    client: ExampleClient,
    *,
    prompt: str = TRIAGE_PROMPT,
    attempts: int = 3,
    backoff_seconds: float = 2.0,
    sleep: Sleeper = time.sleep,
) -> list[dict[str, Any]]:
    """Request one batch, retrying with a ``backoff * attempt`` pause.

    Returns an empty list once every attempt failed or came back empty; only
    the failure of the final attempt is logged in detail.
    """
    for attempt in range(1, attempts + 1):
        if attempt > 1:
            logger.info("Retry attempt %d...", attempt)
            sleep(backoff_seconds * attempt)
        try:
            payload = json.loads(client.generate(prompt))
        except Exception as exc:
            if attempt == attempts:
                logger.error("Failed after %d attempts. Last error: %s", attempts, exc)
            continue
        if isinstance(payload, list) and payload:
            records = _valid_records(payload)
            if records:
                return records
    return []


def run_generation(
    store: TextDatasetStore,
    client: ExampleClient,
    *,
    config: GenerationConfig = GenerationConfig(),
    sleep: Sleeper = time.sleep,
) -> GenerationReport:
    """Load the store, append every successful batch in order and save atomically."""
    store.load()
    succeeded = 0
    skipped = 0
    added = 0
    for batch in range(1, config.batches + 1):
        records = generate_batch_with_retry(
            client,
            prompt=config.prompt,
            attempts=config.attempts,
            backoff_seconds=config.backoff_seconds,
            sleep=sleep,
        )
        if records:
            added += store.extend(records)
            succeeded += 1
            logger.info("Batch %d/%d: added %d examples.", batch, config.batches, len(records))
        else:
            skipped += 1
            logger.warning("Batch %d/%d: skipping batch due to errors.", batch, config.batches)
        sleep(config.inter_batch_delay_seconds)

    store.save()
    logger.info("Saved %d examples to %s", len(store), store.path)
    return GenerationReport(
        batches_succeeded=succeeded,
        batches_skipped=skipped,
        examples_added=added,
        dataset_size=len(store),
    )


def _valid_records(payload: list[Any]) -> list[dict[str, Any]]:
    records: list[dict[str, Any]] = []
    for item in payload:
        if not isinstance(item, dict):
            continue
        try:
            records.append(LabeledTextExample.from_json(item).to_json())
        except ValueError:
            continue
    dropped = len(payload) - len(records)
    if dropped:
        logger.warning("Dropped %d malformed generated records.", dropped)
    return records
