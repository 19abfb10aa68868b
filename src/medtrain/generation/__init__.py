"""Synthetic triage example generation."""

from medtrain.generation.retry import (
    TRIAGE_PROMPT,
    ExampleClient,
    GenerationConfig,
    GenerationReport,
    generate_batch_with_retry,
    run_generation,
)

__all__ = [
    "TRIAGE_PROMPT",
    "ExampleClient",
    "GenerationConfig",
    "GenerationReport",
    "generate_batch_with_retry",
    "run_generation",
]
