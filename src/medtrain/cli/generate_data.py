"""CLI: append Gemini-generated triage examples to the JSON dataset."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Sequence

from dotenv import load_dotenv

from medtrain.cli.common import configure_logging, resolve_path
from medtrain.data.store import TextDatasetStore
from medtrain.generation import GenerationConfig, GenerationReport, run_generation
from medtrain.generation.gemini import API_KEY_ENV_VAR, DEFAULT_MODEL_ID, GeminiExampleClient


def build_parser() -> argparse.ArgumentParser:
    """Create CLI parser for synthetic data generation."""
    parser = argparse.ArgumentParser(
        prog="medtrain-generate-data",
        description="Generate labeled symptom descriptions and append them to the triage dataset.",
    )
    parser.add_argument("--workspace-root", type=Path, default=Path.cwd())
    parser.add_argument("--dataset", type=Path, default=Path("server/data/triage_dataset.json"))
    parser.add_argument("--env-file", type=Path, default=Path(".env"), help="dotenv file with the API key.")
    parser.add_argument("--model-id", type=str, default=DEFAULT_MODEL_ID)
    parser.add_argument("--batches", type=int, default=3, help="Number of generation requests.")
    parser.add_argument("--attempts", type=int, default=3, help="Attempts per batch before skipping it.")
    parser.add_argument("--backoff-seconds", type=float, default=2.0, help="Retry pause multiplied by attempt.")
    parser.add_argument("--batch-delay-seconds", type=float, default=2.0, help="Pause after every batch.")
    parser.add_argument("--verbose", action="store_true")
    return parser


def run_generate_from_args(args: argparse.Namespace) -> GenerationReport:
    """Generate batches and save the merged dataset atomically."""
    workspace_root = args.workspace_root.resolve()
    load_dotenv(resolve_path(workspace_root, args.env_file))
    client = GeminiExampleClient(model_id=args.model_id, api_key_env_var=API_KEY_ENV_VAR)
    store = TextDatasetStore(resolve_path(workspace_root, args.dataset))
    config = GenerationConfig(
        batches=args.batches,
        attempts=args.attempts,
        backoff_seconds=args.backoff_seconds,
        inter_batch_delay_seconds=args.batch_delay_seconds,
    )
    return run_generation(store, client, config=config)


def main(argv: Sequence[str] | None = None) -> int:
    """CLI entrypoint."""
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose)
    try:
        report = run_generate_from_args(args)
    except Exception as exc:
        print(f"[ERROR] data generation failed: {exc}", file=sys.stderr)
        return 2

    print(f"batches_succeeded: {report.batches_succeeded}")
    print(f"batches_skipped: {report.batches_skipped}")
    print(f"examples_added: {report.examples_added}")
    print(f"dataset_size: {report.dataset_size}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
