"""CLI: train the symptom-text triage classifier and export its bundle."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Sequence

from medtrain.cli.common import (
    add_common_arguments,
    configure_logging,
    package_exit_code,
    print_package_summary,
    resolve_path,
    trainer_config_from_args,
    verify_package_or_raise,
)
from medtrain.data.store import load_text_examples
from medtrain.data.text import MAX_LEN
from medtrain.data.versioning import dataset_fingerprint
from medtrain.training.trainer import TRIAGE_TRAINER_CONFIG
from medtrain.training.workflow import TriageWorkflowResult, run_triage_workflow


def build_parser() -> argparse.ArgumentParser:
    """Create CLI parser for triage model training."""
    parser = argparse.ArgumentParser(
        prog="medtrain-train-triage",
        description="Train the triage severity text classifier from a JSON dataset.",
    )
    add_common_arguments(
        parser,
        defaults=TRIAGE_TRAINER_CONFIG,
        dataset_default=Path("server/data/triage_dataset.json"),
        output_default=Path("public/models/triage-model"),
    )
    parser.add_argument("--max-len", type=int, default=MAX_LEN, help="Padded token sequence length.")
    return parser


def run_triage_from_args(args: argparse.Namespace) -> TriageWorkflowResult:
    """Load the dataset, train and write the triage model bundle."""
    workspace_root = args.workspace_root.resolve()
    dataset_path = resolve_path(workspace_root, args.dataset)
    output_dir = resolve_path(workspace_root, args.output_dir)

    examples = load_text_examples(dataset_path)
    result = run_triage_workflow(
        examples,
        output_dir=output_dir,
        trainer_config=trainer_config_from_args(args),
        max_len=args.max_len,
        prefer_native=bool(args.native_export),
        dataset_fingerprint=dataset_fingerprint((dataset_path,)),
    )
    if args.verify_artifacts and result.package.model_saved:
        verify_package_or_raise(result.package)
    return result


def main(argv: Sequence[str] | None = None) -> int:
    """CLI entrypoint."""
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose)
    try:
        result = run_triage_from_args(args)
    except Exception as exc:
        print(f"[ERROR] triage training failed: {exc}", file=sys.stderr)
        return 2

    print_package_summary(result.package)
    print(f"vocabulary_size: {len(result.vocabulary)}")
    print(f"examples: {len(result.dataset)}")
    return package_exit_code(result.package)


if __name__ == "__main__":
    raise SystemExit(main())
