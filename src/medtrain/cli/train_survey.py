"""CLI: train the survey treatment-risk classifier and export its bundle."""

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
from medtrain.data.tabular import load_survey_csv
from medtrain.data.versioning import dataset_fingerprint
from medtrain.training.trainer import SURVEY_TRAINER_CONFIG
from medtrain.training.workflow import SurveyWorkflowResult, run_survey_workflow


def build_parser() -> argparse.ArgumentParser:
    """Create CLI parser for survey model training."""
    parser = argparse.ArgumentParser(
        prog="medtrain-train-survey",
        description="Train the mental-health treatment classifier from a survey CSV.",
    )
    add_common_arguments(
        parser,
        defaults=SURVEY_TRAINER_CONFIG,
        dataset_default=Path("ai/survey.csv"),
        output_default=Path("public/models/mental-health-model"),
    )
    return parser


def run_survey_from_args(args: argparse.Namespace) -> SurveyWorkflowResult:
    """Load the CSV, train and write the survey model bundle."""
    workspace_root = args.workspace_root.resolve()
    dataset_path = resolve_path(workspace_root, args.dataset)
    output_dir = resolve_path(workspace_root, args.output_dir)

    examples = load_survey_csv(dataset_path)
    result = run_survey_workflow(
        examples,
        output_dir=output_dir,
        trainer_config=trainer_config_from_args(args),
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
        result = run_survey_from_args(args)
    except Exception as exc:
        print(f"[ERROR] survey training failed: {exc}", file=sys.stderr)
        return 2

    print_package_summary(result.package)
    print(f"valid_records: {len(result.dataset)}")
    print(f"dropped_records: {result.dataset.dropped_rows}")
    return package_exit_code(result.package)


if __name__ == "__main__":
    raise SystemExit(main())
