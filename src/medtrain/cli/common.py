"""Shared argparse options and helpers for medtrain CLIs."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from medtrain.export.model_package import ModelPackagePaths
from medtrain.export.verification import verify_model_package
from medtrain.training.trainer import TrainerConfig

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(verbose: bool = False) -> None:
    logging.basicConfig(level=logging.DEBUG if verbose else logging.INFO, format=LOG_FORMAT)


def add_common_arguments(
    parser: argparse.ArgumentParser,
    *,
    defaults: TrainerConfig,
    dataset_default: Path,
    output_default: Path,
) -> None:
    """Register workspace, dataset, output and trainer options."""
    parser.add_argument(
        "--workspace-root",
        type=Path,
        default=Path.cwd(),
        help="Workspace root path used to resolve relative inputs/outputs.",
    )
    parser.add_argument("--dataset", type=Path, default=dataset_default, help="Input dataset path.")
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=output_default,
        help="Directory for metadata.json, model.json, weights.bin and manifest.json.",
    )
    parser.add_argument("--epochs", type=int, default=defaults.epochs, help="Training epochs.")
    parser.add_argument("--batch-size", type=int, default=defaults.batch_size, help="Mini-batch size.")
    parser.add_argument(
        "--validation-split",
        type=float,
        default=defaults.validation_split,
        help="Trailing fraction of examples held out for validation.",
    )
    parser.add_argument(
        "--shuffle",
        action=argparse.BooleanOptionalAction,
        default=defaults.shuffle,
        help="Shuffle training examples every epoch.",
    )
    parser.add_argument("--learning-rate", type=float, default=defaults.learning_rate, help="Adam learning rate.")
    parser.add_argument("--device", type=str, default=defaults.device, help="Torch device identifier.")
    parser.add_argument("--seed", type=int, default=defaults.seed, help="Model/training RNG seed.")
    parser.add_argument(
        "--native-export",
        action=argparse.BooleanOptionalAction,
        default=True,
        help="Try TorchScript export and use it when available; otherwise write files manually.",
    )
    parser.add_argument(
        "--verify-artifacts",
        action=argparse.BooleanOptionalAction,
        default=True,
        help="Verify emitted package integrity and input layout against manifest.",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging.")


def trainer_config_from_args(args: argparse.Namespace) -> TrainerConfig:
    return TrainerConfig(
        epochs=args.epochs,
        batch_size=args.batch_size,
        validation_split=args.validation_split,
        shuffle=bool(args.shuffle),
        learning_rate=args.learning_rate,
        device=args.device,
        seed=args.seed,
    )


def resolve_path(base_dir: Path, path_value: Path) -> Path:
    if path_value.is_absolute():
        return path_value.resolve()
    return (base_dir / path_value).resolve()


def verify_package_or_raise(package: ModelPackagePaths) -> None:
    """Fail the run when the emitted bundle does not verify."""
    verification = verify_model_package(package_dir=package.output_dir)
    if not verification.ok:
        raise ValueError(
            "package verification failed: "
            f"missing={list(verification.missing_files)}, "
            f"checksum_mismatches={list(verification.checksum_mismatches)}, "
            f"size_mismatches={list(verification.size_mismatches)}, "
            f"layout_failures={list(verification.layout_failures)}"
        )


def print_package_summary(package: ModelPackagePaths) -> None:
    print(f"output_dir: {package.output_dir}")
    print(f"metadata: {package.metadata_path}")
    for path in package.model_paths:
        print(f"model_file: {path}")
    print(f"manifest: {package.manifest_path}")
    print(f"writer: {package.writer_name}")
    print(f"model_saved: {package.model_saved}")


def package_exit_code(package: ModelPackagePaths) -> int:
    """1 when the bundle lacks its model or its metadata, else 0."""
    exit_code = 0
    if package.metadata_path is None:
        print(f"[ERROR] metadata was not saved: {package.metadata_error}", file=sys.stderr)
        exit_code = 1
    if not package.model_saved:
        print(f"[ERROR] model was not saved: {package.model_error}", file=sys.stderr)
        exit_code = 1
    return exit_code
