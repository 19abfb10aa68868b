"""Verification helpers for emitted model packages."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from medtrain.export.layers_format import MODEL_JSON_FILE_NAME, topology_input_width
from medtrain.export.manifest import read_manifest, sha256_file
from medtrain.export.metadata import METADATA_FILE_NAME, metadata_input_width


@dataclass(frozen=True, slots=True)
class PackageVerificationResult:
    """Outcome of verifying package integrity and input-layout consistency."""

    ok: bool
    missing_files: tuple[str, ...]
    checksum_mismatches: tuple[str, ...]
    size_mismatches: tuple[str, ...]
    layout_failures: tuple[str, ...]


def verify_model_package(*, package_dir: Path) -> PackageVerificationResult:
    """Check manifest checksums and that metadata matches the model input layer."""
    manifest_path = package_dir / "manifest.json"
    if not manifest_path.exists():
        return PackageVerificationResult(
            ok=False,
            missing_files=("manifest.json",),
            checksum_mismatches=(),
            size_mismatches=(),
            layout_failures=(),
        )

    manifest = read_manifest(manifest_path)
    missing_files: list[str] = []
    checksum_mismatches: list[str] = []
    size_mismatches: list[str] = []
    for entry in manifest.files:
        file_path = package_dir / entry.path
        if not file_path.is_file():
            missing_files.append(entry.path)
            continue
        if file_path.stat().st_size != entry.size_bytes:
            size_mismatches.append(entry.path)
        if sha256_file(file_path) != entry.sha256:
            checksum_mismatches.append(entry.path)

    layout_failures = check_layout_consistency(package_dir)
    ok = not (missing_files or checksum_mismatches or size_mismatches or layout_failures)
    return PackageVerificationResult(
        ok=ok,
        missing_files=tuple(missing_files),
        checksum_mismatches=tuple(checksum_mismatches),
        size_mismatches=tuple(size_mismatches),
        layout_failures=layout_failures,
    )


def check_layout_consistency(package_dir: Path) -> tuple[str, ...]:
    """Compare metadata dimensions, topology input shape and weight buffer size."""
    metadata_path = package_dir / METADATA_FILE_NAME
    model_json_path = package_dir / MODEL_JSON_FILE_NAME
    if not metadata_path.exists() or not model_json_path.exists():
        return ()

    failures: list[str] = []
    metadata = json.loads(metadata_path.read_text(encoding="utf-8"))
    model_json = json.loads(model_json_path.read_text(encoding="utf-8"))
    topology = model_json.get("modelTopology", {})

    try:
        expected_width = metadata_input_width(metadata)
        actual_width = topology_input_width(topology)
    except ValueError as exc:
        return (str(exc),)
    if expected_width != actual_width:
        failures.append(f"metadata input width {expected_width} != topology input width {actual_width}")

    if "features" in metadata and len(metadata["features"]) != expected_width:
        failures.append("metadata feature list length does not match inputShape")

    first_layer = topology.get("config", {}).get("layers", [{}])[0]
    if first_layer.get("class_name") == "Embedding" and "wordIndex" in metadata:
        expected_rows = len(metadata["wordIndex"]) + 1
        if int(first_layer["config"]["input_dim"]) != expected_rows:
            failures.append("embedding rows do not match vocabulary size + 1")

    for group in model_json.get("weightsManifest", []):
        expected_bytes = sum(_spec_bytes(spec) for spec in group.get("weights", []))
        actual_bytes = 0
        for relative in group.get("paths", []):
            shard = package_dir / relative
            if not shard.exists():
                failures.append(f"weights shard missing: {relative}")
                continue
            actual_bytes += int(shard.stat().st_size)
        if actual_bytes != expected_bytes:
            failures.append(f"weights buffer has {actual_bytes} bytes, manifest expects {expected_bytes}")
    return tuple(failures)


def _spec_bytes(spec: dict[str, Any]) -> int:
    count = 1
    for dim in spec.get("shape", []):
        count *= int(dim)
    return count * 4
