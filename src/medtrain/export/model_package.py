"""Deployment bundle writer: metadata, layers-model files and integrity manifest."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Protocol, Sequence

import torch
from torch import nn

from medtrain.export.layers_format import (
    MODEL_JSON_FILE_NAME,
    WEIGHTS_FILE_NAME,
    LayersModelArtifacts,
    SequentialLayersModel,
    encode_layers_model,
)
from medtrain.export.manifest import build_bundle_manifest, write_manifest
from medtrain.export.metadata import METADATA_FILE_NAME, ModelMetadata, write_metadata

logger = logging.getLogger(__name__)

NATIVE_MODEL_FILE_NAME = "model.pt"
MANIFEST_FILE_NAME = "manifest.json"

SaveHandler = Callable[[LayersModelArtifacts], Sequence[Path]]


class ArtifactExportError(RuntimeError):
    """Raised when a run produced neither metadata nor model output."""


class ArtifactWriter(Protocol):
    """Strategy that persists a trained model into ``output_dir``."""

    name: str

    def save(self, artifacts: LayersModelArtifacts, output_dir: Path) -> tuple[Path, ...]: ...


def file_save_handler(output_dir: Path) -> SaveHandler:
    """Save handler writing ``model.json`` and the raw ``weights.bin`` buffer."""

    def _save(artifacts: LayersModelArtifacts) -> Sequence[Path]:
        output_dir.mkdir(parents=True, exist_ok=True)
        model_json_path = output_dir / MODEL_JSON_FILE_NAME
        weights_path = output_dir / WEIGHTS_FILE_NAME
        # model.json is only written once the buffer it references exists.
        weights_path.write_bytes(artifacts.weight_data)
        try:
            model_json_path.write_text(json.dumps(artifacts.model_json()), encoding="utf-8")
        except OSError:
            weights_path.unlink(missing_ok=True)
            raise
        return (model_json_path, weights_path)

    return _save


class ManualArtifactWriter:
    """Hand the encoded topology, weight specs and buffer to a save callback."""

    name = "manual"

    def __init__(self, save_handler: SaveHandler | None = None) -> None:
        self._save_handler = save_handler

    def save(self, artifacts: LayersModelArtifacts, output_dir: Path) -> tuple[Path, ...]:
        handler = self._save_handler or file_save_handler(output_dir)
        return tuple(handler(artifacts))


class NativeArtifactWriter:
    """PyTorch-native TorchScript archive plus the layers-model files.

    The TorchScript module is produced during writer selection, so saving
    only serializes an already-validated module.
    """

    name = "native"

    def __init__(self, scripted_module: torch.jit.ScriptModule) -> None:
        self._scripted_module = scripted_module

    def save(self, artifacts: LayersModelArtifacts, output_dir: Path) -> tuple[Path, ...]:
        output_dir.mkdir(parents=True, exist_ok=True)
        native_path = output_dir / NATIVE_MODEL_FILE_NAME
        torch.jit.save(self._scripted_module, str(native_path))
        try:
            layer_paths = tuple(file_save_handler(output_dir)(artifacts))
        except OSError:
            native_path.unlink(missing_ok=True)
            raise
        return (native_path, *layer_paths)


def select_artifact_writer(
    model: nn.Module,
    *,
    example_inputs: torch.Tensor,
    prefer_native: bool = True,
    save_handler: SaveHandler | None = None,
) -> ArtifactWriter:
    """Try native export once and return the strategy to use for this run."""
    if not prefer_native:
        return ManualArtifactWriter(save_handler)

    was_training = model.training
    model.eval()
    try:
        with torch.no_grad():
            traced = torch.jit.trace(model, example_inputs)
    except Exception as exc:
        logger.warning("Native TorchScript export unavailable, using manual writer: %s", exc)
        return ManualArtifactWriter(save_handler)
    finally:
        model.train(was_training)
    return NativeArtifactWriter(traced)


@dataclass(frozen=True, slots=True)
class ModelPackagePaths:
    """Filesystem paths and status for one emitted deployment bundle."""

    output_dir: Path
    metadata_path: Path | None
    model_paths: tuple[Path, ...]
    manifest_path: Path | None
    writer_name: str
    model_error: str | None = None
    metadata_error: str | None = None

    @property
    def model_saved(self) -> bool:
        return bool(self.model_paths)

    def path_for(self, file_name: str) -> Path | None:
        for path in self.model_paths:
            if path.name == file_name:
                return path
        return None


def save_model_package(
    *,
    output_dir: Path,
    model: SequentialLayersModel,
    metadata: ModelMetadata | None,
    metadata_path: Path | None = None,
    metadata_error: str | None = None,
    writer: ArtifactWriter | None = None,
    package_name: str = "medtrain-model",
    extra_metadata: dict[str, Any] | None = None,
) -> ModelPackagePaths:
    """Persist metadata and model files; metadata is written first and independently.

    Pass ``metadata=None`` together with the ``metadata_path`` or
    ``metadata_error`` of a write done earlier in the run; a ``metadata.json``
    already on disk is never picked up on its own. A failing model save is
    logged and reported on the returned paths. Only a run with neither metadata
    nor model output raises ``ArtifactExportError``.
    """
    output_dir.mkdir(parents=True, exist_ok=True)
    resolved_writer = writer or ManualArtifactWriter()

    if metadata is not None:
        try:
            metadata_path = write_metadata(output_dir, metadata)
            metadata_error = None
            logger.info("Metadata saved to %s", metadata_path)
        except OSError as exc:
            metadata_path = None
            metadata_error = str(exc)
            logger.error("Error saving metadata: %s", exc)
            discard_metadata(output_dir)

    model_paths: tuple[Path, ...] = ()
    model_error: str | None = None
    try:
        artifacts = encode_layers_model(model)
        model_paths = resolved_writer.save(artifacts, output_dir)
        logger.info("Model saved to %s (%s writer)", output_dir, resolved_writer.name)
    except (OSError, RuntimeError, ValueError) as exc:
        model_error = str(exc)
        logger.error("Error saving model with %s writer: %s", resolved_writer.name, exc)

    if metadata_path is None and not model_paths:
        raise ArtifactExportError(
            f"no artifacts written to {output_dir}: metadata error={metadata_error!r}, "
            f"model error={model_error!r}"
        )

    emitted = tuple(
        output_dir / relative
        for relative in (_relative_to(path, output_dir) for path in (metadata_path, *model_paths))
        if relative is not None
    )
    manifest_path = output_dir / MANIFEST_FILE_NAME
    emitted_manifest: Path | None = manifest_path
    manifest_metadata: dict[str, Any] = {"writer": resolved_writer.name}
    if extra_metadata:
        manifest_metadata.update(extra_metadata)
    try:
        write_manifest(
            manifest_path,
            build_bundle_manifest(
                bundle_name=package_name,
                bundle_root=output_dir,
                files=emitted,
                metadata=manifest_metadata,
            ),
        )
    except OSError as exc:
        logger.error("Error writing manifest: %s", exc)
        emitted_manifest = None

    return ModelPackagePaths(
        output_dir=output_dir,
        metadata_path=metadata_path,
        model_paths=model_paths,
        manifest_path=emitted_manifest,
        writer_name=resolved_writer.name,
        model_error=model_error,
        metadata_error=metadata_error,
    )


def _relative_to(path: Path | None, root: Path) -> Path | None:
    if path is None or not path.exists():
        return None
    try:
        return path.resolve().relative_to(root.resolve())
    except ValueError:
        return None


def discard_metadata(output_dir: Path) -> None:
    """Remove ``metadata.json`` so a failed write never ships an older file."""
    path = output_dir / METADATA_FILE_NAME
    try:
        path.unlink(missing_ok=True)
    except OSError as exc:
        logger.error("Could not remove stale metadata %s: %s", path, exc)
