"""End-to-end training workflows: examples in, deployment bundle out."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

import torch

from medtrain.data.contracts import LabeledTabularExample, LabeledTextExample
from medtrain.data.labeling import TRIAGE_CLASSES
from medtrain.data.tabular import SURVEY_FEATURES, CategoricalEncoder
from medtrain.data.text import MAX_LEN, Vocabulary, build_vocabulary
from medtrain.export.metadata import (
    ModelMetadata,
    SurveyModelMetadata,
    TriageModelMetadata,
    write_metadata,
)
from medtrain.export.model_package import (
    ArtifactWriter,
    ModelPackagePaths,
    SaveHandler,
    discard_metadata,
    save_model_package,
    select_artifact_writer,
)
from medtrain.ml import SurveyRiskClassifier, TriageTextClassifier
from medtrain.training.datasets import (
    AssembledDataset,
    tabular_examples_to_dataset,
    text_examples_to_dataset,
)
from medtrain.training.trainer import (
    SURVEY_TRAINER_CONFIG,
    TRIAGE_TRAINER_CONFIG,
    EpochCallback,
    Trainer,
    TrainerConfig,
    TrainingHistory,
    log_every,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class WorkflowResult:
    """Artifacts and diagnostics from one training run."""

    history: TrainingHistory
    dataset: AssembledDataset
    package: ModelPackagePaths


@dataclass(frozen=True, slots=True)
class TriageWorkflowResult(WorkflowResult):
    vocabulary: Vocabulary
    metadata: TriageModelMetadata


@dataclass(frozen=True, slots=True)
class SurveyWorkflowResult(WorkflowResult):
    encoder: CategoricalEncoder
    metadata: SurveyModelMetadata


@dataclass(frozen=True, slots=True)
class _MetadataOutcome:
    path: Path | None
    error: str | None


def run_triage_workflow(
    examples: Sequence[LabeledTextExample],
    *,
    output_dir: Path,
    trainer_config: TrainerConfig = TRIAGE_TRAINER_CONFIG,
    max_len: int = MAX_LEN,
    class_names: Sequence[str] = TRIAGE_CLASSES,
    prefer_native: bool = True,
    save_handler: SaveHandler | None = None,
    on_epoch_end: EpochCallback | None = None,
    dataset_fingerprint: str | None = None,
) -> TriageWorkflowResult:
    """Build the vocabulary, train the text classifier and write its bundle."""
    logger.info("Loaded %d training examples.", len(examples))
    vocabulary = build_vocabulary(examples)
    dataset = text_examples_to_dataset(
        examples,
        vocabulary=vocabulary,
        class_names=class_names,
        max_len=max_len,
    )
    _require_examples(dataset)

    metadata = TriageModelMetadata(
        word_index=vocabulary.to_jsonable(),
        max_len=max_len,
        classes=tuple(class_names),
    )
    metadata_outcome = _write_metadata_early(output_dir, metadata)

    torch.manual_seed(trainer_config.seed)
    model = TriageTextClassifier(
        vocab_size=len(vocabulary),
        num_classes=len(class_names),
        max_len=max_len,
    )
    writer = _choose_writer(model, dataset, prefer_native=prefer_native, save_handler=save_handler)
    history = _fit(model, dataset, trainer_config, on_epoch_end=on_epoch_end or log_every(1))

    package = save_model_package(
        output_dir=output_dir,
        model=model,
        metadata=None,
        metadata_path=metadata_outcome.path,
        metadata_error=metadata_outcome.error,
        writer=writer,
        package_name="medtrain-triage-model",
        extra_metadata=_extra_metadata(history, dataset_fingerprint),
    )
    return TriageWorkflowResult(
        history=history,
        dataset=dataset,
        package=package,
        vocabulary=vocabulary,
        metadata=metadata,
    )


def run_survey_workflow(
    examples: Sequence[LabeledTabularExample],
    *,
    output_dir: Path,
    trainer_config: TrainerConfig = SURVEY_TRAINER_CONFIG,
    feature_names: Sequence[str] = SURVEY_FEATURES,
    encoder: CategoricalEncoder | None = None,
    prefer_native: bool = True,
    save_handler: SaveHandler | None = None,
    on_epoch_end: EpochCallback | None = None,
    dataset_fingerprint: str | None = None,
) -> SurveyWorkflowResult:
    """Encode survey rows, train the risk classifier and write its bundle."""
    logger.info("Loaded %d records.", len(examples))
    resolved_encoder = encoder if encoder is not None else CategoricalEncoder()
    dataset = tabular_examples_to_dataset(
        examples,
        encoder=resolved_encoder,
        feature_names=feature_names,
    )
    logger.info("Training on %d valid records (%d dropped).", len(dataset), dataset.dropped_rows)
    _require_examples(dataset)

    metadata = SurveyModelMetadata(
        features=tuple(feature_names),
        mappings=resolved_encoder.to_jsonable(),
        input_shape=(dataset.input_width,),
    )
    metadata_outcome = _write_metadata_early(output_dir, metadata)

    torch.manual_seed(trainer_config.seed)
    model = SurveyRiskClassifier(input_width=dataset.input_width)
    writer = _choose_writer(model, dataset, prefer_native=prefer_native, save_handler=save_handler)
    history = _fit(model, dataset, trainer_config, on_epoch_end=on_epoch_end or log_every(10))

    package = save_model_package(
        output_dir=output_dir,
        model=model,
        metadata=None,
        metadata_path=metadata_outcome.path,
        metadata_error=metadata_outcome.error,
        writer=writer,
        package_name="medtrain-survey-model",
        extra_metadata=_extra_metadata(history, dataset_fingerprint),
    )
    return SurveyWorkflowResult(
        history=history,
        dataset=dataset,
        package=package,
        encoder=resolved_encoder,
        metadata=metadata,
    )


def _require_examples(dataset: AssembledDataset) -> None:
    if len(dataset) == 0:
        raise ValueError("no valid training examples after filtering; refusing to train")


def _write_metadata_early(output_dir: Path, metadata: ModelMetadata) -> _MetadataOutcome:
    """Write metadata before training; a failed write never leaves an older file behind."""
    try:
        path = write_metadata(output_dir, metadata)
    except OSError as exc:
        logger.error("Error saving metadata: %s", exc)
        discard_metadata(output_dir)
        return _MetadataOutcome(path=None, error=str(exc))
    logger.info("Metadata saved to %s", path)
    return _MetadataOutcome(path=path, error=None)


def _choose_writer(
    model: TriageTextClassifier | SurveyRiskClassifier,
    dataset: AssembledDataset,
    *,
    prefer_native: bool,
    save_handler: SaveHandler | None,
) -> ArtifactWriter:
    # The traced module shares parameters with ``model``, so it exports trained weights.
    return select_artifact_writer(
        model,
        example_inputs=dataset.inputs[:1],
        prefer_native=prefer_native and save_handler is None,
        save_handler=save_handler,
    )


def _fit(
    model: TriageTextClassifier | SurveyRiskClassifier,
    dataset: AssembledDataset,
    config: TrainerConfig,
    *,
    on_epoch_end: EpochCallback,
) -> TrainingHistory:
    logger.info("Training model...")
    trainer = Trainer(model=model, config=config)
    return trainer.fit(dataset.inputs, dataset.labels, on_epoch_end=on_epoch_end)


def _extra_metadata(history: TrainingHistory, fingerprint: str | None) -> dict[str, object]:
    final = history.epochs[-1]
    payload: dict[str, object] = {
        "epochs": len(history.epochs),
        "train_size": history.train_size,
        "val_size": history.val_size,
        "final_loss": final.loss,
        "final_accuracy": final.accuracy,
    }
    if final.val_accuracy is not None:
        payload["final_val_accuracy"] = final.val_accuracy
    if fingerprint is not None:
        payload["dataset_fingerprint"] = fingerprint
    return payload
