"""Feature assembly, training loop and end-to-end workflows."""

from medtrain.training.datasets import (
    SURVEY_CLASSES,
    AssembledDataset,
    tabular_examples_to_dataset,
    text_examples_to_dataset,
)
from medtrain.training.trainer import (
    SURVEY_TRAINER_CONFIG,
    TRIAGE_TRAINER_CONFIG,
    EpochLogs,
    Trainer,
    TrainerConfig,
    TrainingHistory,
    log_every,
    validation_split_index,
)
from medtrain.training.workflow import (
    SurveyWorkflowResult,
    TriageWorkflowResult,
    run_survey_workflow,
    run_triage_workflow,
)

__all__ = [
    "SURVEY_CLASSES",
    "SURVEY_TRAINER_CONFIG",
    "TRIAGE_TRAINER_CONFIG",
    "AssembledDataset",
    "EpochLogs",
    "SurveyWorkflowResult",
    "Trainer",
    "TrainerConfig",
    "TrainingHistory",
    "TriageWorkflowResult",
    "log_every",
    "run_survey_workflow",
    "run_triage_workflow",
    "tabular_examples_to_dataset",
    "text_examples_to_dataset",
    "validation_split_index",
]
