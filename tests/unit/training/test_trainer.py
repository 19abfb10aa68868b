"""Tests for the mini-batch trainer."""

from __future__ import annotations

import pytest
import torch

from medtrain.ml import SurveyRiskClassifier
from medtrain.training import EpochLogs, Trainer, TrainerConfig, validation_split_index


def _separable(n: int) -> tuple[torch.Tensor, torch.Tensor]:
    generator = torch.Generator().manual_seed(0)
    half = n // 2
    class0 = torch.randn(half, 4, generator=generator) * 0.1 - 1.0
    class1 = torch.randn(half, 4, generator=generator) * 0.1 + 1.0
    inputs = torch.cat((class0, class1), dim=0)
    labels = torch.cat((torch.zeros(half, dtype=torch.int64), torch.ones(half, dtype=torch.int64)))
    order = torch.randperm(n, generator=generator)
    return inputs[order], labels[order]


def test_validation_split_index_holds_out_trailing_fraction() -> None:
    assert validation_split_index(10, 0.1) == 9
    assert validation_split_index(100, 0.2) == 80
    assert validation_split_index(7, 0.0) == 7
    assert validation_split_index(2, 0.1) == 1


def test_trainer_improves_on_easy_dataset() -> None:
    inputs, labels = _separable(64)
    trainer = Trainer(
        model=SurveyRiskClassifier(input_width=4, dropout=0.0),
        config=TrainerConfig(epochs=20, batch_size=8, validation_split=0.25, learning_rate=1e-2, seed=3),
    )

    history = trainer.fit(inputs, labels)

    assert len(history.epochs) == 20
    assert history.train_size == 48
    assert history.val_size == 16
    assert history.train_losses[-1] < history.train_losses[0]
    assert history.epochs[-1].val_accuracy is not None
    assert history.epochs[-1].val_accuracy >= 0.9


def test_trainer_reports_every_epoch_to_callback() -> None:
    inputs, labels = _separable(8)
    seen: list[EpochLogs] = []
    trainer = Trainer(
        model=SurveyRiskClassifier(input_width=4),
        config=TrainerConfig(epochs=3, batch_size=4, validation_split=0.0),
    )

    history = trainer.fit(inputs, labels, on_epoch_end=seen.append)

    assert [logs.epoch for logs in seen] == [1, 2, 3]
    assert all(logs.val_accuracy is None for logs in seen)
    assert history.val_size == 0
    assert seen[0].describe().startswith("Epoch 1: loss=")


def test_trainer_is_deterministic_for_fixed_seed() -> None:
    inputs, labels = _separable(32)
    config = TrainerConfig(epochs=4, batch_size=4, validation_split=0.1, seed=11)

    runs = []
    for _ in range(2):
        torch.manual_seed(config.seed)
        model = SurveyRiskClassifier(input_width=4)
        Trainer(model=model, config=config).fit(inputs, labels)
        runs.append(model.state_dict())

    for name, tensor in runs[0].items():
        assert torch.equal(tensor, runs[1][name])


def test_trainer_rejects_empty_feature_matrix() -> None:
    trainer = Trainer(model=SurveyRiskClassifier(input_width=4), config=TrainerConfig(epochs=1))
    with pytest.raises(ValueError, match="no valid examples"):
        trainer.fit(torch.zeros((0, 4)), torch.zeros((0,), dtype=torch.int64))


def test_trainer_rejects_split_without_training_examples() -> None:
    trainer = Trainer(
        model=SurveyRiskClassifier(input_width=4),
        config=TrainerConfig(epochs=1, validation_split=0.5),
    )
    with pytest.raises(ValueError, match="no training examples"):
        trainer.fit(torch.zeros((1, 4)), torch.zeros((1,), dtype=torch.int64))


def test_trainer_config_validation() -> None:
    with pytest.raises(ValueError):
        TrainerConfig(epochs=0)
    with pytest.raises(ValueError):
        TrainerConfig(validation_split=1.0)
    with pytest.raises(ValueError):
        TrainerConfig(batch_size=0)
