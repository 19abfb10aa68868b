"""Deterministic mini-batch trainer with a trailing validation split."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Callable, cast

import torch
from torch import nn
from torch.utils.data import DataLoader, Dataset, TensorDataset

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class TrainerConfig:
    """Training hyperparameters; every field is explicit."""

    epochs: int = 30
    batch_size: int = 4
    validation_split: float = 0.1
    shuffle: bool = True
    learning_rate: float = 1e-3
    device: str = "cpu"
    seed: int = 7

    def __post_init__(self) -> None:
        if self.epochs <= 0:
            raise ValueError("epochs must be > 0")
        if self.batch_size <= 0:
            raise ValueError("batch_size must be > 0")
        if not 0.0 <= self.validation_split < 1.0:
            raise ValueError("validation_split must be in [0, 1)")
        if self.learning_rate <= 0:
            raise ValueError("learning_rate must be > 0")


TRIAGE_TRAINER_CONFIG = TrainerConfig(epochs=30, batch_size=4, validation_split=0.1, shuffle=True)
SURVEY_TRAINER_CONFIG = TrainerConfig(epochs=50, batch_size=32, validation_split=0.2, shuffle=True)


@dataclass(frozen=True, slots=True)
class EpochLogs:
    """Metrics reported at the end of one epoch."""

    epoch: int
    loss: float
    accuracy: float
    val_loss: float | None = None
    val_accuracy: float | None = None

    def describe(self) -> str:
        text = f"Epoch {self.epoch}: loss={self.loss:.4f}, acc={self.accuracy:.4f}"
        if self.val_accuracy is not None:
            text += f", val_acc={self.val_accuracy:.4f}"
        return text


EpochCallback = Callable[[EpochLogs], None]


@dataclass(frozen=True, slots=True)
class TrainingHistory:
    """Epoch-wise training/validation metrics."""

    epochs: tuple[EpochLogs, ...]
    train_size: int
    val_size: int

    @property
    def train_losses(self) -> tuple[float, ...]:
        return tuple(logs.loss for logs in self.epochs)

    @property
    def train_accuracies(self) -> tuple[float, ...]:
        return tuple(logs.accuracy for logs in self.epochs)

    @property
    def val_accuracies(self) -> tuple[float | None, ...]:
        return tuple(logs.val_accuracy for logs in self.epochs)


def log_every(interval: int) -> EpochCallback:
    """Epoch callback that logs every ``interval``-th epoch."""
    if interval <= 0:
        raise ValueError("interval must be > 0")

    def _callback(logs: EpochLogs) -> None:
        if logs.epoch % interval == 0:
            logger.info(logs.describe())

    return _callback


def validation_split_index(num_examples: int, validation_split: float) -> int:
    """Index where the held-out tail starts: ``floor(n * (1 - split))``."""
    return int(math.floor(num_examples * (1.0 - validation_split)))


class Trainer:
    """Fit a classifier with Adam + cross-entropy over index labels."""

    def __init__(self, *, model: nn.Module, config: TrainerConfig) -> None:
        torch.manual_seed(config.seed)
        self._model = model
        self._config = config
        self._device = torch.device(config.device)
        self._model.to(self._device)
        self._criterion = nn.CrossEntropyLoss()
        self._optimizer = torch.optim.Adam(self._model.parameters(), lr=config.learning_rate)

    def fit(
        self,
        inputs: torch.Tensor,
        labels: torch.Tensor,
        *,
        on_epoch_end: EpochCallback | None = None,
    ) -> TrainingHistory:
        """Run every configured epoch and return per-epoch metrics.

        The trailing ``validation_split`` fraction of examples is held out from
        gradient updates. Shuffling applies to the training portion only.
        """
        if inputs.ndim != 2:
            raise ValueError("inputs must have shape [examples, features]")
        if labels.ndim != 1:
            raise ValueError("labels must be 1D")
        num_examples = int(inputs.shape[0])
        if num_examples != int(labels.shape[0]):
            raise ValueError("inputs and labels example counts must match")
        if num_examples == 0:
            raise ValueError("cannot train on an empty feature matrix: no valid examples")

        split_at = validation_split_index(num_examples, self._config.validation_split)
        if split_at <= 0:
            raise ValueError(
                f"validation_split={self._config.validation_split} leaves no training examples "
                f"out of {num_examples}"
            )

        train_loader = _make_loader(
            inputs[:split_at],
            labels[:split_at],
            batch_size=self._config.batch_size,
            shuffle=self._config.shuffle,
            seed=self._config.seed,
        )
        val_loader = None
        if split_at < num_examples:
            val_loader = _make_loader(
                inputs[split_at:],
                labels[split_at:],
                batch_size=self._config.batch_size,
                shuffle=False,
                seed=None,
            )

        epochs: list[EpochLogs] = []
        for epoch in range(1, self._config.epochs + 1):
            loss, accuracy = self._run_train_epoch(train_loader)
            val_loss: float | None = None
            val_accuracy: float | None = None
            if val_loader is not None:
                val_loss, val_accuracy = self.evaluate(val_loader)
            logs = EpochLogs(
                epoch=epoch,
                loss=loss,
                accuracy=accuracy,
                val_loss=val_loss,
                val_accuracy=val_accuracy,
            )
            epochs.append(logs)
            if on_epoch_end is not None:
                on_epoch_end(logs)

        return TrainingHistory(
            epochs=tuple(epochs),
            train_size=split_at,
            val_size=num_examples - split_at,
        )

    def evaluate(self, loader: DataLoader[tuple[torch.Tensor, torch.Tensor]]) -> tuple[float, float]:
        """Average cross-entropy loss and accuracy without gradient updates."""
        self._model.eval()
        loss_sum = 0.0
        correct = 0
        total = 0
        with torch.no_grad():
            for x_batch, y_batch in loader:
                y_batch = y_batch.to(self._device)
                logits = self._model(x_batch.to(self._device))
                loss = self._criterion(logits, y_batch)
                batch_size = int(y_batch.shape[0])
                loss_sum += float(loss.item()) * batch_size
                correct += int((torch.argmax(logits, dim=1) == y_batch).sum().item())
                total += batch_size
        if total == 0:
            raise ValueError("empty loader")
        return loss_sum / total, correct / total

    def _run_train_epoch(
        self,
        loader: DataLoader[tuple[torch.Tensor, torch.Tensor]],
    ) -> tuple[float, float]:
        self._model.train()
        loss_sum = 0.0
        correct = 0
        total = 0
        for x_batch, y_batch in loader:
            y_batch = y_batch.to(self._device)
            self._optimizer.zero_grad(set_to_none=True)
            logits = self._model(x_batch.to(self._device))
            loss = self._criterion(logits, y_batch)
            loss.backward()
            self._optimizer.step()

            batch_size = int(y_batch.shape[0])
            loss_sum += float(loss.item()) * batch_size
            correct += int((torch.argmax(logits.detach(), dim=1) == y_batch).sum().item())
            total += batch_size

        if total == 0:
            raise ValueError("empty training loader")
        return loss_sum / total, correct / total


def _make_loader(
    inputs: torch.Tensor,
    labels: torch.Tensor,
    *,
    batch_size: int,
    shuffle: bool,
    seed: int | None,
) -> DataLoader[tuple[torch.Tensor, torch.Tensor]]:
    dataset = cast(Dataset[tuple[torch.Tensor, torch.Tensor]], TensorDataset(inputs, labels))
    generator = None
    if shuffle and seed is not None:
        generator = torch.Generator()
        generator.manual_seed(seed)
    return DataLoader(dataset, batch_size=batch_size, shuffle=shuffle, generator=generator)
