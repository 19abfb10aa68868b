"""Append-only JSON store for the labeled triage text dataset."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Iterable

from medtrain.data.contracts import LabeledTextExample

logger = logging.getLogger(__name__)


def load_text_examples(path: Path) -> tuple[LabeledTextExample, ...]:
    """Strict loader used by training; missing or malformed files are errors."""
    if not path.exists():
        raise FileNotFoundError(f"triage dataset does not exist: {path}")
    payload = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(payload, list):
        raise ValueError(f"triage dataset must be a JSON array: {path}")
    return tuple(LabeledTextExample.from_json(record) for record in payload)


class TextDatasetStore:
    """JSON array on disk treated as an append-only log of raw records.

    Records are kept exactly as loaded, including entries that are not
    objects, so that appends never rewrite or drop existing entries.
    Every save goes through a temporary file in the same directory followed by
    an atomic rename.
    """

    def __init__(self, path: Path) -> None:
        self._path = path
        self._records: list[Any] = []

    @property
    def path(self) -> Path:
        return self._path

    @property
    def records(self) -> tuple[Any, ...]:
        return tuple(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def load(self) -> int:
        """Load existing records; a missing or corrupted file yields an empty log."""
        self._records = []
        if not self._path.exists():
            return 0
        try:
            payload = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            logger.warning("Existing dataset %s is unreadable (%s); starting fresh.", self._path, exc)
            return 0
        if not isinstance(payload, list):
            logger.warning("Existing dataset %s is not a JSON array; starting fresh.", self._path)
            return 0
        self._records = list(payload)
        foreign = sum(1 for record in payload if not isinstance(record, dict))
        if foreign:
            logger.warning("Keeping %d non-object entries in %s as loaded.", foreign, self._path)
        logger.info("Loaded %d existing examples from %s.", len(self._records), self._path)
        return len(self._records)

    def extend(self, records: Iterable[dict[str, Any]]) -> int:
        """Append records in order and return how many were added."""
        added = [dict(record) for record in records]
        self._records.extend(added)
        return len(added)

    def save(self) -> Path:
        """Persist the full log atomically."""
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self._path.name}.",
            suffix=".tmp",
            dir=self._path.parent,
        )
        tmp_path = Path(tmp_name)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(self._records, handle, indent=2)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_path, self._path)
        except BaseException:
            tmp_path.unlink(missing_ok=True)
            raise
        return self._path
