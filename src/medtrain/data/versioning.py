"""Content fingerprints recorded alongside trained model bundles."""

from __future__ import annotations

import hashlib
from pathlib import Path
from typing import Sequence

_CHUNK_BYTES = 1024 * 1024


def dataset_fingerprint(paths: Sequence[str | Path]) -> str:
    """SHA256 over each input's file name and content digest.

    Parent directories are ignored, so the same dataset copied to another
    workspace fingerprints identically. Input order does not matter.
    """
    if not paths:
        raise ValueError("paths must not be empty")

    entries = sorted(_file_entry(Path(raw)) for raw in paths)
    digest = hashlib.sha256()
    for file_name, content_hex in entries:
        digest.update(f"{file_name}\x00{content_hex}\n".encode("utf-8"))
    return digest.hexdigest()


def _file_entry(path: Path) -> tuple[str, str]:
    if not path.exists():
        raise FileNotFoundError(f"dataset file does not exist: {path}")
    if not path.is_file():
        raise ValueError(f"expected a dataset file, got: {path}")
    content = hashlib.sha256()
    with path.open("rb") as handle:
        for chunk in iter(lambda: handle.read(_CHUNK_BYTES), b""):
            content.update(chunk)
    return path.name, content.hexdigest()
