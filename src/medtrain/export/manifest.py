"""Integrity manifest listing every file of an emitted model bundle."""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Mapping, Sequence

MANIFEST_FORMAT = "medtrain-bundle/1"


@dataclass(frozen=True, slots=True)
class BundleFile:
    """Relative path, digest and size of one bundle file."""

    path: str
    sha256: str
    size_bytes: int

    @classmethod
    def from_path(cls, file_path: Path, *, bundle_root: Path) -> BundleFile:
        if not file_path.is_file():
            raise FileNotFoundError(f"bundle file is missing: {file_path}")
        return cls(
            path=file_path.relative_to(bundle_root).as_posix(),
            sha256=sha256_file(file_path),
            size_bytes=file_path.stat().st_size,
        )

    def to_json(self) -> dict[str, Any]:
        return {"path": self.path, "sha256": self.sha256, "size_bytes": self.size_bytes}


@dataclass(frozen=True, slots=True)
class BundleManifest:
    """Bundle name, creation time, file digests and training details."""

    bundle_name: str
    files: tuple[BundleFile, ...]
    metadata: Mapping[str, Any] = field(default_factory=dict)
    created_at_utc: str = ""

    def to_json(self) -> dict[str, Any]:
        return {
            "format": MANIFEST_FORMAT,
            "bundle_name": self.bundle_name,
            "created_at_utc": self.created_at_utc,
            "files": [entry.to_json() for entry in self.files],
            "metadata": dict(self.metadata),
        }

    @classmethod
    def from_json(cls, payload: Mapping[str, Any]) -> BundleManifest:
        raw_files = payload.get("files")
        if not isinstance(raw_files, list):
            raise ValueError("manifest files must be a list")
        files = tuple(
            BundleFile(
                path=str(entry["path"]),
                sha256=str(entry["sha256"]),
                size_bytes=int(entry["size_bytes"]),
            )
            for entry in raw_files
            if isinstance(entry, dict)
        )
        return cls(
            bundle_name=str(payload.get("bundle_name", "")),
            files=files,
            metadata=dict(payload.get("metadata") or {}),
            created_at_utc=str(payload.get("created_at_utc", "")),
        )


def sha256_file(path: Path) -> str:
    digest = hashlib.sha256()
    with path.open("rb") as handle:
        for chunk in iter(lambda: handle.read(1 << 20), b""):
            digest.update(chunk)
    return digest.hexdigest()


def build_bundle_manifest(
    *,
    bundle_name: str,
    bundle_root: Path,
    files: Sequence[Path],
    metadata: Mapping[str, Any],
) -> BundleManifest:
    """Digest every emitted file; paths are recorded relative to ``bundle_root``."""
    return BundleManifest(
        bundle_name=bundle_name,
        files=tuple(BundleFile.from_path(path, bundle_root=bundle_root) for path in files),
        metadata=metadata,
        created_at_utc=datetime.now(UTC).isoformat(),
    )


def write_manifest(path: Path, manifest: BundleManifest) -> Path:
    path.write_text(json.dumps(manifest.to_json(), indent=2), encoding="utf-8")
    return path


def read_manifest(path: Path) -> BundleManifest:
    payload = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(payload, dict):
        raise ValueError(f"manifest must be a JSON object: {path}")
    return BundleManifest.from_json(payload)
