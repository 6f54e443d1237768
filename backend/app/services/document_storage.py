from __future__ import annotations

import hashlib
from dataclasses import dataclass
from pathlib import Path

from app.config import settings


@dataclass(frozen=True)
class StoredDocument:
    path: Path
    size_bytes: int
    checksum_sha256: str

    @property
    def storage_uri(self) -> str:
        return f"file://{self.path.as_posix()}"


def storage_root() -> Path:
    """Return the absolute storage root for this backend instance."""

    root = Path(settings.storage_dir)
    if root.is_absolute():
        return root

    # backend/app/services/... -> backend/
    backend_root = Path(__file__).resolve().parents[2]
    return (backend_root / root).resolve()


def write_document_bytes(*, folder: str, filename: str, content: bytes) -> StoredDocument:
    """Write `content` atomically under STORAGE_DIR/<folder>/<filename>.

    Rewriting an existing document replaces it in place.
    """

    target_dir = (storage_root() / folder).resolve()
    target_dir.mkdir(parents=True, exist_ok=True)

    target_path = (target_dir / filename).resolve()
    if not target_path.is_relative_to(target_dir):
        raise ValueError("Invalid document path")

    tmp_path = target_path.with_suffix(target_path.suffix + ".tmp")
    tmp_path.write_bytes(content)
    tmp_path.replace(target_path)

    return StoredDocument(
        path=target_path,
        size_bytes=len(content),
        checksum_sha256=hashlib.sha256(content).hexdigest(),
    )
