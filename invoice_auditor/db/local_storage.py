"""Filesystem implementation of BlobStore for local development"""

import logging
from pathlib import Path
from typing import List, Optional

from invoice_auditor.db.base import BlobStore
from invoice_auditor.utils.config import get_settings

logger = logging.getLogger(__name__)


class LocalBlobStore(BlobStore):
    """Stores each bucket as a directory under storage_path."""

    def __init__(self, root: Optional[str] = None):
        self.root = Path(root or get_settings().storage_path)

    def _resolve(self, bucket: str, path: str) -> Path:
        base = (self.root / bucket).resolve()
        target = (base / path).resolve()
        if base not in target.parents:
            raise ValueError(f"Path escapes bucket '{bucket}': {path}")
        return target

    def upload(self, bucket: str, path: str, content: bytes, content_type: str) -> str:
        target = self._resolve(bucket, path)
        if target.exists():
            raise FileExistsError(f"Object already exists: {bucket}/{path}")
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(content)
        return path

    def download(self, bucket: str, path: str) -> bytes:
        return self._resolve(bucket, path).read_bytes()

    def remove(self, bucket: str, paths: List[str]) -> None:
        for path in paths:
            self._resolve(bucket, path).unlink(missing_ok=True)

    def list_paths(self, bucket: str, prefix: str) -> List[str]:
        folder = self._resolve(bucket, prefix) if prefix else (self.root / bucket)
        if not folder.is_dir():
            return []
        base = (self.root / bucket).resolve()
        return sorted(
            p.relative_to(base).as_posix() for p in folder.iterdir() if p.is_file()
        )
