"""Removal of invoice blobs that no audit record references"""

import logging
import re
import time
from typing import List, Optional

from invoice_auditor.db.base import BlobStore, RecordStore

logger = logging.getLogger(__name__)

# {contract_id}/{ms}-{file_name}
_TIMESTAMPED = re.compile(r"^(\d{10,})-.+$")


class OrphanSweeper:
    """Cleans up invoices left behind when compensation after upload failed."""

    def __init__(
        self,
        db: RecordStore,
        blobs: BlobStore,
        invoice_bucket: str = "invoices",
        grace_minutes: int = 60,
    ):
        self.db = db
        self.blobs = blobs
        self.invoice_bucket = invoice_bucket
        self.grace_seconds = grace_minutes * 60

    def find_orphans(self, contract_id: str, now: Optional[float] = None) -> List[str]:
        now = time.time() if now is None else now
        referenced = {row.get("invoice_file_path") for row in self.db.list_audits(contract_id)}

        orphans = []
        for path in self.blobs.list_paths(self.invoice_bucket, f"{contract_id}/"):
            if path in referenced:
                continue
            match = _TIMESTAMPED.match(path.rsplit("/", 1)[-1])
            if not match:
                continue
            uploaded = int(match.group(1)) / 1000
            if now - uploaded >= self.grace_seconds:
                orphans.append(path)
        return orphans

    def sweep(self, contract_id: str, now: Optional[float] = None) -> List[str]:
        """Delete orphaned invoices of a contract. Returns the removed paths."""
        removed = []
        for path in self.find_orphans(contract_id, now):
            try:
                self.blobs.remove(self.invoice_bucket, [path])
                removed.append(path)
            except Exception as e:
                logger.warning(f"Failed to remove orphaned invoice {path}: {e}")
        logger.info(f"Swept {len(removed)} orphaned invoice(s) for contract {contract_id}")
        return removed
