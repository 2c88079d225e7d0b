"""Storage modules"""

from invoice_auditor.db.base import BlobStore, RecordStore
from invoice_auditor.db.supabase import get_blob_store, get_database

__all__ = [
    "BlobStore",
    "RecordStore",
    "get_blob_store",
    "get_database",
]
