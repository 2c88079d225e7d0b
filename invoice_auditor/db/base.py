"""Abstract storage interfaces, strategy pattern for Supabase/SQLite switching"""

from abc import ABC, abstractmethod
from typing import List, Optional


class RecordStore(ABC):
    """Relational store for audit records and contract documents.
    Implemented by both SQLite and Supabase backends."""

    @abstractmethod
    def init_db(self) -> None:
        """Initialize or verify the schema."""

    @abstractmethod
    def insert_audit(self, audit: dict) -> dict:
        """Insert an audit row. Returns the stored row."""

    @abstractmethod
    def update_audit(self, audit_id: str, fields: dict) -> Optional[dict]:
        """Update an audit row that is still 'processing'.

        Returns the updated row, or None when no processing row matched
        (unknown id, or the record already reached a terminal status).
        """

    @abstractmethod
    def get_audit(self, audit_id: str) -> Optional[dict]:
        """Get audit row by ID."""

    @abstractmethod
    def list_audits(self, contract_id: str) -> List[dict]:
        """List audit rows for a contract, newest first."""

    @abstractmethod
    def get_contract_documents(self, contract_id: str) -> List[dict]:
        """List documents of a contract, most recently uploaded first."""

    @abstractmethod
    def insert_document(self, document: dict) -> dict:
        """Register a contract document. Returns the stored row."""


class BlobStore(ABC):
    """Object storage addressed by bucket + path."""

    @abstractmethod
    def upload(self, bucket: str, path: str, content: bytes, content_type: str) -> str:
        """Store content at path. Returns the path."""

    @abstractmethod
    def download(self, bucket: str, path: str) -> bytes:
        """Fetch content stored at path."""

    @abstractmethod
    def remove(self, bucket: str, paths: List[str]) -> None:
        """Delete objects. Missing paths are not an error."""

    @abstractmethod
    def list_paths(self, bucket: str, prefix: str) -> List[str]:
        """List object paths directly under a folder prefix."""
