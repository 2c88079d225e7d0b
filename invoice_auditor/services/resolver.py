"""Contract document selection for an audit"""

import logging
from datetime import datetime, timezone
from typing import List

from invoice_auditor.db.base import RecordStore
from invoice_auditor.models.audit import ContractDocument
from invoice_auditor.services.errors import NoContractDocument

logger = logging.getLogger(__name__)


class DocumentResolver:
    """Picks the single contract document an invoice is audited against.

    The most recent primary document wins; without one, the most recent
    document of any kind. Equal upload times are ordered by id, descending.
    """

    def __init__(self, db: RecordStore):
        self.db = db

    def resolve(self, contract_id: str) -> ContractDocument:
        documents = self._ordered_documents(contract_id)
        if not documents:
            raise NoContractDocument(contract_id)

        for doc in documents:
            if doc.is_primary:
                logger.info(f"Using primary document {doc.id} for contract {contract_id}")
                return doc

        doc = documents[0]
        logger.info(f"No primary document for contract {contract_id}; using latest {doc.id}")
        return doc

    def _ordered_documents(self, contract_id: str) -> List[ContractDocument]:
        rows = self.db.get_contract_documents(contract_id)
        documents = [ContractDocument.model_validate(row) for row in rows]
        # Don't rely on the store's ordering for ties
        documents.sort(key=lambda d: (_as_utc(d.uploaded_at), d.id), reverse=True)
        return documents


def _as_utc(value: datetime) -> datetime:
    # Naive timestamps from the store are UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
