"""Invoice audit pipeline: upload, resolve, record, download, invoke, parse, finalize"""

import asyncio
import logging
import time
from typing import Callable, List, Optional

from invoice_auditor.db.base import BlobStore, RecordStore
from invoice_auditor.models.audit import AuditRecord, AuditResult, AuditStatus
from invoice_auditor.services.errors import (
    AuditRecordCreationFailed,
    AuditRecordUpdateFailed,
    ContractResolutionFailed,
    DownloadFailed,
    InvoiceUploadFailed,
    ModelInvocationError,
    NoContractDocument,
    NoTextResponse,
    ResultParseError,
)
from invoice_auditor.services.invoker import AIAuditInvoker
from invoice_auditor.services.parser import parse_audit_result
from invoice_auditor.services.resolver import DocumentResolver

logger = logging.getLogger(__name__)


def invoice_blob_path(contract_id: str, file_name: str, timestamp_ms: int) -> str:
    """Storage path of an uploaded invoice: {contract_id}/{ms}-{file_name}"""
    return f"{contract_id}/{timestamp_ms}-{file_name}"


class AuditOrchestrator:
    """Drives one audit end to end and owns every AuditRecord transition.

    Until the record exists, failures propagate as exceptions. Afterwards they
    are written onto the record and the failed record is returned, so callers
    only ever reason about record status. The one exception is
    AuditRecordUpdateFailed, raised when that write itself is impossible.
    """

    def __init__(
        self,
        db: RecordStore,
        blobs: BlobStore,
        invoker: AIAuditInvoker,
        resolver: Optional[DocumentResolver] = None,
        invoice_bucket: str = "invoices",
        contract_bucket: str = "contract-documents",
        default_currency: str = "EUR",
        clock: Callable[[], float] = time.time,
    ):
        self.db = db
        self.blobs = blobs
        self.invoker = invoker
        self.resolver = resolver or DocumentResolver(db)
        self.invoice_bucket = invoice_bucket
        self.contract_bucket = contract_bucket
        self.default_currency = default_currency
        self.clock = clock

    async def submit_audit(
        self,
        contract_id: str,
        invoice_bytes: bytes,
        invoice_file_name: str,
        invoice_content_type: str,
        caller_id: str,
    ) -> AuditRecord:
        # 1. Upload invoice
        invoice_path = invoice_blob_path(contract_id, invoice_file_name, int(self.clock() * 1000))
        try:
            await asyncio.to_thread(
                self.blobs.upload, self.invoice_bucket, invoice_path,
                invoice_bytes, invoice_content_type,
            )
        except Exception as e:
            logger.error(f"Invoice upload failed for contract {contract_id}: {e}")
            raise InvoiceUploadFailed("Failed to upload invoice") from e

        # 2. Resolve the contract document; the blob is orphaned if this fails
        try:
            document = await asyncio.to_thread(self.resolver.resolve, contract_id)
        except NoContractDocument:
            await self._discard_invoice(invoice_path)
            raise
        except Exception as e:
            logger.error(f"Contract document lookup failed for contract {contract_id}: {e}")
            await self._discard_invoice(invoice_path)
            raise ContractResolutionFailed("Failed to resolve contract document") from e

        # 3. Create the record; from here on failures are recorded, not raised
        try:
            row = await asyncio.to_thread(self.db.insert_audit, {
                "contract_id": contract_id,
                "invoice_file_name": invoice_file_name,
                "invoice_file_path": invoice_path,
                "invoice_file_size_bytes": len(invoice_bytes),
                "contract_document_id": document.id,
                "contract_document_path": document.storage_path,
                "status": AuditStatus.PROCESSING.value,
                "created_by": caller_id,
            })
            record = AuditRecord.model_validate(row)
        except Exception as e:
            logger.error(f"Audit record creation failed for contract {contract_id}: {e}")
            raise AuditRecordCreationFailed("Failed to create audit record") from e

        logger.info(f"Audit {record.id} processing (contract={contract_id}, document={document.id})")
        return await self._run(record)

    def list_audits(self, contract_id: str) -> List[AuditRecord]:
        """Audits of a contract, newest first."""
        rows = self.db.list_audits(contract_id)
        return [AuditRecord.model_validate(row) for row in rows]

    def get_audit(self, audit_id: str) -> Optional[AuditRecord]:
        row = self.db.get_audit(audit_id)
        return AuditRecord.model_validate(row) if row else None

    # ---- Pipeline steps after record creation ----

    async def _run(self, record: AuditRecord) -> AuditRecord:
        # 4. Download both documents
        try:
            contract_pdf = await self._download(
                self.contract_bucket, record.contract_document_path, "contract document"
            )
            invoice_pdf = await self._download(
                self.invoice_bucket, record.invoice_file_path, "invoice"
            )
        except DownloadFailed as e:
            return await self._fail(record, e.message)

        # 5. Invoke the model
        try:
            text = await self.invoker.invoke(contract_pdf, invoice_pdf)
        except NoTextResponse as e:
            return await self._fail(record, e.message)
        except ModelInvocationError as e:
            return await self._fail(record, f"AI model error: {e.message}")
        except Exception as e:
            return await self._fail(record, f"AI model error: {e}")

        # 6. Parse and validate
        try:
            result = parse_audit_result(text)
        except ResultParseError as e:
            logger.warning(f"Audit {record.id}: {e}; snippet={e.snippet!r}")
            return await self._fail(record, e.message)

        # 7. Complete
        return await self._complete(record, result)

    async def _download(self, bucket: str, path: Optional[str], what: str) -> bytes:
        if not path:
            raise DownloadFailed(what, "")
        try:
            return await asyncio.to_thread(self.blobs.download, bucket, path)
        except Exception as e:
            raise DownloadFailed(what, path, e) from e

    async def _complete(self, record: AuditRecord, result: AuditResult) -> AuditRecord:
        summary = result.summary
        fields = {
            "status": AuditStatus.COMPLETED.value,
            "audit_result": result.model_dump(mode="json"),
            "total_discrepancies": len(result.discrepancies),
            "invoice_total": summary.total_invoiced,
            "contract_expected_total": summary.total_contracted,
            "currency": (summary.currency or self.default_currency).upper(),
            "error_message": None,
        }
        try:
            completed = await self._transition(record, fields)
        except AuditRecordUpdateFailed as e:
            return await self._fail(record, f"Failed to store audit result: {e.message}")

        logger.info(
            f"Audit {record.id} completed: {summary.overall_status.value}, "
            f"{completed.total_discrepancies} discrepancies"
        )
        return completed

    async def _fail(self, record: AuditRecord, message: str) -> AuditRecord:
        """Move the record to failed. Raises AuditRecordUpdateFailed if that fails."""
        logger.warning(f"Audit {record.id} failed: {message}")
        return await self._transition(record, {
            "status": AuditStatus.FAILED.value,
            "audit_result": None,
            "error_message": message,
        })

    async def _transition(self, record: AuditRecord, fields: dict) -> AuditRecord:
        if record.status.is_terminal:
            raise AuditRecordUpdateFailed(f"Audit {record.id} is already {record.status.value}")
        try:
            row = await asyncio.to_thread(self.db.update_audit, record.id, fields)
        except Exception as e:
            raise AuditRecordUpdateFailed(f"Failed to update audit record: {e}") from e
        if row is None:
            raise AuditRecordUpdateFailed(f"Audit {record.id} is no longer processing")
        return AuditRecord.model_validate(row)

    async def _discard_invoice(self, invoice_path: str) -> None:
        """Compensate for step 1. A failed delete leaves an orphan for the sweeper."""
        try:
            await asyncio.to_thread(self.blobs.remove, self.invoice_bucket, [invoice_path])
            logger.info(f"Removed unreferenced invoice {invoice_path}")
        except Exception as e:
            logger.warning(f"Could not remove orphaned invoice {invoice_path}: {e}")
