"""Invoice audit API routes: submit an invoice, list and poll audits."""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, Request, UploadFile

from invoice_auditor.api.auth import get_caller_id
from invoice_auditor.api.schemas import ErrorResponse
from invoice_auditor.models.audit import AuditRecord
from invoice_auditor.services.errors import ValidationError
from invoice_auditor.services.orchestrator import AuditOrchestrator

logger = logging.getLogger(__name__)

router = APIRouter()

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


def get_orchestrator(request: Request) -> AuditOrchestrator:
    return request.app.state.orchestrator


def _is_pdf(upload: UploadFile) -> bool:
    content_type = (upload.content_type or "").lower()
    return "pdf" in content_type or (upload.filename or "").lower().endswith(".pdf")


@router.post("/invoice-audit", response_model=AuditRecord, responses=ERROR_RESPONSES)
async def submit_invoice_audit(
    invoice: Optional[UploadFile] = File(None),
    contract_id: Optional[str] = Form(None),
    caller_id: str = Depends(get_caller_id),
    orchestrator: AuditOrchestrator = Depends(get_orchestrator),
):
    """Audit an invoice PDF against the contract's document.

    Any outcome past record creation is a 200 carrying the record, including
    a failed one.
    """
    if invoice is None or not invoice.filename or not contract_id:
        raise ValidationError("Missing invoice file or contract_id")
    if not _is_pdf(invoice):
        raise ValidationError("Please upload a PDF file")

    content = await invoice.read()
    return await orchestrator.submit_audit(
        contract_id=contract_id,
        invoice_bytes=content,
        invoice_file_name=invoice.filename,
        invoice_content_type=invoice.content_type or "application/pdf",
        caller_id=caller_id,
    )


@router.get("/invoice-audit", response_model=List[AuditRecord], responses=ERROR_RESPONSES)
async def list_invoice_audits(
    contract_id: Optional[str] = Query(None),
    caller_id: str = Depends(get_caller_id),
    orchestrator: AuditOrchestrator = Depends(get_orchestrator),
):
    """Audits of a contract, newest first."""
    if not contract_id:
        raise ValidationError("Missing contract_id parameter")
    try:
        return orchestrator.list_audits(contract_id)
    except Exception as e:
        logger.error(f"Error fetching audits for contract {contract_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch audits")


@router.get("/invoice-audit/{audit_id}", response_model=AuditRecord, responses=ERROR_RESPONSES)
async def get_invoice_audit(
    audit_id: str,
    caller_id: str = Depends(get_caller_id),
    orchestrator: AuditOrchestrator = Depends(get_orchestrator),
):
    """Single audit, for polling one record until it is terminal."""
    try:
        audit = orchestrator.get_audit(audit_id)
    except Exception as e:
        logger.error(f"Error fetching audit {audit_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch audit")
    if audit is None:
        raise HTTPException(status_code=404, detail="Audit not found")
    return audit
