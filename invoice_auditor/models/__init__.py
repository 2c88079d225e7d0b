"""Data models"""

from invoice_auditor.models.audit import (
    AuditStatus,
    OverallStatus,
    LineItemStatus,
    DiscrepancyType,
    Severity,
    AuditSummary,
    LineItem,
    Discrepancy,
    VisitFee,
    OtherFee,
    ContractTerms,
    AuditResult,
    ContractDocument,
    AuditRecord,
)

__all__ = [
    "AuditStatus",
    "OverallStatus",
    "LineItemStatus",
    "DiscrepancyType",
    "Severity",
    "AuditSummary",
    "LineItem",
    "Discrepancy",
    "VisitFee",
    "OtherFee",
    "ContractTerms",
    "AuditResult",
    "ContractDocument",
    "AuditRecord",
]
