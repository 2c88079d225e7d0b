"""Invoice audit models: the AI audit result and the persisted audit record"""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class AuditStatus(str, Enum):
    """Lifecycle of an audit record. Never persisted as anything else."""
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self is not AuditStatus.PROCESSING


class OverallStatus(str, Enum):
    MATCH = "match"
    DISCREPANCIES_FOUND = "discrepancies_found"
    MAJOR_DISCREPANCIES = "major_discrepancies"


class LineItemStatus(str, Enum):
    MATCH = "match"
    PRICE_MISMATCH = "price_mismatch"
    NOT_IN_CONTRACT = "not_in_contract"
    MISSING_FROM_INVOICE = "missing_from_invoice"


class DiscrepancyType(str, Enum):
    PRICE_MISMATCH = "price_mismatch"
    QUANTITY_MISMATCH = "quantity_mismatch"
    UNAUTHORIZED_CHARGE = "unauthorized_charge"
    MISSING_ITEM = "missing_item"
    CALCULATION_ERROR = "calculation_error"
    OTHER = "other"


class Severity(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


# =========================================================
# AI audit result (embedded in AuditRecord.audit_result)
# =========================================================

class AuditSummary(BaseModel):
    """Headline figures of an audit"""
    overall_status: OverallStatus
    confidence_score: float = Field(..., ge=0.0, le=1.0)
    invoice_number: Optional[str] = None
    invoice_date: Optional[str] = None
    invoice_period: Optional[str] = None
    total_invoiced: float
    total_contracted: float
    total_difference: float
    currency: Optional[str] = Field(None, pattern=r"^[A-Za-z]{3}$")


class LineItem(BaseModel):
    """One invoice line compared against its contracted counterpart"""
    description: str
    invoice_quantity: Optional[float] = None
    invoice_unit_price: Optional[float] = None
    # Present but null for items missing from the invoice
    invoice_total: Optional[float]
    contract_unit_price: Optional[float] = None
    contract_total: Optional[float] = None
    status: LineItemStatus
    difference: Optional[float] = None
    notes: Optional[str] = None


class Discrepancy(BaseModel):
    """A flagged mismatch between invoice and contract"""
    type: DiscrepancyType
    severity: Severity
    description: str
    invoice_value: Optional[float] = None
    contract_value: Optional[float] = None
    difference: Optional[float] = None
    line_item_reference: Optional[str] = None


class VisitFee(BaseModel):
    visit_name: str
    fee: float


class OtherFee(BaseModel):
    description: str
    fee: float


class ContractTerms(BaseModel):
    """Fee schedule the model extracted from the contract"""
    visit_fees: List[VisitFee]
    startup_fee: Optional[float] = None
    closeout_fee: Optional[float] = None
    screen_failure_fee: Optional[float] = None
    patient_compensation: Optional[float] = None
    other_fees: List[OtherFee]
    currency: str


class AuditResult(BaseModel):
    """Structured output of one invoice-vs-contract audit"""
    summary: AuditSummary
    line_items: List[LineItem]
    discrepancies: List[Discrepancy]
    recommendations: List[str]
    extracted_contract_terms: ContractTerms

    def discrepancies_by_severity(self, severity: Severity) -> List[Discrepancy]:
        return [d for d in self.discrepancies if d.severity == severity]


# =========================================================
# Persisted entities
# =========================================================

class ContractDocument(BaseModel):
    """A contract PDF stored for a contract (read-only here)"""
    model_config = ConfigDict(extra="ignore")

    id: str
    storage_path: str
    file_name: str
    contract_id: str
    is_primary: bool = False
    uploaded_at: datetime


class AuditRecord(BaseModel):
    """Durable row tracking one audit attempt and its terminal outcome"""
    model_config = ConfigDict(extra="ignore")

    id: str
    contract_id: str
    invoice_file_name: str
    invoice_file_path: str
    invoice_file_size_bytes: int
    contract_document_id: Optional[str] = None
    contract_document_path: Optional[str] = None
    status: AuditStatus = AuditStatus.PROCESSING
    audit_result: Optional[AuditResult] = None
    total_discrepancies: Optional[int] = None
    invoice_total: Optional[float] = None
    contract_expected_total: Optional[float] = None
    currency: Optional[str] = None
    error_message: Optional[str] = None
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
