"""Error taxonomy for the invoice audit pipeline.

Errors raised before an audit record exists reach the caller as HTTP errors.
Errors after that point are captured onto the record and never escape, except
``AuditRecordUpdateFailed`` which means the failure itself could not be stored.
"""

from typing import Optional

SNIPPET_LENGTH = 200


class InvoiceAuditError(Exception):
    """Base class for all pipeline errors"""

    http_status = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(InvoiceAuditError):
    """Missing or invalid request fields"""

    http_status = 400


class NoContractDocument(InvoiceAuditError):
    """The contract has no document to audit against"""

    http_status = 400

    def __init__(self, contract_id: str):
        super().__init__("No contract document found. Please upload a contract PDF first.")
        self.contract_id = contract_id


class InvoiceUploadFailed(InvoiceAuditError):
    """The invoice could not be written to blob storage"""


class ContractResolutionFailed(InvoiceAuditError):
    """The contract documents could not be read from the record store"""


class AuditRecordCreationFailed(InvoiceAuditError):
    """The audit record could not be inserted"""


class AuditRecordUpdateFailed(InvoiceAuditError):
    """A terminal status transition could not be persisted"""


class DownloadFailed(InvoiceAuditError):
    """A stored document could not be fetched"""

    def __init__(self, what: str, path: str, cause: Optional[Exception] = None):
        detail = f": {cause}" if cause else ""
        super().__init__(f"Failed to download {what}{detail}")
        self.what = what
        self.path = path


class ModelInvocationError(InvoiceAuditError):
    """The AI model call itself failed (network, quota, model error)"""


class NoTextResponse(InvoiceAuditError):
    """The model answered without any text block"""

    def __init__(self):
        super().__init__("No text response from AI model")


class ResultParseError(InvoiceAuditError):
    """Model text is not valid JSON or does not match the audit schema"""

    def __init__(self, text: str, reason: str):
        super().__init__("Failed to parse AI response as JSON")
        self.reason = reason
        self.text_length = len(text)
        self.snippet = text[:SNIPPET_LENGTH]

    def __str__(self) -> str:
        return f"{self.message} ({self.reason}; {self.text_length} chars)"
