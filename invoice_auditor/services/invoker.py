"""Single-turn AI request comparing a contract PDF with an invoice PDF"""

import base64
import logging
from typing import Any, List

from invoice_auditor.services.errors import ModelInvocationError, NoTextResponse
from invoice_auditor.services.prompts import AUDIT_SYSTEM_PROMPT, AUDIT_USER_PROMPT

logger = logging.getLogger(__name__)

PDF_MEDIA_TYPE = "application/pdf"


def _document_block(content: bytes) -> dict:
    return {
        "type": "document",
        "source": {
            "type": "base64",
            "media_type": PDF_MEDIA_TYPE,
            "data": base64.standard_b64encode(content).decode("ascii"),
        },
    }


def build_messages(contract_pdf: bytes, invoice_pdf: bytes) -> List[dict]:
    """Contract first, invoice second, instruction last. No history."""
    return [
        {
            "role": "user",
            "content": [
                _document_block(contract_pdf),
                _document_block(invoice_pdf),
                {"type": "text", "text": AUDIT_USER_PROMPT},
            ],
        }
    ]


def extract_text(response: Any) -> str:
    """Return the first text block of a Messages API response.

    An empty first text block counts as no text; later blocks are not consulted.
    """
    for block in getattr(response, "content", None) or []:
        if getattr(block, "type", None) == "text":
            if not getattr(block, "text", None):
                raise NoTextResponse()
            return block.text
    raise NoTextResponse()


class AIAuditInvoker:
    """Sends both documents to the model and returns its raw text.

    ``client`` is any async Messages API client (``AsyncAnthropic`` or
    ``AsyncAnthropicBedrock``); it is injected so tests can pass a fake.
    """

    def __init__(self, client: Any, model: str, max_tokens: int = 8192):
        self.client = client
        self.model = model
        self.max_tokens = max_tokens

    async def invoke(self, contract_pdf: bytes, invoice_pdf: bytes) -> str:
        try:
            response = await self.client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                system=AUDIT_SYSTEM_PROMPT,
                messages=build_messages(contract_pdf, invoice_pdf),
            )
        except Exception as e:
            logger.error(f"AI model call failed: {e}")
            raise ModelInvocationError(str(e) or type(e).__name__) from e

        usage = getattr(response, "usage", None)
        if usage is not None:
            logger.info(
                f"AI audit tokens: in={getattr(usage, 'input_tokens', '?')} "
                f"out={getattr(usage, 'output_tokens', '?')}"
            )
        return extract_text(response)
