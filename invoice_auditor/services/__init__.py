"""Service modules"""

from typing import Optional

from invoice_auditor.utils.config import Settings, get_settings


def build_orchestrator(settings: Optional[Settings] = None):
    """Wire the audit pipeline from settings (storage backend + AI provider)."""
    from invoice_auditor.db.supabase import get_blob_store, get_database
    from invoice_auditor.services.invoker import AIAuditInvoker
    from invoice_auditor.services.orchestrator import AuditOrchestrator
    from invoice_auditor.utils.llm import create_async_client, get_model

    settings = settings or get_settings()
    invoker = AIAuditInvoker(
        create_async_client(settings),
        model=get_model(settings),
        max_tokens=settings.llm_max_tokens,
    )
    return AuditOrchestrator(
        db=get_database(settings.db_mode),
        blobs=get_blob_store(settings.db_mode),
        invoker=invoker,
        invoice_bucket=settings.invoice_bucket,
        contract_bucket=settings.contract_bucket,
        default_currency=settings.default_currency,
    )
