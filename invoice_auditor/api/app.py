"""FastAPI application factory"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import HTTPException, RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from invoice_auditor.api.auth import IdentityResolver, default_identity_resolver
from invoice_auditor.api.routes.invoice_audit import router as invoice_audit_router
from invoice_auditor.api.schemas import HealthResponse
from invoice_auditor.services.errors import InvoiceAuditError
from invoice_auditor.services.orchestrator import AuditOrchestrator
from invoice_auditor.utils.config import get_settings
from invoice_auditor.utils.logging import configure_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events"""
    # Startup: wire the pipeline unless one was injected
    if app.state.orchestrator is None:
        from invoice_auditor.services import build_orchestrator

        app.state.orchestrator = build_orchestrator()
    yield


def create_app(
    orchestrator: Optional[AuditOrchestrator] = None,
    identity_resolver: Optional[IdentityResolver] = None,
) -> FastAPI:
    """Create and configure the FastAPI application"""
    configure_logging()

    app = FastAPI(
        title="Invoice Audit API",
        description="Reconciles submitted invoices against contract fee schedules with an AI model",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.orchestrator = orchestrator
    app.state.identity_resolver = identity_resolver or default_identity_resolver()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(InvoiceAuditError)
    async def invoice_audit_error_handler(request: Request, exc: InvoiceAuditError):
        return JSONResponse(status_code=exc.http_status, content={"error": exc.message})

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        # e.g. invoice sent as a plain form field instead of a file
        logger.info(f"Rejected request to {request.url.path}: {exc.errors()}")
        return JSONResponse(status_code=400, content={"error": "Missing invoice file or contract_id"})

    @app.exception_handler(HTTPException)
    async def http_error_handler(request: Request, exc: HTTPException):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})

    @app.get("/health", response_model=HealthResponse)
    async def health():
        settings = get_settings()
        return HealthResponse(
            status="ok" if app.state.orchestrator is not None else "error",
            db_mode=settings.db_mode,
            llm_provider=settings.llm_provider,
        )

    app.include_router(invoice_audit_router)

    return app
