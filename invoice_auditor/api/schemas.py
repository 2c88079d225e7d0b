"""Request/response schemas for the invoice audit API"""

from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Error body returned for every non-200 response"""
    error: str


class HealthResponse(BaseModel):
    """Health check response"""
    status: str  # "ok" | "error"
    db_mode: str
    llm_provider: str
    version: str = "0.1.0"
