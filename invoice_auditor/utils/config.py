"""Configuration management using pydantic-settings"""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # LLM provider: 'anthropic' (direct API) or 'bedrock' (AWS Bedrock)
    llm_provider: str = Field(default="anthropic", description="LLM provider to use")

    anthropic_api_key: Optional[str] = Field(default=None, description="Anthropic API key for Claude")

    # AWS Bedrock settings
    aws_region: str = Field(default="eu-west-1", description="AWS region for Bedrock")
    aws_access_key_id: Optional[str] = Field(default=None, description="AWS access key (else default chain)")
    aws_secret_access_key: Optional[str] = Field(default=None, description="AWS secret key (else default chain)")
    bedrock_model_id: str = Field(
        default="anthropic.claude-sonnet-4-20250514-v1:0",
        description="Bedrock model ID used when LLM_PROVIDER=bedrock",
    )

    # LLM settings
    llm_model: str = Field(default="claude-sonnet-4-20250514", description="LLM model to use")
    llm_max_tokens: int = Field(default=8192, description="Max tokens in response")
    llm_timeout: float = Field(default=300.0, description="Seconds before an LLM call times out")

    # Database mode: 'supabase' or 'sqlite'
    db_mode: str = Field(default="sqlite", description="Database backend: 'supabase' or 'sqlite'")

    # Supabase settings
    supabase_url: Optional[str] = Field(default=None, description="Supabase project URL")
    supabase_key: Optional[str] = Field(default=None, description="Supabase anon key")
    supabase_service_key: Optional[str] = Field(default=None, description="Supabase service role key")

    # Local mode settings
    database_path: str = Field(default="./data/invoice_audit.db", description="Path to SQLite database")
    storage_path: str = Field(default="./data/storage", description="Root directory for local blob storage")

    # Storage buckets
    invoice_bucket: str = Field(default="invoices", description="Bucket holding uploaded invoices")
    contract_bucket: str = Field(default="contract-documents", description="Bucket holding contract PDFs")

    default_currency: str = Field(default="EUR", description="Currency used when the audit result has none")
    orphan_grace_minutes: int = Field(default=60, description="Minimum age before an unreferenced invoice is swept")

    log_level: str = Field(default="INFO", description="Logging level")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


def get_settings() -> Settings:
    """Get application settings"""
    return Settings()
