"""Anthropic client construction for the direct API and AWS Bedrock."""

import logging
from typing import Optional, Union

from anthropic import AsyncAnthropic, AsyncAnthropicBedrock

from invoice_auditor.utils.config import Settings, get_settings

logger = logging.getLogger(__name__)

AsyncClient = Union[AsyncAnthropic, AsyncAnthropicBedrock]


def create_async_client(settings: Optional[Settings] = None) -> AsyncClient:
    """Build an async Messages API client for the configured provider.

    Both client types expose the same ``messages.create`` surface, so callers
    never need to know which provider is behind it.
    """
    settings = settings or get_settings()
    provider = settings.llm_provider.lower()

    if provider == "bedrock":
        logger.info(f"Using AWS Bedrock in {settings.aws_region}")
        kwargs = {"aws_region": settings.aws_region, "timeout": settings.llm_timeout}
        if settings.aws_access_key_id and settings.aws_secret_access_key:
            kwargs["aws_access_key"] = settings.aws_access_key_id
            kwargs["aws_secret_key"] = settings.aws_secret_access_key
        return AsyncAnthropicBedrock(**kwargs)

    if provider == "anthropic":
        if not settings.anthropic_api_key:
            raise RuntimeError(
                "ANTHROPIC_API_KEY not set. Add it to your .env file."
            )
        return AsyncAnthropic(api_key=settings.anthropic_api_key, timeout=settings.llm_timeout)

    raise ValueError(f"Unknown LLM_PROVIDER '{settings.llm_provider}' (expected 'anthropic' or 'bedrock')")


def get_model(settings: Optional[Settings] = None) -> str:
    """Model identifier matching the configured provider."""
    settings = settings or get_settings()
    if settings.llm_provider.lower() == "bedrock":
        return settings.bedrock_model_id
    return settings.llm_model
