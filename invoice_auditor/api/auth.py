"""Caller identity resolution"""

import logging
from typing import Callable, Optional

from fastapi import HTTPException, Request

from invoice_auditor.utils.config import get_settings

logger = logging.getLogger(__name__)

IdentityResolver = Callable[[Request], Optional[str]]


def bearer_token(request: Request) -> Optional[str]:
    header = request.headers.get("authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def supabase_identity(request: Request) -> Optional[str]:
    """Resolve a Supabase JWT from the Authorization header."""
    token = bearer_token(request)
    if not token:
        return None
    from invoice_auditor.db.supabase import resolve_user_id

    return resolve_user_id(token)


def header_identity(request: Request) -> Optional[str]:
    """Local mode: trust the X-User-Id header."""
    return request.headers.get("x-user-id") or None


def default_identity_resolver() -> IdentityResolver:
    if get_settings().db_mode == "supabase":
        return supabase_identity
    return header_identity


def get_caller_id(request: Request) -> str:
    """FastAPI dependency: the opaque id of the calling user, or 401."""
    resolver: IdentityResolver = request.app.state.identity_resolver
    try:
        caller_id = resolver(request)
    except Exception as e:
        logger.warning(f"Identity resolution failed: {e}")
        caller_id = None
    if not caller_id:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return caller_id
