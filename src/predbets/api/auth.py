"""Caller authentication for mutating API routes.

Clients send ``X-Caller-Id`` and ``X-Caller-Signature``, the hex HMAC-SHA256
of the caller id keyed with the shared ``auth.secret``. Only a verified id is
passed into the settlement core, which then checks ownership itself.
"""

from __future__ import annotations

import hashlib
import hmac
import secrets

import structlog
from fastapi import Header, HTTPException, Request

log = structlog.get_logger(__name__)


def sign_caller(secret: str, caller_id: str) -> str:
    return hmac.new(secret.encode("utf-8"), caller_id.encode("utf-8"), hashlib.sha256).hexdigest()


def verify_caller(secret: str, caller_id: str, signature: str) -> bool:
    if not secret or not caller_id or not signature:
        return False
    return hmac.compare_digest(sign_caller(secret, caller_id), signature.strip().lower())


def caller_identity(
    request: Request,
    x_caller_id: str = Header(default="", alias="X-Caller-Id"),
    x_caller_signature: str = Header(default="", alias="X-Caller-Signature"),
) -> str:
    """FastAPI dependency: verified caller id, or 401."""
    secret = request.app.state.settings.auth_secret
    if not secret:
        raise HTTPException(status_code=401, detail="Caller authentication not configured")
    caller = x_caller_id.strip()
    if not caller:
        raise HTTPException(status_code=401, detail="Missing caller id")
    if not verify_caller(secret, caller, x_caller_signature):
        log.warning("caller_signature_invalid", caller=caller, path=request.url.path)
        raise HTTPException(status_code=401, detail="Invalid caller signature")
    return caller


def admin_key_auth(
    request: Request,
    x_admin_key: str = Header(default="", alias="X-Admin-Key"),
) -> bool:
    expected = (request.app.state.settings.admin_key or "").strip()
    if not expected:
        raise HTTPException(status_code=401, detail="Admin API key not configured")
    if not secrets.compare_digest(x_admin_key.strip(), expected):
        raise HTTPException(status_code=401, detail="Invalid admin API key")
    return True
