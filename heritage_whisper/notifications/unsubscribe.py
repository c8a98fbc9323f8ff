"""Signed unsubscribe tokens for family notification emails.

Token format: ``{member_id}.{hex HMAC-SHA256(member_id)}``.
"""

from __future__ import annotations

import hashlib
import hmac
from typing import Optional
from urllib.parse import urlencode


def _signature(member_id: str, secret: str) -> str:
    return hmac.new(secret.encode("utf-8"), member_id.encode("utf-8"), hashlib.sha256).hexdigest()


def create_unsubscribe_token(member_id: str, secret: str) -> str:
    return f"{member_id}.{_signature(member_id, secret)}"


def verify_unsubscribe_token(token: Optional[str], secret: str) -> Optional[str]:
    """Return the family member id carried by a valid token, otherwise None."""
    if not token or "." not in token:
        return None
    member_id, provided = token.rsplit(".", 1)
    if not member_id or not provided:
        return None
    if not hmac.compare_digest(_signature(member_id, secret), provided):
        return None
    return member_id


def unsubscribe_url(api_base_url: str, member_id: str, secret: str) -> str:
    query = urlencode({"token": create_unsubscribe_token(member_id, secret)})
    return f"{api_base_url.rstrip('/')}/api/v1/family/unsubscribe?{query}"
