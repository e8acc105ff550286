"""
Signed credentials for the analytics API.

Two scopes exist:
- tenant (customer) tokens, signed with the customer secret, used only to
  list applications. They expire after one minute.
- application (server) tokens, signed with that application's own secret,
  used for every per-application resource call. They expire after 90
  minutes, which must outlast all four fetches for one application.

Tokens are minted per use and never persisted.
"""
import time
from typing import Optional

import jwt

from .constants import (
    APPLICATION_TOKEN_TTL_SECONDS,
    TENANT_TOKEN_TTL_SECONDS,
    TOKEN_ALGORITHM,
)


def _sign(claims: dict, secret: str, ttl_seconds: int, now: Optional[float] = None) -> str:
    issued_at = int(now if now is not None else time.time())
    payload = dict(claims)
    payload['iat'] = issued_at
    payload['exp'] = issued_at + ttl_seconds
    return jwt.encode(payload, secret, algorithm=TOKEN_ALGORITHM)


def issue_tenant_token(customer_id: str, customer_secret: str, now: Optional[float] = None) -> str:
    """Sign a one-minute token carrying the ``customer_id`` claim."""
    return _sign({'customer_id': customer_id}, customer_secret, TENANT_TOKEN_TTL_SECONDS, now)


def issue_application_token(app_id: str, app_secret: str, now: Optional[float] = None) -> str:
    """Sign a 90-minute token carrying the ``app_id`` claim with the app's own secret."""
    return _sign({'app_id': app_id}, app_secret, APPLICATION_TOKEN_TTL_SECONDS, now)


def auth_headers(token: str) -> dict:
    """Authorization header for a bearer token."""
    return {'Authorization': f"Bearer {token}"}
