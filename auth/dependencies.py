"""
FastAPI dependencies for authentication.

Provides ``db_session``, ``get_current_identity`` and ``require_admin``
used across all protected routes, plus the plain functions behind them
(bearer extraction, token → ``Identity``, the bootstrap-admin gate).
"""

from __future__ import annotations

import hmac
from dataclasses import dataclass
from typing import Any, AsyncGenerator, Dict, Optional

from fastapi import Depends, Header, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from auth.jwt import verify
from config.settings import config
from database.session import get_db_session

ROLE_ADMIN = "admin"
ROLE_USER = "user"


@dataclass(frozen=True)
class Identity:
    user_id: Any
    email: str
    role: str
    iat: Optional[int] = None
    exp: Optional[int] = None

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    def can_access(self, owner_id: Any) -> bool:
        """Admins act on any subject's records; users only on their own."""
        return self.is_admin or owner_id == self.user_id

    def public(self) -> dict:
        return {"email": self.email, "role": self.role, "iat": self.iat, "exp": self.exp}


def extract_bearer(authorization: Optional[str]) -> Optional[str]:
    """Token from ``Authorization: Bearer <token>``, or ``None``."""
    if not authorization:
        return None
    parts = authorization.split(" ")
    if len(parts) < 2 or parts[0] != "Bearer" or not parts[1]:
        return None
    return parts[1]


def authenticate(
    authorization: Optional[str],
    secret: str,
    *,
    now: Optional[float] = None,
) -> Optional[Identity]:
    payload = verify(extract_bearer(authorization), secret, now=now)
    if payload is None:
        return None
    return Identity(
        user_id=payload.get("uid"),
        email=payload.get("email", ""),
        role=payload.get("role") or ROLE_USER,
        iat=payload.get("iat"),
        exp=payload.get("exp"),
    )


def is_bootstrap_admin(email: str, password: str) -> bool:
    """
    Break-glass gate: the configured admin email AND password both match.

    This is the only place a login may skip stored-hash comparison.
    Disabled entirely unless both values are configured.
    """
    if not config.bootstrap_admin_enabled:
        return False
    email_ok = hmac.compare_digest(email.encode("utf-8"), config.admin_email.encode("utf-8"))
    password_ok = hmac.compare_digest(
        password.encode("utf-8"), config.admin_password.encode("utf-8")
    )
    return email_ok and password_ok


def role_for_new_account(email: str) -> str:
    if config.admin_email and email == config.admin_email:
        return ROLE_ADMIN
    return ROLE_USER


# ── FastAPI dependencies ───────────────────────────────────────────────


async def db_session(
    session: AsyncSession = Depends(get_db_session),
) -> AsyncGenerator[AsyncSession, None]:
    """Yield a DB session for route handlers."""
    yield session


def require_secret() -> str:
    """The signing secret; a missing one is a server misconfiguration (500)."""
    if not config.jwt_secret:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="JWT secret not configured",
        )
    return config.jwt_secret


async def get_current_identity(
    authorization: Optional[str] = Header(None, alias="Authorization"),
    secret: str = Depends(require_secret),
) -> Identity:
    """
    Extract and verify the Bearer token, returning the caller's identity.

    Every failure cause collapses into the same 401.
    """
    identity = authenticate(authorization, secret)
    if identity is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
        )
    return identity


async def require_admin(identity: Identity = Depends(get_current_identity)) -> Identity:
    if not identity.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Forbidden",
        )
    return identity


async def json_body(request: Request) -> Dict[str, Any]:
    """
    The request's JSON object, or ``{}`` when it is missing, unparseable
    or not an object.

    Declare it after the auth/secret dependencies so those run first.
    """
    try:
        body = await request.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}
