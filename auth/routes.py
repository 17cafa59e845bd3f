"""
Auth API routes — signup, login, me.

Route prefix: /api
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Tuple

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from auth.dependencies import (
    ROLE_ADMIN,
    ROLE_USER,
    Identity,
    db_session,
    get_current_identity,
    is_bootstrap_admin,
    json_body,
    require_secret,
    role_for_new_account,
)
from auth.jwt import issue
from auth.password import verify_password
from config.settings import config
from database.helpers import create_user, ensure_admin_user, get_user_by_email
from database.models import User

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])


# ── Request schemas ────────────────────────────────────────────────────
# Built from ``json_body`` inside the handler, after the secret check. Fields
# stay loose: a missing or mistyped field is a 400 decided by the handler.


class CredentialsRequest(BaseModel):
    email: Optional[Any] = None
    password: Optional[Any] = None


def normalize_email(value: Any) -> str:
    return str(value or "").strip().lower()


def _read_credentials(req: CredentialsRequest) -> Tuple[str, str]:
    email = normalize_email(req.email)
    password = str(req.password or "")
    if not email or not password:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email and password required",
        )
    return email, password


def _token_response(user_id: Any, email: str, role: str, secret: str) -> Dict[str, Any]:
    issued = issue(
        {"uid": user_id, "email": email, "role": role},
        secret,
        config.jwt_expiry_seconds,
        issuer=config.jwt_issuer,
    )
    payload = issued.payload
    return {
        "token": issued.token,
        "user": {
            "email": payload["email"],
            "role": payload["role"],
            "iat": payload["iat"],
            "exp": payload["exp"],
        },
    }


# ── Endpoints ──────────────────────────────────────────────────────────


@router.post("/login")
async def login(
    secret: str = Depends(require_secret),
    body: Dict[str, Any] = Depends(json_body),
    session: AsyncSession = Depends(db_session),
) -> Dict[str, Any]:
    """Login with email + password."""
    email, password = _read_credentials(CredentialsRequest.model_validate(body))

    try:
        if is_bootstrap_admin(email, password):
            user_id = await ensure_admin_user(session, email, password)
            await session.commit()
            return _token_response(user_id, email, ROLE_ADMIN, secret)

        user: Optional[User] = await get_user_by_email(session, email)
    except SQLAlchemyError:
        logger.exception("Login error for %s", email)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Login failed",
        )

    if user is None or not verify_password(password, user.password_salt, user.password_hash):
        logger.info("Rejected login for %s", email)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
        )

    logger.info("Login: %s (%s)", email, user.id)
    return _token_response(user.id, email, user.role or ROLE_USER, secret)


@router.post("/signup", status_code=status.HTTP_201_CREATED)
async def signup(
    secret: str = Depends(require_secret),
    body: Dict[str, Any] = Depends(json_body),
    session: AsyncSession = Depends(db_session),
) -> Dict[str, Any]:
    """Register a new user."""
    email, password = _read_credentials(CredentialsRequest.model_validate(body))
    if len(password) < config.min_password_length:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Password must be at least {config.min_password_length} characters",
        )

    role = role_for_new_account(email)
    try:
        user = await create_user(session, email, password, role=role)
        await session.commit()
    except IntegrityError:
        await session.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Email already registered",
        )
    except SQLAlchemyError:
        logger.exception("Signup error for %s", email)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Sign up failed",
        )

    logger.info("Registered user %s (%s) as %s", email, user.id, role)
    return _token_response(user.id, email, role, secret)


@router.get("/me")
async def me(identity: Identity = Depends(get_current_identity)) -> Dict[str, Any]:
    return {"user": identity.public()}
