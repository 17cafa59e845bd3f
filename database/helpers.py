"""
Database helper functions — credential lookups and the order store.

Every helper takes the caller's ``AsyncSession`` and only flushes;
committing is left to the route (or to ``get_db_session``).
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from auth.password import new_credential
from database.models import Order, User

logger = logging.getLogger(__name__)


# ── Credentials ─────────────────────────────────────────────────────


async def get_user_by_email(session: AsyncSession, email: str) -> Optional[User]:
    result = await session.execute(select(User).where(User.email == email))
    return result.scalar_one_or_none()


async def create_user(
    session: AsyncSession,
    email: str,
    password: str,
    role: str = "user",
) -> User:
    """
    Insert a new credential row with a freshly salted hash.

    Raises ``IntegrityError`` when the email is already registered; the
    unique constraint on ``users.email`` is what arbitrates concurrent
    signups.
    """
    salt_hex, password_hash = new_credential(password)
    user = User(
        email=email,
        role=role,
        password_hash=password_hash,
        password_salt=salt_hex,
    )
    session.add(user)
    await session.flush()
    return user


async def ensure_admin_user(session: AsyncSession, email: str, password: str) -> int:
    """
    Create ``email`` as an admin, or promote the existing row to admin.

    Returns the user id.  A concurrent insert of the same email is
    absorbed by rolling back and falling back to the promote path, so
    call this before anything else is pending on ``session``.
    """
    existing = await get_user_by_email(session, email)
    if existing is None:
        try:
            user = await create_user(session, email, password, role="admin")
            logger.warning("Provisioned bootstrap admin account %s", email)
            return user.id
        except IntegrityError:
            logger.info("Bootstrap admin %s was created concurrently; promoting", email)
            await session.rollback()
            existing = await get_user_by_email(session, email)
            if existing is None:
                raise

    if existing.role != "admin":
        await session.execute(
            update(User).where(User.id == existing.id).values(role="admin")
        )
        await session.flush()
        logger.warning("Promoted %s to admin via bootstrap login", email)
    return existing.id


# ── Orders ──────────────────────────────────────────────────────────


def parse_items(value: Any) -> List[Any]:
    """Re-parse the stored ``items`` column into a list; unparseable → ``[]``."""
    if isinstance(value, list):
        return value
    if isinstance(value, (bytes, bytearray)):
        value = bytes(value).decode("utf-8", errors="replace")
    if isinstance(value, str):
        try:
            parsed = json.loads(value)
        except ValueError:
            return []
        return parsed if isinstance(parsed, list) else []
    return []


def serialize_order(order: Order) -> Dict[str, Any]:
    return {
        "id": order.id,
        "user_id": order.user_id,
        "email": order.email,
        "items": parse_items(order.items),
        "total": order.total,
        "created_at": order.created_at.isoformat() if order.created_at else None,
    }


async def list_orders(
    session: AsyncSession,
    user_id: Optional[int] = None,
) -> List[Order]:
    """Newest first; ``user_id=None`` means every order."""
    stmt = select(Order).order_by(Order.created_at.desc(), Order.id.desc())
    if user_id is not None:
        stmt = stmt.where(Order.user_id == user_id)
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def create_order(
    session: AsyncSession,
    user_id: int,
    email: str,
    items: List[Any],
    total: float,
) -> Order:
    order = Order(user_id=user_id, email=email, items=json.dumps(items), total=total)
    session.add(order)
    await session.flush()
    await session.refresh(order)
    return order


async def delete_order(session: AsyncSession, order_id: int) -> int:
    """Delete by id; returns the number of rows removed (0 is not an error)."""
    result = await session.execute(delete(Order).where(Order.id == order_id))
    await session.flush()
    return result.rowcount or 0
