"""
REST API routes — health and orders.
"""

from __future__ import annotations

import logging
import math
from typing import Any, Dict, Optional, Union

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from auth.dependencies import (
    Identity,
    db_session,
    get_current_identity,
    json_body,
    require_admin,
)
from database.helpers import create_order, delete_order, list_orders, serialize_order

logger = logging.getLogger(__name__)

router = APIRouter()

# ``orders.id`` is a signed 32-bit INTEGER.
MAX_ORDER_ID = 2**31 - 1


class OrderRequest(BaseModel):
    items: Optional[Any] = None
    total: Optional[Any] = None


def coerce_total(value: Any) -> Optional[float]:
    """Finite number from a JSON number or numeric string, else ``None``."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    elif not isinstance(value, (int, float)):
        return None
    try:
        total = float(value)
    except (TypeError, ValueError, OverflowError):
        return None
    return total if math.isfinite(total) else None


def parse_order_id(raw: str) -> Optional[Union[int, float]]:
    """
    Numeric path id: ``int`` when integral (``"7"``, ``"7.0"``, ``"7e0"``),
    the ``float`` otherwise, ``None`` when not a finite number.
    """
    try:
        return int(raw)
    except ValueError:
        pass
    try:
        value = float(raw)
    except ValueError:
        return None
    if not math.isfinite(value):
        return None
    return int(value) if value.is_integer() else value


@router.get("/health")
async def health() -> Dict[str, Any]:
    return {"ok": True}


@router.get("/orders")
async def get_orders(
    identity: Identity = Depends(get_current_identity),
    session: AsyncSession = Depends(db_session),
) -> Dict[str, Any]:
    """Admins see every order; everyone else sees their own."""
    try:
        orders = await list_orders(
            session, user_id=None if identity.is_admin else identity.user_id
        )
    except SQLAlchemyError:
        logger.exception("Load orders error for %s", identity.email)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to load orders",
        )
    return {
        "orders": [serialize_order(o) for o in orders if identity.can_access(o.user_id)]
    }


@router.post("/orders", status_code=status.HTTP_201_CREATED)
async def post_order(
    identity: Identity = Depends(get_current_identity),
    body: Dict[str, Any] = Depends(json_body),
    session: AsyncSession = Depends(db_session),
) -> Dict[str, Any]:
    req = OrderRequest.model_validate(body)
    items = req.items if isinstance(req.items, list) else None
    total = coerce_total(req.total)
    if items is None or total is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid order payload",
        )

    try:
        order = await create_order(session, identity.user_id, identity.email, items, total)
        await session.commit()
    except SQLAlchemyError:
        logger.exception("Create order error for %s", identity.email)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create order",
        )

    logger.info("Order %s created by %s (%d items)", order.id, identity.email, len(items))
    return {"order": serialize_order(order)}


@router.delete("/orders/{order_id}")
async def remove_order(
    order_id: str,
    identity: Identity = Depends(require_admin),
    session: AsyncSession = Depends(db_session),
) -> Dict[str, Any]:
    oid = parse_order_id(order_id)
    if oid is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid order id",
        )
    if not isinstance(oid, int) or not 0 < oid <= MAX_ORDER_ID:
        # Numeric but no row can carry this id.
        logger.info("Order %s delete by %s matched nothing", order_id, identity.email)
        return {"ok": True}

    try:
        removed = await delete_order(session, oid)
        await session.commit()
    except SQLAlchemyError:
        logger.exception("Delete order error for order %s", oid)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to delete order",
        )

    logger.info("Order %s deleted by %s (rows=%d)", oid, identity.email, removed)
    return {"ok": True}
