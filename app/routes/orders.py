from typing import List, Optional

from fastapi import APIRouter, Body, Depends, Query, status
from sqlalchemy.orm import Session
import logging

from app.db.session import get_db
from app.errors import AppError, Internal
from app.schemas.common import validate_payload
from app.schemas.order import AgentAssignment, OrderCreate, OrderOut, StatusChange
from app.services import order_service
from app.services.auth_service import Principal, get_principal

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/my-orders", response_model=List[OrderOut])
def get_my_orders(principal: Principal = Depends(get_principal), db: Session = Depends(get_db)):
    try:
        return order_service.list_my_orders(db, principal)
    except AppError:
        raise
    except Exception as e:
        logger.error(f"Error fetching orders of user {principal.id}: {e}")
        raise Internal("Error fetching orders")


@router.get("/{order_id}", response_model=OrderOut)
def get_order(order_id: int, principal: Principal = Depends(get_principal), db: Session = Depends(get_db)):
    try:
        return order_service.get_order(db, principal, order_id)
    except AppError:
        raise
    except Exception as e:
        logger.error(f"Error fetching order {order_id}: {e}")
        raise Internal("Error fetching order")


@router.get("", response_model=List[OrderOut])
def get_orders(
    order_status: Optional[str] = Query(None, alias="status"),
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    try:
        return order_service.list_all_orders(db, principal, order_status)
    except AppError:
        raise
    except Exception as e:
        logger.error(f"Error fetching orders: {e}")
        raise Internal("Error fetching orders")


@router.post("", response_model=OrderOut, status_code=status.HTTP_201_CREATED)
def create_order(body: dict = Body(None), principal: Principal = Depends(get_principal), db: Session = Depends(get_db)):
    try:
        payload = validate_payload(OrderCreate, body)
        return order_service.create_order(db, principal, payload)
    except AppError:
        raise
    except Exception as e:
        logger.error(f"Error creating order: {e}")
        raise Internal("Error creating order")


@router.patch("/agent/{order_id}", response_model=OrderOut)
def set_order_agent(
    order_id: int,
    body: dict = Body(None),
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    try:
        payload = validate_payload(AgentAssignment, body)
        return order_service.assign_agent(db, principal, order_id, payload)
    except AppError:
        raise
    except Exception as e:
        logger.error(f"Error setting agent of order {order_id}: {e}")
        raise Internal("Error updating order")


@router.patch("/status/{order_id}", response_model=OrderOut)
def set_order_status(
    order_id: int,
    body: dict = Body(None),
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    try:
        payload = validate_payload(StatusChange, body)
        return order_service.change_status(db, principal, order_id, payload)
    except AppError:
        raise
    except Exception as e:
        logger.error(f"Error setting status of order {order_id}: {e}")
        raise Internal("Error updating order")


@router.patch("/{order_id}", response_model=OrderOut)
def update_order(
    order_id: int,
    body: dict = Body(None),
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    try:
        return order_service.update_order(db, principal, order_id, body)
    except AppError:
        raise
    except Exception as e:
        logger.error(f"Error updating order {order_id}: {e}")
        raise Internal("Error updating order")


@router.delete("/{order_id}", response_model=OrderOut)
def delete_order(order_id: int, principal: Principal = Depends(get_principal), db: Session = Depends(get_db)):
    try:
        return order_service.delete_order(db, principal, order_id)
    except AppError:
        raise
    except Exception as e:
        logger.error(f"Error deleting order {order_id}: {e}")
        raise Internal("Error deleting order")
