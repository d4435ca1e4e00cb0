import logging
from typing import Optional

from sqlalchemy.orm import Session

from app.db import crud
from app.errors import Conflict, NotFound, ValidationError
from app.models.order import Order
from app.models.user import User
from app.schemas.common import validate_payload
from app.schemas.order import (
    AgentAssignment,
    Flight,
    OrderCreate,
    OrderOut,
    OrderUpdateByAgent,
    OrderUpdateByUser,
    StatusChange,
)
from app.services import order_lifecycle as lifecycle
from app.services.auth_service import Principal

logger = logging.getLogger(__name__)


def snapshot(user: User) -> dict:
    """Copy of the identity fields an order keeps for its customer or agent."""
    return {
        "number": user.id,
        "name": user.full_name,
        "email": user.email,
        "phone": user.phone,
    }


def _dump(model) -> dict:
    return model.model_dump(mode="json", by_alias=True, exclude_none=True)


def _merge_flight(current: Optional[dict], patch, field: str) -> dict:
    merged = {**(current or {}), **_dump(patch)}
    if current is None:
        # a return flight added by a patch must be complete
        merged = _dump(validate_payload(Flight, merged))
    elif not all(merged.get(key) for key in ("flightFrom", "flightTo", "flightDate")):
        raise ValidationError(f'"{field}" flightFrom, flightTo and flightDate are required')
    return merged


def _get_order_or_404(db: Session, order_id: int) -> Order:
    order = crud.get_order(db, order_id)
    if not order:
        raise NotFound("Order not found")
    return order


def create_order(db: Session, principal: Principal, payload: OrderCreate) -> Order:
    customer = crud.get_user(db, principal.id)
    if not customer:
        raise NotFound("User not found")

    flight = _dump(payload.flight)
    if crud.find_duplicate_order(db, customer.id, flight):
        raise Conflict("Order already exists")

    data = {
        "customer_id": customer.id,
        "customer": snapshot(customer),
        "flight": flight,
        "return_flight": _dump(payload.return_flight) if payload.return_flight else None,
        "order_status": lifecycle.INITIAL_STATUS.value,
        "price": 0,
        "passengers": [_dump(p) for p in payload.passengers],
        "notes": payload.notes,
    }
    if payload.order_date:
        data["order_date"] = payload.order_date
    order = crud.create_order(db, data)
    logger.info(f"Order {order.id} created by user {customer.id}")
    return order


def get_order(db: Session, principal: Principal, order_id: int) -> Order:
    order = _get_order_or_404(db, order_id)
    lifecycle.ensure_can_read(principal, order)
    return order


def list_my_orders(db: Session, principal: Principal) -> list[Order]:
    return crud.list_orders_for_user(db, principal.id)


def list_all_orders(db: Session, principal: Principal, status: Optional[str] = None) -> list[Order]:
    lifecycle.ensure_can_list_all(principal)
    if status:
        try:
            status = lifecycle.OrderStatus(status).value
        except ValueError:
            raise ValidationError(f"Unknown order status: {status}")
    return crud.list_orders(db, status)


def update_order(db: Session, principal: Principal, order_id: int, body) -> Order:
    """Owners patch their own waiting orders; agents and admins patch any field."""
    if principal.is_staff:
        payload = validate_payload(OrderUpdateByAgent, body)
    else:
        payload = validate_payload(OrderUpdateByUser, body)
    order = _get_order_or_404(db, order_id)

    changes = {}
    if principal.is_staff:
        lifecycle.ensure_staff_can_update(principal, order, payload.order_status)
        if payload.order_status is not None:
            changes["order_status"] = payload.order_status.value
        if payload.price is not None:
            changes["price"] = payload.price
        if payload.order_date is not None:
            changes["order_date"] = payload.order_date
    else:
        lifecycle.ensure_owner_can_update(principal, order)

    if payload.flight is not None:
        changes["flight"] = _merge_flight(order.flight, payload.flight, "flight")
    if payload.return_flight is not None:
        changes["return_flight"] = _merge_flight(order.return_flight, payload.return_flight, "returnFlight")
    if payload.passengers is not None:
        changes["passengers"] = [_dump(p) for p in payload.passengers]
    if payload.notes is not None:
        changes["notes"] = payload.notes

    if not changes:
        return order
    order = crud.update_order(db, order, changes)
    logger.info(f"Order {order.id} updated by {principal.role.value} {principal.id}")
    return order


def assign_agent(db: Session, principal: Principal, order_id: int, payload: AgentAssignment) -> Order:
    order = _get_order_or_404(db, order_id)
    lifecycle.ensure_can_assign_agent(principal, order)

    agent_snapshot = None
    if payload.agent is not None:
        agent = crud.get_user(db, payload.agent)
        if not agent:
            raise NotFound("Agent not found")
        if not agent.is_agent:
            raise ValidationError("User is not an agent")
        agent_snapshot = snapshot(agent)

    status = lifecycle.assignment_status(agent_snapshot)
    order = crud.update_order(db, order, {
        "agent": agent_snapshot,
        "agent_id": agent_snapshot["number"] if agent_snapshot else None,
        "order_status": status.value,
    })
    logger.info(f"Order {order.id} agent set to {payload.agent}, status {status.value}")
    return order


def change_status(db: Session, principal: Principal, order_id: int, payload: StatusChange) -> Order:
    order = _get_order_or_404(db, order_id)
    lifecycle.ensure_can_change_status(principal, order, payload.order_status)
    if lifecycle.current_status(order) == payload.order_status:
        return order
    order = crud.update_order(db, order, {"order_status": payload.order_status.value})
    logger.info(f"Order {order.id} moved to {payload.order_status.value} by {principal.id}")
    return order


def delete_order(db: Session, principal: Principal, order_id: int) -> OrderOut:
    lifecycle.ensure_can_delete(principal)
    order = _get_order_or_404(db, order_id)
    deleted = OrderOut.model_validate(order)
    crud.delete_order(db, order)
    logger.info(f"Order {order_id} deleted by {principal.id}")
    return deleted
