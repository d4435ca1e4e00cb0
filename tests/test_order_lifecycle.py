from types import SimpleNamespace

import pytest

from app.db import crud
from app.errors import Conflict, Forbidden
from app.models.order import Order
from app.schemas.common import validate_payload
from app.schemas.order import OrderCreate
from app.services import order_service
from app.services import order_lifecycle as lifecycle
from app.services.auth_service import Principal
from app.services.order_lifecycle import OrderStatus

CUSTOMER = Principal(id=1)
OTHER = Principal(id=2)
AGENT = Principal(id=3, is_agent=True)
ADMIN = Principal(id=4, is_admin=True)


def order_in(status: OrderStatus, customer_id: int = 1):
    return SimpleNamespace(order_status=status.value, customer_id=customer_id)


def test_status_parses_spaced_spelling():
    assert OrderStatus("Pending Customer Approval") is OrderStatus.PENDING_CUSTOMER_APPROVAL
    with pytest.raises(ValueError):
        OrderStatus("Send To Agent")


def test_terminal_statuses_have_no_outgoing_moves():
    for status in lifecycle.TERMINAL_STATUSES:
        assert not lifecycle.CUSTOMER_TRANSITIONS[status]
        assert not lifecycle.AGENT_TRANSITIONS[status]


@pytest.mark.parametrize("principal,source,target,allowed", [
    (CUSTOMER, OrderStatus.PENDING_CUSTOMER_APPROVAL, OrderStatus.CONFIRMED, True),
    (CUSTOMER, OrderStatus.IN_PROGRESS, OrderStatus.CONFIRMED, False),
    (CUSTOMER, OrderStatus.WAIT_FOR_AGENT, OrderStatus.CANCELLED, True),
    (OTHER, OrderStatus.WAIT_FOR_AGENT, OrderStatus.CANCELLED, False),
    (AGENT, OrderStatus.IN_PROGRESS, OrderStatus.PENDING_CUSTOMER_APPROVAL, True),
    (AGENT, OrderStatus.WAIT_FOR_AGENT, OrderStatus.IN_PROGRESS, False),
    (AGENT, OrderStatus.CONFIRMED, OrderStatus.CANCELLED, False),
    (ADMIN, OrderStatus.CANCELLED, OrderStatus.WAIT_FOR_AGENT, True),
    (CUSTOMER, OrderStatus.CONFIRMED, OrderStatus.CONFIRMED, True),
])
def test_can_transition(principal, source, target, allowed):
    assert lifecycle.can_transition(principal, order_in(source), target) is allowed


def test_read_rules():
    order = order_in(OrderStatus.WAIT_FOR_AGENT)
    lifecycle.ensure_can_read(CUSTOMER, order)
    lifecycle.ensure_can_read(AGENT, order)
    with pytest.raises(Forbidden):
        lifecycle.ensure_can_read(OTHER, order)


def test_owner_update_only_while_waiting():
    lifecycle.ensure_owner_can_update(CUSTOMER, order_in(OrderStatus.WAIT_FOR_AGENT))
    with pytest.raises(Forbidden):
        lifecycle.ensure_owner_can_update(CUSTOMER, order_in(OrderStatus.IN_PROGRESS))
    with pytest.raises(Forbidden):
        lifecycle.ensure_owner_can_update(OTHER, order_in(OrderStatus.WAIT_FOR_AGENT))


def test_staff_update_blocked_on_terminal_except_admin():
    with pytest.raises(Forbidden):
        lifecycle.ensure_staff_can_update(AGENT, order_in(OrderStatus.CONFIRMED), None)
    lifecycle.ensure_staff_can_update(ADMIN, order_in(OrderStatus.CONFIRMED), OrderStatus.IN_PROGRESS)


def test_agent_assignment():
    with pytest.raises(Forbidden):
        lifecycle.ensure_can_assign_agent(AGENT, order_in(OrderStatus.WAIT_FOR_AGENT))
    lifecycle.ensure_can_assign_agent(ADMIN, order_in(OrderStatus.CONFIRMED))
    assert lifecycle.assignment_status({"number": 3}) is OrderStatus.IN_PROGRESS
    assert lifecycle.assignment_status(None) is OrderStatus.WAIT_FOR_AGENT


def test_delete_is_admin_only():
    with pytest.raises(Forbidden):
        lifecycle.ensure_can_delete(AGENT)
    lifecycle.ensure_can_delete(ADMIN)


def test_stale_write_is_rejected(db, make_user):
    customer = make_user()
    order = crud.create_order(db, {
        "customer_id": customer.id,
        "customer": {"number": customer.id, "name": "Dana Levi", "email": customer.email, "phone": customer.phone},
        "flight": {"flightFrom": "SFO", "flightTo": "JFK", "flightDate": "2025-05-01"},
        "order_status": OrderStatus.WAIT_FOR_AGENT.value,
        "passengers": [],
    })
    stale_version = order.version
    crud.update_order(db, order, {"order_status": OrderStatus.IN_PROGRESS.value})
    assert order.version == stale_version + 1

    order.version = stale_version
    with pytest.raises(Conflict):
        crud.update_order(db, order, {"order_status": OrderStatus.CANCELLED.value})


def test_concurrent_duplicate_create_is_rejected(db, make_user, session_factory, monkeypatch):
    customer = make_user()
    principal = Principal(id=customer.id)
    payload = validate_payload(OrderCreate, {
        "flight": {"flightFrom": "SFO", "flightTo": "JFK", "flightDate": "2025-05-01"},
        "passengers": [{
            "firstName": "Dana",
            "lastName": "Levi",
            "passportNumber": "P7654321",
            "nationality": "Israeli",
            "dateOfBirth": "1990-01-01",
            "gender": "Female",
        }],
    })
    lookup = crud.find_duplicate_order
    interleaved = []

    # another request inserts the same order between our lookup and our insert
    def racing_lookup(session, customer_id, flight):
        found = lookup(session, customer_id, flight)
        if not interleaved:
            interleaved.append(True)
            other = session_factory()
            try:
                order_service.create_order(other, principal, payload)
            finally:
                other.close()
        return found

    monkeypatch.setattr(crud, "find_duplicate_order", racing_lookup)
    with pytest.raises(Conflict) as exc:
        order_service.create_order(db, principal, payload)
    assert exc.value.message == "Order already exists"
    assert db.query(Order).filter(Order.customer_id == customer.id).count() == 1
