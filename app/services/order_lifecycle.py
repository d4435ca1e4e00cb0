"""
Order lifecycle: the status set, the per-role transition table and the
authorization rules that decide who may read or change an order.

Everything here is pure; the persistence side lives in order_service.
"""
from enum import Enum
from typing import FrozenSet, Mapping, Optional

from app.errors import Forbidden
from app.services.auth_service import Principal


class OrderStatus(str, Enum):
    WAIT_FOR_AGENT = "WaitForAgent"
    IN_PROGRESS = "InProgress"
    PENDING_CUSTOMER_APPROVAL = "PendingCustomerApproval"
    CONFIRMED = "Confirmed"
    CANCELLED = "Cancelled"

    @classmethod
    def _missing_(cls, value):
        # accept the spaced spellings, e.g. "Wait For Agent"
        if isinstance(value, str):
            compact = value.replace(" ", "").lower()
            for member in cls:
                if member.value.lower() == compact:
                    return member
        return None


INITIAL_STATUS = OrderStatus.WAIT_FOR_AGENT

TERMINAL_STATUSES: FrozenSet[OrderStatus] = frozenset({
    OrderStatus.CONFIRMED,
    OrderStatus.CANCELLED,
})

# Statuses in which the agent of an order may be (re)assigned.
ASSIGNABLE_STATUSES: FrozenSet[OrderStatus] = frozenset({
    OrderStatus.WAIT_FOR_AGENT,
    OrderStatus.IN_PROGRESS,
    OrderStatus.PENDING_CUSTOMER_APPROVAL,
})

# Status changes a customer may make on their own order.
CUSTOMER_TRANSITIONS: Mapping[OrderStatus, FrozenSet[OrderStatus]] = {
    OrderStatus.WAIT_FOR_AGENT: frozenset({OrderStatus.CANCELLED}),
    OrderStatus.IN_PROGRESS: frozenset({OrderStatus.CANCELLED}),
    OrderStatus.PENDING_CUSTOMER_APPROVAL: frozenset({OrderStatus.CONFIRMED, OrderStatus.CANCELLED}),
    OrderStatus.CONFIRMED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}

# Status changes an agent may make. WaitForAgent <-> InProgress is driven by
# agent assignment only.
AGENT_TRANSITIONS: Mapping[OrderStatus, FrozenSet[OrderStatus]] = {
    OrderStatus.WAIT_FOR_AGENT: frozenset({OrderStatus.CANCELLED}),
    OrderStatus.IN_PROGRESS: frozenset({OrderStatus.PENDING_CUSTOMER_APPROVAL, OrderStatus.CANCELLED}),
    OrderStatus.PENDING_CUSTOMER_APPROVAL: frozenset({
        OrderStatus.IN_PROGRESS,
        OrderStatus.CONFIRMED,
        OrderStatus.CANCELLED,
    }),
    OrderStatus.CONFIRMED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}


def current_status(order) -> OrderStatus:
    return OrderStatus(order.order_status)


def is_terminal(status: OrderStatus) -> bool:
    return status in TERMINAL_STATUSES


def is_owner(principal: Principal, order) -> bool:
    return order.customer_id == principal.id


def can_transition(principal: Principal, order, target: OrderStatus) -> bool:
    source = current_status(order)
    if target == source or principal.is_admin:
        return True
    if principal.is_agent and target in AGENT_TRANSITIONS[source]:
        return True
    if is_owner(principal, order) and target in CUSTOMER_TRANSITIONS[source]:
        return True
    return False


def ensure_can_read(principal: Principal, order) -> None:
    if principal.is_staff or is_owner(principal, order):
        return
    raise Forbidden("You are not authorized to view this order")


def ensure_can_list_all(principal: Principal) -> None:
    if not principal.is_staff:
        raise Forbidden("You are not authorized to view orders")


def ensure_owner_can_update(principal: Principal, order) -> None:
    if not is_owner(principal, order):
        raise Forbidden("You are not authorized to update this order")
    if current_status(order) != OrderStatus.WAIT_FOR_AGENT:
        raise Forbidden("Order cannot be updated at this stage")


def ensure_staff_can_update(principal: Principal, order, target: Optional[OrderStatus]) -> None:
    if not principal.is_staff:
        raise Forbidden("You are not authorized to update this order")
    if principal.is_admin:
        return
    if is_terminal(current_status(order)):
        raise Forbidden("Order cannot be updated at this stage")
    if target is not None:
        ensure_transition(principal, order, target)


def ensure_can_change_status(principal: Principal, order, target: OrderStatus) -> None:
    if not (principal.is_staff or is_owner(principal, order)):
        raise Forbidden("You are not authorized to update this order")
    ensure_transition(principal, order, target)


def ensure_transition(principal: Principal, order, target: OrderStatus) -> None:
    if not can_transition(principal, order, target):
        source = current_status(order)
        raise Forbidden(f"Cannot change order status from {source.value} to {target.value}")


def ensure_can_assign_agent(principal: Principal, order) -> None:
    if current_status(order) not in ASSIGNABLE_STATUSES and not principal.is_admin:
        raise Forbidden("Cannot set agent at this stage")
    if not principal.is_admin:
        raise Forbidden("Only an admin can assign agents")


def assignment_status(agent_snapshot: Optional[dict]) -> OrderStatus:
    """Status an order lands in after its agent is set (or cleared)."""
    return OrderStatus.IN_PROGRESS if agent_snapshot else OrderStatus.WAIT_FOR_AGENT


def ensure_can_delete(principal: Principal) -> None:
    if not principal.is_admin:
        raise Forbidden("You are not authorized to delete orders")
