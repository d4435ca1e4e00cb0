from typing import Optional

from sqlalchemy import or_, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.errors import Conflict
from app.models.base import utcnow
from app.models.order import Order
from app.models.user import User


# Users

def get_user(db: Session, user_id: int) -> Optional[User]:
    return db.get(User, user_id)

def get_user_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(User.email == email.lower()).first()

def get_user_by_phone(db: Session, phone: str) -> Optional[User]:
    return db.query(User).filter(User.phone == phone).first()

def create_user(db: Session, data: dict) -> User:
    user = User(**data)
    db.add(user)
    _commit_unique(db, "User already exists")
    db.refresh(user)
    return user

def update_user(db: Session, user: User, changes: dict) -> User:
    for key, value in changes.items():
        setattr(user, key, value)
    _commit_unique(db, "Email or phone already exists for another user")
    db.refresh(user)
    return user

def delete_user(db: Session, user: User) -> None:
    db.delete(user)
    db.commit()


# Orders

def get_order(db: Session, order_id: int) -> Optional[Order]:
    return db.get(Order, order_id)

def flight_key(flight: dict) -> dict:
    """Route columns backing the one-order-per-customer-and-flight constraint."""
    return {
        "flight_from": flight.get("flightFrom"),
        "flight_to": flight.get("flightTo"),
        "flight_date": flight.get("flightDate"),
    }

def find_duplicate_order(db: Session, customer_id: int, flight: dict) -> Optional[Order]:
    """An order of the same customer for the same origin, destination and date."""
    key = flight_key(flight)
    return (
        db.query(Order)
        .filter(
            Order.customer_id == customer_id,
            Order.flight_from == key["flight_from"],
            Order.flight_to == key["flight_to"],
            Order.flight_date == key["flight_date"],
        )
        .first()
    )

def list_orders_for_user(db: Session, user_id: int) -> list[Order]:
    return (
        db.query(Order)
        .filter(or_(Order.customer_id == user_id, Order.agent_id == user_id))
        .order_by(Order.order_date.desc(), Order.id.desc())
        .all()
    )

def list_orders(db: Session, status: Optional[str] = None) -> list[Order]:
    query = db.query(Order)
    if status:
        query = query.filter(Order.order_status == status)
    return query.order_by(Order.order_date.desc(), Order.id.desc()).all()

def create_order(db: Session, data: dict) -> Order:
    order = Order(**data, **flight_key(data["flight"]))
    db.add(order)
    _commit_unique(db, "Order already exists")
    db.refresh(order)
    return order

def update_order(db: Session, order: Order, changes: dict) -> Order:
    """
    Compare-and-swap write: applies `changes` only if the row still carries the
    version that was read. A concurrent writer makes this raise Conflict.
    """
    expected = order.version
    if "flight" in changes:
        changes = {**changes, **flight_key(changes["flight"])}
    try:
        result = db.execute(
            update(Order)
            .where(Order.id == order.id, Order.version == expected)
            .values(**changes, version=expected + 1, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
    except IntegrityError:
        db.rollback()
        raise Conflict("Order already exists")
    if result.rowcount != 1:
        db.rollback()
        raise Conflict("Order was modified by another request")
    db.commit()
    db.refresh(order)
    return order

def delete_order(db: Session, order: Order) -> None:
    db.delete(order)
    db.commit()


def _commit_unique(db: Session, message: str) -> None:
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise Conflict(message)
