from sqlalchemy import Column, DateTime, Float, Integer, JSON, String, Text, UniqueConstraint

from app.models.base import Base, utcnow


class Order(Base):
    """
    Booking record. `customer` and `agent` are snapshots of the user taken when
    the order was created / the agent assigned; `customer_id` and `agent_id`
    mirror the snapshot numbers for lookups and are deliberately not foreign keys.
    """
    __tablename__ = "orders"
    __table_args__ = (
        UniqueConstraint("customer_id", "flight_from", "flight_to", "flight_date", name="uq_orders_customer_flight"),
    )

    id = Column(Integer, primary_key=True, index=True)
    customer_id = Column(Integer, nullable=False, index=True)
    customer = Column(JSON, nullable=False)
    agent_id = Column(Integer, nullable=True, index=True)
    agent = Column(JSON, nullable=True)
    order_date = Column(DateTime, default=utcnow, index=True)
    flight = Column(JSON, nullable=False)
    # outbound route key, copied from `flight` on every write
    flight_from = Column(String(255), nullable=False)
    flight_to = Column(String(255), nullable=False)
    flight_date = Column(String(10), nullable=False)
    return_flight = Column(JSON, nullable=True)
    order_status = Column(String(32), nullable=False)
    price = Column(Float, nullable=False, default=0)
    passengers = Column(JSON, nullable=False)
    notes = Column(Text, nullable=False, default="")
    version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow)
