from sqlalchemy import Boolean, Column, DateTime, Integer, JSON, String

from app.models.base import Base, utcnow


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(JSON, nullable=False)  # {"first", "middle", "last"}
    phone = Column(String(12), nullable=False, unique=True, index=True)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password = Column(String(1024), nullable=False)
    address = Column(JSON, nullable=True)
    passport = Column(JSON, nullable=True)
    is_agent = Column(Boolean, nullable=False, default=False)
    is_admin = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=utcnow)

    @property
    def full_name(self) -> str:
        return f"{self.name.get('first', '')} {self.name.get('last', '')}".strip()
