"""
Credentials and the authorization guard: password hashing, token issue/verify,
and the `get_principal` dependency every protected route depends on.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import FrozenSet, Optional

from fastapi import Header
from jose import JWTError, jwt
from passlib.context import CryptContext

from app.config import settings
from app.errors import InvalidToken, Unauthenticated

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

TOKEN_HEADER = "x-auth-token"


class Role(str, Enum):
    CUSTOMER = "customer"
    AGENT = "agent"
    ADMIN = "admin"


# highest first
ROLE_PRECEDENCE = (Role.ADMIN, Role.AGENT, Role.CUSTOMER)


@dataclass(frozen=True)
class Principal:
    id: int
    is_agent: bool = False
    is_admin: bool = False

    @property
    def roles(self) -> FrozenSet[Role]:
        roles = {Role.CUSTOMER}
        if self.is_agent:
            roles.add(Role.AGENT)
        if self.is_admin:
            roles.add(Role.ADMIN)
        return frozenset(roles)

    @property
    def role(self) -> Role:
        held = self.roles
        return next(r for r in ROLE_PRECEDENCE if r in held)

    @property
    def is_staff(self) -> bool:
        return self.is_agent or self.is_admin


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(user_id: int, is_agent: bool, is_admin: bool,
                        expires_delta: Optional[timedelta] = None) -> str:
    claims = {"_id": str(user_id), "isAgent": bool(is_agent), "isAdmin": bool(is_admin)}
    if expires_delta is None and settings.ACCESS_TOKEN_EXPIRE_MINUTES > 0:
        expires_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    if expires_delta is not None:
        claims["exp"] = datetime.now(timezone.utc) + expires_delta
    return jwt.encode(claims, settings.JWT_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: Optional[str]) -> Principal:
    if not token:
        raise Unauthenticated()
    try:
        payload = jwt.decode(token, settings.JWT_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError as e:
        logger.info(f"Token rejected: {e}")
        raise InvalidToken(str(e) or None)
    try:
        return Principal(
            id=int(payload["_id"]),
            is_agent=bool(payload.get("isAgent", False)),
            is_admin=bool(payload.get("isAdmin", False)),
        )
    except (KeyError, TypeError, ValueError):
        raise InvalidToken("Invalid token payload")


def get_principal(x_auth_token: Optional[str] = Header(None, alias=TOKEN_HEADER)) -> Principal:
    return decode_token(x_auth_token)
