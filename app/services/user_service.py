import logging

from sqlalchemy.orm import Session

from app.db import crud
from app.errors import Conflict, Forbidden, NotFound, Unauthenticated
from app.models.user import User
from app.schemas.user import UserCreate, UserLogin, UserOut, UserRoleUpdate, UserUpdate
from app.services.auth_service import Principal, create_access_token, hash_password, verify_password

logger = logging.getLogger(__name__)


def register_user(db: Session, payload: UserCreate) -> User:
    if crud.get_user_by_email(db, payload.email):
        raise Conflict("User already exists")
    if crud.get_user_by_phone(db, payload.phone):
        raise Conflict("Phone number already exists for another user")

    data = {
        "name": payload.name.model_dump(mode="json", exclude_none=True),
        "phone": payload.phone,
        "email": payload.email,
        "password": hash_password(payload.password),
        "address": payload.address.model_dump(mode="json", by_alias=True, exclude_none=True) if payload.address else None,
        "passport": payload.passport.model_dump(mode="json", by_alias=True, exclude_none=True) if payload.passport else None,
        "is_agent": False,
        "is_admin": False,
    }
    user = crud.create_user(db, data)
    logger.info(f"Registered user {user.id}")
    return user


def login(db: Session, payload: UserLogin) -> str:
    user = crud.get_user_by_email(db, payload.email)
    if not user or not verify_password(payload.password, user.password):
        raise Unauthenticated("Invalid email or password")
    return create_access_token(user.id, user.is_agent, user.is_admin)


def _ensure_self_or_staff(principal: Principal, user_id: int) -> None:
    if not principal.is_staff and principal.id != user_id:
        raise Forbidden("You are not a Admin user or this user.")


def get_user(db: Session, principal: Principal, user_id: int) -> User:
    _ensure_self_or_staff(principal, user_id)
    user = crud.get_user(db, user_id)
    if not user:
        raise NotFound("User not found")
    return user


def update_user(db: Session, principal: Principal, user_id: int, payload: UserUpdate) -> User:
    _ensure_self_or_staff(principal, user_id)
    user = crud.get_user(db, user_id)
    if not user:
        raise NotFound("User not found")

    if payload.email and payload.email != user.email:
        existing = crud.get_user_by_email(db, payload.email)
        if existing and existing.id != user.id:
            raise Conflict("Email already exists for another user")
    if payload.phone and payload.phone != user.phone:
        existing = crud.get_user_by_phone(db, payload.phone)
        if existing and existing.id != user.id:
            raise Conflict("Phone number already exists for another user")

    changes = {}
    if payload.name:
        changes["name"] = {**user.name, **payload.name.model_dump(mode="json", exclude_none=True)}
    if payload.phone:
        changes["phone"] = payload.phone
    if payload.email:
        changes["email"] = payload.email
    if payload.password:
        changes["password"] = hash_password(payload.password)
    if payload.address:
        changes["address"] = {**(user.address or {}),
                              **payload.address.model_dump(mode="json", by_alias=True, exclude_none=True)}
    if payload.passport:
        changes["passport"] = {**(user.passport or {}),
                               **payload.passport.model_dump(mode="json", by_alias=True, exclude_none=True)}
    return crud.update_user(db, user, changes)


def update_roles(db: Session, principal: Principal, user_id: int, payload: UserRoleUpdate) -> User:
    if not principal.is_admin:
        raise Forbidden("You are not an Admin user.")
    user = crud.get_user(db, user_id)
    if not user:
        raise NotFound("User not found")
    changes = {}
    if payload.is_agent is not None:
        changes["is_agent"] = payload.is_agent
    if payload.is_admin is not None:
        changes["is_admin"] = payload.is_admin
    user = crud.update_user(db, user, changes)
    logger.info(f"User {user.id} roles set to agent={user.is_agent} admin={user.is_admin} by {principal.id}")
    return user


def delete_user(db: Session, principal: Principal, user_id: int) -> UserOut:
    if not principal.is_admin and principal.id != user_id:
        raise Forbidden("You are not a Admin user or this user.")
    user = crud.get_user(db, user_id)
    if not user:
        raise NotFound("User not found")
    deleted = UserOut.model_validate(user)
    crud.delete_user(db, user)
    logger.info(f"User {user_id} deleted by {principal.id}")
    return deleted
