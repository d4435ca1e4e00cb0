from fastapi import APIRouter, Body, Depends, status
from fastapi.responses import PlainTextResponse
from sqlalchemy.orm import Session
import logging

from app.db.session import get_db
from app.errors import AppError, Internal
from app.schemas.common import validate_payload
from app.schemas.user import UserCreate, UserLogin, UserOut, UserRegistered, UserRoleUpdate, UserUpdate
from app.services import user_service
from app.services.auth_service import Principal, get_principal

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("", response_model=UserRegistered, status_code=status.HTTP_201_CREATED)
def register(body: dict = Body(None), db: Session = Depends(get_db)):
    try:
        payload = validate_payload(UserCreate, body)
        return user_service.register_user(db, payload)
    except AppError:
        raise
    except Exception as e:
        logger.error(f"Error registering user: {e}")
        raise Internal("Internal Server Error")


@router.post("/login", response_class=PlainTextResponse)
def login(body: dict = Body(None), db: Session = Depends(get_db)):
    try:
        payload = validate_payload(UserLogin, body)
        return user_service.login(db, payload)
    except AppError:
        raise
    except Exception as e:
        logger.error(f"Error signing in: {e}")
        raise Internal("Internal Server Error")


@router.get("/{user_id}", response_model=UserOut)
def get_user(user_id: int, principal: Principal = Depends(get_principal), db: Session = Depends(get_db)):
    try:
        return user_service.get_user(db, principal, user_id)
    except AppError:
        raise
    except Exception as e:
        logger.error(f"Error fetching user {user_id}: {e}")
        raise Internal("Error fetching user")


@router.put("/{user_id}", response_model=UserOut)
def update_user(
    user_id: int,
    body: dict = Body(None),
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    try:
        payload = validate_payload(UserUpdate, body)
        return user_service.update_user(db, principal, user_id, payload)
    except AppError:
        raise
    except Exception as e:
        logger.error(f"Error updating user {user_id}: {e}")
        raise Internal("Error updating user")


@router.patch("/{user_id}", response_model=UserOut)
def update_user_roles(
    user_id: int,
    body: dict = Body(None),
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    try:
        payload = validate_payload(UserRoleUpdate, body)
        return user_service.update_roles(db, principal, user_id, payload)
    except AppError:
        raise
    except Exception as e:
        logger.error(f"Error updating roles of user {user_id}: {e}")
        raise Internal("Error updating user")


@router.delete("/{user_id}", response_model=UserOut)
def delete_user(user_id: int, principal: Principal = Depends(get_principal), db: Session = Depends(get_db)):
    try:
        return user_service.delete_user(db, principal, user_id)
    except AppError:
        raise
    except Exception as e:
        logger.error(f"Error deleting user {user_id}: {e}")
        raise Internal("Error deleting user")
