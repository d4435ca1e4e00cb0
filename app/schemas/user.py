from datetime import date, datetime
from typing import Optional

from pydantic import EmailStr, Field, field_validator

from app.data.countries import is_valid_country_code
from app.schemas.common import RequestModel, ResponseModel


def _normalize_email(value):
    if value is None:
        return value
    if not 5 <= len(value) <= 255:
        raise ValueError("Email must be between 5 and 255 characters")
    return value.lower()


class Name(RequestModel):
    first: str = Field(min_length=2, max_length=255)
    middle: Optional[str] = Field(None, min_length=2, max_length=255)
    last: str = Field(min_length=2, max_length=255)


class NameUpdate(RequestModel):
    first: Optional[str] = Field(None, min_length=2, max_length=255)
    middle: Optional[str] = Field(None, min_length=2, max_length=255)
    last: Optional[str] = Field(None, min_length=2, max_length=255)


class Address(RequestModel):
    country: str = Field(min_length=2, max_length=255)
    state: Optional[str] = Field(None, min_length=2, max_length=255)
    city: str = Field(min_length=2, max_length=255)
    street: str = Field(min_length=2, max_length=255)
    house_number: Optional[int] = None
    zip: int


class AddressUpdate(RequestModel):
    country: Optional[str] = Field(None, min_length=2, max_length=255)
    state: Optional[str] = Field(None, min_length=2, max_length=255)
    city: Optional[str] = Field(None, min_length=2, max_length=255)
    street: Optional[str] = Field(None, min_length=2, max_length=255)
    house_number: Optional[int] = None
    zip: Optional[int] = None


class Passport(RequestModel):
    passport_number: Optional[str] = None
    passport_date: Optional[date] = None
    passport_country: Optional[str] = None

    @field_validator("passport_country")
    @classmethod
    def normalize_country(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        if not is_valid_country_code(value):
            raise ValueError("Invalid passport country")
        return value.upper()


class UserCreate(RequestModel):
    name: Name
    phone: str = Field(min_length=9, max_length=12)
    email: EmailStr
    password: str = Field(min_length=6, max_length=1024)
    address: Optional[Address] = None
    # accepted for compatibility, always stored as False
    is_agent: Optional[bool] = None
    is_admin: Optional[bool] = None
    create_at: Optional[datetime] = None
    passport: Optional[Passport] = None

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value):
        return _normalize_email(value)


class UserLogin(RequestModel):
    email: EmailStr
    password: str = Field(min_length=6, max_length=1024)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value):
        return _normalize_email(value)


class UserUpdate(RequestModel):
    name: Optional[NameUpdate] = None
    phone: Optional[str] = Field(None, min_length=9, max_length=12)
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(None, min_length=6, max_length=1024)
    address: Optional[AddressUpdate] = None
    passport: Optional[Passport] = None

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value):
        return _normalize_email(value)


class UserRoleUpdate(RequestModel):
    is_agent: Optional[bool] = None
    is_admin: Optional[bool] = None


class NameOut(ResponseModel):
    first: str
    middle: Optional[str] = None
    last: str


class AddressOut(ResponseModel):
    country: Optional[str] = None
    state: Optional[str] = None
    city: Optional[str] = None
    street: Optional[str] = None
    house_number: Optional[int] = None
    zip: Optional[int] = None


class PassportOut(ResponseModel):
    passport_number: Optional[str] = None
    passport_date: Optional[date] = None
    passport_country: Optional[str] = None


class UserRegistered(ResponseModel):
    id: int
    name: NameOut
    email: str
    phone: str
    address: Optional[AddressOut] = None
    created_at: datetime = Field(serialization_alias="createAt")


class UserOut(UserRegistered):
    passport: Optional[PassportOut] = None
    is_agent: bool
    is_admin: bool
