from datetime import date, datetime
from enum import Enum
from typing import Annotated, List, Optional

from pydantic import AliasChoices, BeforeValidator, Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from app.schemas.common import RequestModel, ResponseModel
from app.services.order_lifecycle import OrderStatus

PASSENGERS_ALIASES = AliasChoices("passengers", "Passengers")

_datetime_adapter = TypeAdapter(datetime)


def _date_part(value):
    """Full timestamps are accepted for calendar dates; only the date is kept."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, str) and len(value.strip()) > 10:
        try:
            return _datetime_adapter.validate_python(value.strip()).date()
        except PydanticValidationError:
            return value
    return value


CalendarDate = Annotated[date, BeforeValidator(_date_part)]


class Gender(str, Enum):
    MALE = "Male"
    FEMALE = "Female"
    OTHER = "Other"
    UNDISCLOSED = "Prefer not to say"


class Flight(RequestModel):
    flight_from: str = Field(min_length=1)
    flight_to: str = Field(min_length=1)
    flight_date: CalendarDate
    flight_time: str = ""
    flight_number: str = ""


class FlightPatch(RequestModel):
    flight_from: Optional[str] = Field(None, min_length=1)
    flight_to: Optional[str] = Field(None, min_length=1)
    flight_date: Optional[CalendarDate] = None
    flight_time: Optional[str] = None
    flight_number: Optional[str] = None


class CustomerFlightPatch(RequestModel):
    flight_from: Optional[str] = Field(None, min_length=1)
    flight_to: Optional[str] = Field(None, min_length=1)
    flight_date: Optional[CalendarDate] = None


class Passenger(RequestModel):
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    passport_number: str = Field(min_length=1)
    nationality: str = Field(min_length=1)
    date_of_birth: CalendarDate
    gender: Gender
    passport_date: Optional[CalendarDate] = None


class OrderCreate(RequestModel):
    order_date: Optional[datetime] = None
    flight: Flight
    return_flight: Optional[Flight] = None
    # accepted but ignored: new orders always start waiting for an agent
    order_status: Optional[OrderStatus] = None
    passengers: List[Passenger] = Field(min_length=1, validation_alias=PASSENGERS_ALIASES)
    notes: str = ""


class OrderUpdateByUser(RequestModel):
    flight: Optional[CustomerFlightPatch] = None
    return_flight: Optional[CustomerFlightPatch] = None
    passengers: Optional[List[Passenger]] = Field(None, min_length=1, validation_alias=PASSENGERS_ALIASES)
    notes: Optional[str] = None


class OrderUpdateByAgent(RequestModel):
    order_date: Optional[datetime] = None
    flight: Optional[FlightPatch] = None
    return_flight: Optional[FlightPatch] = None
    order_status: Optional[OrderStatus] = None
    price: Optional[float] = Field(None, ge=0)
    passengers: Optional[List[Passenger]] = Field(None, min_length=1, validation_alias=PASSENGERS_ALIASES)
    notes: Optional[str] = None


class AgentAssignment(RequestModel):
    agent: Optional[int] = None


class StatusChange(RequestModel):
    order_status: OrderStatus


class SnapshotOut(ResponseModel):
    number: int
    name: str
    email: str
    phone: str


class FlightOut(ResponseModel):
    flight_from: str
    flight_to: str
    flight_date: date
    flight_time: str = ""
    flight_number: str = ""


class PassengerOut(ResponseModel):
    first_name: str
    last_name: str
    passport_number: str
    nationality: str
    date_of_birth: date
    gender: Gender
    passport_date: Optional[date] = None


class OrderOut(ResponseModel):
    id: int
    customer: SnapshotOut
    agent: Optional[SnapshotOut] = None
    order_date: datetime
    flight: FlightOut
    return_flight: Optional[FlightOut] = None
    order_status: OrderStatus
    price: float
    passengers: List[PassengerOut]
    notes: str = ""
    version: int
