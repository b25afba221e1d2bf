"""Pydantic models for facility API data."""

from datetime import date
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    """Base for models read from or written to the facility API (camelCase on the wire)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class Branch(WireModel):
    """Facility branch."""

    model_config = ConfigDict(frozen=True)

    id: int
    name: str


class ShiftDefinition(WireModel):
    """Shift (schedule) with its nominal fee."""

    model_config = ConfigDict(frozen=True)

    id: int
    title: str = ""
    fee: float = 0.0

    @field_validator("fee", mode="before")
    @classmethod
    def missing_fee_is_zero(cls, v: Any) -> Any:
        """Schedules without a fee are priced at 0."""
        return 0.0 if v is None else v


class Seat(WireModel):
    """Seat snapshot for one branch."""

    model_config = ConfigDict(frozen=True)

    id: int
    seat_number: str = ""
    occupant_student_id: Optional[int] = Field(default=None, alias="studentId")

    @field_validator("seat_number", mode="before")
    @classmethod
    def null_number_is_blank(cls, v: Any) -> Any:
        return "" if v is None else v


class Locker(WireModel):
    """Locker snapshot for one branch."""

    model_config = ConfigDict(frozen=True)

    id: int
    locker_number: str = ""
    is_assigned: bool = False
    occupant_student_id: Optional[int] = Field(default=None, alias="studentId")

    @field_validator("locker_number", mode="before")
    @classmethod
    def null_number_is_blank(cls, v: Any) -> Any:
        return "" if v is None else v


class Assignment(WireModel):
    """A student's current occupancy of one seat across one shift."""

    model_config = ConfigDict(frozen=True)

    seat_id: int
    shift_id: int
    seat_number: str = ""
    shift_title: str = ""

    @field_validator("seat_number", "shift_title", mode="before")
    @classmethod
    def null_label_is_blank(cls, v: Any) -> Any:
        return "" if v is None else v


class Student(WireModel):
    """Student record as returned by the expired list and the detail endpoint."""

    id: int
    name: str
    registration_number: Optional[str] = None
    father_name: Optional[str] = None
    aadhar_number: Optional[str] = None
    email: str = ""
    phone: str = ""
    address: Optional[str] = None
    branch_id: Optional[int] = None
    branch_name: Optional[str] = None
    status: Optional[str] = None
    membership_start: Optional[str] = None
    membership_end: Optional[str] = None
    total_fee: Optional[float] = None
    locker_fee: Optional[float] = None
    amount_paid: Optional[float] = None
    due_amount: Optional[float] = None
    cash: Optional[float] = None
    online: Optional[float] = None
    security_money: Optional[float] = None
    discount: Optional[float] = None
    remark: Optional[str] = None
    locker_id: Optional[int] = None
    locker_number: Optional[str] = None
    assignments: List[Assignment] = Field(default_factory=list)

    @field_validator("name", "email", "phone", mode="before")
    @classmethod
    def null_contact_is_blank(cls, v: Any) -> Any:
        """The server sends null for contact fields it never collected."""
        return "" if v is None else v

    @field_validator("assignments", mode="before")
    @classmethod
    def null_assignments_are_empty(cls, v: Any) -> Any:
        return [] if v is None else v


class RenewalPayload(WireModel):
    """Complete snapshot sent to the renew endpoint."""

    model_config = ConfigDict(frozen=True)

    name: str
    registration_number: str = ""
    father_name: str = ""
    aadhar_number: str = ""
    address: str
    membership_start: date
    membership_end: date
    email: str = ""
    phone: str
    branch_id: int
    shift_ids: List[int] = Field(min_length=1)
    seat_id: Optional[int] = None
    locker_id: Optional[int] = None
    locker_fee: float = 0.0
    discount: Optional[float] = None
    total_fee: float
    cash: float = 0.0
    online: float = 0.0
    security_money: float = 0.0
    remark: Optional[str] = None

    def to_wire(self) -> Dict[str, Any]:
        """Serialize with camelCase keys, ISO dates, and absent optionals omitted."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
