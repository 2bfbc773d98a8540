# backend/yoga_studio/schemas.py
import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Any, List, Optional, Tuple

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    ValidationInfo,
    ValidatorFunctionWrapHandler,
    field_validator,
)
from pydantic_core import PydanticUndefined

logger = logging.getLogger(__name__)

# --------------------------------------------
# Catalog records (built by the reconciler)
# --------------------------------------------
# Raw records use the document store's camelCase keys; attributes are snake_case.
class RecordModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    @field_validator("*", mode="wrap")
    @classmethod
    def default_on_bad_value(cls, value: Any, handler: ValidatorFunctionWrapHandler, info: ValidationInfo):
        """A stored field that cannot be coerced falls back to its default; the record is kept."""
        try:
            return handler(value)
        except ValidationError:
            default = cls.model_fields[info.field_name].get_default(call_default_factory=True)
            if default is PydanticUndefined:
                raise
            logger.warning("Ignoring invalid %s.%s value %r", cls.__name__, info.field_name, value)
            return default


class ClassTypeInfo(RecordModel):
    id: Optional[int] = None
    name: str = ""
    description: Optional[str] = ""


class TeacherInfo(RecordModel):
    id: Optional[int] = None
    name: str = ""
    basic_info: Optional[str] = Field("", alias="basicInfo")


class ClassInstance(RecordModel):
    id: int
    class_id: Optional[int] = Field(None, alias="classId")
    teacher_id: Optional[int] = Field(None, alias="teacherId")
    date: str
    additional_comments: Optional[str] = Field(None, alias="additionalComments")
    teacher: Optional[TeacherInfo] = None


class ClassDefinition(RecordModel):
    id: int
    description: Optional[str] = None
    level: Optional[str] = None
    price: Decimal = Decimal("0")
    duration: Optional[int] = None        # minutes
    room: Optional[str] = None
    time: Optional[str] = None            # "HH:MM"
    days_of_week: Tuple[str, ...] = Field((), alias="daysOfWeek")
    capacity: Optional[int] = None
    class_type_id: Optional[int] = Field(None, alias="classTypeId")

    # filled in by reconciliation
    class_type: Optional[ClassTypeInfo] = Field(None, alias="classType")
    instances: Tuple[ClassInstance, ...] = ()


# --------------------------------------------
# Cart / booking views
# --------------------------------------------
class SessionLine(BaseModel):
    """One bookable session resolved against the current catalog."""
    instance_id: int
    class_id: int
    class_name: Optional[str] = None
    date: str
    time: Optional[str] = None
    teacher_name: str
    price: Decimal


class CartSummary(BaseModel):
    count: int = 0
    total: Decimal = Decimal("0")


class CartOut(BaseModel):
    session_id: str
    instance_ids: List[int]
    items: List[SessionLine] = []
    summary: CartSummary


class CartItemIn(BaseModel):
    instance_id: int


class CartAddOut(BaseModel):
    added: bool
    duplicate: bool
    instance_ids: List[int]


class CheckoutIn(BaseModel):
    email: str
    idempotency_key: Optional[str] = None


class BookingRecord(BaseModel):
    id: str
    user_email: str
    booked_instance_ids: List[int]
    # assigned by the store; read back through the bookings listing
    booking_timestamp: Optional[datetime] = None


class BookingConfirmation(BaseModel):
    booking: BookingRecord
    class_count: int
    total_price: Decimal


class EnrichedBooking(BaseModel):
    booking_id: str
    booking_timestamp: Optional[datetime] = None
    instances: List[SessionLine] = []


class RememberedEmailOut(BaseModel):
    email: Optional[str] = None


class CatalogRefreshOut(BaseModel):
    version: int
    today: date
    classes: int
    instances: int
    teachers: int
    class_types: int
