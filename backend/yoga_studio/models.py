# backend/yoga_studio/models.py
from sqlalchemy import Column, Integer, String, DateTime, JSON, PrimaryKeyConstraint, func
from .db import Base

# Collection names as the booking app reads them from the document store
COLLECTIONS = ("classes", "classInstances", "classTypes", "teachers")


class RecordSlot(Base):
    """One slot of a record array. A NULL payload is a hole left by a deleted record."""
    __tablename__ = "record_slots"

    collection = Column("collection", String(32), nullable=False)
    # store-assigned key of the record; never renumbered
    position = Column("position", Integer, nullable=False)
    payload = Column("payload", JSON, nullable=True)

    __table_args__ = (
        PrimaryKeyConstraint("collection", "position", name="pk_record_slot"),
    )


class Booking(Base):
    __tablename__ = "bookings"

    booking_id = Column("booking_id", String(64), primary_key=True)
    user_email = Column("user_email", String, nullable=False, index=True)
    booked_instance_ids = Column("booked_instance_ids", JSON, nullable=False)
    booking_timestamp = Column("booking_timestamp", DateTime, server_default=func.now())
    idempotency_key = Column("idempotency_key", String(128), nullable=True, unique=True)


class Preference(Base):
    __tablename__ = "preferences"

    key = Column("key", String(128), primary_key=True)
    value = Column("value", String, nullable=True)
