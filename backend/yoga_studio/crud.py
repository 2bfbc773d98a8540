# backend/yoga_studio/crud.py
import uuid
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from . import models


# ---------- RECORD ARRAYS ----------
def _check_collection(name: str) -> None:
    if name not in models.COLLECTIONS:
        raise ValueError(f"Unknown collection {name!r}, expected one of {', '.join(models.COLLECTIONS)}")


def _collection_array(db: Session, name: str) -> List[Optional[dict]]:
    """Rebuild a record array by position; holes and deleted records come back as None."""
    slots = (
        db.query(models.RecordSlot)
        .filter(models.RecordSlot.collection == name)
        .order_by(models.RecordSlot.position)
        .all()
    )
    if not slots:
        return []
    array: List[Optional[dict]] = [None] * (slots[-1].position + 1)
    for slot in slots:
        array[slot.position] = slot.payload
    return array


def fetch_all(db: Session) -> Dict[str, Any]:
    """
    Read the whole document store in the shape the reconciler expects:
    four sparse arrays plus the bookings keyed by booking id.
    """
    bundle: Dict[str, Any] = {name: _collection_array(db, name) for name in models.COLLECTIONS}
    bundle["bookings"] = {
        b.booking_id: _booking_dict(b)
        for b in db.query(models.Booking).all()
    }
    return bundle


def replace_collection(db: Session, name: str, records: Sequence[Optional[dict]]) -> int:
    """
    Overwrite a whole collection. None entries are stored as holes so the
    positions of the records after them do not move. Returns the number of slots written.
    """
    _check_collection(name)
    existing = {
        slot.position: slot
        for slot in db.query(models.RecordSlot).filter(models.RecordSlot.collection == name).all()
    }
    try:
        for position, record in enumerate(records):
            slot = existing.pop(position, None)
            if slot is None:
                db.add(models.RecordSlot(collection=name, position=position, payload=record))
            else:
                slot.payload = record
        # slots past the end of the new array
        for slot in existing.values():
            db.delete(slot)
        db.commit()
    except Exception:
        db.rollback()
        raise
    return len(records)


def put_record(db: Session, name: str, position: int, record: Optional[dict]) -> models.RecordSlot:
    """Insert or overwrite the record stored at one position; None deletes it and keeps the hole."""
    _check_collection(name)
    if position < 0:
        raise ValueError("position must be >= 0")
    slot = db.get(models.RecordSlot, (name, position))
    if slot is None:
        slot = models.RecordSlot(collection=name, position=position, payload=record)
        db.add(slot)
    else:
        slot.payload = record
    db.commit()
    db.refresh(slot)
    return slot


# ---------- BOOKINGS ----------
def _booking_dict(b: models.Booking) -> Dict[str, Any]:
    return {
        "id": b.booking_id,
        "userEmail": b.user_email,
        "bookedInstanceIds": list(b.booked_instance_ids or []),
        "bookingTimestamp": b.booking_timestamp,
    }


def new_booking_key() -> str:
    return str(uuid.uuid4())


def booking_id_for_key(db: Session, idempotency_key: str) -> Optional[str]:
    booking = (
        db.query(models.Booking)
        .filter(models.Booking.idempotency_key == idempotency_key)
        .first()
    )
    return booking.booking_id if booking else None


def submit_booking(
    db: Session,
    email: str,
    instance_ids: Sequence[int],
    idempotency_key: Optional[str] = None,
) -> str:
    """
    Write one booking and return its id. The id is generated before the write,
    the timestamp comes from the database server.
    A repeated idempotency_key returns the booking already written for it.
    """
    if not email or not instance_ids:
        raise ValueError("Email and class instance IDs are required for booking.")

    if idempotency_key:
        existing_id = booking_id_for_key(db, idempotency_key)
        if existing_id:
            return existing_id

    booking = models.Booking(
        booking_id=new_booking_key(),
        user_email=email,
        booked_instance_ids=list(instance_ids),
        idempotency_key=idempotency_key or None,
    )
    try:
        db.add(booking)
        db.commit()
    except IntegrityError:
        db.rollback()
        # a concurrent submit with the same key won the insert
        existing_id = booking_id_for_key(db, idempotency_key) if idempotency_key else None
        if existing_id is None:
            raise
        return existing_id
    except Exception:
        db.rollback()
        raise
    return booking.booking_id


def fetch_bookings_by_email(db: Session, email: str) -> List[Dict[str, Any]]:
    """Bookings whose email matches exactly (case-sensitive)."""
    if not email:
        return []
    rows = (
        db.query(models.Booking)
        .filter(models.Booking.user_email == email)
        .all()
    )
    return [_booking_dict(b) for b in rows]


# ---------- PREFERENCES ----------
def get_preference(db: Session, key: str) -> Optional[str]:
    pref = db.get(models.Preference, key)
    return pref.value if pref else None


def set_preference(db: Session, key: str, value: str) -> None:
    pref = db.get(models.Preference, key)
    if pref is None:
        db.add(models.Preference(key=key, value=value))
    else:
        pref.value = value
    db.commit()
