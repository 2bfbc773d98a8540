# backend/yoga_studio/services/booking.py
import logging
import re
from datetime import datetime
from typing import Any, Dict, List, Optional

from ..errors import BookingValidationError
from ..schemas import BookingConfirmation, BookingRecord, EnrichedBooking
from .cart import SelectionSet
from .catalog import resolve_selection, summarize
from .reconciler import IndexedModel

logger = logging.getLogger(__name__)

# local-part @ domain-with-dot, no whitespace anywhere
EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def validate_email(text: Optional[str]) -> bool:
    return isinstance(text, str) and EMAIL_RE.match(text) is not None


def _as_instance_id(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.isdigit():
        return int(value)
    return None


def _timestamp_sort_key(booking: EnrichedBooking):
    # missing timestamps sort as the oldest
    ts = booking.booking_timestamp
    return (ts is not None, ts or datetime.min)


class BookingCoordinator:
    """
    Submits the cart as a booking and reads bookings back against the current catalog.

    store: submit_booking(email, instance_ids, idempotency_key=None) -> booking id,
           fetch_bookings_by_email(email) -> raw booking dicts
    preferences: get(key) / set(key, value)
    """

    def __init__(self, store, preferences, email_key: str):
        self.store = store
        self.preferences = preferences
        self.email_key = email_key

    # ---------- submission ----------
    def submit(
        self,
        email: str,
        selection: SelectionSet,
        model: IndexedModel,
        idempotency_key: Optional[str] = None,
    ) -> BookingConfirmation:
        """
        Book every session in the selection.

        Raises BookingValidationError (before any I/O) for a bad email or an empty
        selection. The submitted ids leave the selection only once the store
        acknowledged the write; on StoreError it is left as it was.
        """
        if not validate_email(email):
            raise BookingValidationError("Please enter a valid email address.")

        # point-in-time copy; cart changes after this do not affect the submission
        instance_ids = selection.list()
        if not instance_ids:
            raise BookingValidationError("Your cart is empty.")

        self.preferences.set(self.email_key, email)

        booking_id = self.store.submit_booking(email, instance_ids, idempotency_key=idempotency_key)

        # ids added while the write was in flight were not booked and stay
        if set(selection.list()) <= set(instance_ids):
            selection.clear()
        else:
            for instance_id in instance_ids:
                selection.remove(instance_id)

        summary = summarize(instance_ids, model)
        logger.info("Booked %d class(es) for %s as %s", summary.count, email, booking_id)
        return BookingConfirmation(
            booking=BookingRecord(
                id=booking_id,
                user_email=email,
                booked_instance_ids=instance_ids,
            ),
            class_count=summary.count,
            total_price=summary.total,
        )

    def remembered_email(self) -> Optional[str]:
        return self.preferences.get(self.email_key)

    # ---------- retrieval ----------
    def bookings_for(self, email: str, model: IndexedModel) -> List[EnrichedBooking]:
        """
        Bookings of email, newest first, each re-joined against model.
        Sessions that no longer resolve are dropped, and so are bookings left with none.
        """
        raw_bookings: List[Dict[str, Any]] = self.store.fetch_bookings_by_email(email)

        enriched = []
        for raw in raw_bookings:
            ids = [_as_instance_id(i) for i in (raw.get("bookedInstanceIds") or [])]
            lines = resolve_selection((i for i in ids if i is not None), model)
            if not lines:
                continue
            enriched.append(EnrichedBooking(
                booking_id=raw.get("id"),
                booking_timestamp=raw.get("bookingTimestamp"),
                instances=lines,
            ))

        enriched.sort(key=_timestamp_sort_key, reverse=True)
        logger.debug("%d of %d bookings for %s still resolve", len(enriched), len(raw_bookings), email)
        return enriched
