# backend/yoga_studio/services/store.py
"""
Collaborator adapters used by the catalog and booking services.

Each call opens its own session so callers never share one across threads.
Database failures surface as StoreError; nothing here retries.
"""
import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from .. import crud
from ..errors import StoreError

logger = logging.getLogger(__name__)


@contextmanager
def _session(session_factory: sessionmaker, action: str) -> Iterator[Session]:
    db = session_factory()
    try:
        yield db
    except (SQLAlchemyError, ValueError) as e:
        logger.error("Record store %s failed: %s", action, e)
        raise StoreError(f"{action} failed: {e}") from e
    finally:
        db.close()


class RecordStore:
    """Document store holding the four record arrays and the bookings."""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def fetch_all(self) -> Dict[str, Any]:
        with _session(self.session_factory, "fetch_all") as db:
            return crud.fetch_all(db)

    def submit_booking(self, email: str, instance_ids: Sequence[int],
                       idempotency_key: Optional[str] = None) -> str:
        with _session(self.session_factory, "submit_booking") as db:
            booking_id = crud.submit_booking(db, email, instance_ids, idempotency_key=idempotency_key)
        logger.info(
            "Booking %s stored for %s (%d sessions)", booking_id, email, len(instance_ids),
            extra={"booking_id": booking_id, "session_count": len(instance_ids)},
        )
        return booking_id

    def fetch_bookings_by_email(self, email: str) -> List[Dict[str, Any]]:
        with _session(self.session_factory, "fetch_bookings_by_email") as db:
            return crud.fetch_bookings_by_email(db, email)

    def replace_collection(self, name: str, records: Sequence[Optional[dict]]) -> int:
        with _session(self.session_factory, "replace_collection") as db:
            return crud.replace_collection(db, name, records)

    def put_record(self, name: str, position: int, record: Optional[dict]) -> None:
        with _session(self.session_factory, "put_record") as db:
            crud.put_record(db, name, position, record)


class PreferenceStore:
    """Small key-value store; used to remember the last booking email."""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def get(self, key: str) -> Optional[str]:
        with _session(self.session_factory, "get_preference") as db:
            return crud.get_preference(db, key)

    def set(self, key: str, value: str) -> None:
        with _session(self.session_factory, "set_preference") as db:
            crud.set_preference(db, key, value)
