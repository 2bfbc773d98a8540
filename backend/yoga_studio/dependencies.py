# backend/yoga_studio/dependencies.py
from fastapi import Depends, HTTPException

from .config import settings
from .db import SessionLocal
from .errors import CatalogNotLoadedError
from .services.booking import BookingCoordinator
from .services.cart import CartRegistry
from .services.catalog import CatalogState
from .services.reconciler import IndexedModel
from .services.store import PreferenceStore, RecordStore

# process-wide collaborators, built once
record_store = RecordStore(SessionLocal)
preference_store = PreferenceStore(SessionLocal)
catalog_state = CatalogState(record_store, tz_name=settings.STUDIO_TIMEZONE)
cart_registry = CartRegistry()
booking_coordinator = BookingCoordinator(record_store, preference_store, settings.EMAIL_STORAGE_KEY)


def get_catalog_state() -> CatalogState:
    return catalog_state


def get_record_store() -> RecordStore:
    return record_store


def get_cart_registry() -> CartRegistry:
    return cart_registry


def get_booking_coordinator() -> BookingCoordinator:
    return booking_coordinator


def get_snapshot(catalog: CatalogState = Depends(get_catalog_state)) -> IndexedModel:
    """The snapshot a request works against, fixed for the whole request."""
    try:
        return catalog.require()
    except CatalogNotLoadedError as e:
        raise HTTPException(status_code=503, detail=f"Catalog not loaded: {e}")
