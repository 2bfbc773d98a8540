# backend/yoga_studio/services/catalog.py
import dataclasses
import logging
import threading
from datetime import date
from decimal import Decimal
from typing import Iterable, List, Optional, Sequence

from ..date_utils import studio_today
from ..errors import CatalogNotLoadedError, StoreError
from ..schemas import CartSummary, ClassDefinition, SessionLine
from .reconciler import UNKNOWN_TEACHER, IndexedModel, reconcile

logger = logging.getLogger(__name__)

SORT_PRICE_ASC = "price_asc"
SORT_PRICE_DESC = "price_desc"
SORT_OPTIONS = (SORT_PRICE_ASC, SORT_PRICE_DESC)


# ---------------------------------------------------------
# Snapshot owner
# ---------------------------------------------------------
class CatalogState:
    """
    Owns the current catalog snapshot.

    refresh() builds a complete new IndexedModel and swaps it in one assignment;
    readers keep whatever snapshot they grabbed, so a rebuild never changes data
    underneath them. A failed refresh keeps the previous snapshot.
    """

    def __init__(self, store, tz_name: Optional[str] = None):
        self.store = store
        self.tz_name = tz_name
        self._snapshot: Optional[IndexedModel] = None
        self._version = 0
        self._lock = threading.Lock()
        self.last_error: Optional[str] = None

    @property
    def snapshot(self) -> Optional[IndexedModel]:
        return self._snapshot

    def require(self) -> IndexedModel:
        snapshot = self._snapshot
        if snapshot is None:
            raise CatalogNotLoadedError(self.last_error or "Catalog has not been loaded yet")
        return snapshot

    def refresh(self, today: Optional[date] = None) -> IndexedModel:
        """One reconciliation pass. Raises StoreError if the fetch fails."""
        today = today or studio_today(self.tz_name)
        try:
            raw = self.store.fetch_all()
        except StoreError as e:
            self.last_error = str(e)
            logger.warning("Catalog refresh failed, keeping version %d: %s", self._version, e)
            raise

        model = reconcile(raw, today)

        with self._lock:
            self._version += 1
            model = dataclasses.replace(model, version=self._version)
            self._snapshot = model
            self.last_error = None

        logger.info(
            "Published catalog version %d for %s", model.version, today.isoformat(),
            extra={"catalog_version": model.version, "instance_count": len(model.instance_by_id)},
        )
        return model


# ---------------------------------------------------------
# Class list filtering
# ---------------------------------------------------------
def filter_classes(
    classes: Iterable[ClassDefinition],
    search: Optional[str] = None,
    levels: Optional[Sequence[str]] = None,
    days: Optional[Sequence[str]] = None,
    time: Optional[str] = None,
    sort: Optional[str] = None,
) -> List[ClassDefinition]:
    """
    Filter the class list the way the browse screen does:
    description substring (case-insensitive), level in levels,
    runs on at least one of days, exact "HH:MM" start time.
    sort is None (keep order), "price_asc" or "price_desc".
    """
    if sort and sort not in SORT_OPTIONS:
        raise ValueError(f"Unknown sort {sort!r}, expected one of {', '.join(SORT_OPTIONS)}")

    result = list(classes)

    if search and search.strip():
        needle = search.strip().lower()
        result = [c for c in result if needle in (c.description or "").lower()]

    if levels:
        result = [c for c in result if c.level in levels]

    if days:
        result = [c for c in result if any(d in days for d in c.days_of_week)]

    if time:
        result = [c for c in result if c.time == time]

    if sort == SORT_PRICE_ASC:
        result.sort(key=lambda c: c.price)
    elif sort == SORT_PRICE_DESC:
        result.sort(key=lambda c: c.price, reverse=True)

    return result


# ---------------------------------------------------------
# Read-boundary resolution
# ---------------------------------------------------------
def resolve_instance(instance_id, model: IndexedModel) -> Optional[SessionLine]:
    """Resolve one instance id against a snapshot; None if it no longer resolves."""
    instance = model.instance_by_id.get(instance_id)
    if instance is None:
        return None
    parent = model.class_by_id.get(instance.class_id)
    if parent is None:
        return None
    teacher = instance.teacher or UNKNOWN_TEACHER
    return SessionLine(
        instance_id=instance.id,
        class_id=parent.id,
        class_name=parent.description,
        date=instance.date,
        time=parent.time,
        teacher_name=teacher.name,
        price=parent.price,
    )


def resolve_selection(instance_ids: Iterable, model: IndexedModel) -> List[SessionLine]:
    """Resolvable sessions in selection order; ids that aged out or never existed are skipped."""
    lines = []
    for instance_id in instance_ids:
        line = resolve_instance(instance_id, model)
        if line is None:
            logger.debug("Skipping unresolvable instance %r (catalog version %d)", instance_id, model.version)
            continue
        lines.append(line)
    return lines


def summarize(instance_ids: Iterable, model: IndexedModel) -> CartSummary:
    lines = resolve_selection(instance_ids, model)
    return CartSummary(count=len(lines), total=sum((l.price for l in lines), Decimal("0")))
