# backend/yoga_studio/routers/classes.py
from fastapi import APIRouter, Body, Depends, HTTPException, Path, Query
from typing import Any, Dict, List, Optional

from .. import models, schemas
from ..date_utils import parse_iso_date
from ..dependencies import get_catalog_state, get_record_store, get_snapshot
from ..errors import StoreError
from ..services.catalog import CatalogState, filter_classes
from ..services.reconciler import IndexedModel
from ..services.store import RecordStore

router = APIRouter(prefix="/classes", tags=["Classes"])
catalog_router = APIRouter(prefix="/catalog", tags=["Classes"])


# =========================================================
# REFRESH (one reconciliation pass)
# =========================================================
@catalog_router.post("/refresh", response_model=schemas.CatalogRefreshOut)
def refresh_catalog(
    today: Optional[str] = Query(None, description="YYYY-MM-DD, defaults to the studio's current date"),
    catalog: CatalogState = Depends(get_catalog_state),
):
    try:
        day = parse_iso_date(today)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    try:
        model = catalog.refresh(today=day)
    except StoreError as e:
        raise HTTPException(status_code=503, detail=f"Could not load catalog: {e}")

    return schemas.CatalogRefreshOut(
        version=model.version,
        today=model.today,
        classes=len(model.class_list),
        instances=len(model.instance_by_id),
        teachers=len(model.teacher_by_id),
        class_types=len(model.class_type_by_id),
    )


# =========================================================
# IMPORT (replace one record array in the store)
# =========================================================
@catalog_router.put("/collections/{name}")
def replace_collection(
    name: str,
    records: List[Optional[Dict[str, Any]]],
    store: RecordStore = Depends(get_record_store),
):
    if name not in models.COLLECTIONS:
        raise HTTPException(status_code=404, detail=f"Unknown collection {name!r}")
    try:
        written = store.replace_collection(name, records)
    except StoreError as e:
        raise HTTPException(status_code=503, detail=str(e))
    # the catalog is rebuilt only on an explicit refresh
    return {"status": "ok", "collection": name, "slots": written}


@catalog_router.put("/collections/{name}/{position}")
def put_record(
    name: str,
    position: int = Path(..., ge=0),
    record: Optional[Dict[str, Any]] = Body(None),
    store: RecordStore = Depends(get_record_store),
):
    """Upsert the record at one position; a null body empties the slot without shifting the others."""
    if name not in models.COLLECTIONS:
        raise HTTPException(status_code=404, detail=f"Unknown collection {name!r}")
    try:
        store.put_record(name, position, record)
    except StoreError as e:
        raise HTTPException(status_code=503, detail=str(e))
    return {"status": "ok", "collection": name, "position": position}


# =========================================================
# BROWSE
# =========================================================
@router.get("", response_model=List[schemas.ClassDefinition])
@router.get("/", response_model=List[schemas.ClassDefinition])
def list_classes(
    search: Optional[str] = None,
    level: Optional[List[str]] = Query(None),
    day: Optional[List[str]] = Query(None),
    time: Optional[str] = Query(None, pattern=r"^\d{2}:\d{2}$"),
    sort: Optional[str] = None,
    model: IndexedModel = Depends(get_snapshot),
):
    try:
        return filter_classes(model.class_list, search=search, levels=level, days=day, time=time, sort=sort)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/{class_id}", response_model=schemas.ClassDefinition)
def get_class(class_id: int, model: IndexedModel = Depends(get_snapshot)):
    cls = model.class_by_id.get(class_id)
    if not cls:
        raise HTTPException(status_code=404, detail="Class not found")
    return cls
