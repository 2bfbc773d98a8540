# backend/yoga_studio/routers/bookings.py
from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import StreamingResponse
from typing import List, Optional
import io
import openpyxl
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter

from .. import schemas
from ..dependencies import get_booking_coordinator, get_snapshot
from ..errors import StoreError
from ..services.booking import BookingCoordinator
from ..services.reconciler import IndexedModel

router = APIRouter(prefix="/bookings", tags=["Bookings"])

EXPORT_HEADER = ["Booking", "Booked At", "Class", "Date", "Time", "Teacher", "Price"]


def _email_or_remembered(email: Optional[str], coordinator: BookingCoordinator) -> str:
    if email:
        return email
    try:
        remembered = coordinator.remembered_email()
    except StoreError as e:
        raise HTTPException(status_code=503, detail=f"Could not retrieve your email: {e}")
    if not remembered:
        raise HTTPException(status_code=400, detail="No email set. Please book a class to save your email.")
    return remembered


def _load_bookings(email, coordinator, model) -> List[schemas.EnrichedBooking]:
    try:
        return coordinator.bookings_for(email, model)
    except StoreError:
        raise HTTPException(status_code=503, detail="Failed to load your bookings. Please try again.")


@router.get("/email", response_model=schemas.RememberedEmailOut)
def remembered_email(coordinator: BookingCoordinator = Depends(get_booking_coordinator)):
    try:
        return schemas.RememberedEmailOut(email=coordinator.remembered_email())
    except StoreError as e:
        raise HTTPException(status_code=503, detail=f"Could not retrieve your email: {e}")


@router.get("", response_model=List[schemas.EnrichedBooking])
@router.get("/", response_model=List[schemas.EnrichedBooking])
def list_bookings(
    email: Optional[str] = Query(None),
    coordinator: BookingCoordinator = Depends(get_booking_coordinator),
    model: IndexedModel = Depends(get_snapshot),
):
    email = _email_or_remembered(email, coordinator)
    return _load_bookings(email, coordinator, model)


# =========================================================
# EXCEL EXPORT
# =========================================================
@router.get("/export")
def export_bookings(
    email: Optional[str] = Query(None),
    coordinator: BookingCoordinator = Depends(get_booking_coordinator),
    model: IndexedModel = Depends(get_snapshot),
):
    email = _email_or_remembered(email, coordinator)
    bookings = _load_bookings(email, coordinator, model)

    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = "My Bookings"

    ws.append(EXPORT_HEADER)
    for cell in ws[1]:
        cell.font = Font(bold=True)

    for b in bookings:
        first_row_for_booking = True
        booked_at = b.booking_timestamp.strftime("%Y-%m-%d %H:%M") if b.booking_timestamp else ""

        for line in b.instances:
            ws.append([
                b.booking_id if first_row_for_booking else "",
                booked_at if first_row_for_booking else "",
                line.class_name or "",
                line.date,
                line.time or "",
                line.teacher_name,
                float(line.price),
            ])
            first_row_for_booking = False

    for idx, title in enumerate(EXPORT_HEADER, start=1):
        ws.column_dimensions[get_column_letter(idx)].width = max(12, len(title) + 2)
    ws.column_dimensions["A"].width = 38

    stream = io.BytesIO()
    wb.save(stream)
    stream.seek(0)

    return StreamingResponse(
        stream,
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={"Content-Disposition": "attachment; filename=my_bookings.xlsx"},
    )
