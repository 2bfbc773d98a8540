# backend/yoga_studio/routers/cart.py
from fastapi import APIRouter, Depends, HTTPException

from .. import schemas
from ..dependencies import get_booking_coordinator, get_cart_registry, get_snapshot
from ..errors import BookingValidationError, StoreError
from ..services.booking import BookingCoordinator
from ..services.cart import CartRegistry, SelectionSet
from ..services.catalog import resolve_selection, summarize
from ..services.reconciler import IndexedModel

router = APIRouter(prefix="/cart", tags=["Cart"])


def _cart_out(session_id: str, instance_ids, model: IndexedModel) -> schemas.CartOut:
    return schemas.CartOut(
        session_id=session_id,
        instance_ids=instance_ids,
        items=resolve_selection(instance_ids, model),
        summary=summarize(instance_ids, model),
    )


@router.get("/{session_id}", response_model=schemas.CartOut)
def get_cart(
    session_id: str,
    carts: CartRegistry = Depends(get_cart_registry),
    model: IndexedModel = Depends(get_snapshot),
):
    cart = carts.peek(session_id)
    return _cart_out(session_id, cart.list() if cart else [], model)


@router.post("/{session_id}/items", response_model=schemas.CartAddOut)
def add_item(
    session_id: str,
    payload: schemas.CartItemIn,
    carts: CartRegistry = Depends(get_cart_registry),
    model: IndexedModel = Depends(get_snapshot),
):
    # only sessions visible in the current catalog can be added
    if payload.instance_id not in model.instance_by_id:
        raise HTTPException(status_code=404, detail="Class session not found")

    cart = carts.get(session_id)
    added = cart.add(payload.instance_id)
    return schemas.CartAddOut(added=added, duplicate=not added, instance_ids=cart.list())


@router.delete("/{session_id}/items/{instance_id}")
def remove_item(
    session_id: str,
    instance_id: int,
    carts: CartRegistry = Depends(get_cart_registry),
):
    cart = carts.peek(session_id)
    if cart is None:
        return {"status": "ok", "removed": False, "instance_ids": []}
    removed = cart.remove(instance_id)
    remaining = cart.list()
    carts.discard_if_empty(session_id)
    return {"status": "ok", "removed": removed, "instance_ids": remaining}


@router.delete("/{session_id}")
def clear_cart(session_id: str, carts: CartRegistry = Depends(get_cart_registry)):
    cart = carts.peek(session_id)
    if cart is not None:
        cart.clear()
        carts.discard(session_id)
    return {"status": "ok", "session_id": session_id}


# =========================================================
# CHECKOUT
# =========================================================
@router.post("/{session_id}/checkout", response_model=schemas.BookingConfirmation)
def checkout(
    session_id: str,
    payload: schemas.CheckoutIn,
    carts: CartRegistry = Depends(get_cart_registry),
    coordinator: BookingCoordinator = Depends(get_booking_coordinator),
    model: IndexedModel = Depends(get_snapshot),
):
    cart = carts.peek(session_id)
    if cart is None:
        # unknown session: checks out an empty, unregistered cart
        cart = SelectionSet()
    try:
        confirmation = coordinator.submit(payload.email, cart, model, idempotency_key=payload.idempotency_key)
    except BookingValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except StoreError:
        raise HTTPException(status_code=503, detail="Booking failed. Please try again.")
    carts.discard_if_empty(session_id)
    return confirmation
