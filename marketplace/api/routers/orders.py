# marketplace/api/routers/orders.py
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from marketplace.api.deps import get_lock_service, get_notification_service, http_error
from marketplace.data.database import get_db
from marketplace.domain.entities import Order
from marketplace.domain.enums import OrderStatus
from marketplace.domain.errors import MarketplaceError
from marketplace.domain.schemas import (
    ApplyRewardIn,
    CancelIn,
    PlaceOrderIn,
    RejectIn,
    StatusUpdateIn,
)
from marketplace.services.lock_service import LockService
from marketplace.services.notification_service import NotificationService
from marketplace.services.order_service import OrderService

router = APIRouter(prefix="/orders", tags=["orders"])


def get_service(
    db: Session = Depends(get_db),
    lock_service: LockService = Depends(get_lock_service),
    notification_service: NotificationService = Depends(get_notification_service),
) -> OrderService:
    return OrderService(
        db=db,
        lock_service=lock_service,
        notification_service=notification_service,
    )


@router.post("/", response_model=Order, status_code=201)
def place_order(payload: PlaceOrderIn, svc: OrderService = Depends(get_service)):
    try:
        return svc.place_order(
            vendor_id=payload.vendor_id,
            customer=payload.customer,
            delivery_address=payload.delivery_address,
            items=payload.items,
            delivery_fee=payload.delivery_fee,
            payment_method=payload.payment_method,
            special_instructions=payload.special_instructions,
        )
    except (MarketplaceError, ValueError) as e:
        raise http_error(e)


@router.get("/", response_model=List[Order])
def list_orders(
    vendor_id: Optional[str] = Query(None),
    customer_phone: Optional[str] = Query(None),
    status: Optional[List[OrderStatus]] = Query(None),
    svc: OrderService = Depends(get_service),
):
    if vendor_id:
        return svc.list_vendor_orders(vendor_id, status)
    if customer_phone:
        return svc.list_customer_orders(customer_phone)
    raise HTTPException(status_code=400, detail="vendor_id or customer_phone is required")


@router.get("/{order_id}", response_model=Order)
def get_order(order_id: str, svc: OrderService = Depends(get_service)):
    try:
        return svc.get_order(order_id)
    except MarketplaceError as e:
        raise http_error(e)


@router.post("/{order_id}/status", response_model=Order)
def update_status(order_id: str, payload: StatusUpdateIn, svc: OrderService = Depends(get_service)):
    try:
        return svc.update_status(order_id, payload.status, note=payload.note)
    except (MarketplaceError, ValueError) as e:
        raise http_error(e)


@router.post("/{order_id}/reject", response_model=Order)
def reject_order(order_id: str, payload: RejectIn, svc: OrderService = Depends(get_service)):
    try:
        return svc.reject_order(order_id, payload.reason)
    except (MarketplaceError, ValueError) as e:
        raise http_error(e)


@router.post("/{order_id}/cancel", response_model=Order)
def cancel_order(order_id: str, payload: CancelIn, svc: OrderService = Depends(get_service)):
    try:
        return svc.cancel_order(order_id, payload.note)
    except (MarketplaceError, ValueError) as e:
        raise http_error(e)


@router.post("/{order_id}/rewards/{reward_id}", response_model=Order)
def apply_reward(
    order_id: str,
    reward_id: str,
    payload: ApplyRewardIn,
    svc: OrderService = Depends(get_service),
):
    try:
        return svc.apply_reward(order_id, reward_id, payload.user_id)
    except (MarketplaceError, ValueError) as e:
        raise http_error(e)
