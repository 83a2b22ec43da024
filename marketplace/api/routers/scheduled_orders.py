# marketplace/api/routers/scheduled_orders.py
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from marketplace.api.deps import get_lock_service, get_notification_service, http_error
from marketplace.data.database import get_db
from marketplace.domain.entities import DriverInfo, ScheduledOrder
from marketplace.domain.enums import ScheduledOrderStatus
from marketplace.domain.errors import MarketplaceError
from marketplace.domain.schemas import (
    ConfirmScheduledIn,
    CountdownOut,
    DriverIn,
    PaymentIn,
    RejectIn,
    ScheduleOrderIn,
)
from marketplace.services.lock_service import LockService
from marketplace.services.notification_service import NotificationService
from marketplace.services.scheduled_order_service import ScheduledOrderService

router = APIRouter(prefix="/scheduled-orders", tags=["scheduled-orders"])


def get_service(
    db: Session = Depends(get_db),
    lock_service: LockService = Depends(get_lock_service),
    notification_service: NotificationService = Depends(get_notification_service),
) -> ScheduledOrderService:
    return ScheduledOrderService(
        db=db,
        lock_service=lock_service,
        notification_service=notification_service,
    )


@router.post("/", response_model=ScheduledOrder, status_code=201)
def schedule_order(payload: ScheduleOrderIn, svc: ScheduledOrderService = Depends(get_service)):
    try:
        return svc.schedule(
            vendor_id=payload.vendor_id,
            customer=payload.customer,
            scheduled_for=payload.scheduled_for,
            delivery_address=payload.delivery_address,
            items=payload.items,
            delivery_fee=payload.delivery_fee,
            special_instructions=payload.special_instructions,
        )
    except (MarketplaceError, ValueError) as e:
        raise http_error(e)


@router.get("/", response_model=List[ScheduledOrder])
def list_scheduled_orders(
    customer_phone: Optional[str] = Query(None),
    include_completed: bool = Query(False),
    vendor_id: Optional[str] = Query(None),
    status: Optional[List[ScheduledOrderStatus]] = Query(None),
    svc: ScheduledOrderService = Depends(get_service),
):
    if vendor_id:
        return svc.list_for_vendor(vendor_id, status)
    if customer_phone:
        return svc.list_for_customer(customer_phone, include_completed)
    raise HTTPException(status_code=400, detail="vendor_id or customer_phone is required")


@router.get("/{scheduled_order_id}", response_model=ScheduledOrder)
def get_scheduled_order(scheduled_order_id: str, svc: ScheduledOrderService = Depends(get_service)):
    try:
        return svc.get(scheduled_order_id)
    except MarketplaceError as e:
        raise http_error(e)


@router.get("/{scheduled_order_id}/countdown", response_model=CountdownOut)
def countdown(scheduled_order_id: str, svc: ScheduledOrderService = Depends(get_service)):
    try:
        return svc.countdown(scheduled_order_id)
    except MarketplaceError as e:
        raise http_error(e)


@router.post("/{scheduled_order_id}/confirm", response_model=ScheduledOrder)
def confirm(scheduled_order_id: str, payload: ConfirmScheduledIn, svc: ScheduledOrderService = Depends(get_service)):
    try:
        return svc.confirm(scheduled_order_id, payload.confirmed_by, payload.estimated_prep_time)
    except (MarketplaceError, ValueError) as e:
        raise http_error(e)


@router.post("/{scheduled_order_id}/reject", response_model=ScheduledOrder)
def reject(scheduled_order_id: str, payload: RejectIn, svc: ScheduledOrderService = Depends(get_service)):
    try:
        return svc.reject(scheduled_order_id, payload.reason)
    except (MarketplaceError, ValueError) as e:
        raise http_error(e)


@router.post("/{scheduled_order_id}/driver", response_model=ScheduledOrder)
def assign_driver(scheduled_order_id: str, payload: DriverIn, svc: ScheduledOrderService = Depends(get_service)):
    try:
        return svc.assign_driver(scheduled_order_id, DriverInfo(**payload.model_dump()))
    except (MarketplaceError, ValueError) as e:
        raise http_error(e)


@router.post("/{scheduled_order_id}/payment-pending", response_model=ScheduledOrder)
def mark_payment_pending(scheduled_order_id: str, svc: ScheduledOrderService = Depends(get_service)):
    try:
        return svc.mark_payment_pending(scheduled_order_id)
    except (MarketplaceError, ValueError) as e:
        raise http_error(e)


@router.post("/{scheduled_order_id}/payment", response_model=ScheduledOrder)
def process_payment(scheduled_order_id: str, payload: PaymentIn, svc: ScheduledOrderService = Depends(get_service)):
    try:
        return svc.process_payment(
            scheduled_order_id,
            payload.payment_method,
            payload.payment_provider,
            payload.transfer_proof,
        )
    except (MarketplaceError, ValueError) as e:
        raise http_error(e)


@router.post("/{scheduled_order_id}/complete", response_model=ScheduledOrder)
def complete(scheduled_order_id: str, svc: ScheduledOrderService = Depends(get_service)):
    try:
        return svc.complete(scheduled_order_id)
    except (MarketplaceError, ValueError) as e:
        raise http_error(e)


@router.post("/{scheduled_order_id}/cancel", response_model=ScheduledOrder)
def cancel(scheduled_order_id: str, svc: ScheduledOrderService = Depends(get_service)):
    try:
        return svc.cancel(scheduled_order_id)
    except (MarketplaceError, ValueError) as e:
        raise http_error(e)
