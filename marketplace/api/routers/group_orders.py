# marketplace/api/routers/group_orders.py
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from marketplace.api.deps import get_lock_service, get_notification_service, http_error
from marketplace.data.database import get_db
from marketplace.domain.entities import GroupOrder
from marketplace.domain.errors import MarketplaceError
from marketplace.domain.schemas import (
    GroupOrderCreateIn,
    GroupPayIn,
    JoinGroupIn,
    RestaurantSummaryOut,
    ShareOut,
)
from marketplace.services.group_order_service import GroupOrderService
from marketplace.services.lock_service import LockService
from marketplace.services.notification_service import NotificationService

router = APIRouter(prefix="/group-orders", tags=["group-orders"])


def get_service(
    db: Session = Depends(get_db),
    lock_service: LockService = Depends(get_lock_service),
    notification_service: NotificationService = Depends(get_notification_service),
) -> GroupOrderService:
    return GroupOrderService(
        db=db,
        lock_service=lock_service,
        notification_service=notification_service,
    )


@router.post("/", response_model=GroupOrder, status_code=201)
def create_group_order(payload: GroupOrderCreateIn, svc: GroupOrderService = Depends(get_service)):
    return svc.create(payload.coordinator, payload.delivery_address, payload.expiry_minutes)


@router.get("/", response_model=List[GroupOrder])
def list_group_orders(user_id: str = Query(...), svc: GroupOrderService = Depends(get_service)):
    return svc.list_for_user(user_id)


@router.get("/{group_order_id}", response_model=GroupOrder)
def get_group_order(group_order_id: str, svc: GroupOrderService = Depends(get_service)):
    try:
        return svc.get(group_order_id)
    except MarketplaceError as e:
        raise http_error(e)


@router.post("/{group_order_id}/participants", response_model=GroupOrder)
def join_group_order(group_order_id: str, payload: JoinGroupIn, svc: GroupOrderService = Depends(get_service)):
    try:
        return svc.join(
            group_order_id,
            user_id=payload.user_id,
            user_name=payload.user_name,
            vendor_id=payload.vendor_id,
            vendor_name=payload.vendor_name,
            items=payload.items,
            delivery_fee=payload.delivery_fee,
        )
    except (MarketplaceError, ValueError) as e:
        raise http_error(e)


@router.post("/{group_order_id}/close", response_model=GroupOrder)
def close_group_order(group_order_id: str, svc: GroupOrderService = Depends(get_service)):
    try:
        return svc.close(group_order_id)
    except (MarketplaceError, ValueError) as e:
        raise http_error(e)


@router.post("/{group_order_id}/confirm", response_model=GroupOrder)
def confirm_group_order(group_order_id: str, svc: GroupOrderService = Depends(get_service)):
    try:
        return svc.confirm(group_order_id)
    except (MarketplaceError, ValueError) as e:
        raise http_error(e)


@router.post("/{group_order_id}/pay", response_model=GroupOrder)
def pay_group_order(group_order_id: str, payload: GroupPayIn, svc: GroupOrderService = Depends(get_service)):
    try:
        return svc.mark_paid(group_order_id, payload.payment_method)
    except (MarketplaceError, ValueError) as e:
        raise http_error(e)


@router.get("/{group_order_id}/restaurants", response_model=List[RestaurantSummaryOut])
def restaurants(group_order_id: str, svc: GroupOrderService = Depends(get_service)):
    try:
        return svc.restaurants(group_order_id)
    except MarketplaceError as e:
        raise http_error(e)


@router.get("/{group_order_id}/share", response_model=ShareOut)
def share(
    group_order_id: str,
    phone: Optional[str] = Query(None),
    svc: GroupOrderService = Depends(get_service),
):
    try:
        return svc.share(group_order_id, phone)
    except (MarketplaceError, ValueError) as e:
        raise http_error(e)
