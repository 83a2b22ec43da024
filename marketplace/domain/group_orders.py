# marketplace/domain/group_orders.py
"""
Zamowienia grupowe: kilku uczestnikow, potencjalnie kilku vendorow, jedna platnosc.

Oplata za dostawe liczona raz na vendora (pierwszy uczestnik danego vendora).
"""
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from marketplace.domain.clock import ensure_aware, utcnow
from marketplace.domain.entities import (
    CartItem,
    Coordinator,
    GroupOrder,
    GroupOrderParticipant,
    cart_subtotal,
    new_id,
)
from marketplace.domain.enums import GroupOrderStatus, PaymentMethod
from marketplace.domain.errors import EmptyGroup, GroupClosed, GroupExpired, InvalidTransition
from marketplace.utils.settings import GROUP_ORDER_BASE_URL

S = GroupOrderStatus


@dataclass
class RestaurantSummary:
    vendor_id: str
    vendor_name: str
    participants: List[GroupOrderParticipant] = field(default_factory=list)
    total_amount: int = 0
    delivery_fee: int = 0


def group_order_link(group_order_id: str, base_url: str = GROUP_ORDER_BASE_URL) -> str:
    return f"{base_url.rstrip('/')}/group-order/{group_order_id}"


def create_group_order(
    coordinator: Coordinator,
    delivery_address: str,
    expiry_minutes: Optional[int] = None,
    base_url: str = GROUP_ORDER_BASE_URL,
    now: Optional[datetime] = None,
) -> GroupOrder:
    now = ensure_aware(now or utcnow())
    group_id = new_id("group")
    expires_at = now + timedelta(minutes=expiry_minutes) if expiry_minutes and expiry_minutes > 0 else None
    return GroupOrder(
        id=group_id,
        coordinator=coordinator,
        status=S.OPEN,
        created_at=now,
        expires_at=expires_at,
        delivery_address=delivery_address,
        shareable_link=group_order_link(group_id, base_url),
    )


def is_group_order_expired(group_order: GroupOrder, now: Optional[datetime] = None) -> bool:
    if group_order.expires_at is None:
        return False
    return ensure_aware(group_order.expires_at) <= ensure_aware(now or utcnow())


def add_participant(
    group_order: GroupOrder,
    user_id: str,
    user_name: str,
    vendor_id: str,
    vendor_name: str,
    items: List[CartItem],
    delivery_fee: int,
    now: Optional[datetime] = None,
) -> GroupOrder:
    now = ensure_aware(now or utcnow())
    if group_order.status != S.OPEN:
        raise GroupClosed(group_order.id)
    if is_group_order_expired(group_order, now):
        raise GroupExpired(group_order.id)
    if not items:
        raise ValueError("Participant must order at least one item")

    subtotal = cart_subtotal(items)
    participant = GroupOrderParticipant(
        user_id=user_id,
        user_name=user_name,
        vendor_id=vendor_id,
        vendor_name=vendor_name,
        items=items,
        subtotal=subtotal,
        delivery_fee=delivery_fee,
        total=subtotal + delivery_fee,
        joined_at=now,
    )

    #vendor juz w zamowieniu -> bez drugiej oplaty za dostawe
    is_new_vendor = vendor_id not in {p.vendor_id for p in group_order.participants}

    group_order.participants.append(participant)
    group_order.total_amount += participant.total
    if is_new_vendor:
        group_order.total_delivery_fees += delivery_fee
    return group_order


def close_group_order(group_order: GroupOrder) -> GroupOrder:
    if group_order.status != S.OPEN:
        raise InvalidTransition(group_order.status, S.CLOSED)
    if not group_order.participants:
        raise EmptyGroup(group_order.id)
    group_order.status = S.CLOSED
    return group_order


def confirm_group_order(group_order: GroupOrder) -> GroupOrder:
    if group_order.status != S.CLOSED:
        raise InvalidTransition(group_order.status, S.CONFIRMED)
    group_order.status = S.CONFIRMED
    return group_order


def mark_group_order_paid(group_order: GroupOrder, payment_method: PaymentMethod) -> GroupOrder:
    if group_order.status != S.CONFIRMED:
        raise InvalidTransition(group_order.status, S.PAID)
    group_order.status = S.PAID
    group_order.payment_method = PaymentMethod(payment_method)
    return group_order


def get_unique_restaurants(group_order: GroupOrder) -> List[RestaurantSummary]:
    by_vendor: Dict[str, RestaurantSummary] = {}
    for p in group_order.participants:
        summary = by_vendor.get(p.vendor_id)
        if summary is None:
            summary = RestaurantSummary(
                vendor_id=p.vendor_id,
                vendor_name=p.vendor_name,
                delivery_fee=p.delivery_fee,
            )
            by_vendor[p.vendor_id] = summary
        summary.participants.append(p)
        summary.total_amount += p.subtotal
    return list(by_vendor.values())
