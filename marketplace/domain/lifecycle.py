# marketplace/domain/lifecycle.py
"""
Cykl zycia zamowienia (Order).

pending -> accepted -> preparing -> ready -> driver_assigned -> picked_up -> on_the_way -> delivered
pending -> rejected (z powodem), kazdy stan przed delivered -> cancelled.

Czyste funkcje na encjach, bez I/O. Zapis robi warstwa serwisow.
"""
from datetime import datetime
from typing import List, Optional

from marketplace.domain.clock import ensure_aware, utcnow
from marketplace.domain.entities import (
    CartItem,
    Customer,
    EarnedReward,
    Order,
    StatusHistoryEntry,
    new_id,
)
from marketplace.domain.enums import OrderStatus, PaymentMethod
from marketplace.domain.errors import InvalidTransition
from marketplace.domain.loyalty import calculate_discount, redeem_reward
from marketplace.domain.transitions import TransitionTable

S = OrderStatus

ORDER_TRANSITIONS = TransitionTable(
    allowed={
        S.PENDING: {S.ACCEPTED, S.REJECTED, S.CANCELLED},
        S.ACCEPTED: {S.PREPARING, S.CANCELLED},
        S.PREPARING: {S.READY, S.CANCELLED},
        S.READY: {S.DRIVER_ASSIGNED, S.CANCELLED},
        S.DRIVER_ASSIGNED: {S.PICKED_UP, S.CANCELLED},
        S.PICKED_UP: {S.ON_THE_WAY, S.CANCELLED},
        S.ON_THE_WAY: {S.DELIVERED, S.CANCELLED},
    },
    terminal={S.DELIVERED, S.CANCELLED, S.REJECTED},
)


def create_order(
    vendor_id: str,
    vendor_name: str,
    customer: Customer,
    delivery_address: str,
    items: List[CartItem],
    delivery_fee: int,
    payment_method: PaymentMethod = PaymentMethod.CASH_ON_DELIVERY,
    special_instructions: Optional[str] = None,
    scheduled_order_id: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Order:
    if not items:
        raise ValueError("Order must contain at least one item")
    now = ensure_aware(now or utcnow())
    return Order(
        id=new_id("order"),
        vendor_id=vendor_id,
        vendor_name=vendor_name,
        customer=customer,
        delivery_address=delivery_address,
        items=items,
        delivery_fee=delivery_fee,
        payment_method=payment_method,
        special_instructions=special_instructions,
        status=S.PENDING,
        status_history=[StatusHistoryEntry(status=S.PENDING, timestamp=now, note="Order received")],
        order_time=now,
        scheduled_order_id=scheduled_order_id,
    )


def is_terminal(order: Order) -> bool:
    return ORDER_TRANSITIONS.is_terminal(order.status)


def update_status(
    order: Order,
    new_status: OrderStatus,
    note: Optional[str] = None,
    strict: bool = True,
    now: Optional[datetime] = None,
) -> Order:
    new_status = OrderStatus(new_status)
    ORDER_TRANSITIONS.check(order.status, new_status, strict=strict)

    now = ensure_aware(now or utcnow())
    #historia nie moze sie cofac w czasie
    if order.status_history:
        now = max(now, ensure_aware(order.status_history[-1].timestamp))

    order.status_history.append(StatusHistoryEntry(status=new_status, timestamp=now, note=note))
    order.status = new_status
    return order


def reject_order(order: Order, reason: str, now: Optional[datetime] = None) -> Order:
    if not reason or not reason.strip():
        raise ValueError("Rejection reason is required")
    if order.status != S.PENDING:
        raise InvalidTransition(order.status, S.REJECTED)
    return update_status(order, S.REJECTED, note=reason.strip(), now=now)


def cancel_order(order: Order, note: Optional[str] = None, now: Optional[datetime] = None) -> Order:
    return update_status(order, S.CANCELLED, note=note, now=now)


def apply_reward(order: Order, reward: EarnedReward, now: Optional[datetime] = None) -> Order:
    """Naliczenie rabatu z nagrody lojalnosciowej; nagroda zostaje zuzyta."""
    if is_terminal(order):
        raise ValueError(f"Order {order.id} is {order.status.value}; rewards cannot be applied")
    if order.applied_reward_id:
        raise ValueError(f"Order {order.id} already has reward {order.applied_reward_id} applied")
    redeem_reward(reward, order.id, vendor_id=order.vendor_id, now=now)
    order.discount = calculate_discount(reward, order.subtotal)
    order.applied_reward_id = reward.id
    return order
