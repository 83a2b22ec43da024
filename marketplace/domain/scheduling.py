# marketplace/domain/scheduling.py
"""
Zamowienia planowane (scheduled orders).

pending_confirmation -> confirmed -> [driver_booked] -> [payment_pending] -> paid -> active -> completed
Kazdy stan nieterminalny -> cancelled (takze odrzucenie przez restauracje).

Aktywacja nastepuje gdy now >= requested_prep_start_time; sprawdza to
should_start_preparing, a odpytuje task celery (tu nie ma timera).
"""
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Optional

from marketplace.domain.clock import ensure_aware, utcnow
from marketplace.domain.entities import CartItem, Customer, DriverInfo, ScheduledOrder, new_id
from marketplace.domain.enums import PaymentMethod, PaymentProvider, ScheduledOrderStatus
from marketplace.domain.errors import InsufficientAdvanceNotice, InvalidTransition
from marketplace.domain.transitions import TransitionTable
from marketplace.utils.settings import (
    DRIVER_BOOKING_BUFFER_MINUTES,
    MIN_ADVANCE_NOTICE_HOURS,
    PREP_LEAD_MINUTES,
)

S = ScheduledOrderStatus

SCHEDULED_TRANSITIONS = TransitionTable(
    allowed={
        S.PENDING_CONFIRMATION: {S.CONFIRMED, S.CANCELLED},
        S.CONFIRMED: {S.DRIVER_BOOKED, S.PAYMENT_PENDING, S.PAID, S.CANCELLED},
        S.DRIVER_BOOKED: {S.PAYMENT_PENDING, S.PAID, S.CANCELLED},
        S.PAYMENT_PENDING: {S.PAID, S.CANCELLED},
        S.PAID: {S.ACTIVE, S.CANCELLED},
        S.ACTIVE: {S.COMPLETED, S.CANCELLED},
    },
    terminal={S.COMPLETED, S.CANCELLED},
)

#kierowce mozna dopisac (lub wymienic) po potwierdzeniu, takze po oplaceniu
DRIVER_ASSIGNABLE = {S.CONFIRMED, S.DRIVER_BOOKED, S.PAYMENT_PENDING, S.PAID}


@dataclass
class Countdown:
    days: int
    hours: int
    minutes: int
    seconds: int
    is_past: bool


def _move(order: ScheduledOrder, new_status: ScheduledOrderStatus) -> ScheduledOrder:
    SCHEDULED_TRANSITIONS.check(order.status, new_status)
    order.status = new_status
    return order


def validate_advance_notice(
    scheduled_for: datetime,
    now: Optional[datetime] = None,
    minimum_hours: float = MIN_ADVANCE_NOTICE_HOURS,
) -> float:
    """Returns hours until delivery; exactly `minimum_hours` is accepted."""
    now = ensure_aware(now or utcnow())
    hours_until = (ensure_aware(scheduled_for) - now).total_seconds() / 3600
    if hours_until < minimum_hours:
        raise InsufficientAdvanceNotice(hours_until, minimum_hours)
    return hours_until


def create_scheduled_order(
    vendor_id: str,
    vendor_name: str,
    customer: Customer,
    scheduled_for: datetime,
    items: List[CartItem],
    delivery_fee: int,
    delivery_address: str,
    special_instructions: Optional[str] = None,
    now: Optional[datetime] = None,
) -> ScheduledOrder:
    if not items:
        raise ValueError("Scheduled order must contain at least one item")
    now = ensure_aware(now or utcnow())
    scheduled_for = ensure_aware(scheduled_for)
    validate_advance_notice(scheduled_for, now)

    return ScheduledOrder(
        id=new_id("sched"),
        vendor_id=vendor_id,
        vendor_name=vendor_name,
        customer=customer,
        delivery_address=delivery_address,
        items=items,
        delivery_fee=delivery_fee,
        special_instructions=special_instructions,
        scheduled_for=scheduled_for,
        requested_prep_start_time=scheduled_for - timedelta(minutes=PREP_LEAD_MINUTES),
        status=S.PENDING_CONFIRMATION,
        created_at=now,
    )


def confirm(
    order: ScheduledOrder,
    confirmed_by: str,
    estimated_prep_time: Optional[int] = None,
    now: Optional[datetime] = None,
) -> ScheduledOrder:
    _move(order, S.CONFIRMED)
    order.confirmed_at = ensure_aware(now or utcnow())
    order.confirmed_by = confirmed_by
    order.estimated_prep_time = estimated_prep_time
    return order


def reject(order: ScheduledOrder, reason: str) -> ScheduledOrder:
    if not reason or not reason.strip():
        raise ValueError("Rejection reason is required")
    _move(order, S.CANCELLED)
    order.rejection_reason = reason.strip()
    return order


def assign_driver(order: ScheduledOrder, driver: DriverInfo, now: Optional[datetime] = None) -> ScheduledOrder:
    if order.status not in DRIVER_ASSIGNABLE:
        raise InvalidTransition(order.status, S.DRIVER_BOOKED)
    if order.status == S.CONFIRMED:
        _move(order, S.DRIVER_BOOKED)
    order.driver_info = driver.model_copy(update={"booked_at": ensure_aware(now or utcnow())})
    return order


def mark_payment_pending(order: ScheduledOrder) -> ScheduledOrder:
    return _move(order, S.PAYMENT_PENDING)


def process_payment(
    order: ScheduledOrder,
    payment_method: PaymentMethod,
    payment_provider: Optional[PaymentProvider] = None,
    transfer_proof: Optional[str] = None,
    now: Optional[datetime] = None,
) -> ScheduledOrder:
    _move(order, S.PAID)
    order.payment_method = payment_method
    order.payment_provider = payment_provider
    order.transfer_proof = transfer_proof
    order.paid_at = ensure_aware(now or utcnow())
    return order


def activate(order: ScheduledOrder, actual_order_id: str) -> ScheduledOrder:
    _move(order, S.ACTIVE)
    order.actual_order_id = actual_order_id
    return order


def complete(order: ScheduledOrder) -> ScheduledOrder:
    return _move(order, S.COMPLETED)


def cancel(order: ScheduledOrder) -> ScheduledOrder:
    return _move(order, S.CANCELLED)


def should_start_preparing(order: ScheduledOrder, now: Optional[datetime] = None) -> bool:
    if order.status != S.PAID:
        return False
    now = ensure_aware(now or utcnow())
    return now >= ensure_aware(order.requested_prep_start_time)


def needs_driver_assignment(order: ScheduledOrder) -> bool:
    return order.status == S.CONFIRMED and order.driver_info is None


def calculate_driver_lead_time(scheduled_for: datetime, now: Optional[datetime] = None) -> int:
    """Minutes left to book a driver before the recommended buffer; advisory only."""
    now = ensure_aware(now or utcnow())
    minutes_until = int((ensure_aware(scheduled_for) - now).total_seconds() // 60)
    return max(0, minutes_until - DRIVER_BOOKING_BUFFER_MINUTES)


def time_until_delivery(scheduled_for: datetime, now: Optional[datetime] = None) -> Countdown:
    now = ensure_aware(now or utcnow())
    diff = int((ensure_aware(scheduled_for) - now).total_seconds())
    if diff <= 0:
        return Countdown(days=0, hours=0, minutes=0, seconds=0, is_past=True)
    days, rest = divmod(diff, 86400)
    hours, rest = divmod(rest, 3600)
    minutes, seconds = divmod(rest, 60)
    return Countdown(days=days, hours=hours, minutes=minutes, seconds=seconds, is_past=False)
