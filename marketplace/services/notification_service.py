# marketplace/services/notification_service.py
from datetime import datetime
from urllib.parse import quote

import phonenumbers

from marketplace.celery_worker import celery_app
from marketplace.domain.entities import GroupOrder, Order, ScheduledOrder, Vendor
from marketplace.domain.enums import OrderStatus, ScheduledOrderStatus
from marketplace.utils.settings import WHATSAPP_DEFAULT_REGION
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)

ORDER_STATUS_LABELS = {
    OrderStatus.PENDING: "received",
    OrderStatus.ACCEPTED: "accepted by the restaurant",
    OrderStatus.PREPARING: "being prepared",
    OrderStatus.READY: "ready for pickup",
    OrderStatus.DRIVER_ASSIGNED: "assigned to a driver",
    OrderStatus.PICKED_UP: "picked up by the driver",
    OrderStatus.ON_THE_WAY: "on the way",
    OrderStatus.DELIVERED: "delivered",
    OrderStatus.CANCELLED: "cancelled",
    OrderStatus.REJECTED: "rejected by the restaurant",
}


def normalize_whatsapp_number(phone: str, region: str = WHATSAPP_DEFAULT_REGION) -> str:
    """Digits of the E.164 form, as wa.me expects them (no '+')."""
    try:
        pn = phonenumbers.parse(phone, region)
    except phonenumbers.NumberParseException as e:
        raise ValueError(f"invalid phone: {phone}") from e
    if not phonenumbers.is_possible_number(pn):
        raise ValueError(f"invalid phone: {phone}")
    return phonenumbers.format_number(pn, phonenumbers.PhoneNumberFormat.E164).lstrip("+")


def whatsapp_url(message: str, phone: str | None = None, region: str = WHATSAPP_DEFAULT_REGION) -> str:
    number = normalize_whatsapp_number(phone, region) if phone else ""
    return f"https://wa.me/{number}?text={quote(message, safe='')}"


def format_rupiah(amount: int) -> str:
    return "Rp " + f"{amount:,}".replace(",", ".")


def _when(value: datetime) -> str:
    return value.strftime("%d %b %Y %H:%M UTC")


def order_status_message(order: Order) -> str:
    label = ORDER_STATUS_LABELS[order.status]
    msg = f"Order #{order.id[-8:]} from {order.vendor_name} is {label}."
    if order.status == OrderStatus.REJECTED and order.status_history:
        reason = order.status_history[-1].note
        if reason:
            msg += f" Reason: {reason}"
    return msg


def new_order_message(order: Order) -> str:
    lines = "\n".join(f"- {ci.quantity}x {ci.item.name}" for ci in order.items)
    return (
        f"*New order #{order.id[-8:]}*\n\n"
        f"Customer: {order.customer.name}\n"
        f"Order:\n{lines}\n"
        f"Total: {format_rupiah(order.total)}\n\n"
        f"Delivery address: {order.delivery_address}\n\n"
        f"Please confirm order preparation time."
    )


def scheduled_order_message(order: ScheduledOrder, recipient_name: str, status: ScheduledOrderStatus) -> str:
    short_id = order.id[-8:]
    when = _when(order.scheduled_for)
    driver = order.driver_info.driver_name if order.driver_info else "A driver"
    messages = {
        ScheduledOrderStatus.PENDING_CONFIRMATION: "",
        ScheduledOrderStatus.CONFIRMED: (
            f"Good news {recipient_name}! Your scheduled order #{short_id} for {when} has been confirmed "
            f"by {order.vendor_name}. Please complete payment to secure your booking."
        ),
        ScheduledOrderStatus.DRIVER_BOOKED: (
            f"Driver has been pre-booked for your scheduled order! {driver} will pick up your food "
            f"from {order.vendor_name} and deliver on time."
        ),
        ScheduledOrderStatus.PAYMENT_PENDING: (
            f"Payment pending for your scheduled order. Please pay {format_rupiah(order.total)} to confirm."
        ),
        ScheduledOrderStatus.PAID: (
            f"Payment received! Your order is confirmed for {when}. We'll notify you when preparation starts."
        ),
        ScheduledOrderStatus.ACTIVE: f"Your scheduled order is now being prepared! Expected delivery: {when}",
        ScheduledOrderStatus.COMPLETED: (
            f"Your scheduled order has been delivered! Thank you for ordering from {order.vendor_name}."
        ),
        ScheduledOrderStatus.CANCELLED: (
            f"Your scheduled order has been cancelled. "
            f"{order.rejection_reason or 'Please contact support for details.'}"
        ),
    }
    return messages[status]


def group_order_invite_message(group_order: GroupOrder) -> str:
    return (
        "Join my group food order! Ordering from multiple restaurants, share delivery costs.\n\n"
        f"Delivering to: {group_order.delivery_address}\n\n"
        f"Join here: {group_order.shareable_link}"
    )


class NotificationService:
    """
    Powiadomienia WhatsApp (link click-to-chat).
    Wysylka przez Celery, bez gwarancji dostarczenia.
    """

    def __init__(self, region: str = WHATSAPP_DEFAULT_REGION):
        self.region = region

    def _dispatch(self, message: str, phone: str | None) -> str | None:
        if not message:
            return None
        try:
            url = whatsapp_url(message, phone, self.region)
        except ValueError as e:
            logger.warning(f"Skipping notification, {e}")
            return None
        return self._send(url)

    def _send(self, url: str) -> str:
        send_whatsapp_link_task.delay(url)
        return url

    def notify_order_status(self, order: Order) -> str | None:
        phone = order.customer.whatsapp
        if not phone:
            return None
        return self._dispatch(order_status_message(order), phone)

    def notify_vendor_new_order(self, order: Order, vendor: Vendor) -> str | None:
        if not vendor.whatsapp:
            return None
        return self._dispatch(new_order_message(order), vendor.whatsapp)

    def notify_scheduled_order_status(
        self,
        order: ScheduledOrder,
        status: ScheduledOrderStatus | None = None,
    ) -> str | None:
        customer = order.customer
        message = scheduled_order_message(order, customer.name, status or order.status)
        return self._dispatch(message, customer.whatsapp or customer.phone)

    def share_group_order(self, group_order: GroupOrder, phone: str | None = None) -> str:
        return self._send(whatsapp_url(group_order_invite_message(group_order), phone, self.region))


@celery_app.task(name="marketplace.services.notification_service.send_whatsapp_link_task")
def send_whatsapp_link_task(url: str):
    """
    Celery task - link wa.me otwiera klient, tu tylko logujemy.
    """
    logger.info(f"[NOTIFICATION] {url}")
    return {"url": url, "status": "sent"}
