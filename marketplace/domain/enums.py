# marketplace/domain/enums.py
from enum import Enum


class OrderStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    PREPARING = "preparing"
    READY = "ready"
    DRIVER_ASSIGNED = "driver_assigned"
    PICKED_UP = "picked_up"
    ON_THE_WAY = "on_the_way"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    REJECTED = "rejected"


class ScheduledOrderStatus(str, Enum):
    PENDING_CONFIRMATION = "pending_confirmation"
    CONFIRMED = "confirmed"
    DRIVER_BOOKED = "driver_booked"
    PAYMENT_PENDING = "payment_pending"
    PAID = "paid"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class GroupOrderStatus(str, Enum):
    OPEN = "open"
    CLOSED = "closed"
    CONFIRMED = "confirmed"
    PAID = "paid"


class PaymentMethod(str, Enum):
    CASH_ON_DELIVERY = "Cash on Delivery"
    BANK_TRANSFER = "Bank Transfer"


class PaymentProvider(str, Enum):
    BCA = "BCA"
    MANDIRI = "Mandiri"
    BNI = "BNI"
    BRI = "BRI"
    GOPAY = "GoPay"
    OVO = "OVO"
    DANA = "DANA"
