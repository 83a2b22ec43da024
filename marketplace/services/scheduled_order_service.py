from datetime import datetime
from typing import Callable, List, Optional

from sqlalchemy.orm import Session

from marketplace.domain import lifecycle, scheduling
from marketplace.domain.clock import utcnow
from marketplace.domain.entities import CartItem, Customer, DriverInfo, Order, ScheduledOrder
from marketplace.domain.enums import PaymentMethod, PaymentProvider, ScheduledOrderStatus
from marketplace.domain.errors import ConcurrencyConflict, InvalidTransition, RecordNotFound
from marketplace.repos.order_repo import OrderRepo
from marketplace.repos.scheduled_order_repo import ScheduledOrderRepo
from marketplace.repos.vendor_repo import VendorRepo
from marketplace.services.lock_service import LockService
from marketplace.services.notification_service import NotificationService
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)


class ScheduledOrderService:
    """
    Zamowienia planowane: zlozenie z wyprzedzeniem, potwierdzenie przez restauracje,
    kierowca, platnosc, aktywacja (task celery) i zakonczenie.
    Kazda zmiana stanu -> powiadomienie klienta.
    """

    def __init__(
        self,
        db: Session,
        lock_service: LockService | None = None,
        notification_service: NotificationService | None = None,
    ):
        self.repo = ScheduledOrderRepo(db)
        self.orders = OrderRepo(db)
        self.vendors = VendorRepo(db)
        self.lock_service = lock_service or LockService()
        self.notification_service = notification_service or NotificationService()

    #query
    def get(self, scheduled_order_id: str) -> ScheduledOrder:
        order = self.repo.get(scheduled_order_id)
        if order is None:
            raise RecordNotFound("scheduled_order", scheduled_order_id)
        return order

    def list_for_customer(self, customer_phone: str, include_completed: bool = False) -> List[ScheduledOrder]:
        return self.repo.list_by_customer(customer_phone, include_completed)

    def list_for_vendor(
        self,
        vendor_id: str,
        statuses: List[ScheduledOrderStatus] | None = None,
    ) -> List[ScheduledOrder]:
        return self.repo.list_by_vendor(vendor_id, statuses)

    def countdown(self, scheduled_order_id: str, now: Optional[datetime] = None) -> dict:
        order = self.get(scheduled_order_id)
        countdown = scheduling.time_until_delivery(order.scheduled_for, now)
        return {
            "days": countdown.days,
            "hours": countdown.hours,
            "minutes": countdown.minutes,
            "seconds": countdown.seconds,
            "is_past": countdown.is_past,
            "driver_lead_time_minutes": scheduling.calculate_driver_lead_time(order.scheduled_for, now),
        }

    #commands
    def schedule(
        self,
        vendor_id: str,
        customer: Customer,
        scheduled_for: datetime,
        delivery_address: str,
        items: List[CartItem],
        delivery_fee: Optional[int] = None,
        special_instructions: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> ScheduledOrder:
        vendor = self.vendors.get(vendor_id)
        if vendor is None:
            raise RecordNotFound("vendor", vendor_id)

        order = scheduling.create_scheduled_order(
            vendor_id=vendor.id,
            vendor_name=vendor.name,
            customer=customer,
            scheduled_for=scheduled_for,
            items=items,
            delivery_fee=vendor.delivery_fee if delivery_fee is None else delivery_fee,
            delivery_address=delivery_address,
            special_instructions=special_instructions,
            now=now,
        )
        try:
            self.repo.add(order)
            self.repo.commit()
        except Exception:
            self.repo.rollback()
            raise

        logger.info(f"Scheduled order {order.id} for {order.scheduled_for.isoformat()} at {vendor.id}")
        return order

    def confirm(
        self,
        scheduled_order_id: str,
        confirmed_by: str,
        estimated_prep_time: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> ScheduledOrder:
        return self._apply(
            scheduled_order_id,
            lambda o: scheduling.confirm(o, confirmed_by, estimated_prep_time, now),
        )

    def reject(self, scheduled_order_id: str, reason: str) -> ScheduledOrder:
        return self._apply(scheduled_order_id, lambda o: scheduling.reject(o, reason))

    def assign_driver(self, scheduled_order_id: str, driver: DriverInfo, now: Optional[datetime] = None) -> ScheduledOrder:
        return self._apply(scheduled_order_id, lambda o: scheduling.assign_driver(o, driver, now))

    def mark_payment_pending(self, scheduled_order_id: str) -> ScheduledOrder:
        return self._apply(scheduled_order_id, scheduling.mark_payment_pending)

    def process_payment(
        self,
        scheduled_order_id: str,
        payment_method: PaymentMethod,
        payment_provider: Optional[PaymentProvider] = None,
        transfer_proof: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> ScheduledOrder:
        return self._apply(
            scheduled_order_id,
            lambda o: scheduling.process_payment(o, payment_method, payment_provider, transfer_proof, now),
        )

    def complete(self, scheduled_order_id: str) -> ScheduledOrder:
        return self._apply(scheduled_order_id, scheduling.complete)

    def cancel(self, scheduled_order_id: str) -> ScheduledOrder:
        return self._apply(scheduled_order_id, scheduling.cancel)

    def activate_due(self, now: Optional[datetime] = None) -> List[Order]:
        """
        Zamienia oplacone zamowienia, ktorym minal czas startu przygotowania,
        w zwykle zamowienia (pending). Konflikty pomijane - nastepny przebieg je podejmie.
        """
        now = now or utcnow()
        due = self.repo.list_due_for_activation(now)
        logger.info(f"Found {len(due)} scheduled orders due for activation")

        created: List[Order] = []
        for candidate in due:
            try:
                created.append(self._activate_one(candidate.id, now))
            except (ConcurrencyConflict, InvalidTransition) as e:
                logger.warning(f"Skipping activation of {candidate.id}: {e}")
        return created

    def _activate_one(self, scheduled_order_id: str, now: datetime) -> Order:
        with self.lock_service.hold("scheduled_order", scheduled_order_id):
            scheduled = self.get(scheduled_order_id)
            if not scheduling.should_start_preparing(scheduled, now):
                raise InvalidTransition(scheduled.status, ScheduledOrderStatus.ACTIVE)

            order = lifecycle.create_order(
                vendor_id=scheduled.vendor_id,
                vendor_name=scheduled.vendor_name,
                customer=scheduled.customer,
                delivery_address=scheduled.delivery_address,
                items=scheduled.items,
                delivery_fee=scheduled.delivery_fee,
                payment_method=scheduled.payment_method or PaymentMethod.CASH_ON_DELIVERY,
                special_instructions=scheduled.special_instructions,
                scheduled_order_id=scheduled.id,
                now=now,
            )
            scheduling.activate(scheduled, order.id)
            try:
                self.orders.add(order)
                self.repo.update(scheduled)
                self.repo.commit()
            except Exception:
                self.repo.rollback()
                raise

        logger.info(f"Scheduled order {scheduled.id} activated as order {order.id}")
        self.notification_service.notify_scheduled_order_status(scheduled)
        return order

    def _apply(self, scheduled_order_id: str, change: Callable[[ScheduledOrder], ScheduledOrder]) -> ScheduledOrder:
        with self.lock_service.hold("scheduled_order", scheduled_order_id):
            order = self.get(scheduled_order_id)
            previous = order.status
            change(order)
            try:
                self.repo.update(order)
                self.repo.commit()
            except Exception:
                self.repo.rollback()
                raise

        logger.info(f"Scheduled order {scheduled_order_id}: {previous.value} -> {order.status.value}")
        self.notification_service.notify_scheduled_order_status(order)
        return order
