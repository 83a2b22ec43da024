from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from marketplace.domain import lifecycle, loyalty
from marketplace.domain.entities import CartItem, Customer, Order
from marketplace.domain.enums import OrderStatus, PaymentMethod
from marketplace.domain.errors import RecordNotFound, WrongCustomer
from marketplace.repos.loyalty_repo import LoyaltyRepo
from marketplace.repos.order_repo import OrderRepo
from marketplace.repos.vendor_repo import VendorRepo
from marketplace.services.lock_service import LockService
from marketplace.services.loyalty_service import LoyaltyService
from marketplace.services.notification_service import NotificationService
from marketplace.utils.logging import get_logger
from marketplace.utils.settings import STRICT_ORDER_TRANSITIONS

logger = get_logger(__name__)


class OrderService:
    """
    Use case dla zamowien "na teraz":
    commands (place, update_status, reject, cancel, apply_reward) pod lockiem rekordu
    i z kontrola wersji, query (get, list) tylko odczyt
    """

    def __init__(
        self,
        db: Session,
        lock_service: LockService | None = None,
        notification_service: NotificationService | None = None,
        strict: bool = STRICT_ORDER_TRANSITIONS,
    ):
        self.db = db
        self.repo = OrderRepo(db)
        self.vendors = VendorRepo(db)
        self.loyalty_repo = LoyaltyRepo(db)
        self.lock_service = lock_service or LockService()
        self.notification_service = notification_service or NotificationService()
        self.strict = strict

    #query
    def get_order(self, order_id: str) -> Order:
        order = self.repo.get(order_id)
        if order is None:
            raise RecordNotFound("order", order_id)
        return order

    def list_vendor_orders(self, vendor_id: str, statuses: List[OrderStatus] | None = None) -> List[Order]:
        return self.repo.list_by_vendor(vendor_id, statuses)

    def list_customer_orders(self, customer_phone: str) -> List[Order]:
        return self.repo.list_by_customer(customer_phone)

    #commands
    def place_order(
        self,
        vendor_id: str,
        customer: Customer,
        delivery_address: str,
        items: List[CartItem],
        delivery_fee: Optional[int] = None,
        payment_method: PaymentMethod = PaymentMethod.CASH_ON_DELIVERY,
        special_instructions: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Order:
        vendor = self.vendors.get(vendor_id)
        if vendor is None:
            raise RecordNotFound("vendor", vendor_id)

        order = lifecycle.create_order(
            vendor_id=vendor.id,
            vendor_name=vendor.name,
            customer=customer,
            delivery_address=delivery_address,
            items=items,
            delivery_fee=vendor.delivery_fee if delivery_fee is None else delivery_fee,
            payment_method=payment_method,
            special_instructions=special_instructions,
            now=now,
        )
        try:
            self.repo.add(order)
            self.repo.commit()
        except Exception:
            self.repo.rollback()
            raise

        logger.info(f"Order {order.id} placed at {vendor.id}, total {order.total}")
        self.notification_service.notify_vendor_new_order(order, vendor)
        return order

    def update_status(
        self,
        order_id: str,
        new_status: OrderStatus,
        note: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Order:
        with self.lock_service.hold("order", order_id):
            order = self.get_order(order_id)
            previous = order.status
            lifecycle.update_status(order, new_status, note=note, strict=self.strict, now=now)
            try:
                self.repo.update(order)
                #punkty w tej samej transakcji co zmiana statusu
                if order.status == OrderStatus.DELIVERED:
                    LoyaltyService(self.db, self.lock_service).award_for_order(order, now=now, commit=False)
                self.repo.commit()
            except Exception as e:
                logger.error(f"Failed to move order {order_id} to {new_status}: {e}")
                self.repo.rollback()
                raise

        logger.info(f"Order {order_id}: {previous.value} -> {order.status.value}")
        self.notification_service.notify_order_status(order)
        return order

    def reject_order(self, order_id: str, reason: str, now: Optional[datetime] = None) -> Order:
        with self.lock_service.hold("order", order_id):
            order = self.get_order(order_id)
            lifecycle.reject_order(order, reason, now=now)
            self._persist(order)

        logger.info(f"Order {order_id} rejected: {order.status_history[-1].note}")
        self.notification_service.notify_order_status(order)
        return order

    def cancel_order(self, order_id: str, note: Optional[str] = None, now: Optional[datetime] = None) -> Order:
        with self.lock_service.hold("order", order_id):
            order = self.get_order(order_id)
            lifecycle.cancel_order(order, note=note, now=now)
            self._persist(order)

        logger.info(f"Order {order_id} cancelled")
        self.notification_service.notify_order_status(order)
        return order

    def apply_reward(
        self,
        order_id: str,
        reward_id: str,
        user_id: str,
        now: Optional[datetime] = None,
    ) -> Order:
        """Zuzycie nagrody lojalnosciowej na zamowieniu; zamowienie i punkty w jednej transakcji."""
        with self.lock_service.hold("order", order_id):
            order = self.get_order(order_id)
            #nagrode moze zuzyc tylko jej wlasciciel, na wlasnym zamowieniu
            if order.customer.user_id != user_id:
                raise WrongCustomer(reward_id, order_id)
            records = self.loyalty_repo.list_by_user(user_id)
            reward = loyalty.find_reward(records, reward_id)
            if reward is None:
                raise RecordNotFound("reward", reward_id)
            record = next(r for r in records if any(x is reward for x in r.earned_rewards))

            with self.lock_service.hold("loyalty", LoyaltyService.lock_id(user_id, record.vendor_id)):
                lifecycle.apply_reward(order, reward, now=now)
                try:
                    self.repo.update(order)
                    self.loyalty_repo.save(record)
                    self.repo.commit()
                except Exception:
                    self.repo.rollback()
                    raise

        logger.info(f"Reward {reward_id} applied to order {order_id}, discount {order.discount}")
        return order

    def _persist(self, order: Order):
        try:
            self.repo.update(order)
            self.repo.commit()
        except Exception:
            self.repo.rollback()
            raise
