from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from marketplace.domain import group_orders
from marketplace.domain.entities import CartItem, Coordinator, GroupOrder
from marketplace.domain.enums import PaymentMethod
from marketplace.domain.errors import RecordNotFound
from marketplace.repos.group_order_repo import GroupOrderRepo
from marketplace.services.lock_service import LockService
from marketplace.services.notification_service import NotificationService
from marketplace.utils.logging import get_logger
from marketplace.utils.settings import GROUP_ORDER_BASE_URL

logger = get_logger(__name__)


class GroupOrderService:
    def __init__(
        self,
        db: Session,
        lock_service: LockService | None = None,
        notification_service: NotificationService | None = None,
        base_url: str = GROUP_ORDER_BASE_URL,
    ):
        self.repo = GroupOrderRepo(db)
        self.lock_service = lock_service or LockService()
        self.notification_service = notification_service or NotificationService()
        self.base_url = base_url

    #query
    def get(self, group_order_id: str) -> GroupOrder:
        group_order = self.repo.get(group_order_id)
        if group_order is None:
            raise RecordNotFound("group_order", group_order_id)
        return group_order

    def list_for_user(self, user_id: str) -> List[GroupOrder]:
        return self.repo.list_by_user(user_id)

    def restaurants(self, group_order_id: str) -> List[group_orders.RestaurantSummary]:
        return group_orders.get_unique_restaurants(self.get(group_order_id))

    #commands
    def create(
        self,
        coordinator: Coordinator,
        delivery_address: str,
        expiry_minutes: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> GroupOrder:
        group_order = group_orders.create_group_order(
            coordinator,
            delivery_address,
            expiry_minutes=expiry_minutes,
            base_url=self.base_url,
            now=now,
        )
        try:
            self.repo.add(group_order)
            self.repo.commit()
        except Exception:
            self.repo.rollback()
            raise
        logger.info(f"Group order {group_order.id} opened by {coordinator.id}")
        return group_order

    def join(
        self,
        group_order_id: str,
        user_id: str,
        user_name: str,
        vendor_id: str,
        vendor_name: str,
        items: List[CartItem],
        delivery_fee: int = 0,
        now: Optional[datetime] = None,
    ) -> GroupOrder:
        #lock bo dwoch uczestnikow moze dolaczac jednoczesnie
        with self.lock_service.hold("group_order", group_order_id):
            group_order = self.get(group_order_id)
            group_orders.add_participant(
                group_order, user_id, user_name, vendor_id, vendor_name, items, delivery_fee, now=now
            )
            self._persist(group_order)

        logger.info(
            f"User {user_id} joined group order {group_order_id} ({vendor_id}), "
            f"total {group_order.total_amount}"
        )
        return group_order

    def close(self, group_order_id: str) -> GroupOrder:
        return self._apply(group_order_id, group_orders.close_group_order)

    def confirm(self, group_order_id: str) -> GroupOrder:
        return self._apply(group_order_id, group_orders.confirm_group_order)

    def mark_paid(self, group_order_id: str, payment_method: PaymentMethod) -> GroupOrder:
        return self._apply(group_order_id, lambda g: group_orders.mark_group_order_paid(g, payment_method))

    def share(self, group_order_id: str, phone: Optional[str] = None) -> dict:
        group_order = self.get(group_order_id)
        url = self.notification_service.share_group_order(group_order, phone)
        return {"link": group_order.shareable_link, "whatsapp_url": url}

    def _apply(self, group_order_id: str, change) -> GroupOrder:
        with self.lock_service.hold("group_order", group_order_id):
            group_order = self.get(group_order_id)
            change(group_order)
            self._persist(group_order)
        logger.info(f"Group order {group_order_id} is now {group_order.status.value}")
        return group_order

    def _persist(self, group_order: GroupOrder):
        try:
            self.repo.update(group_order)
            self.repo.commit()
        except Exception:
            self.repo.rollback()
            raise
