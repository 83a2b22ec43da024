# marketplace/repos/order_repo.py
from typing import Iterable, List
from sqlalchemy import select

from marketplace.data.models.order import OrderModel
from marketplace.domain.entities import Order
from marketplace.domain.enums import OrderStatus
from marketplace.repos.base import VersionedRepo, to_payload


def _to_entity(row: OrderModel) -> Order:
    order = Order.model_validate(row.payload)
    order.version = row.version
    return order


class OrderRepo(VersionedRepo):
    model = OrderModel

    def add(self, order: Order) -> Order:
        self.db.add(
            OrderModel(
                id=order.id,
                vendor_id=order.vendor_id,
                customer_phone=order.customer.phone,
                customer_user_id=order.customer.user_id,
                status=order.status.value,
                payload=to_payload(order),
                version=1,
                created_at=order.order_time,
            )
        )
        self.db.flush()
        order.version = 1
        return order

    def update(self, order: Order) -> Order:
        order.version = self._update_versioned(
            order.id,
            order.version,
            {"status": order.status.value, "payload": to_payload(order)},
        )
        return order

    def get(self, order_id: str) -> Order | None:
        row = self.db.get(OrderModel, order_id, populate_existing=True)
        return _to_entity(row) if row else None

    def list_by_vendor(self, vendor_id: str, statuses: Iterable[OrderStatus] | None = None) -> List[Order]:
        stmt = select(OrderModel).where(OrderModel.vendor_id == vendor_id)
        if statuses:
            stmt = stmt.where(OrderModel.status.in_([OrderStatus(s).value for s in statuses]))
        stmt = stmt.order_by(OrderModel.created_at.desc())
        return [_to_entity(r) for r in self.db.execute(stmt).scalars().all()]

    def list_by_customer(self, customer_phone: str) -> List[Order]:
        stmt = (
            select(OrderModel)
            .where(OrderModel.customer_phone == customer_phone)
            .order_by(OrderModel.created_at.desc())
        )
        return [_to_entity(r) for r in self.db.execute(stmt).scalars().all()]
