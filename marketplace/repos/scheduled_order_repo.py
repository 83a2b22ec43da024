# marketplace/repos/scheduled_order_repo.py
from datetime import datetime
from typing import Iterable, List
from sqlalchemy import select

from marketplace.data.models.scheduled_order import ScheduledOrderModel
from marketplace.domain.entities import ScheduledOrder
from marketplace.domain.enums import ScheduledOrderStatus
from marketplace.repos.base import VersionedRepo, to_payload


def _to_entity(row: ScheduledOrderModel) -> ScheduledOrder:
    order = ScheduledOrder.model_validate(row.payload)
    order.version = row.version
    return order


class ScheduledOrderRepo(VersionedRepo):
    model = ScheduledOrderModel

    def add(self, order: ScheduledOrder) -> ScheduledOrder:
        self.db.add(
            ScheduledOrderModel(
                id=order.id,
                vendor_id=order.vendor_id,
                customer_phone=order.customer.phone,
                status=order.status.value,
                scheduled_for=order.scheduled_for,
                prep_start_at=order.requested_prep_start_time,
                payload=to_payload(order),
                version=1,
            )
        )
        self.db.flush()
        order.version = 1
        return order

    def update(self, order: ScheduledOrder) -> ScheduledOrder:
        order.version = self._update_versioned(
            order.id,
            order.version,
            {"status": order.status.value, "payload": to_payload(order)},
        )
        return order

    def get(self, order_id: str) -> ScheduledOrder | None:
        row = self.db.get(ScheduledOrderModel, order_id, populate_existing=True)
        return _to_entity(row) if row else None

    def list_by_customer(self, customer_phone: str, include_completed: bool = False) -> List[ScheduledOrder]:
        stmt = select(ScheduledOrderModel).where(ScheduledOrderModel.customer_phone == customer_phone)
        if not include_completed:
            stmt = stmt.where(ScheduledOrderModel.status != ScheduledOrderStatus.COMPLETED.value)
        stmt = stmt.order_by(ScheduledOrderModel.scheduled_for.asc())
        return [_to_entity(r) for r in self.db.execute(stmt).scalars().all()]

    def list_by_vendor(
        self,
        vendor_id: str,
        statuses: Iterable[ScheduledOrderStatus] | None = None,
    ) -> List[ScheduledOrder]:
        stmt = select(ScheduledOrderModel).where(ScheduledOrderModel.vendor_id == vendor_id)
        if statuses:
            stmt = stmt.where(ScheduledOrderModel.status.in_([ScheduledOrderStatus(s).value for s in statuses]))
        stmt = stmt.order_by(ScheduledOrderModel.scheduled_for.asc())
        return [_to_entity(r) for r in self.db.execute(stmt).scalars().all()]

    def list_due_for_activation(self, now: datetime) -> List[ScheduledOrder]:
        stmt = (
            select(ScheduledOrderModel)
            .where(
                ScheduledOrderModel.status == ScheduledOrderStatus.PAID.value,
                ScheduledOrderModel.prep_start_at <= now,
            )
            .order_by(ScheduledOrderModel.prep_start_at.asc())
        )
        return [_to_entity(r) for r in self.db.execute(stmt).scalars().all()]
