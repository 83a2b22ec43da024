# marketplace/repos/group_order_repo.py
from typing import List
from sqlalchemy import select

from marketplace.data.models.group_order import GroupOrderModel, GroupOrderMemberModel
from marketplace.domain.entities import GroupOrder
from marketplace.repos.base import VersionedRepo, to_payload


def _to_entity(row: GroupOrderModel) -> GroupOrder:
    group_order = GroupOrder.model_validate(row.payload)
    group_order.version = row.version
    return group_order


class GroupOrderRepo(VersionedRepo):
    model = GroupOrderModel

    def add(self, group_order: GroupOrder) -> GroupOrder:
        self.db.add(
            GroupOrderModel(
                id=group_order.id,
                coordinator_id=group_order.coordinator.id,
                status=group_order.status.value,
                created_at=group_order.created_at,
                payload=to_payload(group_order),
                version=1,
            )
        )
        self.db.flush()
        self._sync_members(group_order)
        group_order.version = 1
        return group_order

    def update(self, group_order: GroupOrder) -> GroupOrder:
        group_order.version = self._update_versioned(
            group_order.id,
            group_order.version,
            {"status": group_order.status.value, "payload": to_payload(group_order)},
        )
        self._sync_members(group_order)
        return group_order

    def _sync_members(self, group_order: GroupOrder):
        known = set(
            self.db.execute(
                select(GroupOrderMemberModel.user_id).where(GroupOrderMemberModel.group_order_id == group_order.id)
            ).scalars().all()
        )
        for user_id in sorted(group_order.member_ids - known):
            self.db.add(GroupOrderMemberModel(group_order_id=group_order.id, user_id=user_id))
        self.db.flush()

    def get(self, group_order_id: str) -> GroupOrder | None:
        row = self.db.get(GroupOrderModel, group_order_id, populate_existing=True)
        return _to_entity(row) if row else None

    def list_by_user(self, user_id: str) -> List[GroupOrder]:
        """Zamowienia gdzie user jest koordynatorem albo uczestnikiem, najnowsze pierwsze."""
        stmt = (
            select(GroupOrderModel)
            .join(GroupOrderMemberModel, GroupOrderMemberModel.group_order_id == GroupOrderModel.id)
            .where(GroupOrderMemberModel.user_id == user_id)
            .order_by(GroupOrderModel.created_at.desc())
        )
        return [_to_entity(r) for r in self.db.execute(stmt).scalars().unique().all()]
