# marketplace/repos/loyalty_repo.py
from typing import List
from sqlalchemy import select

from marketplace.data.models.loyalty import LoyaltyRecordModel
from marketplace.domain.entities import UserLoyaltyPoints
from marketplace.repos.base import VersionedRepo, to_payload


def _to_entity(row: LoyaltyRecordModel) -> UserLoyaltyPoints:
    record = UserLoyaltyPoints.model_validate(row.payload)
    record.version = row.version
    return record


class LoyaltyRepo(VersionedRepo):
    model = LoyaltyRecordModel

    def _row(self, user_id: str, vendor_id: str) -> LoyaltyRecordModel | None:
        return self.db.execute(
            select(LoyaltyRecordModel)
            .where(LoyaltyRecordModel.user_id == user_id, LoyaltyRecordModel.vendor_id == vendor_id)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def get(self, user_id: str, vendor_id: str) -> UserLoyaltyPoints | None:
        row = self._row(user_id, vendor_id)
        return _to_entity(row) if row else None

    def save(self, record: UserLoyaltyPoints) -> UserLoyaltyPoints:
        """Insert przy pierwszym zamowieniu, potem update z kontrola wersji."""
        row = self._row(record.user_id, record.vendor_id)
        if row is None:
            self.db.add(
                LoyaltyRecordModel(
                    user_id=record.user_id,
                    vendor_id=record.vendor_id,
                    month_key=record.month_key,
                    payload=to_payload(record),
                    version=1,
                )
            )
            self.db.flush()
            record.version = 1
            return record

        record.version = self._update_versioned(
            row.id,
            record.version,
            {"month_key": record.month_key, "payload": to_payload(record)},
        )
        return record

    def list_by_user(self, user_id: str) -> List[UserLoyaltyPoints]:
        stmt = (
            select(LoyaltyRecordModel)
            .where(LoyaltyRecordModel.user_id == user_id)
            .order_by(LoyaltyRecordModel.vendor_id)
        )
        return [_to_entity(r) for r in self.db.execute(stmt).scalars().all()]

    def list_stale(self, current_month_key: int) -> List[UserLoyaltyPoints]:
        stmt = select(LoyaltyRecordModel).where(LoyaltyRecordModel.month_key != current_month_key)
        return [_to_entity(r) for r in self.db.execute(stmt).scalars().all()]
