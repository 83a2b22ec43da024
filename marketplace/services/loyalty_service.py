from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from marketplace.domain import loyalty
from marketplace.domain.clock import month_key, utcnow
from marketplace.domain.entities import EarnedReward, Order, UserLoyaltyPoints
from marketplace.domain.errors import ConcurrencyConflict, RecordNotFound
from marketplace.repos.loyalty_repo import LoyaltyRepo
from marketplace.repos.vendor_repo import VendorRepo
from marketplace.services.lock_service import LockService
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)


class LoyaltyService:
    """
    Punkty i nagrody per (user, vendor).
    commands: award_for_order, reset_monthly_points
    query: get_records, get_active_rewards, get_progress
    """

    def __init__(self, db: Session, lock_service: LockService | None = None):
        self.repo = LoyaltyRepo(db)
        self.vendors = VendorRepo(db)
        self.lock_service = lock_service or LockService()

    @staticmethod
    def lock_id(user_id: str, vendor_id: str) -> str:
        return f"{user_id}:{vendor_id}"

    #commands
    def award_for_order(
        self,
        order: Order,
        now: Optional[datetime] = None,
        commit: bool = True,
    ) -> Optional[UserLoyaltyPoints]:
        """Wolane gdy zamowienie jest delivered. Bez user_id albo programu -> None."""
        user_id = order.customer.user_id
        if not user_id:
            return None
        vendor = self.vendors.get(order.vendor_id)
        if vendor is None:
            logger.warning(f"Order {order.id}: vendor {order.vendor_id} not configured, no loyalty points")
            return None

        with self.lock_service.hold("loyalty", self.lock_id(user_id, vendor.id)):
            existing = self.repo.get(user_id, vendor.id)
            rewards_before = len(existing.earned_rewards) if existing else 0
            record = loyalty.award_points(existing, order, vendor, user_id, now=now)
            if record is None:
                return None
            try:
                self.repo.save(record)
                if commit:
                    self.repo.commit()
            except Exception:
                if commit:
                    self.repo.rollback()
                raise

        minted = len(record.earned_rewards) - rewards_before
        logger.info(
            f"User {user_id} @ {vendor.id}: {record.current_month_points} pts this month, "
            f"{record.total_points} total, {minted} reward(s) minted"
        )
        return record

    def reset_monthly_points(self, now: Optional[datetime] = None) -> int:
        now = now or utcnow()
        stale = self.repo.list_stale(month_key(now))
        reset = 0
        for candidate in stale:
            try:
                reset += self._reset_one(candidate.user_id, candidate.vendor_id, now)
            except ConcurrencyConflict as e:
                #rekord zmieniany wlasnie przez naliczanie punktow, nastepny przebieg go podejmie
                logger.warning(f"Skipping monthly reset of {candidate.user_id}@{candidate.vendor_id}: {e}")
        logger.info(f"Monthly loyalty reset: {reset} record(s)")
        return reset

    def _reset_one(self, user_id: str, vendor_id: str, now: datetime) -> int:
        with self.lock_service.hold("loyalty", self.lock_id(user_id, vendor_id)):
            record = self.repo.get(user_id, vendor_id)
            if record is None or not loyalty.reset_monthly_points([record], now):
                return 0
            try:
                self.repo.save(record)
                self.repo.commit()
            except Exception:
                self.repo.rollback()
                raise
        return 1

    #query
    def get_records(self, user_id: str) -> List[UserLoyaltyPoints]:
        return self.repo.list_by_user(user_id)

    def get_record(self, user_id: str, vendor_id: str) -> Optional[UserLoyaltyPoints]:
        return self.repo.get(user_id, vendor_id)

    def get_active_rewards(
        self,
        user_id: str,
        vendor_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> List[EarnedReward]:
        return loyalty.get_active_rewards(self.repo.list_by_user(user_id), vendor_id, now)

    def get_progress(self, user_id: str, vendor_id: str) -> loyalty.LoyaltyProgress:
        vendor = self.vendors.get(vendor_id)
        if vendor is None:
            raise RecordNotFound("vendor", vendor_id)
        return loyalty.get_loyalty_progress(self.repo.get(user_id, vendor_id), vendor)
