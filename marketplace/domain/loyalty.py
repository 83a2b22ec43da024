# marketplace/domain/loyalty.py
"""
Program lojalnosciowy: punkty za zamowienia i nagrody za progi.

award_points wywolywane po zakonczeniu zamowienia (delivered).
Miesieczny licznik resetuje sie przy zmianie miesiaca (month_key),
total_points nigdy nie maleje. Jedno zamowienie moze przekroczyc kilka
progow naraz - wtedy powstaje kilka nagrod.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable, List, Optional

from marketplace.domain.clock import ensure_aware, month_key, utcnow
from marketplace.domain.entities import (
    DiscountBenefit,
    EarnedReward,
    LoyaltyRewardTier,
    Order,
    UserLoyaltyPoints,
    Vendor,
    new_id,
)
from marketplace.domain.errors import AlreadyRedeemed, RewardExpired, WrongVendor
from marketplace.utils.settings import REWARD_VALIDITY_DAYS


@dataclass
class LoyaltyProgress:
    current_points: int
    next_reward: Optional[LoyaltyRewardTier]
    progress: float


def award_points(
    existing: Optional[UserLoyaltyPoints],
    order: Order,
    vendor: Vendor,
    user_id: str,
    now: Optional[datetime] = None,
) -> Optional[UserLoyaltyPoints]:
    program = vendor.loyalty_program
    if program is None or not program.is_active:
        return None

    now = ensure_aware(now or utcnow())
    current_key = month_key(now)
    points = program.points_per_order

    record = existing or UserLoyaltyPoints(
        user_id=user_id,
        vendor_id=vendor.id,
        vendor_name=vendor.name,
        month_key=current_key,
    )

    same_month = existing is not None and existing.month_key == current_key
    previous_month_points = record.current_month_points if same_month else 0

    if same_month:
        record.current_month_points += points
        record.current_month_order_count += 1
    else:
        record.current_month_points = points
        record.current_month_order_count = 1

    record.total_points += points
    record.month_key = current_key
    record.vendor_name = vendor.name
    record.last_order_at = order.order_time

    record.earned_rewards.extend(
        _mint_crossed_tiers(
            record.current_month_points,
            previous_month_points,
            program.reward_tiers,
            vendor,
            record.earned_rewards,
            now,
        )
    )
    return record


def _mint_crossed_tiers(
    current_points: int,
    previous_points: int,
    tiers: Iterable[LoyaltyRewardTier],
    vendor: Vendor,
    existing_rewards: List[EarnedReward],
    now: datetime,
) -> List[EarnedReward]:
    minted: List[EarnedReward] = []
    for tier in sorted(tiers, key=lambda t: t.points_required):
        crossed = previous_points < tier.points_required <= current_points
        if not crossed:
            continue

        already_held = any(
            r.tier_id == tier.id and not r.is_redeemed and ensure_aware(r.expires_at) > now
            for r in existing_rewards
        )
        if already_held:
            continue

        minted.append(
            EarnedReward(
                id=new_id("reward"),
                tier_id=tier.id,
                vendor_id=vendor.id,
                vendor_name=vendor.name,
                benefit=tier.benefit,
                description=tier.description,
                earned_at=now,
                expires_at=now + timedelta(days=tier.validity_days or REWARD_VALIDITY_DAYS),
            )
        )
    return minted


def can_apply_reward(reward: EarnedReward, vendor_id: Optional[str] = None, now: Optional[datetime] = None) -> None:
    """Raises AlreadyRedeemed / RewardExpired / WrongVendor, in that order."""
    now = ensure_aware(now or utcnow())
    if reward.is_redeemed:
        raise AlreadyRedeemed(reward.id)
    if ensure_aware(reward.expires_at) <= now:
        raise RewardExpired(reward.id)
    if vendor_id is not None and reward.vendor_id != vendor_id:
        raise WrongVendor(reward.id, vendor_id)


def redeem_reward(
    reward: EarnedReward,
    order_id: str,
    vendor_id: Optional[str] = None,
    now: Optional[datetime] = None,
) -> EarnedReward:
    now = ensure_aware(now or utcnow())
    can_apply_reward(reward, vendor_id, now)
    reward.is_redeemed = True
    reward.redeemed_at = now
    reward.order_id = order_id
    return reward


def calculate_discount(reward: EarnedReward, subtotal: int) -> int:
    #free item nie daje rabatu kwotowego, pozycja dokladana do zamowienia
    if isinstance(reward.benefit, DiscountBenefit):
        return subtotal * reward.benefit.discount_percentage // 100
    return 0


def get_active_rewards(
    records: Iterable[UserLoyaltyPoints],
    vendor_id: Optional[str] = None,
    now: Optional[datetime] = None,
) -> List[EarnedReward]:
    now = ensure_aware(now or utcnow())
    return [
        r
        for record in records
        if vendor_id is None or record.vendor_id == vendor_id
        for r in record.earned_rewards
        if not r.is_redeemed and ensure_aware(r.expires_at) > now
    ]


def find_reward(records: Iterable[UserLoyaltyPoints], reward_id: str) -> Optional[EarnedReward]:
    for record in records:
        for reward in record.earned_rewards:
            if reward.id == reward_id:
                return reward
    return None


def reset_monthly_points(records: Iterable[UserLoyaltyPoints], now: Optional[datetime] = None) -> List[UserLoyaltyPoints]:
    """Zeruje licznik miesieczny rekordow z poprzedniego miesiaca. Zwraca zmienione rekordy."""
    current_key = month_key(ensure_aware(now or utcnow()))
    changed = []
    for record in records:
        if record.month_key != current_key:
            record.current_month_points = 0
            record.current_month_order_count = 0
            record.month_key = current_key
            changed.append(record)
    return changed


def get_loyalty_progress(record: Optional[UserLoyaltyPoints], vendor: Vendor) -> LoyaltyProgress:
    program = vendor.loyalty_program
    if program is None or not program.is_active or record is None:
        return LoyaltyProgress(current_points=0, next_reward=None, progress=0.0)

    current = record.current_month_points
    tiers = sorted(program.reward_tiers, key=lambda t: t.points_required)
    next_tier = next((t for t in tiers if t.points_required > current), None)
    if next_tier is None:
        return LoyaltyProgress(current_points=current, next_reward=None, progress=100.0)
    return LoyaltyProgress(
        current_points=current,
        next_reward=next_tier,
        progress=min(100.0, current / next_tier.points_required * 100),
    )
