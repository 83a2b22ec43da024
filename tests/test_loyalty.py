from datetime import datetime, timedelta, timezone

import pytest

from marketplace.domain import lifecycle, loyalty
from marketplace.domain.clock import month_key
from marketplace.domain.entities import DiscountBenefit, LoyaltyProgram, LoyaltyRewardTier, Vendor
from marketplace.domain.errors import AlreadyRedeemed, RewardExpired, WrongVendor


@pytest.fixture
def order(customer, items, now):
    return lifecycle.create_order("warung-1", "Warung Bu Sri", customer, "Jl. Sudirman 1", items, 10000, now=now)


def _award(vendor, order, times, now, record=None):
    for _ in range(times):
        record = loyalty.award_points(record, order, vendor, "user-1", now=now)
    return record


def test_first_order_creates_record(vendor, order, now):
    record = loyalty.award_points(None, order, vendor, "user-1", now=now)

    assert record.user_id == "user-1"
    assert record.vendor_id == "warung-1"
    assert record.total_points == 1
    assert record.current_month_points == 1
    assert record.current_month_order_count == 1
    assert record.month_key == month_key(now)
    assert record.earned_rewards == []


def test_no_program_no_points(order, now):
    vendor = Vendor(id="warung-1", name="Warung")
    assert loyalty.award_points(None, order, vendor, "user-1", now=now) is None
    inactive = Vendor(id="warung-1", name="Warung", loyalty_program=LoyaltyProgram(is_active=False))
    assert loyalty.award_points(None, order, inactive, "user-1", now=now) is None


def test_reward_minted_when_tier_crossed(vendor, order, now):
    record = _award(vendor, order, 2, now)

    assert [r.tier_id for r in record.earned_rewards] == ["tier-10"]
    reward = record.earned_rewards[0]
    assert reward.expires_at == now + timedelta(days=30)
    assert not reward.is_redeemed

    record = _award(vendor, order, 1, now, record)
    assert [r.tier_id for r in record.earned_rewards] == ["tier-10", "tier-free"]


def test_single_order_can_cross_several_tiers(order, now):
    vendor = Vendor(
        id="warung-1",
        name="Warung",
        loyalty_program=LoyaltyProgram(
            is_active=True,
            points_per_order=5,
            reward_tiers=[
                LoyaltyRewardTier(id="t2", points_required=2, benefit=DiscountBenefit(discount_percentage=5)),
                LoyaltyRewardTier(id="t4", points_required=4, benefit=DiscountBenefit(discount_percentage=10)),
                LoyaltyRewardTier(id="t9", points_required=9, benefit=DiscountBenefit(discount_percentage=20)),
            ],
        ),
    )
    record = loyalty.award_points(None, order, vendor, "user-1", now=now)
    assert sorted(r.tier_id for r in record.earned_rewards) == ["t2", "t4"]


def test_fifty_points_per_order_reaches_hundred_point_tier_on_second_order(order, now):
    vendor = Vendor(
        id="warung-1",
        name="Warung",
        loyalty_program=LoyaltyProgram(
            is_active=True,
            points_per_order=50,
            reward_tiers=[
                LoyaltyRewardTier(id="t100", points_required=100, benefit=DiscountBenefit(discount_percentage=10)),
            ],
        ),
    )
    record = loyalty.award_points(None, order, vendor, "user-1", now=now)
    assert record.current_month_points == 50
    assert record.earned_rewards == []

    record = loyalty.award_points(record, order, vendor, "user-1", now=now)
    assert record.current_month_points == 100
    assert len(record.earned_rewards) == 1
    assert record.earned_rewards[0].benefit.discount_percentage == 10


def test_month_rollover_resets_monthly_counters(vendor, order, now):
    record = _award(vendor, order, 2, now)
    next_month = datetime(2025, 4, 2, 8, 0, tzinfo=timezone.utc)

    record = loyalty.award_points(record, order, vendor, "user-1", now=next_month)

    assert record.current_month_points == 1
    assert record.current_month_order_count == 1
    assert record.total_points == 3
    assert record.month_key == month_key(next_month)


def test_december_to_january_is_a_new_month(vendor, order):
    december = datetime(2024, 12, 31, 23, 0, tzinfo=timezone.utc)
    january = datetime(2025, 1, 1, 1, 0, tzinfo=timezone.utc)
    record = loyalty.award_points(None, order, vendor, "user-1", now=december)
    record = loyalty.award_points(record, order, vendor, "user-1", now=january)
    assert record.current_month_points == 1
    assert record.total_points == 2


def test_tier_not_reminted_while_unredeemed_reward_held(vendor, order, now):
    record = _award(vendor, order, 2, now)
    next_month = now + timedelta(days=20)
    record = _award(vendor, order, 2, next_month, record)

    #nagroda z poprzedniego miesiaca nadal wazna i niewykorzystana
    assert [r.tier_id for r in record.earned_rewards] == ["tier-10"]


def test_tier_reminted_after_redemption(vendor, order, now):
    record = _award(vendor, order, 2, now)
    loyalty.redeem_reward(record.earned_rewards[0], "order-x", now=now)

    record = _award(vendor, order, 2, now + timedelta(days=20), record)
    assert [r.tier_id for r in record.earned_rewards] == ["tier-10", "tier-10"]


def test_total_points_never_decrease(vendor, order, now):
    record = None
    totals = []
    for day in range(0, 90, 10):
        record = loyalty.award_points(record, order, vendor, "user-1", now=now + timedelta(days=day))
        totals.append(record.total_points)
    assert totals == sorted(totals)
    assert totals[-1] == 9


def test_can_apply_reward_checks(vendor, order, now):
    record = _award(vendor, order, 2, now)
    reward = record.earned_rewards[0]

    loyalty.can_apply_reward(reward, "warung-1", now)
    with pytest.raises(WrongVendor):
        loyalty.can_apply_reward(reward, "other-vendor", now)
    with pytest.raises(RewardExpired):
        loyalty.can_apply_reward(reward, "warung-1", reward.expires_at)

    loyalty.redeem_reward(reward, "order-1", now=now)
    assert reward.redeemed_at == now
    with pytest.raises(AlreadyRedeemed):
        loyalty.redeem_reward(reward, "order-2", now=now)


def test_calculate_discount_floors(vendor, order, now):
    reward = _award(vendor, order, 2, now).earned_rewards[0]
    assert loyalty.calculate_discount(reward, 12345) == 1234
    assert loyalty.calculate_discount(reward, 0) == 0


def test_active_rewards_filters_expired_and_redeemed(vendor, order, now):
    record = _award(vendor, order, 3, now)
    assert len(loyalty.get_active_rewards([record], "warung-1", now)) == 2
    assert loyalty.get_active_rewards([record], "other", now) == []

    loyalty.redeem_reward(record.earned_rewards[0], "order-1", now=now)
    assert len(loyalty.get_active_rewards([record], None, now)) == 1
    assert loyalty.get_active_rewards([record], None, now + timedelta(days=31)) == []


def test_reset_monthly_points_only_touches_stale_records(vendor, order, now):
    stale = _award(vendor, order, 2, now - timedelta(days=40))
    fresh = _award(vendor, order, 1, now)

    changed = loyalty.reset_monthly_points([stale, fresh], now)

    assert changed == [stale]
    assert stale.current_month_points == 0
    assert stale.current_month_order_count == 0
    assert stale.total_points == 2
    assert fresh.current_month_points == 1


def test_progress(vendor, order, now):
    empty = loyalty.get_loyalty_progress(None, vendor)
    assert empty.current_points == 0
    assert empty.next_reward is None

    record = _award(vendor, order, 1, now)
    progress = loyalty.get_loyalty_progress(record, vendor)
    assert progress.next_reward.id == "tier-10"
    assert progress.progress == 50.0

    record = _award(vendor, order, 2, now, record)
    done = loyalty.get_loyalty_progress(record, vendor)
    assert done.next_reward is None
    assert done.progress == 100.0
