from datetime import timedelta

import pytest

from marketplace.domain import group_orders, lifecycle, loyalty, scheduling
from marketplace.domain.clock import month_key
from marketplace.domain.entities import Coordinator
from marketplace.domain.enums import OrderStatus, PaymentMethod, ScheduledOrderStatus
from marketplace.domain.errors import ConcurrencyConflict
from marketplace.repos.group_order_repo import GroupOrderRepo
from marketplace.repos.loyalty_repo import LoyaltyRepo
from marketplace.repos.order_repo import OrderRepo
from marketplace.repos.scheduled_order_repo import ScheduledOrderRepo
from marketplace.repos.vendor_repo import VendorRepo


def _order(customer, items, now, vendor_id="warung-1"):
    return lifecycle.create_order(vendor_id, "Warung", customer, "addr", items, 10000, now=now)


def _scheduled(customer, items, now, hours):
    return scheduling.create_scheduled_order(
        "warung-1", "Warung", customer, now + timedelta(hours=hours), items, 10000, "addr", now=now
    )


def test_vendor_upsert(db, vendor):
    repo = VendorRepo(db)
    repo.save(vendor)
    repo.commit()

    repo.save(vendor.model_copy(update={"delivery_fee": 12000}))
    repo.commit()

    loaded = repo.get("warung-1")
    assert loaded.delivery_fee == 12000
    assert loaded.loyalty_program.reward_tiers[0].id == "tier-free"
    assert repo.get("missing") is None


def test_order_round_trip(db, customer, items, now):
    repo = OrderRepo(db)
    order = repo.add(_order(customer, items, now))
    repo.commit()

    loaded = repo.get(order.id)
    assert loaded.model_dump() == order.model_dump()
    assert loaded.version == 1
    assert loaded.total == 65000
    assert loaded.status_history[0].timestamp == now


def test_order_update_bumps_version(db, customer, items, now):
    repo = OrderRepo(db)
    order = repo.add(_order(customer, items, now))
    repo.commit()

    lifecycle.update_status(order, OrderStatus.ACCEPTED, now=now)
    repo.update(order)
    repo.commit()

    loaded = repo.get(order.id)
    assert loaded.version == 2
    assert loaded.status == OrderStatus.ACCEPTED


def test_stale_version_conflicts(db, customer, items, now):
    repo = OrderRepo(db)
    order = repo.add(_order(customer, items, now))
    repo.commit()

    first = repo.get(order.id)
    second = repo.get(order.id)

    lifecycle.update_status(first, OrderStatus.ACCEPTED, now=now)
    repo.update(first)
    repo.commit()

    lifecycle.cancel_order(second, now=now)
    with pytest.raises(ConcurrencyConflict):
        repo.update(second)
    repo.rollback()
    assert repo.get(order.id).status == OrderStatus.ACCEPTED


def test_order_queries(db, customer, items, now):
    repo = OrderRepo(db)
    a = repo.add(_order(customer, items, now))
    b = repo.add(_order(customer, items, now + timedelta(minutes=5)))
    repo.add(_order(customer, items, now, vendor_id="other"))
    lifecycle.update_status(b, OrderStatus.ACCEPTED, now=now)
    repo.update(b)
    repo.commit()

    assert [o.id for o in repo.list_by_vendor("warung-1")] == [b.id, a.id]
    assert [o.id for o in repo.list_by_vendor("warung-1", [OrderStatus.PENDING])] == [a.id]
    assert len(repo.list_by_customer(customer.phone)) == 3
    assert repo.list_by_customer("0000") == []


def test_scheduled_queries(db, customer, items, now):
    repo = ScheduledOrderRepo(db)
    late = repo.add(_scheduled(customer, items, now, 10))
    early = repo.add(_scheduled(customer, items, now, 3))
    done = repo.add(_scheduled(customer, items, now, 6))
    for order in (early, done):
        scheduling.confirm(order, "Bu Sri", now=now)
        scheduling.process_payment(order, PaymentMethod.CASH_ON_DELIVERY, now=now)
    scheduling.activate(done, "order-x")
    scheduling.complete(done)
    repo.update(early)
    repo.update(done)
    repo.commit()

    assert [o.id for o in repo.list_by_customer(customer.phone)] == [early.id, late.id]
    assert [o.id for o in repo.list_by_customer(customer.phone, include_completed=True)] == [
        early.id,
        done.id,
        late.id,
    ]
    assert [o.id for o in repo.list_by_vendor("warung-1", [ScheduledOrderStatus.PAID])] == [early.id]

    assert repo.list_due_for_activation(now) == []
    due = repo.list_due_for_activation(early.requested_prep_start_time)
    assert [o.id for o in due] == [early.id]


def test_group_orders_by_member(db, items, now):
    repo = GroupOrderRepo(db)
    older = group_orders.create_group_order(Coordinator(id="user-1", name="Budi", phone="0812"), "addr", now=now)
    newer = group_orders.create_group_order(
        Coordinator(id="user-2", name="Sari", phone="0813"), "addr", now=now + timedelta(minutes=1)
    )
    repo.add(older)
    repo.add(newer)
    repo.commit()

    group_orders.add_participant(newer, "user-1", "Budi", "warung-1", "Warung", items, 10000, now=now)
    repo.update(newer)
    repo.commit()

    assert [g.id for g in repo.list_by_user("user-1")] == [newer.id, older.id]
    assert [g.id for g in repo.list_by_user("user-2")] == [newer.id]
    assert repo.list_by_user("nobody") == []
    assert repo.get(newer.id).total_amount == 65000


def test_loyalty_save_and_stale(db, vendor, customer, items, now):
    repo = LoyaltyRepo(db)
    order = _order(customer, items, now)
    record = loyalty.award_points(None, order, vendor, "user-1", now=now - timedelta(days=40))
    repo.save(record)
    repo.commit()

    loaded = repo.get("user-1", "warung-1")
    assert loaded.version == 1
    loaded = loyalty.award_points(loaded, order, vendor, "user-1", now=now - timedelta(days=40))
    repo.save(loaded)
    repo.commit()

    assert repo.get("user-1", "warung-1").current_month_points == 2
    assert repo.get("user-1", "warung-1").version == 2
    assert [r.vendor_id for r in repo.list_by_user("user-1")] == ["warung-1"]
    assert len(repo.list_stale(month_key(now))) == 1
    assert repo.list_stale(month_key(now - timedelta(days=40))) == []
