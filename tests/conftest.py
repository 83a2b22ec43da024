import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["CELERY_TASK_ALWAYS_EAGER"] = "1"
os.environ.setdefault("STRICT_ORDER_TRANSITIONS", "true")

from contextlib import contextmanager
from datetime import datetime, timezone

import pytest

import marketplace.data.models  # noqa: F401
from marketplace.data.database import Base, SessionLocal, engine
from marketplace.domain.entities import (
    CartItem,
    CatalogItem,
    Customer,
    DiscountBenefit,
    FreeItemBenefit,
    LoyaltyProgram,
    LoyaltyRewardTier,
    Vendor,
)
from marketplace.domain.errors import ConcurrencyConflict
from marketplace.services.notification_service import NotificationService

NOW = datetime(2025, 3, 15, 10, 0, tzinfo=timezone.utc)


class FakeLockService:
    """Lock w pamieci zamiast redisa."""

    def __init__(self):
        self.held = set()
        self.acquired = []

    @contextmanager
    def hold(self, kind, record_id):
        key = (kind, record_id)
        if key in self.held:
            raise ConcurrencyConflict(f"{kind} {record_id} is being modified by another operation")
        self.held.add(key)
        self.acquired.append(key)
        try:
            yield "test-owner"
        finally:
            self.held.discard(key)


class RecordingNotifier(NotificationService):
    """Zbiera linki wa.me zamiast wysylac je przez celery."""

    def __init__(self):
        super().__init__(region="ID")
        self.sent = []

    def _send(self, url):
        self.sent.append(url)
        return url


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def lock_service():
    return FakeLockService()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def nasi_goreng():
    return CatalogItem(id="item-1", name="Nasi Goreng", price=25000, vendor_id="warung-1")


@pytest.fixture
def es_teh():
    return CatalogItem(id="item-2", name="Es Teh", price=5000, vendor_id="warung-1")


@pytest.fixture
def items(nasi_goreng, es_teh):
    return [
        CartItem(item=nasi_goreng, quantity=2),
        CartItem(item=es_teh, quantity=1, special_instructions="less sugar"),
    ]


@pytest.fixture
def customer():
    return Customer(name="Budi", phone="081234567890", whatsapp="081234567890", user_id="user-1")


@pytest.fixture
def loyalty_program():
    return LoyaltyProgram(
        is_active=True,
        points_per_order=1,
        reward_tiers=[
            LoyaltyRewardTier(
                id="tier-free",
                points_required=3,
                benefit=FreeItemBenefit(free_item_id="item-2", free_item_name="Es Teh"),
                description="Free Es Teh",
            ),
            LoyaltyRewardTier(
                id="tier-10",
                points_required=2,
                benefit=DiscountBenefit(discount_percentage=10),
                description="10% off",
            ),
        ],
    )


@pytest.fixture
def vendor(loyalty_program):
    return Vendor(
        id="warung-1",
        name="Warung Bu Sri",
        delivery_fee=10000,
        whatsapp="081298765432",
        loyalty_program=loyalty_program,
    )
