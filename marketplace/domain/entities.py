# marketplace/domain/entities.py
"""
Encje domenowe (zapisywane jako dokumenty JSON).

Kwoty sa w calych rupiach (int), czasy zawsze UTC.
"""
import uuid
from datetime import datetime
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, Field, computed_field

from marketplace.domain.enums import (
    GroupOrderStatus,
    OrderStatus,
    PaymentMethod,
    PaymentProvider,
    ScheduledOrderStatus,
)
from marketplace.utils.settings import DEFAULT_POINTS_PER_ORDER


def new_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:16]}"


# =====================================================
# CATALOG / CART
# =====================================================
class CatalogItem(BaseModel):
    id: str
    name: str
    price: int = Field(..., ge=0, description="Unit price in IDR")
    vendor_id: Optional[str] = None


class CartItem(BaseModel):
    item: CatalogItem
    quantity: int = Field(..., gt=0)
    special_instructions: Optional[str] = Field(None, max_length=500)

    @property
    def line_total(self) -> int:
        return self.item.price * self.quantity


def cart_subtotal(items: List[CartItem]) -> int:
    return sum((i.line_total for i in items), 0)


class Customer(BaseModel):
    name: str = Field(..., min_length=1)
    phone: str = Field(..., min_length=3)
    whatsapp: Optional[str] = None
    user_id: Optional[str] = None


# =====================================================
# ORDER
# =====================================================
class StatusHistoryEntry(BaseModel):
    status: OrderStatus
    timestamp: datetime
    note: Optional[str] = None


class Order(BaseModel):
    """Zamowienie jedzenia u jednego vendora."""

    id: str
    vendor_id: str
    vendor_name: str
    customer: Customer
    delivery_address: str
    items: List[CartItem]
    delivery_fee: int = Field(0, ge=0)
    discount: int = Field(0, ge=0)
    applied_reward_id: Optional[str] = None
    payment_method: PaymentMethod = PaymentMethod.CASH_ON_DELIVERY
    special_instructions: Optional[str] = None
    status: OrderStatus = OrderStatus.PENDING
    status_history: List[StatusHistoryEntry] = Field(default_factory=list)
    order_time: datetime
    scheduled_order_id: Optional[str] = None
    version: int = 0

    #subtotal zawsze liczony z pozycji, nigdy ustawiany recznie
    @computed_field
    @property
    def subtotal(self) -> int:
        return cart_subtotal(self.items)

    @computed_field
    @property
    def total(self) -> int:
        return self.subtotal + self.delivery_fee

    @computed_field
    @property
    def amount_due(self) -> int:
        return max(0, self.total - self.discount)


# =====================================================
# LOYALTY
# =====================================================
class DiscountBenefit(BaseModel):
    reward_type: Literal["discount"] = "discount"
    discount_percentage: int = Field(..., gt=0, le=100)


class FreeItemBenefit(BaseModel):
    reward_type: Literal["free_item"] = "free_item"
    free_item_id: str
    free_item_name: Optional[str] = None


RewardBenefit = Annotated[Union[DiscountBenefit, FreeItemBenefit], Field(discriminator="reward_type")]


class LoyaltyRewardTier(BaseModel):
    id: str
    points_required: int = Field(..., gt=0)
    benefit: RewardBenefit
    description: str = ""
    validity_days: Optional[int] = Field(None, gt=0)


class LoyaltyProgram(BaseModel):
    is_active: bool = False
    points_per_order: int = Field(DEFAULT_POINTS_PER_ORDER, gt=0)
    reward_tiers: List[LoyaltyRewardTier] = Field(default_factory=list)


class Vendor(BaseModel):
    id: str
    name: str
    delivery_fee: int = Field(0, ge=0)
    whatsapp: Optional[str] = None
    loyalty_program: Optional[LoyaltyProgram] = None


class EarnedReward(BaseModel):
    id: str
    tier_id: str
    vendor_id: str
    vendor_name: str
    benefit: RewardBenefit
    description: str = ""
    earned_at: datetime
    expires_at: datetime
    is_redeemed: bool = False
    redeemed_at: Optional[datetime] = None
    order_id: Optional[str] = None


class UserLoyaltyPoints(BaseModel):
    """Punkty klienta u jednego vendora."""

    user_id: str
    vendor_id: str
    vendor_name: str
    total_points: int = 0
    current_month_points: int = 0
    current_month_order_count: int = 0
    last_order_at: Optional[datetime] = None
    month_key: int
    earned_rewards: List[EarnedReward] = Field(default_factory=list)
    version: int = 0


# =====================================================
# SCHEDULED ORDER
# =====================================================
class DriverInfo(BaseModel):
    driver_id: str
    driver_name: str
    driver_phone: str
    driver_whatsapp: Optional[str] = None
    vehicle_type: str
    vehicle_plate: Optional[str] = None
    booked_at: Optional[datetime] = None


class ScheduledOrder(BaseModel):
    """Zamowienie na przyszly termin, zamieniane w Order przy aktywacji."""

    id: str
    vendor_id: str
    vendor_name: str
    customer: Customer
    delivery_address: str
    items: List[CartItem]
    delivery_fee: int = Field(0, ge=0)
    special_instructions: Optional[str] = None
    scheduled_for: datetime
    requested_prep_start_time: datetime
    status: ScheduledOrderStatus = ScheduledOrderStatus.PENDING_CONFIRMATION
    created_at: datetime
    confirmed_at: Optional[datetime] = None
    confirmed_by: Optional[str] = None
    estimated_prep_time: Optional[int] = None
    rejection_reason: Optional[str] = None
    payment_method: Optional[PaymentMethod] = None
    payment_provider: Optional[PaymentProvider] = None
    transfer_proof: Optional[str] = None
    paid_at: Optional[datetime] = None
    driver_info: Optional[DriverInfo] = None
    actual_order_id: Optional[str] = None
    version: int = 0

    @computed_field
    @property
    def subtotal(self) -> int:
        return cart_subtotal(self.items)

    @computed_field
    @property
    def total(self) -> int:
        return self.subtotal + self.delivery_fee


# =====================================================
# GROUP ORDER
# =====================================================
class Coordinator(BaseModel):
    id: str
    name: str
    phone: str


class GroupOrderParticipant(BaseModel):
    user_id: str
    user_name: str
    vendor_id: str
    vendor_name: str
    items: List[CartItem]
    subtotal: int
    delivery_fee: int = Field(0, ge=0)
    total: int
    joined_at: datetime


class GroupOrder(BaseModel):
    id: str
    coordinator: Coordinator
    status: GroupOrderStatus = GroupOrderStatus.OPEN
    created_at: datetime
    expires_at: Optional[datetime] = None
    participants: List[GroupOrderParticipant] = Field(default_factory=list)
    total_amount: int = 0
    total_delivery_fees: int = 0
    delivery_address: str
    payment_method: Optional[PaymentMethod] = None
    shareable_link: str
    version: int = 0

    @property
    def member_ids(self) -> set[str]:
        return {self.coordinator.id} | {p.user_id for p in self.participants}
