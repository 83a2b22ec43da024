# marketplace/domain/schemas.py
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from marketplace.domain.entities import (
    CartItem,
    Coordinator,
    Customer,
    GroupOrderParticipant,
    LoyaltyProgram,
    LoyaltyRewardTier,
)
from marketplace.domain.enums import OrderStatus, PaymentMethod, PaymentProvider


class VendorIn(BaseModel):
    """Schema dla konfiguracji vendora (nazwa, dostawa, program lojalnosciowy)."""

    name: str = Field(..., min_length=1, max_length=160)
    delivery_fee: int = Field(0, ge=0, description="Default delivery fee in IDR")
    whatsapp: Optional[str] = None
    loyalty_program: Optional[LoyaltyProgram] = None


# =====================================================
# ORDERS
# =====================================================
class PlaceOrderIn(BaseModel):
    """Schema dla zlozenia zamowienia."""

    vendor_id: str
    customer: Customer
    delivery_address: str = Field(..., min_length=1)
    items: List[CartItem] = Field(..., min_length=1)
    delivery_fee: Optional[int] = Field(None, ge=0, description="Defaults to the vendor's fee")
    payment_method: PaymentMethod = PaymentMethod.CASH_ON_DELIVERY
    special_instructions: Optional[str] = Field(None, max_length=500)


class StatusUpdateIn(BaseModel):
    status: OrderStatus
    note: Optional[str] = Field(None, max_length=200)


class RejectIn(BaseModel):
    reason: str = Field(..., min_length=1, max_length=200)


class CancelIn(BaseModel):
    note: Optional[str] = Field(None, max_length=200)


class ApplyRewardIn(BaseModel):
    user_id: str


# =====================================================
# LOYALTY
# =====================================================
class LoyaltyProgressOut(BaseModel):
    current_points: int
    next_reward: Optional[LoyaltyRewardTier] = None
    progress: float

    model_config = ConfigDict(from_attributes=True)


# =====================================================
# SCHEDULED ORDERS
# =====================================================
class ScheduleOrderIn(BaseModel):
    """Schema dla zamowienia planowanego (min. 2h wyprzedzenia)."""

    vendor_id: str
    customer: Customer
    scheduled_for: datetime
    delivery_address: str = Field(..., min_length=1)
    items: List[CartItem] = Field(..., min_length=1)
    delivery_fee: Optional[int] = Field(None, ge=0)
    special_instructions: Optional[str] = Field(None, max_length=500)


class ConfirmScheduledIn(BaseModel):
    confirmed_by: str = Field(..., min_length=1)
    estimated_prep_time: Optional[int] = Field(None, gt=0, description="Minutes")


class DriverIn(BaseModel):
    driver_id: str
    driver_name: str
    driver_phone: str
    driver_whatsapp: Optional[str] = None
    vehicle_type: str
    vehicle_plate: Optional[str] = None


class PaymentIn(BaseModel):
    payment_method: PaymentMethod
    payment_provider: Optional[PaymentProvider] = None
    transfer_proof: Optional[str] = None


class CountdownOut(BaseModel):
    days: int
    hours: int
    minutes: int
    seconds: int
    is_past: bool
    driver_lead_time_minutes: int


# =====================================================
# GROUP ORDERS
# =====================================================
class GroupOrderCreateIn(BaseModel):
    coordinator: Coordinator
    delivery_address: str = Field(..., min_length=1)
    expiry_minutes: Optional[int] = Field(None, gt=0)


class JoinGroupIn(BaseModel):
    user_id: str
    user_name: str
    vendor_id: str
    vendor_name: str
    items: List[CartItem] = Field(..., min_length=1)
    delivery_fee: int = Field(0, ge=0)


class GroupPayIn(BaseModel):
    payment_method: PaymentMethod


class RestaurantSummaryOut(BaseModel):
    vendor_id: str
    vendor_name: str
    participants: List[GroupOrderParticipant]
    total_amount: int
    delivery_fee: int

    model_config = ConfigDict(from_attributes=True)


class ShareOut(BaseModel):
    link: str
    whatsapp_url: str
