from sqlalchemy import Column, Integer, String, DateTime, JSON

from marketplace.data.database import Base


class ScheduledOrderModel(Base):
    __tablename__ = "scheduled_orders"

    id = Column(String(64), primary_key=True)
    vendor_id = Column(String(64), nullable=False, index=True)
    customer_phone = Column(String(40), nullable=False, index=True)

    status = Column(String(32), nullable=False, index=True)  # ScheduledOrderStatus
    scheduled_for = Column(DateTime(timezone=True), nullable=False)
    prep_start_at = Column(DateTime(timezone=True), nullable=False, index=True)

    payload = Column(JSON, nullable=False)
    version = Column(Integer, nullable=False, default=1)
