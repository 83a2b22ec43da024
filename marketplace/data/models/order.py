from sqlalchemy import Column, Integer, String, DateTime, JSON, Index

from marketplace.data.database import Base


class OrderModel(Base):
    __tablename__ = "orders"

    id = Column(String(64), primary_key=True)
    vendor_id = Column(String(64), nullable=False, index=True)
    customer_phone = Column(String(40), nullable=False, index=True)
    customer_user_id = Column(String(64), nullable=True)

    status = Column(String(32), nullable=False)  # OrderStatus
    payload = Column(JSON, nullable=False)
    version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (Index("ix_orders_vendor_status", "vendor_id", "status"),)
