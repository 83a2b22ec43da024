from sqlalchemy import Column, Integer, String, JSON, UniqueConstraint

from marketplace.data.database import Base


class LoyaltyRecordModel(Base):
    __tablename__ = "loyalty_records"

    id = Column(Integer, primary_key=True)
    user_id = Column(String(64), nullable=False, index=True)
    vendor_id = Column(String(64), nullable=False)
    month_key = Column(Integer, nullable=False, index=True)

    payload = Column(JSON, nullable=False)
    version = Column(Integer, nullable=False, default=1)

    __table_args__ = (UniqueConstraint("user_id", "vendor_id", name="u_loyalty_user_vendor"),)
