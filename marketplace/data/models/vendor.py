from sqlalchemy import Column, Integer, String, DateTime, JSON
from datetime import datetime, timezone

from marketplace.data.database import Base


class VendorModel(Base):
    __tablename__ = "vendors"

    id = Column(String(64), primary_key=True)
    name = Column(String, nullable=False)

    payload = Column(JSON, nullable=False)
    version = Column(Integer, nullable=False, default=1)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
