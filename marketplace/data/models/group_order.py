from sqlalchemy import Column, Integer, String, DateTime, JSON, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship

from marketplace.data.database import Base


class GroupOrderModel(Base):
    __tablename__ = "group_orders"

    id = Column(String(64), primary_key=True)
    coordinator_id = Column(String(64), nullable=False, index=True)
    status = Column(String(32), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)

    payload = Column(JSON, nullable=False)
    version = Column(Integer, nullable=False, default=1)

    members = relationship(
        "GroupOrderMemberModel",
        back_populates="group_order",
        cascade="all, delete-orphan",
    )


class GroupOrderMemberModel(Base):
    """Indeks uczestnikow - wyszukiwanie zamowien grupowych po userze."""

    __tablename__ = "group_order_members"

    id = Column(Integer, primary_key=True)
    group_order_id = Column(String(64), ForeignKey("group_orders.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(String(64), nullable=False, index=True)

    group_order = relationship("GroupOrderModel", back_populates="members")

    __table_args__ = (UniqueConstraint("group_order_id", "user_id", name="u_group_member"),)
