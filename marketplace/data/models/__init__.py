#import wszystkich modeli zeby SQLAlchemy je zarejestrowal w base metadata

from marketplace.data.models.vendor import VendorModel
from marketplace.data.models.order import OrderModel
from marketplace.data.models.scheduled_order import ScheduledOrderModel
from marketplace.data.models.group_order import GroupOrderModel, GroupOrderMemberModel
from marketplace.data.models.loyalty import LoyaltyRecordModel

__all__ = [
    "VendorModel",
    "OrderModel",
    "ScheduledOrderModel",
    "GroupOrderModel",
    "GroupOrderMemberModel",
    "LoyaltyRecordModel",
]
