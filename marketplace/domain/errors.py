# marketplace/domain/errors.py


class MarketplaceError(Exception):
    """Base for every domain rule violation returned to callers."""


class InvalidTransition(MarketplaceError, ValueError):
    def __init__(self, current, requested):
        self.current = getattr(current, "value", current)
        self.requested = getattr(requested, "value", requested)
        super().__init__(f"Cannot change status from '{self.current}' to '{self.requested}'")


class InsufficientAdvanceNotice(MarketplaceError, ValueError):
    def __init__(self, hours_until: float, minimum_hours: float):
        self.hours_until = hours_until
        self.minimum_hours = minimum_hours
        self.shortfall_hours = minimum_hours - hours_until
        super().__init__(
            f"Orders must be scheduled at least {minimum_hours:g} hours in advance "
            f"(short by {self.shortfall_hours:.2f} h)"
        )


class GroupOrderError(MarketplaceError, ValueError):
    pass


class GroupClosed(GroupOrderError):
    def __init__(self, group_order_id: str):
        super().__init__(f"Group order {group_order_id} is closed")


class GroupExpired(GroupOrderError):
    def __init__(self, group_order_id: str):
        super().__init__(f"Group order {group_order_id} has expired")


class EmptyGroup(GroupOrderError):
    def __init__(self, group_order_id: str):
        super().__init__(f"Cannot close group order {group_order_id} with no participants")


class RewardNotApplicable(MarketplaceError, ValueError):
    pass


class AlreadyRedeemed(RewardNotApplicable):
    def __init__(self, reward_id: str):
        super().__init__(f"Reward {reward_id} already redeemed")


class RewardExpired(RewardNotApplicable):
    def __init__(self, reward_id: str):
        super().__init__(f"Reward {reward_id} expired")


class WrongVendor(RewardNotApplicable):
    def __init__(self, reward_id: str, vendor_id: str):
        super().__init__(f"Reward {reward_id} is not valid for vendor {vendor_id}")


class WrongCustomer(RewardNotApplicable):
    def __init__(self, reward_id: str, order_id: str):
        super().__init__(f"Reward {reward_id} belongs to another customer than order {order_id}")


class RecordNotFound(MarketplaceError, LookupError):
    def __init__(self, kind: str, record_id):
        self.kind = kind
        self.record_id = record_id
        super().__init__(f"{kind} {record_id} not found")


class ConcurrencyConflict(MarketplaceError, RuntimeError):
    pass
