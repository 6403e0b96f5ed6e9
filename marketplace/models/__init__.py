# Import all models so SQLAlchemy metadata is populated for create_all
from marketplace.models.activity import Activity
from marketplace.models.customization_request import CustomizationRequest
from marketplace.models.dispute import Dispute
from marketplace.models.enums import (
    CustomizationStatus,
    CustomizationTransitionType,
    DisputeCategory,
    DisputeStatus,
    DisputeTargetType,
    DisputeTransitionType,
    EventStatus,
    NotificationCategory,
    NotificationPriority,
    OrderStatus,
    ResolutionOutcome,
    ShopApprovalStatus,
    UserRole,
)
from marketplace.models.event_outbox import EventOutbox
from marketplace.models.notification import Notification
from marketplace.models.order import Order
from marketplace.models.processed_event import ProcessedEvent
from marketplace.models.shop_profile import ShopProfile

__all__ = [
    "Activity",
    "CustomizationRequest",
    "CustomizationStatus",
    "CustomizationTransitionType",
    "Dispute",
    "DisputeCategory",
    "DisputeStatus",
    "DisputeTargetType",
    "DisputeTransitionType",
    "EventOutbox",
    "EventStatus",
    "Notification",
    "NotificationCategory",
    "NotificationPriority",
    "Order",
    "OrderStatus",
    "ProcessedEvent",
    "ResolutionOutcome",
    "ShopApprovalStatus",
    "UserRole",
]
