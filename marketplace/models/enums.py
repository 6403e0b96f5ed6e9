import enum


class UserRole(str, enum.Enum):
    CUSTOMER = "customer"
    DESIGNER = "designer"
    BUSINESS_OWNER = "business_owner"
    ADMIN = "admin"


class EventStatus(str, enum.Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


# ── Customization requests ──────────────────────────────────────────────


class CustomizationStatus(str, enum.Enum):
    PENDING_DESIGNER_REVIEW = "pending_designer_review"
    IN_PROGRESS = "in_progress"
    AWAITING_CUSTOMER_APPROVAL = "awaiting_customer_approval"
    APPROVED = "approved"
    REJECTED = "rejected"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class CustomizationTransitionType(str, enum.Enum):
    CLAIM = "claim"
    SELECT_SHOP = "select_shop"
    SUBMIT_FINAL = "submit_final"
    APPROVE = "approve"
    REJECT = "reject"
    RESUBMIT = "resubmit"
    COMPLETE = "complete"
    CANCEL = "cancel"


# ── Shops & orders ──────────────────────────────────────────────────────


class ShopApprovalStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class OrderStatus(str, enum.Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


# ── Disputes ────────────────────────────────────────────────────────────


class DisputeStatus(str, enum.Enum):
    FILED = "filed"
    NEGOTIATING = "negotiating"
    RESOLVED = "resolved"
    ESCALATED = "escalated"
    CLOSED = "closed"


class DisputeTransitionType(str, enum.Enum):
    START_NEGOTIATION = "start_negotiation"
    RESOLVE = "resolve"
    CLOSE = "close"
    ESCALATE = "escalate"
    ADMIN_DECIDE = "admin_decide"
    WITHDRAW = "withdraw"


class DisputeTargetType(str, enum.Enum):
    ORDER = "order"
    CUSTOMIZATION_REQUEST = "customization_request"


class DisputeCategory(str, enum.Enum):
    DESIGN_GHOSTING = "design_ghosting"
    DESIGN_QUALITY_MISMATCH = "design_quality_mismatch"
    DESIGN_COPYRIGHT_INFRINGEMENT = "design_copyright_infringement"
    SHIPPING_NOT_RECEIVED = "shipping_not_received"
    SHIPPING_DAMAGED = "shipping_damaged"
    SHIPPING_WRONG_ITEM = "shipping_wrong_item"
    SHIPPING_PRINT_QUALITY = "shipping_print_quality"
    SHIPPING_LATE_DELIVERY = "shipping_late_delivery"
    SHIPPING_INCOMPLETE_ORDER = "shipping_incomplete_order"


class ResolutionOutcome(str, enum.Enum):
    REFUNDED = "refunded"
    RELEASED = "released"
    DISMISSED = "dismissed"
    PARTIAL_REFUND = "partial_refund"


# ── Notifications ───────────────────────────────────────────────────────


class NotificationCategory(str, enum.Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


class NotificationPriority(str, enum.Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"
