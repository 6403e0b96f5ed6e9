"""Side effects of workflow events: one activity record plus counter-party notifications.

Runs inside the outbox worker's sync session. Activity writes are mandatory
(a failure fails the event, which is retried); a notification that cannot
be built is skipped and reported back as a soft warning.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass

from sqlalchemy.orm import Session

from marketplace.models.activity import Activity
from marketplace.models.enums import NotificationCategory, NotificationPriority, UserRole
from marketplace.models.notification import Notification
from marketplace.modules.customization import constants as customization_events
from marketplace.modules.dispute import constants as dispute_events
from marketplace.modules.events.handlers import EventHandlerRegistry
from marketplace.modules.order import constants as order_events

logger = logging.getLogger(__name__)


@dataclass
class NotificationDraft:
    type: str
    title: str
    message: str
    recipient_id: str | None = None
    recipient_role: str | None = None
    category: NotificationCategory = NotificationCategory.INFO
    priority: NotificationPriority = NotificationPriority.NORMAL
    action_url: str | None = None


def _no_notifications(payload: dict) -> list[NotificationDraft]:
    return []


@dataclass(frozen=True)
class EventRule:
    target_type: str
    target_key: str
    describe: Callable[[dict], str]
    notify: Callable[[dict], list[NotificationDraft]] = _no_notifications


def _others(payload: dict, *keys: str) -> list[str]:
    """Distinct non-empty party ids under ``keys``, excluding the actor."""
    actor = payload.get("actor_id")
    recipients: list[str] = []
    for key in keys:
        value = payload.get(key)
        if value and value != actor and value not in recipients:
            recipients.append(value)
    return recipients


def _request_url(payload: dict) -> str:
    return f"/customizations/{payload['request_id']}"


def _dispute_url(payload: dict) -> str:
    return f"/disputes/{payload['dispute_id']}"


def _order_url(payload: dict) -> str:
    return f"/orders/{payload['order_id']}"


def _product(payload: dict) -> str:
    return payload.get("product_name") or "your product"


# ── Customization requests ──────────────────────────────────────────────


def _notify_claimed(payload: dict) -> list[NotificationDraft]:
    return [
        NotificationDraft(
            recipient_id=payload["customer_id"],
            type="customization_assigned",
            title="Designer Assigned",
            message=f"A designer has started working on your customization for {_product(payload)}.",
            action_url=_request_url(payload),
        )
    ]


def _notify_shop_selected(payload: dict) -> list[NotificationDraft]:
    drafts = [
        NotificationDraft(
            recipient_id=payload["shop_owner_id"],
            type="customization_shop_selected",
            title="New Print Job",
            message=f"A customer selected your shop to print a custom {_product(payload)}.",
            priority=NotificationPriority.HIGH,
            action_url=_request_url(payload),
        )
    ]
    if payload.get("designer_id"):
        drafts.append(
            NotificationDraft(
                recipient_id=payload["designer_id"],
                type="customization_shop_selected",
                title="Printing Shop Selected",
                message=f"The customer chose {payload.get('shop_name', 'a shop')} to print this design.",
                action_url=_request_url(payload),
            )
        )
    return drafts


def _notify_submitted(payload: dict) -> list[NotificationDraft]:
    return [
        NotificationDraft(
            recipient_id=payload["customer_id"],
            type="customization_ready_for_review",
            title="Design Ready for Review",
            message=f"Your custom design for {_product(payload)} is ready. Please review and approve it.",
            category=NotificationCategory.SUCCESS,
            priority=NotificationPriority.HIGH,
            action_url=_request_url(payload),
        )
    ]


def _notify_approved(payload: dict) -> list[NotificationDraft]:
    return [
        NotificationDraft(
            recipient_id=payload["designer_id"],
            type="customization_approved",
            title="Design Approved",
            message=f"The customer approved your design for {_product(payload)}.",
            category=NotificationCategory.SUCCESS,
            action_url=_request_url(payload),
        )
    ]


def _notify_rejected(payload: dict) -> list[NotificationDraft]:
    return [
        NotificationDraft(
            recipient_id=payload["designer_id"],
            type="customization_rejected",
            title="Design Needs Changes",
            message=f"The customer rejected the design for {_product(payload)}: {payload['reason']}",
            category=NotificationCategory.WARNING,
            priority=NotificationPriority.HIGH,
            action_url=_request_url(payload),
        )
    ]


def _notify_resubmitted(payload: dict) -> list[NotificationDraft]:
    return [
        NotificationDraft(
            recipient_id=payload["customer_id"],
            type="customization_revising",
            title="Design Being Revised",
            message=f"The designer is revising your design for {_product(payload)}.",
            action_url=_request_url(payload),
        )
    ]


def _notify_completed(payload: dict) -> list[NotificationDraft]:
    return [
        NotificationDraft(
            recipient_id=recipient,
            type="customization_completed",
            title="Customization Completed",
            message=f"An order was placed for the custom {_product(payload)}.",
            category=NotificationCategory.SUCCESS,
            action_url=_request_url(payload),
        )
        for recipient in _others(payload, "designer_id")
    ]


def _notify_cancelled(payload: dict) -> list[NotificationDraft]:
    reason = payload.get("reason")
    suffix = f" Reason: {reason}" if reason else ""
    return [
        NotificationDraft(
            recipient_id=recipient,
            type="customization_cancelled",
            title="Customization Cancelled",
            message=f"The customization request for {_product(payload)} was cancelled.{suffix}",
            category=NotificationCategory.WARNING,
            action_url=_request_url(payload),
        )
        for recipient in _others(payload, "customer_id", "designer_id")
    ]


# ── Orders ──────────────────────────────────────────────────────────────


def _notify_order_created(payload: dict) -> list[NotificationDraft]:
    return [
        NotificationDraft(
            recipient_id=payload["shop_owner_id"],
            type="order_created",
            title="New Order",
            message="A customer placed an order for an approved custom design.",
            priority=NotificationPriority.HIGH,
            action_url=_order_url(payload),
        )
    ]


def _notify_order_status(payload: dict) -> list[NotificationDraft]:
    return [
        NotificationDraft(
            recipient_id=payload["customer_id"],
            type="order_status_changed",
            title="Order Update",
            message=f"Your order is now {payload['status']}.",
            action_url=_order_url(payload),
        )
    ]


# ── Disputes ────────────────────────────────────────────────────────────


def _notify_dispute_filed(payload: dict) -> list[NotificationDraft]:
    return [
        NotificationDraft(
            recipient_id=payload["respondent_id"],
            type="dispute_filed",
            title="Dispute Filed",
            message=(
                "A dispute was filed against you. Respond before "
                f"{payload['negotiation_deadline']} to avoid admin escalation."
            ),
            category=NotificationCategory.WARNING,
            priority=NotificationPriority.HIGH,
            action_url=_dispute_url(payload),
        )
    ]


def _notify_outcome_proposed(payload: dict) -> list[NotificationDraft]:
    return [
        NotificationDraft(
            recipient_id=recipient,
            type="dispute_outcome_proposed",
            title="Dispute Resolution Proposed",
            message=f"The other party proposed resolving the dispute as '{payload['outcome']}'.",
            action_url=_dispute_url(payload),
        )
        for recipient in _others(payload, "filed_by", "respondent_id")
    ]


def _notify_dispute_resolved(payload: dict) -> list[NotificationDraft]:
    return [
        NotificationDraft(
            recipient_id=recipient,
            type="dispute_resolved",
            title="Dispute Resolved",
            message=f"Both parties agreed on '{payload['outcome']}'. The dispute is closed.",
            category=NotificationCategory.SUCCESS,
            action_url=_dispute_url(payload),
        )
        for recipient in _others(payload, "filed_by", "respondent_id")
    ]


def _notify_dispute_escalated(payload: dict) -> list[NotificationDraft]:
    drafts = [
        NotificationDraft(
            recipient_role=UserRole.ADMIN.value,
            type="dispute_escalated",
            title="Dispute Needs Review",
            message=f"A {payload['category']} dispute was escalated for admin review.",
            category=NotificationCategory.WARNING,
            priority=NotificationPriority.URGENT,
            action_url=_dispute_url(payload),
        )
    ]
    drafts.extend(
        NotificationDraft(
            recipient_id=recipient,
            type="dispute_escalated",
            title="Dispute Escalated",
            message="The dispute was escalated and will be reviewed by an admin.",
            action_url=_dispute_url(payload),
        )
        for recipient in _others(payload, "filed_by", "respondent_id")
    )
    return drafts


def _notify_dispute_decided(payload: dict) -> list[NotificationDraft]:
    return [
        NotificationDraft(
            recipient_id=recipient,
            type="dispute_decided",
            title="Dispute Decided",
            message=f"An admin closed the dispute as '{payload['outcome']}': {payload['reason']}",
            priority=NotificationPriority.HIGH,
            action_url=_dispute_url(payload),
        )
        for recipient in _others(payload, "filed_by", "respondent_id")
    ]


def _notify_dispute_cancelled(payload: dict) -> list[NotificationDraft]:
    return [
        NotificationDraft(
            recipient_id=recipient,
            type="dispute_cancelled",
            title="Dispute Withdrawn",
            message="The dispute against you was withdrawn.",
            category=NotificationCategory.SUCCESS,
            action_url=_dispute_url(payload),
        )
        for recipient in _others(payload, "respondent_id")
    ]


def _describe_request(verb: str) -> Callable[[dict], str]:
    return lambda payload: f"Customization request for {_product(payload)} {verb}"


def _describe_dispute(verb: str) -> Callable[[dict], str]:
    return lambda payload: f"Dispute on {payload.get('target_type', 'target')} {verb}"


EVENT_RULES: dict[str, EventRule] = {
    customization_events.EVENT_CUSTOMIZATION_CREATED: EventRule(
        "customization_request", "request_id", _describe_request("created"),
    ),
    customization_events.EVENT_CUSTOMIZATION_CLAIMED: EventRule(
        "customization_request", "request_id", _describe_request("claimed by a designer"), _notify_claimed,
    ),
    customization_events.EVENT_CUSTOMIZATION_SHOP_SELECTED: EventRule(
        "customization_request", "request_id", _describe_request("routed to a printing shop"),
        _notify_shop_selected,
    ),
    customization_events.EVENT_CUSTOMIZATION_SUBMITTED: EventRule(
        "customization_request", "request_id", _describe_request("submitted for approval"),
        _notify_submitted,
    ),
    customization_events.EVENT_CUSTOMIZATION_APPROVED: EventRule(
        "customization_request", "request_id", _describe_request("approved"), _notify_approved,
    ),
    customization_events.EVENT_CUSTOMIZATION_REJECTED: EventRule(
        "customization_request", "request_id", _describe_request("rejected"), _notify_rejected,
    ),
    customization_events.EVENT_CUSTOMIZATION_RESUBMITTED: EventRule(
        "customization_request", "request_id", _describe_request("reopened for revision"),
        _notify_resubmitted,
    ),
    customization_events.EVENT_CUSTOMIZATION_COMPLETED: EventRule(
        "customization_request", "request_id", _describe_request("completed"), _notify_completed,
    ),
    customization_events.EVENT_CUSTOMIZATION_CANCELLED: EventRule(
        "customization_request", "request_id", _describe_request("cancelled"), _notify_cancelled,
    ),
    order_events.EVENT_ORDER_CREATED: EventRule(
        "order", "order_id", lambda payload: "Order placed from approved design", _notify_order_created,
    ),
    order_events.EVENT_ORDER_STATUS_CHANGED: EventRule(
        "order", "order_id", lambda payload: f"Order moved to {payload.get('status')}",
        _notify_order_status,
    ),
    dispute_events.EVENT_DISPUTE_FILED: EventRule(
        "dispute", "dispute_id", _describe_dispute("filed"), _notify_dispute_filed,
    ),
    dispute_events.EVENT_DISPUTE_OUTCOME_PROPOSED: EventRule(
        "dispute", "dispute_id", _describe_dispute("received a proposed outcome"),
        _notify_outcome_proposed,
    ),
    dispute_events.EVENT_DISPUTE_RESOLVED: EventRule(
        "dispute", "dispute_id", _describe_dispute("resolved by agreement"), _notify_dispute_resolved,
    ),
    dispute_events.EVENT_DISPUTE_ESCALATED: EventRule(
        "dispute", "dispute_id", _describe_dispute("escalated to admin review"),
        _notify_dispute_escalated,
    ),
    dispute_events.EVENT_DISPUTE_DECIDED: EventRule(
        "dispute", "dispute_id", _describe_dispute("decided by an admin"), _notify_dispute_decided,
    ),
    dispute_events.EVENT_DISPUTE_CANCELLED: EventRule(
        "dispute", "dispute_id", _describe_dispute("withdrawn"), _notify_dispute_cancelled,
    ),
}


def _as_uuid(value: str | None) -> uuid.UUID | None:
    return uuid.UUID(value) if value else None


def _build_notifications(event_type: str, rule: EventRule, payload: dict) -> tuple[list[Notification], list[str]]:
    warnings: list[str] = []
    try:
        drafts = rule.notify(payload)
    except (KeyError, TypeError, ValueError) as exc:
        warning = f"notification for {event_type} skipped: {exc!r}"
        logger.warning(warning)
        return [], [warning]

    notifications = []
    for draft in drafts:
        if not draft.recipient_id and not draft.recipient_role:
            warnings.append(f"{draft.type} notification has no recipient")
            logger.warning("Skipping %s notification without recipient", draft.type)
            continue
        try:
            recipient_id = _as_uuid(draft.recipient_id)
        except ValueError:
            warnings.append(f"{draft.type} notification has invalid recipient {draft.recipient_id!r}")
            logger.warning("Skipping %s notification for invalid recipient %r", draft.type, draft.recipient_id)
            continue
        notifications.append(
            Notification(
                recipient_id=recipient_id,
                recipient_role=draft.recipient_role,
                type=draft.type,
                title=draft.title,
                message=draft.message,
                category=draft.category,
                priority=draft.priority,
                action_url=draft.action_url,
                metadata_extra={"event_type": event_type, **payload},
            )
        )
    return notifications, warnings


def dispatch_side_effects(session: Session, event_type: str, payload: dict) -> list[str]:
    """Write the activity and notifications for one event; returns soft warnings."""
    rule = EVENT_RULES.get(event_type)
    if rule is None:
        return [f"no side-effect rule for {event_type}"]

    session.add(
        Activity(
            actor_id=_as_uuid(payload.get("actor_id")),
            action=event_type,
            target_type=rule.target_type,
            target_id=str(payload[rule.target_key]),
            description=rule.describe(payload),
            metadata_extra=payload,
        )
    )
    notifications, warnings = _build_notifications(event_type, rule, payload)
    session.add_all(notifications)
    session.flush()
    return warnings


def _make_handler(event_type: str) -> Callable[[Session, dict], list[str]]:
    def handler(session: Session, payload: dict) -> list[str]:
        return dispatch_side_effects(session, event_type, payload)

    handler.__name__ = f"side_effects[{event_type}]"
    return handler


_HANDLERS = {event_type: _make_handler(event_type) for event_type in EVENT_RULES}


def register_handlers() -> None:
    """Attach the side-effect handler to every workflow event type."""
    for event_type, handler in _HANDLERS.items():
        EventHandlerRegistry.register(event_type, handler)
