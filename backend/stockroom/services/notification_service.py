from __future__ import annotations

from ..extensions import db
from ..models import Notification
from ..validation import ModelValidationPolicy, validate_payload
from .pagination import normalize_page_args, paginate
from .tenant_service import require_resource_in_shop, scoped_query


DEFAULT_NOTIFICATIONS_PER_PAGE = 10

NOTIFICATION_POLICY = ModelValidationPolicy(
    writable_fields={"title", "message", "read"},
    required_on_create={"message"},
)


def create_notification(shop_id: int, payload: dict) -> Notification:
    """New notifications are always unread, whatever the payload says."""
    patch = validate_payload(model=Notification, payload=payload, policy=NOTIFICATION_POLICY, partial=False)
    patch["read"] = False

    notification = Notification(shop_id=shop_id, **patch)
    db.session.add(notification)
    db.session.commit()
    return notification


def list_notifications(shop_id: int, page=None, per_page=None) -> dict:
    """Newest first, one page at a time."""
    page, per_page = normalize_page_args(page, per_page, DEFAULT_NOTIFICATIONS_PER_PAGE)
    query = scoped_query(Notification, shop_id).order_by(Notification.created_at.desc(), Notification.id.desc())
    return paginate(query, page, per_page, lambda notification: notification.to_dict())


def get_notification(shop_id: int, notification_id: int) -> Notification:
    return require_resource_in_shop(Notification, notification_id, shop_id, "Notification")


def update_notification(shop_id: int, notification_id: int, payload: dict) -> Notification:
    notification = get_notification(shop_id, notification_id)
    patch = validate_payload(model=Notification, payload=payload, policy=NOTIFICATION_POLICY, partial=True)

    for key, value in patch.items():
        setattr(notification, key, value)

    db.session.commit()
    return notification


def delete_notification(shop_id: int, notification_id: int) -> None:
    notification = get_notification(shop_id, notification_id)
    db.session.delete(notification)
    db.session.commit()


def mark_read(shop_id: int, notification_id: int) -> Notification:
    notification = get_notification(shop_id, notification_id)
    notification.read = True
    db.session.commit()
    return notification


def mark_all_read(shop_id: int) -> int:
    """Returns the number of notifications that changed."""
    updated = (
        scoped_query(Notification, shop_id)
        .filter(Notification.read.is_(False))
        .update({Notification.read: True}, synchronize_session=False)
    )
    db.session.commit()
    return updated


def unread_count(shop_id: int) -> dict:
    count = scoped_query(Notification, shop_id).filter(Notification.read.is_(False)).count()
    return {"count": count}
