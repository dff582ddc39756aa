# Overview: Flask API routes for notification operations; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g

from ..services import notification_service
from ..decorators import require_auth, require_tenant


notifications_bp = Blueprint("notifications", __name__, url_prefix="/api/notifications")


@notifications_bp.get("")
@require_auth
@require_tenant()
def list_notifications():
    page, per_page = request.args.get("page"), request.args.get("perPage")
    return jsonify(notification_service.list_notifications(g.shop_id, page, per_page))


@notifications_bp.get("/unread-count")
@require_auth
@require_tenant()
def unread_count():
    return jsonify(notification_service.unread_count(g.shop_id))


@notifications_bp.post("/mark-all-as-read")
@require_auth
@require_tenant()
def mark_all_read():
    updated = notification_service.mark_all_read(g.shop_id)
    return jsonify({"message": "All notifications marked as read", "updated": updated})


@notifications_bp.get("/<int:notification_id>")
@require_auth
@require_tenant()
def get_notification(notification_id: int):
    return jsonify(notification_service.get_notification(g.shop_id, notification_id).to_dict())


@notifications_bp.post("")
@require_auth
@require_tenant()
def create_notification():
    notification = notification_service.create_notification(g.shop_id, request.get_json(silent=True))
    return jsonify(notification.to_dict()), 201


@notifications_bp.post("/<int:notification_id>/mark-as-read")
@require_auth
@require_tenant()
def mark_read(notification_id: int):
    return jsonify(notification_service.mark_read(g.shop_id, notification_id).to_dict())


@notifications_bp.put("/<int:notification_id>")
@require_auth
@require_tenant()
def update_notification(notification_id: int):
    notification = notification_service.update_notification(
        g.shop_id, notification_id, request.get_json(silent=True)
    )
    return jsonify(notification.to_dict())


@notifications_bp.delete("/<int:notification_id>")
@require_auth
@require_tenant()
def delete_notification(notification_id: int):
    notification_service.delete_notification(g.shop_id, notification_id)
    return "", 204
