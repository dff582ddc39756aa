# Overview: Flask API routes for user operations; parses input and returns JSON responses.

"""
User profile routes plus the membership actions of the resolved shop.

SECURITY: accept / de-accept / permission act on the resolved tenant and
require the caller to be an ACCEPTED member of it. Profiles never carry the
password hash.
"""

from flask import Blueprint, request, jsonify, g

from ..services import user_service
from ..services import membership_service
from ..decorators import require_auth, require_tenant


users_bp = Blueprint("users", __name__, url_prefix="/api/users")


@users_bp.get("")
@require_auth
def list_users():
    return jsonify([user.to_dict() for user in user_service.list_users()])


@users_bp.get("/<int:user_id>")
@require_auth
def get_user(user_id: int):
    return jsonify(user_service.get_user(user_id).to_dict())


@users_bp.get("/by-uid/<uid>")
@require_auth
def get_user_by_uid(uid: str):
    return jsonify(user_service.get_user_by_uid(uid).to_dict())


@users_bp.post("")
@require_auth
def create_user():
    user = user_service.create_user(request.get_json(silent=True))
    return jsonify(user.to_dict()), 201


@users_bp.put("/<int:user_id>")
@require_auth
def update_user(user_id: int):
    user = user_service.update_user(user_id, request.get_json(silent=True))
    return jsonify(user.to_dict())


@users_bp.delete("/<int:user_id>")
@require_auth
def delete_user(user_id: int):
    user_service.delete_user(user_id)
    return "", 204


@users_bp.route("/<int:user_id>/accept", methods=["GET", "POST"])
@require_auth
@require_tenant(require_accepted=True)
def accept_user(user_id: int):
    return jsonify(membership_service.accept_user(user_id, g.shop_id, actor_id=g.current_user.id))


@users_bp.route("/<int:user_id>/de-accept", methods=["GET", "POST"])
@require_auth
@require_tenant(require_accepted=True)
def deaccept_user(user_id: int):
    return jsonify(membership_service.deaccept_user(user_id, g.shop_id, actor_id=g.current_user.id))


@users_bp.put("/<int:user_id>/permission")
@require_auth
@require_tenant(require_accepted=True)
def set_permission(user_id: int):
    data = request.get_json(silent=True) or {}
    permission = data.get("permission") if isinstance(data, dict) else None
    return jsonify(membership_service.set_member_permission(user_id, g.shop_id, permission))
