# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

"""
Authentication API routes

- register / login issue an access + refresh token pair
- refresh exchanges a refresh token for a new access token
- connect-shop joins a shop (PENDING) and reissues tokens carrying its shopId
- logout is stateless: the client drops its tokens, the server clears the
  shopId cookie
"""

from flask import Blueprint, request, jsonify, g

from ..services import auth_service
from ..services import membership_service
from ..validation import parse_int, require_fields
from ..decorators import require_auth


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/register")
def register_route():
    data = require_fields(request.get_json(silent=True), "username", "email", "password")

    result = auth_service.register(
        username=data["username"],
        email=data["email"],
        password=data["password"],
        phone_number=data.get("phoneNumber") or data.get("phone_number"),
    )
    return jsonify(result), 201


@auth_bp.post("/login")
def login_route():
    data = require_fields(request.get_json(silent=True), "email", "password")
    return jsonify(auth_service.login(data["email"], data["password"])), 200


@auth_bp.post("/refresh")
def refresh_route():
    data = request.get_json(silent=True) or {}
    token = data.get("refreshToken") if isinstance(data, dict) else None
    return jsonify(auth_service.refresh(token)), 200


@auth_bp.post("/logout")
def logout_route():
    response = jsonify({"message": "Logged out successfully"})
    response.delete_cookie("shopId")
    return response, 200


@auth_bp.get("/me")
@require_auth
def me_route():
    user = auth_service.get_current_user(g.current_user.id)
    data = user.to_dict()
    data["shopId"] = g.token_claims.shop_id
    data["shops"] = membership_service.list_user_shops(user.id)
    return jsonify(data), 200


@auth_bp.put("/password")
@require_auth
def change_password_route():
    data = require_fields(request.get_json(silent=True), "currentPassword", "newPassword")
    auth_service.change_password(g.current_user.id, data["currentPassword"], data["newPassword"])
    return jsonify({"message": "Password changed successfully"}), 200


@auth_bp.post("/connect-shop")
@require_auth
def connect_shop_route():
    """
    Join a shop. Creates a PENDING membership, or reports the existing one.

    The shop to join is named explicitly in the body; it is not a tenant
    selector, so the token's current shop does not override it.
    """
    data = require_fields(request.get_json(silent=True), "shopId")
    shop_id = parse_int(data["shopId"], "shopId")

    result = membership_service.connect_to_shop(g.current_user.id, shop_id)
    response = jsonify(result)
    response.set_cookie("shopId", str(shop_id), httponly=True, samesite="Lax")
    return response, 200
