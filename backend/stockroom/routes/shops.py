# Overview: Flask API routes for shop operations; parses input and returns JSON responses.

"""
Shop routes.

Two kinds of shop scoping:
- /me/current acts on the resolved tenant (token > query > body > cookie)
- /<shop_id>/... names the shop in the path; the path shop is the tenant and
  the caller's membership in it is checked with the same authorize_tenant()
"""

from functools import wraps

from flask import Blueprint, request, jsonify, g

from ..services import shop_service
from ..services import membership_service
from ..services.tenant_service import authorize_tenant
from ..decorators import require_auth, require_tenant


shops_bp = Blueprint("shops", __name__, url_prefix="/api/shops")


def require_path_shop(require_accepted: bool = False):
    """Authorize the caller against the shop named by <shop_id> in the path."""
    def decorator(f):
        @wraps(f)
        def decorated_function(shop_id, *args, **kwargs):
            shop_service.get_shop(shop_id)
            g.membership = authorize_tenant(
                g.current_user.id, shop_id, require_accepted=require_accepted
            )
            g.shop_id = shop_id
            return f(shop_id, *args, **kwargs)
        return decorated_function
    return decorator


@shops_bp.get("")
@require_auth
def list_shops():
    page, per_page = request.args.get("page"), request.args.get("perPage")
    return jsonify(shop_service.list_shops_page(page, per_page))


@shops_bp.get("/verify/<name>")
def verify_shop(name: str):
    """Public lookup used by the sign-up flow to check a shop exists."""
    return jsonify(shop_service.verify_shop_by_name(name))


@shops_bp.get("/me/current")
@require_auth
@require_tenant()
def current_shop():
    shop = shop_service.get_shop(g.shop_id)
    data = shop.to_dict()
    data["acceptedIntoShop"] = g.membership.accepted_into_shop
    data["tenantSource"] = g.tenant_source.value
    return jsonify(data)


@shops_bp.get("/me/shops")
@require_auth
def my_shops():
    return jsonify(membership_service.list_user_shops(g.current_user.id))


@shops_bp.get("/<int:shop_id>")
@require_auth
def get_shop(shop_id: int):
    return jsonify(shop_service.get_shop(shop_id).to_dict())


@shops_bp.post("")
@require_auth
def create_shop():
    shop = shop_service.create_shop(request.get_json(silent=True), g.current_user.id)
    return jsonify(shop.to_dict()), 201


@shops_bp.put("/<int:shop_id>")
@require_auth
@require_path_shop(require_accepted=True)
def update_shop(shop_id: int):
    shop = shop_service.update_shop(shop_id, request.get_json(silent=True))
    return jsonify(shop.to_dict())


@shops_bp.delete("/<int:shop_id>")
@require_auth
@require_path_shop(require_accepted=True)
def delete_shop(shop_id: int):
    shop_service.delete_shop(shop_id)
    return "", 204


@shops_bp.get("/<int:shop_id>/users")
@require_auth
@require_path_shop(require_accepted=True)
def shop_users(shop_id: int):
    return jsonify(membership_service.list_shop_users(shop_id))


@shops_bp.get("/<int:shop_id>/users/accepted")
@require_auth
@require_path_shop(require_accepted=True)
def shop_accepted_users(shop_id: int):
    return jsonify(membership_service.list_accepted_users(shop_id))


@shops_bp.get("/<int:shop_id>/users/unaccepted")
@require_auth
@require_path_shop(require_accepted=True)
def shop_unaccepted_users(shop_id: int):
    return jsonify(membership_service.list_unaccepted_users(shop_id))
