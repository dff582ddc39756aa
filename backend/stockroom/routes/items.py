# Overview: Flask API routes for item operations; parses input and returns JSON responses.

"""
Item routes. Every route acts on the resolved tenant (g.shop_id); item ids
from another shop answer 403, unknown ids 404.
"""

from flask import Blueprint, request, jsonify, g

from ..services import items_service
from ..decorators import require_auth, require_tenant


items_bp = Blueprint("items", __name__, url_prefix="/api/items")


def _page_args():
    return request.args.get("page"), request.args.get("perPage")


@items_bp.get("")
@require_auth
@require_tenant()
def list_items():
    page, per_page = _page_args()
    return jsonify(items_service.list_items(g.shop_id, page, per_page))


@items_bp.get("/search")
@require_auth
@require_tenant()
def search_items():
    page, per_page = _page_args()
    term = request.args.get("q") or request.args.get("keyword")
    return jsonify(items_service.search_items(g.shop_id, term, page, per_page))


@items_bp.get("/below-refill")
@require_auth
@require_tenant()
def items_below_refill():
    return jsonify([item.to_dict() for item in items_service.list_items_below_refill(g.shop_id)])


@items_bp.get("/<int:item_id>")
@require_auth
@require_tenant()
def get_item(item_id: int):
    return jsonify(items_service.get_item(g.shop_id, item_id).to_dict())


@items_bp.post("")
@require_auth
@require_tenant()
def create_item():
    item = items_service.create_item(g.shop_id, request.get_json(silent=True))
    return jsonify(item.to_dict()), 201


@items_bp.put("/<int:item_id>")
@require_auth
@require_tenant()
def update_item(item_id: int):
    item = items_service.update_item(g.shop_id, item_id, request.get_json(silent=True))
    return jsonify(item.to_dict())


@items_bp.delete("/<int:item_id>")
@require_auth
@require_tenant()
def delete_item(item_id: int):
    items_service.delete_item(g.shop_id, item_id)
    return "", 204
