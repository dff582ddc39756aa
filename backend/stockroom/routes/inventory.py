# Overview: Flask API routes for inventory operations; parses input and returns JSON responses.

"""
Inventory movement routes.

POST /sell and /refill fix the action; POST / takes it from the body.
All reads and writes are scoped to the resolved tenant.
"""

from flask import Blueprint, request, jsonify, g

from ..services import inventory_service
from ..decorators import require_auth, require_tenant


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventories")


def _page_args():
    return request.args.get("page"), request.args.get("perPage")


@inventory_bp.get("")
@require_auth
@require_tenant()
def list_inventory():
    page, per_page = _page_args()
    return jsonify(inventory_service.list_inventory(g.shop_id, page, per_page))


@inventory_bp.get("/general-sums")
@require_auth
@require_tenant()
def general_sums():
    return jsonify(inventory_service.general_sums(g.shop_id))


@inventory_bp.get("/recently-sold")
@require_auth
@require_tenant()
def recently_sold():
    return jsonify(inventory_service.recently_sold(g.shop_id))


@inventory_bp.get("/recently-refilled")
@require_auth
@require_tenant()
def recently_refilled():
    return jsonify(inventory_service.recently_refilled(g.shop_id))


@inventory_bp.get("/search")
@require_auth
@require_tenant()
def search_inventory():
    page, per_page = _page_args()
    term = request.args.get("qitem") or request.args.get("q")
    return jsonify(inventory_service.search_inventory(g.shop_id, term, page, per_page))


@inventory_bp.get("/by-item/<int:item_id>")
@require_auth
@require_tenant()
def records_for_item(item_id: int):
    return jsonify(inventory_service.records_for_item(g.shop_id, item_id))


def _record(action=None):
    record = inventory_service.add_record(
        g.shop_id,
        request.get_json(silent=True),
        user_id=g.current_user.id,
        action=action,
    )
    return jsonify(record.to_dict()), 201


@inventory_bp.post("")
@require_auth
@require_tenant()
def add_record():
    return _record()


@inventory_bp.post("/sell")
@require_auth
@require_tenant()
def sell():
    return _record("sell")


@inventory_bp.post("/refill")
@require_auth
@require_tenant()
def refill():
    return _record("refill")


@inventory_bp.put("/<int:record_id>")
@require_auth
@require_tenant()
def update_record(record_id: int):
    record = inventory_service.update_record(g.shop_id, record_id, request.get_json(silent=True))
    return jsonify(record.to_dict())


@inventory_bp.delete("/<int:record_id>")
@require_auth
@require_tenant()
def delete_record(record_id: int):
    inventory_service.delete_record(g.shop_id, record_id)
    return "", 204
