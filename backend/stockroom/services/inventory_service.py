"""
Inventory movements (sell / refill) and their aggregates.

Recording a movement adjusts the item's on-hand quantity in the same
transaction: sell decrements, refill increments. Later edits or deletes of a
record are history corrections and leave the item quantity alone.
"""
from __future__ import annotations

from datetime import datetime

from sqlalchemy import func

from ..extensions import db
from ..errors import ValidationError
from ..models import InventoryRecord, Item
from ..time_utils import day_window, month_window, utcnow, week_window
from ..validation import (
    LIKE_ESCAPE,
    ModelValidationPolicy,
    contains_pattern,
    enforce_rules_inventory,
    parse_int,
    validate_payload,
)
from .pagination import empty_page, normalize_page_args, paginate
from .tenant_service import require_resource_in_shop, scoped_query


DEFAULT_INVENTORY_PER_PAGE = 25
RECENT_LIMIT = 10
BY_ITEM_LIMIT = 20

INVENTORY_POLICY = ModelValidationPolicy(
    writable_fields={"item_id", "action", "quantity", "cost"},
    required_on_create={"item_id", "action"},
    aliases={"itemId": "item_id"},
)

# item_id is fixed once recorded
INVENTORY_UPDATE_POLICY = ModelValidationPolicy(
    writable_fields={"action", "quantity", "cost"},
)


def _serialize(record: InventoryRecord) -> dict:
    return record.to_dict()


def _newest_first(query):
    return query.order_by(InventoryRecord.created_at.desc(), InventoryRecord.id.desc())


def list_inventory(shop_id: int, page=None, per_page=None) -> dict:
    page, per_page = normalize_page_args(page, per_page, DEFAULT_INVENTORY_PER_PAGE)
    query = _newest_first(scoped_query(InventoryRecord, shop_id))
    return paginate(query, page, per_page, _serialize)


def get_record(shop_id: int, record_id: int) -> InventoryRecord:
    return require_resource_in_shop(InventoryRecord, record_id, shop_id, "Inventory record")


def _apply_movement(item: Item, action: str, quantity: int) -> None:
    on_hand = item.quantity or 0
    if action == "sell":
        if quantity > on_hand:
            raise ValidationError(
                f"Cannot sell {quantity} of {item.name!r}: only {on_hand} in stock"
            )
        item.quantity = on_hand - quantity
    else:
        item.quantity = on_hand + quantity


def add_record(shop_id: int, payload: dict, user_id: int | None = None, action: str | None = None) -> InventoryRecord:
    """
    Record a movement against an item of this shop.

    When action is given (the /sell and /refill endpoints) it overrides
    whatever the payload says.

    Raises:
        ValidationError: bad payload, unknown action or insufficient stock
        NotFoundError / ResourceMismatchError: item missing or not in shop
    """
    if isinstance(payload, dict) and action is not None:
        payload = {**payload, "action": action}

    patch = validate_payload(model=InventoryRecord, payload=payload, policy=INVENTORY_POLICY, partial=False)
    if patch.get("quantity") is None:
        patch["quantity"] = 1
    if patch.get("cost") is None:
        patch["cost"] = 0
    enforce_rules_inventory(patch)

    item = require_resource_in_shop(Item, patch["item_id"], shop_id, "Item")
    _apply_movement(item, patch["action"], patch["quantity"])

    record = InventoryRecord(shop_id=shop_id, user_id=user_id, **patch)
    db.session.add(record)
    db.session.commit()
    return record


def update_record(shop_id: int, record_id: int, payload: dict) -> InventoryRecord:
    record = get_record(shop_id, record_id)
    patch = validate_payload(
        model=InventoryRecord, payload=payload, policy=INVENTORY_UPDATE_POLICY, partial=True
    )
    for key in ("action", "quantity", "cost"):
        if key in patch and patch[key] is None:
            raise ValidationError(f"{key} cannot be null")
    enforce_rules_inventory(patch)

    for key, value in patch.items():
        setattr(record, key, value)

    db.session.commit()
    return record


def delete_record(shop_id: int, record_id: int) -> None:
    record = get_record(shop_id, record_id)
    db.session.delete(record)
    db.session.commit()


def _cost_between(shop_id: int, start: datetime, end: datetime) -> float:
    total = (
        db.session.query(func.coalesce(func.sum(InventoryRecord.cost), 0))
        .filter(
            InventoryRecord.shop_id == shop_id,
            InventoryRecord.created_at >= start,
            InventoryRecord.created_at < end,
        )
        .scalar()
    )
    return float(total or 0)


def general_sums(shop_id: int, now: datetime | None = None) -> dict:
    """
    Sum of cost over all movements in the current day, week (Sunday start)
    and calendar month. Empty windows sum to 0.
    """
    now = now or utcnow()
    return {
        "daySum": _cost_between(shop_id, *day_window(now)),
        "weekSum": _cost_between(shop_id, *week_window(now)),
        "monthSum": _cost_between(shop_id, *month_window(now)),
    }


def _recent(shop_id: int, action: str) -> list[dict]:
    query = scoped_query(InventoryRecord, shop_id).filter(InventoryRecord.action == action)
    return [_serialize(r) for r in _newest_first(query).limit(RECENT_LIMIT).all()]


def recently_sold(shop_id: int) -> list[dict]:
    return _recent(shop_id, "sell")


def recently_refilled(shop_id: int) -> list[dict]:
    return _recent(shop_id, "refill")


def search_inventory(shop_id: int, term: str | None, page=None, per_page=None) -> dict:
    """Movements of items whose name contains term (case-insensitive)."""
    page, per_page = normalize_page_args(page, per_page, DEFAULT_INVENTORY_PER_PAGE)

    item_query = scoped_query(Item, shop_id)
    term = (term or "").strip()
    if term:
        item_query = item_query.filter(Item.name.ilike(contains_pattern(term), escape=LIKE_ESCAPE))
    item_ids = [row.id for row in item_query.with_entities(Item.id).all()]

    if not item_ids:
        return empty_page(page, per_page)

    query = _newest_first(
        scoped_query(InventoryRecord, shop_id).filter(InventoryRecord.item_id.in_(item_ids))
    )
    return paginate(query, page, per_page, _serialize)


def records_for_item(shop_id: int, item_id) -> dict:
    """The newest movements of one item plus its total movement count."""
    item_id = parse_int(item_id, "itemId")
    item = require_resource_in_shop(Item, item_id, shop_id, "Item")

    query = db.session.query(InventoryRecord).filter(InventoryRecord.item_id == item.id)
    total = query.count()
    records = _newest_first(query).limit(BY_ITEM_LIMIT).all()
    return {
        "totalItems": total,
        "inventory": [_serialize(r) for r in records],
    }
