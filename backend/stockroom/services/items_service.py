"""
Item catalogue for one shop.

Every function takes the resolved shop_id explicitly; an item id from
another shop is rejected by require_resource_in_shop before anything is
read or written.
"""
from __future__ import annotations

from sqlalchemy import func, or_

from ..extensions import db
from ..models import DEFAULT_REFILL_COUNT, Item
from ..validation import LIKE_ESCAPE, ModelValidationPolicy, contains_pattern, enforce_rules_item, validate_payload
from .pagination import normalize_page_args, paginate
from .tenant_service import require_resource_in_shop, scoped_query


DEFAULT_ITEMS_PER_PAGE = 10

ITEM_POLICY = ModelValidationPolicy(
    writable_fields={
        "name",
        "description",
        "category",
        "quantity",
        "price",
        "image_url",
        "refill_count",
    },
    required_on_create={"name"},
    aliases={"imageUrl": "image_url", "refillCount": "refill_count"},
)


def list_items(shop_id: int, page=None, per_page=None) -> dict:
    page, per_page = normalize_page_args(page, per_page, DEFAULT_ITEMS_PER_PAGE)
    query = scoped_query(Item, shop_id).order_by(Item.created_at.desc(), Item.id.desc())
    return paginate(query, page, per_page, lambda item: item.to_dict())


def get_item(shop_id: int, item_id: int) -> Item:
    return require_resource_in_shop(Item, item_id, shop_id, "Item")


def create_item(shop_id: int, payload: dict) -> Item:
    patch = validate_payload(model=Item, payload=payload, policy=ITEM_POLICY, partial=False)
    enforce_rules_item(patch)

    item = Item(shop_id=shop_id, **patch)
    if item.quantity is None:
        item.quantity = 0

    db.session.add(item)
    db.session.commit()
    return item


def update_item(shop_id: int, item_id: int, payload: dict) -> Item:
    item = get_item(shop_id, item_id)
    patch = validate_payload(model=Item, payload=payload, policy=ITEM_POLICY, partial=True)
    enforce_rules_item(patch)

    for key, value in patch.items():
        setattr(item, key, value)

    db.session.commit()
    return item


def delete_item(shop_id: int, item_id: int) -> None:
    """Delete an item together with its inventory records."""
    item = get_item(shop_id, item_id)
    db.session.delete(item)
    db.session.commit()


def search_items(shop_id: int, term: str | None, page=None, per_page=None) -> dict:
    """Case-insensitive substring match on name or description."""
    page, per_page = normalize_page_args(page, per_page, DEFAULT_ITEMS_PER_PAGE)
    query = scoped_query(Item, shop_id)

    term = (term or "").strip()
    if term:
        pattern = contains_pattern(term)
        query = query.filter(or_(
            Item.name.ilike(pattern, escape=LIKE_ESCAPE),
            Item.description.ilike(pattern, escape=LIKE_ESCAPE),
        ))

    query = query.order_by(Item.name.asc(), Item.id.asc())
    return paginate(query, page, per_page, lambda item: item.to_dict())


def list_items_below_refill(shop_id: int) -> list[Item]:
    """Items whose quantity is under their refill threshold, lowest stock first."""
    return (
        scoped_query(Item, shop_id)
        .filter(func.coalesce(Item.quantity, 0) < func.coalesce(Item.refill_count, DEFAULT_REFILL_COUNT))
        .order_by(Item.quantity.asc(), Item.id.asc())
        .all()
    )
