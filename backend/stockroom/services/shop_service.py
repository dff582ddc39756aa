from __future__ import annotations

from ..extensions import db
from ..errors import NotFoundError, ShopNotFoundError, ValidationError
from ..models import Shop, User
from ..validation import ModelValidationPolicy, validate_payload
from . import membership_service
from .pagination import normalize_page_args, paginate


DEFAULT_SHOPS_PER_PAGE = 10

SHOP_POLICY = ModelValidationPolicy(
    writable_fields={"name", "description", "address", "phone", "email", "website"},
    required_on_create={"name"},
)


def list_shops() -> list[Shop]:
    """Every shop, unpaginated (CLI listing)."""
    return db.session.query(Shop).order_by(Shop.id.asc()).all()


def list_shops_page(page=None, per_page=None) -> dict:
    page, per_page = normalize_page_args(page, per_page, DEFAULT_SHOPS_PER_PAGE)
    query = db.session.query(Shop).order_by(Shop.id.asc())
    return paginate(query, page, per_page, lambda shop: shop.to_dict())


def get_shop(shop_id: int) -> Shop:
    shop = db.session.get(Shop, shop_id)
    if not shop:
        raise ShopNotFoundError()
    return shop


def verify_shop_by_name(name: str) -> dict:
    shop = db.session.query(Shop).filter(Shop.name == (name or "").strip()).first()
    if shop:
        return shop.to_dict()
    return {"exists": False, "message": "Shop does not exist in the database"}


def create_shop(payload: dict, creator_user_id: int) -> Shop:
    """
    Create a shop and make its creator an ACCEPTED member.

    Shop and membership are committed together, so the creator is never
    observable in the PENDING state.
    """
    patch = validate_payload(model=Shop, payload=payload, policy=SHOP_POLICY, partial=False)

    creator = db.session.get(User, creator_user_id)
    if not creator:
        raise NotFoundError("User not found")

    shop = Shop(**patch)
    db.session.add(shop)
    db.session.flush()

    membership_service.add_accepted_member(creator, shop)
    db.session.commit()
    return shop


def update_shop(shop_id: int, payload: dict) -> Shop:
    shop = get_shop(shop_id)
    patch = validate_payload(model=Shop, payload=payload, policy=SHOP_POLICY, partial=True)
    if not patch:
        raise ValidationError("No updatable fields provided")

    for key, value in patch.items():
        setattr(shop, key, value)

    db.session.commit()
    return shop


def delete_shop(shop_id: int) -> None:
    """Delete a shop with its memberships, items, inventory and notifications."""
    shop = get_shop(shop_id)

    # Clear last-active hints pointing at this shop
    db.session.query(User).filter(User.shop_id == shop_id).update(
        {User.shop_id: None}, synchronize_session=False
    )
    db.session.delete(shop)
    db.session.commit()
