"""
Membership Workflow: who belongs to which shop, and in which state.

States per (user, shop):
    NONE      no UserShop row
    PENDING   row with accepted_into_shop = False
    ACCEPTED  row with accepted_into_shop = True

Transitions:
    connect_to_shop   NONE -> PENDING (any existing row: unchanged)
    create_shop       NONE -> ACCEPTED for the creator (see shop_service)
    accept_user       PENDING/ACCEPTED -> ACCEPTED
    deaccept_user     PENDING/ACCEPTED -> PENDING

Rows are never deleted by the workflow. The unique (user_id, shop_id)
constraint is the only concurrency guard: a connect that loses an insert
race rolls back and reports the existing row.
"""

from __future__ import annotations

from enum import Enum

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..errors import NotAMemberError, NotFoundError, ShopNotFoundError
from ..models import Shop, User, UserShop
from . import token_service
from .security_service import log_request_event


CONNECTED_MESSAGE = "Successfully connected to shop"
ALREADY_CONNECTED_MESSAGE = "User is already connected to this shop"


class MembershipState(str, Enum):
    NONE = "NONE"
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"


def get_membership(user_id: int, shop_id: int) -> UserShop | None:
    return db.session.query(UserShop).filter_by(user_id=user_id, shop_id=shop_id).first()


def membership_state(user_id: int, shop_id: int) -> MembershipState:
    membership = get_membership(user_id, shop_id)
    if membership is None:
        return MembershipState.NONE
    if membership.accepted_into_shop:
        return MembershipState.ACCEPTED
    return MembershipState.PENDING


def add_accepted_member(user: User, shop: Shop) -> UserShop:
    """
    Stage an ACCEPTED membership without committing.

    Used when the caller is trusted by construction (shop creator), so the
    row never passes through PENDING.
    """
    if shop.id is None:
        db.session.flush()
    membership = UserShop(user_id=user.id, shop_id=shop.id, accepted_into_shop=True)
    db.session.add(membership)
    user.shop_id = shop.id
    return membership


def connect_to_shop(user_id: int, shop_id: int) -> dict:
    """
    Request to join a shop.

    Creates a PENDING membership when none exists. When one already exists,
    in any state, nothing changes. Either way the user's last-active hint
    moves to this shop and a fresh token pair carrying shop_id is issued.

    Raises:
        ShopNotFoundError: shop does not exist
        NotFoundError: user does not exist
    """
    shop = db.session.get(Shop, shop_id)
    if not shop:
        raise ShopNotFoundError()

    user = db.session.get(User, user_id)
    if not user:
        raise NotFoundError("User not found")

    membership = get_membership(user_id, shop_id)
    created = False

    if membership is None:
        membership = UserShop(user_id=user_id, shop_id=shop_id, accepted_into_shop=False)
        db.session.add(membership)
        try:
            db.session.flush()
            created = True
        except IntegrityError:
            # Lost the race to a concurrent connect for the same pair
            db.session.rollback()
            membership = get_membership(user_id, shop_id)
            if membership is None:
                raise
            user = db.session.get(User, user_id)

    user.shop_id = shop_id
    db.session.commit()

    tokens = token_service.issue_token_pair(user.id, user.email, shop_id)
    profile = user.to_dict()
    profile.update({
        "shopId": shop_id,
        "acceptedIntoShop": membership.accepted_into_shop,
    })

    return {
        "message": CONNECTED_MESSAGE if created else ALREADY_CONNECTED_MESSAGE,
        "user": profile,
        **tokens,
    }


def _set_accepted(user_id: int, shop_id: int, accepted: bool, actor_id: int | None) -> dict:
    membership = get_membership(user_id, shop_id)
    if membership is None:
        raise NotAMemberError("User is not associated with this shop")

    membership.accepted_into_shop = accepted
    db.session.commit()

    log_request_event(
        user_id=actor_id,
        event_type="MEMBERSHIP_ACCEPTED" if accepted else "MEMBERSHIP_DEACCEPTED",
        success=True,
        reason=f"User {user_id} {'accepted into' if accepted else 'de-accepted from'} shop {shop_id}",
        shop_id=shop_id,
    )
    return membership.to_member_dict()


def accept_user(user_id: int, shop_id: int, actor_id: int | None = None) -> dict:
    """
    Mark a membership ACCEPTED and return the member profile.

    The profile's permission is the membership override when set, otherwise
    the user's global permission.
    """
    return _set_accepted(user_id, shop_id, True, actor_id)


def deaccept_user(user_id: int, shop_id: int, actor_id: int | None = None) -> dict:
    """Move a membership back to PENDING. The row is kept."""
    return _set_accepted(user_id, shop_id, False, actor_id)


def set_member_permission(user_id: int, shop_id: int, permission: str | None) -> dict:
    membership = get_membership(user_id, shop_id)
    if membership is None:
        raise NotAMemberError("User is not associated with this shop")

    membership.permission = (permission or "").strip() or None
    db.session.commit()
    return membership.to_member_dict()


def _members_query(shop_id: int):
    return (
        db.session.query(UserShop)
        .join(User, UserShop.user_id == User.id)
        .filter(UserShop.shop_id == shop_id)
        .order_by(UserShop.created_at.asc(), UserShop.id.asc())
    )


def list_shop_users(shop_id: int) -> list[dict]:
    return [m.to_member_dict() for m in _members_query(shop_id).all()]


def list_accepted_users(shop_id: int) -> list[dict]:
    rows = _members_query(shop_id).filter(UserShop.accepted_into_shop.is_(True)).all()
    return [m.to_member_dict() for m in rows]


def list_unaccepted_users(shop_id: int) -> list[dict]:
    rows = _members_query(shop_id).filter(UserShop.accepted_into_shop.is_(False)).all()
    return [m.to_member_dict() for m in rows]


def list_user_shops(user_id: int) -> list[dict]:
    """Shops the user belongs to, with the membership state of each."""
    rows = (
        db.session.query(UserShop, Shop)
        .join(Shop, UserShop.shop_id == Shop.id)
        .filter(UserShop.user_id == user_id)
        .order_by(UserShop.created_at.asc(), UserShop.id.asc())
        .all()
    )
    result = []
    for membership, shop in rows:
        data = shop.to_dict()
        data.update({
            "acceptedIntoShop": membership.accepted_into_shop,
            "permission": membership.effective_permission,
        })
        result.append(data)
    return result


def backfill_legacy_memberships(accepted_by_user: dict[int, bool] | None = None) -> int:
    """
    Convert legacy single-shop users into membership rows.

    Every user whose shop_id hint points at an existing shop gets a UserShop
    row for it, unless one exists already. accepted_by_user carries the
    legacy accepted flag per user id (read from the pre-migration column);
    users missing from it are created PENDING.

    Returns the number of rows created. Safe to run repeatedly.
    """
    accepted_by_user = accepted_by_user or {}

    existing = {
        (user_id, shop_id)
        for user_id, shop_id in db.session.query(UserShop.user_id, UserShop.shop_id).all()
    }
    shop_ids = {row[0] for row in db.session.query(Shop.id).all()}

    created = 0
    users = db.session.query(User).filter(User.shop_id.isnot(None)).order_by(User.id.asc()).all()
    for user in users:
        pair = (user.id, user.shop_id)
        if pair in existing or user.shop_id not in shop_ids:
            continue
        db.session.add(UserShop(
            user_id=user.id,
            shop_id=user.shop_id,
            accepted_into_shop=bool(accepted_by_user.get(user.id, False)),
        ))
        existing.add(pair)
        created += 1

    db.session.commit()
    return created
