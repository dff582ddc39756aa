"""
Tenant Service: Shop Resolution, Membership Authorization and Scoping

WHY: Centralize tenant resolution and authorization for reuse across routes.
Every shop-scoped request must act on exactly one shop, and the caller must
be a member of that shop.

RESOLUTION (fixed precedence, first non-empty source wins):
1. shopId claim of the verified access token
2. ?shopId= query parameter
3. shopId field of the JSON body
4. shopId cookie

SECURITY INVARIANTS:
1. The membership check runs against whichever shop precedence resolved,
   never against the token's shop blindly. A token claim is a default, not
   a grant.
2. A resource named by the path must exist (404) before its shop is
   compared with the resolved tenant (403).
3. Queries touching shop-owned data filter by the resolved shop_id.
4. Denials are queued as security events (security_service.record_denial);
   the session is never committed here.

Resolution and authorization are read-only and idempotent: calling them
twice for the same request yields the same answer.

USAGE:
    from stockroom.services.tenant_service import resolve_tenant, authorize_tenant

    resolution = resolve_tenant(g.token_claims, query_shop_id, body_shop_id, cookie_shop_id)
    authorize_tenant(g.current_user.id, resolution.shop_id)
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from flask import g, request

from ..extensions import db
from ..errors import (
    MissingTenantError,
    NotAMemberError,
    NotFoundError,
    ResourceMismatchError,
)
from ..models import UserShop
from ..validation import parse_shop_id
from .membership_service import get_membership
from .security_service import record_denial


SHOP_ID_KEY = "shopId"


class TenantSource(str, Enum):
    """Where the resolved shopId came from."""

    TOKEN = "token"
    QUERY = "query"
    BODY = "body"
    COOKIE = "cookie"


@dataclass(frozen=True)
class TenantResolution:
    shop_id: int
    source: TenantSource


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str) and not value.strip():
        return True
    return False


def resolve_tenant(
    authenticated_user: Any,
    query_shop_id: Any = None,
    body_shop_id: Any = None,
    cookie_shop_id: Any = None,
) -> TenantResolution:
    """
    Pick the single shopId a request acts on.

    Args:
        authenticated_user: verified token claims (anything with a shop_id
            attribute; None for no token)
        query_shop_id / body_shop_id / cookie_shop_id: raw client values

    Raises:
        MissingTenantError: no source yields a value
        InvalidTenantError: the winning value is not an integer
    """
    candidates = (
        (TenantSource.TOKEN, getattr(authenticated_user, "shop_id", None)),
        (TenantSource.QUERY, query_shop_id),
        (TenantSource.BODY, body_shop_id),
        (TenantSource.COOKIE, cookie_shop_id),
    )

    for source, raw in candidates:
        if _is_empty(raw):
            continue
        return TenantResolution(shop_id=parse_shop_id(raw), source=source)

    raise MissingTenantError()


def resolve_request_tenant() -> TenantResolution:
    """resolve_tenant() fed from the current Flask request and g.token_claims."""
    body = request.get_json(silent=True)
    body_shop_id = body.get(SHOP_ID_KEY) if isinstance(body, dict) else None

    try:
        return resolve_tenant(
            getattr(g, "token_claims", None),
            request.args.get(SHOP_ID_KEY),
            body_shop_id,
            request.cookies.get(SHOP_ID_KEY),
        )
    except MissingTenantError:
        current_user = getattr(g, "current_user", None)
        record_denial(
            current_user.id if current_user else None,
            "TENANT_MISSING",
            "No shopId in token, query, body or cookie",
        )
        raise


def authorize_tenant(
    user_id: int,
    shop_id: int,
    resource_owner_shop_id: int | None = None,
    *,
    resource_exists: bool = True,
    require_accepted: bool = False,
) -> UserShop:
    """
    Confirm the caller may act within shop_id.

    Membership check: a UserShop row for (user_id, shop_id) must exist. With
    require_accepted the row must also be accepted (shop-internal views).

    Resource check (only when the path names a resource): a missing resource
    is reported as NotFound before any ownership comparison; a resource from
    another shop is a ResourceMismatch.

    Returns:
        The caller's membership row

    Raises:
        NotAMemberError, NotFoundError, ResourceMismatchError
    """
    membership = get_membership(user_id, shop_id)

    if membership is None:
        _log_denial(user_id, shop_id, "TENANT_ACCESS_DENIED", f"User {user_id} has no membership in shop {shop_id}")
        raise NotAMemberError()

    if require_accepted and not membership.accepted_into_shop:
        _log_denial(user_id, shop_id, "TENANT_ACCESS_DENIED", f"User {user_id} membership in shop {shop_id} is pending")
        raise NotAMemberError("User has not been accepted into this shop")

    if not resource_exists:
        raise NotFoundError()

    if resource_owner_shop_id is not None and resource_owner_shop_id != shop_id:
        _log_denial(
            user_id,
            shop_id,
            "RESOURCE_MISMATCH",
            f"Resource belongs to shop {resource_owner_shop_id}, not {shop_id}",
        )
        raise ResourceMismatchError()

    return membership


def require_resource_in_shop(model, resource_id: int, shop_id: int, label: str | None = None):
    """
    Load a shop-owned row by id and check it belongs to shop_id.

    NotFound wins over ResourceMismatch: an id that does not exist is a 404
    whatever the tenant.
    """
    label = label or model.__name__
    resource = db.session.get(model, resource_id)
    if resource is None:
        raise NotFoundError(f"{label} not found")

    if resource.shop_id != shop_id:
        current_user = getattr(g, "current_user", None)
        _log_denial(
            current_user.id if current_user else None,
            shop_id,
            "RESOURCE_MISMATCH",
            f"{label} {resource_id} belongs to shop {resource.shop_id}, not {shop_id}",
        )
        raise ResourceMismatchError(f"You do not have access to this {label.lower()}")

    return resource


def get_current_shop_id() -> int:
    """
    Get the resolved shop_id from Flask g context.

    SECURITY: Raises MissingTenantError if no tenant was resolved. This should
    never happen after @require_tenant, but is a safety check.
    """
    shop_id = getattr(g, "shop_id", None)
    if shop_id is None:
        raise MissingTenantError()
    return shop_id


def scoped_query(model, shop_id: int | None = None):
    """
    Base query for a shop-owned model, filtered to one shop.

    Usage:
        items = scoped_query(Item).order_by(Item.name).all()
    """
    if shop_id is None:
        shop_id = get_current_shop_id()
    return db.session.query(model).filter(model.shop_id == shop_id)


def _log_denial(user_id: int | None, shop_id: int | None, event_type: str, reason: str) -> None:
    record_denial(user_id, event_type, reason, shop_id=shop_id)
