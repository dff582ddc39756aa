# Overview: Pytest coverage for tenant resolution and shop-scoped authorization.

"""
Tenant Resolution & Authorization Tests

SECURITY TESTS: Prove that every shop-scoped request acts on exactly one
shop, chosen by fixed precedence (token > query > body > cookie), and that
membership is re-checked against whichever shop won.
"""

import pytest
from stockroom.errors import (
    InvalidTenantError,
    MissingTenantError,
    NotAMemberError,
    NotFoundError,
    ResourceMismatchError,
)
from stockroom.models import Item, SecurityEvent
from stockroom.services import security_service
from stockroom.services.tenant_service import (
    TenantSource,
    authorize_tenant,
    require_resource_in_shop,
    resolve_tenant,
    scoped_query,
)
from stockroom.services.token_service import TokenClaims

from conftest import add_member, auth_headers, make_item


def claims(shop_id):
    return TokenClaims(id=1, email="someone@acme.com", shop_id=shop_id, type="access")


class TestResolveTenant:
    """Pure precedence rules, no database."""

    def test_token_beats_query(self):
        resolution = resolve_tenant(claims(5), query_shop_id="7")
        assert resolution.shop_id == 5
        assert resolution.source == TenantSource.TOKEN

    def test_full_precedence_order(self):
        assert resolve_tenant(claims(1), "2", "3", "4").source == TenantSource.TOKEN
        assert resolve_tenant(claims(None), "2", "3", "4").source == TenantSource.QUERY
        assert resolve_tenant(None, None, "3", "4").source == TenantSource.BODY
        assert resolve_tenant(None, None, None, "4").source == TenantSource.COOKIE

    def test_blank_values_are_skipped(self):
        resolution = resolve_tenant(claims(None), "   ", "", " 9 ")
        assert resolution.shop_id == 9
        assert resolution.source == TenantSource.COOKIE

    def test_body_accepts_int(self):
        resolution = resolve_tenant(None, body_shop_id=12)
        assert resolution.shop_id == 12
        assert resolution.source == TenantSource.BODY

    def test_missing_everywhere(self):
        with pytest.raises(MissingTenantError):
            resolve_tenant(None, None, None, None)

    @pytest.mark.parametrize("raw", ["abc", "7.5", "1e3", 7.5, True, "0x10"])
    def test_non_integer_is_invalid(self, raw):
        with pytest.raises(InvalidTenantError):
            resolve_tenant(None, query_shop_id=raw)

    def test_invalid_winner_is_not_skipped(self):
        """A malformed higher-precedence value is an error, not a fallthrough."""
        with pytest.raises(InvalidTenantError):
            resolve_tenant(None, query_shop_id="nope", body_shop_id=3)

    def test_resolution_is_idempotent(self):
        first = resolve_tenant(claims(None), "7", "8")
        second = resolve_tenant(claims(None), "7", "8")
        assert first == second


class TestAuthorizeTenant:

    def test_member_is_authorized(self, db_session, owner_a, shop_a):
        membership = authorize_tenant(owner_a.id, shop_a.id)
        assert membership.shop_id == shop_a.id
        assert membership.accepted_into_shop is True

    def test_non_member_denied(self, db_session, owner_a, shop_b):
        with pytest.raises(NotAMemberError):
            authorize_tenant(owner_a.id, shop_b.id)

    def test_pending_member_passes_plain_check(self, db_session, staff, shop_a):
        add_member(db_session, staff, shop_a, accepted=False)
        assert authorize_tenant(staff.id, shop_a.id).accepted_into_shop is False

    def test_pending_member_denied_when_accepted_required(self, db_session, staff, shop_a):
        add_member(db_session, staff, shop_a, accepted=False)
        with pytest.raises(NotAMemberError):
            authorize_tenant(staff.id, shop_a.id, require_accepted=True)

    def test_resource_from_other_shop_is_mismatch(self, db_session, owner_a, shop_a, shop_b):
        with pytest.raises(ResourceMismatchError) as exc_info:
            authorize_tenant(owner_a.id, shop_a.id, resource_owner_shop_id=shop_b.id)
        assert exc_info.value.status_code == 403

    def test_not_found_wins_over_mismatch(self, db_session, owner_a, shop_a, shop_b):
        with pytest.raises(NotFoundError) as exc_info:
            authorize_tenant(
                owner_a.id,
                shop_a.id,
                resource_owner_shop_id=shop_b.id,
                resource_exists=False,
            )
        assert exc_info.value.status_code == 404

    def test_denial_is_queued_not_committed(self, db_session, owner_a, shop_b):
        with pytest.raises(NotAMemberError):
            authorize_tenant(owner_a.id, shop_b.id)

        assert db_session.query(SecurityEvent).count() == 0
        queued = security_service.pending_events()
        assert len(queued) == 1
        assert queued[0]["event_type"] == "TENANT_ACCESS_DENIED"

        assert security_service.flush_pending_events() == 1
        events = db_session.query(SecurityEvent).filter_by(event_type="TENANT_ACCESS_DENIED").all()
        assert len(events) == 1
        assert events[0].user_id == owner_a.id
        assert events[0].shop_id == shop_b.id
        assert events[0].success is False

    def test_denial_leaves_staged_changes_uncommitted(self, db_session, owner_a, shop_b, item_a):
        item_a.name = "Staged rename"

        with pytest.raises(NotAMemberError):
            authorize_tenant(owner_a.id, shop_b.id)
        db_session.rollback()

        assert db_session.get(Item, item_a.id).name == "Apples"

    def test_flush_discards_failed_work(self, db_session, owner_a, shop_a, item_b):
        db_session.get(Item, item_b.id).name = "Half-done edit"

        with pytest.raises(ResourceMismatchError):
            require_resource_in_shop(Item, item_b.id, shop_a.id)
        security_service.flush_pending_events()

        assert db_session.get(Item, item_b.id).name == "Bananas"
        assert db_session.query(SecurityEvent).filter_by(event_type="RESOURCE_MISMATCH").count() == 1


class TestResourceInShop:

    def test_item_in_shop(self, db_session, shop_a, item_a):
        assert require_resource_in_shop(Item, item_a.id, shop_a.id).id == item_a.id

    def test_item_from_other_shop(self, db_session, shop_a, item_b):
        with pytest.raises(ResourceMismatchError):
            require_resource_in_shop(Item, item_b.id, shop_a.id)

    def test_unknown_item(self, db_session, shop_a, shop_b):
        with pytest.raises(NotFoundError):
            require_resource_in_shop(Item, 99999, shop_a.id)

    def test_scoped_query_filters_by_shop(self, db_session, shop_a, shop_b, item_a, item_b):
        names = [i.name for i in scoped_query(Item, shop_a.id).all()]
        assert names == ["Apples"]


class TestTenantRoutes:
    """Resolution and authorization through the HTTP surface."""

    def test_token_shop_wins_and_is_rechecked(self, client, db_session, owner_b, shop_a, shop_b):
        """
        Token names shop A, query names shop B. owner_b belongs to B only:
        the token wins, so membership is checked against A and denied.
        """
        response = client.get(
            f"/api/items?shopId={shop_b.id}",
            headers=auth_headers(owner_b, shop_a.id),
        )
        assert response.status_code == 403
        assert response.get_json()["message"] == "User is not a member of this shop"

    def test_query_used_when_token_has_no_shop(self, client, db_session, owner_b, shop_b, item_b):
        response = client.get(f"/api/items?shopId={shop_b.id}", headers=auth_headers(owner_b))
        assert response.status_code == 200
        assert [i["name"] for i in response.get_json()["items"]] == ["Bananas"]

    def test_query_shop_still_needs_membership(self, client, db_session, owner_a, shop_a, shop_b):
        response = client.get(f"/api/items?shopId={shop_b.id}", headers=auth_headers(owner_a))
        assert response.status_code == 403

    def test_denied_request_records_event(self, client, db_session, owner_a, shop_a, shop_b):
        response = client.get(f"/api/items?shopId={shop_b.id}", headers=auth_headers(owner_a))
        assert response.status_code == 403

        event = db_session.query(SecurityEvent).filter_by(event_type="TENANT_ACCESS_DENIED").one()
        assert event.shop_id == shop_b.id
        assert event.resource == "/api/items"
        assert event.action == "GET"
        assert security_service.pending_events() == []

    def test_denials_listed_by_cli(self, app, client, db_session, owner_a, shop_a, shop_b):
        client.get(f"/api/items?shopId={shop_b.id}", headers=auth_headers(owner_a))
        runner = app.test_cli_runner()

        result = runner.invoke(args=["maintenance", "security-events", "--shop-id", str(shop_b.id)])
        assert result.exit_code == 0
        assert "TENANT_ACCESS_DENIED" in result.output
        assert "GET /api/items" in result.output

        empty = runner.invoke(args=["maintenance", "security-events", "--type", "LOGIN_FAILED"])
        assert "No security events found." in empty.output

    def test_body_shop_id(self, client, db_session, owner_a, shop_a):
        response = client.post(
            "/api/items",
            json={"shopId": shop_a.id, "name": "Pears", "quantity": 3},
            headers=auth_headers(owner_a),
        )
        assert response.status_code == 201
        assert response.get_json()["shopId"] == shop_a.id

    def test_cookie_shop_id(self, client, db_session, owner_a, shop_a, item_a):
        client.set_cookie("shopId", str(shop_a.id))
        response = client.get("/api/items", headers=auth_headers(owner_a))
        assert response.status_code == 200
        assert response.get_json()["totalItems"] == 1

    def test_missing_tenant(self, client, db_session, owner_a):
        response = client.get("/api/items", headers=auth_headers(owner_a))
        assert response.status_code == 403
        assert "shopId is required" in response.get_json()["message"]

    def test_invalid_tenant(self, client, db_session, owner_a):
        response = client.get("/api/items?shopId=abc", headers=auth_headers(owner_a))
        assert response.status_code == 400
        assert response.get_json()["message"] == "shopId must be a valid number"

    def test_item_from_other_shop_is_403(self, client, db_session, owner_a, shop_a, item_b):
        response = client.get(f"/api/items/{item_b.id}", headers=auth_headers(owner_a, shop_a.id))
        assert response.status_code == 403

    def test_unknown_item_is_404(self, client, db_session, owner_a, shop_a):
        response = client.get("/api/items/99999", headers=auth_headers(owner_a, shop_a.id))
        assert response.status_code == 404

    def test_body_cannot_move_item_to_other_shop(self, client, db_session, owner_a, shop_a, shop_b, item_a):
        """shop_id in a payload selects the tenant; it never reassigns a row."""
        response = client.put(
            f"/api/items/{item_a.id}",
            json={"name": "Green Apples", "shop_id": shop_b.id},
            headers=auth_headers(owner_a, shop_a.id),
        )
        assert response.status_code == 200
        assert response.get_json()["shopId"] == shop_a.id

    def test_pending_member_sees_items_but_not_members(self, client, db_session, staff, shop_a, item_a):
        add_member(db_session, staff, shop_a, accepted=False)
        headers = auth_headers(staff, shop_a.id)

        assert client.get("/api/items", headers=headers).status_code == 200
        assert client.get(f"/api/shops/{shop_a.id}/users", headers=headers).status_code == 403

    def test_other_shop_items_never_listed(self, client, db_session, owner_a, shop_a, shop_b, item_a):
        make_item(db_session, shop_b, name="Secret")
        response = client.get("/api/items", headers=auth_headers(owner_a, shop_a.id))
        names = [i["name"] for i in response.get_json()["items"]]
        assert "Secret" not in names
