# Overview: Pytest coverage for the user/shop membership workflow.

"""
Membership Workflow Tests

NONE -> PENDING (connect), PENDING <-> ACCEPTED (accept / de-accept),
creator auto-accepted, connect idempotent and never downgrading, legacy
single-shop users backfilled into user_shops.
"""

import pytest
from sqlalchemy.exc import IntegrityError

from stockroom.errors import NotAMemberError, NotFoundError, ShopNotFoundError
from stockroom.models import SecurityEvent, UserShop
from stockroom.services import membership_service, shop_service, token_service
from stockroom.services.membership_service import (
    ALREADY_CONNECTED_MESSAGE,
    CONNECTED_MESSAGE,
    MembershipState,
)

from conftest import add_member, auth_headers


def memberships(db_session, user, shop):
    return db_session.query(UserShop).filter_by(user_id=user.id, shop_id=shop.id).all()


class TestCreatorAutoAccept:

    def test_creator_is_accepted_immediately(self, db_session, staff):
        shop = shop_service.create_shop({"name": "Foo"}, staff.id)

        rows = memberships(db_session, staff, shop)
        assert len(rows) == 1
        assert rows[0].accepted_into_shop is True
        assert membership_service.membership_state(staff.id, shop.id) == MembershipState.ACCEPTED

    def test_creator_hint_points_at_new_shop(self, db_session, staff):
        shop = shop_service.create_shop({"name": "Foo"}, staff.id)
        assert staff.shop_id == shop.id

    def test_unknown_creator_creates_nothing(self, db_session):
        with pytest.raises(NotFoundError):
            shop_service.create_shop({"name": "Orphan"}, 99999)
        db_session.rollback()
        assert shop_service.list_shops() == []

    def test_create_shop_route_returns_accepted_owner(self, client, db_session, staff):
        response = client.post("/api/shops", json={"name": "Route Shop"}, headers=auth_headers(staff))
        assert response.status_code == 201
        shop_id = response.get_json()["id"]

        mine = client.get("/api/shops/me/shops", headers=auth_headers(staff)).get_json()
        assert [(s["id"], s["acceptedIntoShop"]) for s in mine] == [(shop_id, True)]


class TestConnectToShop:

    def test_first_connect_creates_pending(self, db_session, staff, shop_a):
        result = membership_service.connect_to_shop(staff.id, shop_a.id)

        assert result["message"] == CONNECTED_MESSAGE
        assert result["user"]["shopId"] == shop_a.id
        assert result["user"]["acceptedIntoShop"] is False
        assert "password_hash" not in result["user"]
        assert membership_service.membership_state(staff.id, shop_a.id) == MembershipState.PENDING

    def test_connect_twice_keeps_one_pending_row(self, db_session, staff, shop_a):
        membership_service.connect_to_shop(staff.id, shop_a.id)
        second = membership_service.connect_to_shop(staff.id, shop_a.id)

        assert second["message"] == ALREADY_CONNECTED_MESSAGE
        rows = memberships(db_session, staff, shop_a)
        assert len(rows) == 1
        assert rows[0].accepted_into_shop is False

    def test_connect_after_accept_does_not_downgrade(self, db_session, staff, shop_a):
        membership_service.connect_to_shop(staff.id, shop_a.id)
        membership_service.connect_to_shop(staff.id, shop_a.id)
        membership_service.accept_user(staff.id, shop_a.id)

        third = membership_service.connect_to_shop(staff.id, shop_a.id)

        assert third["message"] == ALREADY_CONNECTED_MESSAGE
        assert third["user"]["acceptedIntoShop"] is True
        assert membership_service.membership_state(staff.id, shop_a.id) == MembershipState.ACCEPTED

    def test_both_paths_reissue_tokens_with_shop(self, app, db_session, staff, shop_a):
        for _ in range(2):
            result = membership_service.connect_to_shop(staff.id, shop_a.id)
            access = token_service.verify_token(result["accessToken"], token_service.ACCESS_TOKEN_TYPE)
            refresh = token_service.verify_token(result["refreshToken"], token_service.REFRESH_TOKEN_TYPE)
            assert access.shop_id == shop_a.id
            assert refresh.shop_id == shop_a.id

    def test_connect_moves_last_active_hint(self, db_session, owner_a, shop_a, shop_b):
        membership_service.connect_to_shop(owner_a.id, shop_b.id)
        assert owner_a.shop_id == shop_b.id
        # Original membership untouched
        assert membership_service.membership_state(owner_a.id, shop_a.id) == MembershipState.ACCEPTED

    def test_unknown_shop(self, db_session, staff):
        with pytest.raises(ShopNotFoundError):
            membership_service.connect_to_shop(staff.id, 99999)

    def test_unknown_user(self, db_session, shop_a):
        with pytest.raises(NotFoundError):
            membership_service.connect_to_shop(99999, shop_a.id)

    def test_lost_insert_race_takes_idempotent_path(self, db_session, staff, shop_a, monkeypatch):
        """
        A concurrent connect inserted the row between our lookup and our
        insert: the unique constraint fires and the caller sees the
        "already connected" answer instead of an IntegrityError.
        """
        add_member(db_session, staff, shop_a, accepted=False)

        real_get_membership = membership_service.get_membership
        calls = {"count": 0}

        def stale_first_lookup(user_id, shop_id):
            calls["count"] += 1
            if calls["count"] == 1:
                return None
            return real_get_membership(user_id, shop_id)

        monkeypatch.setattr(membership_service, "get_membership", stale_first_lookup)

        result = membership_service.connect_to_shop(staff.id, shop_a.id)

        assert result["message"] == ALREADY_CONNECTED_MESSAGE
        assert len(memberships(db_session, staff, shop_a)) == 1

    def test_unique_constraint_rejects_duplicates(self, db_session, staff, shop_a):
        add_member(db_session, staff, shop_a, accepted=False)
        db_session.add(UserShop(user_id=staff.id, shop_id=shop_a.id, accepted_into_shop=True))
        with pytest.raises(IntegrityError):
            db_session.commit()
        db_session.rollback()

    def test_connect_route(self, client, db_session, staff, shop_a):
        response = client.post(
            "/api/auth/connect-shop",
            json={"shopId": shop_a.id},
            headers=auth_headers(staff),
        )
        assert response.status_code == 200
        body = response.get_json()
        assert body["message"] == CONNECTED_MESSAGE
        assert body["accessToken"] and body["refreshToken"]
        assert f"shopId={shop_a.id}" in response.headers.get("Set-Cookie", "")

    def test_connect_route_unknown_shop(self, client, db_session, staff):
        response = client.post("/api/auth/connect-shop", json={"shopId": 99999}, headers=auth_headers(staff))
        assert response.status_code == 404
        assert response.get_json()["message"] == "Shop not found"


class TestAcceptDeaccept:

    def test_accept_then_deaccept(self, db_session, staff, shop_a):
        add_member(db_session, staff, shop_a, accepted=False)

        accepted = membership_service.accept_user(staff.id, shop_a.id)
        assert accepted["acceptedIntoShop"] is True

        pending = membership_service.deaccept_user(staff.id, shop_a.id)
        assert pending["acceptedIntoShop"] is False
        # De-accept keeps the row
        assert len(memberships(db_session, staff, shop_a)) == 1

    def test_accept_requires_membership(self, db_session, staff, shop_a):
        with pytest.raises(NotAMemberError) as exc_info:
            membership_service.accept_user(staff.id, shop_a.id)
        assert exc_info.value.message == "User is not associated with this shop"

    def test_membership_permission_overrides_global(self, db_session, staff, shop_a):
        add_member(db_session, staff, shop_a, accepted=False, permission="manager")
        result = membership_service.accept_user(staff.id, shop_a.id)
        assert staff.permission == "staff"
        assert result["permission"] == "manager"

    def test_global_permission_used_without_override(self, db_session, staff, shop_a):
        add_member(db_session, staff, shop_a, accepted=False)
        assert membership_service.accept_user(staff.id, shop_a.id)["permission"] == "staff"

    def test_set_member_permission(self, db_session, staff, shop_a):
        add_member(db_session, staff, shop_a)
        assert membership_service.set_member_permission(staff.id, shop_a.id, "manager")["permission"] == "manager"
        # Clearing falls back to the global permission
        assert membership_service.set_member_permission(staff.id, shop_a.id, "")["permission"] == "staff"

    def test_accept_is_audited(self, db_session, owner_a, staff, shop_a):
        add_member(db_session, staff, shop_a, accepted=False)
        membership_service.accept_user(staff.id, shop_a.id, actor_id=owner_a.id)

        event = db_session.query(SecurityEvent).filter_by(event_type="MEMBERSHIP_ACCEPTED").one()
        assert event.user_id == owner_a.id
        assert event.shop_id == shop_a.id

    def test_accept_route_uses_resolved_shop(self, client, db_session, owner_a, staff, shop_a):
        add_member(db_session, staff, shop_a, accepted=False, permission="manager")

        response = client.post(f"/api/users/{staff.id}/accept", headers=auth_headers(owner_a, shop_a.id))
        assert response.status_code == 200
        body = response.get_json()
        assert body["acceptedIntoShop"] is True
        assert body["permission"] == "manager"
        assert body["shopId"] == shop_a.id

    def test_pending_member_cannot_accept(self, client, db_session, staff, owner_b, shop_a):
        add_member(db_session, staff, shop_a, accepted=False)
        add_member(db_session, owner_b, shop_a, accepted=False)

        response = client.post(f"/api/users/{owner_b.id}/accept", headers=auth_headers(staff, shop_a.id))
        assert response.status_code == 403
        assert membership_service.membership_state(owner_b.id, shop_a.id) == MembershipState.PENDING

    def test_accept_non_member_route(self, client, db_session, owner_a, staff, shop_a):
        response = client.get(f"/api/users/{staff.id}/accept", headers=auth_headers(owner_a, shop_a.id))
        assert response.status_code == 403


class TestMemberListings:

    def test_listings_split_by_state(self, db_session, owner_a, staff, owner_b, shop_a):
        add_member(db_session, staff, shop_a, accepted=False)
        add_member(db_session, owner_b, shop_a, accepted=True)

        all_ids = [u["id"] for u in membership_service.list_shop_users(shop_a.id)]
        accepted_ids = [u["id"] for u in membership_service.list_accepted_users(shop_a.id)]
        pending_ids = [u["id"] for u in membership_service.list_unaccepted_users(shop_a.id)]

        assert sorted(all_ids) == sorted([owner_a.id, staff.id, owner_b.id])
        assert sorted(accepted_ids) == sorted([owner_a.id, owner_b.id])
        assert pending_ids == [staff.id]

    def test_listing_routes(self, client, db_session, owner_a, staff, shop_a):
        add_member(db_session, staff, shop_a, accepted=False)
        headers = auth_headers(owner_a)

        users = client.get(f"/api/shops/{shop_a.id}/users", headers=headers).get_json()
        pending = client.get(f"/api/shops/{shop_a.id}/users/unaccepted", headers=headers).get_json()
        accepted = client.get(f"/api/shops/{shop_a.id}/users/accepted", headers=headers).get_json()

        assert len(users) == 2
        assert [u["id"] for u in pending] == [staff.id]
        assert [u["id"] for u in accepted] == [owner_a.id]
        assert all("password_hash" not in u for u in users)

    def test_listing_other_shop_denied(self, client, db_session, owner_a, shop_b):
        response = client.get(f"/api/shops/{shop_b.id}/users", headers=auth_headers(owner_a))
        assert response.status_code == 403

    def test_listing_unknown_shop(self, client, db_session, owner_a):
        response = client.get("/api/shops/99999/users", headers=auth_headers(owner_a))
        assert response.status_code == 404


class TestLegacyBackfill:

    def test_backfill_creates_rows_from_hint(self, db_session, staff, shop_a):
        staff.shop_id = shop_a.id
        db_session.commit()

        created = membership_service.backfill_legacy_memberships({staff.id: True})

        assert created == 1
        assert membership_service.membership_state(staff.id, shop_a.id) == MembershipState.ACCEPTED

    def test_backfill_defaults_to_pending(self, db_session, staff, shop_a):
        staff.shop_id = shop_a.id
        db_session.commit()

        membership_service.backfill_legacy_memberships()
        assert membership_service.membership_state(staff.id, shop_a.id) == MembershipState.PENDING

    def test_backfill_is_idempotent(self, db_session, owner_a, staff, shop_a):
        staff.shop_id = shop_a.id
        db_session.commit()

        # owner_a already has a row for shop_a from create_shop
        assert membership_service.backfill_legacy_memberships() == 1
        assert membership_service.backfill_legacy_memberships() == 0
        assert len(memberships(db_session, staff, shop_a)) == 1

    def test_backfill_cli(self, app, db_session, staff, shop_a):
        staff.shop_id = shop_a.id
        db_session.commit()

        runner = app.test_cli_runner()
        result = runner.invoke(args=["memberships", "backfill"])

        assert result.exit_code == 0
        assert "Created 1 membership rows." in result.output
