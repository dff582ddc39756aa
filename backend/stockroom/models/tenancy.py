from __future__ import annotations

from ..extensions import db
from stockroom.time_utils import to_utc_z


class Shop(db.Model):
    """
    Multi-tenant root: every tenant is a Shop.

    All items, inventory records, notifications and memberships belong to
    exactly one shop. No shop-scoped query may cross shop boundaries.
    """
    __tablename__ = "shops"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False, index=True)
    description = db.Column(db.Text, nullable=True)
    address = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(32), nullable=True)
    email = db.Column(db.String(255), nullable=True)
    website = db.Column(db.String(255), nullable=True)

    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    memberships = db.relationship(
        "UserShop", back_populates="shop", cascade="all, delete-orphan"
    )
    items = db.relationship("Item", backref="shop", cascade="all, delete-orphan")
    inventory_records = db.relationship(
        "InventoryRecord", backref="shop", cascade="all, delete-orphan"
    )
    notifications = db.relationship(
        "Notification", backref="shop", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Shop id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "address": self.address,
            "phone": self.phone,
            "email": self.email,
            "website": self.website,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }


class UserShop(db.Model):
    """
    Membership of a user in a shop.

    State is carried by accepted_into_shop: no row means NONE, a row with
    False is PENDING, a row with True is ACCEPTED. The workflow never deletes
    rows; de-accepting moves ACCEPTED back to PENDING.

    The (user_id, shop_id) unique constraint is the only guard against
    duplicate memberships under concurrent connect requests.
    """
    __tablename__ = "user_shops"
    __table_args__ = (
        db.UniqueConstraint("user_id", "shop_id", name="uq_user_shops_user_shop"),
        db.Index("ix_user_shops_shop_accepted", "shop_id", "accepted_into_shop"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id", ondelete="CASCADE"), nullable=False, index=True)
    accepted_into_shop = db.Column(db.Boolean, nullable=False, default=False)

    # Per-shop override of User.permission
    permission = db.Column(db.String(32), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    user = db.relationship(
        "User",
        backref=db.backref("memberships", lazy=True, cascade="all, delete-orphan"),
    )
    shop = db.relationship("Shop", back_populates="memberships")

    @property
    def effective_permission(self) -> str | None:
        return self.permission or (self.user.permission if self.user else None)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "userId": self.user_id,
            "shopId": self.shop_id,
            "acceptedIntoShop": self.accepted_into_shop,
            "permission": self.permission,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }

    def to_member_dict(self) -> dict:
        """User profile as seen from this shop (membership permission wins)."""
        data = self.user.to_dict()
        data.update({
            "shopId": self.shop_id,
            "acceptedIntoShop": self.accepted_into_shop,
            "permission": self.effective_permission,
        })
        return data
