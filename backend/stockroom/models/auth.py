from __future__ import annotations

from ..extensions import db
from stockroom.time_utils import to_utc_z


class User(db.Model):
    """
    User accounts for authentication and attribution.

    MULTI-TENANT: Users reach shops only through UserShop memberships.
    shop_id is a "last active shop" hint: set when the user creates or
    connects to a shop, cleared when that shop is deleted, and read only by
    the legacy membership backfill. Token defaults come from memberships and
    authorization never consults it.
    """
    __tablename__ = "users"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)

    username = db.Column(db.String(64), nullable=False, index=True)
    email = db.Column(db.String(255), nullable=False, unique=True, index=True)

    # Bcrypt hashed password
    password_hash = db.Column(db.String(255), nullable=True)

    phone_number = db.Column(db.String(32), nullable=True)
    uid = db.Column(db.String(128), nullable=True, unique=True, index=True)

    # Global permission; a membership-level permission overrides it per shop
    permission = db.Column(db.String(32), nullable=True)

    # Last active shop hint (legacy single-shop column)
    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id", ondelete="SET NULL"), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email!r}>"

    def to_dict(self) -> dict:
        # password_hash is never serialized
        return {
            "id": self.id,
            "username": self.username,
            "email": self.email,
            "phoneNumber": self.phone_number,
            "permission": self.permission,
            "uid": self.uid,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }
