from __future__ import annotations

from ..extensions import db
from stockroom.time_utils import to_utc_z


DEFAULT_REFILL_COUNT = 5


class Item(db.Model):
    """
    Stock item owned by exactly one shop.

    refill_count is the threshold below which the item is reported as
    needing a refill; when unset DEFAULT_REFILL_COUNT applies.
    """
    __tablename__ = "items"
    __table_args__ = (
        db.Index("ix_items_shop_created", "shop_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id", ondelete="CASCADE"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    category = db.Column(db.String(128), nullable=True)
    quantity = db.Column(db.Integer, nullable=False, default=0)
    price = db.Column(db.Numeric(12, 2, asdecimal=False), nullable=True)
    image_url = db.Column(db.String(512), nullable=True)
    refill_count = db.Column(db.Integer, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    inventory_records = db.relationship(
        "InventoryRecord", back_populates="item", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Item id={self.id} name={self.name!r} shop_id={self.shop_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "shopId": self.shop_id,
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "quantity": self.quantity,
            "price": self.price,
            "image_url": self.image_url,
            "refill_count": self.refill_count,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }

    def to_summary_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "quantity": self.quantity,
            "category": self.category,
            "image_url": self.image_url,
            "createdAt": to_utc_z(self.created_at),
        }


class InventoryRecord(db.Model):
    """
    A single stock movement against an item.

    shop_id duplicates item.shop_id so shop-scoped listings and sums never
    need to join through items.
    """
    __tablename__ = "inventory_records"
    __table_args__ = (
        db.CheckConstraint("action IN ('sell', 'refill')", name="ck_inventory_records_action"),
        db.Index("ix_inventory_records_shop_created", "shop_id", "created_at"),
        db.Index("ix_inventory_records_shop_action", "shop_id", "action"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    item_id = db.Column(db.Integer, db.ForeignKey("items.id", ondelete="CASCADE"), nullable=False, index=True)
    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)

    action = db.Column(db.String(16), nullable=False)
    quantity = db.Column(db.Integer, nullable=False, default=1)
    cost = db.Column(db.Numeric(12, 2, asdecimal=False), nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    item = db.relationship("Item", back_populates="inventory_records")
    user = db.relationship("User")

    def to_dict(self, include_item: bool = True) -> dict:
        data = {
            "id": self.id,
            "itemId": self.item_id,
            "shopId": self.shop_id,
            "userId": self.user_id,
            "action": self.action,
            "quantity": self.quantity,
            "cost": self.cost,
            "createdAt": to_utc_z(self.created_at),
        }
        if include_item:
            data["item"] = self.item.to_summary_dict() if self.item else None
            data["user"] = (
                {"id": self.user.id, "username": self.user.username} if self.user else None
            )
        return data
