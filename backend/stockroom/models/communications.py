from __future__ import annotations

from ..extensions import db
from stockroom.time_utils import to_utc_z


class Notification(db.Model):
    """Shop event surfaced to members. Always created unread."""
    __tablename__ = "notifications"
    __table_args__ = (
        db.Index("ix_notifications_shop_read", "shop_id", "read"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id", ondelete="CASCADE"), nullable=False, index=True)
    title = db.Column(db.String(255), nullable=True)
    message = db.Column(db.Text, nullable=False)
    read = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "shopId": self.shop_id,
            "title": self.title,
            "message": self.message,
            "read": self.read,
            "createdAt": to_utc_z(self.created_at),
        }
