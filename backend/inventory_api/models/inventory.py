from __future__ import annotations

from ..extensions import db
from inventory_api.time_utils import to_utc_z, utcnow

STATUS_IN_STOCK = "In Stock"
STATUS_OUT_OF_STOCK = "Out of Stock"


def status_for_stock(stock: int) -> str:
    """Status is derived from stock at write time, never set by callers."""
    return STATUS_OUT_OF_STOCK if stock <= 0 else STATUS_IN_STOCK


class Product(db.Model):
    """
    Product master data, owned by exactly one account.

    OWNERSHIP: owner_id is the only visibility key. Non-admin callers
    only ever see rows where owner_id == their account id.

    NAME UNIQUENESS: the table enforces (owner_id, name); the service
    layer additionally enforces case-insensitive, trimmed uniqueness.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.UniqueConstraint("owner_id", "name", name="uq_products_owner_name"),
        db.CheckConstraint("stock >= 0", name="stock_non_negative"),
        db.Index("ix_products_owner_deleted", "owner_id", "is_deleted"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    owner_id = db.Column(db.Integer, db.ForeignKey("accounts.id"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    unit = db.Column(db.String(64), nullable=False)
    category = db.Column(db.String(128), nullable=False)
    brand = db.Column(db.String(128), nullable=False)
    stock = db.Column(db.Integer, nullable=False, default=0)
    status = db.Column(db.String(32), nullable=False)

    # Opaque reference: "/uploads/<file>" or an external URL
    image = db.Column(db.Text, nullable=True)
    description = db.Column(db.Text, nullable=True)

    # Earlier schema revision soft-deleted; rows are hard-deleted now
    is_deleted = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} owner_id={self.owner_id} stock={self.stock}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "name": self.name,
            "unit": self.unit,
            "category": self.category,
            "brand": self.brand,
            "stock": self.stock,
            "status": self.status,
            "image": self.image,
            "description": self.description,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class StockChangeEvent(db.Model):
    """
    Stock history for a product.

    IMMUTABLE: append-only. One row per update that actually changes
    the stock value; never written on create, never deleted.

    product_id carries no foreign key: history outlives the product it
    describes.
    """
    __tablename__ = "stock_change_events"
    __table_args__ = (
        db.Index("ix_stock_change_events_product_ts", "product_id", "timestamp"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, nullable=False, index=True)
    old_stock = db.Column(db.Integer, nullable=True)
    new_stock = db.Column(db.Integer, nullable=True)
    changed_by = db.Column(db.String(255), nullable=False)
    timestamp = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "old_stock": self.old_stock,
            "new_stock": self.new_stock,
            "changed_by": self.changed_by,
            "timestamp": to_utc_z(self.timestamp),
        }
