from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z

DEFAULT_CATEGORY = "Uncategorized"


class Product(db.Model):
    """
    Product master data with the live stock figure.

    STOCK: `quantity` is the authoritative on-hand count. Its only mutators are
    checkout (conditional decrement), void (increment) and direct edit
    (absolute set). It is never persisted negative; the CHECK constraint
    backs up the conditional UPDATE used by the inventory service.

    LOOKUP PATTERN:
    - Id lookup: db.session.get(Product, product_id)
    - Barcode lookup: Product.query.filter_by(barcode=code)
    """
    __tablename__ = "products"
    __table_args__ = (
        db.CheckConstraint("quantity >= 0", name="ck_products_quantity_non_negative"),
        db.CheckConstraint("price_cents >= 0", name="ck_products_price_non_negative"),
        db.Index("ix_products_name", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    name = db.Column(db.String(255), nullable=False)
    category = db.Column(db.String(128), nullable=False, default=DEFAULT_CATEGORY)

    # Scannable code; optional but unique when present
    barcode = db.Column(db.String(64), nullable=True, unique=True)

    # Opaque handle owned by the UI layer, never interpreted here
    image_path = db.Column(db.String(512), nullable=True)

    # Authoritative storage in cents (frontend may only format for display)
    price_cents = db.Column(db.Integer, nullable=False)
    capital_price_cents = db.Column(db.Integer, nullable=False)

    quantity = db.Column(db.Integer, nullable=False, default=0)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    discount_rules = db.relationship(
        "DiscountRule",
        backref="product",
        order_by="DiscountRule.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} quantity={self.quantity}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "barcode": self.barcode,
            "image_path": self.image_path,
            "price_cents": self.price_cents,
            "capital_price_cents": self.capital_price_cents,
            "quantity": self.quantity,
            "discount_rules": [rule.to_dict() for rule in self.discount_rules],
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class DiscountRule(db.Model):
    """
    Tiered quantity discount owned by a product.

    percent_bps is basis points (1000 = 10%). Rules are not unique on
    min_quantity; resolution always takes the best qualifying percent.
    """
    __tablename__ = "product_discount_rules"
    __table_args__ = (
        db.CheckConstraint("min_quantity >= 1", name="ck_discount_rules_min_quantity"),
        db.CheckConstraint(
            "percent_bps >= 0 AND percent_bps <= 10000", name="ck_discount_rules_percent_range"
        ),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(
        db.Integer, db.ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True
    )

    min_quantity = db.Column(db.Integer, nullable=False)
    percent_bps = db.Column(db.Integer, nullable=False)
    position = db.Column(db.Integer, nullable=False, default=0)

    @property
    def percent(self) -> float:
        return self.percent_bps / 100

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "min_quantity": self.min_quantity,
            "percent": self.percent,
        }
