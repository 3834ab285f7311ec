from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class Sale(db.Model):
    """
    Committed sale.

    Lifecycle: Active (voided=False) -> Voided (terminal). Voiding keeps the
    row and its items for audit; every revenue/quantity aggregate filters
    voided sales out.

    sale_date is an ISO 'YYYY-MM-DD' string so range filters can compare it
    lexically.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.Index("ix_sales_date_voided", "sale_date", "voided"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Grand total after discounts (what the customer paid)
    total_cents = db.Column(db.Integer, nullable=False)
    original_total_cents = db.Column(db.Integer, nullable=False, default=0)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)

    sale_date = db.Column(db.String(10), nullable=False, index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    # Tender (optional; cash drawer screens supply it)
    amount_tendered_cents = db.Column(db.Integer, nullable=True)
    change_cents = db.Column(db.Integer, nullable=True)

    # Void audit trail
    voided = db.Column(db.Boolean, nullable=False, default=False, index=True)
    voided_at = db.Column(db.DateTime(timezone=True), nullable=True)
    void_reason = db.Column(db.String(255), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    items = db.relationship(
        "SaleItem",
        backref="sale",
        order_by="SaleItem.id",
        lazy="selectin",
    )
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def status(self) -> str:
        return "VOIDED" if self.voided else "ACTIVE"

    def to_dict(self, include_items: bool = False) -> dict:
        data = {
            "id": self.id,
            "total_cents": self.total_cents,
            "original_total_cents": self.original_total_cents,
            "discount_cents": self.discount_cents,
            "sale_date": self.sale_date,
            "created_at": to_utc_z(self.created_at),
            "amount_tendered_cents": self.amount_tendered_cents,
            "change_cents": self.change_cents,
            "status": self.status,
            "voided": self.voided,
            "voided_at": to_utc_z(self.voided_at) if self.voided_at else None,
            "void_reason": self.void_reason,
            "version_id": self.version_id,
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class SaleItem(db.Model):
    """
    Immutable line of a committed sale.

    product_id is a plain snapshot reference (no FK) because products can be
    deleted later; name and barcode are copied so history stays readable.
    """
    __tablename__ = "sale_items"
    __table_args__ = (
        db.Index("ix_sale_items_product", "product_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, nullable=False)

    product_name = db.Column(db.String(255), nullable=False)
    product_barcode = db.Column(db.String(64), nullable=True)

    quantity = db.Column(db.Integer, nullable=False)
    # Price actually charged per unit (post-discount)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    # List price at sale time, for discount reporting
    list_price_cents = db.Column(db.Integer, nullable=False)
    manual_override = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    @property
    def line_total_cents(self) -> int:
        return self.unit_price_cents * self.quantity

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "product_barcode": self.product_barcode,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "list_price_cents": self.list_price_cents,
            "line_total_cents": self.line_total_cents,
            "manual_override": self.manual_override,
            "created_at": to_utc_z(self.created_at),
        }
