import pytest

from tabletpos.services import checkout_service, inventory_service, products_service, reporting_service
from tabletpos.services.reporting_service import ReportError


def _sell(session, sale_date, *lines):
    return checkout_service.process_checkout(
        session,
        [
            {"product_id": p.id, "quantity": qty, "unit_price_cents": unit, "list_price_cents": p.price_cents}
            for p, qty, unit in lines
        ],
        sale_date=sale_date,
    )


@pytest.fixture
def shop(db_session, make_product):
    """Two products and three sales across two days, one of them voided."""
    soap = make_product(name="Soap", price_cents=50, quantity=20, barcode="111")
    rice = make_product(name="Rice", price_cents=200, quantity=10, barcode="222")

    day1 = _sell(db_session, "2026-05-01", (soap, 5, 45), (rice, 1, 200))
    day2 = _sell(db_session, "2026-05-02", (soap, 2, 50))
    voided = _sell(db_session, "2026-05-02", (rice, 3, 200))
    checkout_service.void_sale(db_session, voided)

    return {"soap": soap, "rice": rice, "sales": (day1, day2, voided)}


def test_total_sales_excludes_voided(db_session, shop):
    assert reporting_service.total_sales(db_session, "2026-05-01", "2026-05-01") == 425
    assert reporting_service.total_sales(db_session, "2026-05-02", "2026-05-02") == 100
    assert reporting_service.total_sales(db_session, "2026-05-01", "2026-05-02") == 525


def test_range_is_inclusive_and_open_ended(db_session, shop):
    assert reporting_service.total_sales(db_session, "2026-05-02", None) == 100
    assert reporting_service.total_sales(db_session, None, "2026-05-01") == 425
    assert reporting_service.total_sales(db_session) == 525
    assert reporting_service.total_sales(db_session, "2026-05-03", "2026-05-31") == 0


def test_sales_in_range_newest_first(db_session, shop):
    day1, day2, voided = shop["sales"]
    rows = reporting_service.sales_in_range(db_session, "2026-05-01", "2026-05-02")
    assert [row["id"] for row in rows] == [day2, day1]
    assert rows[1]["items_sold"] == 6
    assert all(row["status"] == "ACTIVE" for row in rows)


def test_products_sold_uses_charged_price(db_session, shop):
    rows = reporting_service.products_sold_in_range(db_session, "2026-05-01", "2026-05-02")
    by_name = {row["name"]: row for row in rows}

    assert by_name["Soap"]["total_quantity"] == 7
    assert by_name["Soap"]["total_revenue_cents"] == 5 * 45 + 2 * 50
    assert by_name["Soap"]["total_discount_cents"] == 25
    # The voided rice sale does not count
    assert by_name["Rice"]["total_quantity"] == 1
    assert rows[0]["name"] == "Soap"


def test_products_sold_keeps_deleted_products(db_session, shop):
    rice_id = shop["rice"].id
    products_service.delete_product(db_session, rice_id)

    rows = reporting_service.products_sold_in_range(db_session, "2026-05-01", "2026-05-01")
    rice = next(row for row in rows if row["product_id"] == rice_id)
    assert rice["name"] == "Rice"
    assert rice["barcode"] == "222"


def test_inventory_report_reconstructs_beginning_stock(db_session, shop):
    rows = {row["name"]: row for row in reporting_service.inventory_report(db_session, "2026-05-01", "2026-05-02")}

    assert rows["Soap"]["total_sold"] == 7
    assert rows["Soap"]["remaining_stock"] == 13
    assert rows["Soap"]["beginning_stock"] == 20
    # Voided sale returned its stock and is not counted as sold
    assert rows["Rice"]["total_sold"] == 1
    assert rows["Rice"]["remaining_stock"] == 9
    assert rows["Rice"]["beginning_stock"] == 10


def test_inventory_report_beginning_stock_is_approximate_after_manual_edit(db_session, shop):
    # beginning_stock is remaining + sold, so a direct stock edit during the
    # period shifts it. Known approximation; this pins the current behaviour.
    soap_id = shop["soap"].id
    inventory_service.set_stock(db_session, soap_id, 100)
    db_session.commit()

    rows = {row["product_id"]: row for row in reporting_service.inventory_report(db_session, "2026-05-01", "2026-05-02")}
    assert rows[soap_id]["remaining_stock"] == 100
    assert rows[soap_id]["beginning_stock"] == 107


def test_sales_summary(db_session, shop):
    summary = reporting_service.sales_summary(db_session, "2026-05-01", "2026-05-02")
    assert summary == {
        "start": "2026-05-01",
        "end": "2026-05-02",
        "sales_count": 2,
        "total_sales_cents": 525,
        "original_total_cents": 550,
        "total_discount_cents": 25,
        "items_sold": 8,
        "voided_count": 1,
    }


@pytest.mark.parametrize("start,end", [("2026-05-02", "2026-05-01"), ("yesterday", None), (None, "2026/05/01")])
def test_invalid_range(db_session, start, end):
    with pytest.raises(ReportError):
        reporting_service.total_sales(db_session, start, end)
