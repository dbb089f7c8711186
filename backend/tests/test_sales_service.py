"""
Sales, products, credits and expenses service tests.
"""

from decimal import Decimal

import pytest

from shopdesk.models import Credit, Product, SaleItem
from shopdesk.services import credit_service, expense_service, products_service, sales_service
from shopdesk.validation import NotFoundError, ValidationError
from conftest import add_product


class TestRecordSale:

    def test_line_profit_and_stock(self, db_session, admin):
        product = add_product(db_session, admin.id, "Rice", "Grocery", stock=20, price=150, cost=100)

        sale = sales_service.record_sale(admin.id, admin.id, {
            "items": [{"product_id": product.id, "quantity": 3}],
        })

        [line] = sale.items
        assert line.unit_price == Decimal("150.00")
        assert line.total_price == Decimal("450.00")
        assert line.profit == Decimal("150.00")
        assert db_session.get(Product, product.id).stock_quantity == 17
        assert sale.payment_status == "paid"
        assert sale.invoice_number == "INV-000001"

    def test_return_line_adds_nothing_and_restocks(self, db_session, admin):
        product = add_product(db_session, admin.id, "Tea", stock=5, price=100, cost=80)

        sale = sales_service.record_sale(admin.id, admin.id, {
            "items": [
                {"product_name": "Sugar", "unit_price": 60},
                {"product_id": product.id, "quantity": 2, "is_return": True},
            ],
        })

        assert sale.final_amount == Decimal("60.00")
        assert db_session.get(Product, product.id).stock_quantity == 7

    def test_partial_payment_opens_sale_credit(self, db_session, admin):
        sale = sales_service.record_sale(admin.id, admin.id, {
            "items": [{"product_name": "Oil", "unit_price": 1000}],
            "discount": 100,
            "paid_amount": 300,
            "customer_name": "Ali",
        })

        assert sale.final_amount == Decimal("900.00")
        assert sale.payment_status == "partial"
        credit = db_session.query(Credit).filter_by(sale_id=sale.id).one()
        assert credit.credit_type == "sale"
        assert credit.remaining_amount == Decimal("600.00")

    def test_unpaid_requires_customer(self, db_session, admin):
        with pytest.raises(ValidationError):
            sales_service.record_sale(admin.id, admin.id, {
                "items": [{"product_name": "Oil", "unit_price": 1000}],
                "paid_amount": 0,
            })

    @pytest.mark.parametrize("payload", [
        {},
        {"items": []},
        {"items": [{"unit_price": 5}]},
        {"items": [{"product_name": "Tea", "quantity": 0}]},
        {"items": [{"product_name": "Tea", "unit_price": "abc"}]},
        {"items": [{"product_name": "Tea", "unit_price": 10}], "discount": 50},
    ])
    def test_rejects_bad_payloads(self, db_session, admin, payload):
        with pytest.raises(ValidationError):
            sales_service.record_sale(admin.id, admin.id, payload)

    def test_soft_delete(self, db_session, admin):
        sale = sales_service.record_sale(admin.id, admin.id, {
            "items": [{"product_name": "Oil", "unit_price": 1000}],
            "paid_amount": 0,
            "customer_name": "Ali",
        })

        sales_service.soft_delete_sale(admin.id, sale.id)

        assert sale.deleted_at is not None
        assert all(item.is_deleted for item in db_session.query(SaleItem).filter_by(sale_id=sale.id))
        assert db_session.query(Credit).filter_by(sale_id=sale.id).count() == 0
        assert sales_service.list_sales(admin.id) == []
        assert len(sales_service.list_sales(admin.id, include_deleted=True)) == 1

    def test_soft_delete_foreign(self, db_session, admin, other_admin):
        sale = sales_service.record_sale(admin.id, admin.id, {"items": [{"product_name": "Oil", "unit_price": 1}]})
        with pytest.raises(NotFoundError):
            sales_service.soft_delete_sale(other_admin.id, sale.id)


class TestProductsCreditsExpenses:

    def test_create_product(self, db_session, admin):
        product = products_service.create_product(admin.id, {
            "name": "  Pen ", "category": "Stationery", "selling_price": "25.50", "stock_quantity": 4,
        })
        assert product.name == "Pen"
        assert product.is_low_stock is True
        assert [p.id for p in products_service.list_products(admin.id, low_stock_only=True)] == [product.id]

    def test_product_requires_name(self, db_session, admin):
        with pytest.raises(ValidationError):
            products_service.create_product(admin.id, {"selling_price": 5})

    def test_cash_credit(self, db_session, admin):
        credit = credit_service.create_cash_credit(admin.id, {"customer_name": "Bilal", "amount": "500"})
        assert credit.credit_type == "cash"
        assert credit.remaining_amount == Decimal("500.00")

    def test_cash_credits_listed_apart_from_sale_credits(self, client, db_session, admin, admin_headers):
        credit_service.create_cash_credit(admin.id, {"customer_name": "Bilal", "amount": "500"})
        sales_service.record_sale(admin.id, admin.id, {
            "customer_name": "Hina",
            "paid_amount": "0",
            "items": [{"product_name": "Tea", "quantity": 1, "unit_price": "300"}],
        })

        resp = client.get("/api/credits/cash", headers=admin_headers)

        assert resp.status_code == 200
        assert [c["customer_name"] for c in resp.get_json()["credits"]] == ["Bilal"]
        assert len(credit_service.list_credits(admin.id)) == 2

    @pytest.mark.parametrize("amount", [0, -5, "x"])
    def test_cash_credit_amount(self, db_session, admin, amount):
        with pytest.raises(ValidationError):
            credit_service.create_cash_credit(admin.id, {"customer_name": "Bilal", "amount": amount})

    def test_expense_dates(self, db_session, admin):
        expense = expense_service.create_expense(admin.id, {"amount": 99, "expense_date": "2024-03-15T10:00:00+05:00"})
        assert expense.expense_date.hour == 5

        with pytest.raises(ValidationError):
            expense_service.create_expense(admin.id, {"amount": 99, "expense_date": "someday"})


class TestInvoiceNumbers:

    def test_generated_numbers_skip_typed_ones(self, db_session, admin):
        typed = sales_service.record_sale(admin.id, admin.id, {
            "items": [{"product_name": "Oil", "unit_price": 10}],
            "invoice_number": "INV-000002",
        })
        generated = sales_service.record_sale(admin.id, admin.id, {"items": [{"product_name": "Oil", "unit_price": 10}]})

        assert typed.invoice_number == "INV-000002"
        assert generated.invoice_number == "INV-000003"

    def test_typed_duplicate_rejected(self, db_session, admin):
        sales_service.record_sale(admin.id, admin.id, {"items": [{"product_name": "Oil", "unit_price": 10}]})

        with pytest.raises(ValidationError):
            sales_service.record_sale(admin.id, admin.id, {
                "items": [{"product_name": "Oil", "unit_price": 10}],
                "invoice_number": "INV-000001",
            })

    def test_numbers_are_per_shop(self, db_session, admin, other_admin):
        mine = sales_service.record_sale(admin.id, admin.id, {"items": [{"product_name": "Oil", "unit_price": 10}]})
        theirs = sales_service.record_sale(other_admin.id, other_admin.id, {"items": [{"product_name": "Oil", "unit_price": 10}]})
        assert mine.invoice_number == theirs.invoice_number == "INV-000001"

    def test_taken_number_is_retried(self, db_session, admin, monkeypatch):
        product = add_product(db_session, admin.id, "Rice", stock=20)
        sales_service.record_sale(admin.id, admin.id, {"items": [{"product_id": product.id, "quantity": 1}]})

        # First attempt loses the race for INV-000001
        real_next = sales_service._next_invoice_number
        calls = []

        def next_number(owner_id):
            calls.append(owner_id)
            return "INV-000001" if len(calls) == 1 else real_next(owner_id)

        monkeypatch.setattr(sales_service, "_next_invoice_number", next_number)
        monkeypatch.setattr("shopdesk.services.concurrency.time.sleep", lambda seconds: None)

        sale = sales_service.record_sale(admin.id, admin.id, {"items": [{"product_id": product.id, "quantity": 2}]})

        assert len(calls) == 2
        assert sale.invoice_number == "INV-000002"
        assert len(sales_service.list_sales(admin.id)) == 2
        assert db_session.get(Product, product.id).stock_quantity == 17

    def test_gives_up_after_repeated_collisions(self, db_session, admin, monkeypatch):
        sales_service.record_sale(admin.id, admin.id, {"items": [{"product_name": "Oil", "unit_price": 10}]})
        monkeypatch.setattr(sales_service, "_next_invoice_number", lambda owner_id: "INV-000001")
        monkeypatch.setattr("shopdesk.services.concurrency.time.sleep", lambda seconds: None)

        with pytest.raises(sales_service.SaleError):
            sales_service.record_sale(admin.id, admin.id, {"items": [{"product_name": "Oil", "unit_price": 10}]})

        assert len(sales_service.list_sales(admin.id)) == 1


class TestUpdateSale:

    def test_reverses_stock_and_replaces_items(self, db_session, admin):
        rice = add_product(db_session, admin.id, "Rice", stock=20, price=100, cost=60)
        tea = add_product(db_session, admin.id, "Tea", stock=10, price=50, cost=30)
        sale = sales_service.record_sale(admin.id, admin.id, {"items": [{"product_id": rice.id, "quantity": 3}]})
        created_at = sale.created_at

        updated = sales_service.update_sale(admin.id, sale.id, {
            "items": [
                {"product_id": rice.id, "quantity": 1},
                {"product_id": tea.id, "quantity": 4},
            ],
            "paid_amount": 300,
        })

        assert db_session.get(Product, rice.id).stock_quantity == 19
        assert db_session.get(Product, tea.id).stock_quantity == 6
        assert sorted(item.product_name for item in updated.items) == ["Rice", "Tea"]
        assert db_session.query(SaleItem).filter_by(sale_id=sale.id).count() == 2
        assert updated.final_amount == Decimal("300.00")
        assert updated.invoice_number == "INV-000001"
        assert updated.created_at == created_at

    def test_undoes_returned_stock(self, db_session, admin):
        tea = add_product(db_session, admin.id, "Tea", stock=5)
        sale = sales_service.record_sale(admin.id, admin.id, {
            "items": [
                {"product_name": "Sugar", "unit_price": 60},
                {"product_id": tea.id, "quantity": 2, "is_return": True},
            ],
        })
        assert db_session.get(Product, tea.id).stock_quantity == 7

        sales_service.update_sale(admin.id, sale.id, {"items": [{"product_name": "Sugar", "unit_price": 60}]})

        assert db_session.get(Product, tea.id).stock_quantity == 5

    def test_credit_follows_balance(self, db_session, admin):
        sale = sales_service.record_sale(admin.id, admin.id, {
            "items": [{"product_name": "Oil", "unit_price": 1000}],
            "paid_amount": 300,
            "customer_name": "Ali",
        })

        sales_service.update_sale(admin.id, sale.id, {"items": [{"product_name": "Oil", "unit_price": 500}]})
        credit = db_session.query(Credit).filter_by(sale_id=sale.id).one()
        assert sale.paid_amount == Decimal("300.00")
        assert sale.payment_status == "partial"
        assert credit.remaining_amount == Decimal("200.00")

        sales_service.update_sale(admin.id, sale.id, {
            "items": [{"product_name": "Oil", "unit_price": 500}],
            "additional_payment": 200,
        })
        assert sale.payment_status == "paid"
        assert db_session.query(Credit).filter_by(sale_id=sale.id).count() == 0

    def test_opens_credit_when_edit_leaves_balance(self, db_session, admin):
        sale = sales_service.record_sale(admin.id, admin.id, {"items": [{"product_name": "Oil", "unit_price": 100}]})

        sales_service.update_sale(admin.id, sale.id, {
            "items": [{"product_name": "Oil", "unit_price": 400}],
            "customer_name": "Sara",
        })

        credit = db_session.query(Credit).filter_by(sale_id=sale.id).one()
        assert credit.customer_name == "Sara"
        assert credit.remaining_amount == Decimal("300.00")

    def test_invalid_edit_changes_nothing(self, db_session, admin):
        rice = add_product(db_session, admin.id, "Rice", stock=20)
        sale = sales_service.record_sale(admin.id, admin.id, {"items": [{"product_id": rice.id, "quantity": 3}]})

        with pytest.raises(ValidationError):
            sales_service.update_sale(admin.id, sale.id, {
                "items": [{"product_id": rice.id, "quantity": 1}],
                "discount": 5000,
            })

        db_session.rollback()
        assert db_session.get(Product, rice.id).stock_quantity == 17
        assert [item.quantity for item in db_session.query(SaleItem).filter_by(sale_id=sale.id)] == [3]

    def test_deleted_or_foreign_sale(self, db_session, admin, other_admin):
        sale = sales_service.record_sale(admin.id, admin.id, {"items": [{"product_name": "Oil", "unit_price": 1}]})
        payload = {"items": [{"product_name": "Oil", "unit_price": 2}]}

        with pytest.raises(NotFoundError):
            sales_service.update_sale(other_admin.id, sale.id, payload)

        sales_service.soft_delete_sale(admin.id, sale.id)
        with pytest.raises(NotFoundError):
            sales_service.update_sale(admin.id, sale.id, payload)

    def test_edit_route(self, client, db_session, admin, admin_headers):
        sale = sales_service.record_sale(admin.id, admin.id, {"items": [{"product_name": "Oil", "unit_price": 100}]})

        resp = client.put(f"/api/sales/{sale.id}", headers=admin_headers, json={
            "items": [{"product_name": "Ghee", "unit_price": 250, "quantity": 2}],
        })

        assert resp.status_code == 200
        body = resp.get_json()
        assert body["final_amount"] == 500.0
        assert [item["product_name"] for item in body["items"]] == ["Ghee"]
        assert client.put("/api/sales/9999", headers=admin_headers, json={"items": [{"product_name": "X"}]}).status_code == 404
