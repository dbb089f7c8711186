"""
Customer payment tests.

Payments are spread over a customer's open invoices oldest first; each
sale, its sale-linked credit and one ledger row change together or not
at all.
"""

from decimal import Decimal

import pytest
from sqlalchemy.exc import SQLAlchemyError

from shopdesk.extensions import db
from shopdesk.models import Credit, PaymentLedger, Sale
from shopdesk.services import credit_service, payment_service, sales_service, worker_service
from shopdesk.validation import ValidationError
from conftest import PASSWORD, auth_headers, get_auth_token


def _credit_sale(admin, customer, amount, paid=0):
    return sales_service.record_sale(admin.id, admin.id, {
        "items": [{"product_name": "Goods", "unit_price": amount}],
        "paid_amount": paid,
        "customer_name": customer,
    })


@pytest.fixture
def ledger(db_session, admin):
    """Ali owes 1000 + 300 + 800 across three invoices; Sara owes 300."""
    return {
        "first": _credit_sale(admin, "Ali", 1000),
        "second": _credit_sale(admin, "Ali", 500, paid=200),
        "third": _credit_sale(admin, "Ali", 800),
        "sara": _credit_sale(admin, "Sara", 300),
    }


def _credit_for(db_session, sale):
    return db_session.query(Credit).filter_by(sale_id=sale.id).one()


class TestReceivePayment:

    def test_oldest_invoice_paid_first(self, db_session, admin, ledger):
        entry = payment_service.receive_payment(admin.id, "Ali", "1200", received_by_user_id=admin.id)

        first, second, third = ledger["first"], ledger["second"], ledger["third"]
        assert (first.paid_amount, first.payment_status) == (Decimal("1000.00"), "paid")
        assert (second.paid_amount, second.payment_status) == (Decimal("400.00"), "partial")
        assert (third.paid_amount, third.payment_status) == (Decimal("0.00"), "unpaid")

        assert _credit_for(db_session, first).remaining_amount == Decimal("0.00")
        assert _credit_for(db_session, second).remaining_amount == Decimal("100.00")
        assert _credit_for(db_session, third).remaining_amount == Decimal("800.00")

        assert entry.amount == Decimal("1200.00")
        assert entry.received_by_user_id == admin.id
        assert entry.details == [
            {"sale_id": first.id, "invoice_number": first.invoice_number, "applied": 1000.0},
            {"sale_id": second.id, "invoice_number": second.invoice_number, "applied": 200.0},
        ]

    def test_other_customers_untouched(self, db_session, admin, ledger):
        payment_service.receive_payment(admin.id, "Ali", 2100)

        assert ledger["sara"].payment_status == "unpaid"
        assert [c.customer_name for c in credit_service.list_credits(admin.id, open_only=True)] == ["Sara"]

    def test_overpayment_rejected(self, db_session, admin, ledger):
        with pytest.raises(ValidationError, match="outstanding"):
            payment_service.receive_payment(admin.id, "Ali", "2100.01")

        db_session.rollback()
        assert db_session.get(Sale, ledger["first"].id).paid_amount == Decimal("0.00")
        assert db_session.query(PaymentLedger).count() == 0

    @pytest.mark.parametrize("name,amount", [
        ("Nobody", 100),
        ("", 100),
        ("Ali", 0),
        ("Ali", -50),
        ("Ali", "lots"),
    ])
    def test_rejects_bad_input(self, db_session, admin, ledger, name, amount):
        with pytest.raises(ValidationError):
            payment_service.receive_payment(admin.id, name, amount)

    def test_other_shop_cannot_collect(self, db_session, admin, other_admin, ledger):
        with pytest.raises(ValidationError):
            payment_service.receive_payment(other_admin.id, "Ali", 100)

    def test_deleted_sales_skipped(self, db_session, admin, ledger):
        sales_service.soft_delete_sale(admin.id, ledger["first"].id)

        entry = payment_service.receive_payment(admin.id, "Ali", 300)

        assert [d["sale_id"] for d in entry.details] == [ledger["second"].id]

    def test_failed_commit_writes_nothing(self, db_session, admin, ledger, monkeypatch):
        def broken_commit():
            raise SQLAlchemyError("disk full")

        monkeypatch.setattr(db.session, "commit", broken_commit)

        with pytest.raises(payment_service.PaymentError):
            payment_service.receive_payment(admin.id, "Ali", 1200)

        monkeypatch.undo()
        first = db_session.get(Sale, ledger["first"].id)
        assert first.paid_amount == Decimal("0.00")
        assert first.payment_status == "unpaid"
        assert _credit_for(db_session, first).remaining_amount == Decimal("1000.00")
        assert db_session.query(PaymentLedger).count() == 0

    def test_paid_at_parsed(self, db_session, admin, ledger):
        entry = payment_service.receive_payment(admin.id, "Sara", 100, paid_at="2024-03-15T10:00:00+05:00")
        assert entry.paid_at.hour == 5

        with pytest.raises(ValidationError):
            payment_service.receive_payment(admin.id, "Sara", 100, paid_at="next week")


class TestCustomers:

    def test_directory_totals(self, db_session, admin, ledger):
        sales_service.record_sale(admin.id, admin.id, {
            "items": [{"product_name": "Goods", "unit_price": 50}],
            "customer_name": "Bilal",
        })

        customers = {c["customer_name"]: c for c in payment_service.list_customers(admin.id)}

        assert list(customers) == ["Ali", "Bilal", "Sara"]
        assert customers["Ali"]["outstanding"] == Decimal("2100.00")
        assert (customers["Ali"]["invoices"], customers["Ali"]["open_invoices"]) == (3, 3)
        assert customers["Bilal"]["outstanding"] == Decimal("0.00")

    def test_open_invoices_oldest_first(self, db_session, admin, ledger):
        payment_service.receive_payment(admin.id, "Ali", 1000)

        invoices = payment_service.open_invoices(admin.id, "Ali")

        assert [sale.id for sale in invoices] == [ledger["second"].id, ledger["third"].id]


class TestPaymentRoutes:

    def test_receive_and_list(self, client, admin, admin_headers, ledger):
        resp = client.post("/api/payments", headers=admin_headers, json={"customer_name": "Ali", "amount": 1300})

        assert resp.status_code == 201
        assert [d["applied"] for d in resp.get_json()["details"]] == [1000.0, 300.0]

        payments = client.get("/api/payments", headers=admin_headers).get_json()["payments"]
        assert [p["amount"] for p in payments] == [1300.0]

        customers = client.get("/api/customers", headers=admin_headers).get_json()["customers"]
        assert {c["customer_name"]: c["outstanding"] for c in customers} == {"Ali": 800.0, "Sara": 300.0}

        invoices = client.get("/api/customers/invoices?name=Ali", headers=admin_headers).get_json()["invoices"]
        assert [i["id"] for i in invoices] == [ledger["third"].id]

    def test_overpayment_is_400(self, client, admin_headers, ledger):
        resp = client.post("/api/payments", headers=admin_headers, json={"customer_name": "Sara", "amount": 301})
        assert resp.status_code == 400

    def test_missing_fields_is_400(self, client, admin_headers, ledger):
        assert client.post("/api/payments", headers=admin_headers, json={"customer_name": "Sara"}).status_code == 400

    def test_worker_with_grant_can_collect(self, client, db_session, admin, ledger):
        cashier = worker_service.create_worker(
            admin.id, "cashier@shop.pk", PASSWORD, "Cashier",
            {"receive_payment": {"view": True, "create": True}},
        )
        headers = auth_headers(get_auth_token(client, cashier.email))

        resp = client.post("/api/payments", headers=headers, json={"customer_name": "Sara", "amount": 300})

        assert resp.status_code == 201
        assert resp.get_json()["received_by_user_id"] == cashier.id
        assert client.get("/api/customers", headers=headers).status_code == 403
