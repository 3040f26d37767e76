"""
Tests para el módulo de Transacciones

Cubren:
- Validación por categoría (campos principales, pagos, líneas)
- Registro de venta y descuento de stock en distribuciones
- Manejo de errores: base de datos no disponible, fallo al guardar,
  fallo de reconciliación (con rollback de las distribuciones), fallo al listar
- Listado con filtros, orden y límite
"""

import pytest
from datetime import datetime, timedelta, timezone
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Query, Session, sessionmaker

from retail_api.database.database import get_db
from retail_api.main import app
from retail_api.modules.distributions.models import (
    Distribution, DistributionAllocation, DistributionReconciliation, DistributionStatus
)
from retail_api.modules.distributions.reconciler import DistributionReconciler
from retail_api.modules.transactions.models import Transaction
from retail_api.modules.transactions.schemas import TransactionCreate
from retail_api.modules.transactions.service import validate_transaction
from retail_api.common.exceptions import InvalidTransactionError


# ===== FIXTURES =====

@pytest.fixture
def sample_item():
    return {
        "productId": "X",
        "productName": "Producto X",
        "productSku": "SKU-X",
        "category": "Abarrotes",
        "quantity": 2,
        "price": 3.5,
        "discount": 0,
        "total": 7.0,
    }


@pytest.fixture
def sample_transaction(sample_item):
    return {
        "cashierId": "cashier-1",
        "items": [sample_item],
        "subtotal": 7.0,
        "overallDiscount": 0,
        "totalAmount": 7.0,
        "cashReceived": 10,
        "change": 3.0,
    }


def _transaction_count(db_session):
    db_session.expire_all()
    return db_session.query(Transaction).count()


# ===== TESTS DE VALIDACIÓN =====

class TestTransactionValidation:
    """Tests de validate_transaction por categoría"""

    def test_zero_payment_fields_are_valid(self, sample_transaction):
        sample_transaction.update({"subtotal": 0, "totalAmount": 0, "cashReceived": 0, "change": 0})
        validate_transaction(TransactionCreate.model_validate(sample_transaction))

    def test_zero_item_discount_is_valid(self, sample_transaction):
        validate_transaction(TransactionCreate.model_validate(sample_transaction))

    @pytest.mark.parametrize("field", ["cashierId", "items"])
    def test_missing_required_fields(self, sample_transaction, field):
        del sample_transaction[field]
        with pytest.raises(InvalidTransactionError) as exc_info:
            validate_transaction(TransactionCreate.model_validate(sample_transaction))
        assert exc_info.value.message == "Missing required fields"

    @pytest.mark.parametrize("field", ["subtotal", "totalAmount", "cashReceived", "change"])
    def test_missing_payment_fields(self, sample_transaction, field):
        del sample_transaction[field]
        with pytest.raises(InvalidTransactionError) as exc_info:
            validate_transaction(TransactionCreate.model_validate(sample_transaction))
        assert exc_info.value.message == "Missing payment calculation fields"

    @pytest.mark.parametrize("field, value", [
        ("productId", ""),
        ("productName", None),
        ("productSku", None),
        ("category", " "),
        ("quantity", 0),
        ("quantity", -1),
        ("price", 0),
        ("discount", None),
        ("total", 0),
    ])
    def test_invalid_item(self, sample_transaction, field, value):
        sample_transaction["items"][0][field] = value
        with pytest.raises(InvalidTransactionError) as exc_info:
            validate_transaction(TransactionCreate.model_validate(sample_transaction))
        assert exc_info.value.message == "Invalid item data - missing required fields"
        assert exc_info.value.fields


# ===== TESTS DE REGISTRO =====

class TestRecordTransaction:
    """Tests de POST /transactions"""

    def test_create_transaction_echoes_request(self, client, sample_transaction):
        response = client.post("/transactions", json=sample_transaction)

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        transaction = body["transaction"]
        assert transaction["id"]
        assert transaction["cashierId"] == "cashier-1"
        assert transaction["status"] == "completed"
        assert transaction["subtotal"] == pytest.approx(7.0)
        assert transaction["totalAmount"] == pytest.approx(7.0)
        assert transaction["cashReceived"] == pytest.approx(10.0)
        assert transaction["change"] == pytest.approx(3.0)
        assert transaction["createdAt"] and transaction["updatedAt"]
        assert transaction["items"] == [{
            "productId": "X",
            "productName": "Producto X",
            "productSku": "SKU-X",
            "category": "Abarrotes",
            "quantity": 2,
            "price": 3.5,
            "discount": 0.0,
            "total": 7.0,
        }]

    def test_overall_discount_defaults_to_zero(self, client, sample_transaction):
        del sample_transaction["overallDiscount"]
        response = client.post("/transactions", json=sample_transaction)
        assert response.json()["transaction"]["overallDiscount"] == 0

    @pytest.mark.parametrize("field, message", [
        ("cashierId", "Missing required fields"),
        ("items", "Missing required fields"),
        ("subtotal", "Missing payment calculation fields"),
        ("totalAmount", "Missing payment calculation fields"),
        ("cashReceived", "Missing payment calculation fields"),
        ("change", "Missing payment calculation fields"),
    ])
    def test_missing_fields_are_not_persisted(self, client, db_session, sample_transaction, field, message):
        del sample_transaction[field]

        response = client.post("/transactions", json=sample_transaction)

        assert response.status_code == 400
        assert response.json() == {"success": False, "error": message}
        assert _transaction_count(db_session) == 0

    def test_empty_items_is_rejected(self, client, db_session, sample_transaction):
        sample_transaction["items"] = []

        response = client.post("/transactions", json=sample_transaction)

        assert response.status_code == 400
        assert response.json()["error"] == "Missing required fields"
        assert _transaction_count(db_session) == 0

    def test_invalid_item_is_rejected(self, client, db_session, sample_transaction):
        sample_transaction["items"][0]["price"] = 0

        response = client.post("/transactions", json=sample_transaction)

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid item data - missing required fields"
        assert _transaction_count(db_session) == 0

    def test_malformed_body_is_client_error(self, client):
        response = client.post("/transactions", json=["not", "an", "object"])
        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "Invalid request body"}

    def test_sale_decrements_distributions(self, client, db_session, make_distribution, sample_transaction, sample_item):
        first = make_distribution("cashier-1", [("X", "Producto X", 5, 3.5)])
        second = make_distribution("cashier-1", [("X", "Producto X", 5, 3.5), ("Y", "Producto Y", 1, 2.0)])
        # El mismo producto en dos líneas se suma: 2 + 5 = 7
        sample_transaction["items"].append(dict(sample_item, quantity=5, total=17.5))

        response = client.post("/transactions", json=sample_transaction)

        assert response.status_code == 200
        db_session.expire_all()
        a = db_session.get(Distribution, first)
        b = db_session.get(Distribution, second)
        assert a.status == DistributionStatus.CANCELLED
        assert a.items == []
        assert [(i.product_id, i.quantity) for i in b.items] == [("X", 3), ("Y", 1)]
        assert b.total_value == pytest.approx(3 * 3.5 + 2.0)
        assert b.status == DistributionStatus.PENDING

    def test_shortfall_does_not_block_sale(self, client, db_session, make_distribution, sample_transaction):
        make_distribution("cashier-1", [("X", "Producto X", 1, 3.5)])

        response = client.post("/transactions", json=sample_transaction)

        assert response.status_code == 200
        assert _transaction_count(db_session) == 1

    def test_database_unavailable_returns_503(self, sample_transaction):
        broken_engine = create_engine("sqlite:////nonexistent-dir/retail.db")
        BrokenSession = sessionmaker(bind=broken_engine)

        def broken_db():
            db = BrokenSession()
            try:
                yield db
            finally:
                db.close()

        app.dependency_overrides[get_db] = broken_db
        response = TestClient(app).post("/transactions", json=sample_transaction)

        assert response.status_code == 503
        assert response.json() == {"success": False, "error": "Database connection not available"}

    def test_reconciliation_failure_keeps_transaction(self, client, db_session, monkeypatch, sample_transaction):
        def failing_reconcile(self, *args, **kwargs):
            raise OperationalError("UPDATE distributions", {}, Exception("disk I/O error"))

        monkeypatch.setattr(DistributionReconciler, "reconcile", failing_reconcile)

        response = client.post("/transactions", json=sample_transaction)

        assert response.status_code == 500
        assert response.json() == {"success": False, "error": "Failed to create transaction"}
        assert _transaction_count(db_session) == 1

    def test_failed_reconciliation_rolls_back_distribution_writes(
        self, client, db_session, make_distribution, monkeypatch, sample_transaction
    ):
        """Si falla la segunda distribución, la primera y los registros de descuento no cambian"""
        first = make_distribution("cashier-1", [("X", "Producto X", 1, 3.5)])
        second = make_distribution("cashier-1", [("X", "Producto X", 5, 3.5)])
        original_write_items = DistributionReconciler._write_items
        written = []

        def failing_write_items(self, distribution, items):
            written.append(distribution.id)
            if len(written) == 2:
                raise OperationalError("UPDATE distribution_items", {}, Exception("disk I/O error"))
            return original_write_items(self, distribution, items)

        monkeypatch.setattr(DistributionReconciler, "_write_items", failing_write_items)

        response = client.post("/transactions", json=sample_transaction)

        assert response.status_code == 500
        assert response.json() == {"success": False, "error": "Failed to create transaction"}
        assert written == [first, second]
        db_session.expire_all()
        a = db_session.get(Distribution, first)
        assert [(i.product_id, i.quantity) for i in a.items] == [("X", 1)]
        assert a.status == DistributionStatus.PENDING
        assert a.total_value == pytest.approx(3.5)
        assert db_session.get(Distribution, second).items[0].quantity == 5
        assert db_session.query(DistributionAllocation).count() == 0
        assert db_session.query(DistributionReconciliation).count() == 0
        assert _transaction_count(db_session) == 1

    def test_commit_failure_leaves_no_transaction(self, client, db_session, monkeypatch, sample_transaction):
        def failing_commit(self):
            self.flush()
            raise OperationalError("COMMIT", {}, Exception("database is locked"))

        monkeypatch.setattr(Session, "commit", failing_commit)

        response = client.post("/transactions", json=sample_transaction)

        assert response.status_code == 500
        assert response.json() == {"success": False, "error": "Failed to create transaction"}
        assert _transaction_count(db_session) == 0

    def test_cashier_id_is_trimmed_before_reconciling(self, client, db_session, make_distribution, sample_transaction):
        distribution_id = make_distribution("cashier-1", [("X", "Producto X", 5, 3.5)])
        sample_transaction["cashierId"] = "  cashier-1 "

        response = client.post("/transactions", json=sample_transaction)

        assert response.status_code == 200
        assert response.json()["transaction"]["cashierId"] == "cashier-1"
        db_session.expire_all()
        assert db_session.get(Distribution, distribution_id).items[0].quantity == 3

    def test_blank_cashier_id_is_missing(self, client, sample_transaction):
        sample_transaction["cashierId"] = "   "

        response = client.post("/transactions", json=sample_transaction)

        assert response.status_code == 400
        assert response.json()["error"] == "Missing required fields"


# ===== TESTS DE LISTADO =====

class TestListTransactions:
    """Tests de GET /transactions"""

    @pytest.fixture
    def stored_transactions(self, db_session):
        base_time = datetime(2024, 1, 1, tzinfo=timezone.utc)
        rows = [
            Transaction(cashier_id=cashier, subtotal=total, total_amount=total,
                        cash_received=total, change=0, created_at=base_time + timedelta(minutes=minute))
            for minute, (cashier, total) in enumerate([
                ("cashier-1", 10), ("cashier-2", 20), ("cashier-1", 30), ("cashier-2", 40),
            ])
        ]
        db_session.add_all(rows)
        db_session.commit()
        return rows

    def test_empty_result_is_success(self, client):
        response = client.get("/transactions")
        assert response.status_code == 200
        assert response.json() == {"success": True, "transactions": []}

    def test_newest_first(self, client, stored_transactions):
        response = client.get("/transactions")
        totals = [t["totalAmount"] for t in response.json()["transactions"]]
        assert totals == [40, 30, 20, 10]

    def test_limit_returns_most_recent_for_cashier(self, client, stored_transactions):
        response = client.get("/transactions", params={"cashierId": "cashier-1", "limit": 1})

        transactions = response.json()["transactions"]
        assert len(transactions) == 1
        assert transactions[0]["cashierId"] == "cashier-1"
        assert transactions[0]["totalAmount"] == 30

    def test_status_filter(self, client, stored_transactions):
        assert len(client.get("/transactions", params={"status": "completed"}).json()["transactions"]) == 4
        assert client.get("/transactions", params={"status": "refunded"}).json()["transactions"] == []

    def test_query_failure_is_reported(self, client, monkeypatch, stored_transactions):
        def failing_all(self):
            raise OperationalError("SELECT transactions", {}, Exception("connection reset"))

        monkeypatch.setattr(Query, "all", failing_all)

        response = client.get("/transactions")

        assert response.status_code == 500
        assert response.json() == {"success": False, "error": "Failed to fetch transactions"}

    def test_invalid_limit_is_client_error(self, client):
        response = client.get("/transactions", params={"limit": "abc"})
        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "Invalid query parameters"}
