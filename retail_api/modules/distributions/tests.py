"""
Tests para el módulo de Distribuciones

Cubren:
- Asignación greedy pura (allocate / build_demand)
- Reconciliación contra la base de datos: orden de consumo, líneas agotadas,
  cancelación, faltantes e idempotencia por transacción
- Endpoints de registro y cambio de estado
"""

import pytest
from uuid import uuid4

from retail_api.modules.distributions.allocation import LineItem, allocate, build_demand, shortfall
from retail_api.modules.distributions.models import (
    Distribution, DistributionAllocation, DistributionReconciliation, DistributionStatus
)
from retail_api.modules.distributions.reconciler import DistributionReconciler
from retail_api.modules.transactions.models import Transaction


def _reload(db_session, distribution_id):
    db_session.expire_all()
    return db_session.get(Distribution, distribution_id)


def _assert_totals_consistent(distribution):
    expected = round(sum(item.quantity * item.price for item in distribution.items), 2)
    assert distribution.total_value == pytest.approx(expected)
    for item in distribution.items:
        assert item.quantity > 0
        assert item.total_value == pytest.approx(item.quantity * item.price)


def _persisted_transaction(db_session, cashier_id="cashier-1"):
    transaction = Transaction(
        cashier_id=cashier_id, subtotal=10, total_amount=10, cash_received=10, change=0
    )
    db_session.add(transaction)
    db_session.commit()
    return transaction.id


# ===== TESTS DE ASIGNACIÓN PURA =====

class TestAllocation:
    """Tests para allocate() sin base de datos"""

    def test_build_demand_sums_repeated_products(self):
        demand = build_demand([("A", 2), ("B", 1), ("A", 3)])
        assert demand == {"A": 5, "B": 1}

    def test_partial_deduction_keeps_item(self):
        outcome = allocate([LineItem("A", "Arroz", 5, 2.5)], {"A": 3})

        assert outcome.modified
        assert outcome.items == (LineItem("A", "Arroz", 2, 2.5),)
        assert outcome.remaining == {"A": 0}
        assert outcome.total_value == pytest.approx(5.0)

    def test_exhausted_items_are_dropped(self):
        items = [LineItem("A", "Arroz", 2, 1.0), LineItem("B", "Frijol", 4, 3.0)]
        outcome = allocate(items, {"A": 10})

        assert [item.product_id for item in outcome.items] == ["B"]
        assert outcome.remaining == {"A": 8}
        assert outcome.deductions[0].quantity == 2
        assert not outcome.exhausted

    def test_same_product_twice_is_drained_in_order(self):
        items = [LineItem("A", "Arroz", 2, 1.0), LineItem("A", "Arroz", 3, 1.0)]
        outcome = allocate(items, {"A": 4})

        assert outcome.items == (LineItem("A", "Arroz", 1, 1.0),)
        assert outcome.remaining == {"A": 0}

    def test_no_matching_demand_is_not_modified(self):
        outcome = allocate([LineItem("A", "Arroz", 2, 1.0)], {"Z": 4})
        assert not outcome.modified
        assert outcome.remaining == {"Z": 4}

    def test_input_demand_is_not_mutated(self):
        demand = {"A": 3}
        allocate([LineItem("A", "Arroz", 5, 1.0)], demand)
        assert demand == {"A": 3}

    def test_shortfall_only_reports_positive_remainders(self):
        assert shortfall({"A": 0, "B": 4}) == {"B": 4}


# ===== TESTS DE RECONCILIACIÓN =====

class TestDistributionReconciler:
    """Tests del descuento de stock contra la base de datos"""

    def test_greedy_allocation_across_distributions(self, db_session, make_distribution):
        """A (5 de X) se agota antes que B (5 de X) para una demanda de 7"""
        first = make_distribution("cashier-1", [("X", "Producto X", 5, 2.0)])
        second = make_distribution("cashier-1", [("X", "Producto X", 5, 2.0)], DistributionStatus.DELIVERED)

        result = DistributionReconciler(db_session).reconcile("cashier-1", {"X": 7})

        a = _reload(db_session, first)
        b = _reload(db_session, second)
        assert a.items == []
        assert a.status == DistributionStatus.CANCELLED
        assert a.total_value == 0
        assert [(i.product_id, i.quantity) for i in b.items] == [("X", 3)]
        assert b.status == DistributionStatus.DELIVERED
        assert b.total_value == pytest.approx(6.0)
        assert result.deducted == {"X": 7}
        assert result.cancelled_distribution_ids == [first]
        assert result.fully_satisfied

    def test_partial_satisfaction_reports_remaining(self, db_session, make_distribution):
        """Demanda de 10 con solo 6 disponibles: se descuentan 6 y se reportan 4"""
        first = make_distribution("cashier-1", [("Y", "Producto Y", 4, 1.5)])
        second = make_distribution("cashier-1", [("Y", "Producto Y", 2, 1.5), ("Z", "Producto Z", 1, 9.0)])

        result = DistributionReconciler(db_session).reconcile("cashier-1", {"Y": 10})

        assert result.deducted == {"Y": 6}
        assert result.unfulfilled == {"Y": 4}
        assert _reload(db_session, first).status == DistributionStatus.CANCELLED
        remaining = _reload(db_session, second)
        assert remaining.status == DistributionStatus.PENDING
        assert [(i.product_id, i.quantity) for i in remaining.items] == [("Z", 1)]
        _assert_totals_consistent(remaining)

    def test_totals_stay_consistent_after_mixed_deductions(self, db_session, make_distribution):
        distribution_id = make_distribution("cashier-1", [
            ("A", "Arroz", 3, 2.25),
            ("B", "Frijol", 7, 1.10),
            ("C", "Café", 2, 12.0),
        ])

        DistributionReconciler(db_session).reconcile("cashier-1", {"A": 1, "B": 7, "C": 1})

        distribution = _reload(db_session, distribution_id)
        assert [(i.product_id, i.quantity) for i in distribution.items] == [("A", 2), ("C", 1)]
        assert distribution.total_value == pytest.approx(16.5)
        _assert_totals_consistent(distribution)

    def test_only_consumable_distributions_of_cashier_are_touched(self, db_session, make_distribution):
        other_cashier = make_distribution("cashier-2", [("X", "Producto X", 5, 1.0)])
        cancelled = make_distribution("cashier-1", [("X", "Producto X", 5, 1.0)], DistributionStatus.CANCELLED)

        result = DistributionReconciler(db_session).reconcile("cashier-1", {"X": 2})

        assert result.unfulfilled == {"X": 2}
        assert result.updated_distribution_ids == []
        assert _reload(db_session, other_cashier).items[0].quantity == 5
        assert _reload(db_session, cancelled).items[0].quantity == 5

    def test_unmodified_distribution_is_left_alone(self, db_session, make_distribution):
        distribution_id = make_distribution("cashier-1", [("A", "Arroz", 3, 1.0)])

        result = DistributionReconciler(db_session).reconcile("cashier-1", {"B": 1})

        assert result.updated_distribution_ids == []
        assert result.unfulfilled == {"B": 1}
        assert _reload(db_session, distribution_id).items[0].quantity == 3

    def test_same_transaction_is_not_applied_twice(self, db_session, make_distribution):
        distribution_id = make_distribution("cashier-1", [("X", "Producto X", 5, 1.0)])
        transaction_id = _persisted_transaction(db_session)
        reconciler = DistributionReconciler(db_session)

        first = reconciler.reconcile("cashier-1", {"X": 3}, transaction_id=transaction_id)
        second = reconciler.reconcile("cashier-1", {"X": 3}, transaction_id=transaction_id)

        assert not first.replayed
        assert second.replayed
        assert second.deducted == {"X": 3}
        assert _reload(db_session, distribution_id).items[0].quantity == 2
        allocations = db_session.query(DistributionAllocation).filter(
            DistributionAllocation.transaction_id == transaction_id
        ).all()
        assert [(a.product_id, a.quantity) for a in allocations] == [("X", 3)]

    def test_sale_without_stock_is_not_applied_to_later_stock(self, db_session, make_distribution):
        """Una venta sin stock que descontar no consume distribuciones asignadas después"""
        transaction_id = _persisted_transaction(db_session)
        reconciler = DistributionReconciler(db_session)

        first = reconciler.reconcile("cashier-1", {"X": 3}, transaction_id=transaction_id)
        distribution_id = make_distribution("cashier-1", [("X", "Producto X", 5, 1.0)])
        second = reconciler.reconcile("cashier-1", {"X": 3}, transaction_id=transaction_id)

        assert first.unfulfilled == {"X": 3}
        assert not first.replayed
        assert second.replayed
        assert second.deducted == {}
        assert second.unfulfilled == {"X": 3}
        assert _reload(db_session, distribution_id).items[0].quantity == 5
        assert db_session.get(DistributionReconciliation, transaction_id) is not None

    def test_without_transaction_id_reruns_decrement_again(self, db_session, make_distribution):
        distribution_id = make_distribution("cashier-1", [("X", "Producto X", 5, 1.0)])
        reconciler = DistributionReconciler(db_session)

        reconciler.reconcile("cashier-1", {"X": 3})
        result = reconciler.reconcile("cashier-1", {"X": 3})

        assert result.deducted == {"X": 2}
        assert result.unfulfilled == {"X": 1}
        assert _reload(db_session, distribution_id).status == DistributionStatus.CANCELLED


# ===== TESTS DE ENDPOINTS =====

class TestDistributionEndpoints:
    """Tests de la API de distribuciones"""

    def test_create_distribution(self, client):
        response = client.post("/distributions", json={
            "cashierId": "cashier-1",
            "items": [
                {"productId": "A", "productName": "Arroz", "quantity": 4, "price": 2.5},
                {"productId": "B", "productName": "Frijol", "quantity": 1, "price": 3},
            ],
        })

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        distribution = body["distribution"]
        assert distribution["status"] == "pending"
        assert distribution["totalValue"] == pytest.approx(13.0)
        assert distribution["items"][0]["totalValue"] == pytest.approx(10.0)
        assert distribution["items"][1]["productName"] == "Frijol"

    def test_create_distribution_rejects_empty_items(self, client):
        response = client.post("/distributions", json={"cashierId": "cashier-1", "items": []})
        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "Invalid request body"}

    def test_list_and_filter_distributions(self, client, make_distribution):
        make_distribution("cashier-1", [("A", "Arroz", 1, 1.0)])
        make_distribution("cashier-2", [("A", "Arroz", 1, 1.0)])
        make_distribution("cashier-1", [("B", "Frijol", 1, 1.0)], DistributionStatus.DELIVERED)

        response = client.get("/distributions", params={"cashierId": "cashier-1"})
        distributions = response.json()["distributions"]
        assert response.status_code == 200
        assert len(distributions) == 2
        assert distributions[0]["status"] == "delivered"  # más reciente primero

        response = client.get("/distributions", params={"status": "pending"})
        assert len(response.json()["distributions"]) == 2

    def test_get_unknown_distribution_returns_404(self, client):
        response = client.get(f"/distributions/{uuid4()}")
        assert response.status_code == 404
        assert response.json() == {"success": False, "error": "Distribution not found"}

    def test_mark_delivered(self, client, make_distribution):
        distribution_id = make_distribution("cashier-1", [("A", "Arroz", 1, 1.0)])

        response = client.patch(f"/distributions/{distribution_id}/status", json={"status": "delivered"})

        assert response.status_code == 200
        assert response.json()["distribution"]["status"] == "delivered"

    def test_cancelled_distribution_cannot_be_reopened(self, client, make_distribution):
        distribution_id = make_distribution("cashier-1", [("A", "Arroz", 1, 1.0)], DistributionStatus.CANCELLED)

        response = client.patch(f"/distributions/{distribution_id}/status", json={"status": "pending"})

        assert response.status_code == 409
        assert response.json()["error"] == "Cancelled distributions cannot be reopened"
