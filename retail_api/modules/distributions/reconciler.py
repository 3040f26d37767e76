"""
Reconciliación de stock de distribuciones tras una venta

Descuenta las cantidades vendidas de las distribuciones pending/delivered del
cajero, en orden de creación (la primera distribución se agota antes que la
siguiente). Las líneas agotadas se eliminan y una distribución sin líneas
pasa a cancelled en la misma escritura.

La demanda que no se encuentra en ninguna distribución se registra como
advertencia; nunca hace fallar la venta.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional
from uuid import UUID

from sqlalchemy.orm import Session, selectinload

from retail_api.modules.distributions.allocation import LineItem, allocate, shortfall
from retail_api.modules.distributions.models import (
    Distribution, DistributionItem, DistributionAllocation, DistributionReconciliation,
    DistributionStatus, CONSUMABLE_STATUSES
)

logger = logging.getLogger(__name__)


@dataclass
class ReconciliationResult:
    updated_distribution_ids: List[UUID] = field(default_factory=list)
    cancelled_distribution_ids: List[UUID] = field(default_factory=list)
    deducted: Dict[str, int] = field(default_factory=dict)
    unfulfilled: Dict[str, int] = field(default_factory=dict)
    replayed: bool = False

    @property
    def fully_satisfied(self) -> bool:
        return not self.unfulfilled


class DistributionReconciler:
    """Descuenta ventas del stock distribuido a un cajero"""

    def __init__(self, db: Session):
        self.db = db

    def reconcile(self, cashier_id: str, demand: Mapping[str, int],
                  transaction_id: Optional[UUID] = None) -> ReconciliationResult:
        """
        Aplicar la demanda {product_id: cantidad} a las distribuciones del cajero.

        Con transaction_id la operación es idempotente: la transacción queda
        marcada como reconciliada en el mismo commit que los descuentos (aunque
        no se haya descontado nada) y una segunda llamada solo repite el
        resultado registrado. La demanda recibida no se modifica. Hace commit
        al final; los errores de base de datos se propagan después de hacer
        rollback.
        """
        if transaction_id is not None and self._already_reconciled(transaction_id):
            logger.info(f"Transaction {transaction_id} already reconciled, skipping")
            return self._replay(self._previous_allocations(transaction_id), demand)

        result = ReconciliationResult()
        remaining = {product_id: qty for product_id, qty in demand.items() if qty > 0}

        try:
            for distribution in self._consumable_distributions(cashier_id):
                if not any(remaining.values()):
                    break

                outcome = allocate(
                    (LineItem(i.product_id, i.product_name, i.quantity, i.price) for i in distribution.items),
                    remaining,
                )
                if not outcome.modified:
                    continue

                remaining = outcome.remaining
                self._write_items(distribution, outcome.items)
                distribution.total_value = outcome.total_value
                if outcome.exhausted:
                    distribution.status = DistributionStatus.CANCELLED
                    result.cancelled_distribution_ids.append(distribution.id)

                for deduction in outcome.deductions:
                    logger.info(
                        f"Decreased {deduction.quantity} units of {deduction.product_name} "
                        f"from distribution {distribution.id}"
                    )
                    result.deducted[deduction.product_id] = (
                        result.deducted.get(deduction.product_id, 0) + deduction.quantity
                    )
                    if transaction_id is not None:
                        self.db.add(DistributionAllocation(
                            transaction_id=transaction_id,
                            distribution_id=distribution.id,
                            product_id=deduction.product_id,
                            quantity=deduction.quantity,
                        ))

                self.db.flush()
                result.updated_distribution_ids.append(distribution.id)
                logger.debug(f"Updated distribution {distribution.id}")

            if transaction_id is not None:
                self.db.add(DistributionReconciliation(transaction_id=transaction_id, cashier_id=cashier_id))
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        result.unfulfilled = shortfall(remaining)
        for product_id, qty in result.unfulfilled.items():
            logger.warning(
                f"Could not decrease {qty} units of product {product_id} "
                f"- insufficient stock in distributions for cashier {cashier_id}"
            )
        return result

    def _consumable_distributions(self, cashier_id: str) -> List[Distribution]:
        return (
            self.db.query(Distribution)
            .options(selectinload(Distribution.items))
            .filter(
                Distribution.cashier_id == cashier_id,
                Distribution.status.in_(CONSUMABLE_STATUSES)
            )
            .order_by(Distribution.created_at.asc(), Distribution.id.asc())
            .with_for_update()
            .all()
        )

    def _write_items(self, distribution: Distribution, items) -> None:
        # La colección se reemplaza completa; delete-orphan elimina las líneas previas
        distribution.items = [
            DistributionItem(
                position=position,
                product_id=item.product_id,
                product_name=item.product_name,
                quantity=item.quantity,
                price=item.price,
                total_value=item.total_value,
            )
            for position, item in enumerate(items)
        ]

    def _already_reconciled(self, transaction_id: UUID) -> bool:
        return self.db.get(DistributionReconciliation, transaction_id) is not None

    def _previous_allocations(self, transaction_id: UUID) -> List[DistributionAllocation]:
        return (
            self.db.query(DistributionAllocation)
            .filter(DistributionAllocation.transaction_id == transaction_id)
            .all()
        )

    def _replay(self, allocations: List[DistributionAllocation],
                demand: Mapping[str, int]) -> ReconciliationResult:
        result = ReconciliationResult(replayed=True)
        for allocation in allocations:
            result.deducted[allocation.product_id] = (
                result.deducted.get(allocation.product_id, 0) + allocation.quantity
            )
            if allocation.distribution_id not in result.updated_distribution_ids:
                result.updated_distribution_ids.append(allocation.distribution_id)
        remaining = {
            product_id: qty - result.deducted.get(product_id, 0)
            for product_id, qty in demand.items()
        }
        result.unfulfilled = shortfall(remaining)
        return result
