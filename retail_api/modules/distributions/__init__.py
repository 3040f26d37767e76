"""
Módulo de Distribuciones - stock asignado a cada cajero

ENTIDADES:
- Distribution / DistributionItem: stock asignado y sus líneas
- DistributionAllocation: descuentos aplicados por cada transacción
- DistributionReconciliation: transacciones ya reconciliadas

REGLAS DE NEGOCIO:
- Solo las distribuciones pending/delivered se consumen con ventas
- Las distribuciones se consumen en orden de creación (greedy)
- Una distribución sin líneas pasa a cancelled
- totalValue = suma de quantity * price de las líneas vigentes
"""

from .models import (
    Distribution, DistributionItem, DistributionAllocation, DistributionReconciliation,
    DistributionStatus
)
from .reconciler import DistributionReconciler, ReconciliationResult
from .service import DistributionService
from .router import distributions_router

__all__ = [
    "Distribution", "DistributionItem", "DistributionAllocation", "DistributionReconciliation",
    "DistributionStatus",
    "DistributionReconciler", "ReconciliationResult",
    "DistributionService",
    "distributions_router",
]
