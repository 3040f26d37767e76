"""
Módulo de Transacciones - ventas registradas por cajero

- Transaction / TransactionItem: venta y sus líneas
- TransactionService: validación, registro y listado
- Después de guardar una venta se descuenta el stock de las distribuciones
  del cajero (ver modules.distributions)
"""

from .models import Transaction, TransactionItem, TransactionStatus
from .service import TransactionService, validate_transaction
from .router import transactions_router

__all__ = [
    "Transaction", "TransactionItem", "TransactionStatus",
    "TransactionService", "validate_transaction",
    "transactions_router",
]
