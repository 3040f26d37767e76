"""
Servicio de transacciones de venta

TransactionService.record_transaction:
1. Verifica que la base de datos está disponible
2. Valida la venta (campos principales, pagos, líneas)
3. Guarda la transacción con status "completed"
4. Descuenta lo vendido de las distribuciones del cajero

Un faltante de stock en distribuciones no bloquea ni revierte la venta.
Si falla la reconciliación la transacción queda guardada.
"""

import logging
from typing import List, Optional

from sqlalchemy import desc
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from retail_api.common.exceptions import (
    InvalidTransactionError, TransactionPersistenceError,
    ReconciliationError, TransactionQueryError
)
from retail_api.database.database import ensure_database_available
from retail_api.modules.distributions.allocation import build_demand
from retail_api.modules.distributions.reconciler import DistributionReconciler
from retail_api.modules.transactions.models import Transaction, TransactionItem, TransactionStatus
from retail_api.modules.transactions.schemas import TransactionCreate, TransactionItemIn

logger = logging.getLogger(__name__)

PAYMENT_FIELDS = ("subtotal", "total_amount", "cash_received", "change")


def _missing_item_fields(item: TransactionItemIn) -> List[str]:
    missing = [
        name for name in ("product_id", "product_name", "product_sku", "category")
        if not (getattr(item, name) or "").strip()
    ]
    if not item.quantity or item.quantity < 0:
        missing.append("quantity")
    if not item.price:
        missing.append("price")
    if item.discount is None:
        missing.append("discount")
    if not item.total:
        missing.append("total")
    return missing


def validate_transaction(data: TransactionCreate) -> None:
    """Raise InvalidTransactionError naming the first failing category."""
    required = {"cashier_id": (data.cashier_id or "").strip(), "items": data.items}
    missing_required = [name for name, value in required.items() if not value]
    if missing_required:
        raise InvalidTransactionError("Missing required fields", missing_required)

    missing_payment = [name for name in PAYMENT_FIELDS if getattr(data, name) is None]
    if missing_payment:
        raise InvalidTransactionError("Missing payment calculation fields", missing_payment)

    for index, item in enumerate(data.items):
        missing = _missing_item_fields(item)
        if missing:
            raise InvalidTransactionError(
                "Invalid item data - missing required fields",
                [f"items[{index}].{name}" for name in missing]
            )


class TransactionService:
    """Servicio para registrar y consultar ventas"""

    def __init__(self, db: Session):
        self.db = db

    def record_transaction(self, data: TransactionCreate) -> Transaction:
        """Registrar venta y descontar stock de distribuciones"""
        ensure_database_available(self.db)

        logger.info(
            f"Received transaction request: cashier={data.cashier_id} "
            f"items={len(data.items) if data.items else 0} subtotal={data.subtotal} "
            f"overall_discount={data.overall_discount} total={data.total_amount} "
            f"cash_received={data.cash_received} change={data.change}"
        )

        try:
            validate_transaction(data)
        except InvalidTransactionError as e:
            logger.info(f"Rejected transaction: {e.message} {e.fields}")
            raise

        transaction = self._save(data)

        # La reconciliación hace rollback al fallar y expira la transacción
        transaction_id, cashier_id = transaction.id, transaction.cashier_id
        demand = build_demand((item.product_id, item.quantity) for item in data.items)
        try:
            result = DistributionReconciler(self.db).reconcile(
                cashier_id, demand, transaction_id=transaction_id
            )
        except SQLAlchemyError as e:
            logger.exception(f"Distribution reconciliation failed for transaction {transaction_id}")
            raise ReconciliationError(transaction_id) from e

        if not result.fully_satisfied:
            logger.warning(
                f"Transaction {transaction_id} left unfulfilled demand in distributions: {result.unfulfilled}"
            )
        return transaction

    def _save(self, data: TransactionCreate) -> Transaction:
        transaction = Transaction(
            cashier_id=data.cashier_id,
            subtotal=data.subtotal,
            overall_discount=data.overall_discount or 0,
            total_amount=data.total_amount,
            cash_received=data.cash_received,
            change=data.change,
            status=TransactionStatus.COMPLETED,
            items=[
                TransactionItem(
                    position=position,
                    product_id=item.product_id,
                    product_name=item.product_name,
                    product_sku=item.product_sku,
                    category=item.category,
                    quantity=item.quantity,
                    price=item.price,
                    discount=item.discount,
                    total=item.total,
                )
                for position, item in enumerate(data.items)
            ],
        )
        try:
            self.db.add(transaction)
            self.db.commit()
            self.db.refresh(transaction)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.exception(f"Transaction creation error for cashier {data.cashier_id}")
            raise TransactionPersistenceError() from e

        logger.info(
            f"Transaction saved successfully: id={transaction.id} cashier={transaction.cashier_id} "
            f"items={len(transaction.items)} total={transaction.total_amount}"
        )
        return transaction

    def get_transactions(self, cashier_id: Optional[str] = None, status: Optional[str] = None,
                         limit: int = 50) -> List[Transaction]:
        """Ventas más recientes primero, truncadas a limit"""
        if status:
            try:
                status = TransactionStatus(status)
            except ValueError:
                # Ningún registro puede tener un estado desconocido
                return []
        try:
            query = self.db.query(Transaction).options(selectinload(Transaction.items))
            if cashier_id and cashier_id.strip():
                query = query.filter(Transaction.cashier_id == cashier_id.strip())
            if status:
                query = query.filter(Transaction.status == status)
            return query.order_by(desc(Transaction.created_at)).limit(limit).all()
        except SQLAlchemyError as e:
            logger.exception("Transaction fetch error")
            raise TransactionQueryError() from e
