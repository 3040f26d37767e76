"""
Routers FastAPI para transacciones de venta

- POST /transactions: registrar venta y descontar stock de distribuciones
- GET /transactions: listar ventas (filtros cashierId, status, limit)

Los errores se traducen a {success: false, error} en los handlers de main.py.
"""

from fastapi import APIRouter, Query
from typing import Optional

from retail_api.common.schemas import ErrorResponse
from retail_api.core.config import settings
from retail_api.dependencies.dbDependencies import db_dependency
from retail_api.modules.transactions.schemas import (
    TransactionCreate, TransactionOut, TransactionResponse, TransactionListResponse
)
from retail_api.modules.transactions.service import TransactionService


transactions_router = APIRouter(prefix="/transactions", tags=["Transactions"])


@transactions_router.post(
    "",
    response_model=TransactionResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
)
def create_transaction(data: TransactionCreate, db: db_dependency):
    """
    Registrar una venta.

    - **cashierId** e **items** (no vacío) son obligatorios
    - **subtotal**, **totalAmount**, **cashReceived**, **change** deben venir (0 es válido)
    - **overallDiscount** es opcional (por defecto 0)

    Después de guardar, lo vendido se descuenta de las distribuciones
    pending/delivered del cajero. Un faltante de stock no afecta la respuesta.
    """
    transaction = TransactionService(db).record_transaction(data)
    return TransactionResponse(transaction=TransactionOut.model_validate(transaction))


@transactions_router.get("", response_model=TransactionListResponse)
def get_transactions(
    db: db_dependency,
    cashier_id: Optional[str] = Query(None, alias="cashierId", description="Filtrar por cajero"),
    status: Optional[str] = Query(None, description="Filtrar por estado"),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, description="Máximo de resultados"),
):
    """Ventas ordenadas de la más reciente a la más antigua."""
    transactions = TransactionService(db).get_transactions(
        cashier_id=cashier_id,
        status=status,
        limit=limit
    )
    return TransactionListResponse(
        transactions=[TransactionOut.model_validate(t) for t in transactions]
    )
