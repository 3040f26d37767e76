"""
Esquemas Pydantic para transacciones de venta

Los campos de entrada son opcionales a nivel de esquema: la presencia de
cada grupo (campos principales, pagos, líneas) se valida en el servicio
para responder con el mensaje de categoría correspondiente.
"""

from pydantic import Field, field_validator
from typing import Optional, List
from uuid import UUID
from datetime import datetime

from retail_api.common.schemas import CamelModel
from retail_api.modules.transactions.models import TransactionStatus


# ===== ENTRADA =====

class TransactionItemIn(CamelModel):
    """Línea de venta tal como la envía el POS"""
    product_id: Optional[str] = Field(None, description="ID del producto")
    product_name: Optional[str] = Field(None, description="Nombre del producto")
    product_sku: Optional[str] = Field(None, description="SKU del producto")
    category: Optional[str] = Field(None, description="Categoría")
    quantity: Optional[int] = Field(None, description="Unidades vendidas")
    price: Optional[float] = Field(None, description="Precio unitario")
    discount: Optional[float] = Field(None, description="Descuento de la línea (0 es válido)")
    total: Optional[float] = Field(None, description="Total de la línea")


class TransactionCreate(CamelModel):
    """Esquema para registrar una venta"""
    cashier_id: Optional[str] = Field(None, description="ID del cajero")
    items: Optional[List[TransactionItemIn]] = Field(None, description="Líneas de la venta")
    subtotal: Optional[float] = Field(None, description="Subtotal")
    overall_discount: Optional[float] = Field(None, description="Descuento global (por defecto 0)")
    total_amount: Optional[float] = Field(None, description="Total a pagar")
    cash_received: Optional[float] = Field(None, description="Efectivo recibido")
    change: Optional[float] = Field(None, description="Vuelto")

    @field_validator('cashier_id')
    @classmethod
    def strip_cashier_id(cls, v: Optional[str]) -> Optional[str]:
        # Mismo formato que las distribuciones para que la venta las encuentre
        return v.strip() if v is not None else v


# ===== SALIDA =====

class TransactionItemOut(CamelModel):
    product_id: str
    product_name: str
    product_sku: str
    category: str
    quantity: int
    price: float
    discount: float
    total: float


class TransactionOut(CamelModel):
    """Transacción registrada"""
    id: UUID = Field(description="ID único de la transacción")
    cashier_id: str
    items: List[TransactionItemOut]
    subtotal: float
    overall_discount: float
    total_amount: float
    cash_received: float
    change: float
    status: TransactionStatus
    created_at: datetime
    updated_at: datetime


class TransactionResponse(CamelModel):
    success: bool = True
    transaction: TransactionOut


class TransactionListResponse(CamelModel):
    success: bool = True
    transactions: List[TransactionOut]
