"""
Esquemas Pydantic para distribuciones

Las claves JSON se exponen en camelCase (cashierId, totalValue, ...).
"""

from pydantic import Field, field_validator
from typing import Optional, List
from uuid import UUID
from datetime import datetime

from retail_api.common.schemas import CamelModel
from retail_api.modules.distributions.models import DistributionStatus


# ===== ENTRADA =====

class DistributionItemCreate(CamelModel):
    """Línea de una nueva distribución"""
    product_id: str = Field(..., min_length=1, max_length=64, description="ID del producto")
    product_name: str = Field(..., min_length=1, max_length=200, description="Nombre del producto")
    quantity: int = Field(..., gt=0, description="Unidades asignadas")
    price: float = Field(..., ge=0, description="Precio unitario")


class DistributionCreate(CamelModel):
    """Esquema para crear una distribución (estado inicial: pending)"""
    cashier_id: str = Field(..., min_length=1, max_length=64, description="ID del cajero")
    items: List[DistributionItemCreate] = Field(..., min_length=1, description="Productos asignados")
    notes: Optional[str] = Field(None, max_length=500, description="Notas opcionales")

    @field_validator('cashier_id')
    @classmethod
    def validate_cashier_id(cls, v: str) -> str:
        cleaned = v.strip()
        if not cleaned:
            raise ValueError('cashierId cannot be blank')
        return cleaned


class DistributionStatusUpdate(CamelModel):
    status: DistributionStatus = Field(..., description="Nuevo estado")


# ===== SALIDA =====

class DistributionItemOut(CamelModel):
    product_id: str
    product_name: str
    quantity: int
    price: float
    total_value: float


class DistributionOut(CamelModel):
    """Distribución con sus líneas vigentes"""
    id: UUID = Field(description="ID único de la distribución")
    cashier_id: str
    status: DistributionStatus
    items: List[DistributionItemOut] = Field(default_factory=list)
    total_value: float
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class DistributionResponse(CamelModel):
    success: bool = True
    distribution: DistributionOut


class DistributionListResponse(CamelModel):
    success: bool = True
    distributions: List[DistributionOut]
