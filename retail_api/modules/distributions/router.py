"""
Routers FastAPI para distribuciones de inventario

- POST /distributions: asignar stock a un cajero
- GET /distributions: listar (filtros cashierId, status, limit)
- GET /distributions/{id}: detalle
- PATCH /distributions/{id}/status: cambiar estado
"""

from fastapi import APIRouter, Query, Path, status
from typing import Optional
from uuid import UUID

from retail_api.core.config import settings
from retail_api.dependencies.dbDependencies import db_dependency
from retail_api.modules.distributions.models import DistributionStatus
from retail_api.modules.distributions.schemas import (
    DistributionCreate, DistributionStatusUpdate, DistributionOut,
    DistributionResponse, DistributionListResponse
)
from retail_api.modules.distributions.service import DistributionService


distributions_router = APIRouter(prefix="/distributions", tags=["Distributions"])


@distributions_router.post("", response_model=DistributionResponse, status_code=status.HTTP_201_CREATED)
def create_distribution(data: DistributionCreate, db: db_dependency):
    """
    Asignar stock a un cajero.

    La distribución se crea en estado pending; totalValue se calcula a partir
    de las líneas.
    """
    distribution = DistributionService(db).create_distribution(data)
    return DistributionResponse(distribution=DistributionOut.model_validate(distribution))


@distributions_router.get("", response_model=DistributionListResponse)
def get_distributions(
    db: db_dependency,
    cashier_id: Optional[str] = Query(None, alias="cashierId", description="Filtrar por cajero"),
    distribution_status: Optional[DistributionStatus] = Query(None, alias="status", description="Filtrar por estado"),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, description="Máximo de resultados"),
):
    distributions = DistributionService(db).get_distributions(
        cashier_id=cashier_id,
        status=distribution_status,
        limit=limit
    )
    return DistributionListResponse(
        distributions=[DistributionOut.model_validate(d) for d in distributions]
    )


@distributions_router.get("/{distribution_id}", response_model=DistributionResponse)
def get_distribution(
    db: db_dependency,
    distribution_id: UUID = Path(..., description="ID de la distribución"),
):
    distribution = DistributionService(db).get_distribution(distribution_id)
    return DistributionResponse(distribution=DistributionOut.model_validate(distribution))


@distributions_router.patch("/{distribution_id}/status", response_model=DistributionResponse)
def update_distribution_status(
    data: DistributionStatusUpdate,
    db: db_dependency,
    distribution_id: UUID = Path(..., description="ID de la distribución"),
):
    """
    Cambiar el estado de una distribución.

    Una distribución cancelada no puede volver a pending ni delivered.
    """
    distribution = DistributionService(db).update_status(distribution_id, data.status)
    return DistributionResponse(distribution=DistributionOut.model_validate(distribution))
