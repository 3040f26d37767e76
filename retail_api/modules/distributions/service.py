import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy import desc
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from retail_api.common.exceptions import (
    DistributionNotFoundError, DistributionStateError, DistributionPersistenceError
)
from retail_api.modules.distributions.allocation import LineItem
from retail_api.modules.distributions.models import (
    Distribution, DistributionItem, DistributionStatus, CONSUMABLE_STATUSES
)
from retail_api.modules.distributions.schemas import DistributionCreate

logger = logging.getLogger(__name__)


class DistributionService:
    """Service for registering and querying cashier distributions."""

    def __init__(self, db: Session):
        self.db = db

    def create_distribution(self, data: DistributionCreate) -> Distribution:
        """Create a pending distribution with computed line and total values."""
        lines = [LineItem(i.product_id, i.product_name, i.quantity, i.price) for i in data.items]
        distribution = Distribution(
            cashier_id=data.cashier_id,
            status=DistributionStatus.PENDING,
            notes=data.notes,
            total_value=round(sum(line.total_value for line in lines), 2),
            items=[
                DistributionItem(
                    position=position,
                    product_id=line.product_id,
                    product_name=line.product_name,
                    quantity=line.quantity,
                    price=line.price,
                    total_value=line.total_value,
                )
                for position, line in enumerate(lines)
            ],
        )
        try:
            self.db.add(distribution)
            self.db.commit()
            self.db.refresh(distribution)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.exception(f"Distribution creation error for cashier {data.cashier_id}")
            raise DistributionPersistenceError() from e

        logger.info(
            f"Distribution {distribution.id} created for cashier {distribution.cashier_id} "
            f"with {len(lines)} items (total {distribution.total_value})"
        )
        return distribution

    def get_distributions(self, cashier_id: Optional[str] = None,
                          status: Optional[DistributionStatus] = None,
                          limit: int = 50) -> List[Distribution]:
        query = self.db.query(Distribution).options(selectinload(Distribution.items))
        if cashier_id and cashier_id.strip():
            query = query.filter(Distribution.cashier_id == cashier_id.strip())
        if status:
            query = query.filter(Distribution.status == status)
        return query.order_by(desc(Distribution.created_at)).limit(limit).all()

    def get_distribution(self, distribution_id: UUID) -> Distribution:
        distribution = self.db.query(Distribution).options(
            selectinload(Distribution.items)
        ).filter(Distribution.id == distribution_id).first()
        if not distribution:
            raise DistributionNotFoundError()
        return distribution

    def update_status(self, distribution_id: UUID, status: DistributionStatus) -> Distribution:
        """Move a distribution through pending → delivered → cancelled."""
        distribution = self.get_distribution(distribution_id)

        if distribution.status == DistributionStatus.CANCELLED and status in CONSUMABLE_STATUSES:
            raise DistributionStateError("Cancelled distributions cannot be reopened")
        if distribution.status == status:
            return distribution

        previous = distribution.status
        distribution.status = status
        try:
            self.db.commit()
            self.db.refresh(distribution)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.exception(f"Could not update status of distribution {distribution_id}")
            raise DistributionPersistenceError() from e

        logger.info(f"Distribution {distribution.id} status {previous.value} -> {status.value}")
        return distribution
