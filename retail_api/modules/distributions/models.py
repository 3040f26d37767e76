"""
Modelos SQLAlchemy para distribuciones de inventario

- Distribution: stock asignado a un cajero, consumido por las ventas
- DistributionItem: líneas de la distribución (producto, cantidad, precio)
- DistributionAllocation: registro de cada descuento hecho por una venta
- DistributionReconciliation: transacciones ya reconciliadas (idempotencia)

Ciclo de vida: pending/delivered → (consumo parcial) → cancelled al agotarse.
"""

from retail_api.database.database import Base
from sqlalchemy import Column, String, Integer, ForeignKey, Numeric, Enum, Text, Uuid, Index, CheckConstraint, DateTime
from sqlalchemy.orm import relationship
from uuid import uuid4
from retail_api.common.mixins import BaseMixin, TimestampMixin, utcnow
import enum


# ===== ENUMS =====

class DistributionStatus(str, enum.Enum):
    """Estados de una distribución"""
    PENDING = "pending"         # Asignada, pendiente de entrega
    DELIVERED = "delivered"     # Entregada al cajero
    CANCELLED = "cancelled"     # Agotada o anulada


# Estados cuyo stock puede descontarse con ventas
CONSUMABLE_STATUSES = (DistributionStatus.PENDING, DistributionStatus.DELIVERED)


# ===== MODELOS =====

class Distribution(Base, BaseMixin):
    """
    Stock asignado a un cajero.

    total_value siempre es la suma de quantity * price de sus items.
    """
    __tablename__ = "distributions"

    cashier_id = Column(String(64), nullable=False, index=True)
    status = Column(Enum(DistributionStatus), nullable=False, default=DistributionStatus.PENDING, index=True)
    total_value = Column(Numeric(15, 2, asdecimal=False), nullable=False, default=0)
    notes = Column(Text, nullable=True)

    items = relationship(
        "DistributionItem",
        back_populates="distribution",
        order_by="DistributionItem.position",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        Index("ix_distributions_cashier_status", "cashier_id", "status"),
    )


class DistributionItem(Base):
    __tablename__ = "distribution_items"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    distribution_id = Column(Uuid(as_uuid=True), ForeignKey("distributions.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)

    product_id = Column(String(64), nullable=False, index=True)
    product_name = Column(String(200), nullable=False)
    quantity = Column(Integer, nullable=False)
    price = Column(Numeric(15, 2, asdecimal=False), nullable=False)
    total_value = Column(Numeric(15, 2, asdecimal=False), nullable=False)  # quantity * price

    distribution = relationship("Distribution", back_populates="items")

    __table_args__ = (
        CheckConstraint("quantity >= 0", name="ck_distribution_item_qty_nonneg"),
    )


class DistributionAllocation(Base, TimestampMixin):
    """
    Cantidad descontada de una distribución por una transacción.

    Permite que la reconciliación de una misma transacción no se aplique dos veces.
    """
    __tablename__ = "distribution_allocations"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    transaction_id = Column(Uuid(as_uuid=True), ForeignKey("transactions.id"), nullable=False, index=True)
    distribution_id = Column(Uuid(as_uuid=True), ForeignKey("distributions.id"), nullable=False, index=True)
    product_id = Column(String(64), nullable=False)
    quantity = Column(Integer, nullable=False)

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_distribution_allocation_qty_pos"),
    )


class DistributionReconciliation(Base):
    """
    Marca de que una transacción ya fue reconciliada contra las distribuciones.

    Se guarda aunque la venta no haya descontado nada (faltante total), así
    una segunda reconciliación de la misma transacción nunca toca el stock.
    """
    __tablename__ = "distribution_reconciliations"

    transaction_id = Column(Uuid(as_uuid=True), ForeignKey("transactions.id"), primary_key=True)
    cashier_id = Column(String(64), nullable=False, index=True)
    reconciled_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
