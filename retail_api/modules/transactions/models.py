"""
Modelos SQLAlchemy para transacciones de venta

- Transaction: venta registrada por un cajero (status "completed" al crearse)
- TransactionItem: líneas de la venta, en el orden recibido

Las transacciones no se modifican después de creadas.
"""

from retail_api.database.database import Base
from sqlalchemy import Column, String, Integer, ForeignKey, Numeric, Enum, Uuid, Index
from sqlalchemy.orm import relationship
from uuid import uuid4
from retail_api.common.mixins import BaseMixin
import enum


class TransactionStatus(str, enum.Enum):
    """Estados de transacción"""
    COMPLETED = "completed"


class Transaction(Base, BaseMixin):
    __tablename__ = "transactions"

    cashier_id = Column(String(64), nullable=False, index=True)
    status = Column(Enum(TransactionStatus), nullable=False, default=TransactionStatus.COMPLETED, index=True)

    # Totales calculados por el cliente
    subtotal = Column(Numeric(15, 2, asdecimal=False), nullable=False)
    overall_discount = Column(Numeric(15, 2, asdecimal=False), nullable=False, default=0)
    total_amount = Column(Numeric(15, 2, asdecimal=False), nullable=False)
    cash_received = Column(Numeric(15, 2, asdecimal=False), nullable=False)
    change = Column(Numeric(15, 2, asdecimal=False), nullable=False)

    items = relationship(
        "TransactionItem",
        back_populates="transaction",
        order_by="TransactionItem.position",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        Index("ix_transactions_cashier_created", "cashier_id", "created_at"),
    )


class TransactionItem(Base):
    __tablename__ = "transaction_items"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    transaction_id = Column(Uuid(as_uuid=True), ForeignKey("transactions.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)

    # Snapshot del producto al momento de la venta
    product_id = Column(String(64), nullable=False, index=True)
    product_name = Column(String(200), nullable=False)
    product_sku = Column(String(64), nullable=False)
    category = Column(String(100), nullable=False)

    quantity = Column(Integer, nullable=False)
    price = Column(Numeric(15, 2, asdecimal=False), nullable=False)
    discount = Column(Numeric(15, 2, asdecimal=False), nullable=False, default=0)
    total = Column(Numeric(15, 2, asdecimal=False), nullable=False)

    transaction = relationship("Transaction", back_populates="items")
