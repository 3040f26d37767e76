"""
Fixtures compartidos: base de datos SQLite en memoria recreada en cada test
"""
import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENVIRONMENT"] = "test"
os.environ["DEBUG"] = "false"

import pytest
from datetime import datetime, timedelta, timezone
from fastapi.testclient import TestClient

from retail_api.main import app
from retail_api.database.database import Base, SessionLocal, engine
from retail_api.modules.distributions.models import Distribution, DistributionItem, DistributionStatus


@pytest.fixture(autouse=True)
def schema():
    """Esquema limpio por test"""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def db_session():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def make_distribution(db_session):
    """
    Crea distribuciones con created_at creciente para fijar el orden de consumo.

    Uso: make_distribution("cashier-1", [("X", "Producto X", 5, 2.0)])
    """
    base_time = datetime(2024, 1, 1, tzinfo=timezone.utc)
    created = []

    def _make(cashier_id, items, status=DistributionStatus.PENDING):
        distribution = Distribution(
            cashier_id=cashier_id,
            status=status,
            created_at=base_time + timedelta(minutes=len(created)),
            total_value=round(sum(qty * price for _, _, qty, price in items), 2),
            items=[
                DistributionItem(
                    position=position,
                    product_id=product_id,
                    product_name=name,
                    quantity=qty,
                    price=price,
                    total_value=round(qty * price, 2),
                )
                for position, (product_id, name, qty, price) in enumerate(items)
            ],
        )
        db_session.add(distribution)
        db_session.commit()
        created.append(distribution.id)
        return distribution.id

    return _make
