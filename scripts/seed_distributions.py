"""
Seed script: assign demo stock distributions to cashiers.

What it creates:
- N cashiers (cashier-1 .. cashier-N).
- For each cashier, a few pending/delivered distributions drawn from a small
  supermarket catalog, so POST /transactions has stock to reconcile against.

Run from the project root (uses DATABASE_URL / POSTGRES_* from .env):
    python scripts/seed_distributions.py --cashiers 3 --distributions 2

Note: This is intended for development environments only.
"""

# Add project root to sys.path so `retail_api.*` imports work even if CWD changes
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

import argparse
import random

from retail_api.database.database import Base, SessionLocal, engine
from retail_api.modules.distributions.models import DistributionStatus
from retail_api.modules.distributions.schemas import DistributionCreate, DistributionItemCreate
from retail_api.modules.distributions.service import DistributionService
import retail_api.modules.transactions.models  # noqa: F401  (tables referenced by allocations)


CATALOG = [
    ("ARZ-500", "Arroz 500g", 2.40),
    ("FRJ-1K", "Fríjol 1kg", 4.10),
    ("CAF-250", "Café molido 250g", 6.75),
    ("ACE-1L", "Aceite 1L", 5.20),
    ("AZU-1K", "Azúcar 1kg", 1.95),
    ("LEC-1L", "Leche entera 1L", 1.30),
    ("HUE-12", "Huevos x12", 3.60),
    ("PAN-TAJ", "Pan tajado", 2.10),
]


def create_distribution(service: DistributionService, cashier_id: str, products: int):
    picked = random.sample(CATALOG, k=min(products, len(CATALOG)))
    data = DistributionCreate(
        cashier_id=cashier_id,
        items=[
            DistributionItemCreate(
                product_id=product_id,
                product_name=name,
                quantity=random.randint(5, 40),
                price=price,
            )
            for product_id, name, price in picked
        ],
        notes="Demo seed",
    )
    return service.create_distribution(data)


def main():
    parser = argparse.ArgumentParser(description="Seed demo cashier distributions")
    parser.add_argument("--cashiers", type=int, default=3)
    parser.add_argument("--distributions", type=int, default=2, help="Distributions per cashier")
    parser.add_argument("--products", type=int, default=5, help="Products per distribution")
    args = parser.parse_args()

    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        service = DistributionService(db)
        created = 0
        for n in range(1, args.cashiers + 1):
            cashier_id = f"cashier-{n}"
            for i in range(args.distributions):
                distribution = create_distribution(service, cashier_id, args.products)
                # The first distribution of each cashier is already delivered
                if i == 0:
                    service.update_status(distribution.id, DistributionStatus.DELIVERED)
                created += 1
            print(f"  {cashier_id}: {args.distributions} distributions")

        print(f"\nSeed completed. Distributions created: {created}")
    finally:
        db.close()


if __name__ == "__main__":
    main()
