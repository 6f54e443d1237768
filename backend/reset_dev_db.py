#!/usr/bin/env python3
"""
Reset development database - creates fresh schema, a small set of parties
and an offer to negotiate on, then prints a bearer token per actor.
Run from the backend/ directory.
"""
import os
from decimal import Decimal
from pathlib import Path

# Ensure we're in the backend directory
backend_dir = Path(__file__).parent
os.chdir(backend_dir)

# Force load .env before importing app modules
from dotenv import load_dotenv

load_dotenv(backend_dir / ".env", override=True)

# Always target the local sqlite dev DB for this script.
os.environ["DATABASE_URL"] = "sqlite:///./dev.db"

from app import models  # noqa: E402
from app.core.security import create_actor_token  # noqa: E402
from app.database import Base, SessionLocal, engine  # noqa: E402


def main():
    db_path = backend_dir / "dev.db"

    if db_path.exists():
        print(f"Removing existing database: {db_path}")
        db_path.unlink()

    print("Creating database tables...")
    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        guarantor = models.Employee(
            name="Guarantor", email="guarantor@mediation.local", employee_code="EMP-001"
        )
        db.add(guarantor)
        db.flush()

        trader = models.Trader(
            company_name="Gulf Aluminium Trading",
            email="trader@mediation.local",
            trader_code="TRD-001",
            employee_id=guarantor.id,
        )
        client = models.Client(name="Demo Buyer", email="buyer@mediation.local", country="SA")
        shipper = models.ShippingCompany(name="Red Sea Freight")
        db.add_all([trader, client, shipper])
        db.flush()

        offer = models.Offer(trader_id=trader.id, title="Aluminium profiles, mixed lot")
        db.add(offer)
        db.flush()
        db.add_all(
            [
                models.OfferItem(
                    offer_id=offer.id,
                    product_name="Profile 6063-T5",
                    unit_price=Decimal("60.00"),
                    quantity=100,
                    cartons=20,
                    cbm=Decimal("0.5"),
                ),
                models.OfferItem(
                    offer_id=offer.id,
                    product_name="Sheet 1050 H14",
                    unit_price=Decimal("20.00"),
                    quantity=200,
                    cartons=40,
                    cbm=Decimal("0.25"),
                ),
            ]
        )
        db.add(
            models.PlatformSettings(
                platform_commission_rate=Decimal("2.5"),
                shipping_commission_rate=Decimal("5.0"),
                commission_method=models.CommissionMethod.PERCENTAGE,
            )
        )
        db.commit()
        print("Parties, offer and platform settings created")

        print("\nBearer tokens:")
        for label, actor_id, actor_type in [
            ("admin", 1, "ADMIN"),
            ("employee", guarantor.id, "EMPLOYEE"),
            ("trader", trader.id, "TRADER"),
            ("client", client.id, "CLIENT"),
        ]:
            print(f"  {label}: {create_actor_token(actor_id, actor_type)}")

        print(f"\nOffer id: {offer.id}")
        print(f"Database: {db_path}")
    finally:
        db.close()


if __name__ == "__main__":
    main()
