import os
import tempfile

# Set environment variables BEFORE any app imports; app.config reads them once.
os.environ["SECRET_KEY"] = "test-secret-key-1234567890"
os.environ["DATABASE_URL"] = "sqlite+pysqlite:///:memory:"
os.environ["ENVIRONMENT"] = "test"
os.environ["API_V1_STR"] = "/api"
os.environ["STORAGE_DIR"] = tempfile.mkdtemp(prefix="mediation-test-storage-")
os.environ["PUBLIC_BASE_URL"] = "https://mediation.test"

from decimal import Decimal  # noqa: E402
from types import SimpleNamespace  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from app import models  # noqa: E402
from app.api import deps  # noqa: E402
from app.database import Base, get_db  # noqa: E402
from app.main import app  # noqa: E402
from app.models.domain import ActorType  # noqa: E402
from app.services.actors import Actor  # noqa: E402

TEST_ENGINE = create_engine(
    os.environ["DATABASE_URL"],
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
    future=True,
)
TestingSessionLocal = sessionmaker(
    autocommit=False, autoflush=False, bind=TEST_ENGINE, future=True
)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(scope="function", autouse=True)
def setup_test_database():
    """Fresh schema and a clean set of dependency overrides for every test."""

    original_overrides = dict(app.dependency_overrides)
    Base.metadata.drop_all(bind=TEST_ENGINE)
    Base.metadata.create_all(bind=TEST_ENGINE)
    app.dependency_overrides[get_db] = override_get_db

    yield

    app.dependency_overrides.clear()
    app.dependency_overrides.update(original_overrides)
    Base.metadata.drop_all(bind=TEST_ENGINE)


@pytest.fixture
def db_session():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def act_as():
    """Switch the authenticated actor for subsequent requests."""

    def _act_as(actor_type: ActorType, actor_id: int) -> Actor:
        actor = Actor(id=actor_id, actor_type=actor_type)
        app.dependency_overrides[deps.get_current_actor] = lambda: actor
        return actor

    return _act_as


def seed_world(db) -> SimpleNamespace:
    """Two employees, a trader, two clients, an offer with two items, a shipper."""

    guarantor = models.Employee(
        name="Guarantor", email="guarantor@test.local", commission_rate=Decimal("1.00")
    )
    other_employee = models.Employee(name="Other Employee", email="other@test.local")
    db.add_all([guarantor, other_employee])
    db.flush()

    trader = models.Trader(
        company_name="Acme Trading", email="trader@test.local", employee_id=guarantor.id
    )
    buyer = models.Client(name="Buyer", email="buyer@test.local")
    stranger = models.Client(name="Stranger", email="stranger@test.local")
    shipper = models.ShippingCompany(name="Fast Freight")
    idle_shipper = models.ShippingCompany(
        name="Idle Freight", status=models.ShippingCompanyStatus.INACTIVE
    )
    db.add_all([trader, buyer, stranger, shipper, idle_shipper])
    db.flush()

    offer = models.Offer(trader_id=trader.id, title="Aluminium profiles")
    db.add(offer)
    db.flush()

    # 10 x 60 + 20 x 20 = 1000.00; 10 x 0.5 + 20 x 0.25 = 10 cbm.
    profiles = models.OfferItem(
        offer_id=offer.id,
        product_name="Profile 6063",
        unit_price=Decimal("60.00"),
        quantity=10,
        cartons=2,
        cbm=Decimal("0.5"),
    )
    sheets = models.OfferItem(
        offer_id=offer.id,
        product_name="Sheet 1050",
        unit_price=Decimal("20.00"),
        quantity=20,
        cartons=4,
        cbm=Decimal("0.25"),
    )
    db.add_all([profiles, sheets])
    db.commit()

    return SimpleNamespace(
        guarantor_id=guarantor.id,
        other_employee_id=other_employee.id,
        trader_id=trader.id,
        client_id=buyer.id,
        stranger_id=stranger.id,
        shipper_id=shipper.id,
        idle_shipper_id=idle_shipper.id,
        offer_id=offer.id,
        profiles_id=profiles.id,
        sheets_id=sheets.id,
    )


@pytest.fixture
def world(db_session):
    return seed_world(db_session)
