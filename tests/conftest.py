import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("NOTIFICATIONS_ENABLED", "false")
os.environ.setdefault("LOG_JSON", "false")

from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from storehouse.api.orders import get_event_publisher
from storehouse.database import Base, get_db
from storehouse.main import app
from storehouse.models import (
    Category,
    Company,
    Product,
    Role,
    Section,
    Storehouse,
    Supplier,
    User,
)
from storehouse.schemas.order import OrderCreate, OrderItemCreate
from storehouse.security import CallerContext, create_access_token
from storehouse.services.order_service import OrderService


class RecordingPublisher:
    """Stands in for EventPublisher and keeps every published event"""

    def __init__(self):
        self.events = []

    def publish_order_created(self, data):
        self.events.append(("OrderCreated", data))
        return True

    def publish_order_status_changed(self, data):
        self.events.append(("OrderStatusChanged", data))
        return True

    def publish_workers_assigned(self, data):
        self.events.append(("WorkersAssigned", data))
        return True

    def of_type(self, event_type):
        return [data for kind, data in self.events if kind == event_type]


class FailingPublisher(RecordingPublisher):
    """Publisher whose broker is down"""

    def publish_order_created(self, data):
        raise ConnectionError("broker down")

    def publish_order_status_changed(self, data):
        raise ConnectionError("broker down")

    def publish_workers_assigned(self, data):
        raise ConnectionError("broker down")


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    yield session
    session.close()


@pytest.fixture
def seed(db):
    """Two companies, one storehouse each, managers, workers and products"""
    acme = Company(id=1, name="Acme Logistics")
    globex = Company(id=2, name="Globex")
    db.add_all([acme, globex])

    central = Storehouse(id=1, name="Central Depot", location="Prishtina", size_m2=1200, company_id=1)
    north = Storehouse(id=2, name="North Hub", location="Mitrovica", size_m2=400, company_id=2)
    db.add_all([central, north])

    aisle = Section(id=1, name="Aisle A", storehouse_id=1)
    cold = Section(id=2, name="Cold Room", storehouse_id=1)
    remote = Section(id=3, name="Bay 1", storehouse_id=2)
    db.add_all([aisle, cold, remote])

    tools = Category(id=1, name="Tools", company_id=1)
    food = Category(id=2, name="Food", company_id=1)
    pallets = Category(id=3, name="Pallets", company_id=2)
    supplier = Supplier(id=1, name="Bosch Wholesale", contact_info="sales@example.com", company_id=1)
    farm = Supplier(id=2, name="Green Farm", contact_info="farm@example.com", company_id=1)
    timber = Supplier(id=3, name="Northern Timber", contact_info="wood@example.com", company_id=2)
    db.add_all([tools, food, pallets, supplier, farm, timber])

    users = [
        User(id="cm-1", user_name="carla", role=Role.COMPANY_MANAGER.value, company_id=1),
        User(id="sm-1", user_name="sami", role=Role.STOREHOUSE_MANAGER.value, company_id=1, storehouse_id=1),
        User(id="w-1", user_name="walt", role=Role.WORKER.value, company_id=1, storehouse_id=1),
        User(id="w-2", user_name="wanda", role=Role.WORKER.value, company_id=1, storehouse_id=1),
    ]
    db.add_all(users)

    drill = Product(
        id=1, name="Drill", description="Cordless drill", price=120.0, stock=10,
        supplier_id=1, category_id=1, section_id=1,
    )
    hammer = Product(
        id=2, name="Hammer", description="Steel claw hammer", price=15.5, stock=3,
        supplier_id=1, category_id=1, section_id=1,
    )
    cheese = Product(
        id=3, name="Cheese", description="Aged cheddar", price=8.25, stock=40,
        supplier_id=2, category_id=2, section_id=2,
    )
    crate = Product(
        id=4, name="Crate", description="Wooden crate", price=4.0, stock=100,
        section_id=3,
    )
    db.add_all([drill, hammer, cheese, crate])
    db.commit()

    return SimpleNamespace(drill_id=1, hammer_id=2, cheese_id=3, crate_id=4)


@pytest.fixture
def company_manager():
    return CallerContext(user_id="cm-1", role=Role.COMPANY_MANAGER, company_id=1, user_name="carla")


@pytest.fixture
def storehouse_manager():
    return CallerContext(user_id="sm-1", role=Role.STOREHOUSE_MANAGER, company_id=1, user_name="sami")


@pytest.fixture
def worker():
    return CallerContext(user_id="w-1", role=Role.WORKER, company_id=1, user_name="walt")


@pytest.fixture
def publisher():
    return RecordingPublisher()


@pytest.fixture
def order_service(db, publisher):
    return OrderService(db, publisher)


@pytest.fixture
def order_payload(seed):
    def build(*items, **overrides):
        items = items or ((seed.drill_id, 2),)
        data = dict(
            client_name="Arta Berisha",
            client_phone_number="+38344111222",
            shipping_address_street="Rr. Nena Tereze 12",
            shipping_address_city="Prishtina",
            shipping_address_postal_code="10000",
            shipping_address_country="Kosovo",
        )
        data.update(overrides)
        return OrderCreate(
            order_items=[OrderItemCreate(product_id=p, quantity=q) for p, q in items],
            **data
        )

    return build


@pytest.fixture
def client(db, publisher):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_event_publisher] = lambda: publisher
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    def build(user_id="sm-1", role=Role.STOREHOUSE_MANAGER, company_id=1, user_name=None):
        token = create_access_token(user_id, role, company_id=company_id, user_name=user_name)
        return {"Authorization": f"Bearer {token}"}

    return build
