"""
Pytest fixtures for depot backend tests.

Provides test database setup, outlet isolation fixtures, and test client.
"""

import pytest
from depot import create_app
from depot.extensions import db
from depot.models import Customer, CustomerTier, Outlet, PriceRule, Product
from depot.models.catalog import CATEGORY_FUEL_CANISTER, CATEGORY_GENERAL, CATEGORY_RETURNABLE_CONTAINER
from depot.services.inventory_service import correct_inventory


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'DEPOT_RESTOCK_DEBITS_CAPITAL': False,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def outlet_a(db_session):
    """Create Outlet A (first tenant)."""
    outlet = Outlet(name="Depot Sukamaju", code="SKM", is_active=True)
    db_session.add(outlet)
    db_session.commit()
    return outlet


@pytest.fixture(scope='function')
def outlet_b(db_session):
    """Create Outlet B (second tenant)."""
    outlet = Outlet(name="Depot Bojong", code="BJG", is_active=True)
    db_session.add(outlet)
    db_session.commit()
    return outlet


@pytest.fixture(scope='function')
def gold_tier(db_session):
    """Tier with a 10% global discount."""
    tier = CustomerTier(name="gold", display_name="Gold", global_discount_percent=10, min_spent=1000000)
    db_session.add(tier)
    db_session.commit()
    return tier


@pytest.fixture(scope='function')
def regular_tier(db_session):
    tier = CustomerTier(name="regular", display_name="Regular", global_discount_percent=0)
    db_session.add(tier)
    db_session.commit()
    return tier


@pytest.fixture(scope='function')
def gold_customer(db_session, outlet_a, gold_tier):
    customer = Customer(outlet_id=outlet_a.id, tier_id=gold_tier.id, name="Bu Sari", phone="0812000111")
    db_session.add(customer)
    db_session.commit()
    return customer


def _make_product(db_session, outlet, name, category, base_price, cost_price=0, is_global=True):
    """Create a product with a price rule at the outlet."""
    product = Product(
        name=name,
        category=category,
        is_global=is_global,
        outlet_id=None if is_global else outlet.id,
    )
    db_session.add(product)
    db_session.flush()
    db_session.add(PriceRule(
        outlet_id=outlet.id,
        product_id=product.id,
        base_price=base_price,
        cost_price=cost_price,
    ))
    db_session.commit()
    return product


def _seed_stock(outlet_id, product_id, filled=0, empty=0):
    """Put opening stock on the books through the audited correction path."""
    correct_inventory(outlet_id, product_id, delta_filled=filled, delta_empty=empty, note="Opening stock")


@pytest.fixture(scope='function')
def lpg(db_session, outlet_a):
    """3 kg LPG canister: returnable, base 18000, cost 16000."""
    return _make_product(db_session, outlet_a, "LPG 3kg", CATEGORY_FUEL_CANISTER, 18000, 16000)


@pytest.fixture(scope='function')
def gallon(db_session, outlet_a):
    """19 L water gallon: returnable container."""
    return _make_product(db_session, outlet_a, "Galon 19L", CATEGORY_RETURNABLE_CONTAINER, 6000, 4500)


@pytest.fixture(scope='function')
def snack(db_session, outlet_a):
    """General merchandise: never carries empty stock."""
    return _make_product(db_session, outlet_a, "Kerupuk", CATEGORY_GENERAL, 2500, 1800)


@pytest.fixture(scope='function')
def product_factory(db_session):
    """Build extra priced products: product_factory(outlet, name, category, base, cost, is_global)."""
    def factory(outlet, name, category, base_price, cost_price=0, is_global=True):
        return _make_product(db_session, outlet, name, category, base_price, cost_price, is_global)
    return factory


@pytest.fixture(scope='function')
def seed_stock(db_session):
    """seed_stock(outlet_id, product_id, filled, empty) through the audited correction path."""
    return _seed_stock
