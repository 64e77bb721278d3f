import pytest
import uuid
from decimal import Decimal

from erp import create_app
from erp.database import get_session, create_all, drop_all
from erp.models import Customer, CustomerType, Supplier, MarkupConfiguration, MarkupLevel


@pytest.fixture(scope='function')
def app():
    """Create application instance for testing (fresh in-memory database)."""
    app = create_app('config.TestConfig')
    create_all()
    yield app
    get_session().remove()
    drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def session(app):
    """Create database session for testing."""
    session = get_session()
    yield session
    session.rollback()
    session.close()


@pytest.fixture(scope='function')
def retail_customer(session):
    """Create a retail customer."""
    suffix = str(uuid.uuid4())[:8]
    customer = Customer(
        customer_code=f'C-{suffix}',
        name=f'Retail Customer {suffix}',
        customer_type=CustomerType.RETAIL,
        active=True
    )
    session.add(customer)
    session.commit()
    return customer


@pytest.fixture(scope='function')
def wholesale_customer(session):
    """Create a wholesale customer."""
    suffix = str(uuid.uuid4())[:8]
    customer = Customer(
        customer_code=f'W-{suffix}',
        name=f'Wholesale Customer {suffix}',
        customer_type=CustomerType.WHOLESALE,
        active=True
    )
    session.add(customer)
    session.commit()
    return customer


@pytest.fixture(scope='function')
def supplier(session):
    """Create a supplier."""
    suffix = str(uuid.uuid4())[:8]
    supplier = Supplier(
        supplier_code=f'S-{suffix}',
        name=f'Supplier {suffix}',
        active=True
    )
    session.add(supplier)
    session.commit()
    return supplier


@pytest.fixture(scope='function')
def system_markup(session):
    """Create the system-wide markup rule (retail 70%, wholesale 40%)."""
    rule = MarkupConfiguration(
        level=MarkupLevel.SYSTEM,
        entity_id=None,
        retail_markup_percentage=Decimal('70'),
        wholesale_markup_percentage=Decimal('40'),
        is_active=True
    )
    session.add(rule)
    session.commit()
    return rule


@pytest.fixture(scope='function')
def standard_line():
    """2 x 50.00, 5% discount, 10% VAT -> 104.50."""
    return {
        'description': 'Cable 2.5mm',
        'quantity': 2,
        'unit_price': 50,
        'discount_percent': 5,
        'vat_percent': 10,
    }
