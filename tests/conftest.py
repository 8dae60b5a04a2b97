import pytest
from decimal import Decimal

from config import TestingConfig
from fashionhub import create_app
from fashionhub import database
from fashionhub.database import Base, get_session
from fashionhub.models import AppUser, UserRole, Product, ProductStatus
from fashionhub.services.sequence_service import ensure_sequence


PASSWORD = 'password123'


@pytest.fixture(scope='session')
def app(tmp_path_factory):
    """Create application instance for testing (file-backed SQLite)."""
    db_path = tmp_path_factory.mktemp('db') / 'fashionhub-test.db'

    class _Config(TestingConfig):
        SQLALCHEMY_DATABASE_URI = f'sqlite:///{db_path}'

    app = create_app(_Config)
    yield app
    database.engine.dispose()


@pytest.fixture(autouse=True)
def app_context(app):
    """Empty tables, reseed the invoice sequence and run the test inside an app context."""
    with database.engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            conn.execute(table.delete())

    ctx = app.app_context()
    ctx.push()

    session = get_session()
    ensure_sequence(session)
    session.commit()

    yield

    ctx.pop()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def session():
    """Database session for testing."""
    return get_session()


@pytest.fixture(scope='function')
def make_user(session):
    """Factory: create a committed user with the given role."""
    def _make_user(role=UserRole.STAFF, email=None, active=True):
        role = UserRole.parse(role)
        user = AppUser(
            email=email or f'{role.value.lower()}@fashionhub.test',
            full_name=f'{role.value} User',
            role=role.value,
            active=active
        )
        user.set_password(PASSWORD)
        session.add(user)
        session.commit()
        session.refresh(user)
        return user
    return _make_user


@pytest.fixture(scope='function')
def admin(make_user):
    return make_user(UserRole.ADMIN)


@pytest.fixture(scope='function')
def manager(make_user):
    return make_user(UserRole.MANAGER)


@pytest.fixture(scope='function')
def staff(make_user):
    return make_user(UserRole.STAFF)


@pytest.fixture(scope='function')
def viewer(make_user):
    return make_user(UserRole.VIEWER)


@pytest.fixture(scope='function')
def make_product(session):
    """Factory: create a committed active product."""
    def _make_product(code, price='10.00', quantity=10, name=None, **extra):
        product = Product(
            product_code=code,
            name=name or f'Product {code}',
            price=Decimal(str(price)),
            quantity=quantity,
            status=ProductStatus.ACTIVE,
            **extra
        )
        session.add(product)
        session.commit()
        session.refresh(product)
        return product
    return _make_product


@pytest.fixture(scope='function')
def product_x(make_product):
    """Product X: 10.00, 10 in stock."""
    return make_product('X-001', price='10.00', quantity=10, name='Linen Shirt', color='White', size='M')


@pytest.fixture(scope='function')
def product_y(make_product):
    """Product Y: 5.00, 10 in stock."""
    return make_product('Y-001', price='5.00', quantity=10, name='Cotton Socks', color='Black', size='L')


@pytest.fixture(scope='function')
def login(client):
    """Log a user into the test client by session cookie."""
    def _login(user):
        with client.session_transaction() as sess:
            sess['user_id'] = user.id
        return client
    return _login
