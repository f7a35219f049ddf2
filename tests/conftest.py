import os
import sys
from datetime import date
import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))
os.environ.setdefault('APP_ENV', 'testing')

from models import db
from app.utils.db import transactional

VISA = '4111111111111111'


@pytest.fixture(scope='session')
def app_instance():
    from app import create_app
    from app.config import TestingConfig
    return create_app(TestingConfig)


@pytest.fixture(scope='function')
def app(app_instance):
    with app_instance.app_context():
        db.drop_all()
        db.create_all()
        yield app_instance
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    return app.test_client()


@pytest.fixture
def services(app):
    from app.services.container import get_services
    return get_services()


@pytest.fixture
def auth(app):
    from app.utils import create_access_token

    def make(user_id, role):
        return {'Authorization': f'Bearer {create_access_token(user_id, role)}'}

    return make


def card_payload(**overrides):
    payload = {
        'card_holder_name': 'Vera Vendor',
        'card_number': VISA,
        'expiry_month': '12',
        'expiry_year': str(date.today().year + 3),
        'cvv': '123',
        'bank_name': 'First Test Bank',
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def connect_bank(services):
    """Connect a card for ``user_id`` and commit."""
    def connect(user_id, account_type='vendor', **overrides):
        data = card_payload(**overrides)
        with transactional('test bank connect'):
            bank = services.bank_accounts.connect(user_id, account_type, **data)
        return bank.id

    return connect


@pytest.fixture
def place_order(services):
    """Create and commit an order; ``lines`` are ``(vendor_id, unit_price, quantity)``."""
    def place(customer_id='cust-1', lines=(('v1', '80.00', 1),), total=None, now=None, **kwargs):
        items = [
            {'product_id': f'p{i}', 'vendor_id': vendor, 'unit_price': price, 'quantity': qty}
            for i, (vendor, price, qty) in enumerate(lines)
        ]
        with transactional('test order'):
            order = services.order_service.create_order(
                customer_id, items, total=total, now=now,
                shipping_address={'street': '1 Main St', 'city': 'Springfield'},
                **kwargs,
            )
        return order.id

    return place
