import pytest

from app.version import API_PREFIX


@pytest.mark.parametrize('method,path,role', [
    ('get', '/customer/orders', 'vendor'),
    ('get', '/customer/balance', 'admin'),
    ('post', '/customer/balance/deduct', 'vendor'),
    ('get', '/vendor/balance', 'customer'),
    ('post', '/vendor/payout', 'customer'),
    ('post', '/vendor/payout', 'admin'),
    ('get', '/admin/dashboard', 'vendor'),
    ('patch', '/admin/orders/1/status', 'customer'),
])
def test_wrong_role_forbidden(client, auth, method, path, role):
    resp = getattr(client, method)(f'{API_PREFIX}{path}', json={}, headers=auth('someone', role))
    assert resp.status_code == 403
    assert resp.get_json()['status'] == 'error'


@pytest.mark.parametrize('path', [
    '/customer/orders',
    '/vendor/balance',
    '/admin/dashboard',
    '/bank/account',
])
def test_missing_token_rejected(client, path):
    resp = client.get(f'{API_PREFIX}{path}')
    assert resp.status_code == 401
    assert resp.get_json()['message'] == 'Auth header missing'


def test_unknown_role_forbidden(client, auth):
    assert client.get(f'{API_PREFIX}/bank/account', headers=auth('x', 'courier')).status_code == 403


def test_vendor_cannot_read_foreign_order(client, auth, place_order):
    order_id = place_order(lines=(('v1', '10.00', 1),))
    resp = client.get(f'{API_PREFIX}/vendor/orders/{order_id}', headers=auth('v2', 'vendor'))
    assert resp.status_code == 404
    resp = client.get(f'{API_PREFIX}/customer/orders/{order_id}', headers=auth('cust-2', 'customer'))
    assert resp.status_code == 404
