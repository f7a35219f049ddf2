from app.version import API_PREFIX


def test_404_json_envelope(client):
    resp = client.get('/no/such/route')
    assert resp.status_code == 404
    data = resp.get_json()
    assert data['status'] == 'error'
    assert data['code'] == 404
    assert isinstance(data.get('message'), str)


def test_unexpected_500_json_envelope(client):
    resp = client.get('/__boom', headers={'X-Request-ID': 'boom-1'})
    assert resp.status_code == 500
    data = resp.get_json()
    assert data['status'] == 'error'
    assert data['code'] == 500
    assert data['error_id'] == 'boom-1'
    assert 'RuntimeError' not in data['message']
    assert 'detail' not in data


def test_settlement_errors_use_the_envelope(client, auth):
    resp = client.get(f'{API_PREFIX}/customer/orders/999', headers=auth('c1', 'customer'))
    assert resp.status_code == 404
    assert resp.get_json() == {'status': 'error', 'message': 'Order not found', 'code': 404}


def test_schema_errors_list_fields(client, auth):
    resp = client.post(f'{API_PREFIX}/customer/orders', json={'items': []}, headers=auth('c1', 'customer'))
    assert resp.status_code == 400
    data = resp.get_json()
    assert data['message'] == 'Validation failed'
    assert data['errors']


def test_ok_helper_endpoint(client):
    resp = client.get('/__ok')
    assert resp.status_code == 200
    assert resp.get_json() == {
        'status': 'success',
        'message': 'success',
        'data': {'ping': 'pong'}
    }
    assert client.get(f'{API_PREFIX}/test_support/__ok').status_code == 200


def test_domain_conflict_is_409(client):
    resp = client.get('/__conflict')
    assert resp.status_code == 409
    assert resp.get_json() == {
        'status': 'error',
        'message': 'Escrow for order ORD-000000-0000 is not held',
        'code': 409,
    }
