import pytest

from app import create_app
from app.config import TestingConfig


def _app(cors_value):
    config = type('CorsConfig', (TestingConfig,), {'CORS_ALLOWED_ORIGINS': cors_value})
    return create_app(config)


def test_cors_preflight_allows_whitelisted_origin():
    client = _app('http://localhost:3000,https://app.example.com').test_client()
    resp = client.open(
        '/__ok',
        method='OPTIONS',
        headers={
            'Origin': 'http://localhost:3000',
            'Access-Control-Request-Method': 'GET',
        },
    )
    assert resp.status_code in (200, 204)
    assert resp.headers.get('Access-Control-Allow-Origin') == 'http://localhost:3000'


def test_cors_preflight_blocks_disallowed_origin():
    client = _app('https://app.example.com').test_client()
    resp = client.open(
        '/__ok',
        method='OPTIONS',
        headers={
            'Origin': 'http://evil.test',
            'Access-Control-Request-Method': 'GET',
        },
    )
    assert resp.status_code in (200, 204)
    assert 'Access-Control-Allow-Origin' not in resp.headers


def test_security_and_trace_headers(client):
    resp = client.get(
        '/__ok',
        headers={'Origin': 'http://any.test', 'X-Request-ID': 'abc-123'},
    )
    assert resp.status_code == 200
    assert resp.headers.get('X-Content-Type-Options') == 'nosniff'
    assert resp.headers.get('X-Frame-Options') == 'DENY'
    assert resp.headers.get('Referrer-Policy') == 'no-referrer'
    assert resp.headers.get('X-Request-ID') == 'abc-123'
    expose = resp.headers.get('Access-Control-Expose-Headers', '')
    assert 'X-Request-ID' in expose
    assert 'traceparent' in resp.headers


def test_vault_key_is_required():
    config = type('NoKeyConfig', (TestingConfig,), {'BANK_ENCRYPTION_KEY': None})
    with pytest.raises(RuntimeError):
        create_app(config)
