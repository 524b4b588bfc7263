from fastapi.testclient import TestClient

from userapi.main import app

client = TestClient(app)


def test_health_needs_no_token():
    r = client.get('/health')
    assert r.status_code == 200
    assert r.json() == {'status': 'ok'}
