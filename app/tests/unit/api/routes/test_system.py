import pytest


@pytest.mark.unit
def test_get_version(client):
    response = client.get("/version")
    assert response.status_code == 200
    assert response.json() == {"version": "abc123"}


@pytest.mark.unit
def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


@pytest.mark.unit
def test_health_is_rate_limited(client):
    statuses = [client.get("/health").status_code for _ in range(51)]
    assert statuses[:50] == [200] * 50
    assert statuses[50] == 429
