from fastapi.testclient import TestClient

from app.main import create_app
from app.middleware import SECURITY_HEADERS, RateLimiter

from conftest import make_settings


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def test_rate_limiter_sliding_window():
    clock = FakeClock()
    limiter = RateLimiter(max_requests=2, window_seconds=10, clock=clock)

    assert limiter.hit("a") is None
    clock.now += 4
    assert limiter.hit("a") is None
    assert limiter.hit("a") == 6
    # other clients have their own budget
    assert limiter.hit("b") is None

    clock.now += 6
    assert limiter.hit("a") is None
    assert limiter.hit("a") == 4


def test_rate_limit_middleware_returns_429(database, database_url):
    app = create_app(make_settings(database_url, rate_limit_max=3), database)
    client = TestClient(app)

    for _ in range(3):
        assert client.get("/api/health/live").status_code == 200

    resp = client.get("/api/health/live")
    assert resp.status_code == 429
    assert resp.json() == {"error": "Too many requests, please try again later."}
    assert int(resp.headers["Retry-After"]) >= 1
    assert resp.headers["X-Content-Type-Options"] == "nosniff"

    # only /api/ paths are limited
    assert client.get("/").status_code == 200


def test_security_headers_on_every_response(client):
    for path in ["/", "/api/health/live", "/api/tasks/abc", "/api/unknown"]:
        resp = client.get(path)
        for name, value in SECURITY_HEADERS.items():
            assert resp.headers[name] == value


def test_cors_headers(client):
    resp = client.get("/api/health/live", headers={"Origin": "http://example.com"})
    assert resp.headers["access-control-allow-origin"] == "*"


def test_rate_limiter_forgets_idle_clients():
    clock = FakeClock()
    limiter = RateLimiter(max_requests=5, window_seconds=1, clock=clock)

    for i in range(10_000):
        limiter.hit(f"10.0.{i // 256}.{i % 256}")
    assert len(limiter._hits) == 10_000

    clock.now += 3600
    assert limiter.hit("192.168.1.1") is None
    assert list(limiter._hits) == ["192.168.1.1"]
