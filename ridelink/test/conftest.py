import pytest
from fastapi.testclient import TestClient

from ridelink import auth, cache
from ridelink.config import settings
from ridelink.events import hub
from ridelink.main import app
from ridelink.store import store


class FakeRedis:
    """Async in-memory stand-in covering the commands the service uses."""

    def __init__(self):
        self.hashes = {}
        self.sets = {}
        self.values = {}
        self.ttls = {}

    async def hset(self, key, mapping=None):
        self.hashes.setdefault(key, {}).update({k: str(v) for k, v in (mapping or {}).items()})

    async def hgetall(self, key):
        return dict(self.hashes.get(key, {}))

    async def expire(self, key, seconds):
        self.ttls[key] = seconds

    async def delete(self, *keys):
        removed = 0
        for key in keys:
            for pool in (self.hashes, self.values, self.sets):
                if pool.pop(key, None) is not None:
                    removed += 1
        return removed

    async def exists(self, *keys):
        return sum(1 for k in keys if k in self.hashes or k in self.values or k in self.sets)

    async def smembers(self, key):
        return set(self.sets.get(key, set()))

    async def sadd(self, key, *members):
        self.sets.setdefault(key, set()).update(str(m) for m in members)

    async def srem(self, key, *members):
        s = self.sets.get(key)
        if s:
            for m in members:
                s.discard(m)

    async def set(self, key, value, ex=None):
        self.values[key] = value
        if ex is not None:
            self.ttls[key] = ex

    async def get(self, key):
        return self.values.get(key)

    async def ping(self):
        return True


@pytest.fixture
def fake_redis(monkeypatch):
    fake = FakeRedis()
    monkeypatch.setattr(cache, "redis_client", fake)
    store.reset()
    hub.clear()
    auth.reset_accounts()
    return fake


@pytest.fixture
def client(fake_redis):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def admin_token(client):
    r = client.post("/api/admin/auth/login", json={"email": settings.ADMIN_EMAIL, "password": settings.ADMIN_PASSWORD})
    assert r.status_code == 200
    return r.json()["token"]


@pytest.fixture
def admin_headers(admin_token):
    return {"Authorization": f"Bearer {admin_token}"}
