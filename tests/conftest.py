import pytest
import chatadmin.storage as storage
from chatadmin.memory import Namespace, TTLStore
from chatadmin.scheduler import ExpiryScheduler

ADMIN_TOKEN = "admin-secret"
USER_TTL = 600
IP_TTL = 3600


class FakeClock:
    """Monotonic clock moved by hand."""

    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture(autouse=True)
def use_sqlite(tmp_path, monkeypatch):
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.delenv("REDIS_URL", raising=False)
    monkeypatch.delenv("QINIU_ACCESS_KEY", raising=False)
    monkeypatch.setenv("ADMIN_TOKEN", ADMIN_TOKEN)
    monkeypatch.setenv("PUBLIC_DIR", str(tmp_path / "public"))
    monkeypatch.setattr(storage, "DB_FILE", tmp_path / "chatadmin.db")
    yield


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    scheduler = ExpiryScheduler(clock=clock)
    return TTLStore({Namespace.SEALED_USERS: USER_TTL, Namespace.SEALED_IPS: IP_TTL}, scheduler)


@pytest.fixture
def admin_headers():
    return {"Authorization": f"Bearer {ADMIN_TOKEN}"}
