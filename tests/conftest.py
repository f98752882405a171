import pytest
from fastapi.testclient import TestClient

from familyhub.config import Settings
from familyhub.main import create_app
from familyhub.services import MemberProfile, build_services


@pytest.fixture()
def settings(tmp_path, monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")
    monkeypatch.setenv("STORAGE_BACKEND", "local")
    monkeypatch.setenv("LOCAL_MEDIA_PATH", str(tmp_path / "media"))
    # bcrypt's minimum cost keeps the suite fast
    monkeypatch.setenv("PASSWORD_HASH_ROUNDS", "4")
    monkeypatch.delenv("FAMILY_PASSWORD_HASH_ROUNDS", raising=False)
    return Settings()


@pytest.fixture()
def services(settings):
    s = build_services(settings)
    s.db.create_all()
    yield s
    s.db.dispose()


@pytest.fixture()
def client(settings):
    app = create_app(settings)
    with TestClient(app) as c:
        yield c


@pytest.fixture()
def smith(services):
    """Smith Family with admin Alice."""
    family_id, alice_id = services.identity.register_family(
        "Smith Family",
        "secret1",
        MemberProfile(full_name="Alice", relationship="Parent"),
        "alice12",
    )
    return {"family_id": family_id, "alice_id": alice_id}
