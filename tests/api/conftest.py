from collections.abc import Iterator
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from parts_gallery.adapters.auth.dev_identity import DevIdentityProvider
from parts_gallery.api import deps
from parts_gallery.api.main import app

PROJECT_ROOT = Path(__file__).resolve().parents[2]
SECRET = "api-test-secret"


def clear_caches() -> None:
    deps.get_settings.cache_clear()
    deps.get_rules.cache_clear()
    deps.get_identity_provider.cache_clear()
    deps.get_local_bucket.cache_clear()


@pytest.fixture
def client(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[TestClient]:
    """App against a temporary data dir, with the lifespan running."""
    monkeypatch.setenv("GALLERY_BACKEND", "local")
    monkeypatch.setenv("GALLERY_DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setenv("GALLERY_RULES_PATH", str(PROJECT_ROOT / "rules.yaml"))
    monkeypatch.setenv("GALLERY_JWT_SECRET", SECRET)
    monkeypatch.setenv("GALLERY_PUBLIC_BASE_URL", "http://testserver")
    clear_caches()
    with TestClient(app) as c:
        yield c
    app.dependency_overrides = {}
    clear_caches()


@pytest.fixture
def identity() -> DevIdentityProvider:
    return DevIdentityProvider(secret=SECRET)


@pytest.fixture
def alice_headers(identity: DevIdentityProvider) -> dict[str, str]:
    token = identity.create_access_token(identity.principal_for_email("alice@example.com"))
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def bob_headers(identity: DevIdentityProvider) -> dict[str, str]:
    token = identity.create_access_token(identity.principal_for_email("bob@example.com"))
    return {"Authorization": f"Bearer {token}"}
