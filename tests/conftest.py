from pathlib import Path

import pytest

from parts_gallery.adapters.local_storage import LocalBucketStorage
from parts_gallery.adapters.sqlite.migrator import SQLiteMigrator
from parts_gallery.components.assets import GalleryConfig
from parts_gallery.domain.entities import Principal, SessionContext
from parts_gallery.rules.loader import gallery_config, load_rules
from parts_gallery.rules.models import Rules

BUCKET = "everything-automotive.com"
PROJECT_ROOT = Path(__file__).resolve().parent.parent

ALICE_ID = "11111111-1111-4111-8111-111111111111"
BOB_ID = "22222222-2222-4222-8222-222222222222"


def make_session(principal: Principal, token: str = "token") -> SessionContext:
    return SessionContext(principal=principal, access_token=token, folder_key=principal.id)


@pytest.fixture
def rules() -> Rules:
    """REAL rules from the project root."""
    return load_rules(PROJECT_ROOT / "rules.yaml")


@pytest.fixture
def config(rules: Rules) -> GalleryConfig:
    return gallery_config(rules)


@pytest.fixture
def alice() -> Principal:
    return Principal(id=ALICE_ID, display_name="Alice Driver", email="alice@example.com")


@pytest.fixture
def bob() -> Principal:
    return Principal(id=BOB_ID, display_name="Bob Mechanic", email="bob@example.com")


@pytest.fixture
def alice_session(alice: Principal) -> SessionContext:
    return make_session(alice, "alice-token")


@pytest.fixture
def bob_session(bob: Principal) -> SessionContext:
    return make_session(bob, "bob-token")


@pytest.fixture
def bucket(tmp_path: Path) -> LocalBucketStorage:
    """Anonymous client over a temporary local bucket."""
    return LocalBucketStorage(tmp_path / "storage", BUCKET, public_base_url="http://test")


@pytest.fixture
def alice_storage(bucket: LocalBucketStorage, alice: Principal) -> LocalBucketStorage:
    return bucket.as_principal(alice.id)


@pytest.fixture
def bob_storage(bucket: LocalBucketStorage, bob: Principal) -> LocalBucketStorage:
    return bucket.as_principal(bob.id)


@pytest.fixture
def db_path(tmp_path: Path) -> str:
    """Migrated temporary SQLite database."""
    path = str(tmp_path / "gallery.db")
    SQLiteMigrator(path).run_migrations()
    return path
