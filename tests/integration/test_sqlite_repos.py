"""
SQLite repositories against the real migrations.
"""

from uuid import uuid4

import pytest

from parts_gallery.adapters.sqlite.repos import (
    SQLiteCategoryRepo,
    SQLitePartRepo,
    SQLiteSavedItemRepo,
)
from parts_gallery.core.ports.db import RepoError
from parts_gallery.domain.entities import PartRecord, SavedItem


@pytest.fixture
def part_repo(db_path):
    return SQLitePartRepo(db_path)


@pytest.fixture
def brake_pad(part_repo):
    return part_repo.upsert(
        PartRecord(
            part_slug="brake-pad",
            name="Brake Pad",
            price=49.5,
            stock=4,
            features=["ceramic", "low dust"],
            compatible_years=["2019", "2020"],
            owner_user_id="u1",
        )
    )


class TestCategories:
    def test_seeded_and_ordered(self, db_path):
        names = [c.name for c in SQLiteCategoryRepo(db_path).list_all()]
        assert len(names) == 10
        assert names == sorted(names)
        assert "Brakes" in names


class TestParts:
    def test_round_trip(self, part_repo, brake_pad):
        fetched = part_repo.get_by_slug("brake-pad")

        assert fetched == brake_pad
        assert fetched.features == ["ceramic", "low dust"]
        assert part_repo.get_by_id(brake_pad.id) == brake_pad

    def test_missing(self, part_repo):
        assert part_repo.get_by_slug("nope") is None
        assert part_repo.get_by_id(uuid4()) is None

    def test_upsert_keeps_identity_and_main_image(self, part_repo, brake_pad):
        assert part_repo.set_main_image_url("brake-pad", "https://cdn/main.png", "u1")

        updated = part_repo.upsert(
            PartRecord(part_slug="brake-pad", name="Brake Pad Pro", price=60.0, owner_user_id="u1")
        )

        assert updated.id == brake_pad.id
        assert updated.created_at == brake_pad.created_at
        assert updated.main_image_url == "https://cdn/main.png"
        assert updated.name == "Brake Pad Pro"
        assert updated.features == []

    def test_set_main_image_unknown_part(self, part_repo):
        assert part_repo.set_main_image_url("nope", "https://cdn/x.png", "u1") is False

    def test_set_main_image_other_owner(self, part_repo, brake_pad):
        assert part_repo.set_main_image_url("brake-pad", "https://cdn/x.png", "u2") is False
        assert part_repo.get_by_slug("brake-pad").main_image_url is None

    def test_clear_main_image(self, part_repo, brake_pad):
        part_repo.set_main_image_url("brake-pad", "https://cdn/main.png", "u1")
        part_repo.set_main_image_url("brake-pad", None, "u1")
        assert part_repo.get_by_slug("brake-pad").main_image_url is None

    def test_unreachable_database(self, tmp_path):
        repo = SQLitePartRepo(str(tmp_path / "missing-dir" / "gallery.db"))
        with pytest.raises(RepoError):
            repo.get_by_slug("brake-pad")


class TestSavedItems:
    def test_add_is_idempotent(self, db_path, brake_pad):
        repo = SQLiteSavedItemRepo(db_path)

        first = repo.add(SavedItem(user_id="u1", part_id=brake_pad.id))
        second = repo.add(SavedItem(user_id="u1", part_id=brake_pad.id))

        assert first.id == second.id
        assert len(repo.list_for_user("u1")) == 1

    def test_delete(self, db_path, brake_pad):
        repo = SQLiteSavedItemRepo(db_path)
        repo.add(SavedItem(user_id="u1", part_id=brake_pad.id))

        assert repo.delete("u1", brake_pad.id)
        assert not repo.delete("u1", brake_pad.id)
        assert repo.list_for_user("u1") == []

    def test_per_user(self, db_path, brake_pad):
        repo = SQLiteSavedItemRepo(db_path)
        repo.add(SavedItem(user_id="u1", part_id=brake_pad.id))
        assert repo.list_for_user("u2") == []
