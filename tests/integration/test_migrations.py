import sqlite3

import pytest

from parts_gallery.adapters.sqlite.migrator import SQLiteMigrator


def test_migrator_creates_tables(tmp_path):
    db = str(tmp_path / "gallery.db")
    applied = SQLiteMigrator(db).run_migrations()

    assert applied == ["0001_initial.sql", "0002_seed_categories.sql"]

    conn = sqlite3.connect(db)
    tables = {
        r[0] for r in conn.execute("SELECT name FROM sqlite_master WHERE type='table'")
    }
    conn.close()
    assert {"_migrations", "part_categories", "vehicle_parts", "saved_items"} <= tables


def test_migrator_is_idempotent(tmp_path):
    db = str(tmp_path / "gallery.db")
    migrator = SQLiteMigrator(db)

    migrator.run_migrations()
    assert migrator.run_migrations() == []

    conn = sqlite3.connect(db)
    count = conn.execute("SELECT count(*) FROM part_categories").fetchone()[0]
    conn.close()
    assert count == 10


def test_down_section_is_not_applied(tmp_path):
    migrations = tmp_path / "migrations"
    migrations.mkdir()
    (migrations / "0001_t.sql").write_text(
        "-- Up\nCREATE TABLE t (id INTEGER);\n\n-- Down\nDROP TABLE t;\n"
    )
    db = str(tmp_path / "t.db")

    SQLiteMigrator(db, str(migrations)).run_migrations()

    conn = sqlite3.connect(db)
    assert conn.execute("SELECT name FROM sqlite_master WHERE name='t'").fetchone()
    conn.close()


def test_failed_migration_is_not_recorded(tmp_path):
    migrations = tmp_path / "migrations"
    migrations.mkdir()
    (migrations / "0001_ok.sql").write_text("CREATE TABLE ok (id INTEGER);\n")
    (migrations / "0002_broken.sql").write_text("CREATE TABLE broken (;\n")
    db = str(tmp_path / "t.db")

    with pytest.raises(RuntimeError, match="0002_broken.sql"):
        SQLiteMigrator(db, str(migrations)).run_migrations()

    conn = sqlite3.connect(db)
    recorded = [r[0] for r in conn.execute("SELECT filename FROM _migrations")]
    conn.close()
    assert recorded == ["0001_ok.sql"]
