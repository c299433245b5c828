import json
import sqlite3
from datetime import datetime
from typing import Any
from uuid import UUID

from parts_gallery.core.ports.db import RepoError
from parts_gallery.domain.entities import PartCategory, PartRecord, SavedItem


# Helper to convert sqlite rows to dicts
def dict_factory(cursor: sqlite3.Cursor, row: Any) -> dict[str, Any]:
    d = {}
    for idx, col in enumerate(cursor.description):
        d[col[0]] = row[idx]
    return d


class _SQLiteRepo:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def _get_conn(self) -> sqlite3.Connection:
        try:
            conn = sqlite3.connect(self.db_path)
        except sqlite3.Error as e:
            raise RepoError(f"Cannot open database {self.db_path}: {e}") from e
        conn.row_factory = dict_factory
        conn.execute("PRAGMA foreign_keys = ON;")
        return conn


class SQLitePartRepo(_SQLiteRepo):
    def _row_to_part(self, row: dict[str, Any]) -> PartRecord:
        return PartRecord(
            id=UUID(row["id"]),
            part_slug=row["part_slug"],
            name=row["name"],
            make=row["make"],
            model=row["model"],
            condition=row["condition"],
            price=row["price"],
            stock=row["stock"],
            category_id=UUID(row["category_id"]) if row["category_id"] else None,
            features=json.loads(row["features_json"]),
            compatible_models=json.loads(row["compatible_models_json"]),
            compatible_years=json.loads(row["compatible_years_json"]),
            weight=row["weight"],
            dimensions=row["dimensions"],
            material=row["material"],
            warranty=row["warranty"],
            main_image_url=row["main_image_url"],
            owner_user_id=row["owner_user_id"],
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )

    def get_by_slug(self, part_slug: str) -> PartRecord | None:
        conn = self._get_conn()
        try:
            row = conn.execute(
                "SELECT * FROM vehicle_parts WHERE part_slug = ?", (part_slug,)
            ).fetchone()
            return self._row_to_part(row) if row else None
        except sqlite3.Error as e:
            raise RepoError(f"Cannot read part {part_slug}: {e}") from e
        finally:
            conn.close()

    def get_by_id(self, part_id: UUID) -> PartRecord | None:
        conn = self._get_conn()
        try:
            row = conn.execute(
                "SELECT * FROM vehicle_parts WHERE id = ?", (str(part_id),)
            ).fetchone()
            return self._row_to_part(row) if row else None
        except sqlite3.Error as e:
            raise RepoError(f"Cannot read part {part_id}: {e}") from e
        finally:
            conn.close()

    def upsert(self, part: PartRecord) -> PartRecord:
        # id, created_at and main_image_url of an existing row are kept
        conn = self._get_conn()
        try:
            conn.execute(
                """
                INSERT INTO vehicle_parts (
                    id, part_slug, name, make, model, condition, price, stock,
                    category_id, features_json, compatible_models_json,
                    compatible_years_json, weight, dimensions, material, warranty,
                    main_image_url, owner_user_id, created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(part_slug) DO UPDATE SET
                    name=excluded.name,
                    make=excluded.make,
                    model=excluded.model,
                    condition=excluded.condition,
                    price=excluded.price,
                    stock=excluded.stock,
                    category_id=excluded.category_id,
                    features_json=excluded.features_json,
                    compatible_models_json=excluded.compatible_models_json,
                    compatible_years_json=excluded.compatible_years_json,
                    weight=excluded.weight,
                    dimensions=excluded.dimensions,
                    material=excluded.material,
                    warranty=excluded.warranty,
                    owner_user_id=excluded.owner_user_id,
                    updated_at=excluded.updated_at
            """,
                (
                    str(part.id),
                    part.part_slug,
                    part.name,
                    part.make,
                    part.model,
                    part.condition,
                    part.price,
                    part.stock,
                    str(part.category_id) if part.category_id else None,
                    json.dumps(part.features),
                    json.dumps(part.compatible_models),
                    json.dumps(part.compatible_years),
                    part.weight,
                    part.dimensions,
                    part.material,
                    part.warranty,
                    part.main_image_url,
                    part.owner_user_id,
                    part.created_at.isoformat(),
                    part.updated_at.isoformat(),
                ),
            )
            conn.commit()
            row = conn.execute(
                "SELECT * FROM vehicle_parts WHERE part_slug = ?", (part.part_slug,)
            ).fetchone()
            return self._row_to_part(row)
        except sqlite3.Error as e:
            conn.rollback()
            raise RepoError(f"Cannot save part {part.part_slug}: {e}") from e
        finally:
            conn.close()

    def set_main_image_url(self, part_slug: str, url: str | None, owner_id: str) -> bool:
        conn = self._get_conn()
        try:
            cursor = conn.execute(
                "UPDATE vehicle_parts SET main_image_url = ? "
                "WHERE part_slug = ? AND owner_user_id = ?",
                (url, part_slug, owner_id),
            )
            conn.commit()
            return cursor.rowcount > 0
        except sqlite3.Error as e:
            conn.rollback()
            raise RepoError(f"Cannot update main image of {part_slug}: {e}") from e
        finally:
            conn.close()


class SQLiteCategoryRepo(_SQLiteRepo):
    def list_all(self) -> list[PartCategory]:
        conn = self._get_conn()
        try:
            rows = conn.execute("SELECT * FROM part_categories ORDER BY name ASC").fetchall()
            return [
                PartCategory(id=UUID(r["id"]), name=r["name"], description=r["description"])
                for r in rows
            ]
        except sqlite3.Error as e:
            raise RepoError(f"Cannot list categories: {e}") from e
        finally:
            conn.close()


class SQLiteSavedItemRepo(_SQLiteRepo):
    def add(self, item: SavedItem) -> SavedItem:
        conn = self._get_conn()
        try:
            conn.execute(
                """
                INSERT INTO saved_items (id, user_id, part_id, created_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(user_id, part_id) DO NOTHING
            """,
                (str(item.id), item.user_id, str(item.part_id), item.created_at.isoformat()),
            )
            conn.commit()
            row = conn.execute(
                "SELECT * FROM saved_items WHERE user_id = ? AND part_id = ?",
                (item.user_id, str(item.part_id)),
            ).fetchone()
            return self._row_to_item(row)
        except sqlite3.Error as e:
            conn.rollback()
            raise RepoError(f"Cannot save item {item.part_id}: {e}") from e
        finally:
            conn.close()

    def delete(self, user_id: str, part_id: UUID) -> bool:
        conn = self._get_conn()
        try:
            cursor = conn.execute(
                "DELETE FROM saved_items WHERE user_id = ? AND part_id = ?",
                (user_id, str(part_id)),
            )
            conn.commit()
            return cursor.rowcount > 0
        except sqlite3.Error as e:
            conn.rollback()
            raise RepoError(f"Cannot remove saved item {part_id}: {e}") from e
        finally:
            conn.close()

    def list_for_user(self, user_id: str) -> list[SavedItem]:
        conn = self._get_conn()
        try:
            rows = conn.execute(
                "SELECT * FROM saved_items WHERE user_id = ? ORDER BY created_at DESC",
                (user_id,),
            ).fetchall()
            return [self._row_to_item(r) for r in rows]
        except sqlite3.Error as e:
            raise RepoError(f"Cannot list saved items: {e}") from e
        finally:
            conn.close()

    def _row_to_item(self, row: dict[str, Any]) -> SavedItem:
        return SavedItem(
            id=UUID(row["id"]),
            user_id=row["user_id"],
            part_id=UUID(row["part_id"]),
            created_at=datetime.fromisoformat(row["created_at"]),
        )
