"""
Ownership policy for the storage bucket.

The same predicate is evaluated by the backend on every storage call (as
row-level security on storage.objects) and by the local bucket emulation.
An object key is accessible iff its first "/"-delimited segment equals the
caller's identifier. Only insert, select and delete are granted; there is
no update rule, so rename/update is always denied.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from parts_gallery.domain.entities import StorageAction


@dataclass(frozen=True)
class PolicyRule:
    name: str
    action: StorageAction
    clause: str  # USING for select/delete, WITH CHECK for insert


DEFAULT_RULES: tuple[PolicyRule, ...] = (
    PolicyRule("Users can upload files to own folder", "insert", "WITH CHECK"),
    PolicyRule("Users can view own files", "select", "USING"),
    PolicyRule("Users can delete own files", "delete", "USING"),
)


def first_segment(path: str) -> str:
    """
    Top-level folder of an object key, like storage.foldername(name)[1].

    Keys at the bucket root have no folder and yield "".
    """
    head, sep, _ = path.lstrip("/").partition("/")
    return head if sep else ""


class OwnershipPolicy:
    def __init__(self, bucket: str, rules: Iterable[PolicyRule] = DEFAULT_RULES):
        self.bucket = bucket
        self.rules = tuple(rules)

    @property
    def allowed_actions(self) -> frozenset[str]:
        return frozenset(rule.action for rule in self.rules)

    def check(
        self,
        principal_id: str | None,
        bucket: str,
        path: str,
        action: StorageAction,
    ) -> bool:
        """
        Evaluate the policy for one object key.

        Anonymous callers and other buckets are always denied.
        """
        if not principal_id:
            return False
        if bucket != self.bucket:
            return False
        if action not in self.allowed_actions:
            return False
        return first_segment(path) == principal_id

    def check_all(
        self,
        principal_id: str | None,
        paths: Iterable[str],
        action: StorageAction,
    ) -> dict[str, bool]:
        return {p: self.check(principal_id, self.bucket, p, action) for p in paths}

    def to_sql(self) -> str:
        """Render the rule set as Postgres row-level security statements."""
        statements = [
            "-- Enable RLS",
            "ALTER TABLE storage.objects ENABLE ROW LEVEL SECURITY;",
        ]
        predicate = (
            f"  bucket_id = '{self.bucket}' AND\n"
            "  (storage.foldername(name))[1] = auth.uid()::text"
        )
        for rule in self.rules:
            statements.append(
                f'\nCREATE POLICY "{rule.name}"\n'
                "ON storage.objects\n"
                f"FOR {rule.action.upper()}\n"
                "TO authenticated\n"
                f"{rule.clause} (\n{predicate}\n);"
            )
        return "\n".join(statements) + "\n"
