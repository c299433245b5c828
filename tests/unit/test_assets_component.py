"""
Assets component against the local bucket.

Covers the upload pipeline, view slots, listing with stale snapshots,
batch removal and folder setup.
"""

from __future__ import annotations

from typing import Any
from unittest.mock import Mock

from parts_gallery.adapters.local_storage import LocalBucketStorage
from parts_gallery.components.assets import (
    DeleteImagesInput,
    EnsureFoldersInput,
    GalleryConfig,
    GallerySnapshots,
    ListImagesInput,
    StoragePort,
    UploadImageInput,
    run_delete,
    run_ensure_folders,
    run_list,
    run_upload,
)
from parts_gallery.components.auth import AuthStateHub
from parts_gallery.core.ports.db import RepoError
from parts_gallery.core.ports.storage import StorageUnavailableError
from parts_gallery.domain.entities import Principal, SessionContext

PNG = b"\x89PNG\r\n\x1a\n" + b"\x01" * 16
JPG = b"\xff\xd8\xff\xe0" + b"\x02" * 16


# --- Fakes ---


class FakePartRepo:
    """Only the main image cache of the part repo."""

    def __init__(self, owners: dict[str, str] | None = None) -> None:
        self.owners = dict(owners or {})
        self.urls: dict[str, str | None] = {slug: None for slug in self.owners}
        self.calls: list[tuple[str, str | None]] = []

    def set_main_image_url(self, part_slug: str, url: str | None, owner_id: str) -> bool:
        self.calls.append((part_slug, url))
        if self.owners.get(part_slug) != owner_id:
            return False
        self.urls[part_slug] = url
        return True


class BrokenPartRepo:
    def set_main_image_url(self, part_slug: str, url: str | None, owner_id: str) -> bool:
        raise RepoError("database is locked")


class FlakyStorage:
    """Delegates to a real storage, failing uploads whose path contains a marker."""

    def __init__(self, inner: LocalBucketStorage, fail_marker: str) -> None:
        self.inner = inner
        self.bucket = inner.bucket
        self.fail_marker = fail_marker

    def upload(self, path: str, data: Any, *, content_type: str, upsert: bool = False) -> str:
        if self.fail_marker in path:
            raise StorageUnavailableError(f"connection reset while writing {path}")
        return self.inner.upload(path, data, content_type=content_type, upsert=upsert)

    def list(self, prefix: str, **kwargs: Any) -> Any:
        return self.inner.list(prefix, **kwargs)


# --- Helpers ---


def upload(session: SessionContext, storage: Any, filename: str = "photo.png", **kwargs: Any):
    kwargs.setdefault("data", PNG)
    kwargs.setdefault("content_type", "image/png")
    return run_upload(
        UploadImageInput(session=session, filename=filename, **kwargs),
        storage=storage,
    )


class TestUpload:
    def test_unscoped_upload(self, alice_session: SessionContext, alice_storage: LocalBucketStorage) -> None:
        result = upload(alice_session, alice_storage)

        assert result.success
        assert result.path.startswith(f"{alice_session.folder_key}/")
        assert result.path.endswith(".png")
        assert result.public_url == alice_storage.get_public_url(result.path)
        assert alice_storage.download(result.path) == PNG

    def test_unscoped_uploads_never_overwrite(
        self, alice_session: SessionContext, alice_storage: LocalBucketStorage
    ) -> None:
        first = upload(alice_session, alice_storage)
        second = upload(alice_session, alice_storage)
        assert first.path != second.path
        assert len(alice_storage.list(alice_session.folder_key)) == 2

    def test_validation_failure_never_reaches_storage(self, alice_session: SessionContext) -> None:
        storage = Mock(spec=StoragePort)
        result = upload(alice_session, storage, filename="virus.exe", content_type="application/x-msdownload")

        assert not result.success
        assert [e.code for e in result.errors] == ["invalid_mime_type", "invalid_extension"]
        assert all(e.kind == "validation_failed" for e in result.errors)
        storage.upload.assert_not_called()

    def test_oversized_rejected(self, alice_session: SessionContext) -> None:
        storage = Mock(spec=StoragePort)
        result = upload(alice_session, storage, data=b"x" * (5 * 1024 * 1024 + 1))
        assert [e.code for e in result.errors] == ["file_too_large"]
        storage.upload.assert_not_called()

    def test_declared_size_is_checked(self, alice_session: SessionContext) -> None:
        storage = Mock(spec=StoragePort)
        result = upload(alice_session, storage, size=6 * 1024 * 1024)
        assert [e.code for e in result.errors] == ["file_too_large"]

    def test_invalid_view_type(self, alice_session: SessionContext) -> None:
        storage = Mock(spec=StoragePort)
        result = upload(alice_session, storage, view_type="underside")
        assert [e.code for e in result.errors] == ["invalid_view_type"]
        storage.upload.assert_not_called()

    def test_empty_folder_key_rejected(self, alice: Principal) -> None:
        storage = Mock(spec=StoragePort)
        session = SessionContext(principal=alice, access_token="t", folder_key="")
        result = upload(session, storage)

        assert not result.success
        assert result.errors[0].kind == "validation_failed"
        assert result.errors[0].code == "empty_folder_key"
        storage.upload.assert_not_called()

    def test_policy_rejection_is_forbidden(
        self, alice: Principal, bob: Principal, alice_storage: LocalBucketStorage
    ) -> None:
        # folder key that does not match the principal, as a slug collision would produce
        session = SessionContext(principal=alice, access_token="t", folder_key=bob.id)
        result = upload(session, alice_storage)

        assert not result.success
        assert result.errors[0].kind == "forbidden"

    def test_transport_failure(self, alice_session: SessionContext) -> None:
        storage = Mock(spec=StoragePort)
        storage.upload.side_effect = StorageUnavailableError("connection refused")
        result = upload(alice_session, storage)

        assert not result.success
        assert result.errors[0].kind == "storage_unavailable"
        assert result.public_url == ""


class TestViewSlots:
    def test_second_upload_replaces_first(
        self, alice_session: SessionContext, alice_storage: LocalBucketStorage
    ) -> None:
        first = upload(alice_session, alice_storage, view_type="front", data=b"first")
        second = upload(alice_session, alice_storage, view_type="front", data=b"second")

        assert first.path == second.path == f"{alice_session.folder_key}/front_jpg/front.png"
        slot = alice_storage.list(f"{alice_session.folder_key}/front_jpg")
        assert [o.name for o in slot] == ["front.png"]
        assert alice_storage.download(second.path) == b"second"

    def test_other_extension_removed(
        self, alice_session: SessionContext, alice_storage: LocalBucketStorage
    ) -> None:
        first = upload(alice_session, alice_storage, view_type="back")
        second = upload(
            alice_session, alice_storage, "back.jpg", view_type="back", data=JPG, content_type="image/jpeg"
        )

        assert second.success
        assert second.replaced == [first.path]
        slot = alice_storage.list(f"{alice_session.folder_key}/back_jpg")
        assert [o.name for o in slot] == ["back.jpg"]

    def test_placeholder_kept(self, alice_session: SessionContext, alice_storage: LocalBucketStorage) -> None:
        run_ensure_folders(EnsureFoldersInput(session=alice_session), storage=alice_storage)
        upload(alice_session, alice_storage, view_type="top")

        names = {o.name for o in alice_storage.list(f"{alice_session.folder_key}/top_jpg")}
        assert names == {".emptyFolderPlaceholder", "top.png"}


class TestMainImageCache:
    def test_main_upload_sets_url(
        self, alice_session: SessionContext, alice_storage: LocalBucketStorage
    ) -> None:
        parts = FakePartRepo({"brake-pad": alice_session.principal.id})
        result = run_upload(
            UploadImageInput(
                session=alice_session,
                filename="main.png",
                content_type="image/png",
                data=PNG,
                view_type="main",
                part_slug="brake-pad",
            ),
            storage=alice_storage,
            parts=parts,
        )

        assert result.success
        assert result.path == f"{alice_session.folder_key}/brake-pad/main_jpg/main.png"
        assert parts.urls["brake-pad"] == result.public_url

    def test_other_views_leave_url_alone(
        self, alice_session: SessionContext, alice_storage: LocalBucketStorage
    ) -> None:
        parts = FakePartRepo({"brake-pad": alice_session.principal.id})
        run_upload(
            UploadImageInput(
                session=alice_session,
                filename="left.png",
                content_type="image/png",
                data=PNG,
                view_type="left",
                part_slug="brake-pad",
            ),
            storage=alice_storage,
            parts=parts,
        )
        assert parts.calls == []

    def test_deleting_main_clears_url(
        self, alice_session: SessionContext, alice_storage: LocalBucketStorage
    ) -> None:
        parts = FakePartRepo({"brake-pad": alice_session.principal.id})
        uploaded = run_upload(
            UploadImageInput(
                session=alice_session,
                filename="main.png",
                content_type="image/png",
                data=PNG,
                view_type="main",
                part_slug="brake-pad",
            ),
            storage=alice_storage,
            parts=parts,
        )

        result = run_delete(
            DeleteImagesInput(session=alice_session, paths=[uploaded.path], part_slug="brake-pad"),
            storage=alice_storage,
            parts=parts,
        )

        assert result.success
        assert parts.urls["brake-pad"] is None
        assert parts.calls[-1] == ("brake-pad", None)

    def test_cache_failure_is_reported(
        self, alice_session: SessionContext, alice_storage: LocalBucketStorage
    ) -> None:
        result = run_upload(
            UploadImageInput(
                session=alice_session,
                filename="main.png",
                content_type="image/png",
                data=PNG,
                view_type="main",
                part_slug="brake-pad",
            ),
            storage=alice_storage,
            parts=BrokenPartRepo(),
        )

        assert not result.success
        assert result.public_url
        assert [e.code for e in result.errors] == ["main_image_update_failed"]

    def test_unknown_part_is_not_an_error(
        self, alice_session: SessionContext, alice_storage: LocalBucketStorage
    ) -> None:
        parts = FakePartRepo()
        result = run_upload(
            UploadImageInput(
                session=alice_session,
                filename="main.png",
                content_type="image/png",
                data=PNG,
                view_type="main",
                part_slug="no-record-yet",
            ),
            storage=alice_storage,
            parts=parts,
        )
        assert result.success
        assert parts.calls == [("no-record-yet", result.public_url)]

    def test_display_name_slug_hits_stored_record(
        self, alice_session: SessionContext, alice_storage: LocalBucketStorage
    ) -> None:
        parts = FakePartRepo({"my-part": alice_session.principal.id})
        uploaded = run_upload(
            UploadImageInput(
                session=alice_session,
                filename="main.png",
                content_type="image/png",
                data=PNG,
                view_type="main",
                part_slug="My Part",
            ),
            storage=alice_storage,
            parts=parts,
        )

        assert uploaded.path == f"{alice_session.folder_key}/my-part/main_jpg/main.png"
        assert parts.urls["my-part"] == uploaded.public_url

        run_delete(
            DeleteImagesInput(session=alice_session, paths=[uploaded.path], part_slug="My Part"),
            storage=alice_storage,
            parts=parts,
        )
        assert parts.urls["my-part"] is None

    def test_other_owners_part_is_untouched(
        self,
        alice_session: SessionContext,
        bob_session: SessionContext,
        bob_storage: LocalBucketStorage,
    ) -> None:
        parts = FakePartRepo({"brake-pad": alice_session.principal.id})
        parts.urls["brake-pad"] = "https://cdn/alice-main.png"

        result = run_upload(
            UploadImageInput(
                session=bob_session,
                filename="main.png",
                content_type="image/png",
                data=PNG,
                view_type="main",
                part_slug="brake-pad",
            ),
            storage=bob_storage,
            parts=parts,
        )

        # the image lands in bob's folder and alice's record is unchanged
        assert result.success
        assert result.path.startswith(f"{bob_session.folder_key}/brake-pad/")
        assert parts.urls["brake-pad"] == "https://cdn/alice-main.png"


class TestList:
    def test_lists_images_and_view_slots(
        self, alice_session: SessionContext, alice_storage: LocalBucketStorage
    ) -> None:
        run_ensure_folders(EnsureFoldersInput(session=alice_session), storage=alice_storage)
        loose = upload(alice_session, alice_storage)
        main = upload(alice_session, alice_storage, view_type="main")

        result = run_list(ListImagesInput(session=alice_session), storage=alice_storage)

        assert result.success
        assert result.folder == alice_session.folder_key
        assert {i.path for i in result.items} == {loose.path, main.path}
        assert all(i.public_url == alice_storage.get_public_url(i.path) for i in result.items)

    def test_single_view(self, alice_session: SessionContext, alice_storage: LocalBucketStorage) -> None:
        upload(alice_session, alice_storage)
        front = upload(alice_session, alice_storage, view_type="front")

        result = run_list(
            ListImagesInput(session=alice_session, view_type="front"), storage=alice_storage
        )
        assert [i.path for i in result.items] == [front.path]

    def test_part_folder(self, alice_session: SessionContext, alice_storage: LocalBucketStorage) -> None:
        upload(alice_session, alice_storage)
        part_image = upload(alice_session, alice_storage, part_slug="Oil Filter")

        result = run_list(
            ListImagesInput(session=alice_session, part_slug="Oil Filter"), storage=alice_storage
        )
        assert result.folder == f"{alice_session.folder_key}/oil-filter"
        assert [i.path for i in result.items] == [part_image.path]

    def test_other_principal_folder_forbidden(
        self, alice: Principal, bob: Principal, alice_storage: LocalBucketStorage
    ) -> None:
        session = SessionContext(principal=alice, access_token="t", folder_key=bob.id)
        result = run_list(ListImagesInput(session=session), storage=alice_storage)
        assert not result.success
        assert result.errors[0].kind == "forbidden"

    def test_failure_without_snapshot(self, alice_session: SessionContext) -> None:
        storage = Mock(spec=StoragePort)
        storage.list.side_effect = StorageUnavailableError("timeout")

        result = run_list(
            ListImagesInput(session=alice_session), storage=storage, snapshots=GallerySnapshots()
        )
        assert not result.success
        assert result.errors[0].kind == "storage_unavailable"

    def test_failure_serves_stale_snapshot(
        self, alice_session: SessionContext, alice_storage: LocalBucketStorage
    ) -> None:
        snapshots = GallerySnapshots()
        uploaded = upload(alice_session, alice_storage)
        fresh = run_list(ListImagesInput(session=alice_session), storage=alice_storage, snapshots=snapshots)
        assert not fresh.stale

        broken = Mock(spec=StoragePort)
        broken.list.side_effect = StorageUnavailableError("timeout")
        result = run_list(ListImagesInput(session=alice_session), storage=broken, snapshots=snapshots)

        assert result.success
        assert result.stale
        assert [i.path for i in result.items] == [uploaded.path]


class TestDelete:
    def test_delete_by_name(self, alice_session: SessionContext, alice_storage: LocalBucketStorage) -> None:
        uploaded = upload(alice_session, alice_storage)
        name = uploaded.path.rsplit("/", 1)[1]

        result = run_delete(DeleteImagesInput(session=alice_session, names=[name]), storage=alice_storage)

        assert result.success
        assert result.deleted == [uploaded.path]
        assert run_list(ListImagesInput(session=alice_session), storage=alice_storage).items == []

    def test_partial_failure(
        self,
        alice_session: SessionContext,
        bob_session: SessionContext,
        alice_storage: LocalBucketStorage,
        bob_storage: LocalBucketStorage,
    ) -> None:
        mine = f"{alice_session.folder_key}/1.png"
        theirs = f"{bob_session.folder_key}/1.png"
        alice_storage.upload(mine, PNG, content_type="image/png")
        bob_storage.upload(theirs, PNG, content_type="image/png")

        result = run_delete(
            DeleteImagesInput(session=alice_session, paths=[mine, theirs]), storage=alice_storage
        )

        assert not result.success
        assert result.deleted == [mine]
        assert result.failed == {theirs: "forbidden"}
        assert result.errors[0].kind == "partial_failure"
        assert result.errors[1].path == theirs
        assert result.errors[1].kind == "forbidden"

    def test_all_forbidden_is_not_partial(
        self, alice_session: SessionContext, bob_session: SessionContext,
        alice_storage: LocalBucketStorage, bob_storage: LocalBucketStorage,
    ) -> None:
        theirs = f"{bob_session.folder_key}/1.png"
        bob_storage.upload(theirs, PNG, content_type="image/png")

        result = run_delete(DeleteImagesInput(session=alice_session, paths=[theirs]), storage=alice_storage)

        assert result.deleted == []
        assert [e.kind for e in result.errors] == ["forbidden"]

    def test_nothing_selected(self, alice_session: SessionContext) -> None:
        storage = Mock(spec=StoragePort)
        result = run_delete(DeleteImagesInput(session=alice_session), storage=storage)
        assert [e.code for e in result.errors] == ["no_paths"]
        storage.remove.assert_not_called()


class TestEnsureFolders:
    def test_creates_one_placeholder_per_view(
        self, alice_session: SessionContext, alice_storage: LocalBucketStorage, config: GalleryConfig
    ) -> None:
        result = run_ensure_folders(
            EnsureFoldersInput(session=alice_session, part_slug="gearbox"),
            storage=alice_storage,
            config=config,
        )

        assert result.success
        assert sorted(result.ensured) == sorted(config.view_types)
        folders = alice_storage.list(result.folder)
        assert sorted(o.name for o in folders) == sorted(f"{v}_jpg" for v in config.view_types)

    def test_idempotent(self, alice_session: SessionContext, alice_storage: LocalBucketStorage) -> None:
        first = run_ensure_folders(EnsureFoldersInput(session=alice_session), storage=alice_storage)
        second = run_ensure_folders(EnsureFoldersInput(session=alice_session), storage=alice_storage)
        assert first.success and second.success
        assert len(alice_storage.list(f"{alice_session.folder_key}/main_jpg")) == 1

    def test_placeholders_not_listed_as_images(
        self, alice_session: SessionContext, alice_storage: LocalBucketStorage
    ) -> None:
        run_ensure_folders(EnsureFoldersInput(session=alice_session), storage=alice_storage)
        assert run_list(ListImagesInput(session=alice_session), storage=alice_storage).items == []

    def test_failures_are_aggregated(
        self, alice_session: SessionContext, alice_storage: LocalBucketStorage
    ) -> None:
        storage = FlakyStorage(alice_storage, fail_marker="back_jpg")
        result = run_ensure_folders(EnsureFoldersInput(session=alice_session), storage=storage)

        assert not result.success
        assert set(result.failed) == {"back"}
        assert result.failed["back"].kind == "storage_unavailable"
        assert len(result.ensured) == 5
        assert result.errors[0].kind == "partial_failure"

    def test_all_failing(self, alice_session: SessionContext) -> None:
        storage = Mock(spec=StoragePort)
        storage.upload.side_effect = StorageUnavailableError("down")
        result = run_ensure_folders(EnsureFoldersInput(session=alice_session), storage=storage)

        assert result.ensured == []
        assert len(result.failed) == 6
        assert result.errors[0].kind == "storage_unavailable"


class TestSnapshots:
    def test_sign_out_drops_principal_snapshots(
        self, alice_session: SessionContext, bob_session: SessionContext
    ) -> None:
        snapshots = GallerySnapshots()
        snapshots.put(alice_session.principal.id, "a", [])
        snapshots.put(alice_session.principal.id, "a/part", [])
        snapshots.put(bob_session.principal.id, "b", [])

        hub = AuthStateHub()
        hub.subscribe(snapshots.on_auth_event)
        hub.publish("SIGNED_OUT", alice_session)

        assert snapshots.get(alice_session.principal.id, "a") is None
        assert snapshots.get(bob_session.principal.id, "b") == []
        assert len(snapshots) == 1

    def test_sign_in_keeps_snapshots(self, alice_session: SessionContext) -> None:
        snapshots = GallerySnapshots()
        snapshots.put(alice_session.principal.id, "a", [])
        snapshots.on_auth_event("SIGNED_IN", alice_session)
        assert len(snapshots) == 1
