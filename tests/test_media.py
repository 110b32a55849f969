from __future__ import annotations

import io
from types import SimpleNamespace

import pytest

from dental_clinic.errors import InvalidRequest
from dental_clinic.media import MediaStore


def _upload(name: str = "foto.png", content_type: str = "image/png", data: bytes = b"\x89PNG..."):
    return SimpleNamespace(filename=name, content_type=content_type, file=io.BytesIO(data))


@pytest.fixture
def store(tmp_path) -> MediaStore:
    return MediaStore(tmp_path / "uploads", max_bytes=64)


class TestStore:
    def test_returns_public_path_with_original_name(self, store):
        path = store.store(_upload("sorriso.png"))

        assert path.startswith("/uploads/")
        name = path.rsplit("/", 1)[1]
        millis, rand, original = name.split("-", 2)
        assert millis.isdigit() and rand.isdigit()
        assert original == "sorriso.png"
        assert (store.root / name).read_bytes() == b"\x89PNG..."

    def test_directory_part_of_filename_is_dropped(self, store):
        path = store.store(_upload("../../etc/foto.png"))

        assert path.endswith("-foto.png")
        assert list(store.root.iterdir()) == [store.root / path.rsplit("/", 1)[1]]

    def test_rejects_non_image(self, store):
        with pytest.raises(InvalidRequest):
            store.store(_upload("doc.pdf", "application/pdf"))

        assert list(store.root.iterdir()) == []

    def test_rejects_oversized_file(self, store):
        with pytest.raises(InvalidRequest):
            store.store(_upload(data=b"x" * 65))

    def test_store_many_validates_everything_first(self, store):
        uploads = [_upload("a.png"), _upload("b.txt", "text/plain")]

        with pytest.raises(InvalidRequest):
            store.store_many(uploads)

        assert list(store.root.iterdir()) == []


class TestRemove:
    def test_remove_is_idempotent(self, store):
        path = store.store(_upload())

        assert store.remove(path) is True
        assert store.remove(path) is False

    def test_ignores_empty_and_foreign_paths(self, store, tmp_path):
        outside = tmp_path / "keep.txt"
        outside.write_text("x")

        assert store.remove(None) is False
        assert store.remove("") is False
        assert store.remove(str(outside)) is False
        assert outside.exists()

    def test_traversal_resolves_to_basename(self, store, tmp_path):
        outside = tmp_path / "secret.png"
        outside.write_text("x")

        assert store.remove("/uploads/../secret.png") is False
        assert outside.exists()
