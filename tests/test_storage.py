import io
import re

import pytest

from fileshare.errors import InvalidIdentifier, NoFileProvided, NotFound, SizeLimitExceeded, StorageUnavailable
from fileshare.storage import FileStore, generate_file_id


@pytest.fixture
def store(tmp_path):
    return FileStore.open(tmp_path / "uploads")


def put(store, content=b"payload", name="photo.jpg", mimetype="image/jpeg", max_size_bytes=1024):
    return store.put(
        source=io.BytesIO(content),
        original_name=name,
        mimetype=mimetype,
        max_size_bytes=max_size_bytes,
    )


def test_open_creates_root(tmp_path):
    root = tmp_path / "nested" / "uploads"
    FileStore.open(root)
    assert root.is_dir()


def test_generate_file_id_keeps_original_extension():
    assert re.fullmatch(r"\d{13}-\d+\.gz", generate_file_id("archive.tar.gz"))
    assert re.fullmatch(r"\d{13}-\d+", generate_file_id("README"))


def test_put_writes_file_and_reports_metadata(store):
    stored = put(store)
    assert stored.original_name == "photo.jpg"
    assert stored.mimetype == "image/jpeg"
    assert stored.size == 7
    assert (store.root / stored.id).read_bytes() == b"payload"


def test_put_defaults_mimetype(store):
    assert put(store, mimetype=None).mimetype == "application/octet-stream"


def test_put_without_file(store):
    with pytest.raises(NoFileProvided):
        store.put(source=None, original_name=None, mimetype=None, max_size_bytes=1024)
    with pytest.raises(NoFileProvided):
        store.put(source=io.BytesIO(b"x"), original_name="", mimetype=None, max_size_bytes=1024)


def test_put_over_limit_removes_partial_file(store):
    with pytest.raises(SizeLimitExceeded):
        put(store, content=b"x" * 2048, max_size_bytes=1024)
    assert list(store.root.iterdir()) == []


def test_put_at_limit_is_accepted(store):
    assert put(store, content=b"x" * 1024, max_size_bytes=1024).size == 1024


def test_list_and_stat_match(store):
    first = put(store, b"one")
    second = put(store, b"second")
    (store.root / "subdir").mkdir()

    listed = {info.id: info for info in store.list()}
    assert set(listed) == {first.id, second.id}
    assert listed[second.id].size == 6
    assert store.stat(first.id) == listed[first.id]


def test_get_returns_path_inside_root(store):
    stored = put(store)
    path = store.get(stored.id)
    assert path.read_bytes() == b"payload"
    assert path.parent == store.root.resolve()


def test_delete_then_lookups_fail(store):
    stored = put(store)
    store.delete(stored.id)
    with pytest.raises(NotFound):
        store.stat(stored.id)
    with pytest.raises(NotFound):
        store.get(stored.id)
    with pytest.raises(NotFound):
        store.delete(stored.id)


def test_directory_is_not_a_file(store):
    (store.root / "subdir").mkdir()
    with pytest.raises(NotFound):
        store.get("subdir")


@pytest.mark.parametrize("file_id", ["", ".", "..", "../secret.txt", "sub/file.txt", "/etc/passwd"])
def test_resolve_rejects_ids_outside_root(store, file_id):
    with pytest.raises(InvalidIdentifier):
        store.resolve(file_id)


def test_traversal_never_touches_outside_files(store, tmp_path):
    outside = tmp_path / "outside.txt"
    outside.write_text("keep me")
    with pytest.raises(InvalidIdentifier):
        store.delete("../outside.txt")
    assert outside.exists()


def test_resolve_rejects_nul_byte(store):
    with pytest.raises(InvalidIdentifier):
        store.resolve("a\x00b")


def test_overlong_id_is_not_found(store):
    with pytest.raises(NotFound):
        store.get("a" * 300)
    with pytest.raises(NotFound):
        store.delete("a" * 300)


def test_put_write_failure_is_storage_error(store):
    with pytest.raises(StorageUnavailable):
        put(store, name="x." + "e" * 300)
    assert list(store.root.iterdir()) == []
