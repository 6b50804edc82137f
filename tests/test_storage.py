import io
import json
import math
import os
import stat

import pytest

from book import Book
from storage import (
    DecodeError,
    EncodeError,
    JsonDocument,
    StorageIOError,
    decode_books,
    encode_books,
    initialize_storage,
    open_document,
)


def test_load_all_reads_from_start_each_time(data_file):
    with open_document(str(data_file)) as doc:
        first = doc.load_all()
        second = doc.load_all()
    assert first == second
    assert first[0].id == "1"
    assert first[0].genres == ["sci-fi"]


def test_save_all_writes_indented_document(data_file):
    books = [Book(id="x", title="T", pages=3, price=1.5, genres=["g"])]
    with open_document(str(data_file)) as doc:
        doc.save_all(books)
        assert doc.load_all() == books

    text = data_file.read_text(encoding="utf-8")
    assert text == encode_books(books, indent=4)
    assert '\n    {\n        "id": "x"' in text


def test_save_all_discards_previous_content(data_file):
    long_books = [Book(id=str(i), title="x" * 50, pages=1, price=1, genres=["g"]) for i in range(10)]
    with open_document(str(data_file), atomic_writes=False) as doc:
        doc.save_all(long_books)
        doc.save_all([])
    assert json.loads(data_file.read_text(encoding="utf-8")) == []


def test_atomic_save_leaves_no_temporary_file(data_file, tmp_path):
    with open_document(str(data_file), atomic_writes=True) as doc:
        doc.save_all([Book(id="y", title="T", pages=3, price=2, genres=["g"])])
        # Handle is reopened on the replaced file
        assert doc.load_all()[0].id == "y"
    assert sorted(p.name for p in tmp_path.iterdir()) == ["books.json"]


def test_handle_without_path_uses_in_place_rewrite():
    handle = io.StringIO("[]")
    doc = JsonDocument(handle, atomic_writes=True)
    assert doc.path is None
    doc.save_all([Book(id="z", title="T", pages=1, price=1, genres=["g"])])
    assert json.loads(handle.getvalue())[0]["id"] == "z"


def test_empty_document_is_decode_error():
    doc = JsonDocument(io.StringIO(""))
    with pytest.raises(DecodeError):
        doc.load_all()


def test_null_document_is_empty_collection():
    assert decode_books("null") == []


@pytest.mark.parametrize(
    "raw",
    [
        "not json",
        "{}",
        "[1, 2]",
        '[{"id": 1}]',
        '[{"id": "1", "pages": "many"}]',
        '[{"id": "1", "price": true}]',
        '[{"id": "1", "genres": "sci-fi"}]',
        "[",
    ],
)
def test_malformed_documents(raw):
    with pytest.raises(DecodeError):
        decode_books(raw)


def test_missing_keys_decode_to_zero_values():
    (book,) = decode_books('[{"id": "1"}]')
    assert book.title == ""
    assert book.pages == 0
    assert book.price == 0.0
    assert book.genres == []


def test_encode_error_leaves_document_unchanged(data_file):
    before = data_file.read_text(encoding="utf-8")
    with open_document(str(data_file)) as doc:
        with pytest.raises(EncodeError):
            doc.save_all([Book(id="n", title="T", pages=1, price=math.nan, genres=["g"])])
    assert data_file.read_text(encoding="utf-8") == before


def test_closed_document_raises_io_error(data_file):
    doc = open_document(str(data_file))
    doc.close()
    with pytest.raises(StorageIOError):
        doc.load_all()
    with pytest.raises(StorageIOError):
        doc.save_all([])


def test_open_missing_document_raises_io_error(tmp_path):
    with pytest.raises(StorageIOError):
        open_document(str(tmp_path / "missing.json"))


def test_initialize_storage_creates_empty_document(tmp_path):
    path = tmp_path / "nested" / "books.json"
    initialize_storage(str(path))
    assert path.read_text(encoding="utf-8") == "[]"
    with open_document(str(path)) as doc:
        assert doc.load_all() == []


def test_initialize_storage_keeps_existing_document(data_file):
    before = data_file.read_text(encoding="utf-8")
    initialize_storage(str(data_file))
    assert data_file.read_text(encoding="utf-8") == before


def test_storage_errors_are_builtin_kinds():
    assert issubclass(DecodeError, ValueError)
    assert issubclass(EncodeError, ValueError)
    assert issubclass(StorageIOError, OSError)


def test_initialize_storage_under_regular_file_raises_io_error(tmp_path):
    blocker = tmp_path / "file.txt"
    blocker.write_text("not a directory", encoding="utf-8")
    with pytest.raises(StorageIOError):
        initialize_storage(str(blocker / "books.json"))


def test_atomic_save_keeps_file_mode(data_file):
    os.chmod(data_file, 0o640)
    with open_document(str(data_file), atomic_writes=True) as doc:
        doc.save_all([])
    assert stat.S_IMODE(os.stat(data_file).st_mode) == 0o640


def test_failed_reopen_is_retried_on_next_call(data_file, monkeypatch):
    import builtins
    import storage

    real_open = builtins.open
    calls = {"n": 0}

    def flaky_open(*args, **kwargs):
        calls["n"] += 1
        # 1st call writes the temporary file, 2nd reopens the document
        if calls["n"] == 2:
            raise PermissionError("reopen refused")
        return real_open(*args, **kwargs)

    with open_document(str(data_file), atomic_writes=True) as doc:
        monkeypatch.setattr(storage, "open", flaky_open, raising=False)
        with pytest.raises(StorageIOError):
            doc.save_all([Book(id="r", title="T", pages=1, price=1, genres=["g"])])
        monkeypatch.undo()

        # The replace itself succeeded, and the store recovers its handle
        assert [b.id for b in doc.load_all()] == ["r"]
