import json

import pytest

from library import Library
from storage import open_document

SEED_BOOKS = [
    {"id": "1", "title": "A", "price": 9.99, "pages": 100, "genres": ["sci-fi"]},
]


@pytest.fixture
def data_file(tmp_path):
    # Each test gets its own document seeded with one book
    path = tmp_path / "books.json"
    path.write_text(json.dumps(SEED_BOOKS, indent=4), encoding="utf-8")
    return path


@pytest.fixture
def lib(data_file):
    lib = Library(open_document(str(data_file)))
    yield lib
    lib.close()
