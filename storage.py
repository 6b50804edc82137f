"""JSON document storage for the book collection.

The whole collection lives in a single JSON file. ``JsonDocument`` owns the
open handle to that file and offers two primitives: ``load_all`` reads and
decodes the entire document, ``save_all`` encodes and overwrites it.
"""

import json
import logging
import os
import shutil
import threading
from pathlib import Path
from typing import List, Optional, TextIO

from book import Book
from config import settings

logger = logging.getLogger(__name__)

EMPTY_DOCUMENT = "[]"


class StorageError(Exception):
    """Base class for document storage failures."""


class DecodeError(StorageError, ValueError):
    """The document content is not a valid encoding of a book collection."""


class EncodeError(StorageError, ValueError):
    """The in-memory collection could not be serialized."""


class StorageIOError(StorageError, OSError):
    """The underlying file could not be read, repositioned or written."""


def decode_books(raw: str) -> List[Book]:
    """Decode a document into books, keeping document order."""
    if not raw:
        raise DecodeError("document is empty")
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise DecodeError(f"document is not valid JSON: {exc}") from exc

    if data is None:
        return []
    if not isinstance(data, list):
        raise DecodeError(f"document must hold a JSON array, got {type(data).__name__}")

    books: List[Book] = []
    for position, item in enumerate(data):
        if not isinstance(item, dict):
            raise DecodeError(f"entry {position} is not a JSON object")
        try:
            books.append(Book.from_dict(item))
        except TypeError as exc:
            raise DecodeError(f"entry {position}: {exc}") from exc
    return books


def encode_books(books: List[Book], indent: Optional[int] = None) -> str:
    """Encode books as an indented JSON array."""
    try:
        return json.dumps(
            [book.to_dict() for book in books],
            indent=settings.json_indent if indent is None else indent,
            ensure_ascii=False,
            allow_nan=False,
        )
    except (TypeError, ValueError) as exc:
        raise EncodeError(f"collection could not be serialized: {exc}") from exc


class JsonDocument:
    """Exclusive owner of the open document handle.

    Writes either truncate and rewrite the open handle in place, or, when the
    handle is backed by a named file and ``atomic_writes`` is on, go through a
    sibling temporary file that replaces the document in one rename.
    """

    def __init__(self, handle: TextIO, *, atomic_writes: Optional[bool] = None,
                 indent: Optional[int] = None) -> None:
        self._handle = handle
        self.atomic_writes = settings.atomic_writes if atomic_writes is None else atomic_writes
        self.indent = indent
        self.lock = threading.RLock()
        # Set when a replace succeeded but the handle could not be reopened
        self._reopen_path: Optional[str] = None

    @property
    def path(self) -> Optional[str]:
        name = getattr(self._handle, "name", None)
        if isinstance(name, str) and os.path.isfile(name):
            return name
        return None

    @property
    def closed(self) -> bool:
        return self._handle.closed

    # ------------------------- Primitives ------------------------- #
    def load_all(self) -> List[Book]:
        """Read the whole document from its start and decode it."""
        with self.lock:
            self._ensure_open()
            try:
                self._handle.seek(0)
                raw = self._handle.read()
            except UnicodeDecodeError as exc:
                raise DecodeError(f"document is not valid UTF-8: {exc}") from exc
            except OSError as exc:
                raise StorageIOError(f"could not read document: {exc}") from exc
        books = decode_books(raw)
        logger.debug("Loaded %d books from document", len(books))
        return books

    def save_all(self, books: List[Book]) -> None:
        """Overwrite the document with the encoded form of ``books``."""
        payload = encode_books(books, self.indent)
        with self.lock:
            self._ensure_open()
            if self.atomic_writes and self.path:
                self._replace(payload)
            else:
                self._rewrite(payload)
        logger.debug("Saved %d books to document", len(books))

    # ------------------------- Write strategies ------------------------- #
    def _rewrite(self, payload: str) -> None:
        # A failure after truncate leaves the document empty or partial.
        try:
            self._handle.truncate(0)
            self._handle.seek(0)
            self._handle.write(payload)
            self._handle.flush()
        except OSError as exc:
            logger.error("Document rewrite failed, content may be incomplete: %s", exc)
            raise StorageIOError(f"could not write document: {exc}") from exc

    def _replace(self, payload: str) -> None:
        target = Path(self.path)
        tmp = target.with_name(f".{target.name}.tmp")
        try:
            with open(tmp, "w", encoding="utf-8") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            shutil.copymode(target, tmp)
            os.replace(tmp, target)
        except OSError as exc:
            tmp.unlink(missing_ok=True)
            raise StorageIOError(f"could not replace document: {exc}") from exc

        # The old handle still points at the replaced file.
        self._handle.close()
        self._reopen_path = str(target)
        self._reopen()

    def _reopen(self) -> None:
        try:
            self._handle = open(self._reopen_path, "r+", encoding="utf-8")
        except OSError as exc:
            raise StorageIOError(f"could not reopen document: {exc}") from exc
        self._reopen_path = None

    # ------------------------- Lifecycle ------------------------- #
    def _ensure_open(self) -> None:
        if self._handle.closed and self._reopen_path:
            self._reopen()
        if self._handle.closed:
            raise StorageIOError("document handle is closed")

    def close(self) -> None:
        with self.lock:
            self._reopen_path = None
            if not self._handle.closed:
                self._handle.close()

    def __enter__(self) -> "JsonDocument":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


# ------------------------- Startup helpers ------------------------- #
def initialize_storage(data_file: Optional[str] = None) -> str:
    """Create the document with an empty collection if it does not exist yet."""
    path = Path(data_file or settings.data_file)
    if not path.exists():
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(EMPTY_DOCUMENT, encoding="utf-8")
        except OSError as exc:
            raise StorageIOError(f"could not create document {path}: {exc}") from exc
        logger.info("Created empty book document at %s", path)
    return str(path)


def open_document(data_file: Optional[str] = None, *, atomic_writes: Optional[bool] = None) -> JsonDocument:
    """Open an existing document read+write and wrap it in a JsonDocument."""
    path = data_file or settings.data_file
    try:
        handle = open(path, "r+", encoding="utf-8")
    except OSError as exc:
        raise StorageIOError(f"could not open document {path}: {exc}") from exc
    return JsonDocument(handle, atomic_writes=atomic_writes)
