import logging
import uuid
from typing import Callable, List

from book import Book, BookFilter
from storage import JsonDocument
from utils.validators import BookValidator, PriceExpressionValidator

logger = logging.getLogger(__name__)


class Library:
    """Manages the book collection stored in a single JSON document.

    Every operation is a complete load/compute/save cycle against the document;
    nothing is cached between calls. Cycles on one instance are serialized by
    the document lock.
    """

    def __init__(self, document: JsonDocument) -> None:
        self._document = document

    @property
    def document(self) -> JsonDocument:
        return self._document

    # ------------------------- Core operations ------------------------- #
    def get_books(self) -> List[Book]:
        """Return the whole collection in document order."""
        return self._document.load_all()

    def create_book(self, book: Book) -> Book:
        """Validate, assign a fresh id and append the book to the collection."""
        missing = BookValidator.missing_fields(book)
        if missing:
            raise ValidationError(f"not all fields are populated: {', '.join(missing)}")

        with self._document.lock:
            books = self._document.load_all()
            record = Book(id=self._new_id(), title=book.title, pages=book.pages,
                          price=book.price, genres=book.genres)
            books.append(record)
            self._document.save_all(books)
        logger.info("Created book %s (%s)", record.id, record.title)
        return record

    def get_book(self, book_id: str) -> Book:
        for book in self._document.load_all():
            if book.id == book_id:
                return book
        raise NotFoundError(book_id)

    def remove_book(self, book_id: str) -> None:
        with self._document.lock:
            books = self._document.load_all()
            index = self._wanted_index(book_id, books)
            del books[index]
            self._document.save_all(books)
        logger.info("Removed book %s", book_id)

    def change_book(self, changed: Book) -> Book:
        """Replace price, title, pages and genres of the stored book with the same id.

        This is a full-field replace: zero or empty values on ``changed`` overwrite
        the stored ones. The id is never touched.
        """
        with self._document.lock:
            books = self._document.load_all()
            index = self._wanted_index(changed.id, books)
            book = books[index]
            book.price = changed.price
            book.title = changed.title
            book.pages = changed.pages
            book.genres = list(changed.genres) if changed.genres is not None else []
            self._document.save_all(books)
        logger.info("Changed book %s", book.id)
        return book

    # ------------------------- Queries ------------------------- #
    def price_filter(self, book_filter: BookFilter) -> List[Book]:
        """Books whose price strictly satisfies an expression like '>10' or '<9.99'."""
        matches = self._price_predicate(book_filter.price)
        return [book for book in self._document.load_all() if matches(book.price)]

    @staticmethod
    def _price_predicate(expression: str) -> Callable[[float], bool]:
        if not PriceExpressionValidator.is_long_enough(expression):
            raise ValidationError(f"price expression {expression!r} is too short")

        operator, number = expression[0], expression[1:]
        if not PriceExpressionValidator.is_supported_operator(operator):
            raise UnsupportedOperatorError(operator)

        limit = PriceExpressionValidator.parse_number(number)
        if limit is None:
            raise ValidationError(f"price {number!r} is not a number")

        if operator == ">":
            return lambda price: price > limit
        return lambda price: price < limit

    # ------------------------- Utilities ------------------------- #
    @staticmethod
    def _wanted_index(book_id: str, books: List[Book]) -> int:
        for index, book in enumerate(books):
            if book.id == book_id:
                return index
        raise NotFoundError(book_id)

    @staticmethod
    def _new_id() -> str:
        return str(uuid.uuid4())

    def close(self) -> None:
        """Release the document handle."""
        self._document.close()

    def __enter__(self) -> "Library":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


class LibraryError(Exception):
    pass


class NotFoundError(LibraryError, LookupError):
    def __init__(self, book_id: str) -> None:
        super().__init__(f"can't find the book with id {book_id!r}")
        self.book_id = book_id


class ValidationError(LibraryError, ValueError):
    pass


class UnsupportedOperatorError(ValidationError):
    def __init__(self, operator: str) -> None:
        super().__init__(f"unsupported operator {operator!r}, use '<' or '>'")
        self.operator = operator
