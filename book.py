from __future__ import annotations

from typing import Any


class Book:
    """Represents a single book record in the store."""

    def __init__(self, title: str = "", pages: int = 0, price: float = 0.0, genres: list | None = None,
                 id: str = "") -> None:
        self.id = id
        self.title = title
        self.pages = pages
        self.price = price
        self.genres = list(genres) if genres is not None else None

    def __str__(self) -> str:  # pragma: no cover - string formatting trivial
        return f"{self.title} ({self.pages} pages, {self.price:.2f})"

    def __repr__(self) -> str:
        return (f"Book(id={self.id!r}, title={self.title!r}, pages={self.pages!r}, "
                f"price={self.price!r}, genres={self.genres!r})")

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Book):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "price": self.price,
            "pages": self.pages,
            "genres": self.genres if self.genres is not None else [],
        }

    @staticmethod
    def from_dict(data: dict) -> "Book":
        """Build a Book from its document form.

        Missing keys fall back to the zero value of the field. A key holding the
        wrong JSON type raises TypeError.
        """
        genres = data.get("genres")
        if genres is None:
            genres = []
        if not isinstance(genres, list) or not all(isinstance(g, str) for g in genres):
            raise TypeError(f"'genres' must be a list of strings, got {genres!r}")

        return Book(
            id=_typed(data, "id", str, ""),
            title=_typed(data, "title", str, ""),
            pages=_typed(data, "pages", int, 0),
            price=float(_typed(data, "price", (int, float), 0.0)),
            genres=genres,
        )


class BookFilter:
    """Price comparison query such as '>10' or '<9.99'."""

    def __init__(self, price: str = "") -> None:
        self.price = price

    def __repr__(self) -> str:
        return f"BookFilter(price={self.price!r})"


def _typed(data: dict, key: str, kind: Any, default: Any) -> Any:
    value = data.get(key)
    if value is None:
        return default
    # bool is an int subclass; JSON true/false is never a valid number here
    if isinstance(value, bool) or not isinstance(value, kind):
        raise TypeError(f"{key!r} has unexpected type {type(value).__name__}")
    return value
