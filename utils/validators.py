import math
import re
from typing import Any, List, Optional

SUPPORTED_OPERATORS = ("<", ">")

_NUMBER_RE = re.compile(r"[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?")


class BookValidator:
    """Field rules a book must satisfy before it is first stored."""

    @staticmethod
    def validate_title(title: Optional[str]) -> bool:
        return isinstance(title, str) and bool(title.strip())

    @staticmethod
    def validate_pages(pages: Any) -> bool:
        return isinstance(pages, int) and not isinstance(pages, bool) and pages > 0

    @staticmethod
    def validate_price(price: Any) -> bool:
        if isinstance(price, bool) or not isinstance(price, (int, float)):
            return False
        return math.isfinite(price) and price > 0

    @staticmethod
    def validate_genres(genres: Optional[List[str]]) -> bool:
        if not genres:
            return False
        return all(isinstance(g, str) and g.strip() for g in genres)

    @staticmethod
    def missing_fields(book) -> List[str]:
        """Names of the required fields that are absent, zero or empty."""
        missing = []
        if not BookValidator.validate_genres(book.genres):
            missing.append("genres")
        if not BookValidator.validate_pages(book.pages):
            missing.append("pages")
        if not BookValidator.validate_price(book.price):
            missing.append("price")
        if not BookValidator.validate_title(book.title):
            missing.append("title")
        return missing


class PriceExpressionValidator:
    """Checks for '<number' / '>number' price comparison expressions."""

    @staticmethod
    def is_long_enough(expression: Optional[str]) -> bool:
        return isinstance(expression, str) and len(expression) >= 2

    @staticmethod
    def is_supported_operator(operator: str) -> bool:
        return operator in SUPPORTED_OPERATORS

    @staticmethod
    def parse_number(text: str) -> Optional[float]:
        """Plain decimal or exponent notation; None when it is not a finite number."""
        if not _NUMBER_RE.fullmatch(text):
            return None
        value = float(text)
        # float() overflows to inf instead of failing on out-of-range exponents
        if not math.isfinite(value):
            return None
        return value
