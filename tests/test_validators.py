import math

import pytest

from book import Book
from utils.validators import BookValidator, PriceExpressionValidator


def test_complete_book_has_no_missing_fields():
    book = Book(title="Dune", pages=412, price=9.5, genres=["sci-fi"])
    assert BookValidator.missing_fields(book) == []


def test_missing_fields_are_reported_in_order():
    assert BookValidator.missing_fields(Book()) == ["genres", "pages", "price", "title"]


@pytest.mark.parametrize("pages", [0, -1, True, 1.5, None])
def test_invalid_pages(pages):
    assert not BookValidator.validate_pages(pages)


@pytest.mark.parametrize("price", [0, -2.5, math.inf, math.nan, "5", False])
def test_invalid_price(price):
    assert not BookValidator.validate_price(price)


@pytest.mark.parametrize("genres", [None, [], [""], ["drama", "  "]])
def test_invalid_genres(genres):
    assert not BookValidator.validate_genres(genres)


@pytest.mark.parametrize(
    "text, expected",
    [("10", 10.0), ("9.99", 9.99), (".5", 0.5), ("1e3", 1000.0), ("-3", -3.0), ("+4.", 4.0)],
)
def test_parse_number(text, expected):
    assert PriceExpressionValidator.parse_number(text) == expected


@pytest.mark.parametrize("text", ["", "abc", "1.2.3", "nan", "inf", " 10", "10\n", "1_000", "1e400", "-1e400"])
def test_parse_number_rejects(text):
    assert PriceExpressionValidator.parse_number(text) is None


def test_operators():
    assert PriceExpressionValidator.is_supported_operator("<")
    assert PriceExpressionValidator.is_supported_operator(">")
    assert not PriceExpressionValidator.is_supported_operator("=")


def test_expression_length():
    assert not PriceExpressionValidator.is_long_enough("x")
    assert not PriceExpressionValidator.is_long_enough(None)
    assert PriceExpressionValidator.is_long_enough(">1")
