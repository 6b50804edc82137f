import os
import subprocess
import sys
from contextlib import contextmanager
from typing import Iterator, List, Optional

import typer
from rich.console import Console

from book import Book, BookFilter
from config import settings, setup_logging
from library import Library, LibraryError, NotFoundError, UnsupportedOperatorError, ValidationError
from storage import StorageError, initialize_storage, open_document
from utils.ui_helpers import print_book_result, print_list_result, set_output_mode

APP_NAME = "Book Store CLI"

console = Console()

_state = {"data_file": None}

# --- Typer CLI Application ---
app = typer.Typer(help=APP_NAME)


@app.callback()
def _global_options(
    output: Optional[str] = typer.Option(
        None,
        "--output",
        "-o",
        help="Output format: plain | json | rich (default: plain)",
    ),
    data_file: Optional[str] = typer.Option(
        None,
        "--data-file",
        "-f",
        help="Path of the JSON document (default: LIBRARY_DATA_FILE or books.json)",
    ),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Logging level, e.g. DEBUG"),
):
    """Global options for the CLI (output mode, document path)."""
    if output:
        set_output_mode(output)
    _state["data_file"] = data_file or settings.data_file
    setup_logging(log_level.upper() if log_level else "WARNING")


def _data_file() -> str:
    return _state["data_file"] or settings.data_file


@contextmanager
def open_library() -> Iterator[Library]:
    """Open the document for the duration of one command."""
    path = initialize_storage(_data_file())
    library = Library(open_document(path))
    try:
        yield library
    finally:
        library.close()


def _print_error(exc: Exception) -> None:
    if isinstance(exc, NotFoundError):
        print(f"Book with id {exc.book_id} not found.")
    elif isinstance(exc, UnsupportedOperatorError):
        print(f"Unsupported operator: {exc}")
    elif isinstance(exc, ValidationError):
        print(f"Invalid data: {exc}")
    else:
        print(f"Storage error: {exc}")


@app.command("init")
def cli_init():
    """Create an empty JSON document if it does not exist yet."""
    try:
        path = initialize_storage(_data_file())
    except StorageError as e:
        _print_error(e)
        return
    print(f"Document ready at {path}")


@app.command("list")
def cli_list():
    """List all books in document order."""
    try:
        with open_library() as lib:
            books = lib.get_books()
    except (LibraryError, StorageError) as e:
        _print_error(e)
        return
    print_list_result(books)


@app.command("add")
def cli_add(
    title: str = typer.Option(..., "--title", "-t", help="Book title"),
    pages: int = typer.Option(..., "--pages", "-p", help="Page count"),
    price: float = typer.Option(..., "--price", help="Price"),
    genres: List[str] = typer.Option(..., "--genre", "-g", help="Genre label (repeatable)"),
):
    """Add a new book; an id is assigned automatically."""
    try:
        with open_library() as lib:
            book = lib.create_book(Book(title=title, pages=pages, price=price, genres=genres))
    except (LibraryError, StorageError) as e:
        _print_error(e)
        return
    print(f"Successfully added: {book.title} (id {book.id})")


@app.command("find")
def cli_find(book_id: str):
    """Find a book by id and show its details."""
    try:
        with open_library() as lib:
            book = lib.get_book(book_id)
    except (LibraryError, StorageError) as e:
        _print_error(e)
        return
    print_book_result(book)


@app.command("update")
def cli_update(
    book_id: str,
    title: str = typer.Option(..., "--title", "-t", help="New title"),
    pages: int = typer.Option(..., "--pages", "-p", help="New page count"),
    price: float = typer.Option(..., "--price", help="New price"),
    genres: List[str] = typer.Option(..., "--genre", "-g", help="Genre label (repeatable)"),
):
    """Replace title, pages, price and genres of a book."""
    try:
        with open_library() as lib:
            book = lib.change_book(Book(id=book_id, title=title, pages=pages, price=price, genres=genres))
    except (LibraryError, StorageError) as e:
        _print_error(e)
        return
    print_book_result(book, heading="Book Updated")


@app.command("remove")
def cli_remove(book_id: str):
    """Remove a book by id."""
    try:
        with open_library() as lib:
            lib.remove_book(book_id)
    except (LibraryError, StorageError) as e:
        _print_error(e)
        return
    print(f"Book with id {book_id} has been removed.")


@app.command("filter")
def cli_filter(expression: str = typer.Argument(..., help="Price comparison such as '>10' or '<9.99'")):
    """List books whose price strictly satisfies the expression."""
    try:
        with open_library() as lib:
            books = lib.price_filter(BookFilter(price=expression))
    except (LibraryError, StorageError) as e:
        _print_error(e)
        return
    print_list_result(books, empty_message="No books match the filter.")


@app.command("serve")
def cli_serve(reload: bool = typer.Option(False, "--reload", help="Restart the server on code changes")):
    """Start the HTTP API with uvicorn."""
    host = settings.api_host
    port = int(settings.api_port)
    print(f"Starting API on http://{host}:{port}/")
    args = [
        sys.executable,
        "-m", "uvicorn",
        "api:app",
        "--host", host,
        "--port", str(port),
    ]
    if reload:
        args.append("--reload")
    env = dict(os.environ, LIBRARY_DATA_FILE=_data_file())
    try:
        subprocess.run(args, env=env, check=False)
    except FileNotFoundError:
        console.print("[bold red]Error:[/] could not start uvicorn. Make sure it is installed.")


if __name__ == "__main__":
    app()
