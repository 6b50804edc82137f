import os
import json
from typing import List, Any
from rich.console import Console
from rich.table import Table
from rich.panel import Panel

# Environment variable to control CLI output mode
# Allowed values: 'plain' (default), 'json', 'rich'
OUTPUT_MODE_ENV = "BOOKS_CLI_OUTPUT"

_console = Console()


def set_output_mode(mode: str) -> None:
    mode = (mode or "").lower().strip()
    if mode in {"plain", "json", "rich"}:
        os.environ[OUTPUT_MODE_ENV] = mode


def get_output_mode() -> str:
    return os.environ.get(OUTPUT_MODE_ENV, "plain").lower()


def _genres(book: Any) -> str:
    return ", ".join(book.genres or [])


def format_book_line(book: Any) -> str:
    return f"{book.id} - {book.title} ({book.pages} pages, {book.price:.2f}) [{_genres(book)}]"


def print_list_result(books: List[Any], empty_message: str = "No books in library.") -> None:
    """Print a list of books in the current output mode.
    - plain: 'ID - Title (N pages, price) [genres]' lines, or the empty message
    - json: JSON array of book objects
    - rich: Rich table
    """
    mode = get_output_mode()

    if not books:
        print(empty_message)
        return

    if mode == "json":
        print(json.dumps([b.to_dict() for b in books], ensure_ascii=False))
    elif mode == "rich":
        table = Table(title="📚 Books", show_lines=True, header_style="bold cyan")
        table.add_column("ID", style="magenta", no_wrap=True)
        table.add_column("Title", style="white")
        table.add_column("Pages", justify="right")
        table.add_column("Price", justify="right", style="green")
        table.add_column("Genres", style="white")
        for b in books:
            table.add_row(b.id, b.title, str(b.pages), f"{b.price:.2f}", _genres(b))
        _console.print(table)
    else:
        for b in books:
            print(format_book_line(b))


def print_book_result(book: Any, heading: str = "Book Found") -> None:
    """Print a single book in the current output mode."""
    mode = get_output_mode()

    if mode == "json":
        print(json.dumps(book.to_dict(), ensure_ascii=False))
    elif mode == "rich":
        content = (
            f"[bold]ID:[/] {book.id}\n"
            f"[bold]Title:[/] {book.title}\n"
            f"[bold]Pages:[/] {book.pages}\n"
            f"[bold]Price:[/] {book.price:.2f}\n"
            f"[bold]Genres:[/] {_genres(book)}"
        )
        _console.print(Panel.fit(content, title=f"📖 {heading}", border_style="blue"))
    else:
        print(heading)
        print(f"ID: {book.id}")
        print(f"Title: {book.title}")
        print(f"Pages: {book.pages}")
        print(f"Price: {book.price:.2f}")
        print(f"Genres: {_genres(book)}")
