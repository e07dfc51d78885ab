import os
import json
from typing import List, Any
from rich.console import Console
from rich.table import Table
from rich.markup import escape

# Environment variable to control CLI output mode
# Allowed values: 'plain' (default), 'json', 'rich'
OUTPUT_MODE_ENV = "LIB_CLI_OUTPUT"

_console = Console()

def set_output_mode(mode: str) -> None:
    mode = (mode or "").lower().strip()
    if mode in {"plain", "json", "rich"}:
        os.environ[OUTPUT_MODE_ENV] = mode

def get_output_mode() -> str:
    return os.environ.get(OUTPUT_MODE_ENV, "plain").lower()

def format_borrowed_at(book: Any) -> str:
    borrowed_at = getattr(book, "borrowed_at", None)
    return borrowed_at.isoformat() if borrowed_at else ""

def format_book_line(book: Any) -> str:
    return (
        f"ID: {book.id}, Title: {book.title}, Author: {book.author}, Publication: {book.publication}, "
        f"Borrowed: {'true' if book.borrowed else 'false'}, Borrower: {book.borrower}, "
        f"Borrowed At: {format_borrowed_at(book)}"
    )

def format_search_line(book: Any) -> str:
    return f"ID: {book.id}, Title: {book.title}, Author: {book.author}, Publication: {book.publication}"

def _books_table(title: str, books: List[Any], with_loan: bool) -> Table:
    table = Table(title=title, show_lines=True, header_style="bold cyan")
    table.add_column("ID", style="magenta", no_wrap=True, justify="right")
    table.add_column("Title", style="white")
    table.add_column("Author", style="white")
    table.add_column("Publication", style="white")
    if with_loan:
        table.add_column("Borrowed", style="yellow")
        table.add_column("Borrower", style="white")
        table.add_column("Borrowed At", style="dim")
    for b in books:
        row = [str(b.id), escape(b.title), escape(b.author), escape(b.publication)]
        if with_loan:
            row += ["yes" if b.borrowed else "no", escape(b.borrower), format_borrowed_at(b)]
        table.add_row(*row)
    return table

def print_list_result(books: List[Any]) -> None:
    """Print every book according to the current output mode.
    - plain: one 'ID: ..., Borrowed At: ...' line per book, or 'No books in library.'
    - json: JSON array of book dicts
    - rich: Rich table
    """
    mode = get_output_mode()

    if not books:
        print("No books in library.")
        return

    if mode == "json":
        print(json.dumps([b.to_dict() for b in books], ensure_ascii=False))
    elif mode == "rich":
        _console.print(_books_table("📚 All books", books, with_loan=True))
    else:
        print("All books:")
        for b in books:
            print(format_book_line(b))

def print_search_result(books: List[Any]) -> None:
    """Print search matches; an empty result is a message, not an error."""
    mode = get_output_mode()

    if not books:
        print("No matching books found")
        return

    if mode == "json":
        print(json.dumps([b.to_dict() for b in books], ensure_ascii=False))
    elif mode == "rich":
        _console.print(_books_table("🔎 Matching books", books, with_loan=False))
    else:
        print("Matching Books:")
        for b in books:
            print(format_search_line(b))
