import sys
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich.prompt import Prompt
from rich.markup import escape
from rich import box

from book import Book
from config import settings
from library import Library, LibraryError, StoreUnavailableError
from utils.logging_config import setup_logging
from utils.ui_helpers import set_output_mode, print_list_result, print_search_result
from utils.validators import IdentifierValidator, TextValidator

console = Console()

INVALID_ID_MESSAGE = "Invalid ID. Please enter a positive integer."


# Single Library instance for the whole process
class LibraryManager:
    _instance: Optional[Library] = None

    @classmethod
    def get_instance(cls) -> Library:
        """Open the catalog store on first use. Failing to open it is fatal."""
        if cls._instance is None:
            try:
                cls._instance = Library(db_file=settings.database_file)
            except StoreUnavailableError as e:
                console.print(f"[bold red]Could not open the library database:[/] {escape(str(e))}")
                raise typer.Exit(code=1)
            if settings.seed_demo_books:
                cls._instance.seed_demo_books()
        return cls._instance

    @classmethod
    def shutdown(cls) -> None:
        """Close the store connection, if one was opened."""
        if cls._instance is not None:
            cls._instance.close()
            cls._instance = None


def print_error(e: Exception) -> None:
    console.print(f"[bold red]Error:[/] {escape(str(e))}")


# --- Typer CLI application ---
app = typer.Typer(help=settings.app_name)

@app.callback()
def _global_options(
    ctx: typer.Context,
    output: Optional[str] = typer.Option(
        None,
        "--output",
        "-o",
        help="Output format: plain | json | rich (default: plain)",
    )
):
    """Global CLI options (e.g. output mode)."""
    if output:
        set_output_mode(output)
    ctx.call_on_close(LibraryManager.shutdown)

@app.command("list")
def cli_list():
    """Display all books."""
    lib = LibraryManager.get_instance()
    try:
        print_list_result(lib.list_books())
    except (LibraryError, StoreUnavailableError) as e:
        print_error(e)

@app.command("add")
def cli_add(
    book_id: str = typer.Argument(..., metavar="ID", help="Positive integer id"),
    title: str = typer.Argument(..., help="Book title"),
    author: str = typer.Argument(..., help="Author name"),
    publication: str = typer.Argument(..., help="Publication"),
):
    """Add a book to the catalog."""
    lib = LibraryManager.get_instance()
    try:
        lib.add_book(Book(book_id, title, author, publication))
        console.print("[green]Book added successfully[/]")
    except (LibraryError, StoreUnavailableError) as e:
        print_error(e)

@app.command("remove")
def cli_remove(book_id: str = typer.Argument(..., metavar="ID")):
    """Remove a book by id."""
    lib = LibraryManager.get_instance()
    try:
        lib.remove_book(book_id)
        console.print("[green]Book removed successfully[/]")
    except (LibraryError, StoreUnavailableError) as e:
        print_error(e)

@app.command("search")
def cli_search(keyword: str = typer.Argument("", help="Part of a title or author name")):
    """Search books by title or author (case-insensitive)."""
    lib = LibraryManager.get_instance()
    try:
        print_search_result(lib.search_books(keyword))
    except (LibraryError, StoreUnavailableError) as e:
        print_error(e)

@app.command("borrow")
def cli_borrow(
    book_id: str = typer.Argument(..., metavar="ID"),
    borrower: str = typer.Argument(..., help="Borrower name"),
):
    """Lend a book to a borrower."""
    lib = LibraryManager.get_instance()
    try:
        lib.borrow_book(book_id, borrower)
        console.print("[green]Book borrowed successfully[/]")
    except (LibraryError, StoreUnavailableError) as e:
        print_error(e)

@app.command("return")
def cli_return(book_id: str = typer.Argument(..., metavar="ID")):
    """Take a borrowed book back."""
    lib = LibraryManager.get_instance()
    try:
        lib.return_book(book_id)
        console.print("[green]Book returned successfully[/]")
    except (LibraryError, StoreUnavailableError) as e:
        print_error(e)

@app.command("seed")
def cli_seed():
    """Insert the three sample books (existing ids are skipped)."""
    lib = LibraryManager.get_instance()
    try:
        added = lib.seed_demo_books()
        console.print(f"Added {added} sample book(s)")
    except (LibraryError, StoreUnavailableError) as e:
        print_error(e)

@app.command("menu")
def cli_menu():
    """Start the interactive menu."""
    run_menu()


# --- Interactive menu ---
def _ask_id() -> Optional[int]:
    book_id = IdentifierValidator.parse_id(Prompt.ask("Enter book ID", console=console))
    if book_id is None:
        console.print(f"[yellow]{INVALID_ID_MESSAGE}[/]")
    return book_id

def _ask_text(prompt: str, label: str) -> str:
    """Ask until a non-empty value is entered."""
    while True:
        value = Prompt.ask(prompt, console=console)
        if TextValidator.is_non_empty(value):
            return value.strip()
        console.print(f"[yellow]Invalid {label}. Please enter a non-empty string.[/]")

def add():
    lib = LibraryManager.get_instance()
    book_id = _ask_id()
    if book_id is None:
        return
    title = _ask_text("Enter book title", "title")
    author = _ask_text("Enter author name", "author")
    publication = _ask_text("Enter publication", "publication")
    try:
        lib.add_book(Book(book_id, title, author, publication))
        console.print("[green]Book added successfully[/]")
    except (LibraryError, StoreUnavailableError) as e:
        print_error(e)

def remove():
    lib = LibraryManager.get_instance()
    book_id = _ask_id()
    if book_id is None:
        return
    try:
        lib.remove_book(book_id)
        console.print("[green]Book removed successfully[/]")
    except (LibraryError, StoreUnavailableError) as e:
        print_error(e)

def search():
    lib = LibraryManager.get_instance()
    keyword = Prompt.ask("Enter the keyword to search", console=console)
    try:
        print_search_result(lib.search_books(keyword))
    except (LibraryError, StoreUnavailableError) as e:
        print_error(e)

def borrow():
    lib = LibraryManager.get_instance()
    book_id = _ask_id()
    if book_id is None:
        return
    borrower = _ask_text("Enter borrower name", "borrower")
    try:
        lib.borrow_book(book_id, borrower)
        console.print("[green]Book borrowed successfully[/]")
    except (LibraryError, StoreUnavailableError) as e:
        print_error(e)

def give_back():
    lib = LibraryManager.get_instance()
    book_id = _ask_id()
    if book_id is None:
        return
    try:
        lib.return_book(book_id)
        console.print("[green]Book returned successfully[/]")
    except (LibraryError, StoreUnavailableError) as e:
        print_error(e)

def list_all_books():
    lib = LibraryManager.get_instance()
    try:
        print_list_result(lib.list_books())
    except (LibraryError, StoreUnavailableError) as e:
        print_error(e)

MENU_ACTIONS = {
    "1": add,
    "2": remove,
    "3": search,
    "4": borrow,
    "5": give_back,
    "6": list_all_books,
}

def render_menu() -> None:
    menu_items = [
        ("1", "Add a book"),
        ("2", "Remove a book"),
        ("3", "Search for a book"),
        ("4", "Borrow a book"),
        ("5", "Return a book"),
        ("6", "Display all books"),
        ("0", "Exit"),
    ]

    table = Table.grid(padding=(0, 2))
    table.add_column(justify="right", style="bold cyan", width=4)
    table.add_column(justify="left", style="white")
    for key, label in menu_items:
        table.add_row(f"[reverse]{key}[/]", label)

    console.print(Panel(
        table,
        title=settings.app_name,
        border_style="cyan",
        box=box.HEAVY,
        padding=(1, 2),
    ))

def run_menu():
    """Read-evaluate-print loop over the six catalog operations."""
    LibraryManager.get_instance()
    while True:
        render_menu()
        try:
            choice = Prompt.ask("Enter your choice", console=console).strip()
            if choice == "0":
                console.print("Exiting")
                break
            action = MENU_ACTIONS.get(choice)
            if action is None:
                console.print("[yellow]Invalid choice[/]")
                continue
            action()
        except EOFError:
            console.print("Exiting")
            break
        print()  # blank line between operations

def run():
    """Console entry point: menu without arguments, typer commands otherwise."""
    setup_logging(settings.log_level, settings.log_file)
    if len(sys.argv) > 1:
        app()
        return
    try:
        run_menu()
    except typer.Exit as e:
        sys.exit(e.exit_code)
    finally:
        LibraryManager.shutdown()

if __name__ == "__main__":
    run()
