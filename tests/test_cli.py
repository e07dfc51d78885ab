import json

import pytest
from typer.testing import CliRunner

from book import Book
from config import settings
from main import app, LibraryManager
from utils.ui_helpers import OUTPUT_MODE_ENV

runner = CliRunner()


@pytest.fixture(autouse=True)
def reset_cli_state(monkeypatch):
    monkeypatch.delenv(OUTPUT_MODE_ENV, raising=False)
    yield
    LibraryManager.shutdown()


def test_list_no_books(lib):
    result = runner.invoke(app, ["list"])
    assert result.exit_code == 0
    assert "No books in library." in result.stdout

def test_add_book_success(lib):
    result = runner.invoke(app, ["add", "1", "Go Basics", "Jane Doe", "2020"])
    assert result.exit_code == 0
    assert "Book added successfully" in result.stdout
    assert [b.title for b in lib.list_books()] == ["Go Basics"]

def test_add_duplicate_id(lib):
    lib.add_book(Book(1, "Go Basics", "Jane Doe", "2020"))
    result = runner.invoke(app, ["add", "1", "Other", "Someone", "1999"])
    assert result.exit_code == 0
    assert "Error: Book with ID 1 already exists" in result.stdout

def test_add_invalid_id(lib):
    result = runner.invoke(app, ["add", "abc", "T", "A", "P"])
    assert result.exit_code == 0
    assert "Invalid ID. Please enter a positive integer." in result.stdout
    assert lib.list_books() == []

def test_remove_book(lib):
    lib.add_book(Book(3, "To Be Removed", "Remover", "P"))
    result = runner.invoke(app, ["remove", "3"])
    assert result.exit_code == 0
    assert "Book removed successfully" in result.stdout
    assert lib.list_books() == []

def test_remove_book_not_found(lib):
    result = runner.invoke(app, ["remove", "99"])
    assert result.exit_code == 0
    assert "Error: Book with ID 99 not found" in result.stdout

def test_search(lib):
    lib.add_book(Book(1, "Go Basics", "Jane Doe", "2020"))
    lib.add_book(Book(2, "Rust in Action", "Tim McNamara", "Manning"))
    result = runner.invoke(app, ["search", "BASICS"])
    assert result.exit_code == 0
    assert "ID: 1, Title: Go Basics, Author: Jane Doe, Publication: 2020" in result.stdout
    assert "Rust in Action" not in result.stdout

def test_search_without_keyword_lists_everything(lib):
    lib.add_book(Book(1, "Go Basics", "Jane Doe", "2020"))
    lib.add_book(Book(2, "Rust in Action", "Tim McNamara", "Manning"))
    result = runner.invoke(app, ["search"])
    assert "Go Basics" in result.stdout
    assert "Rust in Action" in result.stdout

def test_search_no_match(lib):
    result = runner.invoke(app, ["search", "cobol"])
    assert result.exit_code == 0
    assert "No matching books found" in result.stdout

def test_borrow_and_return(lib):
    lib.add_book(Book(1, "Go Basics", "Jane Doe", "2020"))

    result = runner.invoke(app, ["borrow", "1", "Bob"])
    assert "Book borrowed successfully" in result.stdout
    result = runner.invoke(app, ["list"])
    assert "ID: 1, Title: Go Basics, Author: Jane Doe, Publication: 2020, Borrowed: true, Borrower: Bob" in result.stdout

    result = runner.invoke(app, ["return", "1"])
    assert "Book returned successfully" in result.stdout
    result = runner.invoke(app, ["list"])
    assert "Borrowed: false, Borrower: , Borrowed At: " in result.stdout

def test_borrow_already_borrowed(lib):
    lib.add_book(Book(1, "Go Basics", "Jane Doe", "2020"))
    lib.borrow_book(1, "Alice")
    result = runner.invoke(app, ["borrow", "1", "Bob"])
    assert "Error: Book with ID 1 is already borrowed" in result.stdout

def test_list_json_output(lib):
    lib.add_book(Book(1, "Go Basics", "Jane Doe", "2020"))
    result = runner.invoke(app, ["--output", "json", "list"])
    assert result.exit_code == 0
    payload = json.loads(result.stdout.strip().splitlines()[-1])
    assert payload == [{
        "id": 1, "title": "Go Basics", "author": "Jane Doe", "publication": "2020",
        "borrowed": False, "borrower": "", "borrowed_at": None,
    }]

def test_seed_command(lib):
    result = runner.invoke(app, ["seed"])
    assert "Added 3 sample book(s)" in result.stdout
    result = runner.invoke(app, ["seed"])
    assert "Added 0 sample book(s)" in result.stdout
    assert [b.id for b in lib.list_books()] == [1, 2, 3]

def test_unreachable_database_is_fatal(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "database_file", str(tmp_path / "missing" / "library.db"))
    monkeypatch.setattr(settings, "connect_retries", 1)
    result = runner.invoke(app, ["list"])
    assert result.exit_code == 1
    assert "Could not open the library database" in result.stdout

def test_menu_add_and_display(lib):
    user_input = "1\n1\nGo Basics\nJane Doe\n2020\n6\n0\n"
    result = runner.invoke(app, ["menu"], input=user_input)
    assert result.exit_code == 0
    assert "Book added successfully" in result.stdout
    assert "ID: 1, Title: Go Basics" in result.stdout
    assert "Exiting" in result.stdout

def test_menu_reprompts_for_empty_title(lib):
    user_input = "1\n5\n\nDune\nFrank Herbert\nChilton\n0\n"
    result = runner.invoke(app, ["menu"], input=user_input)
    assert "Invalid title. Please enter a non-empty string." in result.stdout
    assert [b.title for b in lib.list_books()] == ["Dune"]

def test_menu_invalid_choice_redisplays_menu(lib):
    result = runner.invoke(app, ["menu"], input="9\n0\n")
    assert result.exit_code == 0
    assert "Invalid choice" in result.stdout
    assert result.stdout.count("Display all books") == 2

def test_menu_invalid_id_returns_to_menu(lib):
    result = runner.invoke(app, ["menu"], input="2\nabc\n0\n")
    assert "Invalid ID. Please enter a positive integer." in result.stdout
    assert "Exiting" in result.stdout

def test_menu_borrow_search_return(lib):
    lib.add_book(Book(1, "Go Basics", "Jane Doe", "2020"))
    user_input = "4\n1\nBob\n3\nbasics\n5\n1\n0\n"
    result = runner.invoke(app, ["menu"], input=user_input)
    assert "Book borrowed successfully" in result.stdout
    assert "Matching Books:" in result.stdout
    assert "Book returned successfully" in result.stdout
    book = lib.list_books()[0]
    assert book.borrowed is False

def test_menu_stops_at_end_of_input(lib):
    result = runner.invoke(app, ["menu"], input="6\n")
    assert result.exit_code == 0
    assert "No books in library." in result.stdout
    assert "Exiting" in result.stdout

def test_remove_id_too_large_for_sqlite(lib):
    result = runner.invoke(app, ["remove", "99999999999999999999"])
    assert result.exit_code == 0
    assert result.exception is None
    assert "Invalid ID. Please enter a positive integer." in result.stdout

@pytest.mark.parametrize("raw_id", ["99999999999999999999", "²"])
def test_menu_survives_unusable_ids(lib, raw_id):
    result = runner.invoke(app, ["menu"], input=f"2\n{raw_id}\n0\n")
    assert result.exit_code == 0
    assert result.exception is None
    assert "Invalid ID. Please enter a positive integer." in result.stdout
    assert "Exiting" in result.stdout

def test_search_folds_non_ascii_case(lib):
    lib.add_book(Book(1, "Éléments de géométrie", "Adrien-Marie Legendre", "1794"))
    result = runner.invoke(app, ["search", "ÉLÉMENTS"])
    assert "ID: 1, Title: Éléments de géométrie" in result.stdout
