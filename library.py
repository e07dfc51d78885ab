import logging
import sqlite3
from datetime import datetime, timezone
from typing import List, Optional

from book import Book
from config import settings
from database import CatalogStore, StoreUnavailableError
from utils.validators import IdentifierValidator, TextValidator

logger = logging.getLogger(__name__)

DEMO_BOOKS = [
    (1, "Book 1", "Author 1", "Publication 1"),
    (2, "Book 2", "Author 2", "Publication 2"),
    (3, "Book 3", "Author 3", "Publication 3"),
]


class Library:
    """Catalog operations and the borrow/return rules on top of a CatalogStore.

    Nothing is cached here: every call reads or writes the store directly.
    """

    def __init__(self, store: Optional[CatalogStore] = None, db_file: Optional[str] = None,
                 strict_lending: Optional[bool] = None) -> None:
        self.store = store or CatalogStore(db_file=db_file)
        self.store.open()
        self.strict_lending = settings.strict_lending if strict_lending is None else strict_lending

    # ------------------------- Core operations ------------------------- #
    def add_book(self, book: Book) -> Book:
        """Add a new, not-borrowed record. Prevent duplicates by id."""
        book_id = self._require_id(book.id)
        field_checks = (
            ("title", TextValidator.validate_title),
            ("author", TextValidator.validate_author),
            ("publication", TextValidator.validate_publication),
        )
        for field_name, is_valid in field_checks:
            if not is_valid(getattr(book, field_name)):
                raise ValidationError(f"Invalid {field_name}. Please enter a non-empty string.")

        book.id = book_id
        book.borrowed = False
        book.borrower = ""
        book.borrowed_at = None

        if self.store.count_by_id(book_id) > 0:
            raise DuplicateIdentifierError(book_id)
        try:
            self.store.insert(book)
        except sqlite3.IntegrityError as e:
            # Another writer took the id between the check and the insert
            raise DuplicateIdentifierError(book_id) from e

        logger.info("Added book %d: %s", book_id, book.title)
        return book

    def remove_book(self, book_id: int) -> None:
        book_id = self._require_id(book_id)
        if self.store.delete_by_id(book_id) == 0:
            raise BookNotFoundError(book_id)
        logger.info("Removed book %d", book_id)

    def search_books(self, keyword: Optional[str]) -> List[Book]:
        """Search for books whose title or author contains ``keyword``."""
        return self.store.find_by_title_or_author(keyword or "")

    def list_books(self) -> List[Book]:
        return self.store.find_all()

    def borrow_book(self, book_id: int, borrower: str) -> None:
        """Mark a book as borrowed by ``borrower``, stamped with the current time.

        In strict mode the update only applies to a book that is currently
        available; a missing id or an already borrowed book is an error. In
        lenient mode the update is unconditional and a missing id is a no-op.
        """
        book_id = self._require_id(book_id)
        if not TextValidator.validate_borrower(borrower):
            raise ValidationError("Invalid borrower. Please enter a non-empty string.")
        borrower = borrower.strip()

        rows = self.store.update_borrow_state(
            book_id, True, borrower, datetime.now(timezone.utc),
            require_borrowed=False if self.strict_lending else None,
        )
        if rows == 0:
            if not self.strict_lending:
                logger.warning("Borrow of book %d matched no record", book_id)
                return
            if self.store.count_by_id(book_id) == 0:
                raise BookNotFoundError(book_id)
            raise AlreadyBorrowedError(book_id)
        logger.info("Book %d borrowed by %s", book_id, borrower)

    def return_book(self, book_id: int) -> None:
        """Clear the borrow state of a book."""
        book_id = self._require_id(book_id)
        rows = self.store.update_borrow_state(
            book_id, False, "", None,
            require_borrowed=True if self.strict_lending else None,
        )
        if rows == 0:
            if not self.strict_lending:
                logger.warning("Return of book %d matched no record", book_id)
                return
            if self.store.count_by_id(book_id) == 0:
                raise BookNotFoundError(book_id)
            raise NotBorrowedError(book_id)
        logger.info("Book %d returned", book_id)

    def seed_demo_books(self) -> int:
        """Insert the sample books, skipping ids already present. Returns how many were added."""
        added = 0
        for book_id, title, author, publication in DEMO_BOOKS:
            try:
                self.add_book(Book(book_id, title, author, publication))
                added += 1
            except DuplicateIdentifierError:
                logger.debug("Demo book %d already present", book_id)
        return added

    # ------------------------- Utilities ------------------------- #
    @staticmethod
    def _require_id(raw) -> int:
        book_id = IdentifierValidator.parse_id(raw)
        if book_id is None:
            raise ValidationError("Invalid ID. Please enter a positive integer.")
        return book_id

    def close(self) -> None:
        """Release the underlying store connection."""
        self.store.close()


class LibraryError(Exception):
    """Base class for catalog operation failures."""


class ValidationError(LibraryError, ValueError):
    pass


class DuplicateIdentifierError(LibraryError, ValueError):
    def __init__(self, book_id: int) -> None:
        super().__init__(f"Book with ID {book_id} already exists")
        self.book_id = book_id


class BookNotFoundError(LibraryError, LookupError):
    def __init__(self, book_id: int) -> None:
        super().__init__(f"Book with ID {book_id} not found")
        self.book_id = book_id


class AlreadyBorrowedError(LibraryError):
    def __init__(self, book_id: int) -> None:
        super().__init__(f"Book with ID {book_id} is already borrowed")
        self.book_id = book_id


class NotBorrowedError(LibraryError):
    def __init__(self, book_id: int) -> None:
        super().__init__(f"Book with ID {book_id} is not borrowed")
        self.book_id = book_id


__all__ = [
    "Library",
    "LibraryError",
    "ValidationError",
    "DuplicateIdentifierError",
    "BookNotFoundError",
    "AlreadyBorrowedError",
    "NotBorrowedError",
    "StoreUnavailableError",
]
