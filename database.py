import logging
import sqlite3
import time
from contextlib import contextmanager
from datetime import datetime
from typing import Iterator, List, Optional

from book import Book
from config import settings

logger = logging.getLogger(__name__)

BOOK_COLUMNS = "id, title, author, publication, borrowed, borrower, borrowed_at"


class StoreUnavailableError(Exception):
    """The catalog database could not be reached or answered with an error."""


def _casefold(value):
    """Unicode case folding, registered on the connection as py_casefold()."""
    return value.casefold() if isinstance(value, str) else value


class CatalogStore:
    """Owns the SQLite connection holding the ``books`` table.

    The connection is opened once with :meth:`open` (or by entering the
    store as a context manager) and released with :meth:`close`. Every
    method is a single parameterized statement.
    """

    def __init__(self, db_file: Optional[str] = None, timeout: Optional[float] = None,
                 retries: Optional[int] = None, backoff: Optional[float] = None) -> None:
        self.db_file = db_file or settings.database_file
        self.timeout = settings.database_timeout if timeout is None else timeout
        self.retries = settings.connect_retries if retries is None else retries
        self.backoff = settings.connect_backoff if backoff is None else backoff
        self._conn: Optional[sqlite3.Connection] = None

    # ------------------------- Lifecycle ------------------------- #
    def open(self) -> "CatalogStore":
        if self._conn is not None:
            return self
        self._conn = self._connect_with_retry()
        try:
            self.create_tables()
        except StoreUnavailableError:
            self.close()
            raise
        logger.info("Catalog store opened: %s", self.db_file)
        return self

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None
            logger.info("Catalog store closed: %s", self.db_file)

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    def __enter__(self) -> "CatalogStore":
        return self.open()

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def _connect_with_retry(self) -> sqlite3.Connection:
        """Open the database, retrying with exponential backoff."""
        attempts = max(1, self.retries)
        for attempt in range(attempts):
            try:
                conn = sqlite3.connect(self.db_file, timeout=self.timeout)
                conn.row_factory = sqlite3.Row
                conn.create_function("py_casefold", 1, _casefold, deterministic=True)
                return conn
            except sqlite3.Error as exc:
                if attempt < attempts - 1:
                    wait_time = self.backoff * (2 ** attempt)
                    logger.warning("Could not open %s (%s), retrying in %.2fs", self.db_file, exc, wait_time)
                    time.sleep(wait_time)
                else:
                    logger.error("Could not open %s after %d attempts: %s", self.db_file, attempts, exc)
                    raise StoreUnavailableError(f"Cannot open database {self.db_file}: {exc}") from exc
        raise StoreUnavailableError(f"Cannot open database {self.db_file}")

    @contextmanager
    def _cursor(self) -> Iterator[sqlite3.Cursor]:
        """Run one statement in its own transaction, committing on success."""
        if self._conn is None:
            raise StoreUnavailableError("Catalog store is not open.")
        try:
            with self._conn:
                yield self._conn.cursor()
        except sqlite3.IntegrityError:
            raise
        except sqlite3.Error as exc:
            logger.error("Database error on %s: %s", self.db_file, exc)
            raise StoreUnavailableError(str(exc)) from exc

    def create_tables(self) -> None:
        """Create the books table if it does not exist."""
        with self._cursor() as cursor:
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS books (
                    id INTEGER PRIMARY KEY,
                    title TEXT NOT NULL,
                    author TEXT NOT NULL,
                    publication TEXT NOT NULL,
                    borrowed INTEGER NOT NULL DEFAULT 0,
                    borrower TEXT NOT NULL DEFAULT '',
                    borrowed_at TEXT
                )
            """)

    # ------------------------- Statements ------------------------- #
    def count_by_id(self, book_id: int) -> int:
        with self._cursor() as cursor:
            cursor.execute("SELECT COUNT(*) FROM books WHERE id = ?", (book_id,))
            return cursor.fetchone()[0]

    def insert(self, book: Book) -> None:
        """Insert a record. A clashing id raises ``sqlite3.IntegrityError``."""
        with self._cursor() as cursor:
            cursor.execute(
                f"INSERT INTO books ({BOOK_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?)",
                (
                    book.id, book.title, book.author, book.publication,
                    int(book.borrowed), book.borrower,
                    book.borrowed_at.isoformat() if book.borrowed_at else None,
                ),
            )

    def delete_by_id(self, book_id: int) -> int:
        with self._cursor() as cursor:
            cursor.execute("DELETE FROM books WHERE id = ?", (book_id,))
            return cursor.rowcount

    def find_by_title_or_author(self, keyword: str) -> List[Book]:
        """Case-insensitive substring search over title and author."""
        needle = _casefold(keyword)
        with self._cursor() as cursor:
            cursor.execute(
                f"SELECT {BOOK_COLUMNS} FROM books "
                "WHERE instr(py_casefold(title), ?) > 0 OR instr(py_casefold(author), ?) > 0 ORDER BY id",
                (needle, needle),
            )
            return [Book.from_dict(dict(row)) for row in cursor.fetchall()]

    def update_borrow_state(self, book_id: int, borrowed: bool, borrower: str,
                            borrowed_at: Optional[datetime],
                            require_borrowed: Optional[bool] = None) -> int:
        """Set the borrow state of one record and return the affected row count.

        When ``require_borrowed`` is given the row is only touched if its
        current flag equals it, so the check and the write are one statement.
        """
        sql = "UPDATE books SET borrowed = ?, borrower = ?, borrowed_at = ? WHERE id = ?"
        params = [int(borrowed), borrower, borrowed_at.isoformat() if borrowed_at else None, book_id]
        if require_borrowed is not None:
            sql += " AND borrowed = ?"
            params.append(int(require_borrowed))
        with self._cursor() as cursor:
            cursor.execute(sql, params)
            return cursor.rowcount

    def find_all(self) -> List[Book]:
        with self._cursor() as cursor:
            cursor.execute(f"SELECT {BOOK_COLUMNS} FROM books ORDER BY id")
            return [Book.from_dict(dict(row)) for row in cursor.fetchall()]
