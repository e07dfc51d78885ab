from __future__ import annotations

from datetime import datetime


class Book:
    """Represents a single book record in the catalog."""

    def __init__(self, id: int, title: str, author: str, publication: str, borrowed: bool = False,
                 borrower: str = "", borrowed_at: datetime | None = None) -> None:
        self.id = id
        self.title = (title or "").strip()
        self.author = (author or "").strip()
        self.publication = (publication or "").strip()
        self.borrowed = bool(borrowed)
        self.borrower = (borrower or "").strip()
        self.borrowed_at = borrowed_at

    def __repr__(self) -> str:
        return f"Book(id={self.id!r}, title={self.title!r}, borrowed={self.borrowed!r})"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "author": self.author,
            "publication": self.publication,
            "borrowed": self.borrowed,
            "borrower": self.borrower,
            "borrowed_at": self.borrowed_at.isoformat() if self.borrowed_at else None,
        }

    @staticmethod
    def from_dict(data: dict) -> "Book":
        # SQLite stores the flag as 0/1 and the timestamp as ISO text
        borrowed_at = data.get("borrowed_at")
        if isinstance(borrowed_at, str):
            borrowed_at = datetime.fromisoformat(borrowed_at) if borrowed_at else None

        return Book(
            id=int(data["id"]),
            title=data["title"],
            author=data["author"],
            publication=data["publication"],
            borrowed=bool(data.get("borrowed", False)),
            borrower=data.get("borrower") or "",
            borrowed_at=borrowed_at,
        )
