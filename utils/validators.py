from typing import Any, Optional

# Largest value an SQLite INTEGER column can hold
MAX_ID = 2 ** 63 - 1


class IdentifierValidator:
    """Validation for externally supplied book ids (positive integers)."""

    @staticmethod
    def parse_id(raw: Any) -> Optional[int]:
        """Return the id as an int, or None when it is not a positive integer SQLite can store."""
        if raw is None or isinstance(raw, bool):
            return None
        if isinstance(raw, int):
            value = raw
        else:
            s = str(raw).strip()
            # isdecimal rejects digit-like characters such as '²' that int() refuses
            if not s.isdecimal():
                return None
            value = int(s)
        return value if 0 < value <= MAX_ID else None


class TextValidator:
    """Basic checks for the free-text fields of a record."""

    @staticmethod
    def is_non_empty(text: Optional[str]) -> bool:
        if text is None:
            return False
        return bool(str(text).strip())

    @staticmethod
    def validate_title(title: Optional[str]) -> bool:
        return TextValidator.is_non_empty(title)

    @staticmethod
    def validate_author(author: Optional[str]) -> bool:
        return TextValidator.is_non_empty(author)

    @staticmethod
    def validate_publication(publication: Optional[str]) -> bool:
        return TextValidator.is_non_empty(publication)

    @staticmethod
    def validate_borrower(borrower: Optional[str]) -> bool:
        return TextValidator.is_non_empty(borrower)
