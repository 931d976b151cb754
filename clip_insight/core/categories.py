"""
Clipping categories.

A closed taxonomy: adding a member is a migration, not a runtime extension.
"""

from enum import Enum


class Category(Enum):
    """Semantic category of a clipping."""
    UNKNOWN = "unknown"
    CODE = "code"
    LINK = "link"
    DATA = "data"
    TEXT = "text"

    @property
    def display_name(self) -> str:
        """Human-friendly name for menus and the bezel."""
        return _DISPLAY_NAMES[self]

    @property
    def emoji(self) -> str:
        """Single-glyph marker shown next to a clipping."""
        return _EMOJI[self]

    @classmethod
    def parse(cls, name: str) -> "Category":
        """Map a case-insensitive category name to a member.

        Raises:
            ValueError: If the name is not part of the taxonomy
        """
        if not isinstance(name, str):
            raise ValueError(f"Category name must be a string, got {type(name).__name__}")
        try:
            return cls(name.strip().lower())
        except ValueError:
            valid = [category.value for category in cls]
            raise ValueError(f"Unknown category '{name}', expected one of: {valid}")


_DISPLAY_NAMES = {
    Category.UNKNOWN: "Unknown",
    Category.CODE: "Code",
    Category.LINK: "Link",
    Category.DATA: "Data",
    Category.TEXT: "Text",
}

_EMOJI = {
    Category.UNKNOWN: "❓",
    Category.CODE: "💻",
    Category.LINK: "🔗",
    Category.DATA: "📊",
    Category.TEXT: "📝",
}
