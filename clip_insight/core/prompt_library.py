"""
Library of reusable prompts.

Entries keep insertion order and are addressed by position. Identical
prompts are not deduplicated. One writer at a time per instance.
"""

import logging
from typing import Iterable, List

from .models import PromptEntry, normalize_tags

logger = logging.getLogger(__name__)


class PromptLibrary:
    """Ordered store of (prompt text, tags) entries with tag lookup."""

    def __init__(self, repository=None):
        """Initialize the library.

        Args:
            repository: Optional PromptRepository; entries are loaded from
                it now and written back after every change
        """
        self._repository = repository
        self._entries: List[PromptEntry] = []
        if repository is not None:
            self._entries = list(repository.load_prompts())
            logger.debug("Loaded %d prompts", len(self._entries))

    def __len__(self) -> int:
        return len(self._entries)

    def add(self, text: str, tags: Iterable[str] = ()) -> PromptEntry:
        """Append a prompt to the end of the library."""
        entry = PromptEntry(text=text, tags=normalize_tags(tags))
        self._entries.append(entry)
        self._persist()
        return entry

    def remove_at(self, index: int) -> bool:
        """Remove the entry at `index`.

        Returns:
            False if the index is out of range (negative indices included),
            in which case the library is unchanged
        """
        if not isinstance(index, int) or isinstance(index, bool) or not 0 <= index < len(self._entries):
            logger.warning("Prompt index %r out of range (library has %d entries)", index, len(self._entries))
            return False
        del self._entries[index]
        self._persist()
        return True

    def all(self) -> List[PromptEntry]:
        """All entries in library order."""
        return list(self._entries)

    def matching(self, tags: Iterable[str]) -> List[PromptEntry]:
        """Entries sharing at least one tag with `tags`, in library order."""
        wanted = normalize_tags(tags)
        if not wanted:
            return []
        return [entry for entry in self._entries if entry.tags & wanted]

    def _persist(self) -> None:
        if self._repository is not None:
            self._repository.save_prompts(self._entries)
