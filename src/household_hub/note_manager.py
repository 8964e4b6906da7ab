"""Shared notes for Household Hub."""

from .cache import QueryCache
from .errors import RecordNotFoundError, require_text
from .gateway import Collection, GatewayProtocol, Order, eq
from .models import Note


class NoteManager:
    """Manages household quick notes."""

    def __init__(
        self,
        gateway: GatewayProtocol,
        household_id: str,
        user_id: str | None = None,
        cache: QueryCache | None = None,
    ):
        self.gateway = gateway
        self.household_id = household_id
        self.user_id = user_id
        self.cache = cache or QueryCache()

    def get_notes(self, limit: int | None = None) -> list[Note]:
        """Notes of the household, newest first."""
        return self.cache.get_or_fetch(
            ("notes", self.household_id, limit),
            [Collection.NOTES],
            lambda: [
                Note.model_validate(row)
                for row in self.gateway.select(
                    Collection.NOTES,
                    [eq("household_id", self.household_id)],
                    order=[Order("created_at", descending=True)],
                    limit=limit,
                )
            ],
        )

    def add_note(self, content: str, is_private: bool = False) -> Note:
        """Add a note.

        Args:
            content: Note body, trimmed before saving
            is_private: Whether only the author should see it

        Returns:
            The created Note

        Raises:
            ValidationError: If the content is empty
        """
        content = require_text(content, "Note")
        rows = self.gateway.insert(
            Collection.NOTES,
            [
                {
                    "household_id": self.household_id,
                    "content": content,
                    "created_by": self.user_id,
                    "is_private": is_private,
                }
            ],
        )
        self.cache.invalidate(Collection.NOTES)
        return Note.model_validate(rows[0])

    def remove_note(self, note_id: str) -> Note:
        """Delete a note.

        Raises:
            RecordNotFoundError: If the note is not in this household
        """
        rows = self.gateway.select(
            Collection.NOTES, [eq("id", note_id), eq("household_id", self.household_id)], limit=1
        )
        if not rows:
            raise RecordNotFoundError("Note", note_id)

        self.gateway.delete(Collection.NOTES, [eq("id", note_id)])
        self.cache.invalidate(Collection.NOTES)
        return Note.model_validate(rows[0])
