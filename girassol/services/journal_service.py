"""
Journal service.
Handles journal entries (newest first) and their cached AI analysis.
"""
import logging
from datetime import datetime
from typing import List, Optional
from uuid import uuid4

from pydantic import ValidationError

from girassol.constants import KEY_JOURNAL
from girassol.exceptions import JournalEntryNotFoundException, ValidationException
from girassol.schemas import JournalEntry
from girassol.services.ai_service import AIService, analysis_guard

logger = logging.getLogger("girassol.journal")


class JournalService:
    """Service for journal entries"""

    def __init__(self, store, ai_service: Optional[AIService] = None, now: Optional[datetime] = None):
        self.store = store
        self.ai_service = ai_service
        self.now = now

    def list_entries(self) -> List[JournalEntry]:
        return self._load()

    def get_entry(self, entry_id: str) -> JournalEntry:
        return self._find(self._load(), entry_id)

    def create_entry(self, content: str, mood: Optional[str] = None) -> JournalEntry:
        """Save a new entry at the top of the journal"""
        if not content or not content.strip():
            raise ValidationException("content", "must not be blank")

        entry = JournalEntry(
            id=uuid4().hex,
            date=(self.now or datetime.now()).isoformat(),
            content=content,
            mood=mood,
        )
        self._save([entry] + self._load())
        return entry

    def update_entry(self, entry_id: str, content: Optional[str] = None, mood: Optional[str] = None) -> JournalEntry:
        """
        Edit an entry in place.

        A cached analysis is kept even when the content changes.
        """
        if content is not None and not content.strip():
            raise ValidationException("content", "must not be blank")

        entries = self._load()
        entry = self._find(entries, entry_id)
        if content is not None:
            entry.content = content
        if mood is not None:
            entry.mood = mood
        self._save(entries)
        return entry

    def delete_entry(self, entry_id: str) -> None:
        entries = self._load()
        entry = self._find(entries, entry_id)
        self._save([e for e in entries if e.id != entry.id])

    def analyze_entry(self, entry_id: str) -> JournalEntry:
        """
        Attach AI feedback to an entry.

        An existing analysis is returned as-is and never regenerated. While
        an analysis for the entry is in progress, further requests return
        the entry without starting a second call.

        Raises:
            JournalEntryNotFoundException: If no entry has this ID
        """
        entry = self._find(self._load(), entry_id)
        if entry.ai_analysis or self.ai_service is None:
            return entry

        with analysis_guard.claim(entry_id) as acquired:
            if not acquired:
                logger.info(f"Analysis already running for entry {entry_id}")
                return entry

            analysis = self.ai_service.analyze_journal_entry(entry.content)

            entries = self._load()
            entry = self._find(entries, entry_id)
            if not entry.ai_analysis:
                entry.ai_analysis = analysis
                self._save(entries)
            return entry

    def _find(self, entries: List[JournalEntry], entry_id: str) -> JournalEntry:
        for entry in entries:
            if entry.id == entry_id:
                return entry
        raise JournalEntryNotFoundException(entry_id)

    def _load(self) -> List[JournalEntry]:
        entries = []
        for raw in self.store.get_list(KEY_JOURNAL):
            try:
                entries.append(JournalEntry.model_validate(raw))
            except ValidationError as e:
                logger.warning(f"Skipping invalid journal record: {e}")
        return entries

    def _save(self, entries: List[JournalEntry]) -> None:
        self.store.set(KEY_JOURNAL, [e.to_storage() for e in entries])
