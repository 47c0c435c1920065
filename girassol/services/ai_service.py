"""
AI text generation service.
Wraps the OpenAI chat API for journal analysis, subtask suggestions and
the news feed. Calls are one-shot: no retry, no cancellation. Every public
method degrades to a fixed fallback instead of raising.
"""
import json
import logging
import threading
from contextlib import contextmanager
from typing import Any, List, Optional, Tuple

from openai import OpenAI, OpenAIError

from girassol.constants import (
    AI_API_KEY, AI_MODEL, AI_ANALYSIS_FALLBACK, AI_ANALYSIS_EMPTY,
    AI_ANALYSIS_NO_KEY, AI_NEWS_ITEM_LIMIT
)
from girassol.exceptions import AIServiceException

logger = logging.getLogger("girassol.ai")

SYSTEM_PROMPT = (
    "Você é o coach pessoal do app Girassol, focado em metas para 2026. "
    "Responda sempre em português do Brasil."
)

ANALYSIS_PROMPT = """Analise este diário de um usuário focado em metas para 2026.
Seja motivador, conciso e aja como um 'Life Coach' pessoal.
Dê um feedback curto (max 3 frases) e uma sugestão prática.

Diário: "{entry}\""""

SUBTASKS_PROMPT = """Gere uma lista de 3 a 5 subtarefas práticas e curtas para completar a seguinte tarefa: "{title}".
Retorne APENAS um objeto JSON no formato {{"subtasks": ["Passo 1", "Passo 2"]}}."""

NEWS_PROMPT = """Pesquise as notícias mais recentes (últimas 24h a 48h) sobre Inteligência Artificial.
Selecione as {limit} mais importantes e impactantes.
Retorne APENAS um objeto JSON no formato {{"items": [...]}} onde cada item é:
{{
  "title": "Título da Notícia",
  "summary": "Resumo curto e direto em português (max 20 palavras)",
  "source": "Nome da Fonte",
  "date": "Data (ex: Hoje, Ontem)",
  "url": "Link para a notícia, ou vazio"
}}"""


class InFlightGuard:
    """Tracks entity IDs with a generation call in progress"""

    def __init__(self):
        self._lock = threading.Lock()
        self._active = set()

    @contextmanager
    def claim(self, key: str):
        """Yield True if key was free and is now held, False if already busy"""
        with self._lock:
            if key in self._active:
                acquired = False
            else:
                self._active.add(key)
                acquired = True
        try:
            yield acquired
        finally:
            if acquired:
                with self._lock:
                    self._active.discard(key)

    def is_active(self, key: str) -> bool:
        with self._lock:
            return key in self._active


analysis_guard = InFlightGuard()
subtask_guard = InFlightGuard()
news_guard = InFlightGuard()


def strip_code_fences(text: str) -> str:
    """Remove markdown ```json fences models sometimes add around JSON"""
    return text.replace("```json", "").replace("```", "").strip()


def extract_list(payload: Any, key: str) -> list:
    """Accept either a bare JSON array or an object wrapping one under key"""
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict) and isinstance(payload.get(key), list):
        return payload[key]
    raise ValueError(f"expected a list under '{key}'")


class AIService:
    """Service for generative AI requests"""

    def __init__(self, client: Optional[Any] = None, model: str = AI_MODEL, api_key: str = AI_API_KEY):
        self.model = model
        self.client = client
        if self.client is None and api_key:
            try:
                self.client = OpenAI(api_key=api_key)
            except OpenAIError as e:
                logger.error(f"AI client initialization failed: {e}")
                self.client = None

        self.enabled = self.client is not None
        if not self.enabled:
            logger.warning("AI service disabled (no API key)")

    def analyze_journal_entry(self, entry: str) -> str:
        """
        Ask for short coaching feedback on a journal entry.

        Returns:
            Analysis text, or a fixed apology when the call fails
        """
        if not self.enabled:
            return AI_ANALYSIS_NO_KEY

        try:
            text, _ = self._complete(ANALYSIS_PROMPT.format(entry=entry))
        except AIServiceException as e:
            logger.error(f"Journal analysis error: {e}")
            return AI_ANALYSIS_FALLBACK

        return text.strip() or AI_ANALYSIS_EMPTY

    def generate_subtasks(self, title: str) -> List[str]:
        """
        Suggest practical subtasks for a todo.

        Returns:
            Subtask texts, empty when the call fails
        """
        if not self.enabled:
            return []

        try:
            text, _ = self._complete(SUBTASKS_PROMPT.format(title=title), json_mode=True)
            if not text.strip():
                return []
            items = extract_list(json.loads(strip_code_fences(text)), "subtasks")
        except (AIServiceException, ValueError) as e:
            logger.error(f"Subtask generation error: {e}")
            return []

        return [str(item).strip() for item in items if str(item).strip()]

    def fetch_latest_news(self) -> Tuple[List[dict], List[str]]:
        """
        Ask for the latest AI news.

        Returns:
            Tuple of (news item dicts, grounding source URLs); both empty
            when the call fails
        """
        if not self.enabled:
            return [], []

        try:
            text, sources = self._complete(
                NEWS_PROMPT.format(limit=AI_NEWS_ITEM_LIMIT), json_mode=True
            )
            items = extract_list(json.loads(strip_code_fences(text) or "[]"), "items")
        except (AIServiceException, ValueError) as e:
            logger.error(f"News fetch error: {e}")
            return [], []

        return [item for item in items if isinstance(item, dict)], sources

    def _complete(self, prompt: str, json_mode: bool = False) -> Tuple[str, List[str]]:
        """
        Run one chat completion.

        Returns:
            Tuple of (answer text, cited URLs)

        Raises:
            AIServiceException: On any client error or empty answer
        """
        kwargs = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
        }
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        try:
            response = self.client.chat.completions.create(**kwargs)
        except OpenAIError as e:
            raise AIServiceException("completion", str(e)) from e

        if not response.choices:
            raise AIServiceException("completion", "no choices returned")

        message = response.choices[0].message
        sources = []
        for annotation in getattr(message, "annotations", None) or []:
            citation = getattr(annotation, "url_citation", None)
            if getattr(annotation, "type", None) == "url_citation" and citation is not None:
                sources.append(citation.url)

        return message.content or "", sources
