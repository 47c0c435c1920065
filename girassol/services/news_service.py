"""
AI news feed service.
Serves the cached feed for the current day and refreshes it through the AI
service otherwise.
"""
import logging
from datetime import datetime
from typing import List, Optional

from pydantic import ValidationError

from girassol.constants import KEY_NEWS_CACHE
from girassol.schemas import AiNewsItem, NewsCache
from girassol.services.ai_service import AIService, news_guard

logger = logging.getLogger("girassol.news")


def backfill_links(items: List[dict], grounding_urls: List[str]) -> List[dict]:
    """
    Fill missing item URLs from grounding links.

    An item at index n that has no URL takes the grounding link at index n
    (absolute position in the list, not a count of URL-less items). Items
    past the end of the grounding list keep no URL.
    """
    for index, item in enumerate(items):
        if not item.get("url") and index < len(grounding_urls):
            item["url"] = grounding_urls[index]
    return items


class NewsService:
    """Service for the AI news feed"""

    def __init__(self, store, ai_service: Optional[AIService] = None, now: Optional[datetime] = None):
        self.store = store
        self.ai_service = ai_service
        self.now = now

    def get_cache(self) -> Optional[NewsCache]:
        raw = self.store.get(KEY_NEWS_CACHE, None)
        if raw is None:
            return None
        try:
            return NewsCache.model_validate(raw)
        except ValidationError as e:
            logger.warning(f"Ignoring invalid news cache: {e}")
            return None

    def is_cache_fresh(self, cache: Optional[NewsCache]) -> bool:
        """A cache is fresh when it was written on the current calendar day"""
        if cache is None or not cache.items:
            return False
        try:
            cached_at = datetime.fromisoformat(cache.date)
        except ValueError:
            return False
        return cached_at.date() == (self.now or datetime.now()).date()

    def get_news(self, force: bool = False) -> List[AiNewsItem]:
        """
        Get the latest AI news.

        Args:
            force: Skip the same-day cache and ask the AI service

        Returns:
            News items; empty when a refresh fails (the previous cache is
            kept for the next call)
        """
        cache = self.get_cache()
        if not force and self.is_cache_fresh(cache):
            return cache.items

        if self.ai_service is None:
            return []

        with news_guard.claim(KEY_NEWS_CACHE) as acquired:
            if not acquired:
                return cache.items if cache else []

            raw_items, grounding_urls = self.ai_service.fetch_latest_news()
            items = []
            for raw in backfill_links(raw_items, grounding_urls):
                try:
                    items.append(AiNewsItem.model_validate(raw))
                except ValidationError as e:
                    logger.warning(f"Skipping invalid news item: {e}")

            if not items:
                logger.info("News refresh returned nothing - cache kept")
                return []

            fresh = NewsCache(items=items, date=(self.now or datetime.now()).isoformat())
            self.store.set(KEY_NEWS_CACHE, fresh.to_storage())
            return items
