"""
News announcements.
"""

from src.modules.news.service import NewsRepository, NewsService, serialize_news

__all__ = ["NewsService", "NewsRepository", "serialize_news"]
