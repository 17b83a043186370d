"""
News Service
============

Purpose
-------
Announcements shown in the game client.

Domain
------
- Titles are unique
- List returns every entry, newest first
- Update merges non-empty fields; a missing entry is NOT_FOUND
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from src.core.logging.logger import get_logger
from src.core.validation.input_validator import MAX_TITLE_LENGTH, InputValidator
from src.database.models import News
from src.modules.shared.base_repository import BaseRepository
from src.modules.shared.base_service import BaseService
from src.modules.shared.exceptions import AlreadyExistsError, NotFoundError

if TYPE_CHECKING:
    from logging import Logger

    from src.core.database.service import DatabaseService

MAX_IMAGE_LINK_LENGTH = 512

TITLE_TAKEN = "News with such title already exists"


class NewsRepository(BaseRepository[News]):
    def __init__(self) -> None:
        super().__init__(News, get_logger(f"{__name__}.NewsRepository"))


def serialize_news(news: News) -> Dict[str, Any]:
    return {
        "id": news.id,
        "title": news.title,
        "description": news.description,
        "image_link": news.image_link,
        "created_at": news.created_at,
    }


class NewsService(BaseService):
    """
    Public Methods
    --------------
    - create() / read() / update() / list()
    """

    def __init__(self, db: DatabaseService, logger: Logger) -> None:
        super().__init__(db, logger)
        self._news = NewsRepository()

    async def create(
        self, title: str, description: str = "", image_link: str = ""
    ) -> Dict[str, Any]:
        title = InputValidator.validate_string(title, "title", max_length=MAX_TITLE_LENGTH)
        description = InputValidator.optional_string(description, "description") or ""
        image_link = (
            InputValidator.optional_string(
                image_link, "image_link", max_length=MAX_IMAGE_LINK_LENGTH
            )
            or ""
        )

        self.log_operation("create_news", title=title)

        try:
            async with self.db.get_transaction() as session:
                if await self._news.exists(session, News.title == title):
                    raise AlreadyExistsError("News", TITLE_TAKEN)

                news = self._news.add(
                    session,
                    News(title=title, description=description, image_link=image_link),
                )
                await self._news.flush(session)
                await session.refresh(news)
                result = serialize_news(news)

        except IntegrityError as exc:
            raise AlreadyExistsError("News", TITLE_TAKEN) from exc
        except SQLAlchemyError as exc:
            raise self.storage_failure(
                "create_news", exc, "Could not create news", title=title
            ) from exc

        self.log.info("News created", extra={"news_id": result["id"], "title": title})
        return result

    async def read(self, news_id: str) -> Dict[str, Any]:
        news_id = InputValidator.validate_identifier(news_id)
        self.log_operation("read_news", news_id=news_id)

        try:
            async with self.db.get_session() as session:
                news = await self._news.get(session, news_id)
                if news is None:
                    raise NotFoundError("News", news_id)
                return serialize_news(news)
        except SQLAlchemyError as exc:
            raise self.storage_failure(
                "read_news", exc, "Could not read news", news_id=news_id
            ) from exc

    async def list(self) -> Dict[str, Any]:
        self.log_operation("list_news")

        try:
            async with self.db.get_session() as session:
                entries = await self._news.find_many_where(
                    session, order_by=[News.created_at.desc(), News.title]
                )
                return {"results": [serialize_news(news) for news in entries]}
        except SQLAlchemyError as exc:
            raise self.storage_failure("list_news", exc, "Could not list news") from exc

    async def update(
        self,
        news_id: str,
        title: Optional[str] = None,
        description: Optional[str] = None,
        image_link: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Raises:
            NotFoundError: entry does not exist
            AlreadyExistsError: another entry already uses the new title
        """
        news_id = InputValidator.validate_identifier(news_id)
        title = InputValidator.optional_string(title, "title", max_length=MAX_TITLE_LENGTH)
        description = InputValidator.optional_string(description, "description")
        image_link = InputValidator.optional_string(
            image_link, "image_link", max_length=MAX_IMAGE_LINK_LENGTH
        )

        self.log_operation("update_news", news_id=news_id)

        try:
            async with self.db.get_transaction() as session:
                news = await self._news.get(session, news_id, for_update=True)
                if news is None:
                    raise NotFoundError("News", news_id)

                if title and await self._news.exists(
                    session, News.title == title, News.id != news_id
                ):
                    raise AlreadyExistsError("News", TITLE_TAKEN)

                if title:
                    news.title = title
                if description:
                    news.description = description
                if image_link:
                    news.image_link = image_link

                await self._news.flush(session)
                result = serialize_news(news)

        except IntegrityError as exc:
            raise AlreadyExistsError("News", TITLE_TAKEN) from exc
        except SQLAlchemyError as exc:
            raise self.storage_failure(
                "update_news", exc, "Could not update news", news_id=news_id
            ) from exc

        self.log.info("News updated", extra={"news_id": news_id})
        return result
