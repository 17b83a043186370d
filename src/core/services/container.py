"""
Explicit wiring of the domain services.

The app factory builds one container and the routes reach services through
it (``container.purchase.buy_by_user(...)``). Every service gets its own
class-named logger. Touching a service before ``initialize()`` raises.
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Any, Dict, Optional

from src.core.config.config import Config
from src.core.logging.logger import get_logger
from src.modules.news import NewsService
from src.modules.stats import UsersStatsService
from src.modules.store import EquipService, PurchaseService, StoreItemsService
from src.modules.users import CurrenciesService, UsersService

if TYPE_CHECKING:
    from logging import Logger

    from src.core.auth.tokens import TokenIssuer
    from src.core.database.service import DatabaseService

SERVICE_CLASSES: Dict[str, type] = {
    "users": UsersService,
    "currencies": CurrenciesService,
    "store_items": StoreItemsService,
    "purchase": PurchaseService,
    "equip": EquipService,
    "stats": UsersStatsService,
    "news": NewsService,
}


class ServiceContainer:
    def __init__(
        self,
        db: DatabaseService,
        token_issuer: TokenIssuer,
        logger: Logger,
        service_version: Optional[str] = None,
    ) -> None:
        self._db = db
        self._token_issuer = token_issuer
        self._logger = logger
        self._service_version = service_version or Config.SERVICE_VERSION
        self._services: Dict[str, Any] = {}
        self._startup_seconds: Optional[float] = None

    @property
    def db(self) -> DatabaseService:
        return self._db

    @property
    def initialized(self) -> bool:
        return bool(self._services)

    def _build(self, cls: type) -> Any:
        logger = get_logger(f"{cls.__module__}.{cls.__name__}")
        if cls is UsersService:
            return UsersService(
                self._db, self._token_issuer, logger, service_version=self._service_version
            )
        return cls(db=self._db, logger=logger)

    async def initialize(self) -> None:
        if self._services:
            return

        started = time.perf_counter()
        services: Dict[str, Any] = {}
        for name, cls in SERVICE_CLASSES.items():
            try:
                services[name] = self._build(cls)
            except Exception:
                self._logger.critical(f"Could not build the {name} service", exc_info=True)
                raise

        self._services = services
        self._startup_seconds = round(time.perf_counter() - started, 3)
        self._logger.info(
            "Services ready",
            extra={"services": sorted(services), "startup_seconds": self._startup_seconds},
        )

    async def shutdown(self) -> None:
        if self._services:
            self._services = {}
            self._logger.info("Services released")

    async def health_check(self) -> Dict[str, Any]:
        return {
            "initialized": self.initialized,
            "service_count": len(self._services),
            "startup_seconds": self._startup_seconds,
            "database": await self._db.health_check() if self.initialized else False,
        }

    def _get(self, name: str) -> Any:
        try:
            return self._services[name]
        except KeyError:
            raise RuntimeError("ServiceContainer not initialized. Call initialize() first.") from None

    @property
    def users(self) -> UsersService:
        return self._get("users")

    @property
    def currencies(self) -> CurrenciesService:
        return self._get("currencies")

    @property
    def store_items(self) -> StoreItemsService:
        return self._get("store_items")

    @property
    def purchase(self) -> PurchaseService:
        return self._get("purchase")

    @property
    def equip(self) -> EquipService:
        return self._get("equip")

    @property
    def stats(self) -> UsersStatsService:
        return self._get("stats")

    @property
    def news(self) -> NewsService:
        return self._get("news")
