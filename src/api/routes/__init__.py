from src.api.routes.news import router as news_router
from src.api.routes.stats import router as stats_router
from src.api.routes.store_items import router as store_items_router
from src.api.routes.users import router as users_router

__all__ = ["users_router", "store_items_router", "stats_router", "news_router"]
