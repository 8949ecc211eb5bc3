from psychindex.api.routes.conditions import router as conditions_router
from psychindex.api.routes.entities import router as entities_router
from psychindex.api.routes.health import router as health_router
from psychindex.api.routes.providers import router as providers_router
from psychindex.api.routes.resources import router as resources_router
from psychindex.api.routes.search import router as search_router
from psychindex.api.routes.stats import router as stats_router
from psychindex.api.routes.sync import router as sync_router
from psychindex.api.routes.treatments import router as treatments_router

__all__ = [
    "conditions_router",
    "entities_router",
    "health_router",
    "providers_router",
    "resources_router",
    "search_router",
    "stats_router",
    "sync_router",
    "treatments_router",
]
