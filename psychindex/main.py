from pathlib import Path
from contextlib import asynccontextmanager

from alembic import command
from alembic.config import Config
from fastapi import FastAPI

from psychindex.api.routes import conditions, entities, health, providers, resources, search, stats, sync, treatments
from psychindex.content.discovery import CategoryCatalog
from psychindex.content.loaders import condition_loader, resource_loader, treatment_loader
from psychindex.core.config import settings
from psychindex.core.logging import get_logger
from psychindex.services.resource_index import ResourceIndex


log = get_logger("app")


def run_migrations() -> None:
    """Execute Alembic migrations programmatically on startup."""
    project_root = Path(__file__).resolve().parent.parent
    alembic_cfg = Config(str(project_root / "alembic.ini"))
    alembic_cfg.set_main_option("script_location", str(project_root / "alembic"))
    alembic_cfg.set_main_option("sqlalchemy.url", settings.DATABASE_URL)
    log.info("Running Alembic migrations to head")
    command.upgrade(alembic_cfg, "head")
    log.info("Alembic migrations applied")


def init_content(app: FastAPI) -> None:
    """Category catalogs and slug loaders, one set per content root."""
    treatment_catalog = CategoryCatalog(settings.data_path("treatments"))
    condition_catalog = CategoryCatalog(settings.data_path("conditions"))
    resource_catalog = CategoryCatalog(settings.data_path("resources"))

    app.state.treatment_loader = treatment_loader(treatment_catalog)
    app.state.condition_loader = condition_loader(condition_catalog)
    app.state.resource_loader = resource_loader(resource_catalog, Path(settings.KNOWLEDGE_HUB_DIR))
    app.state.resource_index = ResourceIndex(Path(settings.RESOURCE_INDEX_PATH), ttl_seconds=settings.RESOURCE_INDEX_TTL_SECONDS)

    log.info(
        f"Content roots: treatments={treatment_catalog.categories()} "
        f"conditions={condition_catalog.categories()} resources={resource_catalog.categories()}"
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Log environment mode
    log.info(f"Starting application in {settings.ENV.upper()} mode")
    if settings.is_production:
        log.info("Production mode: Debug disabled, docs disabled, stricter logging")
    else:
        log.info("Development mode: Debug enabled, docs available")

    # Startup
    if settings.RUN_MIGRATIONS:
        try:
            run_migrations()
        except Exception:
            log.exception("Failed to apply migrations on startup")
            raise
    else:
        log.info("Skipping migrations (RUN_MIGRATIONS=false)")

    init_content(app)

    yield

    # Shutdown
    log.info("Application shutdown complete")


# Configure FastAPI based on environment
app = FastAPI(
    title="PsychIndex Content API",
    description="Mental-health treatments, conditions, resources and provider search",
    version="1.0.0",
    lifespan=lifespan,
    # Disable docs in production for security
    docs_url="/docs" if settings.docs_enabled else None,
    redoc_url="/redoc" if settings.docs_enabled else None,
    openapi_url="/openapi.json" if settings.docs_enabled else None,
    # Debug mode only in development
    debug=settings.debug_enabled,
)


app.include_router(providers.router)
app.include_router(resources.router)
app.include_router(treatments.router)
app.include_router(conditions.router)
app.include_router(entities.router)
app.include_router(search.router)
app.include_router(sync.router)
app.include_router(health.router)
app.include_router(stats.router)
