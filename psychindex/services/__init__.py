# Services package
from psychindex.services.entity_service import EntityService
from psychindex.services.entity_store import EntityStore, SqlEntityStore, UpsertOutcome
from psychindex.services.provider_service import ProviderSearchService
from psychindex.services.resource_index import ResourceIndex
from psychindex.services.sync_service import ContentSyncService, SyncOptions, SyncReport

__all__ = [
    "ContentSyncService",
    "EntityService",
    "EntityStore",
    "ProviderSearchService",
    "ResourceIndex",
    "SqlEntityStore",
    "SyncOptions",
    "SyncReport",
    "UpsertOutcome",
]
