from psychindex.models.base import Base
from psychindex.models.entity import Entity, ENTITY_STATUSES, ENTITY_TYPES, TREATMENT_TYPES
from psychindex.models.links import ContentFile, EntityRelationship, UserInteraction
from psychindex.models.sync_runs import SyncRun

__all__ = [
    "Base",
    "Entity",
    "ENTITY_STATUSES",
    "ENTITY_TYPES",
    "TREATMENT_TYPES",
    "EntityRelationship",
    "ContentFile",
    "UserInteraction",
    "SyncRun",
]
