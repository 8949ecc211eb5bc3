"""API dependencies"""

from typing import Generator

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from psychindex.content.loaders import ContentLoader
from psychindex.core.db import SessionLocal
from psychindex.services.entity_service import EntityService
from psychindex.services.provider_service import ProviderSearchService
from psychindex.services.resource_index import ResourceIndex


def get_db() -> Generator[Session, None, None]:
    """Database session per request"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# Loaders and the resource index are built once in the app lifespan and kept on app.state


def get_resource_loader(request: Request) -> ContentLoader:
    return request.app.state.resource_loader


def get_treatment_loader(request: Request) -> ContentLoader:
    return request.app.state.treatment_loader


def get_condition_loader(request: Request) -> ContentLoader:
    return request.app.state.condition_loader


def get_resource_index(request: Request) -> ResourceIndex:
    return request.app.state.resource_index


def get_entity_service(db: Session = Depends(get_db)) -> EntityService:
    return EntityService(db)


def get_provider_service(db: Session = Depends(get_db)) -> ProviderSearchService:
    return ProviderSearchService(db)
