"""Application layer: use cases, ports, and DTOs. Depends only on domain."""

from prosopo.application.association_sync import AssociationSync
from prosopo.application.catalog_service import CatalogService
from prosopo.application.dto import (
    ChangeSet,
    Deleted,
    InUse,
    Invalid,
    NotFound,
    PersonPage,
)
from prosopo.application.ports import CatalogRepository

__all__ = [
    "AssociationSync",
    "CatalogRepository",
    "CatalogService",
    "ChangeSet",
    "Deleted",
    "InUse",
    "Invalid",
    "NotFound",
    "PersonPage",
]
