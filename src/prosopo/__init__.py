"""
Prosopo core: clean-architecture layout.

- domain: entities (Person, association rows, lookups). No outer dependencies.
- application: use cases (CatalogService), ports (CatalogRepository), DTOs,
  and the AssociationSync that keeps both sides of a person link consistent.
- infrastructure: adapters (InMemoryCatalogRepository, Neo4jCatalogRepository)
  and the lookup seed loader.
"""

from prosopo.application import (
    AssociationSync,
    CatalogRepository,
    CatalogService,
    ChangeSet,
    Deleted,
    InUse,
    Invalid,
    NotFound,
    PersonPage,
)
from prosopo.domain import ASSOCIATION_TYPES, LOOKUP_TYPES, Association, Lookup, Person
from prosopo.infrastructure import InMemoryCatalogRepository, Neo4jCatalogRepository

__all__ = [
    "ASSOCIATION_TYPES",
    "LOOKUP_TYPES",
    "Association",
    "AssociationSync",
    "CatalogRepository",
    "CatalogService",
    "ChangeSet",
    "Deleted",
    "InMemoryCatalogRepository",
    "InUse",
    "Invalid",
    "Lookup",
    "Neo4jCatalogRepository",
    "NotFound",
    "Person",
    "PersonPage",
]
