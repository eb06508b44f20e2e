"""Infrastructure layer: concrete implementations of application ports."""

from prosopo.infrastructure.memory_repository import InMemoryCatalogRepository
from prosopo.infrastructure.persistence.neo4j_repository import (
    Neo4jCatalogRepository,
    ensure_catalog_constraints,
)
from prosopo.infrastructure.seed_loader import apply_seed, get_seed_path, load_seed

__all__ = [
    "InMemoryCatalogRepository",
    "Neo4jCatalogRepository",
    "apply_seed",
    "ensure_catalog_constraints",
    "get_seed_path",
    "load_seed",
]
