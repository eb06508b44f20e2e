"""Application ports (interfaces). Implemented by infrastructure adapters."""

from typing import Protocol

from prosopo.application.dto import ChangeSet
from prosopo.domain import Association, Lookup, Person


class CatalogRepository(Protocol):
    """Persists persons, their association rows and the lookup rows they reference."""

    def commit(self, changes: ChangeSet) -> None:
        """Apply all writes atomically. Touched persons are stamped with the current time first."""
        ...

    def get_person(self, person_id: str) -> Person | None:
        """Return the person with the given id, or None."""
        ...

    def list_persons(
        self,
        *,
        search: str | None = None,
        descending: bool = False,
        offset: int = 0,
        limit: int | None = None,
    ) -> list[Person]:
        """Return persons ordered by name, filtered by a case-insensitive name/romanized name match."""
        ...

    def count_persons(self, *, search: str | None = None) -> int:
        ...

    def get_association(self, kind: str, row_id: str) -> Association | None:
        ...

    def list_associations(
        self, kind: str, *, person_id: str | None = None
    ) -> list[Association]:
        """Return rows of one kind, optionally only those owned by person_id."""
        ...

    def add_lookup(self, lookup: Lookup) -> None:
        ...

    def get_lookup(self, kind: str, lookup_id: str) -> Lookup | None:
        ...

    def find_lookup_by_name(self, kind: str, name: str) -> Lookup | None:
        ...

    def list_lookups(self, kind: str) -> list[Lookup]:
        ...

    def delete_lookup(self, kind: str, lookup_id: str) -> bool:
        """Delete a lookup. Returns False if not found."""
        ...

    def find_references(self, kind: str, lookup_id: str) -> list[str]:
        """Return ids of rows (associations or lookups) referencing the lookup."""
        ...
