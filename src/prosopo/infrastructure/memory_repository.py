"""In-memory implementation of CatalogRepository (no DB)."""

import copy
import logging
import threading
from collections.abc import Callable
from datetime import datetime

from prosopo.application.dto import ChangeSet
from prosopo.domain import (
    ASSOCIATION_TYPES,
    LOOKUP_TYPES,
    Association,
    Lookup,
    Person,
    reference_fields,
)
from prosopo.infrastructure.save_path import check_persistable, stamp_persons, utcnow

logger = logging.getLogger(__name__)


def matches_search(person: Person, needle: str) -> bool:
    haystacks = (person.name, person.romanized_name or "")
    return any(needle in h.lower() for h in haystacks)


class InMemoryCatalogRepository:
    """Stores the catalog in dicts. Stored objects are copies; callers never share state with the store."""

    def __init__(self, clock: Callable[[], datetime] | None = None) -> None:
        self._clock = clock or utcnow
        self._lock = threading.Lock()
        self._persons: dict[str, Person] = {}
        self._rows: dict[str, dict[str, Association]] = {
            kind: {} for kind in ASSOCIATION_TYPES
        }
        self._lookups: dict[str, dict[str, Lookup]] = {kind: {} for kind in LOOKUP_TYPES}

    def commit(self, changes: ChangeSet) -> None:
        if changes.is_empty():
            return
        check_persistable(changes)
        with self._lock:
            stamp_persons(changes, self._clock())
            for person_id in changes.deleted_persons:
                self._persons.pop(person_id, None)
            for row in changes.deleted_associations.values():
                self._rows[row.kind].pop(row.id, None)
            for person, _ in changes.persons.values():
                self._persons[person.id] = copy.deepcopy(person)
            for row in changes.associations.values():
                self._rows[row.kind][row.id] = copy.deepcopy(row)
        logger.debug(
            "Committed %d person(s), %d row(s), %d deletion(s)",
            len(changes.persons),
            len(changes.associations),
            len(changes.deleted_associations) + len(changes.deleted_persons),
        )

    def get_person(self, person_id: str) -> Person | None:
        person = self._persons.get(person_id)
        return copy.deepcopy(person) if person is not None else None

    def list_persons(
        self,
        *,
        search: str | None = None,
        descending: bool = False,
        offset: int = 0,
        limit: int | None = None,
    ) -> list[Person]:
        people = self._filtered(search)
        people.sort(key=lambda p: (p.name.lower(), p.id), reverse=descending)
        end = None if limit is None else offset + limit
        return [copy.deepcopy(p) for p in people[offset:end]]

    def count_persons(self, *, search: str | None = None) -> int:
        return len(self._filtered(search))

    def _filtered(self, search: str | None) -> list[Person]:
        needle = (search or "").strip().lower()
        if not needle:
            return list(self._persons.values())
        return [p for p in self._persons.values() if matches_search(p, needle)]

    def get_association(self, kind: str, row_id: str) -> Association | None:
        row = self._rows.get(kind, {}).get(row_id)
        return copy.deepcopy(row) if row is not None else None

    def list_associations(
        self, kind: str, *, person_id: str | None = None
    ) -> list[Association]:
        rows = self._rows.get(kind, {}).values()
        return [
            copy.deepcopy(r)
            for r in rows
            if person_id is None or r.person_id == person_id
        ]

    def add_lookup(self, lookup: Lookup) -> None:
        self._lookups[lookup.kind][lookup.id] = lookup

    def get_lookup(self, kind: str, lookup_id: str) -> Lookup | None:
        return self._lookups.get(kind, {}).get(lookup_id)

    def find_lookup_by_name(self, kind: str, name: str) -> Lookup | None:
        needle = (name or "").strip().lower()
        for lookup in self._lookups.get(kind, {}).values():
            if lookup.name.lower() == needle:
                return lookup
        return None

    def list_lookups(self, kind: str) -> list[Lookup]:
        return sorted(self._lookups.get(kind, {}).values(), key=lambda lk: lk.name.lower())

    def delete_lookup(self, kind: str, lookup_id: str) -> bool:
        return self._lookups.get(kind, {}).pop(lookup_id, None) is not None

    def find_references(self, kind: str, lookup_id: str) -> list[str]:
        out = []
        for entity_kind, name in reference_fields(kind):
            if entity_kind in ASSOCIATION_TYPES:
                candidates = self._rows[entity_kind].values()
            else:
                candidates = self._lookups[entity_kind].values()
            out.extend(c.id for c in candidates if getattr(c, name) == lookup_id)
        return out
