"""Neo4j implementation of CatalogRepository.
Graph: (:Person)-[:OWNS]->(:Association {kind}) for association rows; lookups are
(:Lookup {kind}) nodes referenced by id properties on rows.
The Person node keeps its ordered member ids as a JSON `collections` property.
A commit runs all of a ChangeSet's writes in one write transaction.
"""

import json
import logging
import time
from collections.abc import Callable
from dataclasses import fields
from datetime import date, datetime

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

_DATE_FIELDS = {"start_date", "end_date", "achieved_on"}
_DATETIME_FIELDS = {"checked_at", "created_at", "updated_at"}

_CONSTRAINT_QUERIES = (
    "CREATE CONSTRAINT person_id_unique IF NOT EXISTS "
    "FOR (p:Person) REQUIRE p.id IS UNIQUE",
    "CREATE CONSTRAINT association_id_unique IF NOT EXISTS "
    "FOR (a:Association) REQUIRE a.id IS UNIQUE",
    "CREATE CONSTRAINT lookup_id_unique IF NOT EXISTS "
    "FOR (l:Lookup) REQUIRE l.id IS UNIQUE",
)

_MERGE_PERSON = """
MERGE (p:Person {id: $id})
SET p = $props
"""

_DELETE_PERSON = """
MATCH (p:Person {id: $id})
DETACH DELETE p
"""

_MERGE_ASSOCIATION = """
MERGE (a:Association {id: $id})
ON CREATE SET a.inserted = $inserted
WITH a, a.inserted AS inserted
SET a = $props, a.inserted = inserted
WITH a
OPTIONAL MATCH (:Person)-[old:OWNS]->(a)
DELETE old
WITH DISTINCT a
MATCH (p:Person {id: $person_id})
MERGE (p)-[:OWNS]->(a)
"""

_DELETE_ASSOCIATION = """
MATCH (a:Association {id: $id})
DETACH DELETE a
"""

_PERSON_FILTER = """
MATCH (p:Person)
WHERE $needle IS NULL
   OR toLower(p.name) CONTAINS $needle
   OR toLower(coalesce(p.romanized_name, '')) CONTAINS $needle
"""

_LIST_PERSONS_ASC = (
    _PERSON_FILTER + "RETURN p ORDER BY toLower(p.name), p.id SKIP $offset LIMIT $limit"
)
_LIST_PERSONS_DESC = (
    _PERSON_FILTER
    + "RETURN p ORDER BY toLower(p.name) DESC, p.id DESC SKIP $offset LIMIT $limit"
)
_COUNT_PERSONS = _PERSON_FILTER + "RETURN count(p) AS n"

_GET_ASSOCIATION = """
MATCH (a:Association {id: $id, kind: $kind})
RETURN a
"""

_LIST_ASSOCIATIONS = """
MATCH (a:Association {kind: $kind})
WHERE $person_id IS NULL OR a.person_id = $person_id
RETURN a
ORDER BY a.inserted, a.id
"""

_MERGE_LOOKUP = """
MERGE (l:Lookup {id: $id})
SET l = $props
"""

_GET_LOOKUP = """
MATCH (l:Lookup {id: $id, kind: $kind})
RETURN l
"""

_FIND_LOOKUP_BY_NAME = """
MATCH (l:Lookup {kind: $kind})
WHERE toLower(l.name) = toLower($name)
RETURN l
LIMIT 1
"""

_LIST_LOOKUPS = """
MATCH (l:Lookup {kind: $kind})
RETURN l
ORDER BY toLower(l.name)
"""

_DELETE_LOOKUP = """
MATCH (l:Lookup {id: $id, kind: $kind})
DELETE l
RETURN 1 AS ok
"""

_ASSOCIATIONS_REFERENCING = """
MATCH (a:Association {kind: $kind})
WHERE a[$field] = $id
RETURN a.id AS id
"""

_LOOKUPS_REFERENCING = """
MATCH (l:Lookup {kind: $kind})
WHERE l[$field] = $id
RETURN l.id AS id
"""

# Neo4j has no LIMIT null; this stands in for "no limit".
_NO_LIMIT = 2**62


def ensure_catalog_constraints(driver) -> None:
    """Create unique constraints on Person, Association and Lookup ids if missing."""
    with driver.session() as session:
        for query in _CONSTRAINT_QUERIES:
            session.run(query)


def _to_prop(value):
    if isinstance(value, datetime | date):
        return value.isoformat()
    return value


def _from_prop(name: str, value):
    if value is None:
        return None
    if name in _DATE_FIELDS:
        return date.fromisoformat(value)
    if name in _DATETIME_FIELDS:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    return value


def _entity_props(entity) -> dict:
    props = {f.name: _to_prop(getattr(entity, f.name)) for f in fields(entity)}
    props["kind"] = entity.kind
    return props


def _person_props(person: Person) -> dict:
    return {
        "id": person.id,
        "name": person.name,
        "romanized_name": person.romanized_name,
        "created_at": _to_prop(person.created_at),
        "updated_at": _to_prop(person.updated_at),
        "collections": json.dumps(person.collections),
    }


def _node_to_person(node) -> Person:
    props = dict(node.items())
    return Person(
        id=props["id"],
        name=props["name"],
        romanized_name=props.get("romanized_name"),
        created_at=_from_prop("created_at", props.get("created_at")),
        updated_at=_from_prop("updated_at", props.get("updated_at")),
        collections=json.loads(props.get("collections") or "{}"),
    )


def _node_to_entity(node, types: dict[str, type]):
    props = dict(node.items())
    cls = types[props["kind"]]
    return cls(**{f.name: _from_prop(f.name, props.get(f.name)) for f in fields(cls)})


def _apply_changes(tx, changes: ChangeSet) -> None:
    for person_id in changes.deleted_persons:
        tx.run(_DELETE_PERSON, id=person_id)
    for row in changes.deleted_associations.values():
        tx.run(_DELETE_ASSOCIATION, id=row.id)
    for person, _ in changes.persons.values():
        tx.run(_MERGE_PERSON, id=person.id, props=_person_props(person))
    # Rows created in this commit keep their order after earlier rows.
    base = time.time_ns()
    for i, row in enumerate(changes.associations.values()):
        tx.run(
            _MERGE_ASSOCIATION,
            id=row.id,
            person_id=row.person_id,
            props=_entity_props(row),
            inserted=base + i,
        )


class Neo4jCatalogRepository:
    """Stores the catalog in Neo4j. Association rows are owned through OWNS relationships."""

    def __init__(
        self, driver: object, clock: Callable[[], datetime] | None = None
    ) -> None:
        self._driver = driver
        self._clock = clock or utcnow

    def commit(self, changes: ChangeSet) -> None:
        if changes.is_empty():
            return
        check_persistable(changes)
        stamp_persons(changes, self._clock())
        with self._driver.session() as session:
            session.execute_write(_apply_changes, changes)
        logger.debug(
            "Committed %d person(s), %d row(s), %d deletion(s)",
            len(changes.persons),
            len(changes.associations),
            len(changes.deleted_associations) + len(changes.deleted_persons),
        )

    def get_person(self, person_id: str) -> Person | None:
        with self._driver.session() as session:
            record = session.run(
                "MATCH (p:Person {id: $id}) RETURN p", id=person_id
            ).single()
        if not record:
            return None
        return _node_to_person(record["p"])

    def list_persons(
        self,
        *,
        search: str | None = None,
        descending: bool = False,
        offset: int = 0,
        limit: int | None = None,
    ) -> list[Person]:
        query = _LIST_PERSONS_DESC if descending else _LIST_PERSONS_ASC
        with self._driver.session() as session:
            result = session.run(
                query,
                needle=_needle(search),
                offset=offset,
                limit=_NO_LIMIT if limit is None else limit,
            )
            return [_node_to_person(rec["p"]) for rec in result]

    def count_persons(self, *, search: str | None = None) -> int:
        with self._driver.session() as session:
            record = session.run(_COUNT_PERSONS, needle=_needle(search)).single()
        return record["n"] if record else 0

    def get_association(self, kind: str, row_id: str) -> Association | None:
        with self._driver.session() as session:
            record = session.run(_GET_ASSOCIATION, id=row_id, kind=kind).single()
        if not record:
            return None
        return _node_to_entity(record["a"], ASSOCIATION_TYPES)

    def list_associations(
        self, kind: str, *, person_id: str | None = None
    ) -> list[Association]:
        with self._driver.session() as session:
            result = session.run(_LIST_ASSOCIATIONS, kind=kind, person_id=person_id)
            return [_node_to_entity(rec["a"], ASSOCIATION_TYPES) for rec in result]

    def add_lookup(self, lookup: Lookup) -> None:
        with self._driver.session() as session:
            session.run(_MERGE_LOOKUP, id=lookup.id, props=_entity_props(lookup))

    def get_lookup(self, kind: str, lookup_id: str) -> Lookup | None:
        with self._driver.session() as session:
            record = session.run(_GET_LOOKUP, id=lookup_id, kind=kind).single()
        if not record:
            return None
        return _node_to_entity(record["l"], LOOKUP_TYPES)

    def find_lookup_by_name(self, kind: str, name: str) -> Lookup | None:
        with self._driver.session() as session:
            record = session.run(
                _FIND_LOOKUP_BY_NAME, kind=kind, name=(name or "").strip()
            ).single()
        if not record:
            return None
        return _node_to_entity(record["l"], LOOKUP_TYPES)

    def list_lookups(self, kind: str) -> list[Lookup]:
        with self._driver.session() as session:
            result = session.run(_LIST_LOOKUPS, kind=kind)
            return [_node_to_entity(rec["l"], LOOKUP_TYPES) for rec in result]

    def delete_lookup(self, kind: str, lookup_id: str) -> bool:
        with self._driver.session() as session:
            result = session.run(_DELETE_LOOKUP, id=lookup_id, kind=kind)
            return result.single() is not None

    def find_references(self, kind: str, lookup_id: str) -> list[str]:
        out = []
        with self._driver.session() as session:
            for entity_kind, name in reference_fields(kind):
                query = (
                    _ASSOCIATIONS_REFERENCING
                    if entity_kind in ASSOCIATION_TYPES
                    else _LOOKUPS_REFERENCING
                )
                result = session.run(query, kind=entity_kind, field=name, id=lookup_id)
                out.extend(rec["id"] for rec in result)
        return out


def _needle(search: str | None) -> str | None:
    return (search or "").strip().lower() or None
