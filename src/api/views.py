"""JSON-LD projections of catalog entities.

Each function returns a plain dict for one serialization context: the create
view holds only the writable person fields, read views hold the full
representation with collections as IRIs and lookups embedded.
"""

from dataclasses import fields
from datetime import date, datetime

from pydantic.alias_generators import to_camel

from prosopo.domain import ASSOCIATION_TYPES, Association, Lookup, Person

PERSON_COLLECTION = "people"


def iri(kind: str, entity_id: str) -> str:
    return f"/{kind}/{entity_id}"


def parse_iri(value: str, kind: str) -> str:
    """Return the id from an IRI like /people/<id>, or the value itself when it is a bare id."""
    value = (value or "").strip()
    if not value:
        raise ValueError(f"Empty reference to {kind}.")
    if not value.startswith("/"):
        return value
    prefix = f"/{kind}/"
    if not value.startswith(prefix) or len(value) == len(prefix):
        raise ValueError(f"'{value}' is not a {kind} IRI.")
    entity_id = value[len(prefix):]
    if "/" in entity_id:
        raise ValueError(f"'{value}' is not a {kind} IRI.")
    return entity_id


def _json_value(value):
    if isinstance(value, datetime | date):
        return value.isoformat()
    if isinstance(value, tuple):
        return list(value)
    return value


def person_create_view(person: Person) -> dict:
    """Writable fields of a person, as a client sends them on create or update."""
    return {
        "name": person.name,
        "romanizedName": person.romanized_name,
    }


def person_read_view(person: Person) -> dict:
    view = {
        "@id": iri(PERSON_COLLECTION, person.id),
        "@type": "Person",
        "id": person.id,
        **person_create_view(person),
        "createdAt": _json_value(person.created_at),
        "updatedAt": _json_value(person.updated_at),
    }
    for kind in ASSOCIATION_TYPES:
        view[to_camel(kind)] = [iri(kind, row_id) for row_id in person.members(kind)]
    return view


def lookup_read_view(lookup: Lookup) -> dict:
    view = {"@id": iri(lookup.kind, lookup.id), "@type": type(lookup).__name__}
    for f in fields(lookup):
        if f.name in lookup.refs:
            target, _ = lookup.refs[f.name]
            ref_id = getattr(lookup, f.name)
            view[to_camel(f.name.removesuffix("_id"))] = iri(target, ref_id) if ref_id else None
        else:
            view[to_camel(f.name)] = _json_value(getattr(lookup, f.name))
    return view


def association_read_view(
    row: Association, lookups: dict[str, Lookup | None] | None = None
) -> dict:
    """Full row view. lookups maps reference field -> resolved lookup, embedded when present."""
    lookups = lookups or {}
    view = {
        "@id": iri(row.kind, row.id),
        "@type": type(row).__name__,
        "id": row.id,
        "person": iri(PERSON_COLLECTION, row.person_id) if row.person_id else None,
    }
    for f in fields(row):
        if f.name in ("id", "person_id"):
            continue
        value = getattr(row, f.name)
        if f.name in row.refs:
            key = to_camel(f.name.removesuffix("_id"))
            lookup = lookups.get(f.name)
            if lookup is not None:
                view[key] = lookup_read_view(lookup)
            else:
                target, _ = row.refs[f.name]
                view[key] = iri(target, value) if value else None
        else:
            view[to_camel(f.name)] = _json_value(value)
    return view


def collection_view(
    kind: str, type_name: str, members: list[dict], total: int | None = None
) -> dict:
    return {
        "@context": f"/contexts/{type_name}",
        "@id": f"/{kind}",
        "@type": "hydra:Collection",
        "hydra:member": members,
        "hydra:totalItems": len(members) if total is None else total,
    }
