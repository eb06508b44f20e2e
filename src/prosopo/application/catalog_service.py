"""Catalog use cases: persons, their association rows, and lookups."""

import dataclasses
import logging
from typing import Any

from prosopo.application.association_sync import AssociationSync
from prosopo.application.dto import (
    ChangeSet,
    Deleted,
    InUse,
    Invalid,
    NotFound,
    PersonPage,
)
from prosopo.application.ports import CatalogRepository
from prosopo.domain import (
    ASSOCIATION_TYPES,
    LOOKUP_TYPES,
    Association,
    Lookup,
    Person,
    PersonPicture,
)

logger = logging.getLogger(__name__)

PERSON_KIND = "people"
DEFAULT_PAGE_SIZE = 30


class CatalogService:
    """Validates writes before any mutation and commits each one as a single ChangeSet."""

    def __init__(
        self, repository: CatalogRepository, *, page_size: int = DEFAULT_PAGE_SIZE
    ) -> None:
        self._repo = repository
        self._page_size = page_size

    # --- persons ---

    def create_person(
        self, name: str, romanized_name: str | None = None
    ) -> Person | Invalid:
        try:
            person = Person(name=name, romanized_name=romanized_name)
        except ValueError as e:
            return Invalid(reason=str(e))
        changes = ChangeSet()
        changes.save_person(person)
        self._repo.commit(changes)
        logger.info("Created person %s", person.id)
        return person

    def update_person(
        self, person_id: str, fields: dict[str, Any]
    ) -> Person | NotFound | Invalid:
        """Set name and/or romanized_name. Fields not given keep their value."""
        person = self._repo.get_person(person_id)
        if person is None:
            return NotFound(kind=PERSON_KIND, id=person_id)
        unknown = set(fields) - {"name", "romanized_name"}
        if unknown:
            return Invalid(reason=f"Unknown field(s): {', '.join(sorted(unknown))}.")
        try:
            changed = person.rename(
                fields.get("name", person.name),
                fields.get("romanized_name", person.romanized_name),
            )
        except ValueError as e:
            return Invalid(reason=str(e))
        if not changed:
            logger.debug("Person %s unchanged; not saved", person.id)
            return person
        changes = ChangeSet()
        changes.save_person(person)
        self._repo.commit(changes)
        logger.info("Updated person %s", person.id)
        return person

    def get_person(self, person_id: str) -> Person | None:
        return self._repo.get_person(person_id)

    def list_people(
        self,
        *,
        search: str | None = None,
        descending: bool = False,
        page: int = 1,
    ) -> PersonPage:
        """Return one page of persons ordered by name. Blank search means no filter."""
        search = (search or "").strip() or None
        page = max(page, 1)
        items = self._repo.list_persons(
            search=search,
            descending=descending,
            offset=(page - 1) * self._page_size,
            limit=self._page_size,
        )
        total = self._repo.count_persons(search=search)
        return PersonPage(items=items, total=total, page=page, page_size=self._page_size)

    def count_people(self) -> int:
        return self._repo.count_persons()

    def delete_person(self, person_id: str) -> Deleted | NotFound:
        """Delete a person together with the rows it owns."""
        person = self._repo.get_person(person_id)
        if person is None:
            return NotFound(kind=PERSON_KIND, id=person_id)
        changes = ChangeSet()
        for kind in ASSOCIATION_TYPES:
            for row in self._repo.list_associations(kind, person_id=person.id):
                changes.delete_association(row)
        changes.delete_person(person.id)
        self._repo.commit(changes)
        logger.info(
            "Deleted person %s and %d owned row(s)",
            person.id,
            len(changes.deleted_associations),
        )
        return Deleted(kind=PERSON_KIND, id=person.id)

    def main_picture(self, person_id: str) -> PersonPicture | NotFound:
        """Return the picture flagged as main, falling back to the first picture."""
        person = self._repo.get_person(person_id)
        if person is None:
            return NotFound(kind=PERSON_KIND, id=person_id)
        pictures = [
            self._repo.get_association(PersonPicture.kind, pid)
            for pid in person.picture_ids
        ]
        pictures = [p for p in pictures if p is not None]
        if not pictures:
            return NotFound(kind=PersonPicture.kind, id=None)
        return next((p for p in pictures if p.is_main), pictures[0])

    # --- association rows ---

    def create_association(
        self, kind: str, fields: dict[str, Any]
    ) -> Association | Invalid | NotFound:
        cls = ASSOCIATION_TYPES.get(kind)
        if cls is None:
            return Invalid(reason=f"Unknown association kind: {kind}.")
        fields = dict(fields)
        person_id = fields.pop("person_id", None)
        if person_id is None:
            return Invalid(reason="person is required.")
        try:
            row = cls(**fields)
        except TypeError as e:
            return Invalid(reason=str(e))
        problem = self._check_row(row)
        if problem is not None:
            return problem
        person = self._repo.get_person(person_id)
        if person is None:
            return NotFound(kind=PERSON_KIND, id=person_id)

        changes = ChangeSet()
        AssociationSync(changes).attach(person, row)
        self._repo.commit(changes)
        logger.info("Created %s %s for person %s", kind, row.id, person.id)
        return row

    def update_association(
        self, kind: str, row_id: str, fields: dict[str, Any]
    ) -> Association | Invalid | NotFound:
        """Partial update. A different person_id moves the row to that person."""
        if kind not in ASSOCIATION_TYPES:
            return Invalid(reason=f"Unknown association kind: {kind}.")
        row = self._repo.get_association(kind, row_id)
        if row is None:
            return NotFound(kind=kind, id=row_id)
        fields = dict(fields)
        fields.pop("id", None)
        new_person_id = fields.pop("person_id", row.person_id)
        if new_person_id is None:
            return Invalid(reason="person is required.")
        try:
            candidate = dataclasses.replace(row, **fields)
        except TypeError as e:
            return Invalid(reason=str(e))
        problem = self._check_row(candidate)
        if problem is not None:
            return problem

        changes = ChangeSet()
        sync = AssociationSync(changes)
        if new_person_id != row.person_id:
            new_owner = self._repo.get_person(new_person_id)
            if new_owner is None:
                return NotFound(kind=PERSON_KIND, id=new_person_id)
            old_owner = self._repo.get_person(row.person_id) if row.person_id else None
            sync.reassign(candidate, old_owner, new_owner)
            logger.info(
                "Reassigned %s %s from person %s to %s",
                kind,
                row.id,
                row.person_id,
                new_owner.id,
            )
        else:
            changes.save_association(candidate)
        self._repo.commit(changes)
        return candidate

    def get_association(self, kind: str, row_id: str) -> Association | None:
        if kind not in ASSOCIATION_TYPES:
            return None
        return self._repo.get_association(kind, row_id)

    def list_associations(
        self, kind: str, *, person_id: str | None = None
    ) -> list[Association]:
        if kind not in ASSOCIATION_TYPES:
            return []
        return self._repo.list_associations(kind, person_id=person_id)

    def delete_association(self, kind: str, row_id: str) -> Deleted | NotFound:
        row = self._repo.get_association(kind, row_id) if kind in ASSOCIATION_TYPES else None
        if row is None:
            return NotFound(kind=kind, id=row_id)
        owner = self._repo.get_person(row.person_id) if row.person_id else None
        changes = ChangeSet()
        AssociationSync(changes).discard(owner, row)
        self._repo.commit(changes)
        logger.info("Deleted %s %s", kind, row.id)
        return Deleted(kind=kind, id=row.id)

    def _check_row(self, row: Association) -> Invalid | NotFound | None:
        missing = [name for name in row.missing_required() if name != "person_id"]
        if missing:
            return Invalid(reason=f"Missing required field(s): {', '.join(missing)}.")
        problem = self._check_refs(row)
        if problem is not None:
            return problem
        start = getattr(row, "start_date", None)
        end = getattr(row, "end_date", None)
        if start is not None and end is not None and start > end:
            return Invalid(reason="start_date must not be after end_date.")
        return None

    def _check_refs(self, entity: Association | Lookup) -> NotFound | None:
        for name, (lookup_kind, _) in entity.refs.items():
            ref_id = getattr(entity, name)
            if ref_id is not None and self._repo.get_lookup(lookup_kind, ref_id) is None:
                return NotFound(kind=lookup_kind, id=ref_id)
        return None

    # --- lookups ---

    def create_lookup(
        self, kind: str, fields: dict[str, Any]
    ) -> Lookup | Invalid | NotFound:
        cls = LOOKUP_TYPES.get(kind)
        if cls is None:
            return Invalid(reason=f"Unknown lookup kind: {kind}.")
        try:
            lookup = cls(**fields)
        except (TypeError, ValueError) as e:
            return Invalid(reason=str(e))
        problem = self._check_refs(lookup)
        if problem is not None:
            return problem
        self._repo.add_lookup(lookup)
        logger.info("Created %s %s (%s)", kind, lookup.id, lookup.name)
        return lookup

    def get_lookup(self, kind: str, lookup_id: str) -> Lookup | None:
        if kind not in LOOKUP_TYPES:
            return None
        return self._repo.get_lookup(kind, lookup_id)

    def list_lookups(self, kind: str) -> list[Lookup]:
        if kind not in LOOKUP_TYPES:
            return []
        return self._repo.list_lookups(kind)

    def delete_lookup(self, kind: str, lookup_id: str) -> Deleted | NotFound | InUse:
        if self.get_lookup(kind, lookup_id) is None:
            return NotFound(kind=kind, id=lookup_id)
        referenced_by = self._repo.find_references(kind, lookup_id)
        if referenced_by:
            logger.warning(
                "Refused to delete %s %s: referenced by %d row(s)",
                kind,
                lookup_id,
                len(referenced_by),
            )
            return InUse(kind=kind, id=lookup_id, referenced_by=tuple(referenced_by))
        self._repo.delete_lookup(kind, lookup_id)
        logger.info("Deleted %s %s", kind, lookup_id)
        return Deleted(kind=kind, id=lookup_id)
