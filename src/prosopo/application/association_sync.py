"""Keeps both sides of a Person <-> association link consistent inside one ChangeSet."""

from prosopo.application.dto import ChangeSet
from prosopo.domain import Association, Person


class AssociationSync:
    """
    Every membership change goes through here so the Person collection and the
    row's person_id are recorded in the same ChangeSet. Membership changes do
    not touch the Person timestamps.
    """

    def __init__(self, changes: ChangeSet) -> None:
        self._changes = changes

    def attach(self, person: Person, row: Association) -> None:
        person.add(row)
        self._changes.save_person(person, touch=False)
        self._changes.save_association(row)

    def detach(self, person: Person, row: Association) -> None:
        person.remove(row)
        self._changes.save_person(person, touch=False)
        self._changes.save_association(row)

    def reassign(
        self, row: Association, old_owner: Person | None, new_owner: Person
    ) -> None:
        """Move row to new_owner. The old owner's remove leaves the new back-reference alone."""
        new_owner.add(row)
        self._changes.save_person(new_owner, touch=False)
        if old_owner is not None and old_owner.id != new_owner.id:
            old_owner.remove(row)
            self._changes.save_person(old_owner, touch=False)
        self._changes.save_association(row)

    def discard(self, owner: Person | None, row: Association) -> None:
        """Detach row from its owner (if any) and delete it."""
        if owner is not None:
            owner.remove(row)
            self._changes.save_person(owner, touch=False)
        self._changes.delete_association(row)
