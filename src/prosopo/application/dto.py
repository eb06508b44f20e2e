"""Result types returned by the catalog use cases, and the ChangeSet a write commits."""

from dataclasses import dataclass, field

from prosopo.domain import Association, Person


@dataclass(frozen=True)
class Invalid:
    reason: str


@dataclass(frozen=True)
class NotFound:
    kind: str
    id: str | None


@dataclass(frozen=True)
class InUse:
    """A lookup cannot be deleted while rows still reference it."""

    kind: str
    id: str
    referenced_by: tuple[str, ...] = ()


@dataclass(frozen=True)
class Deleted:
    kind: str
    id: str


@dataclass(frozen=True)
class PersonPage:
    items: list[Person]
    total: int
    page: int
    page_size: int


@dataclass
class ChangeSet:
    """
    Writes produced by one request, applied by the repository in one transaction.
    Persons carry a touch flag: touched persons are stamped by the save path.
    """

    persons: dict[str, tuple[Person, bool]] = field(default_factory=dict)
    associations: dict[str, Association] = field(default_factory=dict)
    deleted_associations: dict[str, Association] = field(default_factory=dict)
    deleted_persons: set[str] = field(default_factory=set)

    def save_person(self, person: Person, *, touch: bool = True) -> None:
        previous = self.persons.get(person.id)
        touched = touch or (previous is not None and previous[1])
        self.persons[person.id] = (person, touched)

    def save_association(self, row: Association) -> None:
        self.deleted_associations.pop(row.id, None)
        self.associations[row.id] = row

    def delete_association(self, row: Association) -> None:
        self.associations.pop(row.id, None)
        self.deleted_associations[row.id] = row

    def delete_person(self, person_id: str) -> None:
        self.persons.pop(person_id, None)
        self.deleted_persons.add(person_id)

    def is_empty(self) -> bool:
        return not (
            self.persons
            or self.associations
            or self.deleted_associations
            or self.deleted_persons
        )
