"""Domain entities: the Person aggregate and the lookup rows its associations refer to."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import ClassVar

from prosopo.domain.associations import (
    ASSOCIATION_TYPES,
    Achievement,
    Association,
    PersonCategory,
    PersonIdentityField,
    PersonJob,
    PersonPicture,
    PersonRelative,
    PersonSchool,
    PersonSocialStatus,
)

NAME_MAX_LENGTH = 255


def _clean_name(value: str | None, label: str) -> str:
    name = (value or "").strip()
    if not name:
        raise ValueError(f"{label} name must be non-empty.")
    if len(name) > NAME_MAX_LENGTH:
        raise ValueError(f"{label} name must be at most {NAME_MAX_LENGTH} chars.")
    return name


@dataclass(frozen=True)
class Lookup:
    """
    A small reference row (category, relative type, school...).
    Lookups are immutable once created.
    """

    kind: ClassVar[str] = ""
    refs: ClassVar[dict[str, tuple[str, bool]]] = {}

    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    name: str = field(default="")

    def __post_init__(self):
        object.__setattr__(self, "name", _clean_name(self.name, type(self).__name__))


@dataclass(frozen=True)
class Category(Lookup):
    kind: ClassVar[str] = "categories"


@dataclass(frozen=True)
class TypeIdentityField(Lookup):
    kind: ClassVar[str] = "type_identity_fields"


@dataclass(frozen=True)
class TypeRelative(Lookup):
    kind: ClassVar[str] = "type_relatives"


@dataclass(frozen=True)
class TypeSocialStatus(Lookup):
    kind: ClassVar[str] = "type_social_statuses"


@dataclass(frozen=True)
class Company(Lookup):
    kind: ClassVar[str] = "companies"


@dataclass(frozen=True)
class School(Lookup):
    kind: ClassVar[str] = "schools"


@dataclass(frozen=True)
class TypeSource(Lookup):
    kind: ClassVar[str] = "type_sources"


@dataclass(frozen=True)
class Source(Lookup):
    """Provenance record: where a fact about a person was found."""

    kind: ClassVar[str] = "sources"
    refs: ClassVar[dict[str, tuple[str, bool]]] = {
        "type_source_id": ("type_sources", True),
    }

    type_source_id: str | None = None
    url: str | None = None
    checked_at: datetime | None = None
    digital: bool = False
    verified: bool = False
    source_media: tuple[str, ...] = ()

    def __post_init__(self):
        super().__post_init__()
        if not self.type_source_id:
            raise ValueError("Source must reference a TypeSource.")
        media = tuple(m.strip() for m in (self.source_media or ()) if m and m.strip())
        object.__setattr__(self, "source_media", media)


LOOKUP_TYPES: dict[str, type[Lookup]] = {
    cls.kind: cls
    for cls in (
        Category,
        TypeIdentityField,
        TypeRelative,
        TypeSocialStatus,
        Company,
        School,
        TypeSource,
        Source,
    )
}


def reference_fields(lookup_kind: str) -> list[tuple[str, str]]:
    """Return (entity kind, field) pairs of every reference pointing at lookup_kind."""
    out = []
    for kind, cls in {**ASSOCIATION_TYPES, **LOOKUP_TYPES}.items():
        for name, (target, _) in cls.refs.items():
            if target == lookup_kind:
                out.append((kind, name))
    return out


@dataclass
class Person:
    """
    Aggregate root of the catalog. Owns one ordered collection of association
    ids per association kind; each member row points back through person_id.
    Timestamps stay None until the first save stamps them.
    """

    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    name: str = field(default="")
    romanized_name: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    collections: dict[str, list[str]] = field(
        default_factory=lambda: {kind: [] for kind in ASSOCIATION_TYPES}
    )

    def __post_init__(self):
        self.name = _clean_name(self.name, "Person")
        self.romanized_name = (self.romanized_name or "").strip() or None
        for kind in ASSOCIATION_TYPES:
            self.collections.setdefault(kind, [])

    def rename(self, name: str, romanized_name: str | None = None) -> bool:
        """Set both names after normalizing them. Returns False if nothing changed."""
        name = _clean_name(name, "Person")
        romanized_name = (romanized_name or "").strip() or None
        if (name, romanized_name) == (self.name, self.romanized_name):
            return False
        self.name = name
        self.romanized_name = romanized_name
        return True

    def stamp(self, now: datetime) -> None:
        """Pre-save step: first save sets both timestamps, later saves only updated_at."""
        if self.created_at is None:
            self.created_at = now
        self.updated_at = now

    def members(self, kind: str) -> tuple[str, ...]:
        if kind not in self.collections:
            raise KeyError(f"Unknown collection: {kind}")
        return tuple(self.collections[kind])

    def has(self, item: Association) -> bool:
        return item.id in self.collections.get(item.kind, ())

    def add(self, item: Association) -> None:
        """Add item to its collection and point it at this person. No-op if already a member."""
        if not isinstance(item, Association) or type(item) is not ASSOCIATION_TYPES.get(item.kind):
            raise TypeError(f"Not an association row: {item!r}")
        if not self.has(item):
            self.collections[item.kind].append(item.id)
            item.person_id = self.id

    def remove(self, item: Association) -> None:
        """Remove item from its collection. Clears its back-reference only if it still points here."""
        if not self.has(item):
            return
        self.collections[item.kind].remove(item.id)
        if item.person_id == self.id:
            item.person_id = None

    def _add_typed(self, cls: type[Association], item: Association) -> None:
        if not isinstance(item, cls):
            raise TypeError(f"Expected {cls.__name__}, got {type(item).__name__}")
        self.add(item)

    def _remove_typed(self, cls: type[Association], item: Association) -> None:
        if not isinstance(item, cls):
            raise TypeError(f"Expected {cls.__name__}, got {type(item).__name__}")
        self.remove(item)

    @property
    def identity_field_ids(self) -> tuple[str, ...]:
        return self.members(PersonIdentityField.kind)

    def add_identity_field(self, item: PersonIdentityField) -> None:
        self._add_typed(PersonIdentityField, item)

    def remove_identity_field(self, item: PersonIdentityField) -> None:
        self._remove_typed(PersonIdentityField, item)

    @property
    def job_ids(self) -> tuple[str, ...]:
        return self.members(PersonJob.kind)

    def add_job(self, item: PersonJob) -> None:
        self._add_typed(PersonJob, item)

    def remove_job(self, item: PersonJob) -> None:
        self._remove_typed(PersonJob, item)

    @property
    def relative_ids(self) -> tuple[str, ...]:
        return self.members(PersonRelative.kind)

    def add_relative(self, item: PersonRelative) -> None:
        self._add_typed(PersonRelative, item)

    def remove_relative(self, item: PersonRelative) -> None:
        self._remove_typed(PersonRelative, item)

    @property
    def social_status_ids(self) -> tuple[str, ...]:
        return self.members(PersonSocialStatus.kind)

    def add_social_status(self, item: PersonSocialStatus) -> None:
        self._add_typed(PersonSocialStatus, item)

    def remove_social_status(self, item: PersonSocialStatus) -> None:
        self._remove_typed(PersonSocialStatus, item)

    @property
    def school_ids(self) -> tuple[str, ...]:
        return self.members(PersonSchool.kind)

    def add_school(self, item: PersonSchool) -> None:
        self._add_typed(PersonSchool, item)

    def remove_school(self, item: PersonSchool) -> None:
        self._remove_typed(PersonSchool, item)

    @property
    def category_ids(self) -> tuple[str, ...]:
        return self.members(PersonCategory.kind)

    def add_category(self, item: PersonCategory) -> None:
        self._add_typed(PersonCategory, item)

    def remove_category(self, item: PersonCategory) -> None:
        self._remove_typed(PersonCategory, item)

    @property
    def picture_ids(self) -> tuple[str, ...]:
        return self.members(PersonPicture.kind)

    def add_picture(self, item: PersonPicture) -> None:
        self._add_typed(PersonPicture, item)

    def remove_picture(self, item: PersonPicture) -> None:
        self._remove_typed(PersonPicture, item)

    @property
    def achievement_ids(self) -> tuple[str, ...]:
        return self.members(Achievement.kind)

    def add_achievement(self, item: Achievement) -> None:
        self._add_typed(Achievement, item)

    def remove_achievement(self, item: Achievement) -> None:
        self._remove_typed(Achievement, item)
