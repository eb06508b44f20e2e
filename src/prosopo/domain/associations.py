"""Association entities: rows linking a Person to a fact plus its reference data.

Each row carries the owning back-reference as `person_id` and its lookup
references as ids. `refs` maps each reference field to (lookup kind, required).
"""

import uuid
from dataclasses import dataclass, field
from datetime import date
from typing import ClassVar


def _new_id() -> str:
    return str(uuid.uuid4())


@dataclass(eq=False)
class Association:
    """Base row. Identity is the id; two rows with equal fields are still distinct."""

    kind: ClassVar[str] = ""
    required_fields: ClassVar[tuple[str, ...]] = ()
    refs: ClassVar[dict[str, tuple[str, bool]]] = {}

    id: str = field(default_factory=_new_id)
    person_id: str | None = None

    def missing_required(self) -> list[str]:
        """Return required fields (scalars and references) that are unset or blank."""
        missing = []
        if self.person_id is None:
            missing.append("person_id")
        names = list(self.required_fields)
        names += [name for name, (_, required) in self.refs.items() if required]
        for name in names:
            value = getattr(self, name)
            if value is None or (isinstance(value, str) and not value.strip()):
                missing.append(name)
        return missing

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Association):
            return NotImplemented
        return type(self) is type(other) and self.id == other.id

    def __hash__(self) -> int:
        return hash((type(self).kind, self.id))


@dataclass(eq=False)
class PersonIdentityField(Association):
    kind: ClassVar[str] = "person_identity_fields"
    required_fields: ClassVar[tuple[str, ...]] = ("value",)
    refs: ClassVar[dict[str, tuple[str, bool]]] = {
        "type_identity_field_id": ("type_identity_fields", True),
    }

    type_identity_field_id: str | None = None
    value: str | None = None


@dataclass(eq=False)
class PersonJob(Association):
    """A job held by a person. The source documents where the fact comes from."""

    kind: ClassVar[str] = "person_jobs"
    required_fields: ClassVar[tuple[str, ...]] = ("job",)
    refs: ClassVar[dict[str, tuple[str, bool]]] = {
        "company_id": ("companies", False),
        "source_id": ("sources", True),
    }

    job: str | None = None
    company_id: str | None = None
    source_id: str | None = None
    start_date: date | None = None
    end_date: date | None = None


@dataclass(eq=False)
class PersonRelative(Association):
    kind: ClassVar[str] = "person_relatives"
    refs: ClassVar[dict[str, tuple[str, bool]]] = {
        "type_relative_id": ("type_relatives", True),
    }

    type_relative_id: str | None = None
    name: str | None = None
    is_biological: bool | None = None


@dataclass(eq=False)
class PersonSocialStatus(Association):
    kind: ClassVar[str] = "person_social_statuses"
    refs: ClassVar[dict[str, tuple[str, bool]]] = {
        "type_social_status_id": ("type_social_statuses", True),
    }

    type_social_status_id: str | None = None
    name: str | None = None


@dataclass(eq=False)
class PersonSchool(Association):
    kind: ClassVar[str] = "person_schools"
    refs: ClassVar[dict[str, tuple[str, bool]]] = {
        "school_id": ("schools", True),
    }

    school_id: str | None = None
    start_date: date | None = None
    end_date: date | None = None


@dataclass(eq=False)
class PersonCategory(Association):
    kind: ClassVar[str] = "person_categories"
    refs: ClassVar[dict[str, tuple[str, bool]]] = {
        "category_id": ("categories", True),
    }

    category_id: str | None = None
    name: str | None = None


@dataclass(eq=False)
class PersonPicture(Association):
    kind: ClassVar[str] = "person_pictures"
    required_fields: ClassVar[tuple[str, ...]] = ("url",)
    refs: ClassVar[dict[str, tuple[str, bool]]] = {
        "source_id": ("sources", False),
    }

    url: str | None = None
    caption: str | None = None
    is_main: bool = False
    source_id: str | None = None


@dataclass(eq=False)
class Achievement(Association):
    kind: ClassVar[str] = "achievements"
    required_fields: ClassVar[tuple[str, ...]] = ("name",)
    refs: ClassVar[dict[str, tuple[str, bool]]] = {
        "source_id": ("sources", False),
    }

    name: str | None = None
    achieved_on: date | None = None
    source_id: str | None = None


ASSOCIATION_TYPES: dict[str, type[Association]] = {
    cls.kind: cls
    for cls in (
        PersonIdentityField,
        PersonJob,
        PersonRelative,
        PersonSocialStatus,
        PersonSchool,
        PersonCategory,
        PersonPicture,
        Achievement,
    )
}
