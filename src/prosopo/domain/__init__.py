"""Domain layer: entities and value objects. No dependencies on outer layers."""

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
from prosopo.domain.entities import (
    LOOKUP_TYPES,
    Category,
    Company,
    Lookup,
    Person,
    School,
    Source,
    TypeIdentityField,
    TypeRelative,
    TypeSocialStatus,
    TypeSource,
    reference_fields,
)

__all__ = [
    "ASSOCIATION_TYPES",
    "LOOKUP_TYPES",
    "Achievement",
    "Association",
    "Category",
    "Company",
    "Lookup",
    "Person",
    "PersonCategory",
    "PersonIdentityField",
    "PersonJob",
    "PersonPicture",
    "PersonRelative",
    "PersonSchool",
    "PersonSocialStatus",
    "School",
    "Source",
    "TypeIdentityField",
    "TypeRelative",
    "TypeSocialStatus",
    "TypeSource",
    "reference_fields",
]
