"""
Pydantic request bodies. JSON keys are camelCase; references are IRIs or bare ids.
Association bodies are shared by create and update: unset fields are left out.
"""

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from api.views import PERSON_COLLECTION, parse_iri
from prosopo.domain import LOOKUP_TYPES


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PersonBody(CamelModel):
    name: str = Field(..., max_length=255)
    romanized_name: str | None = Field(default=None, max_length=255)


class PersonUpdateBody(CamelModel):
    name: str | None = Field(default=None, max_length=255)
    romanized_name: str | None = Field(default=None, max_length=255)


def to_fields(body: BaseModel, refs: dict[str, tuple[str, bool]], *, with_person: bool) -> dict:
    """Convert a body to domain field values, resolving reference IRIs to ids.

    Raises ValueError for a reference that is not an IRI of the expected collection.
    """
    data = body.model_dump(exclude_unset=True)
    out = {}
    if with_person and "person" in data:
        value = data.pop("person")
        out["person_id"] = parse_iri(value, PERSON_COLLECTION) if value is not None else None
    for field_name, (target, _) in refs.items():
        key = field_name.removesuffix("_id")
        if key in data:
            value = data.pop(key)
            out[field_name] = parse_iri(value, target) if value is not None else None
    out.update(data)
    return out


# --- association rows ---


class PersonIdentityFieldBody(CamelModel):
    person: str | None = None
    type_identity_field: str | None = None
    value: str | None = None


class PersonJobBody(CamelModel):
    person: str | None = None
    job: str | None = Field(default=None, max_length=255)
    company: str | None = None
    source: str | None = None
    start_date: date | None = None
    end_date: date | None = None


class PersonRelativeBody(CamelModel):
    person: str | None = None
    type_relative: str | None = None
    name: str | None = None
    is_biological: bool | None = None


class PersonSocialStatusBody(CamelModel):
    person: str | None = None
    type_social_status: str | None = None
    name: str | None = None


class PersonSchoolBody(CamelModel):
    person: str | None = None
    school: str | None = None
    start_date: date | None = None
    end_date: date | None = None


class PersonCategoryBody(CamelModel):
    person: str | None = None
    category: str | None = None
    name: str | None = None


class PersonPictureBody(CamelModel):
    person: str | None = None
    url: str | None = None
    caption: str | None = None
    is_main: bool = False
    source: str | None = None


class AchievementBody(CamelModel):
    person: str | None = None
    name: str | None = None
    achieved_on: date | None = None
    source: str | None = None


ASSOCIATION_BODIES: dict[str, type[CamelModel]] = {
    "person_identity_fields": PersonIdentityFieldBody,
    "person_jobs": PersonJobBody,
    "person_relatives": PersonRelativeBody,
    "person_social_statuses": PersonSocialStatusBody,
    "person_schools": PersonSchoolBody,
    "person_categories": PersonCategoryBody,
    "person_pictures": PersonPictureBody,
    "achievements": AchievementBody,
}

# --- lookups ---


class LookupBody(CamelModel):
    name: str = Field(..., max_length=255)


class SourceBody(CamelModel):
    name: str = Field(..., max_length=255)
    type_source: str
    url: str | None = None
    checked_at: datetime
    digital: bool = False
    verified: bool = False
    source_media: list[str] = Field(default_factory=list)


LOOKUP_BODIES: dict[str, type[CamelModel]] = {
    kind: SourceBody if kind == "sources" else LookupBody for kind in LOOKUP_TYPES
}
