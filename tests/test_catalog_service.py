"""Unit tests for CatalogService. In-memory repo with a ticking clock."""

from datetime import date, datetime, timedelta, timezone

import pytest

from prosopo.application import (
    CatalogService,
    Deleted,
    InUse,
    Invalid,
    NotFound,
)
from prosopo.domain import Person, PersonJob, PersonPicture
from prosopo.infrastructure import InMemoryCatalogRepository

T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)


class TickingClock:
    """Returns a strictly later instant on every call."""

    def __init__(self) -> None:
        self.now = T0

    def __call__(self) -> datetime:
        self.now += timedelta(seconds=1)
        return self.now


@pytest.fixture
def repo() -> InMemoryCatalogRepository:
    return InMemoryCatalogRepository(clock=TickingClock())


@pytest.fixture
def service(repo) -> CatalogService:
    return CatalogService(repository=repo, page_size=2)


@pytest.fixture
def source_id(service) -> str:
    book = service.create_lookup("type_sources", {"name": "book"})
    source = service.create_lookup(
        "sources", {"name": "Biography", "type_source_id": book.id, "checked_at": T0}
    )
    return source.id


def _person(service, name: str) -> Person:
    person = service.create_person(name)
    assert isinstance(person, Person)
    return person


def test_create_person_stamps_equal_timestamps(service) -> None:
    ada = _person(service, "Ada")
    assert ada.id
    assert ada.created_at is not None
    assert ada.created_at == ada.updated_at


def test_update_person_refreshes_updated_at_only(service) -> None:
    ada = _person(service, "Ada")
    created = ada.created_at

    updated = service.update_person(ada.id, {"romanized_name": "Ada L."})

    assert isinstance(updated, Person)
    assert updated.romanized_name == "Ada L."
    assert updated.name == "Ada"
    assert updated.created_at == created
    assert updated.updated_at > updated.created_at


@pytest.mark.parametrize(
    "fields",
    [
        {"name": "Ada "},
        {"romanized_name": ""},
        {"name": "Ada", "romanized_name": "  "},
        {},
    ],
)
def test_update_person_without_effective_change_keeps_updated_at(service, fields) -> None:
    ada = _person(service, "Ada")

    result = service.update_person(ada.id, fields)

    assert isinstance(result, Person)
    assert result.updated_at == ada.updated_at
    assert service.get_person(ada.id).updated_at == ada.updated_at


def test_update_person_rejects_blank_name_and_unknown_fields(service) -> None:
    ada = _person(service, "Ada")
    assert isinstance(service.update_person(ada.id, {"name": " "}), Invalid)
    assert isinstance(service.update_person(ada.id, {"age": 36}), Invalid)
    assert service.get_person(ada.id).name == "Ada"
    assert isinstance(service.update_person("missing", {"name": "X"}), NotFound)


def test_create_person_invalid_name(service) -> None:
    result = service.create_person("   ")
    assert isinstance(result, Invalid)
    assert "name" in result.reason.lower()
    assert service.count_people() == 0


def test_job_lifecycle_end_to_end(service, source_id) -> None:
    ada = _person(service, "Ada")
    grace = _person(service, "Grace")

    job = service.create_association(
        "person_jobs", {"person_id": ada.id, "job": "Engineer", "source_id": source_id}
    )
    assert isinstance(job, PersonJob)
    assert service.get_person(ada.id).job_ids == (job.id,)
    assert service.get_association("person_jobs", job.id).person_id == ada.id

    moved = service.update_association("person_jobs", job.id, {"person_id": grace.id})
    assert isinstance(moved, PersonJob)
    assert moved.person_id == grace.id
    assert service.get_person(ada.id).job_ids == ()
    assert service.get_person(grace.id).job_ids == (job.id,)

    assert isinstance(service.delete_association("person_jobs", job.id), Deleted)
    assert service.get_person(ada.id).job_ids == ()
    assert service.get_person(grace.id).job_ids == ()
    assert service.get_association("person_jobs", job.id) is None


def test_membership_changes_do_not_touch_updated_at(service, source_id) -> None:
    ada = _person(service, "Ada")
    grace = _person(service, "Grace")
    ada_before = service.get_person(ada.id).updated_at
    grace_before = service.get_person(grace.id).updated_at

    job = service.create_association(
        "person_jobs", {"person_id": ada.id, "job": "Engineer", "source_id": source_id}
    )
    assert service.get_person(ada.id).updated_at == ada_before

    service.update_association("person_jobs", job.id, {"person_id": grace.id})
    assert service.get_person(ada.id).updated_at == ada_before
    assert service.get_person(grace.id).updated_at == grace_before

    service.delete_association("person_jobs", job.id)
    assert service.get_person(ada.id).updated_at == ada_before
    assert service.get_person(grace.id).updated_at == grace_before


def test_create_row_requires_person_and_fields(service, source_id) -> None:
    ada = _person(service, "Ada")

    missing_person = service.create_association(
        "person_jobs", {"job": "Engineer", "source_id": source_id}
    )
    assert isinstance(missing_person, Invalid)

    missing_source = service.create_association(
        "person_jobs", {"person_id": ada.id, "job": "Engineer"}
    )
    assert isinstance(missing_source, Invalid)
    assert "source_id" in missing_source.reason

    unknown_field = service.create_association(
        "person_jobs",
        {"person_id": ada.id, "job": "Engineer", "source_id": source_id, "salary": 1},
    )
    assert isinstance(unknown_field, Invalid)

    assert service.get_person(ada.id).job_ids == ()
    assert service.list_associations("person_jobs") == []


def test_create_row_unknown_references_not_found(service, source_id) -> None:
    ada = _person(service, "Ada")

    result = service.create_association(
        "person_jobs", {"person_id": "nobody", "job": "Engineer", "source_id": source_id}
    )
    assert result == NotFound(kind="people", id="nobody")

    result = service.create_association(
        "person_jobs", {"person_id": ada.id, "job": "Engineer", "source_id": "nope"}
    )
    assert result == NotFound(kind="sources", id="nope")

    result = service.create_association(
        "person_jobs",
        {"person_id": ada.id, "job": "Engineer", "source_id": source_id, "company_id": "x"},
    )
    assert result == NotFound(kind="companies", id="x")


def test_optional_company_may_be_null(service, source_id) -> None:
    ada = _person(service, "Ada")
    job = service.create_association(
        "person_jobs",
        {"person_id": ada.id, "job": "Engineer", "source_id": source_id, "company_id": None},
    )
    assert isinstance(job, PersonJob)
    assert job.company_id is None


@pytest.mark.parametrize("kind", ["person_jobs", "person_schools"])
def test_start_after_end_rejected(service, source_id, kind) -> None:
    ada = _person(service, "Ada")
    if kind == "person_jobs":
        fields = {"job": "Engineer", "source_id": source_id}
    else:
        school = service.create_lookup("schools", {"name": "Home tutoring"})
        fields = {"school_id": school.id}
    dates = {"start_date": date(2020, 1, 1), "end_date": date(2019, 1, 1)}

    result = service.create_association(kind, {"person_id": ada.id, **fields, **dates})

    assert isinstance(result, Invalid)
    assert "start_date" in result.reason
    assert service.list_associations(kind) == []

    row = service.create_association(kind, {"person_id": ada.id, **fields})
    result = service.update_association(kind, row.id, dates)
    assert isinstance(result, Invalid)
    assert service.get_association(kind, row.id).start_date is None


def test_update_row_partial_and_rejections(service, source_id) -> None:
    ada = _person(service, "Ada")
    job = service.create_association(
        "person_jobs", {"person_id": ada.id, "job": "Engineer", "source_id": source_id}
    )

    updated = service.update_association(
        "person_jobs", job.id, {"job": "Analyst", "start_date": date(1842, 1, 1)}
    )
    assert isinstance(updated, PersonJob)
    assert updated.job == "Analyst"
    assert updated.source_id == source_id

    assert isinstance(service.update_association("person_jobs", job.id, {"job": ""}), Invalid)
    assert isinstance(
        service.update_association("person_jobs", job.id, {"person_id": None}), Invalid
    )
    assert service.update_association(
        "person_jobs", job.id, {"person_id": "nobody"}
    ) == NotFound(kind="people", id="nobody")
    assert service.get_association("person_jobs", job.id).job == "Analyst"
    assert service.get_association("person_jobs", job.id).person_id == ada.id
    assert isinstance(service.update_association("person_jobs", "missing", {}), NotFound)


def test_list_rows_by_person(service, source_id) -> None:
    ada = _person(service, "Ada")
    grace = _person(service, "Grace")
    for person in (ada, ada, grace):
        service.create_association(
            "person_jobs", {"person_id": person.id, "job": "Engineer", "source_id": source_id}
        )

    assert len(service.list_associations("person_jobs")) == 3
    assert len(service.list_associations("person_jobs", person_id=ada.id)) == 2
    assert service.list_associations("unknown") == []


def test_delete_person_removes_owned_rows(service, source_id) -> None:
    ada = _person(service, "Ada")
    service.create_association(
        "person_jobs", {"person_id": ada.id, "job": "Engineer", "source_id": source_id}
    )
    service.create_association("achievements", {"person_id": ada.id, "name": "Note G"})

    assert isinstance(service.delete_person(ada.id), Deleted)
    assert service.get_person(ada.id) is None
    assert service.list_associations("person_jobs") == []
    assert service.list_associations("achievements") == []
    assert isinstance(service.delete_person(ada.id), NotFound)


def test_main_picture_prefers_flagged_picture(service) -> None:
    ada = _person(service, "Ada")
    assert service.main_picture(ada.id) == NotFound(kind="person_pictures", id=None)

    first = service.create_association(
        "person_pictures", {"person_id": ada.id, "url": "/img/1.png"}
    )
    assert service.main_picture(ada.id).id == first.id

    main = service.create_association(
        "person_pictures", {"person_id": ada.id, "url": "/img/2.png", "is_main": True}
    )
    picture = service.main_picture(ada.id)
    assert isinstance(picture, PersonPicture)
    assert picture.id == main.id
    assert isinstance(service.main_picture("nobody"), NotFound)


def test_list_people_search_order_and_pages(service) -> None:
    for name in ("Grace", "Ada", "Alan", "Hedy"):
        _person(service, name)
    service.create_person("Murasaki", romanized_name="Murasaki Shikibu")

    first = service.list_people()
    assert [p.name for p in first.items] == ["Ada", "Alan"]
    assert first.total == 5
    second = service.list_people(page=2)
    assert [p.name for p in second.items] == ["Grace", "Hedy"]

    desc = service.list_people(descending=True)
    assert [p.name for p in desc.items] == ["Murasaki", "Hedy"]

    found = service.list_people(search="a")
    assert found.total == 4
    assert [p.name for p in service.list_people(search="SHIKI").items] == ["Murasaki"]
    assert service.list_people(search="   ").total == 5
    assert service.count_people() == 5


def test_lookup_create_validation(service) -> None:
    assert isinstance(service.create_lookup("categories", {"name": ""}), Invalid)
    assert isinstance(service.create_lookup("nope", {"name": "x"}), Invalid)
    assert service.create_lookup(
        "sources", {"name": "Register", "type_source_id": "missing"}
    ) == NotFound(kind="type_sources", id="missing")

    category = service.create_lookup("categories", {"name": "science"})
    assert service.get_lookup("categories", category.id) == category
    assert [c.name for c in service.list_lookups("categories")] == ["science"]


def test_lookup_delete_refused_while_referenced(service, source_id) -> None:
    ada = _person(service, "Ada")
    job = service.create_association(
        "person_jobs", {"person_id": ada.id, "job": "Engineer", "source_id": source_id}
    )

    result = service.delete_lookup("sources", source_id)
    assert isinstance(result, InUse)
    assert result.referenced_by == (job.id,)

    service.delete_association("person_jobs", job.id)
    assert isinstance(service.delete_lookup("sources", source_id), Deleted)
    assert service.get_lookup("sources", source_id) is None
    assert isinstance(service.delete_lookup("sources", source_id), NotFound)


def test_type_source_in_use_by_source(service, source_id) -> None:
    source = service.get_lookup("sources", source_id)
    result = service.delete_lookup("type_sources", source.type_source_id)
    assert isinstance(result, InUse)
    assert result.referenced_by == (source_id,)


def test_repository_refuses_rows_missing_required_fields(repo) -> None:
    from prosopo.application import ChangeSet

    changes = ChangeSet()
    changes.save_association(PersonJob(job="Engineer"))
    with pytest.raises(ValueError, match="source_id"):
        repo.commit(changes)
