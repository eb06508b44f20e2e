"""Unit tests for AssociationSync: both sides of a link land in one ChangeSet."""

from prosopo.application import AssociationSync, ChangeSet
from prosopo.domain import Person, PersonJob


def _job() -> PersonJob:
    return PersonJob(job="Engineer", source_id="s1")


def test_attach_records_person_untouched_and_row() -> None:
    changes = ChangeSet()
    ada = Person(name="Ada")
    job = _job()

    AssociationSync(changes).attach(ada, job)

    assert changes.persons[ada.id] == (ada, False)
    assert changes.associations[job.id] is job
    assert job.person_id == ada.id


def test_reassign_moves_row_between_owners() -> None:
    changes = ChangeSet()
    ada, grace = Person(name="Ada"), Person(name="Grace")
    job = _job()
    ada.add_job(job)

    AssociationSync(changes).reassign(job, ada, grace)

    assert ada.job_ids == ()
    assert grace.job_ids == (job.id,)
    assert job.person_id == grace.id
    assert set(changes.persons) == {ada.id, grace.id}
    assert changes.associations[job.id] is job


def test_reassign_without_previous_owner() -> None:
    changes = ChangeSet()
    grace = Person(name="Grace")
    job = _job()

    AssociationSync(changes).reassign(job, None, grace)

    assert job.person_id == grace.id
    assert list(changes.persons) == [grace.id]


def test_discard_detaches_and_deletes() -> None:
    changes = ChangeSet()
    ada = Person(name="Ada")
    job = _job()
    sync = AssociationSync(changes)
    sync.attach(ada, job)

    sync.discard(ada, job)

    assert ada.job_ids == ()
    assert job.id not in changes.associations
    assert changes.deleted_associations[job.id] is job


def test_detach_keeps_row_saved() -> None:
    changes = ChangeSet()
    ada = Person(name="Ada")
    job = _job()
    ada.add_job(job)

    AssociationSync(changes).detach(ada, job)

    assert job.person_id is None
    assert changes.associations[job.id] is job


def test_touch_flag_is_sticky() -> None:
    changes = ChangeSet()
    ada = Person(name="Ada")

    changes.save_person(ada)
    changes.save_person(ada, touch=False)

    assert changes.persons[ada.id] == (ada, True)


def test_empty_change_set() -> None:
    changes = ChangeSet()
    assert changes.is_empty()
    changes.delete_person("p1")
    assert not changes.is_empty()
