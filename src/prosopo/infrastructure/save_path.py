"""Steps every repository runs on a ChangeSet before writing it."""

from datetime import datetime, timezone

from prosopo.application.dto import ChangeSet


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def check_persistable(changes: ChangeSet) -> None:
    """Raise ValueError if a row in changes is missing a required field."""
    for row in changes.associations.values():
        missing = row.missing_required()
        if missing:
            raise ValueError(
                f"Cannot persist {row.kind} {row.id}: missing {', '.join(missing)}."
            )


def stamp_persons(changes: ChangeSet, now: datetime) -> None:
    """Stamp touched persons, and persons never saved before."""
    for person, touched in changes.persons.values():
        if touched or person.created_at is None:
            person.stamp(now)
