"""Resolve a :data:`TargetSpec` into the list of recipient user ids."""

from __future__ import annotations

from typing import Iterable, Protocol

from app.domain.entities import (
    ROLE_STUDENT,
    ROLE_SUPER_ADMIN,
    ROLE_TEACHER,
    AllStudents,
    AllTeachers,
    HeadOfDepartment,
    SpecificSection,
    SpecificUsers,
    SpecificYear,
    TargetSpec,
)
from app.domain.errors import (
    AmbiguousHeadOfDepartment,
    InvalidTargetSpec,
    NoHeadOfDepartment,
    ResolutionFailed,
)


class DirectoryQuery(Protocol):
    """Directory capability consumed by the resolver."""

    def query_users(
        self,
        role: str,
        department_id: int | None,
        year: int | None = None,
        section: str | None = None,
        academic_year_id: str | None = None,
    ) -> list[int]: ...

    def active_users_among(
        self, user_ids: Iterable[int], department_id: int | None
    ) -> list[int]: ...


def _validate(spec: TargetSpec) -> None:
    if isinstance(spec, SpecificYear):
        if not spec.year or spec.year <= 0:
            raise InvalidTargetSpec("specific_year requires a positive year")
    elif isinstance(spec, SpecificSection):
        if not spec.year or spec.year <= 0:
            raise InvalidTargetSpec("specific_section requires a positive year")
        if not (spec.section or "").strip():
            raise InvalidTargetSpec("specific_section requires a section")
        if not (spec.academic_year_id or "").strip():
            raise InvalidTargetSpec("specific_section requires an academic year")
    elif isinstance(spec, SpecificUsers):
        if not spec.user_ids:
            raise InvalidTargetSpec("specific_users requires at least one user id")


def _query(spec: TargetSpec, directory: DirectoryQuery, department_id: int | None) -> list[int]:
    if isinstance(spec, AllStudents):
        return directory.query_users(ROLE_STUDENT, department_id)
    if isinstance(spec, AllTeachers):
        return directory.query_users(ROLE_TEACHER, department_id)
    if isinstance(spec, SpecificYear):
        return directory.query_users(ROLE_STUDENT, department_id, year=spec.year)
    if isinstance(spec, SpecificSection):
        return directory.query_users(
            ROLE_STUDENT,
            department_id,
            year=spec.year,
            section=spec.section.strip(),
            academic_year_id=spec.academic_year_id.strip(),
        )
    if isinstance(spec, HeadOfDepartment):
        return directory.query_users(ROLE_SUPER_ADMIN, department_id)
    if isinstance(spec, SpecificUsers):
        return directory.active_users_among(spec.user_ids, department_id)
    raise InvalidTargetSpec(f"Unsupported target spec {spec!r}")


def resolve_targets(
    spec: TargetSpec, directory: DirectoryQuery, *, department_id: int | None
) -> list[int]:
    """Return de-duplicated recipient ids in directory order.

    Every variant is scoped to ``department_id``; a sender without one is
    rejected rather than widened to the whole directory. Exactly one directory
    query is issued. The result is a snapshot: later directory changes never
    alter the audience of a created notification.
    """

    _validate(spec)
    if department_id is None:
        raise InvalidTargetSpec(
            f"{type(spec).__name__} is department scoped and the sender has no department"
        )
    try:
        user_ids = _query(spec, directory, department_id)
    except InvalidTargetSpec:
        raise
    except Exception as exc:
        raise ResolutionFailed(f"Directory query failed for {type(spec).__name__}") from exc

    recipients = list(dict.fromkeys(int(user_id) for user_id in user_ids))

    if isinstance(spec, HeadOfDepartment):
        if not recipients:
            raise NoHeadOfDepartment(
                f"Department {department_id} has no active head of department"
            )
        if len(recipients) > 1:
            raise AmbiguousHeadOfDepartment(department_id, recipients)

    return recipients


__all__ = ["DirectoryQuery", "resolve_targets"]
