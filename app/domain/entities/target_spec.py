"""Audience specifications for outgoing notifications.

A :data:`TargetSpec` is one of the frozen dataclasses below. The HTTP layer
receives the legacy ``targetType``/``targetValue`` pair and converts it once
with :func:`parse_target`; everything after that matches on the variant type.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from app.domain.errors import InvalidTargetSpec

TARGET_ALL_STUDENTS = "all_students"
TARGET_ALL_TEACHERS = "all_teachers"
TARGET_SPECIFIC_YEAR = "specific_year"
TARGET_SPECIFIC_SECTION = "specific_section"
TARGET_SPECIFIC_USERS = "specific_users"
TARGET_HOD = "hod"

TARGET_TYPES = (
    TARGET_ALL_STUDENTS,
    TARGET_ALL_TEACHERS,
    TARGET_SPECIFIC_YEAR,
    TARGET_SPECIFIC_SECTION,
    TARGET_SPECIFIC_USERS,
    TARGET_HOD,
)


@dataclass(frozen=True)
class AllStudents:
    """Every active student of the sender's department."""


@dataclass(frozen=True)
class AllTeachers:
    """Every active teacher of the sender's department."""


@dataclass(frozen=True)
class SpecificYear:
    """Active students of one study year."""

    year: int


@dataclass(frozen=True)
class SpecificSection:
    """Active students of one section in a given academic year."""

    year: int
    section: str
    academic_year_id: str


@dataclass(frozen=True)
class HeadOfDepartment:
    """The single active super-admin of the sender's department."""


@dataclass(frozen=True)
class SpecificUsers:
    """An explicit list of users, filtered to active department members."""

    user_ids: tuple[int, ...]


TargetSpec = Union[
    AllStudents,
    AllTeachers,
    SpecificYear,
    SpecificSection,
    HeadOfDepartment,
    SpecificUsers,
]


def _parse_year(raw: str) -> int:
    try:
        year = int(raw.strip())
    except (TypeError, ValueError) as exc:
        raise InvalidTargetSpec(f"Invalid year '{raw}'") from exc
    if year <= 0:
        raise InvalidTargetSpec(f"Invalid year '{raw}'")
    return year


def _parse_section(raw: str) -> SpecificSection:
    # "{year}-{section}-{academicYearId}": split from both ends so a section
    # name containing '-' survives.
    year_part, _, rest = raw.partition("-")
    section, _, academic_year_id = rest.rpartition("-")
    if not year_part.strip() or not section.strip() or not academic_year_id.strip():
        raise InvalidTargetSpec(
            "specific_section requires '{year}-{section}-{academicYearId}'"
        )
    return SpecificSection(
        year=_parse_year(year_part),
        section=section.strip(),
        academic_year_id=academic_year_id.strip(),
    )


def _parse_user_ids(raw: str) -> SpecificUsers:
    ids: list[int] = []
    for chunk in raw.split(","):
        chunk = chunk.strip()
        if not chunk:
            continue
        try:
            user_id = int(chunk)
        except ValueError as exc:
            raise InvalidTargetSpec(f"Invalid user id '{chunk}'") from exc
        if user_id not in ids:
            ids.append(user_id)
    if not ids:
        raise InvalidTargetSpec("specific_users requires at least one user id")
    return SpecificUsers(user_ids=tuple(ids))


def parse_target(target_type: str, target_value: str | None) -> TargetSpec:
    """Convert the wire ``targetType``/``targetValue`` pair into a :data:`TargetSpec`."""

    value = (target_value or "").strip()
    if target_type == TARGET_ALL_STUDENTS:
        return AllStudents()
    if target_type == TARGET_ALL_TEACHERS:
        return AllTeachers()
    if target_type == TARGET_HOD:
        if value and value != TARGET_HOD:
            raise InvalidTargetSpec("hod target value must be 'hod'")
        return HeadOfDepartment()
    if not value:
        raise InvalidTargetSpec(f"{target_type} requires a target value")
    if target_type == TARGET_SPECIFIC_YEAR:
        return SpecificYear(year=_parse_year(value))
    if target_type == TARGET_SPECIFIC_SECTION:
        return _parse_section(value)
    if target_type == TARGET_SPECIFIC_USERS:
        return _parse_user_ids(value)
    raise InvalidTargetSpec(f"Unknown target type '{target_type}'")


def to_wire(spec: TargetSpec) -> tuple[str, str]:
    """Return the ``(targetType, targetValue)`` pair describing ``spec``."""

    if isinstance(spec, AllStudents):
        return TARGET_ALL_STUDENTS, "all"
    if isinstance(spec, AllTeachers):
        return TARGET_ALL_TEACHERS, "all"
    if isinstance(spec, SpecificYear):
        return TARGET_SPECIFIC_YEAR, str(spec.year)
    if isinstance(spec, SpecificSection):
        return (
            TARGET_SPECIFIC_SECTION,
            f"{spec.year}-{spec.section}-{spec.academic_year_id}",
        )
    if isinstance(spec, HeadOfDepartment):
        return TARGET_HOD, TARGET_HOD
    if isinstance(spec, SpecificUsers):
        return TARGET_SPECIFIC_USERS, ",".join(str(user_id) for user_id in spec.user_ids)
    raise InvalidTargetSpec(f"Unsupported target spec {spec!r}")


__all__ = [
    "TARGET_TYPES",
    "TARGET_ALL_STUDENTS",
    "TARGET_ALL_TEACHERS",
    "TARGET_SPECIFIC_YEAR",
    "TARGET_SPECIFIC_SECTION",
    "TARGET_SPECIFIC_USERS",
    "TARGET_HOD",
    "AllStudents",
    "AllTeachers",
    "SpecificYear",
    "SpecificSection",
    "HeadOfDepartment",
    "SpecificUsers",
    "TargetSpec",
    "parse_target",
    "to_wire",
]
