"""Tests for parsing the wire target pair into a target spec."""

import pytest

from app.domain.entities import (
    AllStudents,
    HeadOfDepartment,
    SpecificSection,
    SpecificUsers,
    SpecificYear,
    parse_target,
    to_wire,
)
from app.domain.errors import InvalidTargetSpec


def test_section_value_is_split_into_year_section_and_academic_year():
    spec = parse_target("specific_section", "2-A-2024")

    assert spec == SpecificSection(year=2, section="A", academic_year_id="2024")
    assert to_wire(spec) == ("specific_section", "2-A-2024")


def test_section_name_may_contain_dashes():
    spec = parse_target("specific_section", "3-CS-B-ay7")

    assert spec == SpecificSection(year=3, section="CS-B", academic_year_id="ay7")


@pytest.mark.parametrize("value", ["", "hod"])
def test_hod_accepts_empty_or_literal_value(value):
    assert parse_target("hod", value) == HeadOfDepartment()


def test_all_students_ignores_value():
    assert parse_target("all_students", "") == AllStudents()


def test_specific_users_deduplicates_ids():
    assert parse_target("specific_users", "3, 1,3") == SpecificUsers(user_ids=(3, 1))


@pytest.mark.parametrize(
    ("target_type", "target_value"),
    [
        ("specific_year", ""),
        ("specific_year", "first"),
        ("specific_year", "0"),
        ("specific_section", "2-A"),
        ("specific_section", "2--2024"),
        ("specific_users", ","),
        ("hod", "dean"),
        ("everyone", "x"),
    ],
)
def test_invalid_pairs_are_rejected(target_type, target_value):
    with pytest.raises(InvalidTargetSpec):
        parse_target(target_type, target_value)


def test_year_round_trip():
    assert to_wire(parse_target("specific_year", " 4 ")) == ("specific_year", "4")
    assert parse_target("specific_year", "4") == SpecificYear(year=4)
