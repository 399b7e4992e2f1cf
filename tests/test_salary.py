"""Tests for the salary range estimate."""

import pytest

from hiring_processor.matching.salary import estimate_salary_range, seniority_level


@pytest.mark.parametrize(
    "years,level",
    [(0, "junior"), (1.5, "junior"), (2, "mid"), (4, "senior"), (6, "senior"), (7, "expert"), (15, "expert")],
)
def test_seniority_level(years, level):
    assert seniority_level(years) == level


def test_junior_without_adjustments():
    salary = estimate_salary_range(0, ["Photoshop"], "", "Designer")
    assert (salary.min, salary.max, salary.currency) == (800, 1500, "TND")


def test_education_and_single_high_demand_skill():
    salary = estimate_salary_range(3, ["Python"], "Master", "Developer")
    assert (salary.min, salary.max) == (1500 + 300 + 200, 2500 + 500 + 400)


def test_phd_three_high_demand_skills_and_lead_title():
    salary = estimate_salary_range(4, ["Python", "AWS", "Docker"], "PhD", "Tech Lead")
    assert salary.min == 2500 + 500 + 400 + 300
    assert salary.max == 5000


def test_manager_title_adjustment():
    salary = estimate_salary_range(2, [], None, "Engineering Manager")
    assert (salary.min, salary.max) == (1500 + 800, 2500 + 1500)


def test_range_never_exceeds_market_ceiling():
    salary = estimate_salary_range(10, ["Python", "AWS", "Docker", "React"], "MBA", "Senior Director")
    assert salary.max == 5000
    assert salary.min <= salary.max


def test_missing_years_treated_as_junior():
    salary = estimate_salary_range(None, [], None, None)
    assert (salary.min, salary.max) == (800, 1500)
    assert salary.to_dict() == {"min": 800, "max": 1500, "currency": "TND"}
