"""Tests for the score caps."""

import itertools

import pytest

from hiring_processor.matching.scoring import apply_score_caps


def test_all_requirements_met_keeps_score():
    assert apply_score_caps(87, skills=90, experience=True, education=True) == 87


def test_unmet_experience_caps_at_50():
    assert apply_score_caps(80, skills=90, experience=False, education=True) == 50


def test_unmet_education_caps_at_50():
    assert apply_score_caps(80, skills=90, experience=True, education=False) == 50


def test_low_skills_caps_at_30():
    assert apply_score_caps(80, skills=39, experience=True, education=True) == 30
    assert apply_score_caps(80, skills=40, experience=True, education=True) == 80


def test_out_of_range_scores_are_clamped():
    assert apply_score_caps(140, skills=100, experience=True, education=True) == 100
    assert apply_score_caps(-5, skills=100, experience=True, education=True) == 0


@pytest.mark.parametrize(
    "score,skills,experience,education",
    list(itertools.product([0, 29.6, 50, 75.4, 100], [0, 39.9, 40, 100], [True, False], [True, False])),
)
def test_caps_hold_and_are_idempotent(score, skills, experience, education):
    capped = apply_score_caps(score, skills, experience, education)

    assert 0 <= capped <= 100
    if not experience or not education:
        assert capped <= 50
    if skills < 40:
        assert capped <= 30
    assert apply_score_caps(capped, skills, experience, education) == capped
