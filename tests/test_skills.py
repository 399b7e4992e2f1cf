"""Tests for skill matching heuristics."""

from hiring_processor.matching.skills import (
    extract_candidate_skills,
    find_potential_matches,
    parse_job_skills,
)


def test_alias_table_links_node_and_mongoose():
    matches = find_potential_matches(["Node.js", "MongoDB", "Python"], ["NodeJS", "Mongoose"])
    assert matches == ["Node.js", "MongoDB"]


def test_partial_containment_matches_in_both_directions():
    assert find_potential_matches(["JavaScript"], ["JavaScript/TypeScript"]) == ["JavaScript"]
    assert find_potential_matches(["React Native"], ["React"]) == ["React Native"]


def test_kubernetes_alias():
    assert find_potential_matches(["K8s"], ["Kubernetes"]) == ["K8s"]


def test_matches_keep_original_spelling_and_are_deduplicated():
    assert find_potential_matches(["React", "react", "REACT"], ["ReactJS"]) == ["React"]


def test_no_overlap_returns_empty_list():
    assert find_potential_matches(["Photoshop"], ["Java"]) == []
    assert find_potential_matches([], ["Java"]) == []
    assert find_potential_matches(["Java", None, ""], []) == []


def test_parse_job_skills_splits_and_trims():
    assert parse_job_skills(" NodeJS, Mongoose ,, Docker ") == ["NodeJS", "Mongoose", "Docker"]
    assert parse_job_skills(None) == []
    assert parse_job_skills("") == []


def test_extract_candidate_skills():
    skills = [{"name": "Python", "level": "advanced"}, {"level": "basic"}, "Go", None, {"name": ""}]
    assert extract_candidate_skills(skills) == ["Python", "Go"]
    assert extract_candidate_skills(None) == []
    assert extract_candidate_skills("Python") == []
