"""Tests for profile normalization and vocabulary loading."""
from datetime import datetime
from decimal import Decimal
from types import SimpleNamespace

import pytest

from src.matching.ai_analyzer import ExtractedProfile
from src.matching.normalizer import (
    DEFAULT_INDUSTRY,
    EducationLevel,
    ExperienceLevel,
    build_candidate_features,
    build_job_features,
    extract_bbbee_level,
    extract_education,
    extract_experience_level,
    extract_industry,
    extract_skills,
    extract_years_of_experience,
    normalize_experience_tag,
    to_number,
)
from src.matching.vocabulary import keyword_pattern, load_vocabulary


class TestExtractSkills:
    """Tests for vocabulary skill extraction."""

    def test_case_insensitive(self, vocabulary):
        skills = extract_skills("Experienced in javascript, PYTHON and sql", vocabulary)
        assert {"JavaScript", "Python", "SQL"} <= skills

    def test_java_does_not_match_javascript(self, vocabulary):
        skills = extract_skills("Five years of JavaScript", vocabulary)
        assert "JavaScript" in skills
        assert "Java" not in skills

    def test_symbol_skills(self, vocabulary):
        skills = extract_skills("Backend work in C# and C++, APIs in Node.js", vocabulary)
        assert {"C#", "C++", "Node.js"} <= skills

    def test_empty_text(self, vocabulary):
        assert extract_skills("", vocabulary) == set()
        assert extract_skills(None, vocabulary) == set()


class TestExtractExperienceLevel:
    """Tests for the keyword experience heuristic."""

    def test_senior_keywords(self, vocabulary):
        assert extract_experience_level("Senior developer", vocabulary) == ExperienceLevel.SENIOR
        assert extract_experience_level("Team lead for payments", vocabulary) == ExperienceLevel.SENIOR

    def test_entry_keywords(self, vocabulary):
        assert extract_experience_level("Graduate looking for a learnership", vocabulary) == ExperienceLevel.ENTRY

    def test_default_mid(self, vocabulary):
        assert extract_experience_level("Developer at a bank", vocabulary) == ExperienceLevel.MID
        assert extract_experience_level("", vocabulary) == ExperienceLevel.MID

    def test_leadership_is_not_lead(self, vocabulary):
        assert extract_experience_level("Showed leadership in projects", vocabulary) == ExperienceLevel.MID


class TestNormalizeExperienceTag:
    """Tests for employer/seeker experience tags."""

    @pytest.mark.parametrize(
        "tag,expected",
        [
            ("Senior (5+ years)", ExperienceLevel.SENIOR),
            ("Mid-level", ExperienceLevel.MID),
            ("junior", ExperienceLevel.ENTRY),
            ("Entry Level", ExperienceLevel.ENTRY),
            ("Executive", ExperienceLevel.EXECUTIVE),
        ],
    )
    def test_tags(self, tag, expected):
        assert normalize_experience_tag(tag) == expected

    def test_empty_is_none(self):
        assert normalize_experience_tag(None) is None
        assert normalize_experience_tag("") is None


class TestTextExtractors:
    """Tests for industry, education, B-BBEE and years extraction."""

    def test_industry_first_match(self, vocabulary):
        assert extract_industry("Worked in Finance and Technology", vocabulary) == "Technology"

    def test_industry_default(self, vocabulary):
        assert extract_industry("Worked at a farm stall", vocabulary) == DEFAULT_INDUSTRY
        assert extract_industry(None, vocabulary) == DEFAULT_INDUSTRY

    def test_education_ladder(self):
        assert extract_education("PhD in Physics, Masters in Maths") == EducationLevel.PHD
        assert extract_education("MBA from Wits") == EducationLevel.MASTERS
        assert extract_education("BCom degree") == EducationLevel.BACHELORS
        assert extract_education("National Diploma in IT") == EducationLevel.DIPLOMA
        assert extract_education("Certificate in bookkeeping") == EducationLevel.CERTIFICATE
        assert extract_education("Matric 2015") == EducationLevel.HIGH_SCHOOL

    def test_education_needs_whole_words(self):
        assert extract_education("Certified Scrum Master with a National Diploma") == EducationLevel.DIPLOMA
        assert extract_education("Scrum Master, Matric") == EducationLevel.HIGH_SCHOOL
        assert extract_education("Attended a masterclass on Excel") == EducationLevel.HIGH_SCHOOL
        assert extract_education("Master's in Data Science") == EducationLevel.MASTERS

    def test_bbbee_level(self):
        assert extract_bbbee_level("B-BBEE Level 2 contributor") == 2
        assert extract_bbbee_level("BBBEE level 8") == 8

    def test_bbbee_unknown(self):
        assert extract_bbbee_level("B-BBEE compliant") is None
        assert extract_bbbee_level("B-BBEE Level 9") is None
        assert extract_bbbee_level(None) is None

    def test_years_of_experience(self):
        assert extract_years_of_experience("3 years experience, then 7+ years in banking") == 7
        assert extract_years_of_experience("No numbers here") == 0

    def test_to_number(self):
        assert to_number(Decimal("25000.50")) == 25000.5
        assert to_number("30000") == 30000.0
        assert to_number("R30k") is None
        assert to_number(None) is None

    @pytest.mark.parametrize("value", ["NaN", "Infinity", "-inf", float("nan"), float("inf")])
    def test_to_number_rejects_non_finite(self, value):
        assert to_number(value) is None


class TestBuildFeatures:
    """Tests for building features from records."""

    def test_job_features_from_record(self, vocabulary):
        employer = SimpleNamespace(user_id=7, industry="Banking")
        job = SimpleNamespace(
            id=3,
            employer_id=2,
            employer=employer,
            title="Data Analyst",
            description="Analyse data",
            required_skills=["SQL"],
            preferred_skills=None,
            experience_level="Senior",
            location="Sandton",
            province="Gauteng",
            is_remote=False,
            salary_min=Decimal("40000"),
            salary_max=Decimal("50000"),
            industry=None,
            bbbee_preference="preferred",
            nqf_requirement=7,
        )

        features = build_job_features(job, vocabulary)

        assert features.job_id == 3
        assert features.recruiter_id == 7
        assert features.industry == "Banking"
        assert features.experience_level == ExperienceLevel.SENIOR
        assert features.preferred_skills == []
        assert features.salary_min == 40000.0

    def test_remote_location_marks_job_remote(self, vocabulary):
        job = SimpleNamespace(location="Remote (South Africa)", is_remote=False)
        assert build_job_features(job, vocabulary).is_remote is True

    def test_candidate_structured_fields_win(self, vocabulary):
        cv = SimpleNamespace(
            id=11,
            user_id=5,
            content="Junior analyst. B-BBEE Level 4. 2 years experience in Excel.",
            extracted_skills=["Power BI"],
            experience_level="Senior",
            location="Pretoria",
            preferred_industries=["Finance"],
        )
        profile = SimpleNamespace(
            city="Centurion",
            province="Gauteng",
            bbbee_status="verified",
            bbbee_level=2,
            nqf_level=7,
            industries=["Banking", "Finance"],
        )
        user = SimpleNamespace(last_login=datetime(2026, 3, 1))

        features = build_candidate_features(cv, profile, user, vocabulary)

        assert features.candidate_id == 11
        assert features.experience_level == ExperienceLevel.SENIOR
        assert features.bbbee_level == 2
        assert {"Power BI", "Excel"} <= features.skills
        assert features.preferred_industries == ["Finance", "Banking"]
        assert features.places == ["Pretoria", "Centurion", "Gauteng"]
        assert features.years_of_experience == 2
        assert features.has_sa_profile is True

    def test_extracted_profile_fills_gaps(self, vocabulary):
        cv = SimpleNamespace(id=12, content="Frontend developer using JavaScript.", extracted_skills=[])
        extracted = ExtractedProfile(skills=["SQL"], bbbee_status="Level 1 contributor", nqf_level=7)

        features = build_candidate_features(cv, vocabulary=vocabulary, extracted=extracted)

        assert features.skills == {"JavaScript", "SQL"}
        assert features.bbbee_status == "Level 1 contributor"
        assert features.nqf_level == 7

    def test_profile_wins_over_extracted(self, vocabulary):
        cv = SimpleNamespace(id=13, content="Analyst")
        profile = SimpleNamespace(bbbee_status="verified", nqf_level=6)
        extracted = ExtractedProfile(bbbee_status="unverified", nqf_level=8)

        features = build_candidate_features(cv, profile, vocabulary=vocabulary, extracted=extracted)

        assert features.bbbee_status == "verified"
        assert features.nqf_level == 6

    def test_empty_candidate(self, vocabulary):
        features = build_candidate_features(SimpleNamespace(), vocabulary=vocabulary)

        assert features.skills == set()
        assert features.experience_level == ExperienceLevel.MID
        assert features.industry == DEFAULT_INDUSTRY
        assert features.education == EducationLevel.HIGH_SCHOOL
        assert features.bbbee_level is None
        assert features.has_sa_profile is False


class TestVocabulary:
    """Tests for the YAML vocabulary."""

    def test_default_vocabulary_has_provinces(self, vocabulary):
        assert vocabulary.province_for("Sandton") == "gauteng"
        assert vocabulary.province_for("Cape Town CBD") == "western cape"
        assert vocabulary.province_for("Atlantis, Mars") is None

    def test_longest_place_name_wins(self, vocabulary):
        assert vocabulary.province_for("East London") == "eastern cape"

    def test_load_custom_file(self, tmp_path):
        path = tmp_path / "vocab.yaml"
        path.write_text(
            "skills: [Cobol]\n"
            "industries: [Mining]\n"
            "experience_keywords:\n  senior: [veteran]\n  entry: [rookie]\n"
            "provinces:\n  Limpopo: [Polokwane]\n"
            "remote_terms: [Remote]\n"
        )

        vocab = load_vocabulary(path)

        assert vocab.skills == ["Cobol"]
        assert vocab.province_for("polokwane") == "limpopo"
        assert vocab.is_remote("REMOTE first")
        assert extract_experience_level("A veteran engineer", vocab) == ExperienceLevel.SENIOR
        assert vocab.max_dated_positions == 6

    def test_keyword_pattern_whole_token(self):
        assert keyword_pattern("SQL").search("PostgreSQL") is None
        assert keyword_pattern("SQL").search("SQL, Excel")
