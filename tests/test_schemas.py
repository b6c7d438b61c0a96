"""Tests for src.data.schemas — profile and exam validation."""

import pytest

from src.core.errors import PlanValidationError
from src.data.schemas import Exam, UserProfile, parse_exams, parse_profile


class TestParseProfile:
    def test_accepts_camel_case(self, profile_data):
        profile = parse_profile(profile_data)
        assert profile.daily_hours == 2
        assert profile.study_time == "Morning"
        assert profile.subject_names == ["Math", "Physics"]
        assert profile.weaknesses == ["Physics"]

    def test_accepts_field_names(self):
        profile = UserProfile(
            name="Dana", daily_hours=3, study_time="Night",
            subjects=[{"name": "Math", "skill": "Advanced", "units": "Algebra"}],
        )
        assert profile.daily_hours == 3

    def test_returns_existing_model_unchanged(self, profile):
        assert parse_profile(profile) is profile

    def test_dumps_camel_case(self, profile):
        data = profile.to_dict()
        assert data["dailyHours"] == 2
        assert data["studyTime"] == "Morning"
        assert parse_profile(data) == profile

    def test_unit_list_is_trimmed(self, profile):
        assert profile.subjects[1].unit_list == ["Mechanics", "Optics", "Waves"]

    def test_unit_list_drops_blanks(self):
        profile = parse_profile({"name": "A", "dailyHours": 1,
                                 "subjects": [{"name": "Math", "units": "Algebra,, ,Geometry"}]})
        assert profile.subjects[0].unit_list == ["Algebra", "Geometry"]

    def test_empty_profile_raises(self):
        with pytest.raises(PlanValidationError, match="profile is required"):
            parse_profile({})

    def test_empty_subjects_raises(self, profile_data):
        profile_data["subjects"] = []
        with pytest.raises(PlanValidationError, match="subjects"):
            parse_profile(profile_data)

    def test_missing_daily_hours_raises(self, profile_data):
        del profile_data["dailyHours"]
        with pytest.raises(PlanValidationError, match="dailyHours"):
            parse_profile(profile_data)

    @pytest.mark.parametrize("hours", [0, -1, 25])
    def test_out_of_range_daily_hours_raises(self, profile_data, hours):
        profile_data["dailyHours"] = hours
        with pytest.raises(PlanValidationError):
            parse_profile(profile_data)

    def test_unknown_skill_raises(self, profile_data):
        profile_data["subjects"][0]["skill"] = "Expert"
        with pytest.raises(PlanValidationError, match="skill"):
            parse_profile(profile_data)

    def test_unknown_study_time_raises(self, profile_data):
        profile_data["studyTime"] = "Afternoon"
        with pytest.raises(PlanValidationError, match="studyTime"):
            parse_profile(profile_data)

    def test_blank_units_raise(self, profile_data):
        profile_data["subjects"][0]["units"] = " , "
        with pytest.raises(PlanValidationError, match="at least one unit"):
            parse_profile(profile_data)


class TestParseExams:
    def test_none_means_no_exams(self):
        assert parse_exams(None) == []

    def test_parses_list(self):
        exams = parse_exams([{"id": "e1", "name": "Midterm", "date": "2026-03-15", "subjects": ["Math"]}])
        assert exams == [Exam(id="e1", name="Midterm", date="2026-03-15", subjects=["Math"])]
        assert exams[0].status == "upcoming"

    def test_generates_id_when_missing(self):
        exams = parse_exams([{"name": "Final", "date": "2026-04-01"}])
        assert exams[0].id

    def test_normalises_datetime_strings(self):
        exams = parse_exams([{"name": "Final", "date": "2026-04-01T00:00:00.000Z"}])
        assert exams[0].date == "2026-04-01"

    def test_invalid_date_raises(self):
        with pytest.raises(PlanValidationError, match="invalid ISO date"):
            parse_exams([{"name": "Final", "date": "next week"}])

    def test_round_trip(self):
        exam = Exam(id="e1", name="Final", date="2026-04-01", subjects=["Math", "Physics"])
        assert parse_exams([exam.to_dict()]) == [exam]
