"""
Unit Tests for Entity Models and Field Checks
"""
import pytest

from schooladmin.exceptions import ValidationError
from schooladmin.models import (
    CLASS_SCHEMA,
    STUDENT_SCHEMA,
    TEACHER_SCHEMA,
    School,
    Student,
    StudentFilters,
    Teacher,
    TeacherFilters,
    query_params,
    validate_payload,
)


class TestFromDict:
    """Test building entities from API payloads"""

    def test_unknown_keys_are_ignored(self):
        """Test that new server fields do not break parsing"""
        student = Student.from_dict({"id": 1, "full_name": "A", "shoe_size": 38})

        assert student.id == 1
        assert student.class_id is None

    def test_missing_id_fails(self):
        """Test that an entity without id is rejected"""
        with pytest.raises(TypeError):
            Teacher.from_dict({"full_name": "No Id"})

    def test_school_without_account(self):
        """Test school credentials when no login was returned"""
        school = School.from_dict({"id": 1, "name": "S"})

        assert school.user is None
        assert school.email == ""
        assert school.password == ""

    def test_to_dict(self):
        """Test serializing back to a dict"""
        teacher = Teacher(id=2, full_name="T", subject="Math")

        data = teacher.to_dict()

        assert data["id"] == 2
        assert data["subject"] == "Math"


class TestQueryParams:
    """Test filter serialization"""

    def test_none_filters(self):
        assert query_params(None) == {}

    def test_drops_none_and_empty(self):
        """Test that unset filters are not sent"""
        filters = TeacherFilters(full_name="", subject="Math", ped_experience=0)

        assert query_params(filters) == {"subject": "Math", "ped_experience": "0"}

    def test_student_ranges(self):
        filters = StudentFilters(grade_from=5, grade_to=9, age_from=None)

        assert query_params(filters) == {"grade_from": "5", "grade_to": "9"}

    def test_plain_mapping(self):
        assert query_params({"a": 1, "b": None}) == {"a": "1"}


class TestValidatePayload:
    """Test create/update field checks"""

    def test_create_requires_fields(self):
        """Test that create lists every missing required field"""
        with pytest.raises(ValidationError) as exc_info:
            validate_payload({"phone": "123"}, TEACHER_SCHEMA)

        assert set(exc_info.value.fields) == {"full_name", "position", "subject"}
        assert exc_info.value.code == "VALIDATION_ERROR"

    def test_update_allows_partial(self):
        """Test that update only checks what is present"""
        assert validate_payload({"grade": "7"}, CLASS_SCHEMA, partial=True) == {"grade": 7}

    def test_update_rejects_blank_required(self):
        """Test that a required field cannot be blanked by update"""
        with pytest.raises(ValidationError):
            validate_payload({"full_name": "  "}, STUDENT_SCHEMA, partial=True)

    def test_unknown_and_blank_optional_are_dropped(self):
        cleaned = validate_payload(
            {"full_name": " Ali ", "class_id": 3, "note": "", "favourite": "x"}, STUDENT_SCHEMA
        )

        assert cleaned == {"full_name": "Ali", "class_id": 3}

    @pytest.mark.parametrize("grade", ["0", "12", "five", True])
    def test_grade_range(self, grade):
        with pytest.raises(ValidationError) as exc_info:
            validate_payload({"name": "X", "grade": grade}, CLASS_SCHEMA)

        assert "grade" in exc_info.value.fields

    @pytest.mark.parametrize("value", ["2013-02-30", "01.09.2013", "2013-9-1"])
    def test_bad_dates(self, value):
        with pytest.raises(ValidationError):
            validate_payload({"full_name": "A", "class_id": 1, "birth_date": value}, STUDENT_SCHEMA)

    @pytest.mark.parametrize("value,expected", [("F", "female"), ("male", "male"), ("Female", "female")])
    def test_gender_aliases(self, value, expected):
        cleaned = validate_payload({"full_name": "A", "class_id": 1, "gender": value}, STUDENT_SCHEMA)

        assert cleaned["gender"] == expected

    def test_bad_gender(self):
        with pytest.raises(ValidationError):
            validate_payload({"full_name": "A", "class_id": 1, "gender": "x"}, STUDENT_SCHEMA)
