"""
Entities returned by the school API and the field checks applied before
they are sent back.

Only presence and simple format checks happen here; the server owns all
other validation.
"""

import re
from dataclasses import dataclass, field, asdict, fields as dataclass_fields
from datetime import date
from enum import Enum
from typing import Any, Callable, Dict, Iterable, Mapping, Optional

from schooladmin.exceptions import ValidationError


class Gender(str, Enum):
    MALE = "male"
    FEMALE = "female"


UNASSIGNED = "Unassigned"


def _known_fields(cls, data: Mapping[str, Any]) -> Dict[str, Any]:
    names = {f.name for f in dataclass_fields(cls)}
    return {k: v for k, v in data.items() if k in names}


@dataclass
class SchoolAccount:
    """Login provisioned for a school"""
    id: Optional[int] = None
    email: str = ""
    password: str = ""
    role: str = ""


@dataclass
class School:
    id: Any
    name: str = ""
    director: str = ""
    class_count: int = 0
    student_count: int = 0
    user_id: Optional[int] = None
    user: Optional[SchoolAccount] = None
    created_at: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "School":
        values = _known_fields(cls, data)
        user = values.get("user")
        if isinstance(user, Mapping):
            values["user"] = SchoolAccount(**_known_fields(SchoolAccount, user))
        return cls(**values)

    @property
    def email(self) -> str:
        return self.user.email if self.user else ""

    @property
    def password(self) -> str:
        return self.user.password if self.user else ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class SchoolClass:
    id: Any
    name: str = ""
    grade: int = 0
    academic_year: str = ""
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SchoolClass":
        return cls(**_known_fields(cls, data))

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class Student:
    id: int
    full_name: str = ""
    class_id: Optional[int] = None
    address: Optional[str] = None
    birth_date: Optional[str] = None
    created_at: Optional[str] = None
    gender: Optional[str] = None
    note: Optional[str] = None
    phone: Optional[str] = None
    school_id: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Student":
        return cls(**_known_fields(cls, data))

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class StudentWithClass:
    """A student joined with its class, if the class is cached"""
    student: Student
    school_class: Optional[SchoolClass] = None

    @property
    def class_name(self) -> str:
        return self.school_class.name if self.school_class else UNASSIGNED


@dataclass
class Teacher:
    id: int
    full_name: str = ""
    phone: str = ""
    position: str = ""
    subject: str = ""
    category: Optional[str] = None
    education: Optional[str] = None
    note: Optional[str] = None
    ped_experience: Optional[int] = None
    total_experience: Optional[int] = None
    work_start: Optional[str] = None
    school_id: Optional[int] = None
    created_at: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Teacher":
        return cls(**_known_fields(cls, data))

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# ==================== Filters ====================

@dataclass
class StudentFilters:
    full_name: Optional[str] = None
    gender: Optional[str] = None
    class_id: Optional[int] = None
    grade_from: Optional[int] = None
    grade_to: Optional[int] = None
    age_from: Optional[int] = None
    age_to: Optional[int] = None


@dataclass
class TeacherFilters:
    full_name: Optional[str] = None
    phone: Optional[str] = None
    position: Optional[str] = None
    subject: Optional[str] = None
    education: Optional[str] = None
    category: Optional[str] = None
    ped_experience: Optional[int] = None
    total_experience: Optional[int] = None


def query_params(filters: Any) -> Dict[str, str]:
    """Query string values for every filter that is neither None nor empty"""
    if filters is None:
        return {}
    items = asdict(filters).items() if hasattr(filters, "__dataclass_fields__") else dict(filters).items()
    return {
        key: str(value)
        for key, value in items
        if value is not None and value != ""
    }


# ==================== Field checks ====================

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def _as_text(value: Any) -> str:
    return str(value).strip()


def _as_int(value: Any) -> int:
    if isinstance(value, bool):
        raise ValueError("expected an integer")
    if isinstance(value, int):
        return value
    text = str(value).strip()
    if not re.fullmatch(r"-?\d+", text):
        raise ValueError("expected an integer")
    return int(text)


def _as_date(value: Any) -> str:
    if isinstance(value, date):
        return value.isoformat()
    text = str(value).strip()
    if not _DATE_RE.match(text):
        raise ValueError("expected a date as YYYY-MM-DD")
    date.fromisoformat(text)
    return text


def _as_gender(value: Any) -> str:
    text = str(value).strip().lower()
    aliases = {"m": Gender.MALE.value, "f": Gender.FEMALE.value}
    text = aliases.get(text, text)
    if text not in {g.value for g in Gender}:
        raise ValueError("expected 'male' or 'female'")
    return text


def _as_email(value: Any) -> str:
    text = str(value).strip()
    if not _EMAIL_RE.match(text):
        raise ValueError("expected an email address")
    return text


def _as_grade(value: Any) -> int:
    grade = _as_int(value)
    if not 1 <= grade <= 11:
        raise ValueError("expected a grade from 1 to 11")
    return grade


def _non_negative(value: Any) -> int:
    number = _as_int(value)
    if number < 0:
        raise ValueError("must not be negative")
    return number


@dataclass
class FieldSchema:
    """What a payload for one entity may and must contain"""
    converters: Dict[str, Callable[[Any], Any]]
    required: Iterable[str] = field(default_factory=tuple)


SCHOOL_SCHEMA = FieldSchema(
    converters={"name": _as_text, "director": _as_text, "email": _as_email},
    required=("name", "director", "email"),
)

CLASS_SCHEMA = FieldSchema(
    converters={"name": _as_text, "grade": _as_grade, "academic_year": _as_text},
    required=("name", "grade"),
)

STUDENT_SCHEMA = FieldSchema(
    converters={
        "full_name": _as_text,
        "class_id": _as_int,
        "class": _as_text,
        "phone": _as_text,
        "birth_date": _as_date,
        "gender": _as_gender,
        "address": _as_text,
        "note": _as_text,
        "school_id": _as_int,
    },
    required=("full_name", "class_id"),
)

TEACHER_SCHEMA = FieldSchema(
    converters={
        "full_name": _as_text,
        "phone": _as_text,
        "position": _as_text,
        "subject": _as_text,
        "category": _as_text,
        "education": _as_text,
        "note": _as_text,
        "ped_experience": _non_negative,
        "total_experience": _non_negative,
        "work_start": _as_date,
    },
    required=("full_name", "phone", "position", "subject"),
)


def validate_payload(data: Mapping[str, Any], schema: FieldSchema,
                     partial: bool = False) -> Dict[str, Any]:
    """
    Check and normalise a create/update payload.

    Unknown keys and blank optional values are dropped. With partial=True
    (updates) required fields may be absent but not blank.

    Raises:
        ValidationError: with one message per offending field
    """
    errors: Dict[str, str] = {}
    cleaned: Dict[str, Any] = {}

    for key, value in data.items():
        if key not in schema.converters:
            continue
        if value is None or (isinstance(value, str) and not value.strip()):
            if key in schema.required:
                errors[key] = "required"
            continue
        try:
            cleaned[key] = schema.converters[key](value)
        except ValueError as e:
            errors[key] = str(e)

    if not partial:
        for key in schema.required:
            if key not in cleaned and key not in errors:
                errors[key] = "required"

    if errors:
        summary = ", ".join(f"{k}: {v}" for k, v in errors.items())
        raise ValidationError(f"Invalid fields - {summary}", fields=errors)

    if partial and not cleaned:
        raise ValidationError("Nothing to update")

    return cleaned
