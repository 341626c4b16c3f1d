"""
Dashboard totals.

Counts come from the summary endpoint. When it cannot be reached the totals
fall back to whatever the stores currently hold.
"""

from dataclasses import dataclass, asdict
from typing import Any, Dict, Mapping, Optional

from schooladmin.access import Feature, can, require
from schooladmin.api import ApiClient
from schooladmin.exceptions import NetworkOrServerError
from schooladmin.logging_config import logger
from schooladmin.session import SessionStore
from schooladmin.stores import ClassStore, SchoolStore, StudentStore, TeacherStore


DEFAULT_SUMMARY_PATH = "/summary"


def _count(data: Mapping[str, Any], name: str) -> int:
    for key in (name, f"{name}_count", f"total_{name}"):
        value = data.get(key)
        if isinstance(value, bool):
            continue
        if isinstance(value, (int, float)):
            return int(value)
        if isinstance(value, list):
            return len(value)
    return 0


@dataclass
class Summary:
    students: int = 0
    teachers: int = 0
    classes: int = 0
    schools: Optional[int] = None
    from_cache: bool = False

    @classmethod
    def from_response(cls, data: Mapping[str, Any], show_schools: bool) -> "Summary":
        return cls(
            students=_count(data, "students"),
            teachers=_count(data, "teachers") or _count(data, "staff"),
            classes=_count(data, "classes"),
            schools=_count(data, "schools") if show_schools else None,
        )

    @classmethod
    def from_stores(cls, students: StudentStore, teachers: TeacherStore,
                    classes: ClassStore, schools: Optional[SchoolStore] = None) -> "Summary":
        return cls(
            students=students.count,
            teachers=teachers.count,
            classes=classes.count,
            schools=schools.count if schools is not None else None,
            from_cache=True,
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class DashboardService:
    """Fetches the totals shown on the dashboard"""

    def __init__(
        self,
        session: SessionStore,
        api: ApiClient,
        students: StudentStore,
        teachers: TeacherStore,
        classes: ClassStore,
        schools: SchoolStore,
        summary_path: str = DEFAULT_SUMMARY_PATH
    ):
        self.session = session
        self.api = api
        self.students = students
        self.teachers = teachers
        self.classes = classes
        self.schools = schools
        self.summary_path = summary_path

    async def fetch(self) -> Summary:
        require(self.session, Feature.DASHBOARD)
        show_schools = can(self.session, Feature.SCHOOL_AGGREGATE)
        token = self.session.require_token()

        try:
            data = await self.api.get_json(self.summary_path, token=token)
        except NetworkOrServerError as e:
            logger.warning(f"Summary unavailable, using cached counts: {e.message}")
            return Summary.from_stores(
                self.students, self.teachers, self.classes,
                self.schools if show_schools else None,
            )

        if not isinstance(data, Mapping):
            logger.warning("Summary response is not an object, using cached counts")
            return Summary.from_stores(
                self.students, self.teachers, self.classes,
                self.schools if show_schools else None,
            )
        return Summary.from_response(data, show_schools)
