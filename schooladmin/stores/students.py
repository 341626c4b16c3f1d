"""Students of the signed-in school, joined with their classes"""

from typing import List, Optional

from schooladmin.api import ApiClient
from schooladmin.models import (
    STUDENT_SCHEMA,
    UNASSIGNED,
    Student,
    StudentFilters,
    StudentWithClass,
)
from schooladmin.session import SessionStore
from schooladmin.stores.base import ResourceStore
from schooladmin.stores.classes import ClassStore


class StudentStore(ResourceStore):
    endpoint = "/students"
    entity_name = "student"
    schema = STUDENT_SCHEMA
    parse = staticmethod(Student.from_dict)

    def __init__(self, session: SessionStore, api: ApiClient, classes: ClassStore):
        super().__init__(session, api)
        self.classes = classes

    async def list(self, filters: Optional[StudentFilters] = None) -> List[Student]:
        # class names are needed to render the roster
        if not self.classes.items:
            await self.classes.list()
        return await super().list(filters)

    def with_class(self, student: Student) -> StudentWithClass:
        return StudentWithClass(student=student, school_class=self.classes.find(student.class_id))

    def with_classes(self) -> List[StudentWithClass]:
        return [self.with_class(student) for student in self.items]

    def class_label(self, student: Student) -> str:
        school_class = self.classes.find(student.class_id)
        return school_class.name if school_class else UNASSIGNED
