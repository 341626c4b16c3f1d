"""Teaching staff of the signed-in school"""

from typing import List, Optional

from schooladmin.api import ApiClient
from schooladmin.models import TEACHER_SCHEMA, Teacher
from schooladmin.session import SessionStore
from schooladmin.stores.base import ResourceStore


class TeacherStore(ResourceStore):
    """
    Staff cache plus a client-side search.

    `filtered()` combines a case-insensitive name search with an exact subject
    match; both are independent of the server-side filters passed to `list`.
    """

    endpoint = "/staff"
    entity_name = "teacher"
    schema = TEACHER_SCHEMA
    parse = staticmethod(Teacher.from_dict)

    def __init__(self, session: SessionStore, api: ApiClient):
        super().__init__(session, api)
        self.search_text: str = ""
        self.selected_subject: Optional[str] = None

    def set_search_text(self, text: Optional[str]) -> None:
        self._commit(search_text=(text or "").strip())

    def set_selected_subject(self, subject: Optional[str]) -> None:
        self._commit(selected_subject=subject or None)

    def filtered(self) -> List[Teacher]:
        needle = self.search_text.lower()
        return [
            teacher for teacher in self.items
            if needle in (teacher.full_name or "").lower()
            and (self.selected_subject is None or teacher.subject == self.selected_subject)
        ]

    def unique_subjects(self) -> List[str]:
        return sorted({t.subject for t in self.items if t.subject})
