"""Remote-backed entity stores"""

from schooladmin.stores.base import ResourceStore, same_id
from schooladmin.stores.classes import ClassStore
from schooladmin.stores.schools import SchoolStore
from schooladmin.stores.students import StudentStore
from schooladmin.stores.teachers import TeacherStore

__all__ = [
    "ResourceStore",
    "same_id",
    "SchoolStore",
    "ClassStore",
    "StudentStore",
    "TeacherStore",
]
