"""Classes of the signed-in school"""

from typing import Any, Dict, List, Optional

from schooladmin.models import CLASS_SCHEMA, SchoolClass
from schooladmin.stores.base import ResourceStore


class ClassStore(ResourceStore):
    endpoint = "/classes"
    entity_name = "class"
    schema = CLASS_SCHEMA
    parse = staticmethod(SchoolClass.from_dict)

    def _update_body(self, cleaned: Dict[str, Any]) -> Dict[str, Any]:
        # the server only accepts renames and grade changes
        return {key: cleaned[key] for key in ("name", "grade") if key in cleaned}

    def sorted_by_grade(self) -> List[SchoolClass]:
        """Classes ordered by grade, then name; classes without a grade come last"""
        return sorted(self.items, key=lambda c: (c.grade is None, c.grade or 0, c.name or ""))

    def unique_grades(self) -> List[int]:
        return sorted({c.grade for c in self.items if c.grade is not None})

    def find(self, class_id: Any) -> Optional[SchoolClass]:
        """
        Class with the given id, compared numerically.

        Student records carry integer class ids while class ids may come back
        as strings; anything that is not a number matches nothing.
        """
        try:
            wanted = int(class_id)
        except (TypeError, ValueError):
            return None
        for school_class in self.items:
            try:
                if int(school_class.id) == wanted:
                    return school_class
            except (TypeError, ValueError):
                continue
        return None
